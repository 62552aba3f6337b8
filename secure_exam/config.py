# secure_exam/config.py
import os
import secrets
import logging

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# =====================================================
# BASE DIRECTORY
# =====================================================
BASE_DIR = os.path.dirname(os.path.abspath(__file__))


def _int_env(name, default):
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


class Config:
    APP_ENV = os.getenv("APP_ENV", "development")

    # DATABASE
    MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "secure_exam_db")

    # ADMIN AUTH
    JWT_SECRET = os.getenv("JWT_SECRET")
    JWT_ALGORITHM = "HS256"
    JWT_EXP_DAYS = _int_env("JWT_EXP_DAYS", 7)
    ADMIN_COOKIE_NAME = "admin_token"
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
    ADMIN_PASSWORD_HASH = os.getenv("ADMIN_PASSWORD_HASH")
    ADMIN_CREDENTIALS_FILE = os.getenv(
        "ADMIN_CREDENTIALS_FILE",
        os.path.join(BASE_DIR, "admin-credentials.json"),
    )

    # AI VERIFICATION
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")

    # DOCUMENT UPLOADS
    MAX_DOCUMENT_BYTES = _int_env("MAX_DOCUMENT_BYTES", 5 * 1024 * 1024)
    MAX_FILENAME_LENGTH = 100

    # MONITORING
    MAX_INCIDENTS_PER_TYPE = _int_env("MAX_INCIDENTS_PER_TYPE", 20)

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")


def is_production(config):
    return config.get("APP_ENV") == "production"


def resolve_jwt_secret(config):
    """
    Return the configured JWT secret.

    Outside production a missing secret is replaced by a random one so the
    server can still start; admin tokens will not survive a restart.
    """
    secret = config.get("JWT_SECRET")
    if secret:
        return secret
    if is_production(config):
        raise RuntimeError("JWT_SECRET environment variable is required in production")
    logger.warning(
        "JWT_SECRET not set. Using a generated ephemeral secret "
        "(tokens will be invalid after restart)."
    )
    return secrets.token_hex(32)
