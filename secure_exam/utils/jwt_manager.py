# secure_exam/utils/jwt_manager.py
import jwt
from datetime import datetime, timedelta, timezone

from flask import current_app


def create_token(email):
    config = current_app.config
    payload = {
        "email": email,
        "role": "admin",
        "exp": datetime.now(timezone.utc) + timedelta(days=config["JWT_EXP_DAYS"]),
    }
    return jwt.encode(payload, config["JWT_SECRET"], algorithm=config["JWT_ALGORITHM"])


def decode_token(token):
    config = current_app.config
    return jwt.decode(token, config["JWT_SECRET"], algorithms=[config["JWT_ALGORITHM"]])


def admin_from_token(token):
    """Decoded admin claims, or None for a missing/invalid/expired/non-admin token."""
    if not token:
        return None
    try:
        claims = decode_token(token)
    except jwt.PyJWTError:
        return None
    if claims.get("role") != "admin":
        return None
    return claims
