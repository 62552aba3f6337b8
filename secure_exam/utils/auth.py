# secure_exam/utils/auth.py
import json
import os
from functools import wraps

import jwt
from flask import current_app, g, request
from werkzeug.security import check_password_hash

from secure_exam.errors import ApiError
from secure_exam.utils.jwt_manager import decode_token


def load_admin_credentials():
    """
    Admin credentials come from ADMIN_EMAIL / ADMIN_PASSWORD_HASH, falling
    back to a JSON file with "email" and "passwordHash" keys.
    """
    config = current_app.config
    if config.get("ADMIN_EMAIL") and config.get("ADMIN_PASSWORD_HASH"):
        return {"email": config["ADMIN_EMAIL"], "passwordHash": config["ADMIN_PASSWORD_HASH"]}

    path = config.get("ADMIN_CREDENTIALS_FILE")
    if path and os.path.exists(path):
        with open(path, "r") as f:
            data = json.load(f)
        if not data.get("email") or not data.get("passwordHash"):
            raise RuntimeError(f"Invalid credentials file format: {path}")
        return {"email": data["email"], "passwordHash": data["passwordHash"]}

    raise RuntimeError(
        "Admin credentials not found. Set ADMIN_EMAIL and ADMIN_PASSWORD_HASH "
        "environment variables, or create an admin credentials file"
    )


def check_admin_login(email, password):
    credentials = load_admin_credentials()
    if email.strip().lower() != credentials["email"].lower():
        return None
    if not check_password_hash(credentials["passwordHash"], password):
        return None
    return credentials["email"]


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        token = request.cookies.get(current_app.config["ADMIN_COOKIE_NAME"])
        if not token:
            raise ApiError("Unauthorized", 401)
        try:
            claims = decode_token(token)
        except jwt.ExpiredSignatureError:
            raise ApiError("Token expired", 401)
        except jwt.PyJWTError:
            raise ApiError("Invalid token", 401)

        if claims.get("role") != "admin":
            raise ApiError("Admin access required", 403)

        g.admin = claims
        return view(*args, **kwargs)

    return wrapper
