# secure_exam/routes/auth_routes.py

from flask import Blueprint, current_app, g, jsonify

from secure_exam import storage
from secure_exam.config import is_production
from secure_exam.errors import ApiError
from secure_exam.models.identity import AdminLogin
from secure_exam.utils.auth import admin_required, check_admin_login
from secure_exam.utils.jwt_manager import create_token
from secure_exam.utils.validation import parse_body

auth = Blueprint("auth", __name__)


# =====================================================
# LOGIN ADMIN
# =====================================================
@auth.post("/login")
def login():
    data = parse_body(AdminLogin)

    email = check_admin_login(data.email, data.password)
    if not email:
        raise ApiError("Invalid credentials", 401)

    storage.ensure_admin_user(email)
    token = create_token(email)

    config = current_app.config
    resp = jsonify({
        "message": "Login successful",
        "user": {"email": email, "role": "admin"},
    })
    resp.set_cookie(
        config["ADMIN_COOKIE_NAME"],
        token,
        httponly=True,
        secure=is_production(config),
        samesite="Lax",
        max_age=config["JWT_EXP_DAYS"] * 24 * 60 * 60,
    )
    current_app.logger.info("Admin %s logged in", email)
    return resp, 200


# =====================================================
# LOGOUT
# =====================================================
@auth.post("/logout")
def logout():
    resp = jsonify({"message": "Logged out successfully"})
    resp.delete_cookie(current_app.config["ADMIN_COOKIE_NAME"])
    return resp, 200


# =====================================================
# CURRENT ADMIN
# =====================================================
@auth.get("/me")
@admin_required
def me():
    return jsonify({"email": g.admin["email"], "role": g.admin["role"]}), 200
