import logging
from flask import Blueprint, request, current_app, g
from flask_limiter.util import get_remote_address
from extensions import limiter
from models import db
from models.user import User, ROLES
from app.version import API_PREFIX
from app.schemas.auth import LoginRequest, RegisterRequest, ChangePasswordRequest
from app.services.activity import log_activity
from app.utils import (
    ok,
    error,
    auth_required,
    permission_required,
    create_access_token,
    transactional,
    validate_schema,
)

auth_bp = Blueprint("auth", __name__, url_prefix=f"{API_PREFIX}/auth")
logger = logging.getLogger(__name__)


@auth_bp.route("/login", methods=["POST"])
@limiter.limit(
    lambda: current_app.config["LOGIN_LIMIT_PER_IP"],
    key_func=get_remote_address,
    error_message="Too many logins from this IP",
)
@validate_schema(LoginRequest)
def login():
    data = request.validated_data
    user = User.query.filter_by(username=data.username).first()
    if not user or not user.check_password(data.password):
        logger.warning("failed login attempt")
        return error("Invalid credentials", status=401)
    if not user.is_active:
        return error("Account is deactivated", status=403)

    with transactional("Failed to record login"):
        log_activity(user, "login", "user", f"{user.username} logged in", resource_id=user.id)

    token = create_access_token(user.id, user.role)
    return ok({
        "token": token,
        "role": user.role,
        "username": user.username,
        "expires_in": current_app.config["ACCESS_TOKEN_LIFETIME_MIN"] * 60,
    }, message="Logged in")


@auth_bp.route("/register", methods=["POST"])
@auth_required
@permission_required("users:manage")
@validate_schema(RegisterRequest)
def register():
    data = request.validated_data
    if User.query.filter_by(username=data.username).first():
        return error("Username already exists", status=409)

    # unknown roles fall back to the least privileged one
    role = data.role if data.role in ROLES else "staff"
    user = User(username=data.username, role=role, created_by_id=g.user.id)
    user.set_password(data.password)
    with transactional("Failed to create user"):
        db.session.add(user)
        db.session.flush()
        log_activity(
            g.user, "user_created", "user",
            f"Created user {user.username} with role {role}",
            resource_id=user.id, details={"role": role},
        )
    return ok(user.to_dict(), message="User created", status=201)


@auth_bp.route("/change-password", methods=["POST"])
@auth_required
@validate_schema(ChangePasswordRequest)
def change_password():
    data = request.validated_data
    user = g.user
    if not user.check_password(data.current_password):
        return error("Current password is incorrect", status=400)
    if data.current_password == data.new_password:
        return error("New password must be different from the current password", status=400)

    with transactional("Failed to change password"):
        user.set_password(data.new_password)
        log_activity(user, "password_changed", "user", f"{user.username} changed password", resource_id=user.id)
    return ok(message="Password changed")


@auth_bp.route("/logout", methods=["POST"])
@auth_required
def logout():
    # tokens are stateless; the client drops its copy
    with transactional("Failed to record logout"):
        log_activity(g.user, "logout", "user", f"{g.user.username} logged out", resource_id=g.user.id)
    return ok(message="Logged out")
