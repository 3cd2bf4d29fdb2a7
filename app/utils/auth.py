from functools import wraps
from flask import request, g
from .responses import error
from app.auth.permissions import role_has_scope
from .jwt import decode_token, TokenError
from models import db
from models.user import User


def auth_required(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        auth = request.headers.get("Authorization", "")
        if not auth:
            return error("Missing token", status=401)
        token = auth.split(" ", 1)[1] if auth.startswith("Bearer ") else auth
        try:
            payload = decode_token(token, expected_type="access")
        except TokenError as e:
            return error(str(e), status=401)

        try:
            user_id = int(payload["sub"])
        except (KeyError, TypeError, ValueError):
            return error("invalid token", status=401)
        user = db.session.get(User, user_id)
        if not user or not user.is_active:
            return error("User not found or inactive", status=401)

        g.user_id = user.id
        g.role = user.role
        g.user = user
        return func(*args, **kwargs)

    return wrapper


def permission_required(action):
    """Authorize the authenticated user against the role capability table."""

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            role = getattr(g, "role", None)
            if not role:
                return error("Role missing", status=403)
            if not role_has_scope(role, action):
                return error("Forbidden: insufficient rights", status=403)
            return fn(*args, **kwargs)

        wrapper.required_scope = action
        return wrapper

    return decorator


def current_user():
    return getattr(g, "user", None)


def client_ip():
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote_addr
