from flask import Blueprint, request, g
from sqlalchemy import func
from models import db
from models.item import Item
from models.sale import Sale
from models.user import User
from app.version import API_PREFIX
from app.errors import Conflict, NotFound, ValidationError
from app.schemas.users import UserUpdateRequest
from app.services.activity import log_activity
from app.utils import ok, auth_required, permission_required, transactional, validate_schema

users_bp = Blueprint("users", __name__, url_prefix=f"{API_PREFIX}/users")


@users_bp.before_request
@auth_required
@permission_required("users:manage")
def _enforce_admin():
    """User management is admin only."""
    return None


def _get_user(user_id) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return user


@users_bp.route("", methods=["GET"])
def list_users():
    users = User.query.order_by(User.created_at.desc(), User.id.desc()).all()
    return ok([u.to_dict() for u in users])


@users_bp.route("/<int:user_id>", methods=["GET"])
def get_user(user_id):
    return ok(_get_user(user_id).to_dict())


@users_bp.route("/<int:user_id>", methods=["PUT"])
@validate_schema(UserUpdateRequest)
def update_user(user_id):
    user = _get_user(user_id)
    changes = request.validated_data.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No fields to update")
    if user.id == g.user.id and (changes.get("role", user.role) != user.role or changes.get("is_active") is False):
        raise ValidationError("You cannot change your own role or deactivate yourself")
    username = changes.get("username")
    if username and User.query.filter(User.username == username, User.id != user.id).first():
        raise Conflict("Username already exists")

    with transactional("Failed to update user"):
        password = changes.pop("password", None)
        if password:
            user.set_password(password)
        for key, value in changes.items():
            setattr(user, key, value)
        log_activity(
            g.user, "user_updated", "user", f"Updated user {user.username}",
            resource_id=user.id, details={"fields": sorted(changes) + (["password"] if password else [])},
        )
    return ok(user.to_dict(), message="User updated")


@users_bp.route("/<int:user_id>", methods=["DELETE"])
def delete_user(user_id):
    user = _get_user(user_id)
    if user.id == g.user.id:
        raise ValidationError("You cannot delete your own account")
    if Sale.query.filter_by(sold_by_id=user.id).first():
        raise Conflict("User has recorded sales; deactivate the account instead")
    username = user.username
    with transactional("Failed to delete user"):
        User.query.filter_by(created_by_id=user.id).update({"created_by_id": None})
        Item.query.filter_by(last_modified_by_id=user.id).update({"last_modified_by_id": None})
        db.session.delete(user)
        log_activity(g.user, "user_deleted", "user", f"Deleted user {username}", resource_id=user_id)
    return ok(message="User deleted")


@users_bp.route("/<int:user_id>/toggle-active", methods=["PATCH"])
def toggle_active(user_id):
    user = _get_user(user_id)
    if user.id == g.user.id:
        raise ValidationError("You cannot deactivate your own account")
    with transactional("Failed to toggle user"):
        user.is_active = not user.is_active
        action = "user_activated" if user.is_active else "user_deactivated"
        log_activity(g.user, action, "user",
                     f"{'Activated' if user.is_active else 'Deactivated'} user {user.username}",
                     resource_id=user.id)
    return ok(user.to_dict(), message="User status updated")


@users_bp.route("/stats/overview", methods=["GET"])
def stats_overview():
    roles = dict(db.session.query(User.role, func.count(User.id)).group_by(User.role).all())
    total = User.query.count()
    active = User.query.filter_by(is_active=True).count()
    return ok({
        "total_users": total,
        "active_users": active,
        "inactive_users": total - active,
        "role_distribution": roles,
    })
