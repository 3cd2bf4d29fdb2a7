from datetime import datetime, timedelta
from flask import Blueprint, request, g, current_app
from sqlalchemy import func
from models import db
from models.activity_log import ActivityLog
from app.version import API_PREFIX
from app.errors import ValidationError
from app.services.activity import purge_older_than
from app.utils import ok, auth_required, permission_required, transactional, parse_datetime

logs_bp = Blueprint("logs", __name__, url_prefix=f"{API_PREFIX}/logs")

MAX_PAGE_SIZE = 200


def _int_arg(name, default, minimum=1, maximum=None):
    raw = request.args.get(name)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a whole number")
    if value < minimum:
        raise ValidationError(f"{name} must be at least {minimum}")
    return min(value, maximum) if maximum else value


def _range_lower_bound(name):
    today = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    return {
        "today": today,
        "week": today - timedelta(days=6),
        "month": today - timedelta(days=29),
    }.get(name)


def _filtered_query():
    q = ActivityLog.query
    args = request.args
    if args.get("action"):
        q = q.filter(ActivityLog.action == args["action"])
    if args.get("resource_type"):
        q = q.filter(ActivityLog.resource_type == args["resource_type"])
    if args.get("user_id"):
        q = q.filter(ActivityLog.user_id == _int_arg("user_id", None))
    if args.get("username"):
        q = q.filter(ActivityLog.username.ilike(f"%{args['username']}%"))

    start = parse_datetime(args.get("from"))
    end = parse_datetime(args.get("to"))
    lower = _range_lower_bound(args.get("date_range"))
    if lower and (start is None or start < lower):
        start = lower
    if start:
        q = q.filter(ActivityLog.created_at >= start)
    if end:
        q = q.filter(ActivityLog.created_at <= end)
    return q


def _page(q):
    per_page = _int_arg("limit", 50, maximum=MAX_PAGE_SIZE)
    page = _int_arg("page", 1)
    result = q.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).paginate(
        page=page, per_page=per_page, error_out=False
    )
    return {
        "logs": [entry.to_dict() for entry in result.items],
        "total": result.total,
        "page": page,
        "total_pages": result.pages or 1,
        "limit": per_page,
    }


@logs_bp.route("", methods=["GET"])
@auth_required
@permission_required("logs:read")
def list_logs():
    return ok(_page(_filtered_query()))


@logs_bp.route("/recent", methods=["GET"])
@auth_required
@permission_required("logs:read")
def recent_logs():
    limit = _int_arg("limit", 20, maximum=MAX_PAGE_SIZE)
    entries = ActivityLog.query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).limit(limit).all()
    return ok([entry.to_dict() for entry in entries])


@logs_bp.route("/my-activity", methods=["GET"])
@auth_required
def my_activity():
    return ok(_page(ActivityLog.query.filter(ActivityLog.user_id == g.user.id)))


@logs_bp.route("/stats", methods=["GET"])
@auth_required
@permission_required("logs:admin")
def log_stats():
    q = _filtered_query()
    today = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)

    def grouped(column):
        rows = (
            q.with_entities(column, func.count(ActivityLog.id))
            .group_by(column)
            .order_by(func.count(ActivityLog.id).desc())
            .all()
        )
        return [{"key": key, "count": count} for key, count in rows]

    return ok({
        "total": q.count(),
        "today": q.filter(ActivityLog.created_at >= today).count(),
        "unique_users": q.with_entities(func.count(func.distinct(ActivityLog.user_id))).scalar(),
        "by_action": grouped(ActivityLog.action),
        "by_resource": grouped(ActivityLog.resource_type),
        "by_user": grouped(ActivityLog.username)[:10],
    })


@logs_bp.route("/cleanup", methods=["DELETE"])
@auth_required
@permission_required("logs:admin")
def cleanup_logs():
    body = request.get_json(silent=True) or {}
    days = body.get("older_than_days", current_app.config["ACTIVITY_LOG_RETENTION_DAYS"])
    if not isinstance(days, int) or isinstance(days, bool) or days < 1:
        raise ValidationError("older_than_days must be a positive whole number")
    with transactional("Failed to purge activity logs"):
        deleted = purge_older_than(days)
    return ok(
        {"deleted_count": deleted},
        message=f"Deleted {deleted} log entries older than {days} days",
    )
