from flask import Blueprint, request, g
from app.version import API_PREFIX
from app.errors import ValidationError
from app.services import reports
from app.utils import ok, auth_required, permission_required

analytics_bp = Blueprint("analytics", __name__, url_prefix=f"{API_PREFIX}/analytics")


def _days_arg(default=30) -> int:
    raw = request.args.get("days")
    if raw in (None, ""):
        return default
    try:
        days = int(raw)
    except ValueError:
        raise ValidationError("days must be a whole number")
    if days < 1:
        raise ValidationError("days must be at least 1")
    return days


@analytics_bp.route("/dashboard-stats", methods=["GET"])
@auth_required
def dashboard_stats():
    return ok(reports.dashboard_stats(g.role))


@analytics_bp.route("/stock-summary", methods=["GET"])
@auth_required
@permission_required("analytics:read")
def stock_summary():
    return ok(reports.stock_summary())


@analytics_bp.route("/sales-analytics", methods=["GET"])
@auth_required
@permission_required("analytics:read")
def sales_analytics():
    return ok(reports.sales_analytics(_days_arg()))


@analytics_bp.route("/supplier-analytics", methods=["GET"])
@auth_required
@permission_required("analytics:read")
def supplier_analytics():
    return ok(reports.supplier_analytics())


@analytics_bp.route("/reorder-suggestions", methods=["GET"])
@auth_required
@permission_required("analytics:read")
def reorder_suggestions():
    return ok(reports.reorder_suggestions(_days_arg()))


@analytics_bp.route("/performance-insights", methods=["GET"])
@auth_required
@permission_required("analytics:read")
def performance_insights():
    return ok(reports.performance_insights())
