from flask import Blueprint, request, g
from models import db
from models.sale import Sale
from app.version import API_PREFIX
from app.errors import NotFound, ValidationError
from app.services import reports
from app.services.stock import record_sale
from app.utils import ok, auth_required, permission_required

sales_bp = Blueprint("sales", __name__, url_prefix=f"{API_PREFIX}/sales")


@sales_bp.route("", methods=["POST"])
@auth_required
@permission_required("sales:record")
def create_sale():
    body = request.get_json(silent=True) or {}
    item_id = body.get("item_id")
    if not isinstance(item_id, int) or isinstance(item_id, bool):
        raise ValidationError("Valid item ID is required")
    sale = record_sale(item_id, body.get("quantity_sold"), body.get("date"), user=g.user)
    return ok(sale.to_dict(), message="Sale recorded", status=201)


@sales_bp.route("", methods=["GET"])
@auth_required
@permission_required("sales:read")
def list_sales():
    start, end = reports.resolve_range(request.args.get("from"), request.args.get("to"))
    q = Sale.query.filter(Sale.date >= start, Sale.date <= end)
    item_id = request.args.get("item_id")
    if item_id:
        if not item_id.isdigit():
            raise ValidationError("Invalid item ID")
        q = q.filter(Sale.item_id == int(item_id))
    user_id = request.args.get("user_id")
    if user_id:
        if not user_id.isdigit():
            raise ValidationError("Invalid user ID")
        q = q.filter(Sale.sold_by_id == int(user_id))
    sales = q.order_by(Sale.date.desc(), Sale.id.desc()).all()
    return ok([s.to_dict() for s in sales])


@sales_bp.route("/summary/me", methods=["GET"])
@auth_required
@permission_required("sales:own")
def my_summary():
    return ok(reports.user_sales_summary(g.user.id))


@sales_bp.route("/<int:sale_id>", methods=["GET"])
@auth_required
@permission_required("sales:read")
def get_sale(sale_id):
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFound("Sale not found")
    return ok(sale.to_dict())


@sales_bp.route("/report/date-range", methods=["GET"])
@auth_required
@permission_required("sales:read")
def date_range_report():
    return ok(reports.daily_report(request.args.get("from"), request.args.get("to")))
