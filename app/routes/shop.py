from flask import Blueprint, request, current_app
from flask_limiter.util import get_remote_address
from sqlalchemy import or_
from extensions import limiter
from models import db, to_money
from models.item import Item
from models.sale import Sale, ORDER_STATUSES
from app.version import API_PREFIX
from app.errors import NotFound, ValidationError
from app.schemas.orders import PlaceOrderRequest, OrderUpdateRequest
from app.services.stock import place_order, update_order
from app.utils import ok, auth_required, permission_required, validate_schema, parse_datetime

shop_bp = Blueprint("shop", __name__, url_prefix=f"{API_PREFIX}/shop")


def _storefront_query():
    return Item.query.filter(Item.is_ecommerce_enabled.is_(True), Item.ecommerce_visibility == "public")


def _float_arg(name):
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a number")


# --- Public storefront ---

@shop_bp.route("/products", methods=["GET"])
def list_products():
    q = _storefront_query()
    if request.args.get("in_stock") != "false":
        q = q.filter(Item.quantity > 0)
    category = request.args.get("category")
    if category and category != "all":
        q = q.filter(Item.category == category)
    search = (request.args.get("search") or "").strip()
    if search:
        like = f"%{search}%"
        q = q.filter(or_(Item.name.ilike(like), Item.description.ilike(like), Item.category.ilike(like)))
    min_price = _float_arg("min_price")
    if min_price is not None:
        q = q.filter(Item.price >= min_price)
    max_price = _float_arg("max_price")
    if max_price is not None:
        q = q.filter(Item.price <= max_price)

    products = q.order_by(Item.created_at.desc(), Item.id.desc()).all()
    return ok([p.to_public_dict() for p in products])


@shop_bp.route("/products/<int:product_id>", methods=["GET"])
def get_product(product_id):
    product = _storefront_query().filter(Item.id == product_id).first()
    if not product:
        raise NotFound("Product not found")
    return ok(product.to_public_dict())


@shop_bp.route("/categories", methods=["GET"])
def list_categories():
    rows = _storefront_query().with_entities(Item.category).distinct().order_by(Item.category).all()
    return ok([category for (category,) in rows if category])


@shop_bp.route("/orders", methods=["POST"])
@limiter.limit(
    lambda: current_app.config["ORDER_LIMIT_PER_IP"],
    key_func=get_remote_address,
    error_message="Too many orders from this IP",
)
@validate_schema(PlaceOrderRequest)
def create_order():
    data = request.validated_data
    sales = place_order(
        [line.model_dump() for line in data.items],
        data.customer_info.model_dump(),
        data.payment_method,
    )
    return ok({
        "order_id": sales[0].id,
        "order_ids": [s.id for s in sales],
        "total_amount": to_money(sum(s.total_amount for s in sales)),
        "sales": [s.to_dict() for s in sales],
    }, message="Order placed successfully", status=201)


@shop_bp.route("/orders/<int:order_id>", methods=["GET"])
def get_order(order_id):
    sale = db.session.get(Sale, order_id)
    if not sale:
        raise NotFound("Order not found")
    return ok({
        "order_id": sale.id,
        "status": sale.order_status,
        "items": [{
            "name": sale.item.name,
            "category": sale.item.category,
            "quantity": sale.quantity_sold,
            "price": sale.unit_price,
            "total": sale.total_amount,
        }],
        "customer_name": sale.customer_name,
        "shipping_address": sale.shipping_address,
        "tracking_number": sale.tracking_number,
        "created_at": sale.created_at.isoformat() if sale.created_at else None,
        "total_amount": sale.total_amount,
    })


# --- Merchant ---

def _merchant_query():
    q = Sale.query
    status = request.args.get("status")
    if status and status != "all":
        q = q.filter(Sale.order_status == status)
    start = parse_datetime(request.args.get("start_date"))
    end = parse_datetime(request.args.get("end_date"))
    if start:
        q = q.filter(Sale.created_at >= start)
    if end:
        q = q.filter(Sale.created_at <= end)
    return q


@shop_bp.route("/merchant/orders", methods=["GET"])
@auth_required
@permission_required("orders:manage")
def merchant_orders():
    orders = _merchant_query().order_by(Sale.created_at.desc(), Sale.id.desc()).all()
    return ok([o.to_dict() for o in orders])


@shop_bp.route("/merchant/orders/<int:order_id>", methods=["PUT"])
@auth_required
@permission_required("orders:manage")
@validate_schema(OrderUpdateRequest)
def merchant_update_order(order_id):
    data = request.validated_data
    sale = update_order(order_id, data.order_status, data.tracking_number, data.notes)
    return ok(sale.to_dict(), message="Order updated successfully")


@shop_bp.route("/merchant/analytics", methods=["GET"])
@auth_required
@permission_required("orders:manage")
def merchant_analytics():
    orders = _merchant_query().all()
    total_orders = len(orders)
    revenue = sum(o.total_amount for o in orders)
    return ok({
        "total_orders": total_orders,
        "total_revenue": to_money(revenue),
        "average_order_value": to_money(revenue / total_orders) if total_orders else 0,
        "status_breakdown": {
            status: sum(1 for o in orders if o.order_status == status) for status in ORDER_STATUSES
        },
    })
