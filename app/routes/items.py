from datetime import datetime
from flask import Blueprint, request, g
from sqlalchemy import func, or_
from models import db
from models.item import Item
from models.sale import Sale
from models.supplier import Supplier
from app.version import API_PREFIX
from app.errors import Conflict, NotFound, ValidationError
from app.schemas.items import ItemCreateRequest, ItemUpdateRequest
from app.services import csv_io
from app.services.activity import log_activity
from app.services.stock import adjust_stock, get_item_or_404
from app.utils import (
    ok,
    auth_required,
    permission_required,
    csv_response,
    transactional,
    validate_schema,
    to_naive_utc,
)

items_bp = Blueprint("items", __name__, url_prefix=f"{API_PREFIX}/items")


def _check_supplier(supplier_id):
    if supplier_id is not None and not db.session.get(Supplier, supplier_id):
        raise NotFound("Supplier not found")


def _check_unique(name=None, sku=None, exclude_id=None):
    if name:
        q = Item.query.filter(Item.name == name)
        if exclude_id:
            q = q.filter(Item.id != exclude_id)
        if q.first():
            raise Conflict("Item name already exists")
    if sku:
        q = Item.query.filter(Item.sku == sku)
        if exclude_id:
            q = q.filter(Item.id != exclude_id)
        if q.first():
            raise Conflict("SKU already exists")


@items_bp.route("", methods=["POST"])
@auth_required
@permission_required("items:write")
@validate_schema(ItemCreateRequest)
def create_item():
    data = request.validated_data
    sku = data.sku or None
    _check_unique(data.name, sku)
    _check_supplier(data.supplier_id)

    fields = data.model_dump()
    fields["sku"] = sku
    if data.expiry_date:
        fields["expiry_date"] = to_naive_utc(data.expiry_date)
    item = Item(**fields, last_modified_by_id=g.user.id, last_modified_at=datetime.utcnow())

    with transactional("Failed to add item"):
        db.session.add(item)
        db.session.flush()
        log_activity(g.user, "item_created", "item", f"Created item {item.name}", resource_id=item.id)
    return ok(item.to_dict(), message="Item created", status=201)


@items_bp.route("", methods=["GET"])
@auth_required
def list_items():
    q = Item.query
    search = (request.args.get("search") or "").strip()
    if search:
        like = f"%{search}%"
        q = q.filter(or_(Item.name.ilike(like), Item.category.ilike(like)))
    supplier_id = request.args.get("supplier_id", type=int)
    if supplier_id:
        q = q.filter(Item.supplier_id == supplier_id)
    category = (request.args.get("category") or "").strip()
    if category:
        q = q.filter(func.lower(Item.category) == category.lower())
    if request.args.get("low_stock") == "true":
        q = q.filter(Item.quantity < Item.reorder_level)

    items = q.order_by(Item.created_at.desc(), Item.id.desc()).all()
    return ok([i.to_dict() for i in items])


@items_bp.route("/<int:item_id>", methods=["GET"])
@auth_required
def get_item(item_id):
    return ok(get_item_or_404(item_id).to_dict())


@items_bp.route("/<int:item_id>", methods=["PUT"])
@auth_required
@permission_required("items:write")
@validate_schema(ItemUpdateRequest)
def update_item(item_id):
    item = get_item_or_404(item_id)
    changes = request.validated_data.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No fields to update")

    _check_unique(changes.get("name"), changes.get("sku"), exclude_id=item.id)
    if "supplier_id" in changes:
        _check_supplier(changes["supplier_id"])
    if changes.get("expiry_date"):
        changes["expiry_date"] = to_naive_utc(changes["expiry_date"])
    if "sku" in changes and not changes["sku"]:
        changes["sku"] = None

    with transactional("Failed to update item"):
        for key, value in changes.items():
            setattr(item, key, value)
        item.last_modified_by_id = g.user.id
        item.last_modified_at = datetime.utcnow()
        log_activity(
            g.user, "item_updated", "item", f"Updated item {item.name}",
            resource_id=item.id, details={"fields": sorted(changes)},
        )
    return ok(item.to_dict(), message="Item updated")


@items_bp.route("/<int:item_id>", methods=["DELETE"])
@auth_required
@permission_required("items:delete")
def delete_item(item_id):
    item = get_item_or_404(item_id)
    if Sale.query.filter_by(item_id=item.id).first():
        raise Conflict("Item has recorded sales and cannot be deleted")

    name = item.name
    with transactional("Failed to delete item"):
        db.session.delete(item)
        log_activity(g.user, "item_deleted", "item", f"Deleted item {name}", resource_id=item_id)
    return ok(message="Item deleted")


@items_bp.route("/<int:item_id>/adjust-stock", methods=["PATCH"])
@auth_required
@permission_required("stock:adjust")
def adjust_item_stock(item_id):
    body = request.get_json(silent=True) or {}
    item = adjust_stock(item_id, body.get("amount"), body.get("operation") or "increase", user=g.user)
    return ok(item.to_dict(), message="Stock updated")


@items_bp.route("/export/csv", methods=["GET"])
@auth_required
@permission_required("items:export")
def export_items():
    items = Item.query.order_by(Item.name.asc()).all()
    body = csv_io.items_csv(items)
    with transactional("Failed to log export"):
        log_activity(g.user, "csv_export", "item", f"Exported {len(items)} items to CSV")
    return csv_response(body, "inventory-export.csv")


def uploaded_csv_text() -> str:
    """CSV either as a multipart ``file`` or as the raw request body."""
    upload = request.files.get("file")
    raw = upload.read() if upload else request.get_data()
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError("CSV must be UTF-8")


@items_bp.route("/import/csv", methods=["POST"])
@auth_required
@permission_required("items:import")
def import_items():
    results = csv_io.import_items(uploaded_csv_text())
    with transactional("Failed to import items"):
        log_activity(
            g.user, "csv_import", "item",
            f"Imported CSV: {results['success']} succeeded, {results['failed']} failed",
            details={"success": results["success"], "failed": results["failed"]},
        )
    return ok(results, message="CSV import completed")
