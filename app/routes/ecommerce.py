from datetime import datetime
from flask import Blueprint, request, g
from sqlalchemy import or_
from models.item import Item, VISIBILITIES
from app.version import API_PREFIX
from app.errors import Conflict
from app.schemas.items import CatalogUpdateRequest, VisibilityRequest
from app.services.activity import log_activity
from app.services.stock import get_item_or_404
from app.utils import ok, auth_required, permission_required, transactional, validate_schema

ecommerce_bp = Blueprint("ecommerce", __name__, url_prefix=f"{API_PREFIX}/ecommerce")


@ecommerce_bp.before_request
@auth_required
@permission_required("catalog:manage")
def _enforce_catalog_role():
    """Catalogue editing is limited to admin, manager and ecommerce roles."""
    return None


def _visibilities(raw):
    if raw == "all":
        return list(VISIBILITIES)
    if raw in VISIBILITIES:
        return [raw]
    return ["limited"]


def _clean(values, limit):
    return [str(v).strip() for v in values or [] if v and str(v).strip()][:limit]


@ecommerce_bp.route("/catalog", methods=["GET"])
def list_catalog():
    args = request.args
    q = Item.query.filter(Item.ecommerce_visibility.in_(_visibilities(args.get("visibility"))))
    if args.get("include_disabled") != "true":
        q = q.filter(Item.is_ecommerce_enabled.is_(True))
    if args.get("in_stock") == "true":
        q = q.filter(Item.quantity > 0)
    category = args.get("category")
    if category and category != "all":
        q = q.filter(Item.category == category)
    search = (args.get("search") or "").strip()
    if search:
        like = f"%{search}%"
        q = q.filter(or_(Item.name.ilike(like), Item.description.ilike(like), Item.sku.ilike(like)))

    products = q.order_by(Item.updated_at.desc(), Item.id.desc()).all()
    tags = {t.strip() for t in (args.get("tags") or "").split(",") if t.strip()}
    if tags:
        products = [p for p in products if tags & set(p.ecommerce_tags or [])]
    return ok([p.to_dict() for p in products])


@ecommerce_bp.route("/catalog/<int:item_id>", methods=["GET"])
def get_catalog_item(item_id):
    return ok(get_item_or_404(item_id).to_dict())


@ecommerce_bp.route("/catalog/<int:item_id>", methods=["PUT"])
@validate_schema(CatalogUpdateRequest)
def update_catalog_item(item_id):
    item = get_item_or_404(item_id)
    changes = request.validated_data.model_dump(exclude_unset=True)
    name = changes.get("name")
    if name and Item.query.filter(Item.name == name, Item.id != item.id).first():
        raise Conflict("Item name already exists")
    if "images" in changes:
        changes["images"] = _clean(changes["images"], 10)
    if "ecommerce_tags" in changes:
        changes["ecommerce_tags"] = _clean(changes["ecommerce_tags"], 20)
    if "description" in changes:
        changes["description"] = (changes["description"] or "").strip()

    with transactional("Failed to update product"):
        for key, value in changes.items():
            setattr(item, key, value)
        item.last_modified_by_id = g.user.id
        item.last_modified_at = datetime.utcnow()
        log_activity(
            g.user, "item_updated", "item", f"Updated storefront listing for {item.name}",
            resource_id=item.id, details={"fields": sorted(changes)},
        )
    return ok(item.to_dict(), message="Product updated successfully")


@ecommerce_bp.route("/catalog/<int:item_id>/visibility", methods=["PATCH"])
@validate_schema(VisibilityRequest)
def update_visibility(item_id):
    item = get_item_or_404(item_id)
    data = request.validated_data
    with transactional("Failed to update visibility"):
        item.ecommerce_visibility = data.ecommerce_visibility
        if data.is_ecommerce_enabled is not None:
            item.is_ecommerce_enabled = data.is_ecommerce_enabled
        item.last_modified_by_id = g.user.id
        item.last_modified_at = datetime.utcnow()
        log_activity(
            g.user, "item_updated", "item",
            f"Set visibility of {item.name} to {item.ecommerce_visibility}", resource_id=item.id,
        )
    return ok(item.to_dict(), message="Visibility updated successfully")
