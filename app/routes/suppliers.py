from flask import Blueprint, request, g
from models import db
from models.item import Item
from models.supplier import Supplier
from app.version import API_PREFIX
from app.errors import Conflict, NotFound, ValidationError
from app.schemas.suppliers import SupplierRequest, SupplierUpdateRequest
from app.services import csv_io
from app.services.activity import log_activity
from app.routes.items import uploaded_csv_text
from app.utils import ok, auth_required, permission_required, transactional, validate_schema

suppliers_bp = Blueprint("suppliers", __name__, url_prefix=f"{API_PREFIX}/suppliers")


def _get_supplier(supplier_id) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if not supplier:
        raise NotFound("Supplier not found")
    return supplier


def _clean_products(products):
    return [p.strip() for p in products or [] if p and p.strip()]


@suppliers_bp.route("", methods=["POST"])
@auth_required
@permission_required("suppliers:write")
@validate_schema(SupplierRequest)
def create_supplier():
    data = request.validated_data
    if Supplier.query.filter_by(name=data.name).first():
        raise Conflict("Supplier name already exists")
    supplier = Supplier(
        name=data.name,
        contact=data.contact,
        email=data.email,
        address=data.address,
        products=_clean_products(data.products),
    )
    with transactional("Failed to add supplier"):
        db.session.add(supplier)
        db.session.flush()
        log_activity(g.user, "supplier_created", "supplier", f"Created supplier {supplier.name}",
                     resource_id=supplier.id)
    return ok(supplier.to_dict(), message="Supplier created", status=201)


@suppliers_bp.route("", methods=["GET"])
@auth_required
def list_suppliers():
    suppliers = Supplier.query.order_by(Supplier.name.asc()).all()
    return ok([s.to_dict() for s in suppliers])


@suppliers_bp.route("/<int:supplier_id>", methods=["PUT"])
@auth_required
@permission_required("suppliers:write")
@validate_schema(SupplierUpdateRequest)
def update_supplier(supplier_id):
    supplier = _get_supplier(supplier_id)
    changes = request.validated_data.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No fields to update")
    new_name = changes.get("name")
    if new_name and Supplier.query.filter(Supplier.name == new_name, Supplier.id != supplier.id).first():
        raise Conflict("Supplier name already exists")
    if "products" in changes:
        changes["products"] = _clean_products(changes["products"])

    with transactional("Failed to update supplier"):
        for key, value in changes.items():
            setattr(supplier, key, value)
        log_activity(g.user, "supplier_updated", "supplier", f"Updated supplier {supplier.name}",
                     resource_id=supplier.id)
    return ok(supplier.to_dict(), message="Supplier updated")


@suppliers_bp.route("/<int:supplier_id>", methods=["DELETE"])
@auth_required
@permission_required("suppliers:delete")
def delete_supplier(supplier_id):
    supplier = _get_supplier(supplier_id)
    referenced = Item.query.filter_by(supplier_id=supplier.id).count()
    if referenced:
        raise Conflict(f"Supplier is referenced by {referenced} item(s) and cannot be deleted")

    name = supplier.name
    with transactional("Failed to delete supplier"):
        db.session.delete(supplier)
        log_activity(g.user, "supplier_deleted", "supplier", f"Deleted supplier {name}",
                     resource_id=supplier_id)
    return ok(message="Supplier deleted")


@suppliers_bp.route("/import/csv", methods=["POST"])
@auth_required
@permission_required("suppliers:write")
def import_suppliers():
    results = csv_io.import_suppliers(uploaded_csv_text())
    with transactional("Failed to import suppliers"):
        log_activity(
            g.user, "csv_import", "supplier",
            f"Imported suppliers: {results['created']} created, {results['updated']} updated, "
            f"{results['failed']} failed",
        )
    return ok(results, message="Import completed")
