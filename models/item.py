# --- models/item.py ---
from datetime import datetime
from models import db, BIGINT, to_money

VISIBILITIES = ("public", "limited", "internal")
# largest value the Integer stock columns can hold
MAX_QUANTITY = 2**31 - 1


class Item(db.Model):
    __tablename__ = "item"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_item_quantity_non_negative"),
        db.Index("ix_item_category", "category"),
    )

    id = db.Column(BIGINT, primary_key=True)
    supplier_id = db.Column(BIGINT, db.ForeignKey("supplier.id"), nullable=True)

    # Core details
    name = db.Column(db.String(120), unique=True, nullable=False)
    category = db.Column(db.String(80), nullable=False)
    sku = db.Column(db.String(64), unique=True, nullable=True)
    barcode = db.Column(db.String(64), nullable=True)
    unit = db.Column(db.String(20), nullable=True)                # kg, ml, pcs
    description = db.Column(db.Text, default="")
    specifications = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Stock & pricing
    quantity = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=False, default=0)
    price = db.Column(db.Float, nullable=False, default=0.0)
    expiry_date = db.Column(db.DateTime, nullable=True)
    last_restocked = db.Column(db.DateTime, nullable=True)

    # Storefront
    images = db.Column(db.JSON, default=list)
    tags = db.Column(db.JSON, default=list)
    is_ecommerce_enabled = db.Column(db.Boolean, default=True, nullable=False)
    ecommerce_visibility = db.Column(db.String(20), default="public", nullable=False)
    ecommerce_tags = db.Column(db.JSON, default=list)

    # Audit
    last_modified_by_id = db.Column(BIGINT, db.ForeignKey("user_account.id"), nullable=True)
    last_modified_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    supplier = db.relationship("Supplier", backref=db.backref("items", lazy="dynamic"))

    @property
    def low_stock(self) -> bool:
        if self.reorder_level is None:
            return False
        return self.quantity < self.reorder_level

    @property
    def is_expired(self) -> bool:
        if not self.expiry_date:
            return False
        return datetime.utcnow() > self.expiry_date

    @property
    def stock_value(self) -> float:
        return to_money((self.quantity or 0) * (self.price or 0))

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "supplier": self.supplier.summary() if self.supplier else None,
            "supplier_id": self.supplier_id,
            "quantity": self.quantity,
            "reorder_level": self.reorder_level,
            "price": self.price,
            "sku": self.sku,
            "barcode": self.barcode,
            "unit": self.unit,
            "description": self.description,
            "specifications": self.specifications,
            "notes": self.notes,
            "images": list(self.images or []),
            "tags": list(self.tags or []),
            "is_ecommerce_enabled": self.is_ecommerce_enabled,
            "ecommerce_visibility": self.ecommerce_visibility,
            "ecommerce_tags": list(self.ecommerce_tags or []),
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "last_restocked": self.last_restocked.isoformat() if self.last_restocked else None,
            "last_modified_at": self.last_modified_at.isoformat() if self.last_modified_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "low_stock": self.low_stock,
            "is_expired": self.is_expired,
            "stock_value": self.stock_value,
        }

    def to_public_dict(self):
        """Storefront projection; internal fields are left out."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "price": self.price,
            "quantity": self.quantity,
            "sku": self.sku,
            "images": list(self.images or []),
            "ecommerce_tags": list(self.ecommerce_tags or []),
        }
