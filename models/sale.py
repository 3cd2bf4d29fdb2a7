from datetime import datetime
from models import db, BIGINT

ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")
PAYMENT_METHODS = ("cash", "card", "upi", "wallet", "online")


class Sale(db.Model):
    __tablename__ = "sale"
    __table_args__ = (
        db.Index("ix_sale_date", "date"),
        db.Index("ix_sale_sold_by_date", "sold_by_id", "date"),
    )

    id = db.Column(BIGINT, primary_key=True)
    item_id = db.Column(BIGINT, db.ForeignKey("item.id"), nullable=False)
    quantity_sold = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Float, nullable=False)
    total_amount = db.Column(db.Float, nullable=False)
    date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    sold_by_id = db.Column(BIGINT, db.ForeignKey("user_account.id"), nullable=True)

    # Storefront order fields
    customer_name = db.Column(db.String(120), nullable=True)
    customer_contact = db.Column(db.String(50), nullable=True)
    customer_email = db.Column(db.String(120), nullable=True)
    shipping_address = db.Column(db.String(255), nullable=True)
    payment_method = db.Column(db.String(20), default="cash")
    order_status = db.Column(db.String(20), default="pending")
    tracking_number = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    item = db.relationship("Item", backref=db.backref("sales", lazy="dynamic"))
    sold_by = db.relationship("User")

    def to_dict(self):
        return {
            "id": self.id,
            "item": {
                "id": self.item.id,
                "name": self.item.name,
                "category": self.item.category,
            } if self.item else None,
            "item_id": self.item_id,
            "quantity_sold": self.quantity_sold,
            "unit_price": self.unit_price,
            "total_amount": self.total_amount,
            "date": self.date.isoformat() if self.date else None,
            "sold_by": {
                "id": self.sold_by.id,
                "username": self.sold_by.username,
                "role": self.sold_by.role,
            } if self.sold_by else None,
            "customer_name": self.customer_name,
            "customer_contact": self.customer_contact,
            "customer_email": self.customer_email,
            "shipping_address": self.shipping_address,
            "payment_method": self.payment_method,
            "order_status": self.order_status,
            "tracking_number": self.tracking_number,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
