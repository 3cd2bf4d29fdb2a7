from datetime import datetime
from models import db, BIGINT


class Supplier(db.Model):
    __tablename__ = "supplier"

    id = db.Column(BIGINT, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False)
    contact = db.Column(db.String(120), nullable=True)
    email = db.Column(db.String(120), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    products = db.Column(db.JSON, default=list)  # free-text product names

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def summary(self):
        return {
            "id": self.id,
            "name": self.name,
            "contact": self.contact,
            "email": self.email,
        }

    def to_dict(self):
        return {
            **self.summary(),
            "address": self.address,
            "products": list(self.products or []),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
