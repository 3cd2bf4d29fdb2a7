from datetime import datetime
from models import db, BIGINT

ALERT_TYPES = ("low_stock", "daily_report")


class Recipient(db.Model):
    __tablename__ = "recipient"

    id = db.Column(BIGINT, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    types = db.Column(db.JSON, default=lambda: list(ALERT_TYPES))
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def subscribes_to(self, alert_type: str) -> bool:
        return alert_type in (self.types or [])

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "types": list(self.types or []),
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
