from datetime import datetime
from models import db, BIGINT

ACTIONS = (
    "user_created", "user_updated", "user_deleted", "user_activated", "user_deactivated",
    "item_created", "item_updated", "item_deleted", "stock_updated",
    "sale_recorded", "sale_deleted",
    "supplier_created", "supplier_updated", "supplier_deleted",
    "report_generated", "csv_import", "csv_export",
    "login", "logout", "password_changed",
)
RESOURCE_TYPES = ("user", "item", "sale", "supplier", "report", "system")


class ActivityLog(db.Model):
    """Append-only audit trail; rows are only removed by the retention purge."""

    __tablename__ = "activity_log"
    __table_args__ = (
        db.Index("ix_activity_user_created", "user_id", "created_at"),
        db.Index("ix_activity_action_created", "action", "created_at"),
        db.Index("ix_activity_resource_created", "resource_type", "created_at"),
    )

    id = db.Column(BIGINT, primary_key=True)
    user_id = db.Column(BIGINT, nullable=False)
    username = db.Column(db.String(80), nullable=False)
    action = db.Column(db.String(40), nullable=False)
    resource_type = db.Column(db.String(20), nullable=False)
    resource_id = db.Column(BIGINT, nullable=True)
    description = db.Column(db.String(500), nullable=False)
    details = db.Column(db.JSON, nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "username": self.username,
            "action": self.action,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "description": self.description,
            "details": self.details,
            "ip_address": self.ip_address,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
