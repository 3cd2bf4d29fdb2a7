import logging
from datetime import datetime, timedelta
from models import db
from models.activity_log import ActivityLog
from app.utils.auth import client_ip

logger = logging.getLogger(__name__)


def log_activity(user, action: str, resource_type: str, description: str,
                 resource_id=None, details=None):
    """
    Queue an audit record on the current session.

    Does NOT commit; the record lands in the same transaction as the change
    it describes.
    """
    try:
        ip = client_ip()
    except RuntimeError:
        ip = None
    entry = ActivityLog(
        user_id=user.id,
        username=user.username,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        description=description,
        details=details,
        ip_address=ip,
    )
    db.session.add(entry)
    return entry


def purge_older_than(days: int) -> int:
    cutoff = datetime.utcnow() - timedelta(days=days)
    deleted = ActivityLog.query.filter(ActivityLog.created_at < cutoff).delete(
        synchronize_session=False
    )
    logger.info("purged %s activity log entries older than %s days", deleted, days)
    return deleted
