from contextlib import contextmanager
import logging
from models import db


@contextmanager
def transactional(message="DB transaction failed"):
    """Context manager to wrap a database transaction."""
    try:
        yield
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        # business-rule failures are expected; only log real persistence errors
        from app.errors import ServiceError
        if not isinstance(e, ServiceError):
            logging.error(f"{message}: %s", e, exc_info=True)
        raise
