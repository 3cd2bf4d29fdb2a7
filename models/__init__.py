from decimal import Decimal, ROUND_HALF_UP
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import BigInteger, Integer

# Use BigInteger in production but fall back to Integer for SQLite
BIGINT = BigInteger().with_variant(Integer, "sqlite")

TWOPLACES = Decimal("0.01")

db = SQLAlchemy()


def to_money(value) -> float:
    """Round a monetary value half-up to two decimal places."""
    d = Decimal(str(value or 0))
    return float(d.quantize(TWOPLACES, rounding=ROUND_HALF_UP))


# Re-export common models for convenience
from .user import User  # noqa: F401,E402
from .supplier import Supplier  # noqa: F401,E402
from .item import Item  # noqa: F401,E402
from .sale import Sale  # noqa: F401,E402
from .recipient import Recipient  # noqa: F401,E402
from .activity_log import ActivityLog  # noqa: F401,E402
