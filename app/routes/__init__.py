from .auth import auth_bp
from .items import items_bp
from .suppliers import suppliers_bp
from .sales import sales_bp
from .reports import reports_bp
from .analytics import analytics_bp
from .users import users_bp
from .logs import logs_bp
from .recipients import recipients_bp
from .shop import shop_bp
from .ecommerce import ecommerce_bp


__all__ = [
    'auth_bp',
    'items_bp',
    'suppliers_bp',
    'sales_bp',
    'reports_bp',
    'analytics_bp',
    'users_bp',
    'logs_bp',
    'recipients_bp',
    'shop_bp',
    'ecommerce_bp',
]
