from app.routes import (
    auth_bp,
    items_bp,
    suppliers_bp,
    sales_bp,
    reports_bp,
    analytics_bp,
    users_bp,
    logs_bp,
    recipients_bp,
    shop_bp,
    ecommerce_bp,
)


def register_api_v1(app):
    """Register blueprint routes under the API version prefix."""
    app.register_blueprint(auth_bp)
    app.register_blueprint(items_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(logs_bp)
    app.register_blueprint(recipients_bp)
    app.register_blueprint(shop_bp)
    app.register_blueprint(ecommerce_bp)
