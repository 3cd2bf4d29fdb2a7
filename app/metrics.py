from flask import request
from prometheus_client import Histogram, Counter, Gauge
from sqlalchemy import event
import time

from models import db

# Query timings, labelled by the leading SQL keyword (select, update, ...)
DB_QUERY_DURATION = Histogram(
    "stockkeeper_db_query_duration_seconds",
    "Database query duration in seconds",
    ["statement"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5),
)

HTTP_ERRORS = Counter(
    "stockkeeper_http_errors_total",
    "Count of HTTP responses with status >= 400",
    ["endpoint", "method", "code"],
)

STOCK_CHANGES = Counter(
    "stockkeeper_stock_changes_total",
    "Manual stock adjustments by operation",
    ["operation"],
)

UNITS_SOLD = Counter(
    "stockkeeper_units_sold_total",
    "Units taken out of stock by sales",
    ["channel"],
)

ALERT_DELIVERIES = Counter(
    "stockkeeper_alert_deliveries_total",
    "Alert mails by kind and outcome",
    ["alert", "outcome"],
)

LOW_STOCK_ITEMS = Gauge(
    "stockkeeper_low_stock_items",
    "Items below their reorder level at the last low-stock check",
)


def statement_kind(statement: str) -> str:
    words = (statement or "").split(None, 1)
    return words[0].lower() if words else "unknown"


def record_deliveries(alert: str, sent: int, failed: int) -> None:
    if sent:
        ALERT_DELIVERIES.labels(alert, "sent").inc(sent)
    if failed:
        ALERT_DELIVERIES.labels(alert, "failed").inc(failed)


def init_app(app):
    """Attach metric hooks to the app and database."""

    with app.app_context():
        engine = db.engine

        @event.listens_for(engine, "before_cursor_execute")
        def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            conn.info.setdefault("_query_start_time", []).append(time.time())

        @event.listens_for(engine, "after_cursor_execute")
        def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            start = conn.info.get("_query_start_time").pop(-1)
            DB_QUERY_DURATION.labels(statement_kind(statement)).observe(time.time() - start)

    @app.after_request
    def track_errors(resp):
        if resp.status_code >= 400:
            endpoint = request.endpoint or "unknown"
            HTTP_ERRORS.labels(endpoint, request.method, resp.status_code).inc()
        return resp
