"""
Scheduled alert jobs.

Each delivery is attempted on its own; a recipient whose send fails is logged
and counted, and the remaining recipients still get their mail.
"""
import logging
from datetime import datetime
from html import escape

from flask import current_app

from models.recipient import Recipient
from app.services import reports
from app.services.notifications import send_email
from app.services.pdf import inventory_report_pdf
from app.metrics import LOW_STOCK_ITEMS, record_deliveries

logger = logging.getLogger(__name__)

LOW_STOCK_SUBJECT = "Low Stock Alert"
DAILY_REPORT_SUBJECT = "Daily Inventory Report"


def _recipient_addresses(alert_type: str):
    recipients = Recipient.query.filter_by(is_active=True).order_by(Recipient.id.asc()).all()
    addresses = [r.email for r in recipients if r.subscribes_to(alert_type)]
    if addresses:
        return addresses, False
    fallback = current_app.config.get("ALERT_FALLBACK_EMAIL") or current_app.config.get("MAIL_DEFAULT_SENDER")
    logger.info("no active recipients for %s alerts, using fallback address", alert_type)
    return ([fallback] if fallback else []), True


def _deliver(addresses, **message) -> dict:
    sent, failed = 0, 0
    for address in addresses:
        try:
            send_email(address, **message)
            sent += 1
        except Exception:
            failed += 1
            logger.error("failed to deliver %r to a recipient", message["subject"], exc_info=True)
    return {"sent": sent, "failed": failed}


def _low_stock_html(items) -> str:
    rows = "".join(
        f"<li><strong>{escape(i.name)}</strong>: Current Quantity: {i.quantity} "
        f"(Reorder Level: {i.reorder_level})</li>"
        for i in items
    )
    return (
        "<h2>Low Stock Alert</h2>"
        "<p>The following items are running low on stock:</p>"
        f"<ul>{rows}</ul>"
    )


def _low_stock_text(items) -> str:
    lines = ["The following items are running low on stock:"]
    lines += [f"- {i.name}: {i.quantity} (reorder level {i.reorder_level})" for i in items]
    return "\n".join(lines)


def check_low_stock_and_notify() -> dict:
    items = reports.low_stock_items()
    LOW_STOCK_ITEMS.set(len(items))
    if not items:
        logger.info("no low stock items found")
        return {"items": 0, "sent": 0, "failed": 0, "fallback": False}

    addresses, fallback = _recipient_addresses("low_stock")
    result = _deliver(
        addresses,
        subject=LOW_STOCK_SUBJECT,
        text=_low_stock_text(items),
        html=_low_stock_html(items),
    )
    record_deliveries("low_stock", result["sent"], result["failed"])
    logger.info(
        "low stock alert sent to %s recipient(s) for %s item(s), %s failed",
        result["sent"], len(items), result["failed"],
    )
    return {"items": len(items), "fallback": fallback, **result}


def send_daily_report() -> dict:
    pdf = inventory_report_pdf()
    filename = f"inventory-report-{datetime.utcnow():%Y-%m-%d}.pdf"
    body = "Please find attached the daily inventory report."

    addresses, fallback = _recipient_addresses("daily_report")
    result = _deliver(
        addresses,
        subject=DAILY_REPORT_SUBJECT,
        text=body,
        html=f"<p>{body}</p>",
        attachments=[(filename, "application/pdf", pdf)],
    )
    record_deliveries("daily_report", result["sent"], result["failed"])
    logger.info("daily report sent to %s recipient(s), %s failed", result["sent"], result["failed"])
    return {"filename": filename, "fallback": fallback, **result}
