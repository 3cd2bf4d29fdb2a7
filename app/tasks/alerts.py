import logging
from celery import shared_task
from flask import has_app_context

logger = logging.getLogger(__name__)


def _run(job):
    """Run ``job`` inside an app context; scheduled failures are logged, never raised."""
    try:
        if has_app_context():
            return job()
        from app import create_app
        with create_app().app_context():
            return job()
    except Exception as exc:
        logger.error("Scheduled job %s failed: %s", job.__name__, exc, exc_info=True)
        return None


@shared_task(name="app.tasks.alerts.low_stock_check_task")
def low_stock_check_task():
    from app.services.alerts import check_low_stock_and_notify
    logger.info("Running scheduled low stock check")
    return _run(check_low_stock_and_notify)


@shared_task(name="app.tasks.alerts.daily_report_task")
def daily_report_task():
    from app.services.alerts import send_daily_report
    logger.info("Running scheduled daily report")
    return _run(send_daily_report)
