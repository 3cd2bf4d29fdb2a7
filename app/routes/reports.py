from flask import Blueprint, request, g
from app.version import API_PREFIX
from app.services import alerts, csv_io, pdf, reports
from app.services.activity import log_activity
from app.utils import (
    ok,
    auth_required,
    permission_required,
    csv_response,
    pdf_response,
    transactional,
)

reports_bp = Blueprint("reports", __name__, url_prefix=f"{API_PREFIX}/reports")


@reports_bp.before_request
@auth_required
def _authenticate():
    """Every report needs a valid token; capabilities are checked per route."""
    return None


def _range_args():
    return request.args.get("from"), request.args.get("to")


def _log_report(description, action="report_generated"):
    with transactional("Failed to log report"):
        log_activity(g.user, action, "report", description)


@reports_bp.route("/low-stock", methods=["GET"])
@permission_required("reports:read")
def low_stock():
    return ok([i.to_dict() for i in reports.low_stock_items()])


@reports_bp.route("/low-stock/export", methods=["GET"])
@permission_required("reports:read")
def low_stock_export():
    body = csv_io.low_stock_csv(reports.low_stock_items())
    _log_report("Exported low stock report", action="csv_export")
    return csv_response(body, "low-stock-report.csv")


@reports_bp.route("/sales-summary", methods=["GET"])
@permission_required("reports:read")
def sales_summary():
    period = request.args.get("period", "daily")
    return ok(reports.sales_summary(period, *_range_args()))


@reports_bp.route("/revenue", methods=["GET"])
@permission_required("reports:read")
def revenue():
    return ok(reports.revenue_summary(*_range_args()))


@reports_bp.route("/inventory-summary", methods=["GET"])
@permission_required("reports:read")
def inventory_summary():
    return ok(reports.inventory_summary())


@reports_bp.route("/expired-products", methods=["GET"])
@permission_required("reports:read")
def expired_products():
    return ok([i.to_dict() for i in reports.expired_items()])


@reports_bp.route("/sales", methods=["GET"])
@permission_required("reports:read")
def sales():
    _, _, rows = reports.sales_in_range(*_range_args())
    return ok([s.to_dict() for s in rows])


@reports_bp.route("/sales/export", methods=["GET"])
@permission_required("reports:read")
def sales_export():
    start, end, rows = reports.sales_in_range(*_range_args())
    body = csv_io.sales_csv(rows)
    _log_report(f"Exported {len(rows)} sales to CSV", action="csv_export")
    return csv_response(body, f"sales-report-{start:%Y-%m-%d}-to-{end:%Y-%m-%d}.csv")


@reports_bp.route("/suppliers", methods=["GET"])
@permission_required("reports:read")
def suppliers():
    return ok(reports.supplier_performance())


@reports_bp.route("/suppliers/export", methods=["GET"])
@permission_required("reports:read")
def suppliers_export():
    body = csv_io.supplier_performance_csv(reports.supplier_performance())
    _log_report("Exported supplier performance report", action="csv_export")
    return csv_response(body, "supplier-performance-report.csv")


@reports_bp.route("/sales-by-category", methods=["GET"])
@permission_required("reports:read")
def sales_by_category():
    return ok(reports.sales_by_category(*_range_args()))


@reports_bp.route("/top-products", methods=["GET"])
@permission_required("reports:read")
def top_products():
    return ok(reports.top_products(*_range_args()))


@reports_bp.route("/inventory/pdf", methods=["GET"])
@permission_required("reports:read")
def inventory_pdf():
    body = pdf.inventory_report_pdf()
    _log_report("Generated inventory PDF")
    return pdf_response(body, "inventory-report.pdf")


@reports_bp.route("/sales/pdf", methods=["GET"])
@permission_required("reports:read")
def sales_pdf():
    start, end, rows = reports.sales_in_range(*_range_args())
    body = pdf.sales_report_pdf(rows, start, end)
    _log_report(f"Generated sales PDF for {len(rows)} sale(s)")
    return pdf_response(body, f"sales-report-{start:%Y-%m-%d}-to-{end:%Y-%m-%d}.pdf")


@reports_bp.route("/trigger-low-stock-check", methods=["POST"])
@permission_required("alerts:trigger")
def trigger_low_stock_check():
    result = alerts.check_low_stock_and_notify()
    return ok(result, message="Low stock check completed")


@reports_bp.route("/trigger-daily-report", methods=["POST"])
@permission_required("alerts:trigger")
def trigger_daily_report():
    result = alerts.send_daily_report()
    return ok(result, message="Daily report sent")
