from datetime import datetime
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from models.item import Item

TABLE_STYLE = TableStyle([
    ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
    ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
    ("FONTSIZE", (0, 0), (-1, -1), 10),
    ("ALIGN", (2, 0), (-1, -1), "RIGHT"),
    ("BOTTOMPADDING", (0, 0), (-1, 0), 8),
    ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
])


def _build(title: str, subtitle: str, rows, footer: str = None) -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        rightMargin=50,
        leftMargin=50,
        topMargin=50,
        bottomMargin=50,
        title=title,
    )
    styles = getSampleStyleSheet()
    elements = [
        Paragraph(title, styles["Title"]),
        Paragraph(subtitle, styles["Normal"]),
        Spacer(1, 16),
    ]
    table = Table(rows, repeatRows=1)
    table.setStyle(TABLE_STYLE)
    elements.append(table)
    if footer:
        elements.append(Spacer(1, 12))
        elements.append(Paragraph(footer, styles["Heading3"]))
    doc.build(elements)
    return buffer.getvalue()


def inventory_report_pdf() -> bytes:
    """Every item with category, quantity and price."""
    rows = [["Name", "Category", "Qty", "Price"]]
    for item in Item.query.order_by(Item.name.asc()).all():
        rows.append([
            item.name[:30],
            (item.category or "")[:20],
            str(item.quantity),
            f"{item.price:.2f}",
        ])
    generated = datetime.utcnow().strftime("%Y-%m-%d %H:%M UTC")
    return _build("Inventory Report", f"Generated on: {generated}", rows)


def sales_report_pdf(sales, start: datetime = None, end: datetime = None) -> bytes:
    rows = [["Date", "Item", "Qty", "Total"]]
    total_revenue = 0.0
    for sale in sales:
        rows.append([
            sale.date.strftime("%Y-%m-%d"),
            sale.item.name[:30] if sale.item else "Unknown Item",
            str(sale.quantity_sold),
            f"{sale.total_amount:.2f}",
        ])
        total_revenue += sale.total_amount
    period = "{} - {}".format(
        start.strftime("%Y-%m-%d") if start else "All Time",
        end.strftime("%Y-%m-%d") if end else "Present",
    )
    return _build("Sales Report", f"Period: {period}", rows, footer=f"Total Revenue: {total_revenue:.2f}")
