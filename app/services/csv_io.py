import io
import logging
import math

import pandas as pd
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.item import Item, MAX_QUANTITY
from models.supplier import Supplier
from app.errors import ValidationError
from app.utils.dates import parse_datetime

logger = logging.getLogger(__name__)

ITEM_COLUMNS = ["name", "category", "quantity", "reorder_level", "price", "supplier", "sku", "expiry_date"]
LOW_STOCK_COLUMNS = ["name", "category", "quantity", "reorder_level", "supplier", "price"]
SALE_COLUMNS = ["date", "item", "category", "quantity_sold", "unit_price", "total_amount"]
SUPPLIER_COLUMNS = ["name", "contact", "email", "item_count", "low_stock_count", "total_value"]


def to_csv(rows, columns) -> str:
    return pd.DataFrame(rows, columns=columns).to_csv(index=False)


def items_csv(items) -> str:
    return to_csv([
        {
            "name": i.name,
            "category": i.category,
            "quantity": i.quantity,
            "reorder_level": i.reorder_level,
            "price": i.price,
            "supplier": i.supplier.name if i.supplier else "",
            "sku": i.sku or "",
            "expiry_date": i.expiry_date.date().isoformat() if i.expiry_date else "",
        }
        for i in items
    ], ITEM_COLUMNS)


def low_stock_csv(items) -> str:
    return to_csv([
        {
            "name": i.name,
            "category": i.category,
            "quantity": i.quantity,
            "reorder_level": i.reorder_level,
            "supplier": i.supplier.name if i.supplier else "N/A",
            "price": i.price,
        }
        for i in items
    ], LOW_STOCK_COLUMNS)


def sales_csv(sales) -> str:
    return to_csv([
        {
            "date": s.date.date().isoformat(),
            "item": s.item.name if s.item else "N/A",
            "category": s.item.category if s.item else "N/A",
            "quantity_sold": s.quantity_sold,
            "unit_price": s.unit_price,
            "total_amount": s.total_amount,
        }
        for s in sales
    ], SALE_COLUMNS)


def supplier_performance_csv(rows) -> str:
    return to_csv([
        {
            "name": r["supplier_name"],
            "contact": r["contact"],
            "email": r["email"],
            "item_count": r["item_count"],
            "low_stock_count": r["low_stock_count"],
            "total_value": r["total_value"],
        }
        for r in rows
    ], SUPPLIER_COLUMNS)


def read_csv(text: str) -> pd.DataFrame:
    if not text or not text.strip():
        raise ValidationError("Empty CSV file")
    try:
        df = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise ValidationError(f"File read error: {exc}")
    df.columns = [str(c).strip() for c in df.columns]
    if "name" not in df.columns:
        raise ValidationError("Missing columns: name")
    return df


def _cell(row, column) -> str:
    value = row.get(column, "")
    # short rows are padded with NaN even with keep_default_na off
    if value is None or pd.isna(value):
        return ""
    return str(value).strip()


def _number(value: str, column: str) -> float:
    if value == "":
        return 0
    try:
        parsed = float(value)
    except ValueError:
        raise ValidationError(f"{column} must be a number")
    if math.isinf(parsed):
        raise ValidationError(f"{column} must be a number")
    if math.isnan(parsed) or parsed < 0:
        raise ValidationError(f"{column} must be zero or greater")
    return parsed


def _count(value: str, column: str) -> int:
    number = int(_number(value, column))
    if number > MAX_QUANTITY:
        raise ValidationError(f"{column} is too large")
    return number


def _apply_item_row(row, suppliers) -> None:
    name = _cell(row, "name")
    category = _cell(row, "category")
    if not name or not category:
        raise ValidationError("missing name or category")

    fields = {
        "category": category,
        "quantity": _count(_cell(row, "quantity"), "quantity"),
        "reorder_level": _count(_cell(row, "reorder_level"), "reorder_level"),
        "price": _number(_cell(row, "price"), "price"),
    }
    supplier_name = _cell(row, "supplier").lower()
    if supplier_name and supplier_name in suppliers:
        fields["supplier_id"] = suppliers[supplier_name]
    sku = _cell(row, "sku")
    if sku:
        fields["sku"] = sku
    expiry = parse_datetime(_cell(row, "expiry_date"))
    if expiry:
        fields["expiry_date"] = expiry

    item = Item.query.filter_by(name=name).first()
    if item is None:
        item = Item(name=name)
        db.session.add(item)
    for key, value in fields.items():
        setattr(item, key, value)
    db.session.flush()


def import_items(text: str) -> dict:
    """Upsert items by name. Rows that fail are counted and skipped."""
    df = read_csv(text)
    suppliers = {s.name.lower(): s.id for s in Supplier.query.all()}
    results = {"success": 0, "failed": 0, "errors": []}

    for index, row in df.iterrows():
        try:
            with db.session.begin_nested():
                _apply_item_row(row, suppliers)
            results["success"] += 1
        except (ValidationError, SQLAlchemyError) as exc:
            results["failed"] += 1
            message = exc.message if isinstance(exc, ValidationError) else "database error"
            results["errors"].append(f"Row {index + 2}: {message}")
    logger.info("item csv import: %s ok, %s failed", results["success"], results["failed"])
    return results


def _split_products(value: str):
    return [p.strip() for p in value.replace(";", ",").split(",") if p.strip()]


def import_suppliers(text: str) -> dict:
    """Upsert suppliers by name."""
    df = read_csv(text)
    results = {"created": 0, "updated": 0, "failed": 0, "errors": []}

    for index, row in df.iterrows():
        name = _cell(row, "name")
        if not name:
            results["failed"] += 1
            results["errors"].append(f"Row {index + 2}: missing supplier name")
            continue
        try:
            with db.session.begin_nested():
                supplier = Supplier.query.filter_by(name=name).first()
                created = supplier is None
                if created:
                    supplier = Supplier(name=name)
                    db.session.add(supplier)
                supplier.contact = _cell(row, "contact") or supplier.contact
                supplier.email = _cell(row, "email") or supplier.email
                supplier.address = _cell(row, "address") or supplier.address
                products = _cell(row, "products")
                if products:
                    supplier.products = _split_products(products)
                db.session.flush()
            results["created" if created else "updated"] += 1
        except SQLAlchemyError:
            results["failed"] += 1
            results["errors"].append(f"Row {index + 2}: database error")
    logger.info(
        "supplier csv import: %s created, %s updated, %s failed",
        results["created"], results["updated"], results["failed"],
    )
    return results
