"""
Read-only aggregation over sales and stock.

Nothing here writes. Money is rounded with ``to_money`` before it leaves the
module so callers never see float noise.
"""
import math
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy import func

from models import db, to_money
from models.item import Item
from models.sale import Sale
from models.supplier import Supplier
from models.user import User
from app.errors import ValidationError
from app.utils.dates import parse_datetime

PERIODS = ("daily", "weekly", "monthly")
DEFAULT_RANGE_DAYS = 30
STOCK_LEVEL_BOUNDARIES = (0, 10, 50, 100, 500, 1000)


def _parse_bound(value, label: str) -> Optional[datetime]:
    if value in (None, ""):
        return None
    parsed = parse_datetime(value)
    if parsed is None:
        raise ValidationError(f"Invalid {label} date")
    return parsed


def resolve_range(from_value=None, to_value=None, days: int = DEFAULT_RANGE_DAYS) -> Tuple[datetime, datetime]:
    """
    Turn optional ``from`` / ``to`` strings into a concrete window.

    A missing ``to`` becomes ``from + days``, a missing ``from`` becomes
    ``to - days`` and with neither the window ends now.
    """
    start = _parse_bound(from_value, "from")
    end = _parse_bound(to_value, "to")

    if start is None and end is None:
        end = datetime.utcnow()
        start = end - timedelta(days=days)
    elif start is None:
        start = end - timedelta(days=days)
    elif end is None:
        end = start + timedelta(days=days)

    if start > end:
        raise ValidationError("From date must be before to date")
    return start, end


def _months_back(moment: datetime, months: int) -> datetime:
    month_index = moment.year * 12 + moment.month - 1 - months
    year, month = divmod(month_index, 12)
    month += 1
    # clamp the day for shorter months
    day = moment.day
    while True:
        try:
            return moment.replace(year=year, month=month, day=day)
        except ValueError:
            day -= 1


def _sales_between(start: datetime, end: datetime):
    return Sale.query.filter(Sale.date >= start, Sale.date <= end)


def _low_stock_filter():
    return Item.quantity < Item.reorder_level


# ---------------------------------------------------------------------------
# Stock
# ---------------------------------------------------------------------------

def low_stock_items():
    return (
        Item.query.filter(_low_stock_filter())
        .order_by(Item.reorder_level.asc(), Item.quantity.asc(), Item.id.asc())
        .all()
    )


def expired_items():
    return (
        Item.query.filter(Item.expiry_date.isnot(None), Item.expiry_date < datetime.utcnow())
        .order_by(Item.expiry_date.asc())
        .all()
    )


def _inventory_value() -> float:
    value = db.session.query(func.coalesce(func.sum(Item.quantity * Item.price), 0)).scalar()
    return to_money(value)


def _category_rows():
    return (
        db.session.query(
            Item.category,
            func.count(Item.id),
            func.coalesce(func.sum(Item.quantity), 0),
            func.coalesce(func.sum(Item.quantity * Item.price), 0),
        )
        .group_by(Item.category)
        .all()
    )


def inventory_summary() -> dict:
    now = datetime.utcnow()
    breakdown = [
        {
            "category": category,
            "count": count,
            "total_quantity": int(quantity or 0),
            "total_value": to_money(value),
        }
        for category, count, quantity, value in _category_rows()
    ]
    breakdown.sort(key=lambda row: row["total_value"], reverse=True)
    return {
        "total_items": Item.query.count(),
        "low_stock_items": Item.query.filter(_low_stock_filter()).count(),
        "expired_items": Item.query.filter(
            Item.expiry_date.isnot(None), Item.expiry_date < now
        ).count(),
        "total_value": _inventory_value(),
        "category_breakdown": breakdown,
    }


def _stock_level_label(quantity: int) -> str:
    bounds = STOCK_LEVEL_BOUNDARIES
    for lower, upper in zip(bounds, bounds[1:]):
        if lower <= quantity < upper:
            return f"{lower}-{upper - 1}"
    return f"{bounds[-1]}+"


def stock_summary() -> dict:
    items = Item.query.order_by(Item.name.asc()).all()

    categories = OrderedDict()
    levels = OrderedDict()
    for item in items:
        stats = categories.setdefault(item.category, {
            "category": item.category, "count": 0, "total_quantity": 0,
            "total_value": 0.0, "low_stock_items": 0,
        })
        stats["count"] += 1
        stats["total_quantity"] += item.quantity
        stats["total_value"] += item.quantity * item.price
        if item.low_stock:
            stats["low_stock_items"] += 1

        bucket = levels.setdefault(_stock_level_label(item.quantity), {"count": 0, "items": []})
        bucket["count"] += 1
        bucket["items"].append(item.name)

    category_stats = sorted(categories.values(), key=lambda s: s["total_value"], reverse=True)
    for stats in category_stats:
        stats["total_value"] = to_money(stats["total_value"])

    top_items = sorted(items, key=lambda i: i.quantity * i.price, reverse=True)[:10]
    return {
        "category_stats": category_stats,
        "stock_levels": [
            {"range": label, **bucket} for label, bucket in levels.items()
        ],
        "top_items": [
            {
                "id": i.id,
                "name": i.name,
                "category": i.category,
                "quantity": i.quantity,
                "price": i.price,
                "stock_value": i.stock_value,
            }
            for i in top_items
        ],
    }


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------

def _bucket(moment: datetime, period: str):
    """Return (sort key, label) for the calendar bucket holding ``moment``."""
    if period == "weekly":
        iso_year, iso_week, _ = moment.isocalendar()
        return (iso_year, iso_week), f"Week {iso_week:02d}, {iso_year}"
    if period == "monthly":
        return (moment.year, moment.month), moment.strftime("%b %Y")
    return (moment.year, moment.month, moment.day), f"{moment.strftime('%b')} {moment.day}"


def sales_summary(period: str = "daily", from_value=None, to_value=None):
    period = period or "daily"
    if period not in PERIODS:
        raise ValidationError("Invalid period. Use daily, weekly, or monthly.")

    if not from_value and not to_value:
        end = datetime.utcnow()
        if period == "weekly":
            start = end - timedelta(weeks=8)
        elif period == "monthly":
            start = _months_back(end, 12)
        else:
            start = end - timedelta(days=7)
    else:
        start, end = resolve_range(from_value, to_value)

    buckets = {}
    for sale in _sales_between(start, end).all():
        key, label = _bucket(sale.date, period)
        entry = buckets.setdefault(key, {"period": label, "total_quantity": 0, "total_amount": 0.0})
        entry["total_quantity"] += sale.quantity_sold
        entry["total_amount"] += sale.total_amount

    summary = []
    for key in sorted(buckets):
        entry = buckets[key]
        entry["total_amount"] = to_money(entry["total_amount"])
        summary.append(entry)
    return summary


def revenue_summary(from_value=None, to_value=None) -> dict:
    start, end = resolve_range(from_value, to_value)
    revenue, quantity, count = (
        db.session.query(
            func.coalesce(func.sum(Sale.total_amount), 0),
            func.coalesce(func.sum(Sale.quantity_sold), 0),
            func.count(Sale.id),
        )
        .filter(Sale.date >= start, Sale.date <= end)
        .one()
    )
    return {
        "from": start.isoformat(),
        "to": end.isoformat(),
        "total_revenue": to_money(revenue),
        "total_quantity": int(quantity or 0),
        "order_count": count,
        "average_order_value": to_money(revenue / count) if count else 0,
    }


def sales_in_range(from_value=None, to_value=None):
    start, end = resolve_range(from_value, to_value)
    sales = _sales_between(start, end).order_by(Sale.date.desc()).all()
    return start, end, sales


def daily_report(from_value=None, to_value=None) -> dict:
    start, end = resolve_range(from_value, to_value)
    buckets = OrderedDict()
    for sale in _sales_between(start, end).order_by(Sale.date.asc()).all():
        day = sale.date.date().isoformat()
        entry = buckets.setdefault(day, {"date": day, "total_quantity": 0, "total_amount": 0.0})
        entry["total_quantity"] += sale.quantity_sold
        entry["total_amount"] += sale.total_amount
    for entry in buckets.values():
        entry["total_amount"] = to_money(entry["total_amount"])
    return {
        "range": {"from": start.isoformat(), "to": end.isoformat()},
        "data": list(buckets.values()),
    }


def _product_totals(start: datetime, end: datetime):
    return (
        db.session.query(
            Item,
            func.sum(Sale.quantity_sold),
            func.sum(Sale.total_amount),
            func.count(Sale.id),
        )
        .join(Sale, Sale.item_id == Item.id)
        .filter(Sale.date >= start, Sale.date <= end)
        .group_by(Item.id)
        .all()
    )


def top_products(from_value=None, to_value=None, limit: int = 10):
    start, end = resolve_range(from_value, to_value)
    rows = sorted(_product_totals(start, end), key=lambda r: r[2] or 0, reverse=True)[:limit]
    return [
        {
            "item_id": item.id,
            "name": item.name,
            "category": item.category,
            "total_quantity": int(quantity or 0),
            "total_revenue": to_money(revenue),
            "sales_count": count,
            "current_stock": item.quantity,
            "price": to_money(item.price),
        }
        for item, quantity, revenue, count in rows
    ]


def sales_by_category(from_value=None, to_value=None) -> dict:
    start, end = resolve_range(from_value, to_value)

    categories = {}
    for item, quantity, revenue, count in _product_totals(start, end):
        name = item.category or "Uncategorized"
        cat = categories.setdefault(name, {
            "category": name, "total_revenue": 0.0, "total_quantity": 0,
            "sales_count": 0, "products": [],
        })
        cat["total_revenue"] += revenue or 0
        cat["total_quantity"] += int(quantity or 0)
        cat["sales_count"] += count
        cat["products"].append({
            "name": item.name,
            "quantity": int(quantity or 0),
            "revenue": revenue or 0,
        })

    result = []
    for cat in sorted(categories.values(), key=lambda c: c["total_revenue"], reverse=True):
        products = sorted(cat.pop("products"), key=lambda p: p["revenue"], reverse=True)[:5]
        for product in products:
            product["revenue"] = to_money(product["revenue"])
        count = cat["sales_count"]
        cat["average_order_value"] = to_money(cat["total_revenue"] / count) if count else 0
        cat["total_revenue"] = to_money(cat["total_revenue"])
        cat["top_products"] = products
        result.append(cat)

    return {
        "date_range": {"from": start.isoformat(), "to": end.isoformat()},
        "categories": result,
        "total_categories": len(result),
    }


def _user_totals(user_id, start: datetime, end: datetime) -> dict:
    amount, quantity, transactions, products = (
        db.session.query(
            func.coalesce(func.sum(Sale.total_amount), 0),
            func.coalesce(func.sum(Sale.quantity_sold), 0),
            func.count(Sale.id),
            func.count(func.distinct(Sale.item_id)),
        )
        .filter(Sale.sold_by_id == user_id, Sale.date >= start, Sale.date <= end)
        .one()
    )
    return {
        "total_amount": to_money(amount),
        "total_quantity": int(quantity or 0),
        "transactions": transactions,
        "unique_products": products,
    }


def user_sales_summary(user_id) -> dict:
    now = datetime.utcnow()
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    today_end = today_start + timedelta(days=1) - timedelta(microseconds=1)
    month_start = today_start.replace(day=1)

    recent = (
        Sale.query.filter(Sale.sold_by_id == user_id)
        .order_by(Sale.date.desc())
        .limit(10)
        .all()
    )
    return {
        "today": _user_totals(user_id, today_start, today_end),
        "month_to_date": _user_totals(user_id, month_start, today_end),
        "recent_sales": [
            {
                "id": s.id,
                "item_name": s.item.name if s.item else "Unknown item",
                "category": s.item.category if s.item else None,
                "quantity": s.quantity_sold,
                "total_amount": to_money(s.total_amount),
                "date": s.date.isoformat(),
            }
            for s in recent
        ],
    }


def sales_analytics(days: int = 30) -> dict:
    now = datetime.utcnow()
    start = now - timedelta(days=days)

    daily = OrderedDict()
    for sale in _sales_between(start, now).order_by(Sale.date.asc()).all():
        day = sale.date.date().isoformat()
        entry = daily.setdefault(day, {"date": day, "total_amount": 0.0, "total_quantity": 0, "count": 0})
        entry["total_amount"] += sale.total_amount
        entry["total_quantity"] += sale.quantity_sold
        entry["count"] += 1
    for entry in daily.values():
        entry["total_amount"] = to_money(entry["total_amount"])

    year_start = datetime(now.year, 1, 1)
    monthly = OrderedDict()
    for sale in _sales_between(year_start, now).order_by(Sale.date.asc()).all():
        month = sale.date.strftime("%Y-%m")
        entry = monthly.setdefault(month, {"month": month, "revenue": 0.0, "count": 0})
        entry["revenue"] += sale.total_amount
        entry["count"] += 1
    for entry in monthly.values():
        entry["revenue"] = to_money(entry["revenue"])

    return {
        "daily_sales": list(daily.values()),
        "top_selling_items": top_products(start.isoformat(), now.isoformat()),
        "monthly_revenue": list(monthly.values()),
    }


def _period_totals(start: datetime, end: datetime) -> dict:
    revenue, quantity, count = (
        db.session.query(
            func.coalesce(func.sum(Sale.total_amount), 0),
            func.coalesce(func.sum(Sale.quantity_sold), 0),
            func.count(Sale.id),
        )
        .filter(Sale.date >= start, Sale.date < end)
        .one()
    )
    return {"revenue": to_money(revenue), "quantity": int(quantity or 0), "count": count}


def _growth(current: float, previous: float) -> float:
    if not previous:
        return 0
    return to_money((current - previous) / previous * 100)


def performance_insights() -> dict:
    now = datetime.utcnow()
    thirty_days_ago = now - timedelta(days=30)
    sixty_days_ago = now - timedelta(days=60)

    current = _period_totals(thirty_days_ago, now + timedelta(microseconds=1))
    previous = _period_totals(sixty_days_ago, thirty_days_ago)

    inventory_value = _inventory_value() or 1
    return {
        "current_period": current,
        "previous_period": previous,
        "growth": {
            "revenue": _growth(current["revenue"], previous["revenue"]),
            "sales": _growth(current["count"], previous["count"]),
        },
        "turnover_rate": to_money(current["revenue"] / inventory_value),
    }


# ---------------------------------------------------------------------------
# Suppliers
# ---------------------------------------------------------------------------

def supplier_performance():
    result = []
    for supplier in Supplier.query.order_by(Supplier.name.asc()).all():
        items = supplier.items.all()
        result.append({
            "supplier_id": supplier.id,
            "supplier_name": supplier.name,
            "contact": supplier.contact,
            "email": supplier.email,
            "item_count": len(items),
            "low_stock_count": sum(1 for i in items if i.low_stock),
            "total_value": to_money(sum(i.quantity * i.price for i in items)),
        })
    return result


def supplier_analytics():
    analytics = []
    for supplier in Supplier.query.order_by(Supplier.name.asc()).all():
        items = supplier.items.all()
        count = len(items)
        low = sum(1 for i in items if i.low_stock)
        analytics.append({
            "supplier_id": supplier.id,
            "name": supplier.name,
            "item_count": count,
            "low_stock_count": low,
            "total_stock_value": to_money(sum(i.quantity * i.price for i in items)),
            "average_price": to_money(sum(i.price for i in items) / count) if count else 0,
            # share of items above their reorder level
            "efficiency_score": round((count - low) / count * 100, 1) if count else 0,
        })
    analytics.sort(key=lambda a: a["efficiency_score"], reverse=True)
    return analytics


# ---------------------------------------------------------------------------
# Restocking
# ---------------------------------------------------------------------------

def reorder_suggestions(days: int = 30):
    if days < 1:
        raise ValidationError("days must be at least 1")
    since = datetime.utcnow() - timedelta(days=days)

    suggestions = []
    for item in Item.query.filter(_low_stock_filter()).all():
        sold = (
            db.session.query(func.coalesce(func.sum(Sale.quantity_sold), 0))
            .filter(Sale.item_id == item.id, Sale.date >= since)
            .scalar()
        )
        daily_average = (sold or 0) / days
        suggestions.append({
            "item_id": item.id,
            "name": item.name,
            "category": item.category,
            "current_quantity": item.quantity,
            "reorder_level": item.reorder_level,
            "supplier": item.supplier.summary() if item.supplier else None,
            "sales_velocity": to_money(daily_average),
            # 30 days of supply at the current velocity
            "suggested_reorder_quantity": math.ceil((sold or 0) * 30 / days),
            "urgency": "HIGH" if item.quantity < item.reorder_level / 2 else "MEDIUM",
        })

    suggestions.sort(key=lambda s: (s["urgency"] != "HIGH", s["current_quantity"]))
    return suggestions


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

def dashboard_stats(role: str) -> dict:
    today = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    tomorrow = today + timedelta(days=1)
    total, count = (
        db.session.query(func.coalesce(func.sum(Sale.total_amount), 0), func.count(Sale.id))
        .filter(Sale.date >= today, Sale.date < tomorrow)
        .one()
    )
    return {
        "today_sales": {"total": to_money(total), "count": count},
        "inventory": {
            "total_value": _inventory_value(),
            "total_items": Item.query.count(),
            "low_stock_count": Item.query.filter(_low_stock_filter()).count(),
            "expired_count": Item.query.filter(
                Item.expiry_date.isnot(None), Item.expiry_date < datetime.utcnow()
            ).count(),
        },
        "supplier_count": Supplier.query.count(),
        "user_count": User.query.count() if role == "admin" else None,
    }
