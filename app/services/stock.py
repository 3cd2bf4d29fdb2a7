"""
Stock and sale transaction logic.

Every quantity change goes through here. Decrements are issued as a single
conditional UPDATE (``quantity >= n``) so concurrent sales against the same
item can never drive stock negative, and the decrement plus the Sale insert
share one transaction.
"""
import logging
import math
from datetime import datetime
from typing import List, Optional

from sqlalchemy import update

from models import db, to_money
from models.item import Item, MAX_QUANTITY
from models.sale import Sale, ORDER_STATUSES, PAYMENT_METHODS
from app.errors import ValidationError, NotFound, InsufficientStock
from app.metrics import STOCK_CHANGES, UNITS_SOLD
from app.services.activity import log_activity
from app.utils.db import transactional
from app.utils.dates import parse_datetime

logger = logging.getLogger(__name__)

STOCK_OPERATIONS = ("increase", "decrease", "set")


def parse_number(value, field_name: str) -> float:
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationError(f"{field_name} is required")
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if math.isnan(parsed) or math.isinf(parsed):
        raise ValidationError(f"{field_name} must be a number")
    return parsed


def parse_quantity(value) -> int:
    """Quantity sold must truncate to a positive whole number."""
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationError("Quantity sold is required")
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Quantity sold must be a valid number")
    if math.isnan(parsed) or math.isinf(parsed):
        raise ValidationError("Quantity sold must be a valid number")
    quantity = math.trunc(parsed)
    if quantity < 1:
        raise ValidationError("Quantity sold must be greater than zero")
    if quantity > MAX_QUANTITY:
        raise ValidationError("Quantity sold is too large")
    return quantity


def get_item_or_404(item_id) -> Item:
    item = db.session.get(Item, item_id)
    if not item:
        raise NotFound("Item not found")
    return item


def _decrement(item_id, quantity: int) -> None:
    """Atomically take ``quantity`` units; refuse if that would go below zero."""
    result = db.session.execute(
        update(Item)
        .where(Item.id == item_id, Item.quantity >= quantity)
        .values(quantity=Item.quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InsufficientStock("Insufficient stock for this sale")


def adjust_stock(item_id, amount, operation: str = "increase", user=None) -> Item:
    operation = operation or "increase"
    if operation not in STOCK_OPERATIONS:
        raise ValidationError("Invalid operation. Use increase, decrease, or set.")
    adjustment = math.trunc(parse_number(amount, "Adjustment amount"))
    if adjustment > MAX_QUANTITY:
        raise ValidationError("Adjustment amount is too large")

    item = get_item_or_404(item_id)
    before = item.quantity

    with transactional("Failed to adjust stock"):
        if operation == "decrease":
            if adjustment < 1:
                raise ValidationError("Adjustment amount must be at least 1")
            if item.quantity < adjustment:
                raise InsufficientStock("Cannot decrease below zero stock")
            result = db.session.execute(
                update(Item)
                .where(Item.id == item.id, Item.quantity >= adjustment)
                .values(quantity=Item.quantity - adjustment)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InsufficientStock("Cannot decrease below zero stock")
        elif operation == "increase":
            if adjustment < 1:
                raise ValidationError("Adjustment amount must be at least 1")
            if item.quantity + adjustment > MAX_QUANTITY:
                raise ValidationError("Resulting stock is too large")
            db.session.execute(
                update(Item)
                .where(Item.id == item.id)
                .values(quantity=Item.quantity + adjustment, last_restocked=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
        else:
            if adjustment < 0:
                raise ValidationError("Quantity must be zero or greater")
            db.session.execute(
                update(Item)
                .where(Item.id == item.id)
                .values(quantity=adjustment)
                .execution_options(synchronize_session=False)
            )

        db.session.refresh(item)
        if user is not None:
            item.last_modified_by_id = user.id
            item.last_modified_at = datetime.utcnow()
            log_activity(
                user,
                "stock_updated",
                "item",
                f"Stock {operation} by {adjustment} for {item.name}: {before} -> {item.quantity}",
                resource_id=item.id,
                details={"operation": operation, "amount": adjustment,
                         "before": before, "after": item.quantity},
            )

    logger.info("stock %s item=%s %s -> %s", operation, item.id, before, item.quantity)
    STOCK_CHANGES.labels(operation).inc()
    return item


def record_sale(item_id, quantity_sold, sale_date=None, user=None) -> Sale:
    quantity = parse_quantity(quantity_sold)

    if sale_date in (None, ""):
        when = datetime.utcnow()
    else:
        when = parse_datetime(sale_date)
        if when is None:
            raise ValidationError("Invalid sale date")

    item = get_item_or_404(item_id)
    if item.quantity < quantity:
        raise InsufficientStock("Insufficient stock for this sale")

    with transactional("Failed to record sale"):
        _decrement(item.id, quantity)
        sale = Sale(
            item_id=item.id,
            quantity_sold=quantity,
            unit_price=item.price,
            total_amount=to_money(item.price * quantity),
            date=when,
            sold_by_id=user.id if user is not None else None,
            payment_method="cash",
            order_status="delivered",
        )
        db.session.add(sale)
        db.session.flush()
        if user is not None:
            log_activity(
                user,
                "sale_recorded",
                "sale",
                f"Recorded sale of {quantity} x {item.name}",
                resource_id=sale.id,
                details={"item_id": item.id, "quantity": quantity,
                         "total_amount": sale.total_amount},
            )

    db.session.refresh(item)
    logger.info("sale recorded sale=%s item=%s qty=%s", sale.id, item.id, quantity)
    UNITS_SOLD.labels("pos").inc(quantity)
    return sale


def place_order(lines: List[dict], customer: dict, payment_method: Optional[str] = None) -> List[Sale]:
    """
    Storefront checkout: one Sale per line, all or nothing.

    Every line is validated before any write; the decrements and inserts then
    run in a single transaction so a late failure leaves stock untouched.
    """
    if not lines:
        raise ValidationError("No items in order")
    payment_method = payment_method or "online"
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError("Invalid payment method")

    wanted = {}
    for line in lines:
        quantity = parse_quantity(line.get("quantity"))
        product_id = line.get("product_id")
        wanted[product_id] = wanted.get(product_id, 0) + quantity

    products = {}
    for product_id, quantity in wanted.items():
        product = db.session.get(Item, product_id) if product_id is not None else None
        if not product or not product.is_ecommerce_enabled or product.ecommerce_visibility != "public":
            raise NotFound("Product not found")
        if product.quantity < quantity:
            raise InsufficientStock(
                f"Insufficient stock for {product.name}. Available: {product.quantity}"
            )
        products[product_id] = product

    sales = []
    with transactional("Failed to create order"):
        for product_id, quantity in wanted.items():
            product = products[product_id]
            _decrement(product.id, quantity)
            sale = Sale(
                item_id=product.id,
                quantity_sold=quantity,
                unit_price=product.price,
                total_amount=to_money(product.price * quantity),
                date=datetime.utcnow(),
                customer_name=customer.get("name"),
                customer_contact=customer.get("contact"),
                customer_email=customer.get("email"),
                shipping_address=customer.get("address"),
                payment_method=payment_method,
                order_status="pending",
            )
            db.session.add(sale)
            sales.append(sale)

    for product in products.values():
        db.session.refresh(product)
    logger.info("storefront order placed: %s line(s)", len(sales))
    UNITS_SOLD.labels("storefront").inc(sum(wanted.values()))
    return sales


def update_order(sale_id, order_status=None, tracking_number=None, notes=None) -> Sale:
    """Any status in the enum may be set from any other; no transition rules."""
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFound("Order not found")
    if order_status is not None and order_status not in ORDER_STATUSES:
        raise ValidationError("Invalid order status")
    with transactional("Failed to update order"):
        if order_status:
            sale.order_status = order_status
        if tracking_number:
            sale.tracking_number = tracking_number
        if notes:
            sale.notes = notes
    return sale
