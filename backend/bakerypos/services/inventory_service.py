# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/bakerypos/services/inventory_service.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from flask import current_app
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, Stock, StockItem
from ..time_utils import business_today
from ..validation import ITEM_TYPE_PRODUCT, ITEM_TYPE_STOCK_ITEM, require_positive_quantity
from .concurrency import run_in_transaction
"""
Bakery Inventory Invariants (authoritative)

Two ledgers:
- Stock: one row per (product, shop-local date). quantity is everything
  added that day, quantity_balance what is left to sell.
- StockItem.quantity: a running total with no date dimension.

Mutation rules:
- Every change is pushed down to UPDATE ... SET col = col +/- :q. No
  read-modify-write in Python, so concurrent reductions never lose a
  decrement.
- Reductions have no floor. Overselling drives balances negative; this is
  logged, not refused.
- Reducing a product with no stock row for the date changes nothing.
- Stock rows are never deleted; clearing sets quantity_balance to 0.

Transactions:
- Functions taking commit=False only flush into the caller's transaction
  (billing, order completion). With commit=True they run as their own
  atomic unit.
"""


def _run(op, *, commit: bool, failure_message: str):
    if commit:
        return run_in_transaction(op, failure_message=failure_message)
    return op()


def _require_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def _require_stock_item(stock_item_id: int) -> StockItem:
    item = db.session.get(StockItem, stock_item_id)
    if item is None:
        raise NotFoundError("Stock item not found", details={"stock_item_id": stock_item_id})
    return item


def get_stock_row(product_id: int, stock_date: date) -> Stock | None:
    return (
        db.session.query(Stock)
        .filter_by(product_id=product_id, stock_date=stock_date)
        .populate_existing()
        .first()
    )


def get_balance(product_id: int, stock_date: date) -> Decimal:
    value = (
        db.session.query(Stock.quantity_balance)
        .filter_by(product_id=product_id, stock_date=stock_date)
        .scalar()
    )
    return value if value is not None else Decimal("0")


def _increment_stock_row(product_id: int, stock_date: date, qty: Decimal) -> bool:
    stmt = (
        update(Stock)
        .where(Stock.product_id == product_id, Stock.stock_date == stock_date)
        .values(
            quantity=Stock.quantity + qty,
            quantity_balance=Stock.quantity_balance + qty,
        )
        .execution_options(synchronize_session=False)
    )
    return bool(db.session.execute(stmt).rowcount)


def add_stock(
    product_id: int,
    quantity,
    stock_date: date | None = None,
    *,
    added_by: int | None = None,
    notes: str | None = None,
    commit: bool = True,
) -> Stock:
    """
    Add units to a product's stock for a date.

    Existing (product, date) rows grow both quantity and quantity_balance;
    otherwise a new row starts with quantity == quantity_balance == q.
    """
    qty = require_positive_quantity(quantity)
    if stock_date is None:
        stock_date = business_today()

    def _op() -> Stock:
        _require_product(product_id)
        if not _increment_stock_row(product_id, stock_date, qty):
            try:
                with db.session.begin_nested():
                    db.session.add(
                        Stock(
                            product_id=product_id,
                            stock_date=stock_date,
                            quantity=qty,
                            quantity_balance=qty,
                            added_by=added_by,
                            notes=notes,
                        )
                    )
            except IntegrityError:
                # Another request created today's row first
                if not _increment_stock_row(product_id, stock_date, qty):
                    raise
        return get_stock_row(product_id, stock_date)

    return _run(_op, commit=commit, failure_message="Failed to add stock")


def reduce_stock(product_id: int, quantity, stock_date: date, *, commit: bool = False) -> None:
    """Decrement the day's sellable balance. No floor check."""
    qty = require_positive_quantity(quantity)

    def _op() -> None:
        stmt = (
            update(Stock)
            .where(Stock.product_id == product_id, Stock.stock_date == stock_date)
            .values(quantity_balance=Stock.quantity_balance - qty)
            .execution_options(synchronize_session=False)
        )
        if not db.session.execute(stmt).rowcount:
            current_app.logger.warning(
                "No stock row for product %s on %s; reduction of %s not recorded",
                product_id, stock_date, qty,
            )
            return
        balance = get_balance(product_id, stock_date)
        if balance < 0:
            current_app.logger.warning(
                "Product %s oversold on %s (balance %s)", product_id, stock_date, balance
            )

    return _run(_op, commit=commit, failure_message="Failed to reduce stock")


def clear_stock_balance(stock_id: int) -> Stock:
    """Force a stock row's remaining balance to zero (unsold perishables)."""
    def _op() -> Stock:
        row = db.session.get(Stock, stock_id)
        if row is None:
            raise NotFoundError("Stock entry not found", details={"stock_id": stock_id})
        db.session.execute(
            update(Stock)
            .where(Stock.id == stock_id)
            .values(quantity_balance=0)
            .execution_options(synchronize_session=False)
        )
        db.session.refresh(row)
        return row

    return run_in_transaction(_op, failure_message="Failed to clear stock")


def clear_day(stock_date: date) -> int:
    """Zero every positive balance for a date. Returns rows cleared."""
    def _op() -> int:
        result = db.session.execute(
            update(Stock)
            .where(Stock.stock_date == stock_date, Stock.quantity_balance > 0)
            .values(quantity_balance=0)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    return run_in_transaction(_op, failure_message="Failed to clear day stock")


def _adjust_stock_item(stock_item_id: int, delta: Decimal) -> None:
    stmt = (
        update(StockItem)
        .where(StockItem.id == stock_item_id)
        .values(quantity=StockItem.quantity + delta)
        .execution_options(synchronize_session=False)
    )
    if not db.session.execute(stmt).rowcount:
        raise NotFoundError("Stock item not found", details={"stock_item_id": stock_item_id})


def add_stock_item_quantity(stock_item_id: int, quantity, *, commit: bool = True) -> None:
    qty = require_positive_quantity(quantity)
    return _run(
        lambda: _adjust_stock_item(stock_item_id, qty),
        commit=commit,
        failure_message="Failed to add stock item quantity",
    )


def reduce_stock_item_quantity(stock_item_id: int, quantity, *, commit: bool = False) -> None:
    qty = require_positive_quantity(quantity)

    def _op() -> None:
        _adjust_stock_item(stock_item_id, -qty)
        remaining = (
            db.session.query(StockItem.quantity).filter_by(id=stock_item_id).scalar()
        )
        if remaining is not None and remaining < 0:
            current_app.logger.warning(
                "Stock item %s oversold (quantity %s)", stock_item_id, remaining
            )

    return _run(_op, commit=commit, failure_message="Failed to reduce stock item quantity")


def restock_stock_item(
    stock_item_id: int,
    quantity,
    *,
    supplier_id: int | None = None,
    total_cents: int | None = None,
    paid_cents: int = 0,
    note: str | None = None,
    created_by: int | None = None,
) -> StockItem:
    """
    Receive more of a stock item, optionally booking the purchase against a
    supplier in the same transaction: the invoice total as a negative
    ledger entry and any amount paid now as a positive one.
    """
    from . import supplier_service

    qty = require_positive_quantity(quantity)
    if total_cents is not None and (isinstance(total_cents, bool) or not isinstance(total_cents, int)):
        raise ValidationError("total_cents must be an integer number of cents")
    if isinstance(paid_cents, bool) or not isinstance(paid_cents, int) or paid_cents < 0:
        raise ValidationError("paid_cents must be a non-negative integer")

    def _op() -> StockItem:
        item = _require_stock_item(stock_item_id)
        _adjust_stock_item(stock_item_id, qty)

        if supplier_id and total_cents is not None:
            purchase_note = note or f"{item.name} purchase"
            supplier_service.record_purchase(
                supplier_id,
                abs(total_cents),
                reference=purchase_note,
                created_by=created_by,
                commit=False,
            )
            if paid_cents > 0:
                supplier_service.record_payment(
                    supplier_id,
                    paid_cents,
                    reference=f"Payment for {purchase_note}",
                    created_by=created_by,
                    commit=False,
                )

        db.session.refresh(item)
        return item

    return run_in_transaction(_op, failure_message="Failed to restock stock item")


def apply_line_reductions(lines, stock_date: date) -> None:
    """
    Consume inventory for priced lines: product lines against the day's
    Stock row, stock_item lines against the running quantity.
    """
    for line in lines:
        if line["item_type"] == ITEM_TYPE_PRODUCT:
            reduce_stock(line["item_id"], line["quantity"], stock_date)
        elif line["item_type"] == ITEM_TYPE_STOCK_ITEM:
            reduce_stock_item_quantity(line["item_id"], line["quantity"])
        else:
            raise ValidationError(f"Unknown item type: {line['item_type']}")


def restore_line_quantities(lines, stock_date: date) -> None:
    """Inverse of apply_line_reductions (bill cancellation with restore)."""
    for line in lines:
        qty = require_positive_quantity(line["quantity"])
        if line["item_type"] == ITEM_TYPE_PRODUCT:
            result = db.session.execute(
                update(Stock)
                .where(Stock.product_id == line["item_id"], Stock.stock_date == stock_date)
                .values(quantity_balance=Stock.quantity_balance + qty)
                .execution_options(synchronize_session=False)
            )
            if not result.rowcount:
                current_app.logger.warning(
                    "No stock row for product %s on %s; restore of %s skipped",
                    line["item_id"], stock_date, qty,
                )
        elif line["item_type"] == ITEM_TYPE_STOCK_ITEM:
            _adjust_stock_item(line["item_id"], qty)


# =============================================================================
# Read side
# =============================================================================

def list_stock_for_date(stock_date: date | None = None, *, only_available: bool = False) -> list[Stock]:
    if stock_date is None:
        stock_date = business_today()
    query = db.session.query(Stock).filter(Stock.stock_date == stock_date)
    if only_available:
        query = query.filter(Stock.quantity_balance > 0)
    return query.order_by(Stock.created_at.desc(), Stock.id.desc()).all()


def product_stock_history(product_id: int, limit: int = 30) -> list[Stock]:
    _require_product(product_id)
    return (
        db.session.query(Stock)
        .filter_by(product_id=product_id)
        .order_by(Stock.stock_date.desc())
        .limit(limit)
        .all()
    )


def stock_report(from_date: date, to_date: date) -> list[dict]:
    """Per product: total added, sold and remaining across a date range."""
    if from_date > to_date:
        raise ValidationError("from_date must be on or before to_date")

    rows = (
        db.session.query(
            Product.id,
            Product.name,
            func.sum(Stock.quantity).label("total_added"),
            func.sum(Stock.quantity - Stock.quantity_balance).label("total_sold"),
            func.sum(Stock.quantity_balance).label("total_remaining"),
        )
        .join(Stock, Stock.product_id == Product.id)
        .filter(Stock.stock_date >= from_date, Stock.stock_date <= to_date)
        .group_by(Product.id, Product.name)
        .order_by(Product.name)
        .all()
    )
    return [
        {
            "product_id": r.id,
            "product_name": r.name,
            "total_added": str(Decimal(str(r.total_added or 0))),
            "total_sold": str(Decimal(str(r.total_sold or 0))),
            "total_remaining": str(Decimal(str(r.total_remaining or 0))),
        }
        for r in rows
    ]


def low_stock_items(threshold=None) -> list[StockItem]:
    if threshold is None:
        threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 10)
    return (
        db.session.query(StockItem)
        .filter(StockItem.status == "active", StockItem.quantity <= threshold)
        .order_by(StockItem.quantity.asc())
        .all()
    )
