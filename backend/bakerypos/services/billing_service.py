"""
Billing Service - atomic POS bills

WHY: A bill, its lines and the inventory it consumes must commit together
or not at all. Everything here runs inside one transaction; a failure at
any step (numbering, insert, stock update) rolls the whole bill back.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from flask import current_app

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Bill, BillItem, Product, StockItem
from ..money import line_total_cents, percent_of_cents, to_decimal
from ..time_utils import business_today, utcnow
from ..validation import ITEM_TYPE_PRODUCT, ITEM_TYPE_STOCK_ITEM, normalize_cart, require_positive_quantity
from . import company_service, inventory_service
from .concurrency import lock_for_update, run_in_transaction
from .document_service import DOCUMENT_TYPE_BILL, next_document_number
from .pricing_service import current_price_cents, snapshot_hour

BILL_STATUS_COMPLETED = "completed"
BILL_STATUS_CANCELLED = "cancelled"

DEFAULT_PAYMENT_METHOD = "cash"


def build_cart_lines(raw_items, hour: int | None = None) -> list[dict]:
    """
    Price a raw POS cart server-side.

    raw_items: [{"type": "product"|"stock_item", "id": int, "quantity": n}]

    The shop hour is captured once for the whole cart. Product lines get
    the pricing-policy price, stock-item lines the item's unit price.
    Names are copied from the catalog now so the bill keeps them even if
    the catalog changes later.
    """
    if not raw_items or not isinstance(raw_items, (list, tuple)):
        raise ValidationError("Cart is empty")
    if hour is None:
        hour = snapshot_hour()

    lines = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise ValidationError("Invalid item in cart")
        item_type = raw.get("type") or raw.get("item_type") or ITEM_TYPE_PRODUCT
        item_id = raw.get("id", raw.get("item_id"))
        if isinstance(item_id, bool) or not isinstance(item_id, int):
            raise ValidationError("Invalid item in cart", details={"item": raw})
        quantity = require_positive_quantity(raw.get("quantity"))

        if item_type == ITEM_TYPE_PRODUCT:
            product = db.session.get(Product, item_id)
            if product is None or not product.is_active:
                raise NotFoundError("Product not found", details={"product_id": item_id})
            name = product.name
            unit_price = current_price_cents(product, hour)
        elif item_type == ITEM_TYPE_STOCK_ITEM:
            item = db.session.get(StockItem, item_id)
            if item is None or not item.is_active or not item.is_sellable:
                raise NotFoundError("Stock item not found", details={"stock_item_id": item_id})
            name = item.name
            unit_price = item.unit_price_cents
        else:
            raise ValidationError(f"Unknown item type: {item_type}", details={"item": raw})

        lines.append({
            "item_type": item_type,
            "item_id": item_id,
            "item_name": name,
            "quantity": quantity,
            "unit_price_cents": unit_price,
        })
    return lines


def _validate_discount(discount_percent) -> Decimal:
    try:
        pct = to_decimal(discount_percent if discount_percent is not None else 0, field="discount_percent")
    except ValueError as exc:
        raise ValidationError(str(exc))
    if pct < 0 or pct > 100:
        raise ValidationError("discount_percent must be between 0 and 100")
    return pct


def compute_totals(lines: list[dict], discount_percent=0) -> dict:
    """subtotal, discount and total in cents for priced lines."""
    pct = _validate_discount(discount_percent)
    subtotal = sum(line_total_cents(l["quantity"], l["unit_price_cents"]) for l in lines)
    discount = percent_of_cents(subtotal, pct)
    return {
        "subtotal_cents": subtotal,
        "discount_percent": pct,
        "discount_cents": discount,
        "total_cents": subtotal - discount,
    }


def _create_bill_locked(
    lines: list[dict],
    *,
    discount_percent,
    payment_method: str,
    amount_paid_cents: int | None,
    cashier_id: int | None,
    notes: str | None,
    update_inventory: bool,
    forced_number: str | None,
    business_date: date,
) -> Bill:
    """Bill body; runs inside the caller's transaction and never commits."""
    if forced_number:
        if find_bill_by_number(forced_number) is not None:
            raise ConflictError("Bill number already used", details={"bill_number": forced_number})
        bill_number = forced_number
    else:
        bill_number = next_document_number(
            document_type=DOCUMENT_TYPE_BILL,
            prefix=current_app.config.get("BILL_NUMBER_PREFIX", "INV"),
            business_date=business_date,
            pad=current_app.config.get("DOCUMENT_NUMBER_PAD", 4),
        )

    totals = compute_totals(lines, discount_percent)
    paid = totals["total_cents"] if amount_paid_cents is None else amount_paid_cents

    bill = Bill(
        bill_number=bill_number,
        subtotal_cents=totals["subtotal_cents"],
        discount_percent=totals["discount_percent"],
        discount_cents=totals["discount_cents"],
        total_cents=totals["total_cents"],
        payment_method=payment_method,
        amount_paid_cents=paid,
        change_cents=paid - totals["total_cents"],
        cashier_id=cashier_id,
        notes=notes,
        status=BILL_STATUS_COMPLETED,
        business_date=business_date,
    )
    db.session.add(bill)

    for line in lines:
        bill.items.append(
            BillItem(
                item_type=line["item_type"],
                item_id=line["item_id"],
                item_name=line["item_name"],
                quantity=line["quantity"],
                unit_price_cents=line["unit_price_cents"],
                total_price_cents=line_total_cents(line["quantity"], line["unit_price_cents"]),
            )
        )

    # Surfaces a duplicate bill_number before any stock moves
    db.session.flush()

    if update_inventory:
        inventory_service.apply_line_reductions(lines, business_date)

    return bill


def prepare_bill(
    lines,
    *,
    discount_percent=0,
    payment_method: str = DEFAULT_PAYMENT_METHOD,
    amount_paid_cents: int | None = None,
    cashier_id: int | None = None,
    notes: str | None = None,
    update_inventory: bool = True,
    forced_number: str | None = None,
    business_date: date | None = None,
) -> Bill:
    """
    Validate and write a bill into the current transaction without
    committing. Used by create_bill and by order completion, which needs
    the bill inside its own transaction.
    """
    normalized = normalize_cart(lines)
    _validate_discount(discount_percent)
    payment_method = (payment_method or DEFAULT_PAYMENT_METHOD).strip()
    if amount_paid_cents is not None and (
        isinstance(amount_paid_cents, bool) or not isinstance(amount_paid_cents, int) or amount_paid_cents < 0
    ):
        raise ValidationError("amount_paid_cents must be a non-negative integer")

    return _create_bill_locked(
        normalized,
        discount_percent=discount_percent,
        payment_method=payment_method,
        amount_paid_cents=amount_paid_cents,
        cashier_id=cashier_id,
        notes=notes,
        update_inventory=update_inventory,
        forced_number=forced_number,
        business_date=business_date or business_today(),
    )


def create_bill(
    lines,
    *,
    discount_percent=0,
    payment_method: str = DEFAULT_PAYMENT_METHOD,
    amount_paid_cents: int | None = None,
    cashier_id: int | None = None,
    notes: str | None = None,
    update_inventory: bool = True,
    forced_number: str | None = None,
    business_date: date | None = None,
) -> Bill:
    """
    Create a completed bill from priced lines as one atomic unit.

    Lines: [{"item_type", "item_id", "item_name", "quantity", "unit_price_cents"}]
    Prices must already reflect the pricing policy (see build_cart_lines).

    Raises:
        ValidationError / NotFoundError / ConflictError: nothing was written
        TransactionError: the unit failed and was rolled back
    """
    normalize_cart(lines)
    _validate_discount(discount_percent)
    return run_in_transaction(
        lambda: prepare_bill(
            lines,
            discount_percent=discount_percent,
            payment_method=payment_method,
            amount_paid_cents=amount_paid_cents,
            cashier_id=cashier_id,
            notes=notes,
            update_inventory=update_inventory,
            forced_number=forced_number,
            business_date=business_date,
        ),
        failure_message="Failed to create bill",
    )


def cancel_bill(bill_id: int, *, restore_inventory: bool = False) -> Bill:
    """
    Mark a completed bill cancelled.

    Consumed inventory stays consumed unless restore_inventory is set, in
    which case every line is added back to the bill date's stock row or to
    the stock item's running quantity.
    """
    def _op() -> Bill:
        bill = lock_for_update(db.session.query(Bill).filter_by(id=bill_id)).first()
        if bill is None:
            raise NotFoundError("Bill not found", details={"bill_id": bill_id})
        if bill.status == BILL_STATUS_CANCELLED:
            raise ConflictError("Bill is already cancelled", details={"bill_id": bill_id})

        bill.status = BILL_STATUS_CANCELLED
        bill.cancelled_at = utcnow()

        if restore_inventory:
            inventory_service.restore_line_quantities(
                [
                    {"item_type": i.item_type, "item_id": i.item_id, "quantity": i.quantity}
                    for i in bill.items
                ],
                bill.business_date,
            )
        return bill

    return run_in_transaction(_op, failure_message="Failed to cancel bill")


def get_bill(bill_id: int) -> Bill:
    bill = db.session.get(Bill, bill_id)
    if bill is None:
        raise NotFoundError("Bill not found", details={"bill_id": bill_id})
    return bill


def find_bill_by_number(bill_number: str) -> Bill | None:
    return db.session.query(Bill).filter_by(bill_number=bill_number).first()


def list_bills(
    from_date: date,
    to_date: date,
    page: int = 1,
    per_page: int | None = None,
) -> dict:
    """Completed bills in a business-date range, newest first, paginated."""
    if from_date > to_date:
        raise ValidationError("from_date must be on or before to_date")
    per_page = _clamp_page_size(per_page)
    page = max(page or 1, 1)

    query = db.session.query(Bill).filter(
        Bill.status == BILL_STATUS_COMPLETED,
        Bill.business_date >= from_date,
        Bill.business_date <= to_date,
    )
    total = query.count()
    bills = (
        query.order_by(Bill.created_at.desc(), Bill.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return {
        "items": [b.to_dict() for b in bills],
        "count": total,
        "page": page,
        "per_page": per_page,
    }


def receipt_data(bill_id: int) -> dict:
    """Reprint payload, headed and footed with the shop profile."""
    bill = get_bill(bill_id)
    return {
        "bill": bill.to_dict(include_items=True),
        "print_data": {
            "company": company_service.receipt_header(),
            "bill_number": bill.bill_number,
            "date": bill.business_date.strftime("%d/%m/%Y"),
            "items": [i.to_dict() for i in bill.items],
            "subtotal_cents": bill.subtotal_cents,
            "discount_cents": bill.discount_cents,
            "total_cents": bill.total_cents,
            "payment_method": bill.payment_method,
        },
    }


def _clamp_page_size(per_page: int | None) -> int:
    default = current_app.config.get("DEFAULT_PAGE_SIZE", 10)
    maximum = current_app.config.get("MAX_PAGE_SIZE", 100)
    if not per_page or per_page < 1:
        return default
    return min(per_page, maximum)
