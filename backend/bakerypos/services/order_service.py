# Overview: Service-layer operations for customer orders; encapsulates business logic and database work.

"""
Order Service - customer pre-orders

Lifecycle:
    pending -> in_progress -> ready -> completed
    any non-terminal state -> cancelled

Forward moves may skip steps (pending -> ready). completed and cancelled
are terminal. Re-applying the current status changes nothing, which is
what makes completion safe to call twice.

Completion handoff: the first move into completed consumes inventory for
every order line and writes a bill numbered with the order number, all in
the same transaction as the status change.
"""

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import case, func, or_, update

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Order, OrderItem
from ..money import line_total_cents
from ..time_utils import business_today, utcnow
from ..validation import normalize_cart, require_positive_cents
from . import billing_service, inventory_service
from .concurrency import lock_for_update, run_in_transaction
from .document_service import DOCUMENT_TYPE_ORDER, next_document_number

ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_IN_PROGRESS = "in_progress"
ORDER_STATUS_READY = "ready"
ORDER_STATUS_COMPLETED = "completed"
ORDER_STATUS_CANCELLED = "cancelled"

ORDER_STATUSES = (
    ORDER_STATUS_PENDING,
    ORDER_STATUS_IN_PROGRESS,
    ORDER_STATUS_READY,
    ORDER_STATUS_COMPLETED,
    ORDER_STATUS_CANCELLED,
)

# Position along the forward path; cancelled sits outside it
_PROGRESSION = {
    ORDER_STATUS_PENDING: 0,
    ORDER_STATUS_IN_PROGRESS: 1,
    ORDER_STATUS_READY: 2,
    ORDER_STATUS_COMPLETED: 3,
}

TERMINAL_STATUSES = frozenset({ORDER_STATUS_COMPLETED, ORDER_STATUS_CANCELLED})

PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_PARTIAL = "partial"
PAYMENT_STATUS_PAID = "paid"


def derive_payment_status(advance_cents: int, total_cents: int) -> str:
    if advance_cents >= total_cents:
        return PAYMENT_STATUS_PAID
    if advance_cents > 0:
        return PAYMENT_STATUS_PARTIAL
    return PAYMENT_STATUS_PENDING


def is_transition_allowed(current: str, new: str) -> bool:
    if current == new:
        return True
    if current in TERMINAL_STATUSES:
        return False
    if new == ORDER_STATUS_CANCELLED:
        return True
    return _PROGRESSION[new] > _PROGRESSION[current]


def create_order(
    customer_name: str,
    lines,
    *,
    customer_phone: str | None = None,
    order_date: date | None = None,
    delivery_date: date | None = None,
    advance_cents: int = 0,
    notes: str | None = None,
    created_by: int | None = None,
) -> Order:
    """
    Create a pending order with its priced lines.

    Raises:
        ValidationError: empty cart, bad line, missing customer, bad advance
        TransactionError: numbering or insert failed; nothing was written
    """
    customer_name = (customer_name or "").strip()
    if not customer_name:
        raise ValidationError("customer_name is required")
    normalized = normalize_cart(lines)
    if isinstance(advance_cents, bool) or not isinstance(advance_cents, int) or advance_cents < 0:
        raise ValidationError("advance_cents must be a non-negative integer")
    if order_date is None:
        order_date = business_today()
    if delivery_date is not None and delivery_date < order_date:
        raise ValidationError("delivery_date cannot be before order_date")

    def _op() -> Order:
        order_number = next_document_number(
            document_type=DOCUMENT_TYPE_ORDER,
            prefix=current_app.config.get("ORDER_NUMBER_PREFIX", "ORD"),
            business_date=order_date,
            pad=current_app.config.get("DOCUMENT_NUMBER_PAD", 4),
        )
        total = sum(line_total_cents(l["quantity"], l["unit_price_cents"]) for l in normalized)

        order = Order(
            order_number=order_number,
            customer_name=customer_name,
            customer_phone=customer_phone,
            order_date=order_date,
            delivery_date=delivery_date,
            total_cents=total,
            advance_cents=advance_cents,
            balance_cents=total - advance_cents,
            status=ORDER_STATUS_PENDING,
            payment_status=derive_payment_status(advance_cents, total),
            notes=notes,
            created_by=created_by,
        )
        db.session.add(order)
        for line in normalized:
            order.items.append(
                OrderItem(
                    item_type=line["item_type"],
                    item_id=line["item_id"],
                    item_name=line["item_name"],
                    quantity=line["quantity"],
                    unit_price_cents=line["unit_price_cents"],
                    total_price_cents=line_total_cents(line["quantity"], line["unit_price_cents"]),
                    notes=line.get("notes"),
                )
            )
        db.session.flush()
        return order

    return run_in_transaction(_op, failure_message="Failed to create order")


def _complete_order_locked(order: Order) -> None:
    """Consume inventory and synthesise the order's bill. Never commits."""
    completion_date = business_today()
    lines = [item.to_line() for item in order.items]

    inventory_service.apply_line_reductions(lines, completion_date)

    if billing_service.find_bill_by_number(order.order_number) is None:
        billing_service.prepare_bill(
            lines,
            discount_percent=0,
            payment_method="cash",
            amount_paid_cents=order.total_cents,
            cashier_id=order.created_by,
            notes=f"Order {order.order_number} ({order.customer_name})",
            update_inventory=False,
            forced_number=order.order_number,
            business_date=completion_date,
        )


def update_order_status(order_id: int, new_status: str, actor_id: int | None = None) -> Order:
    """
    Move an order along its lifecycle.

    Raises:
        ValidationError: unknown status (nothing changes)
        NotFoundError: no such order
        ConflictError: transition not allowed from the current status
        TransactionError: completion handoff failed and was rolled back
    """
    if new_status not in ORDER_STATUSES:
        raise ValidationError(
            f"Invalid status: {new_status}",
            details={"allowed": list(ORDER_STATUSES)},
        )

    def _op() -> Order:
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).populate_existing().first()
        if order is None:
            raise NotFoundError("Order not found", details={"order_id": order_id})

        current = order.status
        if current == new_status:
            return order
        if not is_transition_allowed(current, new_status):
            raise ConflictError(
                f"Cannot change order from {current} to {new_status}",
                details={"order_id": order_id, "status": current},
            )

        order.status = new_status
        if new_status == ORDER_STATUS_COMPLETED:
            order.completed_at = utcnow()
            _complete_order_locked(order)
            current_app.logger.info(
                "Order %s completed by user %s", order.order_number, actor_id
            )
        db.session.flush()
        return order

    return run_in_transaction(_op, failure_message="Failed to update order status")


def complete_order(order_id: int, actor_id: int | None = None) -> Order:
    return update_order_status(order_id, ORDER_STATUS_COMPLETED, actor_id)


def payment_update_statement(order_id: int, amount: int):
    """
    UPDATE that adds a payment to an order's advance.

    advance_cents is assigned last so every expression reading it sees the
    pre-payment value whether the database evaluates SET clauses together
    (SQLite, PostgreSQL) or left to right (MySQL).
    """
    new_advance = Order.advance_cents + amount
    return (
        update(Order)
        .where(Order.id == order_id)
        .ordered_values(
            (
                Order.payment_status,
                case(
                    (new_advance >= Order.total_cents, PAYMENT_STATUS_PAID),
                    (new_advance > 0, PAYMENT_STATUS_PARTIAL),
                    else_=PAYMENT_STATUS_PENDING,
                ),
            ),
            (Order.balance_cents, Order.total_cents - new_advance),
            (Order.version_id, Order.version_id + 1),
            (Order.advance_cents, new_advance),
        )
        .execution_options(synchronize_session=False)
    )


def add_order_payment(order_id: int, amount_cents: int) -> Order:
    """
    Add to an order's advance. The advance, balance and payment status are
    recomputed in a single UPDATE from the row's current values, so two
    concurrent payments both land. Over-payment is accepted.
    """
    amount = require_positive_cents(amount_cents)

    def _op() -> Order:
        stmt = payment_update_statement(order_id, amount)
        if not db.session.execute(stmt).rowcount:
            raise NotFoundError("Order not found", details={"order_id": order_id})
        return db.session.query(Order).filter_by(id=order_id).populate_existing().one()

    return run_in_transaction(_op, failure_message="Failed to add order payment")


# =============================================================================
# Read side
# =============================================================================

def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found", details={"order_id": order_id})
    return order


def list_orders(
    status: str | None = None,
    from_date: date | None = None,
    to_date: date | None = None,
    customer: str | None = None,
    page: int = 1,
    per_page: int | None = None,
) -> dict:
    if status is not None and status not in ORDER_STATUSES:
        raise ValidationError(f"Invalid status: {status}", details={"allowed": list(ORDER_STATUSES)})

    query = db.session.query(Order)
    if status:
        query = query.filter(Order.status == status)
    if from_date:
        query = query.filter(Order.order_date >= from_date)
    if to_date:
        query = query.filter(Order.order_date <= to_date)
    if customer:
        like = f"%{customer.strip()}%"
        query = query.filter(or_(Order.customer_name.ilike(like), Order.customer_phone.ilike(like)))

    per_page = billing_service._clamp_page_size(per_page)
    page = max(page or 1, 1)
    total = query.count()
    orders = (
        query.order_by(Order.order_date.desc(), Order.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return {
        "items": [o.to_dict() for o in orders],
        "count": total,
        "page": page,
        "per_page": per_page,
    }


def pending_orders(limit: int = 10) -> list[Order]:
    """Open orders (pending, in progress, ready), soonest delivery first."""
    return (
        db.session.query(Order)
        .filter(Order.status.in_((ORDER_STATUS_PENDING, ORDER_STATUS_IN_PROGRESS, ORDER_STATUS_READY)))
        .order_by(
            case((Order.delivery_date.is_(None), 1), else_=0),
            Order.delivery_date.asc(),
            Order.order_date.asc(),
            Order.id.asc(),
        )
        .limit(limit)
        .all()
    )


def pending_count() -> int:
    return (
        db.session.query(func.count(Order.id))
        .filter(Order.status == ORDER_STATUS_PENDING)
        .scalar()
        or 0
    )
