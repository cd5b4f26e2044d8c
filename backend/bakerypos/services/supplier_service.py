# Overview: Service-layer operations for suppliers; encapsulates business logic and database work.

"""
Supplier Ledger

Purchases and payments share one signed stream (supplier_payments):
- negative amount_cents: purchase / invoice (outstanding grows)
- positive amount_cents: payment made (outstanding shrinks)

outstanding = max(0, sum(|negative|) - sum(positive))

There is no invoice entity; the ledger is the single source of truth.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import case, func

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Supplier, SupplierPayment
from ..time_utils import business_today
from .concurrency import run_in_transaction


def _require_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        raise NotFoundError("Supplier not found", details={"supplier_id": supplier_id})
    return supplier


def add_supplier_payment(
    supplier_id: int,
    amount_cents: int,
    payment_date: date | None = None,
    method: str = "cash",
    reference: str | None = None,
    created_by: int | None = None,
    *,
    commit: bool = True,
) -> SupplierPayment:
    """
    Append one signed entry to a supplier's ledger.

    Args:
        supplier_id: Supplier the entry belongs to
        amount_cents: Signed amount; negative = purchase, positive = payment
        payment_date: Ledger date (defaults to today, shop time)
        method: cash, bank, cheque, ...
        reference: Free-text reference (invoice no., note)
        created_by: Acting user
        commit: False to join the caller's transaction

    Raises:
        ValidationError: amount is zero or not an integer
        NotFoundError: supplier does not exist
    """
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise ValidationError("amount_cents must be an integer number of cents")
    if amount_cents == 0:
        raise ValidationError("amount_cents must be non-zero")
    if payment_date is None:
        payment_date = business_today()

    def _op() -> SupplierPayment:
        _require_supplier(supplier_id)
        entry = SupplierPayment(
            supplier_id=supplier_id,
            amount_cents=amount_cents,
            payment_date=payment_date,
            payment_method=(method or "cash").strip(),
            reference=reference,
            created_by=created_by,
        )
        db.session.add(entry)
        db.session.flush()
        return entry

    if commit:
        return run_in_transaction(_op, failure_message="Failed to record supplier payment")
    return _op()


def record_purchase(supplier_id: int, amount_cents: int, **kwargs) -> SupplierPayment:
    """Book a purchase/invoice; stored as a negative entry."""
    return add_supplier_payment(supplier_id, -abs(amount_cents), **kwargs)


def record_payment(supplier_id: int, amount_cents: int, **kwargs) -> SupplierPayment:
    """Book a payment made to the supplier; stored as a positive entry."""
    return add_supplier_payment(supplier_id, abs(amount_cents), **kwargs)


def _totals_query():
    return db.session.query(
        func.coalesce(
            func.sum(case((SupplierPayment.amount_cents > 0, SupplierPayment.amount_cents), else_=0)), 0
        ).label("total_paid"),
        func.coalesce(
            func.sum(case((SupplierPayment.amount_cents < 0, -SupplierPayment.amount_cents), else_=0)), 0
        ).label("total_purchases"),
        func.count(SupplierPayment.id).label("entry_count"),
    )


def _balances(total_paid: int, total_purchases: int, entry_count: int) -> dict:
    return {
        "total_paid_cents": int(total_paid),
        "total_purchases_cents": int(total_purchases),
        "outstanding_cents": max(int(total_purchases) - int(total_paid), 0),
        "entry_count": int(entry_count),
    }


def outstanding_cents(supplier_id: int) -> int:
    _require_supplier(supplier_id)
    row = _totals_query().filter(SupplierPayment.supplier_id == supplier_id).one()
    return _balances(row.total_paid, row.total_purchases, row.entry_count)["outstanding_cents"]


def supplier_summary(supplier_id: int) -> dict:
    """Supplier with its ledger entries (newest first) and derived totals."""
    supplier = _require_supplier(supplier_id)
    row = _totals_query().filter(SupplierPayment.supplier_id == supplier_id).one()
    entries = (
        db.session.query(SupplierPayment)
        .filter_by(supplier_id=supplier_id)
        .order_by(SupplierPayment.payment_date.desc(), SupplierPayment.id.desc())
        .all()
    )
    data = supplier.to_dict()
    data.update(_balances(row.total_paid, row.total_purchases, row.entry_count))
    data["payments"] = [e.to_dict() for e in entries]
    return data


def list_suppliers_with_balances(include_inactive: bool = True) -> list[dict]:
    query = db.session.query(Supplier)
    if not include_inactive:
        query = query.filter(Supplier.status == "active")
    suppliers = query.order_by(Supplier.name.asc()).all()

    totals = {
        r.supplier_id: r
        for r in _totals_query()
        .add_columns(SupplierPayment.supplier_id)
        .group_by(SupplierPayment.supplier_id)
        .all()
    }

    result = []
    for supplier in suppliers:
        data = supplier.to_dict()
        row = totals.get(supplier.id)
        if row is None:
            data.update(_balances(0, 0, 0))
        else:
            data.update(_balances(row.total_paid, row.total_purchases, row.entry_count))
        result.append(data)
    return result


def list_payments(from_date: date, to_date: date) -> list[SupplierPayment]:
    if from_date > to_date:
        raise ValidationError("from_date must be on or before to_date")
    return (
        db.session.query(SupplierPayment)
        .filter(SupplierPayment.payment_date >= from_date, SupplierPayment.payment_date <= to_date)
        .order_by(SupplierPayment.payment_date.desc(), SupplierPayment.id.desc())
        .all()
    )
