# Overview: Service-layer operations for reporting; encapsulates read-only aggregate queries.

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import func

from ..errors import ValidationError
from ..extensions import db
from ..models import Bill, BillItem, Order
from ..time_utils import business_today, to_iso_date
from .billing_service import BILL_STATUS_COMPLETED
from .order_service import pending_count


def _check_range(from_date: date, to_date: date) -> None:
    if from_date > to_date:
        raise ValidationError("from_date must be on or before to_date")


def _qty(value) -> str:
    return str(Decimal(str(value or 0)))


def daily_summary(day: date | None = None) -> dict:
    """Bill count, gross, discount, net and items sold for one business date."""
    if day is None:
        day = business_today()

    totals = (
        db.session.query(
            func.count(Bill.id).label("total_bills"),
            func.coalesce(func.sum(Bill.subtotal_cents), 0).label("gross_sales_cents"),
            func.coalesce(func.sum(Bill.discount_cents), 0).label("total_discount_cents"),
            func.coalesce(func.sum(Bill.total_cents), 0).label("net_sales_cents"),
        )
        .filter(Bill.status == BILL_STATUS_COMPLETED, Bill.business_date == day)
        .one()
    )
    items_sold = (
        db.session.query(func.sum(BillItem.quantity))
        .join(Bill, Bill.id == BillItem.bill_id)
        .filter(Bill.status == BILL_STATUS_COMPLETED, Bill.business_date == day)
        .scalar()
    )
    return {
        "date": to_iso_date(day),
        "total_bills": int(totals.total_bills),
        "gross_sales_cents": int(totals.gross_sales_cents),
        "total_discount_cents": int(totals.total_discount_cents),
        "net_sales_cents": int(totals.net_sales_cents),
        "items_sold": _qty(items_sold),
    }


def sales_by_day(from_date: date, to_date: date) -> dict:
    _check_range(from_date, to_date)

    rows = (
        db.session.query(
            Bill.business_date.label("day"),
            func.count(Bill.id).label("bills"),
            func.coalesce(func.sum(Bill.subtotal_cents), 0).label("gross_cents"),
            func.coalesce(func.sum(Bill.discount_cents), 0).label("discount_cents"),
            func.coalesce(func.sum(Bill.total_cents), 0).label("net_cents"),
        )
        .filter(
            Bill.status == BILL_STATUS_COMPLETED,
            Bill.business_date >= from_date,
            Bill.business_date <= to_date,
        )
        .group_by(Bill.business_date)
        .order_by(Bill.business_date.asc())
        .all()
    )
    daily = [
        {
            "date": to_iso_date(r.day),
            "bills": int(r.bills),
            "gross_cents": int(r.gross_cents),
            "discount_cents": int(r.discount_cents),
            "net_cents": int(r.net_cents),
        }
        for r in rows
    ]
    return {
        "from_date": to_iso_date(from_date),
        "to_date": to_iso_date(to_date),
        "summary": {
            "total_bills": sum(d["bills"] for d in daily),
            "gross_sales_cents": sum(d["gross_cents"] for d in daily),
            "total_discount_cents": sum(d["discount_cents"] for d in daily),
            "net_sales_cents": sum(d["net_cents"] for d in daily),
        },
        "daily": daily,
    }


def top_items(from_date: date, to_date: date, limit: int = 10) -> list[dict]:
    """
    Best sellers by quantity. Reads only the names and prices copied onto
    bill lines, so renamed or deactivated catalog rows report as sold.
    """
    _check_range(from_date, to_date)
    total_quantity = func.sum(BillItem.quantity)

    rows = (
        db.session.query(
            BillItem.item_type,
            BillItem.item_id,
            BillItem.item_name,
            total_quantity.label("total_quantity"),
            func.sum(BillItem.total_price_cents).label("total_revenue_cents"),
            func.count(func.distinct(BillItem.bill_id)).label("times_sold"),
        )
        .join(Bill, Bill.id == BillItem.bill_id)
        .filter(
            Bill.status == BILL_STATUS_COMPLETED,
            Bill.business_date >= from_date,
            Bill.business_date <= to_date,
        )
        .group_by(BillItem.item_type, BillItem.item_id, BillItem.item_name)
        .order_by(total_quantity.desc(), BillItem.item_name.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "item_type": r.item_type,
            "item_id": r.item_id,
            "name": r.item_name,
            "total_quantity": _qty(r.total_quantity),
            "total_revenue_cents": int(r.total_revenue_cents or 0),
            "times_sold": int(r.times_sold),
        }
        for r in rows
    ]


def order_stats(from_date: date | None = None, to_date: date | None = None) -> dict:
    """Order count and value per status, optionally limited to an order-date range."""
    query = db.session.query(
        Order.status,
        func.count(Order.id).label("count"),
        func.coalesce(func.sum(Order.total_cents), 0).label("total_value_cents"),
    )
    if from_date and to_date:
        _check_range(from_date, to_date)
    if from_date:
        query = query.filter(Order.order_date >= from_date)
    if to_date:
        query = query.filter(Order.order_date <= to_date)

    by_status = [
        {"status": r.status, "count": int(r.count), "total_value_cents": int(r.total_value_cents)}
        for r in query.group_by(Order.status).order_by(Order.status).all()
    ]
    return {
        "by_status": by_status,
        "total_orders": sum(s["count"] for s in by_status),
        "total_value_cents": sum(s["total_value_cents"] for s in by_status),
        "pending_orders": pending_count(),
    }


def dashboard() -> dict:
    today = business_today()
    month_start = today.replace(day=1)
    month = sales_by_day(month_start, today)
    return {
        "today": daily_summary(today),
        "month": {"net_sales_cents": month["summary"]["net_sales_cents"]},
        "pending_orders": pending_count(),
    }
