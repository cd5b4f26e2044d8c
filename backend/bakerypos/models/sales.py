from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z


class Bill(db.Model):
    """
    POS bill. Created already completed; the only later transition is
    completed -> cancelled.

    bill_number is unique: it is either the daily INV sequence or, for
    bills synthesised from a completed order, the order's own number.
    """
    __tablename__ = "bills"
    __table_args__ = (
        db.UniqueConstraint("bill_number", name="uq_bills_bill_number"),
        db.Index("ix_bills_status_business_date", "status", "business_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable document number (e.g., "INV-202410190007")
    bill_number = db.Column(db.String(64), nullable=False)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(32), nullable=False, default="cash")
    amount_paid_cents = db.Column(db.Integer, nullable=False)
    change_cents = db.Column(db.Integer, nullable=False, default=0)

    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    notes = db.Column(db.String(255), nullable=True)

    # completed | cancelled
    status = db.Column(db.String(16), nullable=False, default="completed")

    # Shop-local calendar date the bill belongs to (stock and reports key on it)
    business_date = db.Column(db.Date, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    cashier = db.relationship("User", foreign_keys=[cashier_id])
    items = db.relationship(
        "BillItem",
        backref="bill",
        lazy=True,
        order_by="BillItem.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "bill_number": self.bill_number,
            "subtotal_cents": self.subtotal_cents,
            "discount_percent": str(self.discount_percent),
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "payment_method": self.payment_method,
            "amount_paid_cents": self.amount_paid_cents,
            "change_cents": self.change_cents,
            "cashier_id": self.cashier_id,
            "cashier_name": self.cashier.display_name if self.cashier else None,
            "notes": self.notes,
            "status": self.status,
            "business_date": to_iso_date(self.business_date),
            "created_at": to_utc_z(self.created_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class BillItem(db.Model):
    """
    Bill line. Name and unit price are copied at sale time so historical
    bills never depend on the live catalog row.
    """
    __tablename__ = "bill_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    bill_id = db.Column(db.Integer, db.ForeignKey("bills.id"), nullable=False, index=True)

    # product | stock_item
    item_type = db.Column(db.String(16), nullable=False)
    item_id = db.Column(db.Integer, nullable=False)
    item_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bill_id": self.bill_id,
            "item_type": self.item_type,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "quantity": str(self.quantity),
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
        }
