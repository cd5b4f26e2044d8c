from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    contact_person = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active", index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_person": self.contact_person,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class SupplierPayment(db.Model):
    """
    One signed entry in a supplier's ledger.

    SIGN CONVENTION:
    - negative amount: purchase / invoice received (we owe more)
    - positive amount: payment made to the supplier (we owe less)

    There is no separate invoice table; outstanding is derived from the
    stream (see supplier_service.outstanding_cents).
    """
    __tablename__ = "supplier_payments"
    __table_args__ = (
        db.Index("ix_supplier_payments_supplier_date", "supplier_id", "payment_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    payment_date = db.Column(db.Date, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False, default="cash")
    reference = db.Column(db.String(255), nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    supplier = db.relationship("Supplier", backref=db.backref("payments", lazy=True))

    @property
    def entry_type(self) -> str:
        return "purchase" if self.amount_cents < 0 else "payment"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "amount_cents": self.amount_cents,
            "entry_type": self.entry_type,
            "payment_date": to_iso_date(self.payment_date),
            "payment_method": self.payment_method,
            "reference": self.reference,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
