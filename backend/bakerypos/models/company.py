from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Company(db.Model):
    """
    Shop profile printed on receipts.

    Single-row table: the first row (lowest id) is the profile. It is
    created with defaults the first time anything reads it.
    """
    __tablename__ = "company"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    address = db.Column(db.Text, nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    currency = db.Column(db.String(10), nullable=False, default="Rs.")
    receipt_footer = db.Column(db.String(255), nullable=True)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "currency": self.currency,
            "receipt_footer": self.receipt_footer,
            "updated_at": to_utc_z(self.updated_at),
        }
