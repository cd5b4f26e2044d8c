from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z


class Stock(db.Model):
    """
    Daily stock ledger row: one per (product, calendar date).

    quantity         - total added for the day
    quantity_balance - remaining sellable units for the day

    Both columns move only through atomic UPDATE ... SET col = col +/- :q
    statements. Rows are never deleted; unsold perishables are zeroed with
    a clear.
    """
    __tablename__ = "stock"
    __table_args__ = (
        db.UniqueConstraint("product_id", "stock_date", name="uq_stock_product_date"),
        db.Index("ix_stock_date_balance", "stock_date", "quantity_balance"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    stock_date = db.Column(db.Date, nullable=False, index=True)

    quantity = db.Column(db.Numeric(12, 3), nullable=False, default=0)
    quantity_balance = db.Column(db.Numeric(12, 3), nullable=False, default=0)

    added_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    notes = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("stock_rows", lazy=True))

    @property
    def quantity_sold(self):
        return self.quantity - self.quantity_balance

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "stock_date": to_iso_date(self.stock_date),
            "quantity": str(self.quantity),
            "quantity_balance": str(self.quantity_balance),
            "added_by": self.added_by,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
