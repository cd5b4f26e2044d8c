from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Brand(db.Model):
    __tablename__ = "brands"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active", index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Brand id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Catalog product sold from the daily stock ledger.

    Prices are authoritative in cents. special_price_cents only applies
    when is_special_pricing is set and the shop clock has passed the
    configured special-price hour (see pricing_service).

    Products are never hard-deleted: bills and orders keep their own copy
    of name and price, and "delete" flips status to inactive.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_status_name", "status", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    brand_id = db.Column(db.Integer, db.ForeignKey("brands.id"), nullable=True, index=True)

    price_cents = db.Column(db.Integer, nullable=False)
    special_price_cents = db.Column(db.Integer, nullable=True)
    is_special_pricing = db.Column(db.Boolean, nullable=False, default=False)

    size = db.Column(db.String(64), nullable=True)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    brand = db.relationship("Brand", backref=db.backref("products", lazy=True))

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "brand_id": self.brand_id,
            "brand_name": self.brand.name if self.brand else None,
            "price_cents": self.price_cents,
            "special_price_cents": self.special_price_cents,
            "is_special_pricing": self.is_special_pricing,
            "size": self.size,
            "description": self.description,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockItem(db.Model):
    """
    Ad-hoc supply item (drinks, packaging, bought-in goods) with its own
    running quantity. Not tied to the per-day Stock ledger.

    quantity is adjusted only through atomic increments and is allowed to
    go negative when oversold.
    """
    __tablename__ = "stock_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)
    quantity = db.Column(db.Numeric(12, 3), nullable=False, default=0)
    unit = db.Column(db.String(16), nullable=False, default="pcs")
    is_sellable = db.Column(db.Boolean, nullable=False, default=True)
    status = db.Column(db.String(16), nullable=False, default="active", index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def __repr__(self) -> str:
        return f"<StockItem id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "unit_price_cents": self.unit_price_cents,
            "quantity": str(self.quantity) if self.quantity is not None else None,
            "unit": self.unit,
            "is_sellable": self.is_sellable,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
