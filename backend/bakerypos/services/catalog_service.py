# Overview: Service-layer operations for the catalog; encapsulates business logic and database work.

"""
Catalog Service

Brands, products, stock items and suppliers.

SOFT DELETE: rows are never removed. Deactivation flips status to
inactive; inactive rows drop out of active listings and POS carts but
remain referenceable by historical bills, orders and ledger entries.
"""

from __future__ import annotations

from sqlalchemy import and_

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Brand, Product, Stock, StockItem, Supplier
from ..time_utils import business_today
from ..validation import (
    ModelValidationPolicy,
    STATUS_ACTIVE,
    STATUS_INACTIVE,
    enforce_rules_product,
    enforce_rules_record,
    enforce_rules_stock_item,
    validate_payload,
)
from .concurrency import run_in_transaction
from .pricing_service import current_price_cents, is_special_active, snapshot_hour

BRAND_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "status"},
    required_on_create={"name"},
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "brand_id",
        "price_cents",
        "special_price_cents",
        "is_special_pricing",
        "size",
        "description",
        "status",
    },
    required_on_create={"name", "price_cents"},
)

# quantity is only settable on create; afterwards it moves through inventory_service
STOCK_ITEM_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "unit_price_cents", "quantity", "unit", "is_sellable", "status"},
    required_on_create={"name", "unit_price_cents"},
)
STOCK_ITEM_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "unit_price_cents", "unit", "is_sellable", "status"},
)

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_person", "phone", "email", "address", "status"},
    required_on_create={"name"},
)


def _get_or_404(model, obj_id: int, label: str):
    obj = db.session.get(model, obj_id)
    if obj is None:
        raise NotFoundError(f"{label} not found", details={"id": obj_id})
    return obj


def _apply_patch(obj, patch: dict) -> None:
    for k, v in patch.items():
        setattr(obj, k, v)


def _deactivate(model, obj_id: int, label: str):
    def _op():
        obj = _get_or_404(model, obj_id, label)
        obj.status = STATUS_INACTIVE
        db.session.flush()
        return obj

    return run_in_transaction(_op, failure_message=f"Failed to deactivate {label.lower()}")


# =============================================================================
# Brands
# =============================================================================

def list_brands(include_inactive: bool = False) -> list[Brand]:
    query = db.session.query(Brand)
    if not include_inactive:
        query = query.filter(Brand.status == STATUS_ACTIVE)
    return query.order_by(Brand.name.asc()).all()


def create_brand(payload: dict) -> Brand:
    patch = validate_payload(model=Brand, payload=payload, policy=BRAND_POLICY, partial=False)
    enforce_rules_record(patch)

    def _op() -> Brand:
        if db.session.query(Brand.id).filter(Brand.name == patch["name"]).first():
            raise ConflictError("Brand name already exists", details={"name": patch["name"]})
        brand = Brand()
        _apply_patch(brand, patch)
        db.session.add(brand)
        db.session.flush()
        return brand

    return run_in_transaction(_op, failure_message="Failed to create brand")


def update_brand(brand_id: int, payload: dict) -> Brand:
    patch = validate_payload(model=Brand, payload=payload, policy=BRAND_POLICY, partial=True)
    enforce_rules_record(patch)

    def _op() -> Brand:
        brand = _get_or_404(Brand, brand_id, "Brand")
        if "name" in patch:
            clash = (
                db.session.query(Brand.id)
                .filter(Brand.name == patch["name"], Brand.id != brand_id)
                .first()
            )
            if clash:
                raise ConflictError("Brand name already exists", details={"name": patch["name"]})
        _apply_patch(brand, patch)
        db.session.flush()
        return brand

    return run_in_transaction(_op, failure_message="Failed to update brand")


def deactivate_brand(brand_id: int) -> Brand:
    return _deactivate(Brand, brand_id, "Brand")


# =============================================================================
# Products
# =============================================================================

def _check_product_pricing(product: Product) -> None:
    if product.is_special_pricing and product.special_price_cents is None:
        raise ValidationError("special_price_cents is required when is_special_pricing is set")


def _check_brand(patch: dict) -> None:
    brand_id = patch.get("brand_id")
    if brand_id is not None and db.session.get(Brand, brand_id) is None:
        raise NotFoundError("Brand not found", details={"brand_id": brand_id})


def list_products(
    *,
    include_inactive: bool = False,
    brand_id: int | None = None,
    search: str | None = None,
) -> list[Product]:
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.status == STATUS_ACTIVE)
    if brand_id is not None:
        query = query.filter(Product.brand_id == brand_id)
    if search:
        query = query.filter(Product.name.ilike(f"%{search.strip()}%"))
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_id: int) -> Product:
    return _get_or_404(Product, product_id, "Product")


def create_product(payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    def _op() -> Product:
        _check_brand(patch)
        product = Product(is_special_pricing=False, status=STATUS_ACTIVE)
        _apply_patch(product, patch)
        _check_product_pricing(product)
        db.session.add(product)
        db.session.flush()
        return product

    return run_in_transaction(_op, failure_message="Failed to create product")


def update_product(product_id: int, payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    def _op() -> Product:
        product = _get_or_404(Product, product_id, "Product")
        _check_brand(patch)
        _apply_patch(product, patch)
        _check_product_pricing(product)
        db.session.flush()
        return product

    return run_in_transaction(_op, failure_message="Failed to update product")


def deactivate_product(product_id: int) -> Product:
    return _deactivate(Product, product_id, "Product")


# =============================================================================
# Stock items
# =============================================================================

def list_stock_items(*, include_inactive: bool = False, sellable_only: bool = False) -> list[StockItem]:
    query = db.session.query(StockItem)
    if not include_inactive:
        query = query.filter(StockItem.status == STATUS_ACTIVE)
    if sellable_only:
        query = query.filter(StockItem.is_sellable.is_(True))
    return query.order_by(StockItem.name.asc()).all()


def create_stock_item(
    payload: dict,
    *,
    supplier_id: int | None = None,
    total_cents: int | None = None,
    paid_cents: int = 0,
    note: str | None = None,
    created_by: int | None = None,
) -> StockItem:
    """
    Create a stock item. When supplier_id and total_cents are given the
    purchase is booked on the supplier ledger in the same transaction,
    with an immediate payment entry if paid_cents > 0.
    """
    from . import supplier_service

    patch = validate_payload(model=StockItem, payload=payload, policy=STOCK_ITEM_CREATE_POLICY, partial=False)
    enforce_rules_stock_item(patch)
    if total_cents is not None and (isinstance(total_cents, bool) or not isinstance(total_cents, int)):
        raise ValidationError("total_cents must be an integer number of cents")
    if isinstance(paid_cents, bool) or not isinstance(paid_cents, int) or paid_cents < 0:
        raise ValidationError("paid_cents must be a non-negative integer")

    def _op() -> StockItem:
        item = StockItem(quantity=0, unit="pcs", is_sellable=True, status=STATUS_ACTIVE)
        _apply_patch(item, patch)
        db.session.add(item)
        db.session.flush()

        if supplier_id and total_cents is not None:
            purchase_note = note or "Stock item purchase"
            supplier_service.record_purchase(
                supplier_id, abs(total_cents), reference=purchase_note, created_by=created_by, commit=False
            )
            if paid_cents > 0:
                supplier_service.record_payment(
                    supplier_id,
                    paid_cents,
                    reference=f"Payment for {purchase_note}",
                    created_by=created_by,
                    commit=False,
                )
        return item

    return run_in_transaction(_op, failure_message="Failed to create stock item")


def update_stock_item(stock_item_id: int, payload: dict) -> StockItem:
    patch = validate_payload(model=StockItem, payload=payload, policy=STOCK_ITEM_UPDATE_POLICY, partial=True)
    enforce_rules_stock_item(patch)

    def _op() -> StockItem:
        item = _get_or_404(StockItem, stock_item_id, "Stock item")
        _apply_patch(item, patch)
        db.session.flush()
        return item

    return run_in_transaction(_op, failure_message="Failed to update stock item")


def deactivate_stock_item(stock_item_id: int) -> StockItem:
    return _deactivate(StockItem, stock_item_id, "Stock item")


# =============================================================================
# Suppliers
# =============================================================================

def create_supplier(payload: dict) -> Supplier:
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
    enforce_rules_record(patch)

    def _op() -> Supplier:
        supplier = Supplier(status=STATUS_ACTIVE)
        _apply_patch(supplier, patch)
        db.session.add(supplier)
        db.session.flush()
        return supplier

    return run_in_transaction(_op, failure_message="Failed to create supplier")


def update_supplier(supplier_id: int, payload: dict) -> Supplier:
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
    enforce_rules_record(patch)

    def _op() -> Supplier:
        supplier = _get_or_404(Supplier, supplier_id, "Supplier")
        _apply_patch(supplier, patch)
        db.session.flush()
        return supplier

    return run_in_transaction(_op, failure_message="Failed to update supplier")


def deactivate_supplier(supplier_id: int) -> Supplier:
    return _deactivate(Supplier, supplier_id, "Supplier")


# =============================================================================
# POS
# =============================================================================

def pos_items(hour: int | None = None) -> dict:
    """
    Everything sellable right now: active products with today's balance and
    the price in force at `hour`, plus sellable stock items.
    """
    if hour is None:
        hour = snapshot_hour()
    today = business_today()

    rows = (
        db.session.query(Product, Stock.quantity_balance)
        .outerjoin(Stock, and_(Stock.product_id == Product.id, Stock.stock_date == today))
        .filter(Product.status == STATUS_ACTIVE)
        .order_by(Product.name.asc())
        .all()
    )
    products = []
    for product, balance in rows:
        data = product.to_dict()
        data.update({
            "item_type": "product",
            "stock": str(balance) if balance is not None else "0",
            "current_price_cents": current_price_cents(product, hour),
            "is_special_active": is_special_active(product, hour),
        })
        products.append(data)

    items = []
    for item in list_stock_items(sellable_only=True):
        data = item.to_dict()
        data.update({"item_type": "stock_item", "current_price_cents": item.unit_price_cents})
        items.append(data)

    return {"products": products, "stock_items": items, "hour": hour}
