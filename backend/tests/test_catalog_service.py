"""
Catalog tests.

Verifies:
- Payload validation against the per-model policy
- Soft delete keeps rows but hides them from active listings and the POS
"""

from decimal import Decimal

import pytest

from bakerypos.errors import ConflictError, NotFoundError, ValidationError
from bakerypos.models import Product
from bakerypos.services import billing_service, catalog_service, inventory_service
from bakerypos.time_utils import business_today


class TestProducts:

    def test_create_product(self, db_session, brand):
        product = catalog_service.create_product(
            {"name": "Chocolate Cake", "brand_id": brand.id, "price_cents": 250000, "size": "1kg"}
        )
        assert product.id is not None
        assert product.status == "active"
        assert product.is_special_pricing is False

    def test_price_from_string_digits(self, db_session):
        product = catalog_service.create_product({"name": "Bread", "price_cents": "12000"})
        assert product.price_cents == 12000

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "Bread"},
            {"name": "Bread", "price_cents": -1},
            {"name": "Bread", "price_cents": 0},
            {"name": "Bread", "price_cents": 100, "special_price_cents": 0},
            {"name": "Bread", "price_cents": 12.5},
            {"name": "", "price_cents": 100},
            {"name": "Bread", "price_cents": 100, "sku": "X"},
            {"name": "Bread", "price_cents": 100, "status": "deleted"},
        ],
    )
    def test_invalid_payloads(self, db_session, payload):
        with pytest.raises(ValidationError):
            catalog_service.create_product(payload)

    def test_special_pricing_needs_special_price(self, db_session):
        with pytest.raises(ValidationError):
            catalog_service.create_product({"name": "Bun", "price_cents": 100, "is_special_pricing": True})
        assert db_session.query(Product).count() == 0

    def test_unknown_brand(self, db_session):
        with pytest.raises(NotFoundError):
            catalog_service.create_product({"name": "Bun", "price_cents": 100, "brand_id": 777})

    def test_update_product(self, db_session, fish_bun):
        updated = catalog_service.update_product(fish_bun.id, {"price_cents": 5500, "size": "large"})
        assert updated.price_cents == 5500
        assert updated.size == "large"
        assert updated.special_price_cents == 4000

    def test_deactivate_hides_product_but_keeps_row(self, db_session, fish_bun, butter_cake):
        catalog_service.deactivate_product(fish_bun.id)

        assert [p.id for p in catalog_service.list_products()] == [butter_cake.id]
        assert len(catalog_service.list_products(include_inactive=True)) == 2
        assert catalog_service.get_product(fish_bun.id).status == "inactive"

    def test_deactivated_product_keeps_bill_history(self, db_session, fish_bun, product_line):
        bill = billing_service.create_bill([product_line(fish_bun, 1)])
        catalog_service.update_product(fish_bun.id, {"name": "Fish Bun (old)"})
        catalog_service.deactivate_product(fish_bun.id)
        bill = billing_service.get_bill(bill.id)
        assert bill.items[0].item_name == "Fish Bun"
        assert bill.items[0].unit_price_cents == 5000

    def test_search_and_brand_filter(self, db_session, brand, fish_bun, butter_cake):
        assert [p.id for p in catalog_service.list_products(search="cake")] == [butter_cake.id]
        assert len(catalog_service.list_products(brand_id=brand.id)) == 2


class TestBrands:

    def test_duplicate_brand_name(self, db_session, brand):
        with pytest.raises(ConflictError):
            catalog_service.create_brand({"name": "House Bakery"})

    def test_rename_and_deactivate(self, db_session, brand):
        catalog_service.update_brand(brand.id, {"name": "Town Bakery"})
        catalog_service.deactivate_brand(brand.id)
        assert catalog_service.list_brands() == []
        assert catalog_service.list_brands(include_inactive=True)[0].name == "Town Bakery"


class TestStockItems:

    def test_create_stock_item_defaults(self, db_session):
        item = catalog_service.create_stock_item({"name": "Cake Box", "unit_price_cents": 2500})
        assert item.quantity == Decimal("0")
        assert item.unit == "pcs"
        assert item.is_sellable is True

    def test_quantity_not_editable_after_create(self, db_session, soda):
        with pytest.raises(ValidationError):
            catalog_service.update_stock_item(soda.id, {"quantity": 100})

    def test_non_sellable_items_not_on_pos(self, db_session, soda):
        catalog_service.update_stock_item(soda.id, {"is_sellable": False})
        assert catalog_service.list_stock_items(sellable_only=True) == []


class TestPosItems:

    def test_pos_items_with_stock_and_prices(self, db_session, stocked_fish_bun, butter_cake, soda):
        result = catalog_service.pos_items(hour=20)
        products = {p["id"]: p for p in result["products"]}

        assert Decimal(products[stocked_fish_bun.id]["stock"]) == Decimal("20")
        assert products[stocked_fish_bun.id]["current_price_cents"] == 4000
        assert products[stocked_fish_bun.id]["is_special_active"] is True
        assert Decimal(products[butter_cake.id]["stock"]) == Decimal("0")
        assert products[butter_cake.id]["current_price_cents"] == 100000
        assert [i["id"] for i in result["stock_items"]] == [soda.id]

    def test_pos_items_exclude_inactive(self, db_session, stocked_fish_bun, soda):
        catalog_service.deactivate_product(stocked_fish_bun.id)
        catalog_service.deactivate_stock_item(soda.id)
        result = catalog_service.pos_items(hour=10)
        assert result["products"] == []
        assert result["stock_items"] == []

    def test_pos_balance_reflects_sales(self, db_session, stocked_fish_bun, product_line):
        billing_service.create_bill([product_line(stocked_fish_bun, 3)])
        result = catalog_service.pos_items(hour=10)
        assert Decimal(result["products"][0]["stock"]) == Decimal("17")
        assert inventory_service.get_balance(stocked_fish_bun.id, business_today()) == Decimal("17")
