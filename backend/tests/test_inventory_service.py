"""
Inventory ledger tests.

Verifies:
- add_stock creates the day's row, then accumulates into it
- Reductions are applied atomically, may oversell, and skip missing rows
- Clearing zeroes balances without deleting rows
- Stock-item restock books the purchase on the supplier ledger
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from bakerypos.errors import NotFoundError, ValidationError
from bakerypos.extensions import db
from bakerypos.models import Stock, StockItem
from bakerypos.services import inventory_service, supplier_service
from bakerypos.time_utils import business_today


DAY = date(2024, 10, 19)


class TestAddStock:

    def test_first_add_creates_row(self, db_session, fish_bun):
        row = inventory_service.add_stock(fish_bun.id, 24, DAY)
        assert row.quantity == Decimal("24")
        assert row.quantity_balance == Decimal("24")

    def test_second_add_accumulates(self, db_session, fish_bun):
        inventory_service.add_stock(fish_bun.id, 24, DAY)
        row = inventory_service.add_stock(fish_bun.id, Decimal("6.5"), DAY)
        assert row.quantity == Decimal("30.5")
        assert row.quantity_balance == Decimal("30.5")
        assert db_session.query(Stock).filter_by(product_id=fish_bun.id).count() == 1

    def test_different_days_are_separate_rows(self, db_session, fish_bun):
        inventory_service.add_stock(fish_bun.id, 10, DAY)
        inventory_service.add_stock(fish_bun.id, 5, DAY + timedelta(days=1))
        assert inventory_service.get_balance(fish_bun.id, DAY) == Decimal("10")
        assert inventory_service.get_balance(fish_bun.id, DAY + timedelta(days=1)) == Decimal("5")

    def test_defaults_to_business_today(self, db_session, fish_bun):
        row = inventory_service.add_stock(fish_bun.id, 3)
        assert row.stock_date == business_today()

    @pytest.mark.parametrize("qty", [0, -1, "abc", None])
    def test_rejects_non_positive_quantity(self, db_session, fish_bun, qty):
        with pytest.raises(ValidationError):
            inventory_service.add_stock(fish_bun.id, qty, DAY)

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFoundError):
            inventory_service.add_stock(999_999, 1, DAY)


class TestReduceStock:

    def test_reduce_decrements_balance_only(self, db_session, fish_bun):
        inventory_service.add_stock(fish_bun.id, 10, DAY)
        inventory_service.reduce_stock(fish_bun.id, 3, DAY, commit=True)
        row = inventory_service.get_stock_row(fish_bun.id, DAY)
        assert row.quantity == Decimal("10")
        assert row.quantity_balance == Decimal("7")
        assert row.quantity_sold == Decimal("3")

    def test_oversell_goes_negative(self, db_session, fish_bun):
        inventory_service.add_stock(fish_bun.id, 2, DAY)
        inventory_service.reduce_stock(fish_bun.id, 5, DAY, commit=True)
        assert inventory_service.get_balance(fish_bun.id, DAY) == Decimal("-3")

    def test_missing_row_is_a_no_op(self, db_session, fish_bun):
        inventory_service.reduce_stock(fish_bun.id, 5, DAY, commit=True)
        assert db_session.query(Stock).count() == 0

    def test_uncommitted_reduction_rolls_back(self, db_session, fish_bun):
        inventory_service.add_stock(fish_bun.id, 10, DAY)
        inventory_service.reduce_stock(fish_bun.id, 4, DAY)
        db.session.rollback()
        assert inventory_service.get_balance(fish_bun.id, DAY) == Decimal("10")


class TestClear:

    def test_clear_stock_balance(self, db_session, fish_bun):
        row = inventory_service.add_stock(fish_bun.id, 10, DAY)
        cleared = inventory_service.clear_stock_balance(row.id)
        assert cleared.quantity_balance == Decimal("0")
        assert cleared.quantity == Decimal("10")

    def test_clear_day_only_touches_positive_rows(self, db_session, fish_bun, butter_cake):
        inventory_service.add_stock(fish_bun.id, 10, DAY)
        inventory_service.add_stock(butter_cake.id, 1, DAY)
        inventory_service.reduce_stock(butter_cake.id, 2, DAY, commit=True)

        assert inventory_service.clear_day(DAY) == 1
        assert inventory_service.get_balance(fish_bun.id, DAY) == Decimal("0")
        assert inventory_service.get_balance(butter_cake.id, DAY) == Decimal("-1")

    def test_clear_unknown_row(self, db_session):
        with pytest.raises(NotFoundError):
            inventory_service.clear_stock_balance(424242)


class TestStockItems:

    def test_add_and_reduce_quantity(self, db_session, soda):
        inventory_service.add_stock_item_quantity(soda.id, 5)
        inventory_service.reduce_stock_item_quantity(soda.id, 12, commit=True)
        item = db_session.get(StockItem, soda.id)
        db_session.refresh(item)
        assert item.quantity == Decimal("3")

    def test_stock_item_may_go_negative(self, db_session, soda):
        inventory_service.reduce_stock_item_quantity(soda.id, 11, commit=True)
        item = db_session.get(StockItem, soda.id)
        db_session.refresh(item)
        assert item.quantity == Decimal("-1")

    def test_unknown_stock_item(self, db_session):
        with pytest.raises(NotFoundError):
            inventory_service.add_stock_item_quantity(31337, 1)

    def test_restock_books_purchase_and_payment(self, db_session, soda, supplier):
        item = inventory_service.restock_stock_item(
            soda.id, 24, supplier_id=supplier.id, total_cents=72000, paid_cents=20000, note="Soda crate"
        )
        assert item.quantity == Decimal("34")
        assert supplier_service.outstanding_cents(supplier.id) == 52000

    def test_restock_rolls_back_when_supplier_missing(self, db_session, soda):
        with pytest.raises(NotFoundError):
            inventory_service.restock_stock_item(soda.id, 24, supplier_id=999, total_cents=1000)
        item = db_session.get(StockItem, soda.id)
        db_session.refresh(item)
        assert item.quantity == Decimal("10")

    def test_low_stock_items(self, db_session, soda):
        assert [i.id for i in inventory_service.low_stock_items()] == [soda.id]
        assert inventory_service.low_stock_items(threshold=5) == []


class TestReports:

    def test_stock_report_totals(self, db_session, fish_bun):
        inventory_service.add_stock(fish_bun.id, 10, DAY)
        inventory_service.add_stock(fish_bun.id, 5, DAY + timedelta(days=1))
        inventory_service.reduce_stock(fish_bun.id, 4, DAY, commit=True)

        report = inventory_service.stock_report(DAY, DAY + timedelta(days=1))
        assert len(report) == 1
        assert Decimal(report[0]["total_added"]) == Decimal("15")
        assert Decimal(report[0]["total_sold"]) == Decimal("4")
        assert Decimal(report[0]["total_remaining"]) == Decimal("11")

    def test_list_stock_for_date_available_only(self, db_session, fish_bun, butter_cake):
        inventory_service.add_stock(fish_bun.id, 10, DAY)
        inventory_service.add_stock(butter_cake.id, 1, DAY)
        inventory_service.reduce_stock(butter_cake.id, 1, DAY, commit=True)

        rows = inventory_service.list_stock_for_date(DAY, only_available=True)
        assert [r.product_id for r in rows] == [fish_bun.id]

    def test_product_stock_history_newest_first(self, db_session, fish_bun):
        inventory_service.add_stock(fish_bun.id, 10, DAY)
        inventory_service.add_stock(fish_bun.id, 5, DAY + timedelta(days=1))

        history = inventory_service.product_stock_history(fish_bun.id, limit=1)
        assert [r.stock_date for r in history] == [DAY + timedelta(days=1)]

        with pytest.raises(NotFoundError):
            inventory_service.product_stock_history(9999)
