"""
Billing engine tests.

Verifies:
- End-to-end cart: totals, bill number, inventory reductions
- Discount arithmetic rounds to the cent
- A failure at any step leaves no bill, no lines, no inventory change
- Cancellation leaves stock alone unless restoration is requested
"""

from decimal import Decimal

import pytest

from bakerypos.errors import ConflictError, NotFoundError, TransactionError, ValidationError
from bakerypos.models import Bill, BillItem, DocumentSequence, StockItem
from bakerypos.services import billing_service, company_service, inventory_service
from bakerypos.time_utils import business_today


def _soda_quantity(db_session, soda_id):
    item = db_session.get(StockItem, soda_id)
    db_session.refresh(item)
    return item.quantity


# =============================================================================
# CREATE
# =============================================================================


class TestCreateBill:

    def test_end_to_end_cart(self, db_session, cashier, stocked_fish_bun, soda, product_line, stock_item_line):
        today = business_today()
        bill = billing_service.create_bill(
            [product_line(stocked_fish_bun, 2), stock_item_line(soda, 1)],
            cashier_id=cashier.id,
        )

        assert bill.subtotal_cents == 13000
        assert bill.discount_cents == 0
        assert bill.total_cents == 13000
        assert bill.amount_paid_cents == 13000
        assert bill.change_cents == 0
        assert bill.status == "completed"
        assert bill.bill_number == f"INV-{today:%Y%m%d}0001"
        assert [i.total_price_cents for i in bill.items] == [10000, 3000]
        assert [i.item_name for i in bill.items] == ["Fish Bun", "Soda 300ml"]

        assert inventory_service.get_balance(stocked_fish_bun.id, today) == Decimal("18")
        assert _soda_quantity(db_session, soda.id) == Decimal("9")

    def test_discount_rounds_half_up(self, db_session, butter_cake, product_line):
        bill = billing_service.create_bill(
            [product_line(butter_cake, 1)], discount_percent=10, amount_paid_cents=100000
        )
        assert bill.subtotal_cents == 100000
        assert bill.discount_cents == 10000
        assert bill.total_cents == 90000
        assert bill.change_cents == 10000

    def test_fractional_discount(self, db_session, fish_bun, product_line):
        # 3 x 33.33 = 99.99; 12.5% of that is 12.49875 -> 12.50
        bill = billing_service.create_bill(
            [product_line(fish_bun, 3, unit_price_cents=3333)], discount_percent="12.5"
        )
        assert bill.subtotal_cents == 9999
        assert bill.discount_cents == 1250
        assert bill.total_cents == 8749

    def test_numbers_increase(self, db_session, fish_bun, product_line):
        first = billing_service.create_bill([product_line(fish_bun, 1)])
        second = billing_service.create_bill([product_line(fish_bun, 1)])
        assert first.bill_number.endswith("0001")
        assert second.bill_number.endswith("0002")

    def test_update_inventory_false_leaves_stock(self, db_session, stocked_fish_bun, product_line):
        billing_service.create_bill([product_line(stocked_fish_bun, 5)], update_inventory=False)
        assert inventory_service.get_balance(stocked_fish_bun.id, business_today()) == Decimal("20")

    def test_forced_number(self, db_session, fish_bun, product_line):
        bill = billing_service.create_bill([product_line(fish_bun, 1)], forced_number="ORD-202410190001")
        assert bill.bill_number == "ORD-202410190001"
        with pytest.raises(ConflictError):
            billing_service.create_bill([product_line(fish_bun, 1)], forced_number="ORD-202410190001")


class TestCreateBillValidation:

    def test_empty_cart(self, db_session):
        with pytest.raises(ValidationError):
            billing_service.create_bill([])

    @pytest.mark.parametrize("qty", [0, -2])
    def test_non_positive_quantity(self, db_session, fish_bun, product_line, qty):
        with pytest.raises(ValidationError):
            billing_service.create_bill([product_line(fish_bun, qty)])

    @pytest.mark.parametrize("price", [0, -1])
    def test_non_positive_price(self, db_session, fish_bun, product_line, price):
        with pytest.raises(ValidationError):
            billing_service.create_bill([product_line(fish_bun, 2, unit_price_cents=price)])
        assert db_session.query(Bill).count() == 0

    def test_unknown_item_type(self, db_session, fish_bun, product_line):
        line = product_line(fish_bun, 1)
        line["item_type"] = "service"
        with pytest.raises(ValidationError):
            billing_service.create_bill([line])

    @pytest.mark.parametrize("pct", [-1, "100.01", "ten"])
    def test_discount_out_of_range(self, db_session, fish_bun, product_line, pct):
        with pytest.raises(ValidationError):
            billing_service.create_bill([product_line(fish_bun, 1)], discount_percent=pct)

    def test_validation_failure_writes_nothing(self, db_session, fish_bun, product_line):
        with pytest.raises(ValidationError):
            billing_service.create_bill([product_line(fish_bun, 1), product_line(fish_bun, 0)])
        assert db_session.query(Bill).count() == 0
        assert db_session.query(DocumentSequence).count() == 0


# =============================================================================
# ATOMICITY
# =============================================================================


class TestAtomicity:

    def _assert_untouched(self, db_session, product_id, soda_id):
        assert db_session.query(Bill).count() == 0
        assert db_session.query(BillItem).count() == 0
        assert inventory_service.get_balance(product_id, business_today()) == Decimal("20")
        assert _soda_quantity(db_session, soda_id) == Decimal("10")

    def test_failure_in_stock_item_update(
        self, db_session, monkeypatch, stocked_fish_bun, soda, product_line, stock_item_line
    ):
        def boom(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(inventory_service, "reduce_stock_item_quantity", boom)

        with pytest.raises(TransactionError):
            billing_service.create_bill([product_line(stocked_fish_bun, 2), stock_item_line(soda, 1)])

        # the product reduction ran before the failure and must be rolled back too
        self._assert_untouched(db_session, stocked_fish_bun.id, soda.id)

    def test_failure_in_inventory_step(
        self, db_session, monkeypatch, stocked_fish_bun, soda, product_line, stock_item_line
    ):
        def boom(lines, stock_date):
            raise RuntimeError("connection reset")

        monkeypatch.setattr(inventory_service, "apply_line_reductions", boom)

        with pytest.raises(TransactionError):
            billing_service.create_bill([product_line(stocked_fish_bun, 2), stock_item_line(soda, 1)])

        self._assert_untouched(db_session, stocked_fish_bun.id, soda.id)

    def test_failed_bill_does_not_consume_a_number(
        self, db_session, monkeypatch, stocked_fish_bun, product_line
    ):
        original = inventory_service.apply_line_reductions

        def boom(lines, stock_date):
            raise RuntimeError("boom")

        monkeypatch.setattr(inventory_service, "apply_line_reductions", boom)
        with pytest.raises(TransactionError):
            billing_service.create_bill([product_line(stocked_fish_bun, 1)])

        monkeypatch.setattr(inventory_service, "apply_line_reductions", original)
        bill = billing_service.create_bill([product_line(stocked_fish_bun, 1)])
        assert bill.bill_number.endswith("0001")


# =============================================================================
# CANCEL
# =============================================================================


class TestCancelBill:

    def test_cancel_keeps_inventory_consumed(self, db_session, stocked_fish_bun, soda, product_line, stock_item_line):
        bill = billing_service.create_bill([product_line(stocked_fish_bun, 2), stock_item_line(soda, 1)])
        cancelled = billing_service.cancel_bill(bill.id)

        assert cancelled.status == "cancelled"
        assert cancelled.cancelled_at is not None
        assert inventory_service.get_balance(stocked_fish_bun.id, business_today()) == Decimal("18")
        assert _soda_quantity(db_session, soda.id) == Decimal("9")

    def test_cancel_with_restore(self, db_session, stocked_fish_bun, soda, product_line, stock_item_line):
        bill = billing_service.create_bill([product_line(stocked_fish_bun, 2), stock_item_line(soda, 1)])
        billing_service.cancel_bill(bill.id, restore_inventory=True)

        assert inventory_service.get_balance(stocked_fish_bun.id, business_today()) == Decimal("20")
        assert _soda_quantity(db_session, soda.id) == Decimal("10")

    def test_cancel_twice_conflicts(self, db_session, fish_bun, product_line):
        bill = billing_service.create_bill([product_line(fish_bun, 1)])
        billing_service.cancel_bill(bill.id)
        with pytest.raises(ConflictError):
            billing_service.cancel_bill(bill.id)

    def test_cancel_unknown_bill(self, db_session):
        with pytest.raises(NotFoundError):
            billing_service.cancel_bill(404)


# =============================================================================
# READ SIDE
# =============================================================================


class TestBillQueries:

    def test_list_bills_excludes_cancelled(self, db_session, fish_bun, product_line):
        today = business_today()
        keep = billing_service.create_bill([product_line(fish_bun, 1)])
        drop = billing_service.create_bill([product_line(fish_bun, 1)])
        billing_service.cancel_bill(drop.id)

        result = billing_service.list_bills(today, today)
        assert result["count"] == 1
        assert [b["id"] for b in result["items"]] == [keep.id]

    def test_list_bills_paginates(self, db_session, fish_bun, product_line):
        today = business_today()
        for _ in range(3):
            billing_service.create_bill([product_line(fish_bun, 1)])
        page = billing_service.list_bills(today, today, page=2, per_page=2)
        assert page["count"] == 3
        assert len(page["items"]) == 1

    def test_receipt_data(self, db_session, fish_bun, product_line):
        bill = billing_service.create_bill([product_line(fish_bun, 2)])
        receipt = billing_service.receipt_data(bill.id)
        assert receipt["print_data"]["bill_number"] == bill.bill_number
        assert receipt["print_data"]["total_cents"] == 10000
        assert len(receipt["print_data"]["items"]) == 1

    def test_receipt_carries_shop_profile(self, db_session, fish_bun, product_line):
        company_service.update_settings({"name": "Sunrise Bakery", "receipt_footer": "Thank you, come again"})
        bill = billing_service.create_bill([product_line(fish_bun, 1)])

        header = billing_service.receipt_data(bill.id)["print_data"]["company"]
        assert header["name"] == "Sunrise Bakery"
        assert header["currency"] == "Rs."
        assert header["footer"] == "Thank you, come again"

    def test_bill_payload_has_no_tax_field(self, db_session, fish_bun, product_line):
        bill = billing_service.create_bill([product_line(fish_bun, 1)])
        assert "tax_cents" not in bill.to_dict()
        assert not hasattr(Bill, "tax_cents")

    def test_find_by_number(self, db_session, fish_bun, product_line):
        bill = billing_service.create_bill([product_line(fish_bun, 1)])
        assert billing_service.find_bill_by_number(bill.bill_number).id == bill.id
        assert billing_service.find_bill_by_number("INV-000000000000") is None
