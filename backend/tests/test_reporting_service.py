from datetime import timedelta
from decimal import Decimal

import pytest

from bakerypos.errors import ValidationError
from bakerypos.services import billing_service, catalog_service, order_service, reporting_service
from bakerypos.time_utils import business_today


def test_daily_summary_counts_completed_bills_only(db_session, fish_bun, butter_cake, product_line):
    billing_service.create_bill([product_line(butter_cake, 1)], discount_percent=10)
    billing_service.create_bill([product_line(fish_bun, 2)])
    cancelled = billing_service.create_bill([product_line(fish_bun, 5)])
    billing_service.cancel_bill(cancelled.id)

    summary = reporting_service.daily_summary()
    assert summary["total_bills"] == 2
    assert summary["gross_sales_cents"] == 110000
    assert summary["total_discount_cents"] == 10000
    assert summary["net_sales_cents"] == 100000
    assert Decimal(summary["items_sold"]) == Decimal("3")


def test_sales_by_day(db_session, fish_bun, product_line):
    today = business_today()
    yesterday = today - timedelta(days=1)
    billing_service.create_bill([product_line(fish_bun, 1)], business_date=yesterday)
    billing_service.create_bill([product_line(fish_bun, 2)])

    report = reporting_service.sales_by_day(yesterday, today)
    assert [d["net_cents"] for d in report["daily"]] == [5000, 10000]
    assert report["summary"]["total_bills"] == 2
    assert report["summary"]["net_sales_cents"] == 15000


def test_top_items_use_names_on_the_bill(db_session, fish_bun, butter_cake, product_line):
    today = business_today()
    billing_service.create_bill([product_line(fish_bun, 3), product_line(butter_cake, 1)])
    billing_service.create_bill([product_line(fish_bun, 2)])
    catalog_service.update_product(fish_bun.id, {"name": "Renamed Bun"})

    top = reporting_service.top_items(today, today, limit=5)
    assert top[0]["name"] == "Fish Bun"
    assert Decimal(top[0]["total_quantity"]) == Decimal("5")
    assert top[0]["times_sold"] == 2
    assert top[0]["total_revenue_cents"] == 25000
    assert top[1]["name"] == "Butter Cake"


def test_order_stats(db_session, fish_bun, product_line):
    first = order_service.create_order("A", [product_line(fish_bun, 1)])
    order_service.create_order("B", [product_line(fish_bun, 2)])
    order_service.update_order_status(first.id, "cancelled")

    stats = reporting_service.order_stats()
    by_status = {s["status"]: s for s in stats["by_status"]}
    assert by_status["cancelled"]["count"] == 1
    assert by_status["pending"]["total_value_cents"] == 10000
    assert stats["total_orders"] == 2
    assert stats["pending_orders"] == 1


def test_range_must_be_ordered(db_session):
    today = business_today()
    with pytest.raises(ValidationError):
        reporting_service.sales_by_day(today, today - timedelta(days=1))


def test_dashboard(db_session, fish_bun, product_line):
    billing_service.create_bill([product_line(fish_bun, 2)])
    order_service.create_order("A", [product_line(fish_bun, 1)])

    board = reporting_service.dashboard()
    assert board["today"]["net_sales_cents"] == 10000
    assert board["month"]["net_sales_cents"] == 10000
    assert board["pending_orders"] == 1
