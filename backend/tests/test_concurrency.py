"""
Concurrent billing against a file-backed SQLite database.

Verifies:
- Concurrent bills never share a bill number
- Concurrent reductions never lose a decrement
- Concurrent order payments never lose an increment
"""

import threading
from decimal import Decimal

import pytest

from bakerypos import create_app
from bakerypos.extensions import db
from bakerypos.models import Bill, Product, StockItem
from bakerypos.services import billing_service, inventory_service, order_service
from bakerypos.time_utils import business_today


THREADS = 6
BILLS_PER_THREAD = 4


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'concurrency.sqlite3'}",
        "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 30}},
        "DB_RETRY_ATTEMPTS": 5,
    })
    with app.app_context():
        db.create_all()
        product = Product(name="Fish Bun", price_cents=5000)
        item = StockItem(name="Soda 300ml", unit_price_cents=3000, quantity=Decimal("100"))
        db.session.add_all([product, item])
        db.session.commit()
        inventory_service.add_stock(product.id, 100, business_today())
        ids = {"product": product.id, "item": item.id}
        db.session.remove()

    yield app, ids

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def test_concurrent_bills(file_app):
    app, ids = file_app
    numbers = []
    errors = []
    lock = threading.Lock()

    lines = [
        {"item_type": "product", "item_id": ids["product"], "item_name": "Fish Bun",
         "quantity": 1, "unit_price_cents": 5000},
        {"item_type": "stock_item", "item_id": ids["item"], "item_name": "Soda 300ml",
         "quantity": 2, "unit_price_cents": 3000},
    ]

    def worker():
        with app.app_context():
            try:
                for _ in range(BILLS_PER_THREAD):
                    bill = billing_service.create_bill(lines)
                    with lock:
                        numbers.append(bill.bill_number)
            except Exception as exc:
                with lock:
                    errors.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker) for _ in range(THREADS)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=120)

    assert errors == []
    total = THREADS * BILLS_PER_THREAD
    assert len(numbers) == total
    assert len(set(numbers)) == total

    with app.app_context():
        today = business_today()
        expected = sorted(f"INV-{today:%Y%m%d}{n:04d}" for n in range(1, total + 1))
        assert sorted(numbers) == expected
        assert db.session.query(Bill).count() == total

        assert inventory_service.get_balance(ids["product"], today) == Decimal(100 - total)
        item = db.session.get(StockItem, ids["item"])
        assert item.quantity == Decimal(100 - 2 * total)
        db.session.remove()


def test_concurrent_order_payments(file_app):
    app, ids = file_app
    errors = []
    lock = threading.Lock()

    with app.app_context():
        order = order_service.create_order(
            "Saman",
            [{"item_type": "product", "item_id": ids["product"], "item_name": "Fish Bun",
              "quantity": 1, "unit_price_cents": 2000}],
        )
        order_id = order.id
        db.session.remove()

    def worker():
        with app.app_context():
            try:
                for _ in range(BILLS_PER_THREAD):
                    order_service.add_order_payment(order_id, 100)
            except Exception as exc:
                with lock:
                    errors.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker) for _ in range(THREADS)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=120)

    assert errors == []
    paid = THREADS * BILLS_PER_THREAD * 100

    with app.app_context():
        order = order_service.get_order(order_id)
        assert order.advance_cents == paid
        assert order.balance_cents == 2000 - paid
        assert order.payment_status == "paid"
        db.session.remove()
