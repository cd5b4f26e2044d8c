"""
Pytest fixtures for bakery POS backend tests.

Provides test database setup, catalog fixtures, and test client.
"""

from decimal import Decimal

import pytest
from bakerypos import create_app
from bakerypos.extensions import db
from bakerypos.models import Brand, Product, StockItem, Supplier, User
from bakerypos.services import inventory_service
from bakerypos.time_utils import business_today


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def cashier(db_session):
    user = User(username="cashier", first_name="Nimal", role="cashier", status="active")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def brand(db_session):
    b = Brand(name="House Bakery")
    db_session.add(b)
    db_session.commit()
    return b


@pytest.fixture(scope='function')
def fish_bun(db_session, brand):
    """Product priced 50.00, with a 40.00 evening special."""
    product = Product(
        name="Fish Bun",
        brand_id=brand.id,
        price_cents=5000,
        special_price_cents=4000,
        is_special_pricing=True,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def butter_cake(db_session, brand):
    """Product priced 1000.00, no special pricing."""
    product = Product(name="Butter Cake", brand_id=brand.id, price_cents=100000)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def soda(db_session):
    """Sellable stock item priced 30.00 with 10 on hand."""
    item = StockItem(name="Soda 300ml", unit_price_cents=3000, quantity=Decimal("10"))
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def supplier(db_session):
    s = Supplier(name="Flour Mills Ltd", contact_person="Kamal", phone="0771234567")
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture(scope='function')
def stocked_fish_bun(db_session, fish_bun):
    """Fish bun with 20 units in today's stock."""
    inventory_service.add_stock(fish_bun.id, 20, business_today())
    return fish_bun


def _product_line(product, quantity, unit_price_cents=None) -> dict:
    return {
        "item_type": "product",
        "item_id": product.id,
        "item_name": product.name,
        "quantity": quantity,
        "unit_price_cents": product.price_cents if unit_price_cents is None else unit_price_cents,
    }


def _stock_item_line(item, quantity) -> dict:
    return {
        "item_type": "stock_item",
        "item_id": item.id,
        "item_name": item.name,
        "quantity": quantity,
        "unit_price_cents": item.unit_price_cents,
    }


@pytest.fixture(scope='function')
def product_line():
    """Builds a priced product cart line."""
    return _product_line


@pytest.fixture(scope='function')
def stock_item_line():
    """Builds a priced stock-item cart line."""
    return _stock_item_line


@pytest.fixture(scope='function')
def cashier_headers(cashier):
    """X-User-Id headers for the cashier."""
    return {'X-User-Id': str(cashier.id)}
