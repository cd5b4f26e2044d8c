import pytest

from bakerypos.errors import ValidationError
from bakerypos.models import Company
from bakerypos.services import company_service


def test_first_read_creates_default_profile(db_session):
    company = company_service.get_settings()
    assert company.name == "Bakery POS"
    assert company.currency == "Rs."
    assert company.receipt_footer is None

    again = company_service.get_settings()
    assert again.id == company.id
    assert db_session.query(Company).count() == 1


def test_update_settings(db_session):
    company = company_service.update_settings({
        "name": "Sunrise Bakery",
        "address": "12 Galle Road, Colombo",
        "phone": "0112345678",
        "receipt_footer": "Thank you!",
    })
    assert company.name == "Sunrise Bakery"
    assert company_service.get_settings().address == "12 Galle Road, Colombo"
    assert db_session.query(Company).count() == 1


@pytest.mark.parametrize(
    "payload",
    [
        {"name": ""},
        {"name": None},
        {"email": "bakery"},
        {"currency": "RUPEES-LONG-NAME"},
        {"logo": "x.png"},
    ],
)
def test_invalid_settings(db_session, payload):
    with pytest.raises(ValidationError):
        company_service.update_settings(payload)
