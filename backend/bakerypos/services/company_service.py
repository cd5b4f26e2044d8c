"""
Company Service - shop profile and receipt settings

The profile is a single row. Reads create it with configured defaults when
the table is empty, so callers (receipts, the settings page) always get a
profile back.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Company
from ..validation import ModelValidationPolicy, enforce_rules_company, validate_payload
from .concurrency import run_in_transaction

COMPANY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "address", "phone", "email", "currency", "receipt_footer"},
)


def _first_row() -> Company | None:
    return db.session.query(Company).order_by(Company.id.asc()).first()


def _get_or_create_locked() -> Company:
    company = _first_row()
    if company is None:
        company = Company(
            name=current_app.config.get("COMPANY_DEFAULT_NAME", "Bakery POS"),
            address="",
            phone="",
            email="",
            currency=current_app.config.get("CURRENCY_SYMBOL", "Rs."),
        )
        db.session.add(company)
        db.session.flush()
    return company


def get_settings() -> Company:
    company = _first_row()
    if company is not None:
        return company
    return run_in_transaction(_get_or_create_locked, failure_message="Failed to load company settings")


def update_settings(payload: dict) -> Company:
    patch = validate_payload(model=Company, payload=payload, policy=COMPANY_POLICY, partial=True)
    enforce_rules_company(patch)

    def _op() -> Company:
        company = _get_or_create_locked()
        for k, v in patch.items():
            setattr(company, k, v)
        db.session.flush()
        return company

    return run_in_transaction(_op, failure_message="Failed to update company settings")


def receipt_header() -> dict:
    company = get_settings()
    return {
        "name": company.name,
        "address": company.address,
        "phone": company.phone,
        "email": company.email,
        "currency": company.currency,
        "footer": company.receipt_footer,
    }
