from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy import Boolean, Date, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .money import quantize_quantity, to_decimal
from .time_utils import parse_iso_date


# Maximum price: Rs. 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

ITEM_TYPE_PRODUCT = "product"
ITEM_TYPE_STOCK_ITEM = "stock_item"
ITEM_TYPES = (ITEM_TYPE_PRODUCT, ITEM_TYPE_STOCK_ITEM)

STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"
RECORD_STATUSES = (STATUS_ACTIVE, STATUS_INACTIVE)

USER_ROLES = ("admin", "manager", "cashier")
MIN_USERNAME_LENGTH = 3


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        raise ValidationError(f"{col.key} must be an integer")

    # Decimal quantities
    if isinstance(coltype, Numeric):
        try:
            return to_decimal(value, field=col.key)
        except ValueError as exc:
            raise ValidationError(str(exc))

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, str)) and str(value).strip().lower() in {"0", "1", "true", "false"}:
            return str(value).strip().lower() in {"1", "true"}
        raise ValidationError(f"{col.key} must be a boolean")

    if isinstance(coltype, Date):
        try:
            parsed = parse_iso_date(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{col.key} must be a YYYY-MM-DD date")
        if parsed is None:
            raise ValidationError(f"{col.key} must be a YYYY-MM-DD date")
        return parsed

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _check_price(patch: dict, field: str) -> None:
    if field in patch and patch[field] is not None:
        price = patch[field]
        if price <= 0:
            raise ValidationError(f"{field} must be > 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS}")


def _check_status(patch: dict) -> None:
    if "status" in patch and patch["status"] not in RECORD_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(RECORD_STATUSES)}")


def enforce_rules_product(patch: dict) -> None:
    _check_price(patch, "price_cents")
    _check_price(patch, "special_price_cents")
    _check_status(patch)


def enforce_rules_stock_item(patch: dict) -> None:
    _check_price(patch, "unit_price_cents")
    _check_status(patch)


def enforce_rules_record(patch: dict) -> None:
    _check_status(patch)


def _check_email(patch: dict) -> None:
    email = patch.get("email")
    if email and ("@" not in email or email.startswith("@") or email.endswith("@")):
        raise ValidationError("email must be a valid address")


def enforce_rules_user(patch: dict) -> None:
    if "username" in patch and len(patch["username"]) < MIN_USERNAME_LENGTH:
        raise ValidationError(f"username must be at least {MIN_USERNAME_LENGTH} characters")
    if "role" in patch and patch["role"] not in USER_ROLES:
        raise ValidationError(f"role must be one of {', '.join(USER_ROLES)}")
    _check_email(patch)
    _check_status(patch)


def enforce_rules_company(patch: dict) -> None:
    _check_email(patch)


def require_positive_quantity(value, *, field: str = "quantity") -> Decimal:
    try:
        qty = quantize_quantity(value)
    except ValueError:
        raise ValidationError(f"{field} must be a number")
    if qty <= 0:
        raise ValidationError(f"{field} must be > 0")
    return qty


def require_positive_cents(value, *, field: str = "amount_cents") -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer number of cents")
    if value <= 0:
        raise ValidationError(f"{field} must be > 0")
    return value


def normalize_cart_line(line: dict) -> dict:
    """
    Validate one priced cart line and return it in canonical form.

    Lines reaching the billing/order engines are already priced by the
    caller; this only guards against malformed input.
    """
    if not isinstance(line, dict):
        raise ValidationError("Invalid item in cart")

    item_type = line.get("item_type") or ITEM_TYPE_PRODUCT
    if item_type not in ITEM_TYPES:
        raise ValidationError(f"Unknown item type: {item_type}", details={"item": line})

    item_id = line.get("item_id")
    if isinstance(item_id, bool) or not isinstance(item_id, int) or item_id <= 0:
        raise ValidationError("item_id must be a positive integer", details={"item": line})

    name = str(line.get("item_name") or "").strip()
    if not name:
        raise ValidationError("item_name is required", details={"item": line})

    quantity = require_positive_quantity(line.get("quantity"))

    unit_price = line.get("unit_price_cents")
    if isinstance(unit_price, bool) or not isinstance(unit_price, int) or unit_price <= 0:
        raise ValidationError("unit_price_cents must be a positive integer", details={"item": line})

    normalized = {
        "item_type": item_type,
        "item_id": item_id,
        "item_name": name,
        "quantity": quantity,
        "unit_price_cents": unit_price,
    }
    if line.get("notes"):
        normalized["notes"] = str(line["notes"]).strip()
    return normalized


def require_date(value, *, field: str = "date", default=None):
    """Parse a YYYY-MM-DD argument; missing values fall back to default."""
    try:
        parsed = parse_iso_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a YYYY-MM-DD date")
    return parsed if parsed is not None else default


def normalize_cart(lines) -> list[dict]:
    if not lines or not isinstance(lines, (list, tuple)):
        raise ValidationError("Cart is empty")
    return [normalize_cart_line(line) for line in lines]
