# Overview: Service-layer operations for staff users; encapsulates business logic and database work.

"""
User Service

Staff records used to attribute bills, orders, stock and ledger entries.
Users are never deleted: deactivation flips status, which also makes
require_actor reject them.
"""

from __future__ import annotations

import logging

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import User
from ..validation import (
    ModelValidationPolicy,
    RECORD_STATUSES,
    STATUS_ACTIVE,
    STATUS_INACTIVE,
    enforce_rules_user,
    validate_payload,
)
from .concurrency import run_in_transaction

logger = logging.getLogger(__name__)

USER_POLICY = ModelValidationPolicy(
    writable_fields={"username", "first_name", "last_name", "email", "phone", "role", "status"},
    required_on_create={"username", "first_name"},
)


def _username_taken(username: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(User.id).filter(User.username == username)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found", details={"user_id": user_id})
    return user


def list_users(status: str | None = None) -> list[User]:
    query = db.session.query(User)
    if status:
        if status not in RECORD_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(RECORD_STATUSES)}")
        query = query.filter(User.status == status)
    return query.order_by(User.username.asc()).all()


def create_user(payload: dict) -> User:
    patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=False)
    enforce_rules_user(patch)

    def _op() -> User:
        if _username_taken(patch["username"]):
            raise ConflictError("Username already exists", details={"username": patch["username"]})
        user = User(role="cashier", status=STATUS_ACTIVE)
        for k, v in patch.items():
            setattr(user, k, v)
        db.session.add(user)
        db.session.flush()
        return user

    user = run_in_transaction(_op, failure_message="Failed to create user")
    logger.info("User created: id=%s username=%s role=%s", user.id, user.username, user.role)
    return user


def update_user(user_id: int, payload: dict) -> User:
    patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=True)
    enforce_rules_user(patch)

    def _op() -> User:
        user = get_user(user_id)
        if "username" in patch and _username_taken(patch["username"], exclude_id=user_id):
            raise ConflictError("Username already exists", details={"username": patch["username"]})
        for k, v in patch.items():
            setattr(user, k, v)
        db.session.flush()
        return user

    return run_in_transaction(_op, failure_message="Failed to update user")


def deactivate_user(user_id: int, actor_id: int | None = None) -> User:
    """Soft delete. An actor cannot deactivate their own account."""
    if actor_id is not None and actor_id == user_id:
        raise ConflictError("You cannot deactivate your own account", details={"user_id": user_id})

    def _op() -> User:
        user = get_user(user_id)
        user.status = STATUS_INACTIVE
        db.session.flush()
        return user

    user = run_in_transaction(_op, failure_message="Failed to deactivate user")
    logger.info("User deactivated: id=%s", user_id)
    return user
