# Overview: Service-layer operations for concurrency; encapsulates transaction and retry handling.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import BakeryError, ConcurrencyError, TransactionError
from ..extensions import db

RETRYABLE_ERRORS = (OperationalError, StaleDataError, ConcurrencyError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def _default_attempts() -> int:
    return int(current_app.config.get("DB_RETRY_ATTEMPTS", 3))


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.05):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks), StaleDataError
    (optimistic locking conflicts) and ConcurrencyError (duplicate
    document numbers). Each failed attempt is rolled back before retrying.
    """
    if attempts is None:
        attempts = _default_attempts()
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Concurrency conflict (attempt %s/%s): %s", attempt + 1, attempts, exc
            )
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_in_transaction(func, *, failure_message: str, attempts: int | None = None):
    """
    Run func() as one all-or-nothing unit and commit.

    - BakeryError subclasses (validation, not found, conflict) roll back and
      propagate unchanged.
    - IntegrityError on a unique document number becomes ConcurrencyError and
      the whole unit is retried, bounded by DB_RETRY_ATTEMPTS.
    - Anything else rolls back and surfaces as TransactionError, so callers
      never observe a half-applied document.
    """
    def _attempt():
        try:
            result = func()
            db.session.commit()
            return result
        except IntegrityError as exc:
            db.session.rollback()
            raise ConcurrencyError(failure_message, details={"reason": "duplicate key"}) from exc
        except RETRYABLE_ERRORS:
            db.session.rollback()
            raise
        except BakeryError:
            db.session.rollback()
            raise
        except Exception as exc:
            db.session.rollback()
            current_app.logger.exception(failure_message)
            raise TransactionError(failure_message) from exc

    try:
        return run_with_retry(_attempt, attempts=attempts)
    except RETRYABLE_ERRORS as exc:
        current_app.logger.warning("%s after retries: %s", failure_message, exc)
        raise TransactionError(failure_message, details={"reason": "concurrency"}) from exc
