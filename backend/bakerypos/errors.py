# Overview: Error taxonomy shared by services and routes.


class BakeryError(Exception):
    """Base class for business failures raised by the service layer."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class ValidationError(BakeryError, ValueError):
    """400-level input problem (empty cart, bad quantity, unknown status)."""


class NotFoundError(BakeryError):
    """Referenced row does not exist."""

    status_code = 404


class ConflictError(BakeryError):
    """409-level business rule conflict (e.g., bill already cancelled)."""

    status_code = 409


class TransactionError(BakeryError):
    """An atomic create/update sequence failed and was rolled back."""

    status_code = 500


class ConcurrencyError(BakeryError):
    """Duplicate document number or stale row version; safe to retry."""

    status_code = 409
