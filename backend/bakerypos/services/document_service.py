# Overview: Service-layer operations for document numbering; encapsulates business logic and database work.

from __future__ import annotations

import re
from datetime import date

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence

DOCUMENT_TYPE_BILL = "BILL"
DOCUMENT_TYPE_ORDER = "ORDER"

_NUMBER_RE = re.compile(r"^(?P<prefix>[A-Z]+)-(?P<date>\d{8})(?P<seq>\d+)$")


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def format_document_number(prefix: str, business_date: date, seq: int, pad: int = 4) -> str:
    return f"{prefix}-{business_date:%Y%m%d}{seq:0{pad}d}"


def parse_document_number(number: str) -> tuple[str, date, int]:
    """Split 'INV-202410190007' into ('INV', date(2024, 10, 19), 7)."""
    match = _NUMBER_RE.match(number or "")
    if not match:
        raise DocumentSequenceError(f"Not a document number: {number!r}")
    raw = match.group("date")
    d = date(int(raw[:4]), int(raw[4:6]), int(raw[6:]))
    return match.group("prefix"), d, int(match.group("seq"))


def _increment(document_type: str, business_date: date) -> int | None:
    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.document_type == document_type,
            DocumentSequence.sequence_date == business_date,
        )
        .values(last_number=DocumentSequence.last_number + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    return (
        db.session.query(DocumentSequence.last_number)
        .filter_by(document_type=document_type, sequence_date=business_date)
        .scalar()
    )


def next_document_number(
    *,
    document_type: str,
    prefix: str,
    business_date: date,
    pad: int = 4,
) -> str:
    """
    Allocate the next number for (document_type, business_date).

    Must be called inside the transaction that inserts the document: the
    counter row stays write-locked until that transaction ends, and a
    rollback of the document also rolls the counter back.

    The first number of a day inserts the counter row inside a SAVEPOINT;
    if a concurrent request inserted it first, the increment is retried
    against the row that won.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")
    if not prefix:
        raise DocumentSequenceError("prefix is required")
    if business_date is None:
        raise DocumentSequenceError("business_date is required")

    next_num = _increment(document_type, business_date)
    if next_num is None:
        try:
            with db.session.begin_nested():
                db.session.add(
                    DocumentSequence(
                        document_type=document_type,
                        sequence_date=business_date,
                        last_number=1,
                    )
                )
            next_num = 1
        except IntegrityError:
            next_num = _increment(document_type, business_date)
            if next_num is None:
                raise

    return format_document_number(prefix, business_date, next_num, pad)
