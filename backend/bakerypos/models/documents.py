from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z


class DocumentSequence(db.Model):
    """
    Atomic per-day document counters.

    WHY: Reading MAX(number) and inserting the next one lets two
    concurrent requests compute the same number. The counter row is
    incremented in place inside the same transaction that inserts the
    document, so the number and the document commit or roll back together.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", "sequence_date", name="uq_doc_sequences_type_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    sequence_date = db.Column(db.Date, nullable=False)
    last_number = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_type": self.document_type,
            "sequence_date": to_iso_date(self.sequence_date),
            "last_number": self.last_number,
            "updated_at": to_utc_z(self.updated_at),
        }
