# Overview: Service-layer operations for document numbering; allocates human-readable order/purchase numbers.

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..models import DocumentSequence


DOCUMENT_TYPE_ORDER = "ORDER"
DOCUMENT_TYPE_PURCHASE = "PURCHASE"

DOCUMENT_PREFIXES = {
    DOCUMENT_TYPE_ORDER: "ORD",
    DOCUMENT_TYPE_PURCHASE: "PUR",
}


def next_document_number(*, document_type: str, pad: int = 6) -> str:
    """
    Allocate the next document number for a document type.

    Runs inside the caller's transaction and does not commit, so a rolled
    back order/purchase also gives its number back. The counter row is
    bumped with a single UPDATE, which serializes concurrent allocators.
    """
    prefix = DOCUMENT_PREFIXES.get(document_type)
    if prefix is None:
        raise ValueError(f"unknown document type: {document_type}")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(document_type=document_type)
            .scalar()
        )
        next_num = current - 1
    else:
        # First document of this type. A racing first writer surfaces as an
        # IntegrityError on flush and the whole operation is rejected.
        db.session.add(DocumentSequence(document_type=document_type, next_number=2))
        db.session.flush()
        next_num = 1

    return f"{prefix}-{next_num:0{pad}d}"
