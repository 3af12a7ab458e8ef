from __future__ import annotations

import logging
import re

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from erp_portal.models import DocumentSequence, DocumentType, PurchaseOrder, SupplierInvoice

logger = logging.getLogger(__name__)

NUMBER_WIDTH = 6
MAX_CREATE_ATTEMPTS = 3

_PREFIXES = {
    DocumentType.PURCHASE_ORDER: 'PO',
    DocumentType.SUPPLIER_INVOICE: 'INV-',
}


def format_document_number(document_type: DocumentType, number: int) -> str:
    return f'{_PREFIXES[document_type]}{number:0{NUMBER_WIDTH}d}'


def parse_document_number(document_type: DocumentType, value: str | None) -> int | None:
    if not value:
        return None
    match = re.fullmatch(re.escape(_PREFIXES[document_type]) + r'(\d+)', value.strip())
    if not match:
        return None
    return int(match.group(1))


def _issued_numbers(db: Session, *, organization_id: int, document_type: DocumentType) -> list[str]:
    if document_type == DocumentType.PURCHASE_ORDER:
        column, owner = PurchaseOrder.po_number, PurchaseOrder.organization_id
    else:
        column, owner = SupplierInvoice.invoice_number, SupplierInvoice.organization_id
    return list(
        db.execute(
            select(column).where(owner == organization_id, column.like(f'{_PREFIXES[document_type]}%'))
        ).scalars()
    )


def highest_issued_number(db: Session, *, organization_id: int, document_type: DocumentType) -> int:
    highest = 0
    for value in _issued_numbers(db, organization_id=organization_id, document_type=document_type):
        parsed = parse_document_number(document_type, value)
        if parsed is not None and parsed > highest:
            highest = parsed
    return highest


def _locked_sequence(db: Session, *, organization_id: int, document_type: DocumentType) -> DocumentSequence | None:
    return db.execute(
        select(DocumentSequence)
        .where(
            DocumentSequence.organization_id == organization_id,
            DocumentSequence.document_type == document_type,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def _get_or_create_sequence(db: Session, *, organization_id: int, document_type: DocumentType) -> DocumentSequence:
    for _attempt in range(MAX_CREATE_ATTEMPTS):
        sequence = _locked_sequence(db, organization_id=organization_id, document_type=document_type)
        if sequence:
            return sequence

        seed = highest_issued_number(db, organization_id=organization_id, document_type=document_type) + 1
        try:
            with db.begin_nested():
                sequence = DocumentSequence(
                    organization_id=organization_id,
                    document_type=document_type,
                    next_number=seed,
                )
                db.add(sequence)
            return sequence
        except IntegrityError:
            # Another transaction created the counter first; lock theirs instead.
            logger.info(
                'Document sequence %s for organization %s created concurrently, retrying',
                document_type.value,
                organization_id,
            )
    raise RuntimeError(f'Unable to initialise {document_type.value} sequence for organization {organization_id}')


def allocate_document_number(db: Session, *, organization_id: int, document_type: DocumentType) -> str:
    """Reserve the next number for the organization inside the caller's transaction.

    The counter row stays locked until the transaction ends, so two requests can
    never receive the same number. A rolled back transaction releases its number.
    """
    sequence = _get_or_create_sequence(db, organization_id=organization_id, document_type=document_type)
    number = sequence.next_number
    sequence.next_number = number + 1
    db.flush()
    return format_document_number(document_type, number)


def next_purchase_order_number(db: Session, *, organization_id: int) -> str:
    return allocate_document_number(db, organization_id=organization_id, document_type=DocumentType.PURCHASE_ORDER)


def next_invoice_number(db: Session, *, organization_id: int) -> str:
    return allocate_document_number(db, organization_id=organization_id, document_type=DocumentType.SUPPLIER_INVOICE)
