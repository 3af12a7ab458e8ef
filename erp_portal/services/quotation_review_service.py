from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from erp_portal.auth import RequestContext
from erp_portal.config import settings
from erp_portal.errors import InvalidTransitionError, NotFoundError
from erp_portal.models import (
    PaymentStatus,
    PurchaseOrder,
    QuotationStatus,
    RequestForQuotation,
    RfqStatus,
    Supplier,
    SupplierInvoice,
    SupplierQuotationSubmission,
)
from erp_portal.services.document_number_service import next_invoice_number
from erp_portal.services.notification_service import create_supplier_notification
from erp_portal.services.purchase_order_math_service import quantize_money

logger = logging.getLogger(__name__)

REVIEW_TRANSITIONS = {
    QuotationStatus.SUBMITTED: {QuotationStatus.UNDER_REVIEW, QuotationStatus.ACCEPTED, QuotationStatus.REJECTED},
    QuotationStatus.UNDER_REVIEW: {QuotationStatus.ACCEPTED, QuotationStatus.REJECTED},
}


@dataclass
class ReviewOutcome:
    quotation: SupplierQuotationSubmission
    invoice: SupplierInvoice | None
    message: str

    @property
    def invoice_number(self) -> str | None:
        return self.invoice.invoice_number if self.invoice else None


def compute_due_date(invoice_date: date, payment_terms: int | None) -> date:
    terms = payment_terms if payment_terms is not None else settings.default_payment_terms_days
    if terms < 0:
        raise ValueError('Payment terms cannot be negative')
    return invoice_date + timedelta(days=terms)


def parse_review_status(value: str | QuotationStatus) -> QuotationStatus:
    try:
        target = QuotationStatus(value)
    except ValueError as exc:
        raise InvalidTransitionError(f'Unknown quotation status: {value}') from exc
    if target not in {QuotationStatus.UNDER_REVIEW, QuotationStatus.ACCEPTED, QuotationStatus.REJECTED}:
        raise InvalidTransitionError('Status must be under_review, accepted or rejected')
    return target


def _lock_quotation(
    db: Session, *, ctx: RequestContext, quotation_id: int
) -> tuple[SupplierQuotationSubmission, Supplier]:
    row = db.execute(
        select(SupplierQuotationSubmission, Supplier)
        .join(Supplier, Supplier.id == SupplierQuotationSubmission.supplier_id)
        .where(
            SupplierQuotationSubmission.id == quotation_id,
            Supplier.organization_id == ctx.organization_id,
        )
        .with_for_update(of=SupplierQuotationSubmission)
        .execution_options(populate_existing=True)
    ).first()
    if not row:
        raise NotFoundError('Quotation not found')
    return row[0], row[1]


def _close_rfq(db: Session, *, ctx: RequestContext, rfq_id: int | None) -> None:
    if rfq_id is None:
        return
    rfq = db.execute(
        select(RequestForQuotation).where(
            RequestForQuotation.id == rfq_id,
            RequestForQuotation.organization_id == ctx.organization_id,
        )
    ).scalar_one_or_none()
    if rfq and rfq.status != RfqStatus.CLOSED:
        rfq.status = RfqStatus.CLOSED
        rfq.updated_at = datetime.now(tz=timezone.utc)


def _create_invoice(
    db: Session,
    *,
    ctx: RequestContext,
    quotation: SupplierQuotationSubmission,
    supplier: Supplier,
    today: date,
) -> SupplierInvoice:
    total = quantize_money(Decimal(quotation.total_amount or 0))
    invoice = SupplierInvoice(
        organization_id=ctx.organization_id,
        invoice_number=next_invoice_number(db, organization_id=ctx.organization_id),
        supplier_id=supplier.id,
        quotation_id=quotation.id,
        invoice_date=today,
        due_date=compute_due_date(today, supplier.payment_terms),
        subtotal=total,
        tax_amount=Decimal('0.00'),
        total_amount=total,
        currency_code=quotation.currency_code or settings.default_currency_code,
        payment_status=PaymentStatus.PENDING,
        notes=f'Auto-generated from accepted quotation {quotation.submission_number}',
    )
    db.add(invoice)
    db.flush()
    return invoice


def review_quotation(
    db: Session,
    *,
    ctx: RequestContext,
    quotation_id: int,
    status: str | QuotationStatus,
    rejection_reason: str | None = None,
    rejection_notes: str | None = None,
    can_resubmit: bool | None = None,
    today: date | None = None,
) -> ReviewOutcome:
    target = parse_review_status(status)
    quotation, supplier = _lock_quotation(db, ctx=ctx, quotation_id=quotation_id)
    current = QuotationStatus(quotation.status)
    if target not in REVIEW_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(f'Cannot change a {current.value} quotation to {target.value}')

    now = datetime.now(tz=timezone.utc)
    today = today or date.today()
    quotation.status = target
    quotation.reviewed_by_principal_id = ctx.principal_id
    quotation.reviewed_at = now
    quotation.updated_at = now
    invoice = None

    if target == QuotationStatus.ACCEPTED:
        invoice = _create_invoice(db, ctx=ctx, quotation=quotation, supplier=supplier, today=today)
        _close_rfq(db, ctx=ctx, rfq_id=quotation.rfq_id)
        create_supplier_notification(
            db,
            supplier_id=supplier.id,
            notification_type='quotation_accepted',
            title='Quotation Accepted!',
            message=(
                f'Your quotation has been accepted! Invoice {invoice.invoice_number} '
                'has been automatically generated.'
            ),
            related_entity_type='quotation',
            related_entity_id=quotation.id,
        )
    elif target == QuotationStatus.REJECTED:
        quotation.rejection_reason = rejection_reason or None
        quotation.rejection_notes = rejection_notes or None
        quotation.can_resubmit = can_resubmit is not False
        create_supplier_notification(
            db,
            supplier_id=supplier.id,
            notification_type='quotation_rejected',
            title='Quotation Rejected',
            message=f'Your quotation was rejected. {rejection_notes or "Please review and submit a revised quotation."}',
            related_entity_type='quotation',
            related_entity_id=quotation.id,
        )
    else:
        create_supplier_notification(
            db,
            supplier_id=supplier.id,
            notification_type='quotation_under_review',
            title='Quotation Under Review',
            message=f'Your quotation {quotation.submission_number} is now under review.',
            related_entity_type='quotation',
            related_entity_id=quotation.id,
        )

    db.flush()
    message = f'Quotation {target.value} successfully'
    logger.info(
        'Quotation %s moved from %s to %s by principal %s',
        quotation.id,
        current.value,
        target.value,
        ctx.principal_id,
    )
    return ReviewOutcome(quotation=quotation, invoice=invoice, message=message)


def resubmit_quotation(
    db: Session,
    *,
    supplier_id: int,
    quotation_id: int,
    total_amount: Decimal | None = None,
    organization_id: int | None = None,
) -> SupplierQuotationSubmission:
    query = select(SupplierQuotationSubmission).where(
        SupplierQuotationSubmission.id == quotation_id,
        SupplierQuotationSubmission.supplier_id == supplier_id,
    )
    if organization_id is not None:
        query = query.join(Supplier, Supplier.id == SupplierQuotationSubmission.supplier_id).where(
            Supplier.organization_id == organization_id
        )
    quotation = db.execute(
        query
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if not quotation:
        raise NotFoundError('Quotation not found')
    if QuotationStatus(quotation.status) != QuotationStatus.REJECTED or not quotation.can_resubmit:
        raise InvalidTransitionError('Only rejected quotations open for resubmission can be resubmitted')
    if total_amount is not None:
        if total_amount < 0:
            raise ValueError('Total amount cannot be negative')
        quotation.total_amount = quantize_money(total_amount)

    now = datetime.now(tz=timezone.utc)
    quotation.status = QuotationStatus.SUBMITTED
    quotation.submission_date = now
    quotation.updated_at = now
    quotation.reviewed_by_principal_id = None
    quotation.reviewed_at = None
    create_supplier_notification(
        db,
        supplier_id=supplier_id,
        notification_type='quotation_resubmitted',
        title='Quotation Resubmitted',
        message=f'Your quotation {quotation.submission_number} has been resubmitted for review.',
        related_entity_type='quotation',
        related_entity_id=quotation.id,
    )
    db.flush()
    return quotation


def serialize_quotation(
    quotation: SupplierQuotationSubmission,
    *,
    supplier: Supplier | None = None,
    rfq: RequestForQuotation | None = None,
    po_number: str | None = None,
) -> dict:
    return {
        'id': quotation.id,
        'submissionNumber': quotation.submission_number,
        'supplierId': quotation.supplier_id,
        'supplierName': supplier.name if supplier else None,
        'supplierCode': supplier.code if supplier else None,
        'supplierEmail': supplier.email if supplier else None,
        'rfqId': quotation.rfq_id,
        'rfqNumber': rfq.rfq_number if rfq else None,
        'rfqTitle': rfq.title if rfq else None,
        'purchaseOrderId': quotation.purchase_order_id,
        'poNumber': po_number,
        'totalAmount': str(quotation.total_amount),
        'currencyCode': quotation.currency_code,
        'status': QuotationStatus(quotation.status).value,
        'submissionDate': quotation.submission_date.isoformat() if quotation.submission_date else None,
        'reviewedAt': quotation.reviewed_at.isoformat() if quotation.reviewed_at else None,
        'rejectionReason': quotation.rejection_reason,
        'rejectionNotes': quotation.rejection_notes,
        'canResubmit': quotation.can_resubmit,
    }


def list_quotations(
    db: Session,
    *,
    ctx: RequestContext,
    status: QuotationStatus | None = None,
    supplier_id: int | None = None,
) -> list[dict]:
    query = (
        select(SupplierQuotationSubmission, Supplier, RequestForQuotation, PurchaseOrder.po_number)
        .join(Supplier, Supplier.id == SupplierQuotationSubmission.supplier_id)
        .outerjoin(RequestForQuotation, RequestForQuotation.id == SupplierQuotationSubmission.rfq_id)
        .outerjoin(PurchaseOrder, PurchaseOrder.id == SupplierQuotationSubmission.purchase_order_id)
        .where(Supplier.organization_id == ctx.organization_id)
    )
    if status is not None:
        query = query.where(SupplierQuotationSubmission.status == status)
    if supplier_id is not None:
        query = query.where(SupplierQuotationSubmission.supplier_id == supplier_id)
    query = query.order_by(
        SupplierQuotationSubmission.submission_date.desc(),
        SupplierQuotationSubmission.created_at.desc(),
        SupplierQuotationSubmission.id.desc(),
    )
    return [
        serialize_quotation(quotation, supplier=supplier, rfq=rfq, po_number=po_number)
        for quotation, supplier, rfq, po_number in db.execute(query).all()
    ]
