from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from erp_portal.auth import Principal, context_for, require_permission
from erp_portal.db import get_db
from erp_portal.dependencies import get_client_ip
from erp_portal.errors import NotFoundError, NotificationError
from erp_portal.models import PurchaseOrderStatus, QuotationStatus
from erp_portal.schemas import PurchaseOrderCreate, QuotationResubmission, QuotationReview
from erp_portal.services.analytics_service import ReportFilters, purchasing_report
from erp_portal.services.audit_service import log_audit
from erp_portal.services.notification_service import EmailSender, get_email_sender, send_purchase_order_email
from erp_portal.services.purchase_order_service import (
    PurchaseOrderLineInput,
    create_purchase_order,
    get_purchase_order_detail,
    list_purchase_orders,
)
from erp_portal.services.quotation_review_service import (
    list_quotations,
    resubmit_quotation,
    review_quotation,
    serialize_quotation,
)

router = APIRouter(prefix='/purchasing', tags=['purchasing'])


def _parse_enum(enum_cls, value: str | None, label: str):
    if not value:
        return None
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f'Invalid {label}: {value}') from exc


@router.get('/orders')
def get_orders(
    status: str | None = Query(default=None),
    supplier_id: int | None = Query(default=None, alias='supplierId'),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission('purchasing', 'view')),
):
    orders = list_purchase_orders(
        db,
        ctx=context_for(principal),
        status=_parse_enum(PurchaseOrderStatus, status, 'status'),
        supplier_id=supplier_id,
    )
    return {'purchaseOrders': orders}


@router.get('/orders/{purchase_order_id}')
def get_order(
    purchase_order_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission('purchasing', 'view')),
):
    try:
        detail = get_purchase_order_detail(db, ctx=context_for(principal), purchase_order_id=purchase_order_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {'purchaseOrder': detail}


@router.post('/orders', status_code=201)
def post_order(
    payload: PurchaseOrderCreate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission('purchasing', 'create')),
):
    ctx = context_for(principal)
    try:
        purchase_order = create_purchase_order(
            db,
            ctx=ctx,
            supplier_id=payload.supplier_id,
            warehouse_id=payload.warehouse_id,
            lines=[
                PurchaseOrderLineInput(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    tax_rate=line.tax_rate,
                    description=line.description,
                )
                for line in payload.lines
            ],
            notes=payload.notes,
            expected_delivery_date=payload.expected_delivery_date,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    log_audit(
        db,
        organization_id=ctx.organization_id,
        actor_principal_id=principal.id,
        action='PURCHASE_ORDER_CREATED',
        ip=get_client_ip(request),
        metadata={'purchase_order_id': purchase_order.id, 'po_number': purchase_order.po_number},
    )
    db.commit()
    return {'purchaseOrder': get_purchase_order_detail(db, ctx=ctx, purchase_order_id=purchase_order.id)}


@router.post('/orders/{purchase_order_id}/send')
def post_send_order(
    purchase_order_id: int,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission('purchasing', 'edit')),
    sender: EmailSender = Depends(get_email_sender),
):
    try:
        send_status = send_purchase_order_email(
            db,
            ctx=context_for(principal),
            purchase_order_id=purchase_order_id,
            sender=sender,
            ip=get_client_ip(request),
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except NotificationError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    db.commit()
    return {'success': True, 'message': 'Purchase order sent successfully', 'status': send_status}


@router.get('/supplier-quotations')
def get_supplier_quotations(
    status: str | None = Query(default=None),
    supplier_id: int | None = Query(default=None, alias='supplierId'),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission('purchasing', 'view')),
):
    quotations = list_quotations(
        db,
        ctx=context_for(principal),
        status=_parse_enum(QuotationStatus, status, 'status'),
        supplier_id=supplier_id,
    )
    return {'quotations': quotations, 'total': len(quotations)}


@router.put('/supplier-quotations')
def put_supplier_quotation(
    payload: QuotationReview,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission('purchasing', 'edit')),
):
    ctx = context_for(principal)
    try:
        outcome = review_quotation(
            db,
            ctx=ctx,
            quotation_id=payload.quotation_id,
            status=payload.status,
            rejection_reason=payload.rejection_reason,
            rejection_notes=payload.rejection_notes,
            can_resubmit=payload.can_resubmit,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    log_audit(
        db,
        organization_id=ctx.organization_id,
        actor_principal_id=principal.id,
        action=f'QUOTATION_{outcome.quotation.status.value.upper()}',
        ip=get_client_ip(request),
        metadata={'quotation_id': outcome.quotation.id, 'invoice_number': outcome.invoice_number},
    )
    db.commit()

    body = {'message': outcome.message, 'success': True}
    if outcome.invoice_number:
        body['invoiceNumber'] = outcome.invoice_number
    return body


@router.post('/supplier-quotations/{quotation_id}/resubmit')
def post_resubmit_quotation(
    quotation_id: int,
    payload: QuotationResubmission,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission('purchasing', 'edit')),
):
    try:
        quotation = resubmit_quotation(
            db,
            supplier_id=payload.supplier_id,
            quotation_id=quotation_id,
            total_amount=payload.total_amount,
            organization_id=principal.organization_id,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    log_audit(
        db,
        organization_id=principal.organization_id,
        actor_principal_id=principal.id,
        action='QUOTATION_RESUBMITTED',
        ip=get_client_ip(request),
        metadata={'quotation_id': quotation.id},
    )
    db.commit()
    return {'quotation': serialize_quotation(quotation), 'message': 'Quotation resubmitted successfully'}


@router.get('/analytics')
def get_purchasing_analytics(
    start_date: date | None = Query(default=None, alias='startDate'),
    end_date: date | None = Query(default=None, alias='endDate'),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission('purchasing', 'view')),
):
    return purchasing_report(
        db,
        ctx=context_for(principal),
        filters=ReportFilters(start_date=start_date, end_date=end_date),
    )
