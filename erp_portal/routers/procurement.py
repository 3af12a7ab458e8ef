from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from erp_portal.auth import Principal, context_for, require_permission
from erp_portal.db import get_db
from erp_portal.dependencies import get_client_ip
from erp_portal.errors import MissingSupplierError, NotFoundError
from erp_portal.schemas import ProcurementSettingsUpdate, ReorderRuleCreate, ReorderRuleUpdate, SuggestionStatusUpdate
from erp_portal.services.audit_service import log_audit
from erp_portal.services.notification_service import EmailSender, deliver_purchase_order_email, get_email_sender
from erp_portal.services.procurement_settings_service import resolve_procurement_params, upsert_procurement_settings
from erp_portal.services.purchase_order_service import serialize_purchase_order
from erp_portal.services.reorder_rule_service import create_rule, delete_rule, list_rules, serialize_rule, update_rule
from erp_portal.services.suggestion_approval_service import list_suggestions, serialize_suggestion, set_suggestion_status
from erp_portal.services.suggestion_generation_service import generate_suggestions

router = APIRouter(prefix='/inventory/procurement', tags=['procurement'])


@router.get('/po-suggestions')
def get_suggestions(
    status: str = Query(default='pending'),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission('inventory', 'view')),
):
    try:
        suggestions = list_suggestions(db, ctx=context_for(principal), status=status)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {'suggestions': suggestions}


@router.post('/po-suggestions')
def post_generate_suggestions(
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission('inventory', 'edit')),
):
    ctx = context_for(principal)
    summary = generate_suggestions(db, ctx=ctx)
    log_audit(
        db,
        organization_id=ctx.organization_id,
        actor_principal_id=principal.id,
        action='PO_SUGGESTIONS_GENERATED',
        ip=get_client_ip(request),
        metadata={'created': summary.created, 'skipped': summary.skipped, 'failed': summary.failed},
    )
    db.commit()
    return {
        'message': 'Purchase order suggestions generated successfully',
        'count': summary.created,
        'skipped': summary.skipped,
        'failed': summary.failed,
    }


@router.put('/po-suggestions')
def put_suggestion_status(
    payload: SuggestionStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission('inventory', 'edit')),
    sender: EmailSender = Depends(get_email_sender),
):
    ctx = context_for(principal)
    ip = get_client_ip(request)
    try:
        outcome = set_suggestion_status(
            db,
            ctx=ctx,
            suggestion_id=payload.id,
            status=payload.status,
            notes=payload.notes,
        )
    except MissingSupplierError as exc:
        # The approval itself stands; only the purchase order is deferred.
        log_audit(
            db,
            organization_id=ctx.organization_id,
            actor_principal_id=principal.id,
            action='PO_SUGGESTION_APPROVED_WITHOUT_SUPPLIER',
            ip=ip,
            metadata={'suggestion_id': payload.id},
        )
        db.commit()
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    suggestion = outcome.suggestion
    purchase_order = outcome.purchase_order
    log_audit(
        db,
        organization_id=ctx.organization_id,
        actor_principal_id=principal.id,
        action=f'PO_SUGGESTION_{suggestion.status.value.upper()}',
        ip=ip,
        metadata={
            'suggestion_id': suggestion.id,
            'purchase_order_id': purchase_order.id if purchase_order else None,
            'po_number': purchase_order.po_number if purchase_order else None,
        },
    )
    db.commit()

    body = {
        'suggestion': serialize_suggestion(suggestion),
        'purchaseOrder': serialize_purchase_order(purchase_order) if purchase_order else None,
        'message': outcome.message,
    }
    if purchase_order is not None:
        warning = deliver_purchase_order_email(
            db,
            ctx=ctx,
            purchase_order_id=purchase_order.id,
            sender=sender,
            ip=ip,
        )
        if warning:
            body['warning'] = warning
    return body


@router.get('/reorder-rules')
def get_reorder_rules(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission('inventory', 'view')),
):
    return {'rules': list_rules(db, ctx=context_for(principal))}


@router.post('/reorder-rules', status_code=201)
def post_reorder_rule(
    payload: ReorderRuleCreate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission('inventory', 'edit')),
):
    ctx = context_for(principal)
    try:
        rule = create_rule(
            db,
            ctx=ctx,
            product_id=payload.product_id,
            warehouse_id=payload.warehouse_id,
            reorder_point=payload.reorder_point,
            reorder_quantity=payload.reorder_quantity,
            max_quantity=payload.max_quantity,
            lead_time_days=payload.lead_time_days,
            priority=payload.priority,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    log_audit(
        db,
        organization_id=ctx.organization_id,
        actor_principal_id=principal.id,
        action='REORDER_RULE_CREATED',
        ip=get_client_ip(request),
        metadata={'rule_id': rule.id, 'product_id': rule.product_id, 'warehouse_id': rule.warehouse_id},
    )
    db.commit()
    return {'rule': serialize_rule(rule)}


@router.put('/reorder-rules')
def put_reorder_rule(
    payload: ReorderRuleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission('inventory', 'edit')),
):
    ctx = context_for(principal)
    changes = payload.model_dump(exclude_unset=True, exclude={'id'})
    try:
        rule = update_rule(db, ctx=ctx, rule_id=payload.id, changes=changes)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    log_audit(
        db,
        organization_id=ctx.organization_id,
        actor_principal_id=principal.id,
        action='REORDER_RULE_UPDATED',
        ip=get_client_ip(request),
        metadata={'rule_id': rule.id, 'fields': sorted(changes)},
    )
    db.commit()
    return {'rule': serialize_rule(rule)}


@router.delete('/reorder-rules')
def delete_reorder_rule(
    request: Request,
    rule_id: int = Query(alias='id'),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission('inventory', 'delete')),
):
    ctx = context_for(principal)
    try:
        delete_rule(db, ctx=ctx, rule_id=rule_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    log_audit(
        db,
        organization_id=ctx.organization_id,
        actor_principal_id=principal.id,
        action='REORDER_RULE_DELETED',
        ip=get_client_ip(request),
        metadata={'rule_id': rule_id},
    )
    db.commit()
    return {'message': 'Rule deleted successfully'}


@router.get('/settings')
def get_procurement_settings(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission('inventory', 'view')),
):
    params = resolve_procurement_params(db, organization_id=principal.organization_id)
    return {
        'defaultTaxRate': str(params.default_tax_rate),
        'criticalDaysThreshold': params.critical_days_threshold,
        'consumptionLookbackDays': params.consumption_lookback_days,
    }


@router.put('/settings')
def put_procurement_settings(
    payload: ProcurementSettingsUpdate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission('inventory', 'edit')),
):
    try:
        upsert_procurement_settings(
            db,
            organization_id=principal.organization_id,
            actor_principal_id=principal.id,
            default_tax_rate=payload.default_tax_rate,
            critical_days_threshold=payload.critical_days_threshold,
            consumption_lookback_days=payload.consumption_lookback_days,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    log_audit(
        db,
        organization_id=principal.organization_id,
        actor_principal_id=principal.id,
        action='PROCUREMENT_SETTINGS_UPDATED',
        ip=get_client_ip(request),
        metadata=payload.model_dump(mode='json'),
    )
    db.commit()
    return get_procurement_settings(db=db, principal=principal)
