from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import case, select
from sqlalchemy.orm import Session

from erp_portal.auth import RequestContext
from erp_portal.errors import InvalidTransitionError, MissingSupplierError, NotFoundError
from erp_portal.models import (
    Product,
    ProductSupplier,
    PurchaseOrder,
    PurchaseOrderSuggestion,
    ReorderPriority,
    SuggestionStatus,
    Supplier,
    Warehouse,
)
from erp_portal.services.procurement_settings_service import ProcurementParams, resolve_procurement_params
from erp_portal.services.purchase_order_service import (
    PurchaseOrderLineInput,
    default_receiving_warehouse,
    get_warehouse,
    materialize_purchase_order,
)

logger = logging.getLogger(__name__)

PRIORITY_RANK = {
    ReorderPriority.CRITICAL: 1,
    ReorderPriority.HIGH: 2,
    ReorderPriority.NORMAL: 3,
    ReorderPriority.LOW: 4,
}

# Approved may be re-entered to retry an approval that stalled on a missing supplier.
ALLOWED_TRANSITIONS = {
    SuggestionStatus.PENDING: {SuggestionStatus.APPROVED, SuggestionStatus.REJECTED},
    SuggestionStatus.APPROVED: {SuggestionStatus.APPROVED},
    SuggestionStatus.REJECTED: set(),
    SuggestionStatus.ORDERED: set(),
}


@dataclass
class ApprovalOutcome:
    suggestion: PurchaseOrderSuggestion
    purchase_order: PurchaseOrder | None
    message: str


@dataclass(frozen=True)
class SupplierChoice:
    supplier: Supplier
    unit_price: Decimal | None


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def parse_target_status(value: str | SuggestionStatus) -> SuggestionStatus:
    try:
        target = SuggestionStatus(value)
    except ValueError as exc:
        raise InvalidTransitionError(f'Unknown suggestion status: {value}') from exc
    if target not in {SuggestionStatus.APPROVED, SuggestionStatus.REJECTED}:
        raise InvalidTransitionError('Status must be approved or rejected')
    return target


def assert_transition_allowed(current: SuggestionStatus, target: SuggestionStatus) -> None:
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(f'Cannot change a {current.value} suggestion to {target.value}')


def lock_suggestion(db: Session, *, ctx: RequestContext, suggestion_id: int) -> PurchaseOrderSuggestion:
    suggestion = db.execute(
        select(PurchaseOrderSuggestion)
        .where(
            PurchaseOrderSuggestion.id == suggestion_id,
            PurchaseOrderSuggestion.organization_id == ctx.organization_id,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if not suggestion:
        raise NotFoundError('Suggestion not found')
    return suggestion


def resolve_primary_supplier(db: Session, *, ctx: RequestContext, product_id: int) -> SupplierChoice | None:
    row = db.execute(
        select(ProductSupplier, Supplier)
        .join(Supplier, Supplier.id == ProductSupplier.supplier_id)
        .where(
            ProductSupplier.product_id == product_id,
            ProductSupplier.active.is_(True),
            Supplier.organization_id == ctx.organization_id,
            Supplier.active.is_(True),
        )
        .order_by(
            ProductSupplier.is_primary.desc(),
            ProductSupplier.created_at.desc(),
            ProductSupplier.id.desc(),
        )
        .limit(1)
    ).first()
    if not row:
        return None
    mapping, supplier = row
    return SupplierChoice(supplier=supplier, unit_price=mapping.unit_price)


def _receiving_warehouse(db: Session, *, ctx: RequestContext, suggestion: PurchaseOrderSuggestion) -> Warehouse:
    if suggestion.warehouse_id is not None:
        return get_warehouse(db, ctx=ctx, warehouse_id=suggestion.warehouse_id)
    return default_receiving_warehouse(db, ctx=ctx)


def _order_from_suggestion(
    db: Session,
    *,
    ctx: RequestContext,
    suggestion: PurchaseOrderSuggestion,
    params: ProcurementParams,
) -> PurchaseOrder:
    choice = resolve_primary_supplier(db, ctx=ctx, product_id=suggestion.product_id)
    if choice is None:
        raise MissingSupplierError('No supplier is linked to this product. Assign a supplier first.')

    product = db.execute(
        select(Product).where(Product.id == suggestion.product_id, Product.organization_id == ctx.organization_id)
    ).scalar_one_or_none()
    if not product:
        raise NotFoundError('Product not found')

    unit_price = choice.unit_price if choice.unit_price is not None else product.cost_price
    purchase_order = materialize_purchase_order(
        db,
        ctx=ctx,
        supplier=choice.supplier,
        warehouse=_receiving_warehouse(db, ctx=ctx, suggestion=suggestion),
        lines=[
            PurchaseOrderLineInput(
                product_id=product.id,
                quantity=Decimal(suggestion.suggested_quantity),
                unit_price=Decimal(unit_price or 0),
                tax_rate=params.default_tax_rate,
                description=product.name,
            )
        ],
        notes=f'Auto-generated from purchase order suggestion #{suggestion.id}',
    )

    suggestion.status = SuggestionStatus.ORDERED
    suggestion.po_number = purchase_order.po_number
    suggestion.purchase_order_id = purchase_order.id
    suggestion.updated_at = _now()
    db.flush()
    return purchase_order


def set_suggestion_status(
    db: Session,
    *,
    ctx: RequestContext,
    suggestion_id: int,
    status: str | SuggestionStatus,
    notes: str | None = None,
    params: ProcurementParams | None = None,
) -> ApprovalOutcome:
    """Approve or reject a suggestion; approval materializes a draft purchase order.

    Everything happens in the caller's transaction. When no supplier can be resolved
    the suggestion is left approved and MissingSupplierError is raised after the flush,
    so the caller may still commit the approval.
    """
    target = parse_target_status(status)
    suggestion = lock_suggestion(db, ctx=ctx, suggestion_id=suggestion_id)
    assert_transition_allowed(SuggestionStatus(suggestion.status), target)

    if notes is not None:
        suggestion.notes = notes
    suggestion.updated_at = _now()

    if target == SuggestionStatus.REJECTED:
        suggestion.status = SuggestionStatus.REJECTED
        db.flush()
        logger.info('Suggestion %s rejected by principal %s', suggestion.id, ctx.principal_id)
        return ApprovalOutcome(suggestion=suggestion, purchase_order=None, message='Suggestion rejected')

    suggestion.status = SuggestionStatus.APPROVED
    if suggestion.approved_at is None:
        suggestion.approved_at = _now()
    suggestion.approved_by_principal_id = ctx.principal_id
    db.flush()

    if params is None:
        params = resolve_procurement_params(db, organization_id=ctx.organization_id)
    purchase_order = _order_from_suggestion(db, ctx=ctx, suggestion=suggestion, params=params)
    logger.info(
        'Suggestion %s approved by principal %s, purchase order %s created',
        suggestion.id,
        ctx.principal_id,
        purchase_order.po_number,
    )
    return ApprovalOutcome(
        suggestion=suggestion,
        purchase_order=purchase_order,
        message=f'Suggestion approved and purchase order {purchase_order.po_number} created',
    )


def serialize_suggestion(
    suggestion: PurchaseOrderSuggestion,
    *,
    product: Product | None = None,
    warehouse_name: str | None = None,
) -> dict:
    return {
        'id': suggestion.id,
        'productId': suggestion.product_id,
        'productName': product.name if product else None,
        'productSku': product.sku if product else None,
        'categoryName': product.category_name if product else None,
        'warehouseId': suggestion.warehouse_id,
        'warehouseName': warehouse_name,
        'reorderRuleId': suggestion.reorder_rule_id,
        'currentStock': str(suggestion.current_stock),
        'suggestedQuantity': str(suggestion.suggested_quantity),
        'daysOfStockRemaining': suggestion.days_of_stock_remaining,
        'priority': ReorderPriority(suggestion.priority).value,
        'status': SuggestionStatus(suggestion.status).value,
        'poNumber': suggestion.po_number,
        'purchaseOrderId': suggestion.purchase_order_id,
        'notes': suggestion.notes,
        'approvedAt': suggestion.approved_at.isoformat() if suggestion.approved_at else None,
        'createdAt': suggestion.created_at.isoformat() if suggestion.created_at else None,
    }


def list_suggestions(db: Session, *, ctx: RequestContext, status: str = 'pending') -> list[dict]:
    query = (
        select(PurchaseOrderSuggestion, Product, Warehouse.name)
        .join(Product, Product.id == PurchaseOrderSuggestion.product_id)
        .outerjoin(Warehouse, Warehouse.id == PurchaseOrderSuggestion.warehouse_id)
        .where(PurchaseOrderSuggestion.organization_id == ctx.organization_id)
    )
    if status != 'all':
        try:
            status_filter = SuggestionStatus(status)
        except ValueError as exc:
            raise ValueError(f'Unknown suggestion status: {status}') from exc
        query = query.where(PurchaseOrderSuggestion.status == status_filter)

    query = query.order_by(
        case(PRIORITY_RANK, value=PurchaseOrderSuggestion.priority, else_=5),
        PurchaseOrderSuggestion.days_of_stock_remaining.is_(None),
        PurchaseOrderSuggestion.days_of_stock_remaining.asc(),
        PurchaseOrderSuggestion.created_at.desc(),
        PurchaseOrderSuggestion.id.desc(),
    )
    return [
        serialize_suggestion(suggestion, product=product, warehouse_name=warehouse_name)
        for suggestion, product, warehouse_name in db.execute(query).all()
    ]
