from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from erp_portal.auth import RequestContext
from erp_portal.errors import NotFoundError
from erp_portal.models import Product, ReorderPriority, ReorderRule, Warehouse
from erp_portal.services.reorder_evaluation_service import load_available_stock

UPDATABLE_FIELDS = (
    'reorder_point',
    'reorder_quantity',
    'max_quantity',
    'lead_time_days',
    'priority',
    'active',
)


def _validate_levels(
    *,
    reorder_point: Decimal,
    reorder_quantity: Decimal,
    max_quantity: Decimal | None,
    lead_time_days: int,
) -> None:
    if reorder_point < 0:
        raise ValueError('Reorder point cannot be negative')
    if reorder_quantity <= 0:
        raise ValueError('Reorder quantity must be greater than zero')
    if max_quantity is not None and max_quantity < reorder_point:
        raise ValueError('Max quantity cannot be below the reorder point')
    if lead_time_days < 0:
        raise ValueError('Lead time days cannot be negative')


def _ensure_product(db: Session, *, ctx: RequestContext, product_id: int) -> Product:
    product = db.execute(
        select(Product).where(Product.id == product_id, Product.organization_id == ctx.organization_id)
    ).scalar_one_or_none()
    if not product:
        raise NotFoundError('Product not found')
    return product


def _ensure_warehouse(db: Session, *, ctx: RequestContext, warehouse_id: int | None) -> Warehouse | None:
    if warehouse_id is None:
        return None
    warehouse = db.execute(
        select(Warehouse).where(Warehouse.id == warehouse_id, Warehouse.organization_id == ctx.organization_id)
    ).scalar_one_or_none()
    if not warehouse:
        raise NotFoundError('Warehouse not found')
    return warehouse


def get_rule(db: Session, *, ctx: RequestContext, rule_id: int) -> ReorderRule:
    rule = db.execute(
        select(ReorderRule).where(ReorderRule.id == rule_id, ReorderRule.organization_id == ctx.organization_id)
    ).scalar_one_or_none()
    if not rule:
        raise NotFoundError('Rule not found')
    return rule


def create_rule(
    db: Session,
    *,
    ctx: RequestContext,
    product_id: int,
    warehouse_id: int | None,
    reorder_point: Decimal,
    reorder_quantity: Decimal,
    max_quantity: Decimal | None = None,
    lead_time_days: int = 0,
    priority: ReorderPriority = ReorderPriority.NORMAL,
) -> ReorderRule:
    _ensure_product(db, ctx=ctx, product_id=product_id)
    _ensure_warehouse(db, ctx=ctx, warehouse_id=warehouse_id)
    _validate_levels(
        reorder_point=reorder_point,
        reorder_quantity=reorder_quantity,
        max_quantity=max_quantity,
        lead_time_days=lead_time_days,
    )
    rule = ReorderRule(
        organization_id=ctx.organization_id,
        product_id=product_id,
        warehouse_id=warehouse_id,
        reorder_point=reorder_point,
        reorder_quantity=reorder_quantity,
        max_quantity=max_quantity,
        lead_time_days=lead_time_days,
        priority=ReorderPriority(priority),
        active=True,
    )
    db.add(rule)
    db.flush()
    return rule


def update_rule(db: Session, *, ctx: RequestContext, rule_id: int, changes: dict) -> ReorderRule:
    rule = get_rule(db, ctx=ctx, rule_id=rule_id)
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f'Unsupported field: {sorted(unknown)[0]}')

    for field_name, value in changes.items():
        if field_name == 'priority' and value is not None:
            value = ReorderPriority(value)
        if field_name in {'reorder_point', 'reorder_quantity', 'lead_time_days', 'priority', 'active'} and value is None:
            raise ValueError(f'{field_name} cannot be empty')
        setattr(rule, field_name, value)

    _validate_levels(
        reorder_point=Decimal(rule.reorder_point),
        reorder_quantity=Decimal(rule.reorder_quantity),
        max_quantity=Decimal(rule.max_quantity) if rule.max_quantity is not None else None,
        lead_time_days=rule.lead_time_days,
    )
    rule.updated_at = datetime.now(tz=timezone.utc)
    db.flush()
    return rule


def delete_rule(db: Session, *, ctx: RequestContext, rule_id: int) -> None:
    rule = get_rule(db, ctx=ctx, rule_id=rule_id)
    db.delete(rule)
    db.flush()


def serialize_rule(
    rule: ReorderRule,
    *,
    product: Product | None = None,
    warehouse_name: str | None = None,
    current_stock: Decimal | None = None,
) -> dict:
    return {
        'id': rule.id,
        'productId': rule.product_id,
        'productName': product.name if product else None,
        'productSku': product.sku if product else None,
        'warehouseId': rule.warehouse_id,
        'warehouseName': warehouse_name,
        'reorderPoint': str(rule.reorder_point),
        'reorderQuantity': str(rule.reorder_quantity),
        'maxQuantity': str(rule.max_quantity) if rule.max_quantity is not None else None,
        'leadTimeDays': rule.lead_time_days,
        'priority': ReorderPriority(rule.priority).value,
        'active': rule.active,
        'currentStock': str(current_stock) if current_stock is not None else None,
    }


def list_rules(db: Session, *, ctx: RequestContext) -> list[dict]:
    rows = db.execute(
        select(ReorderRule, Product, Warehouse.name)
        .join(Product, Product.id == ReorderRule.product_id)
        .outerjoin(Warehouse, Warehouse.id == ReorderRule.warehouse_id)
        .where(ReorderRule.organization_id == ctx.organization_id)
        .order_by(Product.name.asc(), ReorderRule.id.asc())
    ).all()
    return [
        serialize_rule(
            rule,
            product=product,
            warehouse_name=warehouse_name,
            current_stock=load_available_stock(
                db,
                organization_id=ctx.organization_id,
                product_id=rule.product_id,
                warehouse_id=rule.warehouse_id,
            ),
        )
        for rule, product, warehouse_name in rows
    ]
