from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_FLOOR

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from erp_portal.auth import RequestContext
from erp_portal.models import (
    ReorderPriority,
    ReorderRule,
    StockLevel,
    StockMovement,
    StockMovementType,
    Warehouse,
)
from erp_portal.services.procurement_settings_service import ProcurementParams, resolve_procurement_params

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShortageCandidate:
    rule_id: int
    product_id: int
    warehouse_id: int | None
    current_stock: Decimal
    reorder_point: Decimal
    reorder_quantity: Decimal
    suggested_quantity: Decimal
    days_of_stock_remaining: int | None
    priority: ReorderPriority


# (product_id, warehouse_id or None for all warehouses) -> available quantity
StockLoader = Callable[[int, int | None], Decimal]
# (product_id, warehouse_id or None, lookback_days) -> total units consumed in the window
ConsumptionLoader = Callable[[int, int | None, int], Decimal]


def list_active_rules(db: Session, *, organization_id: int) -> list[ReorderRule]:
    return list(
        db.execute(
            select(ReorderRule)
            .where(ReorderRule.organization_id == organization_id, ReorderRule.active.is_(True))
            .order_by(ReorderRule.id.asc())
        ).scalars()
    )


def load_available_stock(db: Session, *, organization_id: int, product_id: int, warehouse_id: int | None) -> Decimal:
    query = (
        select(func.coalesce(func.sum(StockLevel.quantity_on_hand - StockLevel.quantity_reserved), 0))
        .join(Warehouse, Warehouse.id == StockLevel.warehouse_id)
        .where(Warehouse.organization_id == organization_id, StockLevel.product_id == product_id)
    )
    if warehouse_id is not None:
        query = query.where(StockLevel.warehouse_id == warehouse_id)
    return Decimal(db.execute(query).scalar_one() or 0)


def load_consumed_units(
    db: Session,
    *,
    organization_id: int,
    product_id: int,
    warehouse_id: int | None,
    lookback_days: int,
) -> Decimal:
    since = datetime.now(tz=timezone.utc) - timedelta(days=lookback_days)
    query = select(func.coalesce(func.sum(func.abs(StockMovement.quantity)), 0)).where(
        StockMovement.organization_id == organization_id,
        StockMovement.product_id == product_id,
        StockMovement.movement_type == StockMovementType.OUT,
        StockMovement.created_at >= since,
    )
    if warehouse_id is not None:
        query = query.where(StockMovement.warehouse_id == warehouse_id)
    return Decimal(db.execute(query).scalar_one() or 0)


def compute_suggested_quantity(
    *, available: Decimal, reorder_quantity: Decimal, max_quantity: Decimal | None
) -> Decimal:
    if max_quantity is None:
        return Decimal(reorder_quantity)
    # Top up toward the ceiling, never below the configured reorder quantity.
    return max(Decimal(reorder_quantity), Decimal(max_quantity) - available)


def compute_days_of_stock(*, available: Decimal, consumed_units: Decimal, lookback_days: int) -> int | None:
    if consumed_units <= 0 or lookback_days <= 0:
        return None
    average_daily = Decimal(consumed_units) / Decimal(lookback_days)
    days = (max(available, Decimal('0')) / average_daily).to_integral_value(rounding=ROUND_FLOOR)
    return int(days)


def evaluate_rule(
    rule: ReorderRule,
    *,
    available: Decimal,
    consumed_units: Decimal,
    lookback_days: int,
) -> ShortageCandidate | None:
    if rule.reorder_quantity is None or Decimal(rule.reorder_quantity) <= 0:
        raise ValueError(f'Reorder rule {rule.id} has no positive reorder quantity')
    if available > Decimal(rule.reorder_point):
        return None

    return ShortageCandidate(
        rule_id=rule.id,
        product_id=rule.product_id,
        warehouse_id=rule.warehouse_id,
        current_stock=available,
        reorder_point=Decimal(rule.reorder_point),
        reorder_quantity=Decimal(rule.reorder_quantity),
        suggested_quantity=compute_suggested_quantity(
            available=available,
            reorder_quantity=Decimal(rule.reorder_quantity),
            max_quantity=Decimal(rule.max_quantity) if rule.max_quantity is not None else None,
        ),
        days_of_stock_remaining=compute_days_of_stock(
            available=available,
            consumed_units=consumed_units,
            lookback_days=lookback_days,
        ),
        priority=ReorderPriority(rule.priority),
    )


def evaluate_reorder_candidates(
    db: Session,
    *,
    ctx: RequestContext,
    stock_loader: StockLoader | None = None,
    consumption_loader: ConsumptionLoader | None = None,
    params: ProcurementParams | None = None,
    failures: list[int] | None = None,
) -> list[ShortageCandidate]:
    """Return every active rule whose available stock is at or below its reorder point.

    Rules that cannot be evaluated are logged and skipped; their ids are appended
    to ``failures`` when a list is passed in.
    """
    if params is None:
        params = resolve_procurement_params(db, organization_id=ctx.organization_id)
    if stock_loader is None:

        def stock_loader(product_id: int, warehouse_id: int | None) -> Decimal:
            return load_available_stock(
                db, organization_id=ctx.organization_id, product_id=product_id, warehouse_id=warehouse_id
            )

    if consumption_loader is None:

        def consumption_loader(product_id: int, warehouse_id: int | None, lookback_days: int) -> Decimal:
            return load_consumed_units(
                db,
                organization_id=ctx.organization_id,
                product_id=product_id,
                warehouse_id=warehouse_id,
                lookback_days=lookback_days,
            )

    candidates: list[ShortageCandidate] = []
    for rule in list_active_rules(db, organization_id=ctx.organization_id):
        try:
            available = Decimal(stock_loader(rule.product_id, rule.warehouse_id))
            if available > Decimal(rule.reorder_point):
                continue
            consumed = Decimal(consumption_loader(rule.product_id, rule.warehouse_id, params.consumption_lookback_days))
            candidate = evaluate_rule(
                rule,
                available=available,
                consumed_units=consumed,
                lookback_days=params.consumption_lookback_days,
            )
        except (ValueError, ArithmeticError) as exc:
            logger.warning('Skipping reorder rule %s: %s', rule.id, exc)
            if failures is not None:
                failures.append(rule.id)
            continue
        if candidate is not None:
            candidates.append(candidate)
    return candidates
