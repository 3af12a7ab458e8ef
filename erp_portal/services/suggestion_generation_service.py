from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from erp_portal.auth import RequestContext
from erp_portal.models import PurchaseOrderSuggestion, ReorderPriority, SuggestionStatus
from erp_portal.services.procurement_settings_service import ProcurementParams, resolve_procurement_params
from erp_portal.services.reorder_evaluation_service import (
    ConsumptionLoader,
    ShortageCandidate,
    StockLoader,
    evaluate_reorder_candidates,
)

logger = logging.getLogger(__name__)

OPEN_STATUSES = (SuggestionStatus.PENDING, SuggestionStatus.APPROVED)


@dataclass(frozen=True)
class GenerationSummary:
    created: int
    skipped: int
    failed: int


def resolve_priority(candidate: ShortageCandidate, *, critical_days_threshold: int) -> ReorderPriority:
    days = candidate.days_of_stock_remaining
    if days is not None and days <= critical_days_threshold:
        return ReorderPriority.CRITICAL
    return candidate.priority


def _open_suggestion_keys(db: Session, *, organization_id: int) -> set[tuple[int, int]]:
    rows = db.execute(
        select(PurchaseOrderSuggestion.product_id, func.coalesce(PurchaseOrderSuggestion.warehouse_id, 0)).where(
            PurchaseOrderSuggestion.organization_id == organization_id,
            PurchaseOrderSuggestion.status.in_(OPEN_STATUSES),
        )
    ).all()
    return {(int(product_id), int(warehouse_key)) for product_id, warehouse_key in rows}


def _suggestion_key(candidate: ShortageCandidate) -> tuple[int, int]:
    return candidate.product_id, candidate.warehouse_id or 0


def generate_suggestions(
    db: Session,
    *,
    ctx: RequestContext,
    stock_loader: StockLoader | None = None,
    consumption_loader: ConsumptionLoader | None = None,
    params: ProcurementParams | None = None,
) -> GenerationSummary:
    if params is None:
        params = resolve_procurement_params(db, organization_id=ctx.organization_id)

    failures: list[int] = []
    candidates = evaluate_reorder_candidates(
        db,
        ctx=ctx,
        stock_loader=stock_loader,
        consumption_loader=consumption_loader,
        params=params,
        failures=failures,
    )
    open_keys = _open_suggestion_keys(db, organization_id=ctx.organization_id)
    created = 0
    skipped = 0

    for candidate in candidates:
        key = _suggestion_key(candidate)
        if key in open_keys:
            skipped += 1
            continue
        try:
            with db.begin_nested():
                db.add(
                    PurchaseOrderSuggestion(
                        organization_id=ctx.organization_id,
                        product_id=candidate.product_id,
                        warehouse_id=candidate.warehouse_id,
                        reorder_rule_id=candidate.rule_id,
                        current_stock=candidate.current_stock,
                        suggested_quantity=candidate.suggested_quantity,
                        days_of_stock_remaining=candidate.days_of_stock_remaining,
                        priority=resolve_priority(candidate, critical_days_threshold=params.critical_days_threshold),
                        status=SuggestionStatus.PENDING,
                    )
                )
        except IntegrityError:
            # A concurrent run already opened a suggestion for this product/warehouse.
            logger.info(
                'Open suggestion already exists for product %s warehouse %s',
                candidate.product_id,
                candidate.warehouse_id,
            )
            skipped += 1
            continue
        open_keys.add(key)
        created += 1

    if failures:
        logger.warning('Suggestion generation skipped %s rule(s) that could not be evaluated: %s', len(failures), failures)
    logger.info(
        'Generated %s purchase order suggestion(s) for organization %s (%s skipped)',
        created,
        ctx.organization_id,
        skipped,
    )
    return GenerationSummary(created=created, skipped=skipped, failed=len(failures))
