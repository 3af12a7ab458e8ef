from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from erp_portal.config import settings
from erp_portal.models import ProcurementSetting


@dataclass(frozen=True)
class ProcurementParams:
    default_tax_rate: Decimal
    critical_days_threshold: int
    consumption_lookback_days: int


def _validate_params(*, default_tax_rate: Decimal, critical_days_threshold: int, consumption_lookback_days: int) -> None:
    if default_tax_rate < 0 or default_tax_rate > 100:
        raise ValueError('Tax rate must be between 0 and 100')
    if critical_days_threshold < 0:
        raise ValueError('Critical days threshold cannot be negative')
    if consumption_lookback_days < 1 or consumption_lookback_days > 730:
        raise ValueError('Consumption lookback days must be between 1 and 730')


def default_params() -> ProcurementParams:
    return ProcurementParams(
        default_tax_rate=Decimal(settings.default_tax_rate),
        critical_days_threshold=settings.critical_days_threshold,
        consumption_lookback_days=settings.consumption_lookback_days,
    )


def resolve_procurement_params(db: Session, *, organization_id: int) -> ProcurementParams:
    base = default_params()
    tax_rate = base.default_tax_rate
    threshold = base.critical_days_threshold
    lookback = base.consumption_lookback_days

    override = db.execute(
        select(ProcurementSetting).where(ProcurementSetting.organization_id == organization_id)
    ).scalar_one_or_none()
    if override:
        if override.default_tax_rate is not None:
            tax_rate = Decimal(override.default_tax_rate)
        if override.critical_days_threshold is not None:
            threshold = override.critical_days_threshold
        if override.consumption_lookback_days is not None:
            lookback = override.consumption_lookback_days

    _validate_params(
        default_tax_rate=tax_rate,
        critical_days_threshold=threshold,
        consumption_lookback_days=lookback,
    )
    return ProcurementParams(
        default_tax_rate=tax_rate,
        critical_days_threshold=threshold,
        consumption_lookback_days=lookback,
    )


def upsert_procurement_settings(
    db: Session,
    *,
    organization_id: int,
    actor_principal_id: int,
    default_tax_rate: Decimal | None,
    critical_days_threshold: int | None,
    consumption_lookback_days: int | None,
) -> ProcurementSetting:
    base = default_params()
    _validate_params(
        default_tax_rate=default_tax_rate if default_tax_rate is not None else base.default_tax_rate,
        critical_days_threshold=(
            critical_days_threshold if critical_days_threshold is not None else base.critical_days_threshold
        ),
        consumption_lookback_days=(
            consumption_lookback_days if consumption_lookback_days is not None else base.consumption_lookback_days
        ),
    )
    row = db.execute(
        select(ProcurementSetting).where(ProcurementSetting.organization_id == organization_id)
    ).scalar_one_or_none()
    if not row:
        row = ProcurementSetting(organization_id=organization_id)
        db.add(row)
    row.default_tax_rate = default_tax_rate
    row.critical_days_threshold = critical_days_threshold
    row.consumption_lookback_days = consumption_lookback_days
    row.updated_by_principal_id = actor_principal_id
    db.flush()
    return row
