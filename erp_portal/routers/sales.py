from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from erp_portal.auth import Principal, context_for, require_permission
from erp_portal.db import get_db
from erp_portal.services.analytics_service import ReportFilters, sales_report

router = APIRouter(prefix='/sales', tags=['sales'])


@router.get('/analytics')
def get_sales_analytics(
    start_date: date | None = Query(default=None, alias='startDate'),
    end_date: date | None = Query(default=None, alias='endDate'),
    customer_id: int | None = Query(default=None, alias='customerId'),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission('sales', 'view')),
):
    return sales_report(
        db,
        ctx=context_for(principal),
        filters=ReportFilters(start_date=start_date, end_date=end_date, customer_id=customer_id),
    )
