from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from erp_portal.auth import Principal, context_for, require_permission
from erp_portal.db import get_db
from erp_portal.services.analytics_service import inventory_report

router = APIRouter(prefix='/inventory', tags=['inventory'])


@router.get('/analytics')
def get_inventory_analytics(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission('inventory', 'view')),
):
    return inventory_report(db, ctx=context_for(principal))
