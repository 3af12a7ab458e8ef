"""Request bodies for the JSON API. Field names follow the camelCase wire format."""
from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from erp_portal.models import ReorderPriority


class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore')


class LoginRequest(ApiModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class SuggestionStatusUpdate(ApiModel):
    id: int
    status: str
    notes: str | None = None


class ReorderRuleCreate(ApiModel):
    product_id: int = Field(alias='productId')
    warehouse_id: int | None = Field(default=None, alias='warehouseId')
    reorder_point: Decimal = Field(alias='reorderPoint', ge=0)
    reorder_quantity: Decimal = Field(alias='reorderQuantity', gt=0)
    max_quantity: Decimal | None = Field(default=None, alias='maxQuantity')
    lead_time_days: int = Field(default=0, alias='leadTimeDays', ge=0)
    priority: ReorderPriority = ReorderPriority.NORMAL


class ReorderRuleUpdate(ApiModel):
    id: int
    reorder_point: Decimal | None = Field(default=None, alias='reorderPoint')
    reorder_quantity: Decimal | None = Field(default=None, alias='reorderQuantity')
    max_quantity: Decimal | None = Field(default=None, alias='maxQuantity')
    lead_time_days: int | None = Field(default=None, alias='leadTimeDays')
    priority: ReorderPriority | None = None
    active: bool | None = None


class ProcurementSettingsUpdate(ApiModel):
    default_tax_rate: Decimal | None = Field(default=None, alias='defaultTaxRate')
    critical_days_threshold: int | None = Field(default=None, alias='criticalDaysThreshold')
    consumption_lookback_days: int | None = Field(default=None, alias='consumptionLookbackDays')


class PurchaseOrderLineCreate(ApiModel):
    product_id: int = Field(alias='productId')
    quantity: Decimal = Field(gt=0)
    unit_price: Decimal = Field(alias='unitPrice', ge=0)
    tax_rate: Decimal = Field(default=Decimal('0'), alias='taxRate', ge=0, le=100)
    description: str | None = None


class PurchaseOrderCreate(ApiModel):
    supplier_id: int = Field(alias='supplierId')
    warehouse_id: int = Field(alias='warehouseId')
    expected_delivery_date: date | None = Field(default=None, alias='expectedDeliveryDate')
    notes: str | None = None
    lines: list[PurchaseOrderLineCreate] = Field(min_length=1)


class QuotationReview(ApiModel):
    quotation_id: int = Field(alias='quotationId')
    status: str
    rejection_reason: str | None = Field(default=None, alias='rejectionReason')
    rejection_notes: str | None = Field(default=None, alias='rejectionNotes')
    can_resubmit: bool | None = Field(default=None, alias='canResubmit')


class QuotationResubmission(ApiModel):
    supplier_id: int = Field(alias='supplierId')
    total_amount: Decimal | None = Field(default=None, alias='totalAmount', ge=0)
