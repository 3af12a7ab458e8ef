from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from erp_portal.auth import RequestContext
from erp_portal.config import settings
from erp_portal.errors import NotFoundError
from erp_portal.models import (
    Product,
    PurchaseOrder,
    PurchaseOrderLine,
    PurchaseOrderStatus,
    Supplier,
    Warehouse,
)
from erp_portal.services.document_number_service import next_purchase_order_number
from erp_portal.services.purchase_order_math_service import (
    LineAmountInput,
    compute_line_amounts,
    compute_order_totals,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurchaseOrderLineInput:
    product_id: int
    quantity: Decimal
    unit_price: Decimal
    tax_rate: Decimal = Decimal('0')
    description: str | None = None


def get_supplier(db: Session, *, ctx: RequestContext, supplier_id: int) -> Supplier:
    supplier = db.execute(
        select(Supplier).where(Supplier.id == supplier_id, Supplier.organization_id == ctx.organization_id)
    ).scalar_one_or_none()
    if not supplier:
        raise NotFoundError('Supplier not found')
    return supplier


def get_warehouse(db: Session, *, ctx: RequestContext, warehouse_id: int) -> Warehouse:
    warehouse = db.execute(
        select(Warehouse).where(Warehouse.id == warehouse_id, Warehouse.organization_id == ctx.organization_id)
    ).scalar_one_or_none()
    if not warehouse:
        raise NotFoundError('Warehouse not found')
    return warehouse


def default_receiving_warehouse(db: Session, *, ctx: RequestContext) -> Warehouse:
    warehouse = db.execute(
        select(Warehouse)
        .where(Warehouse.organization_id == ctx.organization_id, Warehouse.active.is_(True))
        .order_by(Warehouse.id.asc())
        .limit(1)
    ).scalar_one_or_none()
    if not warehouse:
        raise ValueError('No active warehouse available to receive the purchase order')
    return warehouse


def _products_by_id(db: Session, *, ctx: RequestContext, product_ids: set[int]) -> dict[int, Product]:
    rows = db.execute(
        select(Product).where(Product.id.in_(product_ids), Product.organization_id == ctx.organization_id)
    ).scalars()
    return {row.id: row for row in rows}


def materialize_purchase_order(
    db: Session,
    *,
    ctx: RequestContext,
    supplier: Supplier,
    warehouse: Warehouse,
    lines: list[PurchaseOrderLineInput],
    notes: str | None = None,
    expected_delivery_date: date | None = None,
    po_date: date | None = None,
) -> PurchaseOrder:
    """Number, price and insert a draft purchase order with its lines.

    Runs inside the caller's transaction and only flushes; the caller commits.
    """
    if not lines:
        raise ValueError('At least one line is required')

    products = _products_by_id(db, ctx=ctx, product_ids={line.product_id for line in lines})
    missing = sorted({line.product_id for line in lines} - set(products))
    if missing:
        raise NotFoundError(f'Product not found: {missing[0]}')

    amount_inputs = [
        LineAmountInput(quantity=Decimal(line.quantity), unit_price=Decimal(line.unit_price), tax_rate=Decimal(line.tax_rate))
        for line in lines
    ]
    totals = compute_order_totals(amount_inputs)
    po_number = next_purchase_order_number(db, organization_id=ctx.organization_id)

    purchase_order = PurchaseOrder(
        organization_id=ctx.organization_id,
        po_number=po_number,
        supplier_id=supplier.id,
        warehouse_id=warehouse.id,
        po_date=po_date or date.today(),
        expected_delivery_date=expected_delivery_date,
        status=PurchaseOrderStatus.DRAFT,
        currency_code=supplier.currency_code or settings.default_currency_code,
        subtotal=totals.subtotal,
        tax_amount=totals.tax_amount,
        total_amount=totals.total_amount,
        notes=notes,
        created_by_principal_id=ctx.principal_id,
    )
    db.add(purchase_order)
    db.flush()

    for line, amounts_input in zip(lines, amount_inputs):
        db.add(
            PurchaseOrderLine(
                purchase_order_id=purchase_order.id,
                product_id=line.product_id,
                description=line.description or products[line.product_id].name,
                quantity_ordered=amounts_input.quantity,
                quantity_received=Decimal('0'),
                unit_price=amounts_input.unit_price,
                tax_rate=amounts_input.tax_rate,
            )
        )
    db.flush()
    logger.info(
        'Created purchase order %s for supplier %s (%s line(s), total %s)',
        po_number,
        supplier.id,
        len(lines),
        totals.total_amount,
    )
    return purchase_order


def create_purchase_order(
    db: Session,
    *,
    ctx: RequestContext,
    supplier_id: int,
    warehouse_id: int,
    lines: list[PurchaseOrderLineInput],
    notes: str | None = None,
    expected_delivery_date: date | None = None,
) -> PurchaseOrder:
    supplier = get_supplier(db, ctx=ctx, supplier_id=supplier_id)
    if not supplier.active:
        raise ValueError('Supplier is inactive')
    warehouse = get_warehouse(db, ctx=ctx, warehouse_id=warehouse_id)
    return materialize_purchase_order(
        db,
        ctx=ctx,
        supplier=supplier,
        warehouse=warehouse,
        lines=lines,
        notes=notes,
        expected_delivery_date=expected_delivery_date,
    )


def serialize_purchase_order(purchase_order: PurchaseOrder, *, supplier_name: str | None = None) -> dict:
    return {
        'id': purchase_order.id,
        'poNumber': purchase_order.po_number,
        'supplierId': purchase_order.supplier_id,
        'supplierName': supplier_name,
        'warehouseId': purchase_order.warehouse_id,
        'poDate': purchase_order.po_date.isoformat() if purchase_order.po_date else None,
        'expectedDeliveryDate': (
            purchase_order.expected_delivery_date.isoformat() if purchase_order.expected_delivery_date else None
        ),
        'status': PurchaseOrderStatus(purchase_order.status).value,
        'currencyCode': purchase_order.currency_code,
        'subtotal': str(purchase_order.subtotal),
        'taxAmount': str(purchase_order.tax_amount),
        'totalAmount': str(purchase_order.total_amount),
        'notes': purchase_order.notes,
        'emailSentAt': purchase_order.email_sent_at.isoformat() if purchase_order.email_sent_at else None,
    }


def _serialize_line(line: PurchaseOrderLine, product: Product | None) -> dict:
    amounts = compute_line_amounts(
        LineAmountInput(quantity=line.quantity_ordered, unit_price=line.unit_price, tax_rate=line.tax_rate)
    )
    return {
        'id': line.id,
        'productId': line.product_id,
        'productName': product.name if product else None,
        'sku': product.sku if product else None,
        'description': line.description,
        'quantityOrdered': str(line.quantity_ordered),
        'quantityReceived': str(line.quantity_received),
        'unitPrice': str(line.unit_price),
        'taxRate': str(line.tax_rate),
        'lineSubtotal': str(amounts.subtotal),
        'lineTax': str(amounts.tax_amount),
        'lineTotal': str(amounts.total),
    }


def list_purchase_orders(
    db: Session,
    *,
    ctx: RequestContext,
    status: PurchaseOrderStatus | None = None,
    supplier_id: int | None = None,
) -> list[dict]:
    query = (
        select(PurchaseOrder, Supplier.name)
        .join(Supplier, Supplier.id == PurchaseOrder.supplier_id)
        .where(PurchaseOrder.organization_id == ctx.organization_id)
    )
    if status is not None:
        query = query.where(PurchaseOrder.status == status)
    if supplier_id is not None:
        query = query.where(PurchaseOrder.supplier_id == supplier_id)
    rows = db.execute(query.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())).all()
    return [serialize_purchase_order(po, supplier_name=supplier_name) for po, supplier_name in rows]


def get_purchase_order(db: Session, *, ctx: RequestContext, purchase_order_id: int) -> PurchaseOrder:
    purchase_order = db.execute(
        select(PurchaseOrder).where(
            PurchaseOrder.id == purchase_order_id,
            PurchaseOrder.organization_id == ctx.organization_id,
        )
    ).scalar_one_or_none()
    if not purchase_order:
        raise NotFoundError('Purchase order not found')
    return purchase_order


def list_purchase_order_lines(db: Session, *, purchase_order_id: int) -> list[tuple[PurchaseOrderLine, Product | None]]:
    return list(
        db.execute(
            select(PurchaseOrderLine, Product)
            .outerjoin(Product, Product.id == PurchaseOrderLine.product_id)
            .where(PurchaseOrderLine.purchase_order_id == purchase_order_id)
            .order_by(PurchaseOrderLine.id.asc())
        ).all()
    )


def get_purchase_order_detail(db: Session, *, ctx: RequestContext, purchase_order_id: int) -> dict:
    purchase_order = get_purchase_order(db, ctx=ctx, purchase_order_id=purchase_order_id)
    supplier = db.get(Supplier, purchase_order.supplier_id)
    warehouse = db.get(Warehouse, purchase_order.warehouse_id)
    payload = serialize_purchase_order(purchase_order, supplier_name=supplier.name if supplier else None)
    payload['warehouseName'] = warehouse.name if warehouse else None
    payload['lines'] = [
        _serialize_line(line, product)
        for line, product in list_purchase_order_lines(db, purchase_order_id=purchase_order.id)
    ]
    return payload
