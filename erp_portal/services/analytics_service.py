"""Dashboard aggregations for purchasing, sales and inventory.

Each report is a set of independent sections. A section runs inside its own
SAVEPOINT; a database error is logged and the section falls back to an empty
value so the rest of the report is still returned.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from erp_portal.auth import RequestContext
from erp_portal.models import (
    Customer,
    PaymentStatus,
    Product,
    PurchaseOrder,
    PurchaseOrderLine,
    PurchaseOrderStatus,
    PurchaseOrderSuggestion,
    ReorderRule,
    RequestForQuotation,
    RfqStatus,
    SalesInvoice,
    SalesInvoiceStatus,
    SalesOrder,
    SalesOrderLine,
    SalesOrderStatus,
    StockLevel,
    SuggestionStatus,
    Supplier,
    SupplierInvoice,
    Warehouse,
)
from erp_portal.services.purchase_order_math_service import quantize_money

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
TOP_LIMIT = 10
PENDING_RECEIPTS_LIMIT = 20
OPEN_RECEIPT_STATUSES = (PurchaseOrderStatus.CONFIRMED, PurchaseOrderStatus.PARTIALLY_RECEIVED)


@dataclass(frozen=True)
class ReportFilters:
    start_date: date | None = None
    end_date: date | None = None
    customer_id: int | None = None


SectionLoader = Callable[[Session, RequestContext, ReportFilters], Any]


@dataclass(frozen=True)
class ReportSection:
    name: str
    loader: SectionLoader
    default_factory: Callable[[], Any]


@dataclass(frozen=True)
class SectionResult:
    name: str
    value: Any
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_section(db: Session, ctx: RequestContext, filters: ReportFilters, section: ReportSection) -> SectionResult:
    try:
        with db.begin_nested():
            value = section.loader(db, ctx, filters)
    except Exception as exc:
        logger.exception('Analytics section %s failed for organization %s', section.name, ctx.organization_id)
        return SectionResult(name=section.name, value=section.default_factory(), error=str(exc))
    return SectionResult(name=section.name, value=value)


def run_report(
    db: Session,
    *,
    ctx: RequestContext,
    sections: list[ReportSection],
    filters: ReportFilters | None = None,
) -> dict[str, Any]:
    filters = filters or ReportFilters()
    results = [run_section(db, ctx, filters, section) for section in sections]
    failed = [result.name for result in results if not result.ok]
    if failed:
        logger.warning('Analytics report returned with defaulted sections: %s', ', '.join(failed))
    return {result.name: result.value for result in results}


def _money(value) -> Decimal:
    return quantize_money(Decimal(value or 0))


def _count_when(column, value):
    return func.count(case((column == value, 1)))


def _sum_when(condition, amount):
    return func.coalesce(func.sum(case((condition, amount), else_=0)), 0)


def _month_key(value: date | None) -> str | None:
    return value.strftime('%Y-%m') if value else None


def _po_date_window(query, filters: ReportFilters):
    if filters.start_date is not None:
        query = query.where(PurchaseOrder.po_date >= filters.start_date)
    if filters.end_date is not None:
        query = query.where(PurchaseOrder.po_date <= filters.end_date)
    return query


# Purchasing


def purchase_order_summary(db: Session, ctx: RequestContext, filters: ReportFilters) -> dict:
    query = select(
        func.count(PurchaseOrder.id),
        _count_when(PurchaseOrder.status, PurchaseOrderStatus.DRAFT),
        _count_when(PurchaseOrder.status, PurchaseOrderStatus.CONFIRMED),
        _count_when(PurchaseOrder.status, PurchaseOrderStatus.PARTIALLY_RECEIVED),
        _count_when(PurchaseOrder.status, PurchaseOrderStatus.RECEIVED),
        _count_when(PurchaseOrder.status, PurchaseOrderStatus.CANCELLED),
        func.coalesce(func.sum(PurchaseOrder.total_amount), 0),
        _sum_when(PurchaseOrder.status.in_(OPEN_RECEIPT_STATUSES), PurchaseOrder.total_amount),
        _sum_when(PurchaseOrder.status == PurchaseOrderStatus.RECEIVED, PurchaseOrder.total_amount),
    ).where(PurchaseOrder.organization_id == ctx.organization_id)
    row = db.execute(_po_date_window(query, filters)).one()
    return {
        'totalPurchaseOrders': row[0],
        'draftCount': row[1],
        'confirmedCount': row[2],
        'partiallyReceivedCount': row[3],
        'receivedCount': row[4],
        'cancelledCount': row[5],
        'totalPurchaseValue': _money(row[6]),
        'pendingValue': _money(row[7]),
        'completedValue': _money(row[8]),
    }


def rfq_summary(db: Session, ctx: RequestContext, filters: ReportFilters) -> dict:
    row = db.execute(
        select(
            func.count(RequestForQuotation.id),
            _count_when(RequestForQuotation.status, RfqStatus.DRAFT),
            _count_when(RequestForQuotation.status, RfqStatus.SENT),
            _count_when(RequestForQuotation.status, RfqStatus.CLOSED),
        ).where(RequestForQuotation.organization_id == ctx.organization_id)
    ).one()
    return {'totalRfqs': row[0], 'draftCount': row[1], 'sentCount': row[2], 'closedCount': row[3]}


def supplier_invoice_summary(db: Session, ctx: RequestContext, filters: ReportFilters) -> dict:
    status = SupplierInvoice.payment_status
    row = db.execute(
        select(
            func.count(SupplierInvoice.id),
            _count_when(status, PaymentStatus.PENDING),
            _count_when(status, PaymentStatus.PAID),
            _count_when(status, PaymentStatus.OVERDUE),
            func.coalesce(func.sum(SupplierInvoice.total_amount), 0),
            _sum_when(status == PaymentStatus.PENDING, SupplierInvoice.total_amount),
            _sum_when(status == PaymentStatus.PAID, SupplierInvoice.total_amount),
        ).where(SupplierInvoice.organization_id == ctx.organization_id)
    ).one()
    return {
        'totalInvoices': row[0],
        'pendingCount': row[1],
        'paidCount': row[2],
        'overdueCount': row[3],
        'totalInvoiceValue': _money(row[4]),
        'pendingValue': _money(row[5]),
        'paidValue': _money(row[6]),
    }


def delivery_performance(db: Session, ctx: RequestContext, filters: ReportFilters) -> dict:
    query = select(PurchaseOrder.po_date, PurchaseOrder.received_date).where(
        PurchaseOrder.organization_id == ctx.organization_id,
        PurchaseOrder.status == PurchaseOrderStatus.RECEIVED,
        PurchaseOrder.received_date.is_not(None),
    )
    durations = [(received - ordered).days for ordered, received in db.execute(_po_date_window(query, filters)).all()]
    if not durations:
        return {'completedOrders': 0, 'avgDeliveryDays': None}
    average = (Decimal(sum(durations)) / Decimal(len(durations))).quantize(Decimal('0.01'))
    return {'completedOrders': len(durations), 'avgDeliveryDays': average}


def top_suppliers(db: Session, ctx: RequestContext, filters: ReportFilters) -> list[dict]:
    total_value = func.coalesce(func.sum(PurchaseOrder.total_amount), 0)
    query = (
        select(
            Supplier.id,
            Supplier.name,
            Supplier.code,
            func.count(PurchaseOrder.id),
            total_value,
            _count_when(PurchaseOrder.status, PurchaseOrderStatus.RECEIVED),
        )
        .join(PurchaseOrder, PurchaseOrder.supplier_id == Supplier.id)
        .where(Supplier.organization_id == ctx.organization_id)
        .group_by(Supplier.id, Supplier.name, Supplier.code)
        .order_by(total_value.desc())
        .limit(TOP_LIMIT)
    )
    results = []
    for supplier_id, name, code, orders, value, completed in db.execute(_po_date_window(query, filters)).all():
        completion = (Decimal(completed) * 100 / Decimal(orders)).quantize(Decimal('0.01')) if orders else None
        results.append(
            {
                'supplierId': supplier_id,
                'supplierName': name,
                'supplierCode': code,
                'totalOrders': orders,
                'totalPurchaseValue': _money(value),
                'completedOrders': completed,
                'completionRate': completion,
            }
        )
    return results


def purchase_trends(db: Session, ctx: RequestContext, filters: ReportFilters) -> list[dict]:
    query = select(PurchaseOrder.po_date, PurchaseOrder.total_amount).where(
        PurchaseOrder.organization_id == ctx.organization_id
    )
    buckets: dict[str, list[Decimal]] = defaultdict(list)
    for po_date, total in db.execute(_po_date_window(query, filters)).all():
        buckets[_month_key(po_date)].append(Decimal(total or 0))
    return [
        {'month': month, 'orderCount': len(values), 'totalValue': _money(sum(values, ZERO))}
        for month, values in sorted(buckets.items())
        if month is not None
    ]


def category_spending(db: Session, ctx: RequestContext, filters: ReportFilters) -> list[dict]:
    spend = func.coalesce(func.sum(PurchaseOrderLine.quantity_ordered * PurchaseOrderLine.unit_price), 0)
    category = func.coalesce(Product.category_name, 'Uncategorized')
    query = (
        select(category, func.count(func.distinct(PurchaseOrder.id)), spend)
        .select_from(PurchaseOrderLine)
        .join(PurchaseOrder, PurchaseOrder.id == PurchaseOrderLine.purchase_order_id)
        .join(Product, Product.id == PurchaseOrderLine.product_id)
        .where(PurchaseOrder.organization_id == ctx.organization_id)
        .group_by(category)
        .order_by(spend.desc())
    )
    return [
        {'categoryName': name, 'orderCount': orders, 'totalSpending': _money(value)}
        for name, orders, value in db.execute(_po_date_window(query, filters)).all()
    ]


def top_purchased_products(db: Session, ctx: RequestContext, filters: ReportFilters) -> list[dict]:
    value = func.coalesce(func.sum(PurchaseOrderLine.quantity_ordered * PurchaseOrderLine.unit_price), 0)
    query = (
        select(
            Product.id,
            Product.name,
            Product.sku,
            func.count(func.distinct(PurchaseOrderLine.purchase_order_id)),
            func.coalesce(func.sum(PurchaseOrderLine.quantity_ordered), 0),
            value,
        )
        .select_from(PurchaseOrderLine)
        .join(PurchaseOrder, PurchaseOrder.id == PurchaseOrderLine.purchase_order_id)
        .join(Product, Product.id == PurchaseOrderLine.product_id)
        .where(PurchaseOrder.organization_id == ctx.organization_id)
        .group_by(Product.id, Product.name, Product.sku)
        .order_by(value.desc())
        .limit(TOP_LIMIT)
    )
    return [
        {
            'productId': product_id,
            'productName': name,
            'sku': sku,
            'orderCount': orders,
            'totalQuantity': Decimal(quantity or 0),
            'totalValue': _money(total),
        }
        for product_id, name, sku, orders, quantity, total in db.execute(_po_date_window(query, filters)).all()
    ]


def pending_receipts(db: Session, ctx: RequestContext, filters: ReportFilters) -> list[dict]:
    today = date.today()
    rows = db.execute(
        select(PurchaseOrder, Supplier.name)
        .join(Supplier, Supplier.id == PurchaseOrder.supplier_id)
        .where(
            PurchaseOrder.organization_id == ctx.organization_id,
            PurchaseOrder.status.in_(OPEN_RECEIPT_STATUSES),
        )
        .order_by(PurchaseOrder.expected_delivery_date.is_(None), PurchaseOrder.expected_delivery_date.asc())
        .limit(PENDING_RECEIPTS_LIMIT)
    ).all()
    return [
        {
            'id': po.id,
            'poNumber': po.po_number,
            'supplierName': supplier_name,
            'poDate': po.po_date.isoformat(),
            'expectedDeliveryDate': po.expected_delivery_date.isoformat() if po.expected_delivery_date else None,
            'totalAmount': _money(po.total_amount),
            'daysOverdue': (today - po.expected_delivery_date).days if po.expected_delivery_date else None,
        }
        for po, supplier_name in rows
    ]


PURCHASING_SECTIONS = [
    ReportSection('poSummary', purchase_order_summary, dict),
    ReportSection('rfqSummary', rfq_summary, dict),
    ReportSection('invoiceSummary', supplier_invoice_summary, dict),
    ReportSection('deliveryPerformance', delivery_performance, dict),
    ReportSection('topSuppliers', top_suppliers, list),
    ReportSection('purchaseTrends', purchase_trends, list),
    ReportSection('categorySpending', category_spending, list),
    ReportSection('topProducts', top_purchased_products, list),
    ReportSection('pendingReceipts', pending_receipts, list),
]


def purchasing_report(db: Session, *, ctx: RequestContext, filters: ReportFilters | None = None) -> dict:
    return run_report(db, ctx=ctx, sections=PURCHASING_SECTIONS, filters=filters)


# Sales


def _sales_order_scope(query, ctx: RequestContext, filters: ReportFilters):
    query = query.where(SalesOrder.organization_id == ctx.organization_id)
    if filters.customer_id is not None:
        query = query.where(SalesOrder.customer_id == filters.customer_id)
    if filters.start_date is not None:
        query = query.where(SalesOrder.order_date >= filters.start_date)
    if filters.end_date is not None:
        query = query.where(SalesOrder.order_date <= filters.end_date)
    return query


def sales_order_summary(db: Session, ctx: RequestContext, filters: ReportFilters) -> dict:
    query = select(
        func.count(SalesOrder.id),
        _count_when(SalesOrder.status, SalesOrderStatus.DRAFT),
        _count_when(SalesOrder.status, SalesOrderStatus.CONFIRMED),
        _count_when(SalesOrder.status, SalesOrderStatus.IN_PROGRESS),
        _count_when(SalesOrder.status, SalesOrderStatus.COMPLETED),
        _count_when(SalesOrder.status, SalesOrderStatus.CANCELLED),
        func.coalesce(func.sum(SalesOrder.total_amount), 0),
        func.coalesce(func.avg(SalesOrder.total_amount), 0),
    )
    row = db.execute(_sales_order_scope(query, ctx, filters)).one()
    return {
        'totalOrders': row[0],
        'draftCount': row[1],
        'confirmedCount': row[2],
        'inProgressCount': row[3],
        'completedCount': row[4],
        'cancelledCount': row[5],
        'totalSalesValue': _money(row[6]),
        'avgOrderValue': _money(row[7]),
    }


def sales_invoice_summary(db: Session, ctx: RequestContext, filters: ReportFilters) -> dict:
    status = SalesInvoice.status
    query = select(
        func.count(SalesInvoice.id),
        _count_when(status, SalesInvoiceStatus.DRAFT),
        _count_when(status, SalesInvoiceStatus.SENT),
        _count_when(status, SalesInvoiceStatus.PAID),
        _count_when(status, SalesInvoiceStatus.PARTIALLY_PAID),
        _count_when(status, SalesInvoiceStatus.OVERDUE),
        func.coalesce(func.sum(SalesInvoice.total_amount), 0),
        func.coalesce(func.sum(SalesInvoice.paid_amount), 0),
        func.coalesce(func.sum(SalesInvoice.balance_amount), 0),
    ).where(SalesInvoice.organization_id == ctx.organization_id)
    if filters.customer_id is not None:
        query = query.where(SalesInvoice.customer_id == filters.customer_id)
    row = db.execute(query).one()
    return {
        'totalInvoices': row[0],
        'draftCount': row[1],
        'sentCount': row[2],
        'paidCount': row[3],
        'partiallyPaidCount': row[4],
        'overdueCount': row[5],
        'totalInvoiceValue': _money(row[6]),
        'totalPaid': _money(row[7]),
        'totalOutstanding': _money(row[8]),
    }


def top_customers(db: Session, ctx: RequestContext, filters: ReportFilters) -> list[dict]:
    value = func.coalesce(func.sum(SalesOrder.total_amount), 0)
    query = (
        select(
            Customer.id,
            Customer.name,
            Customer.code,
            func.count(SalesOrder.id),
            value,
            _count_when(SalesOrder.status, SalesOrderStatus.COMPLETED),
        )
        .join(SalesOrder, SalesOrder.customer_id == Customer.id)
        .group_by(Customer.id, Customer.name, Customer.code)
        .order_by(value.desc())
        .limit(TOP_LIMIT)
    )
    return [
        {
            'customerId': customer_id,
            'customerName': name,
            'customerCode': code,
            'totalOrders': orders,
            'totalSalesValue': _money(total),
            'completedOrders': completed,
        }
        for customer_id, name, code, orders, total, completed in db.execute(
            _sales_order_scope(query, ctx, filters)
        ).all()
    ]


def sales_trends(db: Session, ctx: RequestContext, filters: ReportFilters) -> list[dict]:
    query = select(SalesOrder.order_date, SalesOrder.total_amount)
    buckets: dict[str, list[Decimal]] = defaultdict(list)
    for order_date, total in db.execute(_sales_order_scope(query, ctx, filters)).all():
        buckets[_month_key(order_date)].append(Decimal(total or 0))
    return [
        {'month': month, 'orderCount': len(values), 'totalValue': _money(sum(values, ZERO))}
        for month, values in sorted(buckets.items())
        if month is not None
    ]


def top_sold_products(db: Session, ctx: RequestContext, filters: ReportFilters) -> list[dict]:
    value = func.coalesce(func.sum(SalesOrderLine.quantity * SalesOrderLine.unit_price), 0)
    query = (
        select(
            Product.id,
            Product.name,
            Product.sku,
            func.count(func.distinct(SalesOrderLine.sales_order_id)),
            func.coalesce(func.sum(SalesOrderLine.quantity), 0),
            value,
        )
        .select_from(SalesOrderLine)
        .join(SalesOrder, SalesOrder.id == SalesOrderLine.sales_order_id)
        .join(Product, Product.id == SalesOrderLine.product_id)
        .group_by(Product.id, Product.name, Product.sku)
        .order_by(value.desc())
        .limit(TOP_LIMIT)
    )
    return [
        {
            'productId': product_id,
            'productName': name,
            'sku': sku,
            'orderCount': orders,
            'totalQuantity': Decimal(quantity or 0),
            'totalValue': _money(total),
        }
        for product_id, name, sku, orders, quantity, total in db.execute(
            _sales_order_scope(query, ctx, filters)
        ).all()
    ]


def payment_status_breakdown(db: Session, ctx: RequestContext, filters: ReportFilters) -> list[dict]:
    query = (
        select(
            SalesInvoice.status,
            func.count(SalesInvoice.id),
            func.coalesce(func.sum(SalesInvoice.total_amount), 0),
            func.coalesce(func.sum(SalesInvoice.balance_amount), 0),
        )
        .where(SalesInvoice.organization_id == ctx.organization_id)
        .group_by(SalesInvoice.status)
    )
    if filters.customer_id is not None:
        query = query.where(SalesInvoice.customer_id == filters.customer_id)
    return [
        {
            'status': SalesInvoiceStatus(status).value,
            'invoiceCount': count,
            'totalAmount': _money(total),
            'balanceAmount': _money(balance),
        }
        for status, count, total, balance in db.execute(query).all()
    ]


SALES_SECTIONS = [
    ReportSection('orderSummary', sales_order_summary, dict),
    ReportSection('invoiceSummary', sales_invoice_summary, dict),
    ReportSection('topCustomers', top_customers, list),
    ReportSection('salesTrends', sales_trends, list),
    ReportSection('topProducts', top_sold_products, list),
    ReportSection('paymentStatus', payment_status_breakdown, list),
]


def sales_report(db: Session, *, ctx: RequestContext, filters: ReportFilters | None = None) -> dict:
    return run_report(db, ctx=ctx, sections=SALES_SECTIONS, filters=filters)


# Inventory


def _stock_rows(db: Session, ctx: RequestContext) -> list[dict]:
    reorder_points = {
        (product_id, warehouse_id): Decimal(point)
        for product_id, warehouse_id, point in db.execute(
            select(ReorderRule.product_id, ReorderRule.warehouse_id, ReorderRule.reorder_point).where(
                ReorderRule.organization_id == ctx.organization_id,
                ReorderRule.active.is_(True),
            )
        ).all()
    }
    rows = db.execute(
        select(StockLevel, Product, Warehouse.name)
        .join(Product, Product.id == StockLevel.product_id)
        .join(Warehouse, Warehouse.id == StockLevel.warehouse_id)
        .where(Warehouse.organization_id == ctx.organization_id)
        .order_by(Product.name.asc(), Warehouse.name.asc())
    ).all()
    results = []
    for level, product, warehouse_name in rows:
        on_hand = Decimal(level.quantity_on_hand or 0)
        available = on_hand - Decimal(level.quantity_reserved or 0)
        reorder_point = reorder_points.get((product.id, level.warehouse_id), reorder_points.get((product.id, None)))
        if available <= 0:
            stock_status = 'out_of_stock'
        elif reorder_point is not None and available <= reorder_point:
            stock_status = 'low_stock'
        else:
            stock_status = 'in_stock'
        results.append(
            {
                'productId': product.id,
                'productName': product.name,
                'sku': product.sku,
                'categoryName': product.category_name or 'Uncategorized',
                'warehouseId': level.warehouse_id,
                'warehouseName': warehouse_name,
                'quantityOnHand': on_hand,
                'quantityAvailable': available,
                'inventoryValue': _money(on_hand * Decimal(product.cost_price or 0)),
                'stockStatus': stock_status,
            }
        )
    return results


def inventory_summary(db: Session, ctx: RequestContext, filters: ReportFilters) -> dict:
    rows = _stock_rows(db, ctx)
    return {
        'totalProducts': len({row['productId'] for row in rows}),
        'totalQuantity': sum((row['quantityOnHand'] for row in rows), ZERO),
        'totalValue': _money(sum((row['inventoryValue'] for row in rows), ZERO)),
        'outOfStockCount': sum(1 for row in rows if row['stockStatus'] == 'out_of_stock'),
        'lowStockCount': sum(1 for row in rows if row['stockStatus'] == 'low_stock'),
        'inStockCount': sum(1 for row in rows if row['stockStatus'] == 'in_stock'),
    }


def stock_summary(db: Session, ctx: RequestContext, filters: ReportFilters) -> list[dict]:
    return _stock_rows(db, ctx)


def open_reorder_suggestions(db: Session, ctx: RequestContext, filters: ReportFilters) -> list[dict]:
    rows = db.execute(
        select(PurchaseOrderSuggestion, Product.name, Product.sku)
        .join(Product, Product.id == PurchaseOrderSuggestion.product_id)
        .where(
            PurchaseOrderSuggestion.organization_id == ctx.organization_id,
            PurchaseOrderSuggestion.status == SuggestionStatus.PENDING,
        )
        .order_by(PurchaseOrderSuggestion.created_at.desc(), PurchaseOrderSuggestion.id.desc())
    ).all()
    return [
        {
            'id': suggestion.id,
            'productId': suggestion.product_id,
            'productName': name,
            'sku': sku,
            'warehouseId': suggestion.warehouse_id,
            'currentStock': Decimal(suggestion.current_stock),
            'suggestedQuantity': Decimal(suggestion.suggested_quantity),
            'daysOfStockRemaining': suggestion.days_of_stock_remaining,
            'priority': suggestion.priority.value,
        }
        for suggestion, name, sku in rows
    ]


def top_value_products(db: Session, ctx: RequestContext, filters: ReportFilters) -> list[dict]:
    totals: dict[int, dict] = {}
    for row in _stock_rows(db, ctx):
        entry = totals.setdefault(
            row['productId'],
            {
                'productId': row['productId'],
                'productName': row['productName'],
                'sku': row['sku'],
                'categoryName': row['categoryName'],
                'totalValue': ZERO,
                'totalQuantity': ZERO,
            },
        )
        entry['totalValue'] += row['inventoryValue']
        entry['totalQuantity'] += row['quantityOnHand']
    ranked = sorted(totals.values(), key=lambda entry: entry['totalValue'], reverse=True)
    return ranked[:TOP_LIMIT]


def stock_by_category(db: Session, ctx: RequestContext, filters: ReportFilters) -> list[dict]:
    categories: dict[str, dict] = {}
    for row in _stock_rows(db, ctx):
        entry = categories.setdefault(
            row['categoryName'],
            {'categoryName': row['categoryName'], 'products': set(), 'totalQuantity': ZERO, 'totalValue': ZERO},
        )
        entry['products'].add(row['productId'])
        entry['totalQuantity'] += row['quantityOnHand']
        entry['totalValue'] += row['inventoryValue']
    return [
        {
            'categoryName': entry['categoryName'],
            'productCount': len(entry['products']),
            'totalQuantity': entry['totalQuantity'],
            'totalValue': _money(entry['totalValue']),
        }
        for entry in sorted(categories.values(), key=lambda item: item['totalValue'], reverse=True)
    ]


INVENTORY_SECTIONS = [
    ReportSection('summary', inventory_summary, dict),
    ReportSection('stockSummary', stock_summary, list),
    ReportSection('reorderSuggestions', open_reorder_suggestions, list),
    ReportSection('topValueProducts', top_value_products, list),
    ReportSection('stockByCategory', stock_by_category, list),
]


def inventory_report(db: Session, *, ctx: RequestContext, filters: ReportFilters | None = None) -> dict:
    return run_report(db, ctx=ctx, sections=INVENTORY_SECTIONS, filters=filters)
