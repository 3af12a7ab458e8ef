from __future__ import annotations

import unittest
from datetime import date
from decimal import Decimal
from unittest.mock import patch

from sqlalchemy import text

from erp_portal.models import (
    Customer,
    PurchaseOrderStatus,
    SalesInvoice,
    SalesInvoiceStatus,
    SalesOrder,
    SalesOrderStatus,
)
from erp_portal.services import analytics_service
from erp_portal.services.analytics_service import (
    ReportFilters,
    ReportSection,
    inventory_report,
    purchasing_report,
    run_report,
    sales_report,
)
from erp_portal.services.purchase_order_service import PurchaseOrderLineInput, create_purchase_order
from tests.support import ProcurementTestCase


def _broken_section(db, ctx, filters):
    return db.execute(text('SELECT missing_column FROM missing_table')).all()


def _zero_division_section(db, ctx, filters):
    return {'ratio': Decimal('1') / Decimal('0')}


class AnalyticsServiceTests(ProcurementTestCase):
    def _order(self, db, *, quantity='10', unit_price='100.00', tax_rate='18'):
        return create_purchase_order(
            db,
            ctx=self.ctx,
            supplier_id=self.supplier_id,
            warehouse_id=self.warehouse_id,
            lines=[
                PurchaseOrderLineInput(
                    product_id=self.product_id,
                    quantity=Decimal(quantity),
                    unit_price=Decimal(unit_price),
                    tax_rate=Decimal(tax_rate),
                )
            ],
        )

    def test_failing_section_defaults_without_affecting_others(self) -> None:
        with self.session() as db:
            self._order(db)
            db.commit()

            report = run_report(
                db,
                ctx=self.ctx,
                sections=[
                    ReportSection('broken', _broken_section, list),
                    ReportSection('poSummary', analytics_service.purchase_order_summary, dict),
                ],
            )

            self.assertEqual(report['broken'], [])
            self.assertEqual(report['poSummary']['totalPurchaseOrders'], 1)
            self.assertEqual(report['poSummary']['totalPurchaseValue'], Decimal('1180.00'))

    def test_computation_error_in_section_falls_back_to_default(self) -> None:
        with self.session() as db:
            self._order(db)
            db.commit()

            report = run_report(
                db,
                ctx=self.ctx,
                sections=[
                    ReportSection('ratios', _zero_division_section, dict),
                    ReportSection('poSummary', analytics_service.purchase_order_summary, dict),
                ],
            )

            self.assertEqual(report['ratios'], {})
            self.assertEqual(report['poSummary']['totalPurchaseOrders'], 1)

    def test_purchasing_report_survives_one_broken_loader(self) -> None:
        sections = [
            ReportSection(section.name, _broken_section if section.name == 'topSuppliers' else section.loader, section.default_factory)
            for section in analytics_service.PURCHASING_SECTIONS
        ]
        with self.session() as db:
            self._order(db)
            db.commit()

            with patch.object(analytics_service, 'PURCHASING_SECTIONS', sections):
                report = purchasing_report(db, ctx=self.ctx)

            self.assertEqual(report['topSuppliers'], [])
            self.assertEqual(report['poSummary']['draftCount'], 1)
            self.assertEqual(report['categorySpending'][0]['categoryName'], 'Electrical')
            self.assertEqual(report['categorySpending'][0]['totalSpending'], Decimal('1000.00'))
            self.assertEqual(report['topProducts'][0]['sku'], 'CW-100')

    def test_purchasing_report_shape(self) -> None:
        with self.session() as db:
            self._order(db)
            db.commit()

            report = purchasing_report(db, ctx=self.ctx)

            self.assertEqual(
                set(report),
                {
                    'poSummary',
                    'rfqSummary',
                    'invoiceSummary',
                    'deliveryPerformance',
                    'topSuppliers',
                    'purchaseTrends',
                    'categorySpending',
                    'topProducts',
                    'pendingReceipts',
                },
            )
            self.assertEqual(report['topSuppliers'][0]['supplierName'], 'Wire Works')
            self.assertEqual(report['purchaseTrends'][0]['orderCount'], 1)
            self.assertEqual(report['deliveryPerformance'], {'completedOrders': 0, 'avgDeliveryDays': None})
            self.assertEqual(report['pendingReceipts'], [])

    def test_date_window_filters_purchase_orders(self) -> None:
        with self.session() as db:
            purchase_order = self._order(db)
            purchase_order.po_date = date(2023, 6, 15)
            purchase_order.status = PurchaseOrderStatus.CONFIRMED
            db.commit()

            inside = purchasing_report(
                db, ctx=self.ctx, filters=ReportFilters(start_date=date(2023, 6, 1), end_date=date(2023, 6, 30))
            )
            outside = purchasing_report(db, ctx=self.ctx, filters=ReportFilters(start_date=date(2024, 1, 1)))

            self.assertEqual(inside['poSummary']['confirmedCount'], 1)
            self.assertEqual(inside['poSummary']['pendingValue'], Decimal('1180.00'))
            self.assertEqual(inside['purchaseTrends'][0]['month'], '2023-06')
            self.assertEqual(outside['poSummary']['totalPurchaseOrders'], 0)

    def test_sales_report_aggregates_orders_and_invoices(self) -> None:
        with self.session() as db:
            customer = Customer(organization_id=self.organization_id, name='Northwind', code='C-1')
            db.add(customer)
            db.flush()
            db.add_all(
                [
                    SalesOrder(
                        organization_id=self.organization_id,
                        customer_id=customer.id,
                        so_number='SO-1',
                        order_date=date(2024, 1, 5),
                        status=SalesOrderStatus.COMPLETED,
                        total_amount=Decimal('300.00'),
                    ),
                    SalesOrder(
                        organization_id=self.organization_id,
                        customer_id=customer.id,
                        so_number='SO-2',
                        order_date=date(2024, 2, 5),
                        status=SalesOrderStatus.CONFIRMED,
                        total_amount=Decimal('100.00'),
                    ),
                    SalesInvoice(
                        organization_id=self.organization_id,
                        customer_id=customer.id,
                        invoice_number='SI-1',
                        invoice_date=date(2024, 1, 6),
                        status=SalesInvoiceStatus.PARTIALLY_PAID,
                        total_amount=Decimal('300.00'),
                        paid_amount=Decimal('120.00'),
                        balance_amount=Decimal('180.00'),
                    ),
                ]
            )
            db.commit()

            report = sales_report(db, ctx=self.ctx)

            self.assertEqual(report['orderSummary']['totalOrders'], 2)
            self.assertEqual(report['orderSummary']['totalSalesValue'], Decimal('400.00'))
            self.assertEqual(report['orderSummary']['avgOrderValue'], Decimal('200.00'))
            self.assertEqual(report['invoiceSummary']['totalOutstanding'], Decimal('180.00'))
            self.assertEqual(report['topCustomers'][0]['completedOrders'], 1)
            self.assertEqual([row['month'] for row in report['salesTrends']], ['2024-01', '2024-02'])
            self.assertEqual(report['paymentStatus'][0]['status'], 'partially_paid')

    def test_inventory_report_flags_low_and_out_of_stock(self) -> None:
        with self.session() as db:
            self.add_stock(db, quantity='5')
            self.add_rule(db, reorder_point='10')
            db.commit()

            report = inventory_report(db, ctx=self.ctx)

            self.assertEqual(report['summary']['lowStockCount'], 1)
            self.assertEqual(report['summary']['totalValue'], Decimal('75.00'))
            self.assertEqual(report['stockSummary'][0]['stockStatus'], 'low_stock')
            self.assertEqual(report['stockByCategory'][0]['categoryName'], 'Electrical')
            self.assertEqual(report['topValueProducts'][0]['totalValue'], Decimal('75.00'))
            self.assertEqual(report['reorderSuggestions'], [])


if __name__ == '__main__':
    unittest.main()
