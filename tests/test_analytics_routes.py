from __future__ import annotations

import unittest
from datetime import date
from decimal import Decimal
from unittest.mock import patch

from sqlalchemy import text

from erp_portal.auth import Role
from erp_portal.models import Customer, SalesOrder, SalesOrderStatus
from erp_portal.services import analytics_service
from erp_portal.services.analytics_service import ReportSection
from tests.support import ProcurementTestCase


def _broken_section(db, ctx, filters):
    return db.execute(text('SELECT total FROM no_such_table')).scalar_one()


def _invalid_status_section(db, ctx, filters):
    raise ValueError('unknown invoice status: void')


class AnalyticsRouteTests(ProcurementTestCase):
    def test_sales_analytics_defaults_section_with_bad_data(self) -> None:
        sections = [
            ReportSection(section.name, _invalid_status_section if section.name == 'paymentStatus' else section.loader, section.default_factory)
            for section in analytics_service.SALES_SECTIONS
        ]
        client = self.client_for()

        with patch.object(analytics_service, 'SALES_SECTIONS', sections):
            response = client.get('/sales/analytics')

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['paymentStatus'], [])
        self.assertEqual(body['orderSummary']['totalOrders'], 0)

    def test_inventory_analytics_defaults_broken_section(self) -> None:
        with self.session() as db:
            self.add_stock(db, quantity='0')
            db.commit()
        sections = [
            ReportSection(section.name, _broken_section if section.name == 'summary' else section.loader, section.default_factory)
            for section in analytics_service.INVENTORY_SECTIONS
        ]
        client = self.client_for()

        with patch.object(analytics_service, 'INVENTORY_SECTIONS', sections):
            response = client.get('/inventory/analytics')

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['summary'], {})
        self.assertEqual(body['stockSummary'][0]['stockStatus'], 'out_of_stock')

    def test_sales_analytics_filters_by_customer(self) -> None:
        with self.session() as db:
            first = Customer(organization_id=self.organization_id, name='Northwind')
            second = Customer(organization_id=self.organization_id, name='Contoso')
            db.add_all([first, second])
            db.flush()
            for customer, number, amount in ((first, 'SO-1', '250.00'), (second, 'SO-2', '75.00')):
                db.add(
                    SalesOrder(
                        organization_id=self.organization_id,
                        customer_id=customer.id,
                        so_number=number,
                        order_date=date(2024, 5, 1),
                        status=SalesOrderStatus.CONFIRMED,
                        total_amount=Decimal(amount),
                    )
                )
            db.commit()
            first_id = first.id
        client = self.client_for()

        everything = client.get('/sales/analytics').json()
        only_first = client.get('/sales/analytics', params={'customerId': first_id}).json()

        self.assertEqual(everything['orderSummary']['totalOrders'], 2)
        self.assertEqual(only_first['orderSummary']['totalOrders'], 1)
        self.assertEqual(Decimal(str(only_first['orderSummary']['totalSalesValue'])), Decimal('250'))
        self.assertEqual([row['customerName'] for row in only_first['topCustomers']], ['Northwind'])

    def test_sales_analytics_requires_sales_view(self) -> None:
        client = self.client_for(role=Role.VIEWER, permissions={'sales': {'view': False}})
        self.assertEqual(client.get('/sales/analytics').status_code, 403)

    def test_bad_date_is_validation_error(self) -> None:
        client = self.client_for()
        response = client.get('/purchasing/analytics', params={'startDate': 'last-week'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Validation failed')


if __name__ == '__main__':
    unittest.main()
