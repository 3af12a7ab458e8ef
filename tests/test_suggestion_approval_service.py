from __future__ import annotations

import threading
import unittest
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from unittest.mock import patch

from sqlalchemy import select

from erp_portal.errors import InvalidTransitionError, MissingSupplierError, NotFoundError
from erp_portal.models import (
    DocumentSequence,
    ProcurementSetting,
    PurchaseOrder,
    PurchaseOrderLine,
    PurchaseOrderStatus,
    PurchaseOrderSuggestion,
    ReorderPriority,
    SuggestionStatus,
    Supplier,
    Warehouse,
)
from erp_portal.services import suggestion_approval_service
from erp_portal.services.suggestion_approval_service import (
    assert_transition_allowed,
    list_suggestions,
    resolve_primary_supplier,
    set_suggestion_status,
)
from tests.support import ProcurementTestCase


class SuggestionTransitionTests(unittest.TestCase):
    def test_only_pending_suggestions_can_be_decided(self) -> None:
        assert_transition_allowed(SuggestionStatus.PENDING, SuggestionStatus.APPROVED)
        assert_transition_allowed(SuggestionStatus.PENDING, SuggestionStatus.REJECTED)
        for current, target in [
            (SuggestionStatus.REJECTED, SuggestionStatus.APPROVED),
            (SuggestionStatus.ORDERED, SuggestionStatus.APPROVED),
            (SuggestionStatus.ORDERED, SuggestionStatus.REJECTED),
            (SuggestionStatus.APPROVED, SuggestionStatus.REJECTED),
        ]:
            with self.subTest(current=current, target=target):
                with self.assertRaises(InvalidTransitionError):
                    assert_transition_allowed(current, target)

    def test_approved_can_be_retried(self) -> None:
        assert_transition_allowed(SuggestionStatus.APPROVED, SuggestionStatus.APPROVED)


class SuggestionApprovalServiceTests(ProcurementTestCase):
    def _pending_suggestion(self, db, *, quantity='50', warehouse_id=None, priority=ReorderPriority.NORMAL, days=None):
        suggestion = PurchaseOrderSuggestion(
            organization_id=self.organization_id,
            product_id=self.product_id,
            warehouse_id=warehouse_id,
            current_stock=Decimal('5'),
            suggested_quantity=Decimal(quantity),
            days_of_stock_remaining=days,
            priority=priority,
            status=SuggestionStatus.PENDING,
        )
        db.add(suggestion)
        db.flush()
        return suggestion

    def test_approval_creates_draft_purchase_order(self) -> None:
        with self.session() as db:
            self.link_supplier(db, unit_price='20.00')
            suggestion = self._pending_suggestion(db, warehouse_id=self.warehouse_id)
            db.commit()

            outcome = set_suggestion_status(db, ctx=self.ctx, suggestion_id=suggestion.id, status='approved')
            db.commit()

            purchase_order = outcome.purchase_order
            self.assertEqual(purchase_order.po_number, 'PO000001')
            self.assertEqual(purchase_order.status, PurchaseOrderStatus.DRAFT)
            self.assertEqual(purchase_order.supplier_id, self.supplier_id)
            self.assertEqual(purchase_order.warehouse_id, self.warehouse_id)
            self.assertEqual(purchase_order.subtotal, Decimal('1000.00'))
            self.assertEqual(purchase_order.tax_amount, Decimal('180.00'))
            self.assertEqual(purchase_order.total_amount, Decimal('1180.00'))

            line = db.execute(select(PurchaseOrderLine)).scalar_one()
            self.assertEqual(line.quantity_ordered, Decimal('50'))
            self.assertEqual(line.unit_price, Decimal('20.00'))
            self.assertEqual(line.tax_rate, Decimal('18'))

            stored = db.get(PurchaseOrderSuggestion, suggestion.id)
            self.assertEqual(stored.status, SuggestionStatus.ORDERED)
            self.assertEqual(stored.po_number, 'PO000001')
            self.assertEqual(stored.purchase_order_id, purchase_order.id)
            self.assertEqual(stored.approved_by_principal_id, self.admin_id)
            self.assertIsNotNone(stored.approved_at)

    def test_missing_mapping_price_falls_back_to_cost_price(self) -> None:
        with self.session() as db:
            self.link_supplier(db, unit_price=None)
            suggestion = self._pending_suggestion(db, quantity='10')
            db.commit()

            outcome = set_suggestion_status(db, ctx=self.ctx, suggestion_id=suggestion.id, status='approved')

            # cost price 15.00 x 10 plus 18% tax
            self.assertEqual(outcome.purchase_order.subtotal, Decimal('150.00'))
            self.assertEqual(outcome.purchase_order.total_amount, Decimal('177.00'))
            # no warehouse on the suggestion: first active warehouse receives it
            self.assertEqual(outcome.purchase_order.warehouse_id, self.warehouse_id)

    def test_organization_tax_rate_override_is_used(self) -> None:
        with self.session() as db:
            self.link_supplier(db, unit_price='20.00')
            db.add(ProcurementSetting(organization_id=self.organization_id, default_tax_rate=Decimal('5.00')))
            suggestion = self._pending_suggestion(db)
            db.commit()

            outcome = set_suggestion_status(db, ctx=self.ctx, suggestion_id=suggestion.id, status='approved')

            self.assertEqual(outcome.purchase_order.tax_amount, Decimal('50.00'))
            self.assertEqual(outcome.purchase_order.total_amount, Decimal('1050.00'))

    def test_primary_supplier_wins_over_newer_mapping(self) -> None:
        with self.session() as db:
            backup = Supplier(organization_id=self.organization_id, name='Backup Metals', email=None, active=True)
            db.add(backup)
            db.flush()
            self.link_supplier(db, unit_price='20.00', is_primary=True)
            self.link_supplier(db, unit_price='18.00', is_primary=False, supplier_id=backup.id)
            db.commit()

            choice = resolve_primary_supplier(db, ctx=self.ctx, product_id=self.product_id)

            self.assertEqual(choice.supplier.id, self.supplier_id)
            self.assertEqual(choice.unit_price, Decimal('20.00'))

    def test_inactive_supplier_is_not_chosen(self) -> None:
        with self.session() as db:
            self.link_supplier(db)
            db.get(Supplier, self.supplier_id).active = False
            db.commit()

            self.assertIsNone(resolve_primary_supplier(db, ctx=self.ctx, product_id=self.product_id))

    def test_missing_supplier_keeps_suggestion_approved(self) -> None:
        with self.session() as db:
            suggestion = self._pending_suggestion(db)
            db.commit()

            with self.assertRaises(MissingSupplierError):
                set_suggestion_status(db, ctx=self.ctx, suggestion_id=suggestion.id, status='approved')
            db.commit()

            stored = db.get(PurchaseOrderSuggestion, suggestion.id)
            self.assertEqual(stored.status, SuggestionStatus.APPROVED)
            self.assertIsNone(stored.po_number)
            self.assertEqual(db.execute(select(PurchaseOrder)).scalars().all(), [])

            # Once a supplier is linked the approval can be retried.
            self.link_supplier(db)
            db.commit()
            outcome = set_suggestion_status(db, ctx=self.ctx, suggestion_id=suggestion.id, status='approved')
            self.assertEqual(outcome.suggestion.status, SuggestionStatus.ORDERED)

    def test_failure_after_numbering_rolls_everything_back(self) -> None:
        real_materialize = suggestion_approval_service.materialize_purchase_order

        def failing_materialize(*args, **kwargs):
            real_materialize(*args, **kwargs)
            raise ValueError('storage unavailable')

        with self.session() as db:
            self.link_supplier(db)
            suggestion = self._pending_suggestion(db)
            db.commit()

            with patch.object(suggestion_approval_service, 'materialize_purchase_order', side_effect=failing_materialize):
                with self.assertRaises(ValueError):
                    set_suggestion_status(db, ctx=self.ctx, suggestion_id=suggestion.id, status='approved')
            db.rollback()

            stored = db.get(PurchaseOrderSuggestion, suggestion.id)
            self.assertEqual(stored.status, SuggestionStatus.PENDING)
            self.assertIsNone(stored.approved_at)
            self.assertEqual(db.execute(select(PurchaseOrder)).scalars().all(), [])
            self.assertEqual(db.execute(select(PurchaseOrderLine)).scalars().all(), [])
            self.assertEqual(db.execute(select(DocumentSequence)).scalars().all(), [])

    def test_rejection_creates_no_order(self) -> None:
        with self.session() as db:
            self.link_supplier(db)
            suggestion = self._pending_suggestion(db)
            db.commit()

            outcome = set_suggestion_status(
                db, ctx=self.ctx, suggestion_id=suggestion.id, status='rejected', notes='Discontinued'
            )
            db.commit()

            self.assertIsNone(outcome.purchase_order)
            self.assertEqual(outcome.suggestion.status, SuggestionStatus.REJECTED)
            self.assertEqual(outcome.suggestion.notes, 'Discontinued')
            with self.assertRaises(InvalidTransitionError):
                set_suggestion_status(db, ctx=self.ctx, suggestion_id=suggestion.id, status='approved')

    def test_ordered_suggestion_cannot_be_reapproved(self) -> None:
        with self.session() as db:
            self.link_supplier(db)
            suggestion = self._pending_suggestion(db)
            db.commit()
            set_suggestion_status(db, ctx=self.ctx, suggestion_id=suggestion.id, status='approved')
            db.commit()

            with self.assertRaises(InvalidTransitionError):
                set_suggestion_status(db, ctx=self.ctx, suggestion_id=suggestion.id, status='approved')
            self.assertEqual(len(db.execute(select(PurchaseOrder)).scalars().all()), 1)

    def test_unknown_status_and_suggestion_are_rejected(self) -> None:
        with self.session() as db:
            suggestion = self._pending_suggestion(db)
            db.commit()

            with self.assertRaises(InvalidTransitionError):
                set_suggestion_status(db, ctx=self.ctx, suggestion_id=suggestion.id, status='ordered')
            with self.assertRaises(InvalidTransitionError):
                set_suggestion_status(db, ctx=self.ctx, suggestion_id=suggestion.id, status='shipped')
            with self.assertRaises(NotFoundError):
                set_suggestion_status(db, ctx=self.ctx, suggestion_id=9999, status='approved')

    def test_listing_orders_by_priority_then_days(self) -> None:
        with self.session() as db:
            other_warehouses = []
            for code in ('WH-2', 'WH-3', 'WH-4'):
                warehouse = Warehouse(organization_id=self.organization_id, name=f'Store {code}', code=code, active=True)
                db.add(warehouse)
                db.flush()
                other_warehouses.append(warehouse.id)

            low = self._pending_suggestion(db, warehouse_id=self.warehouse_id, priority=ReorderPriority.LOW, days=1)
            critical_later = self._pending_suggestion(
                db, warehouse_id=other_warehouses[0], priority=ReorderPriority.CRITICAL, days=3
            )
            critical_sooner = self._pending_suggestion(
                db, warehouse_id=other_warehouses[1], priority=ReorderPriority.CRITICAL, days=1
            )
            high_unknown = self._pending_suggestion(db, warehouse_id=other_warehouses[2], priority=ReorderPriority.HIGH)
            db.commit()

            listed = list_suggestions(db, ctx=self.ctx)

            self.assertEqual(
                [row['id'] for row in listed],
                [critical_sooner.id, critical_later.id, high_unknown.id, low.id],
            )
            self.assertEqual(listed[0]['productSku'], 'CW-100')
            with self.assertRaises(ValueError):
                list_suggestions(db, ctx=self.ctx, status='bogus')

    def test_approvals_from_separate_sessions_get_distinct_increasing_numbers(self) -> None:
        with self.session() as db:
            self.link_supplier(db, unit_price='20.00')
            suggestion_ids = []
            for index in range(5):
                warehouse = Warehouse(
                    organization_id=self.organization_id,
                    name=f'Branch {index}',
                    code=f'BR-{index}',
                    active=True,
                )
                db.add(warehouse)
                db.flush()
                suggestion_ids.append(self._pending_suggestion(db, warehouse_id=warehouse.id).id)
            db.commit()

        # SQLite allows one writer at a time, so each transaction holds the lock end to end.
        writer_lock = threading.Lock()

        def approve(suggestion_id: int) -> str:
            with writer_lock, self.session() as db:
                outcome = set_suggestion_status(db, ctx=self.ctx, suggestion_id=suggestion_id, status='approved')
                db.commit()
                return outcome.purchase_order.po_number

        with ThreadPoolExecutor(max_workers=5) as pool:
            numbers = list(pool.map(approve, suggestion_ids))

        self.assertEqual(len(set(numbers)), 5)
        self.assertEqual(sorted(numbers), [f'PO00000{n}' for n in range(1, 6)])
        with self.session() as db:
            stored = db.execute(select(PurchaseOrder.po_number).order_by(PurchaseOrder.id)).scalars().all()
            self.assertEqual(stored, sorted(stored))
            sequence = db.execute(select(DocumentSequence)).scalar_one()
            self.assertEqual(sequence.next_number, 6)


if __name__ == '__main__':
    unittest.main()
