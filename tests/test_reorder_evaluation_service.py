from __future__ import annotations

import unittest
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import patch

from erp_portal.auth import RequestContext
from erp_portal.models import ReorderPriority
from erp_portal.services.procurement_settings_service import ProcurementParams
from erp_portal.services.reorder_evaluation_service import (
    compute_days_of_stock,
    compute_suggested_quantity,
    evaluate_reorder_candidates,
)
from erp_portal.services.suggestion_generation_service import resolve_priority

PARAMS = ProcurementParams(
    default_tax_rate=Decimal('18'),
    critical_days_threshold=3,
    consumption_lookback_days=30,
)
CTX = RequestContext(organization_id=1, principal_id=1)


def _rule(rule_id: int, product_id: int, *, reorder_point='10', reorder_quantity='50', max_quantity=None, warehouse_id=None):
    return SimpleNamespace(
        id=rule_id,
        product_id=product_id,
        warehouse_id=warehouse_id,
        reorder_point=Decimal(reorder_point),
        reorder_quantity=Decimal(reorder_quantity),
        max_quantity=Decimal(max_quantity) if max_quantity is not None else None,
        priority=ReorderPriority.NORMAL,
    )


class ReorderEvaluationServiceTests(unittest.TestCase):
    @patch('erp_portal.services.reorder_evaluation_service.list_active_rules')
    def test_stock_at_or_below_reorder_point_is_a_candidate(self, list_rules_mock) -> None:
        list_rules_mock.return_value = [_rule(1, 100), _rule(2, 200), _rule(3, 300)]
        stock = {100: Decimal('5'), 200: Decimal('10'), 300: Decimal('11')}

        result = evaluate_reorder_candidates(
            SimpleNamespace(),
            ctx=CTX,
            stock_loader=lambda product_id, _warehouse_id: stock[product_id],
            consumption_loader=lambda _product_id, _warehouse_id, _days: Decimal('60'),
            params=PARAMS,
        )

        self.assertEqual([candidate.product_id for candidate in result], [100, 200])
        first = result[0]
        self.assertEqual(first.current_stock, Decimal('5'))
        self.assertEqual(first.suggested_quantity, Decimal('50'))
        # 60 units over 30 days is 2 per day; 5 on hand lasts 2.5 days
        self.assertEqual(first.days_of_stock_remaining, 2)

    @patch('erp_portal.services.reorder_evaluation_service.list_active_rules')
    def test_no_consumption_leaves_days_unknown(self, list_rules_mock) -> None:
        list_rules_mock.return_value = [_rule(1, 100)]

        result = evaluate_reorder_candidates(
            SimpleNamespace(),
            ctx=CTX,
            stock_loader=lambda _product_id, _warehouse_id: Decimal('0'),
            consumption_loader=lambda _product_id, _warehouse_id, _days: Decimal('0'),
            params=PARAMS,
        )

        self.assertEqual(len(result), 1)
        self.assertIsNone(result[0].days_of_stock_remaining)

    @patch('erp_portal.services.reorder_evaluation_service.list_active_rules')
    def test_unreadable_rule_is_skipped_and_reported(self, list_rules_mock) -> None:
        list_rules_mock.return_value = [_rule(1, 100), _rule(2, 200)]

        def stock_loader(product_id, _warehouse_id):
            if product_id == 100:
                raise ValueError('stock unavailable')
            return Decimal('1')

        failures: list[int] = []
        result = evaluate_reorder_candidates(
            SimpleNamespace(),
            ctx=CTX,
            stock_loader=stock_loader,
            consumption_loader=lambda _product_id, _warehouse_id, _days: Decimal('0'),
            params=PARAMS,
            failures=failures,
        )

        self.assertEqual([candidate.rule_id for candidate in result], [2])
        self.assertEqual(failures, [1])

    @patch('erp_portal.services.reorder_evaluation_service.list_active_rules')
    def test_consumption_is_not_loaded_for_healthy_stock(self, list_rules_mock) -> None:
        list_rules_mock.return_value = [_rule(1, 100)]
        calls = []

        def consumption_loader(product_id, warehouse_id, days):
            calls.append((product_id, warehouse_id, days))
            return Decimal('0')

        result = evaluate_reorder_candidates(
            SimpleNamespace(),
            ctx=CTX,
            stock_loader=lambda _product_id, _warehouse_id: Decimal('500'),
            consumption_loader=consumption_loader,
            params=PARAMS,
        )

        self.assertEqual(result, [])
        self.assertEqual(calls, [])

    def test_max_quantity_tops_up_to_ceiling(self) -> None:
        self.assertEqual(
            compute_suggested_quantity(available=Decimal('5'), reorder_quantity=Decimal('50'), max_quantity=Decimal('100')),
            Decimal('95'),
        )
        self.assertEqual(
            compute_suggested_quantity(available=Decimal('80'), reorder_quantity=Decimal('50'), max_quantity=Decimal('100')),
            Decimal('50'),
        )
        self.assertEqual(
            compute_suggested_quantity(available=Decimal('5'), reorder_quantity=Decimal('50'), max_quantity=None),
            Decimal('50'),
        )

    def test_days_of_stock_floors_and_clamps_negative_stock(self) -> None:
        self.assertEqual(compute_days_of_stock(available=Decimal('9'), consumed_units=Decimal('30'), lookback_days=10), 3)
        self.assertEqual(compute_days_of_stock(available=Decimal('-4'), consumed_units=Decimal('30'), lookback_days=10), 0)
        self.assertIsNone(compute_days_of_stock(available=Decimal('9'), consumed_units=Decimal('0'), lookback_days=10))

    def test_priority_escalates_to_critical_within_threshold(self) -> None:
        candidate = SimpleNamespace(days_of_stock_remaining=3, priority=ReorderPriority.LOW)
        self.assertEqual(resolve_priority(candidate, critical_days_threshold=3), ReorderPriority.CRITICAL)

        candidate = SimpleNamespace(days_of_stock_remaining=4, priority=ReorderPriority.HIGH)
        self.assertEqual(resolve_priority(candidate, critical_days_threshold=3), ReorderPriority.HIGH)

        candidate = SimpleNamespace(days_of_stock_remaining=None, priority=ReorderPriority.NORMAL)
        self.assertEqual(resolve_priority(candidate, critical_days_threshold=3), ReorderPriority.NORMAL)


if __name__ == '__main__':
    unittest.main()
