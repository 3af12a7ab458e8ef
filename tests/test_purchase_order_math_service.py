from __future__ import annotations

import unittest
from decimal import Decimal

from erp_portal.services.purchase_order_math_service import (
    LineAmountInput,
    compute_line_amounts,
    compute_order_totals,
    quantize_money,
)


class PurchaseOrderMathServiceTests(unittest.TestCase):
    def test_line_amounts_apply_tax_on_subtotal(self) -> None:
        amounts = compute_line_amounts(
            LineAmountInput(quantity=Decimal('10'), unit_price=Decimal('100.00'), tax_rate=Decimal('18'))
        )
        self.assertEqual(amounts.subtotal, Decimal('1000.00'))
        self.assertEqual(amounts.tax_amount, Decimal('180.00'))
        self.assertEqual(amounts.total, Decimal('1180.00'))

    def test_order_totals_sum_rounded_lines(self) -> None:
        totals = compute_order_totals(
            [
                LineAmountInput(quantity=Decimal('3'), unit_price=Decimal('9.99'), tax_rate=Decimal('5')),
                LineAmountInput(quantity=Decimal('1'), unit_price=Decimal('0.05'), tax_rate=Decimal('18')),
            ]
        )
        # 29.97 + 1.4985 -> 1.50; 0.05 + 0.009 -> 0.01
        self.assertEqual(totals.subtotal, Decimal('30.02'))
        self.assertEqual(totals.tax_amount, Decimal('1.51'))
        self.assertEqual(totals.total_amount, Decimal('31.53'))

    def test_zero_tax_leaves_total_equal_to_subtotal(self) -> None:
        totals = compute_order_totals(
            [LineAmountInput(quantity=Decimal('2.5'), unit_price=Decimal('4.10'), tax_rate=Decimal('0'))]
        )
        self.assertEqual(totals.subtotal, Decimal('10.25'))
        self.assertEqual(totals.tax_amount, Decimal('0.00'))
        self.assertEqual(totals.total_amount, totals.subtotal)

    def test_quantize_money_rounds_half_up(self) -> None:
        self.assertEqual(quantize_money(Decimal('2.345')), Decimal('2.35'))
        self.assertEqual(quantize_money(Decimal('2.344')), Decimal('2.34'))

    def test_rejects_invalid_lines(self) -> None:
        with self.assertRaises(ValueError):
            compute_line_amounts(LineAmountInput(quantity=Decimal('0'), unit_price=Decimal('1'), tax_rate=Decimal('0')))
        with self.assertRaises(ValueError):
            compute_line_amounts(LineAmountInput(quantity=Decimal('1'), unit_price=Decimal('-1'), tax_rate=Decimal('0')))
        with self.assertRaises(ValueError):
            compute_line_amounts(LineAmountInput(quantity=Decimal('1'), unit_price=Decimal('1'), tax_rate=Decimal('101')))

    def test_empty_order_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            compute_order_totals([])


if __name__ == '__main__':
    unittest.main()
