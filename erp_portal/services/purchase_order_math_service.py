from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal('0.01')
HUNDRED = Decimal('100')


@dataclass(frozen=True)
class LineAmountInput:
    quantity: Decimal
    unit_price: Decimal
    tax_rate: Decimal


@dataclass(frozen=True)
class LineAmounts:
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal


def quantize_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _validate_line(line: LineAmountInput) -> None:
    if line.quantity <= 0:
        raise ValueError('Quantity must be greater than zero')
    if line.unit_price < 0:
        raise ValueError('Unit price cannot be negative')
    if line.tax_rate < 0 or line.tax_rate > HUNDRED:
        raise ValueError('Tax rate must be between 0 and 100')


def compute_line_amounts(line: LineAmountInput) -> LineAmounts:
    _validate_line(line)
    subtotal = quantize_money(Decimal(line.quantity) * Decimal(line.unit_price))
    tax_amount = quantize_money(subtotal * Decimal(line.tax_rate) / HUNDRED)
    return LineAmounts(subtotal=subtotal, tax_amount=tax_amount, total=subtotal + tax_amount)


def compute_order_totals(lines: list[LineAmountInput]) -> OrderTotals:
    if not lines:
        raise ValueError('At least one line is required')
    subtotal = Decimal('0.00')
    tax_amount = Decimal('0.00')
    for line in lines:
        amounts = compute_line_amounts(line)
        subtotal += amounts.subtotal
        tax_amount += amounts.tax_amount
    return OrderTotals(
        subtotal=quantize_money(subtotal),
        tax_amount=quantize_money(tax_amount),
        total_amount=quantize_money(subtotal + tax_amount),
    )
