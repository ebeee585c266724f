"""Decimal arithmetic for prices.

Amounts are stored as floats on the aggregates, but every sum and product is
taken in ``Decimal`` so that 0.29 x 10 + 0.49 x 2 is exactly 3.88.
"""

from collections.abc import Iterable
from decimal import Decimal


def to_decimal(value) -> Decimal:
    return Decimal(str(value or 0))


def money_sum(values: Iterable) -> float:
    return float(sum((to_decimal(v) for v in values), Decimal("0")))


def money_mul(amount, factor) -> float:
    return float(to_decimal(amount) * to_decimal(factor))


def money_add(*amounts) -> float:
    return money_sum(amounts)
