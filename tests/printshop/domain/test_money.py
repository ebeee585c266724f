from datetime import UTC, datetime, timedelta
from decimal import Decimal

from printshop.shared.clock import as_naive_utc, is_due
from printshop.shared.money import money_add, money_mul, money_sum, to_decimal


class TestMoney:
    def test_sum_is_exact(self):
        assert money_sum([0.1, 0.2]) == 0.3

    def test_cart_line_totals(self):
        assert money_add(money_mul(10, 0.29), money_mul(2, 0.49)) == 3.88

    def test_tax_on_cart_total(self):
        assert money_mul(3.88, 0.0625) == 0.2425
        assert money_add(3.88, 0.2425) == 4.1225

    def test_none_counts_as_zero(self):
        assert to_decimal(None) == Decimal("0")
        assert money_sum([]) == 0.0


class TestClock:
    def test_naive_and_aware_compare(self):
        aware = datetime(2026, 1, 1, 12, tzinfo=UTC)
        naive = datetime(2026, 1, 1, 12)
        assert as_naive_utc(aware) == naive
        assert is_due(naive, aware)
        assert not is_due(aware + timedelta(seconds=1), naive)
        assert not is_due(None, aware)
