"""Tax rates read from the ``TAX_RATES`` setting."""

from printshop.tax.port import TaxLookupUnavailable, TaxRatePort
from printshop.utils import settings


class SettingsTaxRates(TaxRatePort):
    def __init__(self, rates: dict | None = None):
        self._rates = rates if rates is not None else settings.TAX_RATES

    def rate_for(self, state):
        by_state = self._rates.get("by_state") or {}
        rate = by_state.get((state or "").strip().upper())
        return float(rate) if rate is not None else None

    def default_rate(self):
        if "default" not in self._rates:
            raise TaxLookupUnavailable("No default tax rate configured")
        return float(self._rates["default"])
