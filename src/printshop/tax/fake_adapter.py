"""Fake tax rates for tests, with a switch to simulate an unreachable store."""

from printshop.tax.port import TaxLookupUnavailable, TaxRatePort


class FakeTaxRates(TaxRatePort):
    def __init__(self):
        self.rates = {"MA": 0.0625}
        self.default = 0.05
        self.reachable = True

    def configure(self, rates=None, default=None, reachable=True):
        if rates is not None:
            self.rates = dict(rates)
        if default is not None:
            self.default = default
        self.reachable = reachable

    def rate_for(self, state):
        if not self.reachable:
            raise TaxLookupUnavailable("Tax configuration unreachable")
        return self.rates.get((state or "").upper())

    def default_rate(self):
        if not self.reachable:
            raise TaxLookupUnavailable("Tax configuration unreachable")
        return self.default
