"""Tax rate port: where the shop learns the sales tax rate for a state.

Rate tables live outside this service. Adapters raise
``TaxLookupUnavailable`` when that storage cannot be reached.
"""

from abc import ABC, abstractmethod


class TaxLookupUnavailable(Exception):
    """The rate configuration could not be read."""


class TaxRatePort(ABC):
    @abstractmethod
    def rate_for(self, state: str | None) -> float | None:
        """Rate for a two-letter state code, or None when the state has no entry."""
        ...

    @abstractmethod
    def default_rate(self) -> float:
        """Configured rate for states without their own entry."""
        ...
