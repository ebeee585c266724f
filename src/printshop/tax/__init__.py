"""Tax rate lookup: pluggable adapters plus the fallback chain used at checkout."""

import structlog

from printshop.tax.port import TaxLookupUnavailable
from printshop.utils import settings

logger = structlog.get_logger(__name__)

# Used only when no configured rate can be read at all
FALLBACK_TAX_RATE = 0.0625

_lookup_instance = None


def get_tax_lookup():
    """Return the configured tax rate adapter (singleton).

    Selected with the TAX_RATE_ADAPTER setting: "settings" (default) or "fake".
    """
    global _lookup_instance
    if _lookup_instance is None:
        adapter = settings.TAX_RATE_ADAPTER
        if adapter == "settings":
            from printshop.tax.settings_adapter import SettingsTaxRates

            _lookup_instance = SettingsTaxRates()
        elif adapter == "fake":
            from printshop.tax.fake_adapter import FakeTaxRates

            _lookup_instance = FakeTaxRates()
        else:
            raise ValueError(f"Unknown tax rate adapter: {adapter}")
    return _lookup_instance


def set_tax_lookup(lookup):
    """Install a specific adapter (tests, or wiring done by the host process)."""
    global _lookup_instance
    _lookup_instance = lookup


def reset_tax_lookup():
    global _lookup_instance
    _lookup_instance = None


def resolve_tax_rate(state: str | None) -> float:
    """Rate for ``state``, else the configured default, else 6.25%."""
    lookup = get_tax_lookup()
    try:
        rate = lookup.rate_for(state)
        return rate if rate is not None else lookup.default_rate()
    except TaxLookupUnavailable as exc:
        logger.warning(
            "Tax rate lookup unavailable, using fallback rate",
            state=state,
            fallback_rate=FALLBACK_TAX_RATE,
            error=str(exc),
        )
        return FALLBACK_TAX_RATE


def display_tax_rate() -> float:
    """Rate used for cart estimates before a shipping state is known."""
    return resolve_tax_rate(settings.DEFAULT_TAX_STATE)
