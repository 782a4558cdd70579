from decimal import Decimal

from django.conf import settings

# Defaults for settings.BILLING; any key can be overridden per deployment.
DEFAULTS = {
    # Quantum every money amount is rounded (half-up) to. "1" = whole units.
    "AMOUNT_QUANTUM": "1",
    # Net terms applied when an invoice arrives without a due date
    "DEFAULT_PAYMENT_TERMS_DAYS": 30,
    "DEFAULT_PAGE_SIZE": 20,
    "MAX_PAGE_SIZE": 100,
    "DEFAULT_PAYMENT_METHOD": "UPI",
    # False keeps the tolerant bill update path (unknown status is dropped)
    "STRICT_BILL_STATUS": False,
    "FORECAST": {
        "horizon_days": 30,
        "default_terms": 30,
        "mult_medium": 1.2,
        "mult_high": 1.6,
        "mult_critical": 2.0,
        "collection_push": 3,
        "spread_days": 7,
        "spread_shape": "geometric",
        "discount_percent": 2.0,
        "discount_uptake": 35.0,
        "discount_pull_forward_days": 5,
        # upper bounds for request overrides
        "max_horizon_days": 365,
        "max_spread_days": 60,
    },
}


def billing_setting(name):
    overrides = getattr(settings, "BILLING", {}) or {}
    value = overrides.get(name, DEFAULTS[name])
    if isinstance(DEFAULTS[name], dict):
        # shallow-merge nested dicts so a partial override keeps the rest
        merged = dict(DEFAULTS[name])
        merged.update(value or {})
        return merged
    return value


def amount_quantum():
    return Decimal(str(billing_setting("AMOUNT_QUANTUM")))
