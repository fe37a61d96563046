"""Environment-driven settings for the checkout domain."""

import os

CURRENCY = "KES"


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return float(raw)


def platform_delivery_fee() -> float:
    """Fee charged when no default DeliveryFee record is configured."""
    return _float_env("PLATFORM_DELIVERY_FEE", 200.0)


def standard_delivery_fee() -> float:
    """Flat fee for self-delivering sellers that have not set their own."""
    return _float_env("STANDARD_DELIVERY_FEE", 100.0)
