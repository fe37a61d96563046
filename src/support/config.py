"""Environment-driven settings for support payments."""

import os

CURRENCY = "KES"
MIN_SUPPORT_AMOUNT = 10.0


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return float(raw)


def platform_fee_percent() -> float:
    return _float_env("SUPPORT_PLATFORM_FEE_PERCENT", 5.0)


def poll_interval() -> float:
    """Seconds between status checks while a payment is pending."""
    return _float_env("SUPPORT_POLL_INTERVAL", 3.0)


def poll_timeout() -> float:
    """Seconds after which a still-pending payment counts as failed."""
    return _float_env("SUPPORT_POLL_TIMEOUT", 120.0)
