"""Delivery fee for a seller group that the seller delivers itself."""

from dataclasses import dataclass

from checkout import config
from checkout.seller.seller import DeliveryTerms


@dataclass(frozen=True)
class FeeQuote:
    fee: float
    free_delivery_eligible: bool
    message: str


def format_ksh(amount: float) -> str:
    amount = round(amount, 2)
    if amount == int(amount):
        return f"Ksh {int(amount)}"
    return f"Ksh {amount:.2f}"


def flat_fee(terms: DeliveryTerms) -> float:
    # A zero fee counts as "not set", same as a missing one.
    return terms.delivery_fee_per_km or config.standard_delivery_fee()


def calculate_fee(terms: DeliveryTerms, subtotal: float) -> FeeQuote:
    if terms.offers_free_delivery:
        minimum = terms.min_order_for_free_delivery or 0.0
        if subtotal >= minimum:
            return FeeQuote(fee=0.0, free_delivery_eligible=True, message="Free delivery available")
        shortfall = round(minimum - subtotal, 2)
        return FeeQuote(
            fee=flat_fee(terms),
            free_delivery_eligible=False,
            message=f"{format_ksh(shortfall)} more for free delivery",
        )

    return FeeQuote(fee=flat_fee(terms), free_delivery_eligible=False, message="Standard delivery fee applies")
