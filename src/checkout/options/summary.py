"""Checkout-level delivery quote.

Folds the per-seller delivery options into the single answer the buyer
sees: can the order go ahead, what delivery costs in total, and whether
any seller accepts payment on delivery. ``quote_delivery`` runs the whole
pipeline from raw cart lines.
"""

from dataclasses import dataclass

from checkout.cart.grouping import cart_subtotal, group_by_seller
from checkout.domain import logger
from checkout.location.counties import DeliveryLocation, resolve_location
from checkout.options.eligibility import DeliveryOption, PaymentTiming, resolve_delivery
from checkout.seller.delivery_fee import platform_delivery_fee

ALL_DELIVERABLE = "All items can be delivered to your location"
SOME_UNDELIVERABLE = "Some items cannot be delivered to your location"


@dataclass(frozen=True)
class DeliveryQuote:
    location: DeliveryLocation
    delivery_options: tuple[DeliveryOption, ...]
    subtotal: float
    total_delivery_fee: float
    can_proceed_with_order: bool
    undeliverable_items: tuple[DeliveryOption, ...] | None
    has_pay_after_delivery_options: bool
    message: str

    def supports_pay_after_delivery_everywhere(self) -> bool:
        return all(option.allows(PaymentTiming.AFTER_DELIVERY) for option in self.delivery_options)


def summarize(location: DeliveryLocation, options) -> DeliveryQuote:
    options = tuple(options)
    undeliverable = tuple(option for option in options if option.undeliverable)
    return DeliveryQuote(
        location=location,
        delivery_options=options,
        subtotal=cart_subtotal(options),
        total_delivery_fee=round(sum(option.delivery_fee for option in options), 2),
        can_proceed_with_order=not undeliverable,
        undeliverable_items=undeliverable or None,
        has_pay_after_delivery_options=any(option.allows(PaymentTiming.AFTER_DELIVERY) for option in options),
        message=SOME_UNDELIVERABLE if undeliverable else ALL_DELIVERABLE,
    )


def quote_delivery(lines, county) -> DeliveryQuote:
    """Resolve the county, group the cart by seller and quote every group."""
    location = resolve_location(county)
    groups = group_by_seller(lines)
    platform_fee = platform_delivery_fee()
    quote = summarize(location, (resolve_delivery(group, location, platform_fee) for group in groups))
    logger.debug(
        "delivery_quoted",
        county=location.county,
        sellers=len(groups),
        can_proceed=quote.can_proceed_with_order,
        total_delivery_fee=quote.total_delivery_fee,
    )
    return quote
