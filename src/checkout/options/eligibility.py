"""Per-seller delivery eligibility.

Three outcomes per seller group:

* the seller does not deliver → the platform delivers for a platform fee;
* the seller delivers, but neither to the buyer's province nor county →
  the group is undeliverable;
* the seller delivers there → fee from the fee calculator, and the buyer
  may pay on receipt if the seller allows it.
"""

from dataclasses import dataclass
from enum import Enum

from checkout.cart.grouping import PricedItem, SellerGroup
from checkout.location.counties import DeliveryLocation
from checkout.options.fees import calculate_fee


class PaymentTiming(Enum):
    BEFORE_DELIVERY = "BEFORE_DELIVERY"
    AFTER_DELIVERY = "AFTER_DELIVERY"


@dataclass(frozen=True)
class DeliveryOption:
    seller_id: str
    seller_name: str
    seller_role: str
    items: tuple[PricedItem, ...]
    subtotal: float
    can_deliver: bool
    delivery_available: bool
    requires_platform_delivery: bool
    delivery_fee: float
    free_delivery_eligible: bool
    payment_options: tuple[str, ...]
    delivery_message: str

    @property
    def undeliverable(self) -> bool:
        return not self.can_deliver and not self.requires_platform_delivery

    def allows(self, timing: PaymentTiming) -> bool:
        return timing.value in self.payment_options


def resolve_delivery(group: SellerGroup, location: DeliveryLocation, platform_fee: float) -> DeliveryOption:
    seller = group.seller
    base = {
        "seller_id": seller.seller_id,
        "seller_name": seller.name,
        "seller_role": seller.role,
        "items": group.items,
        "subtotal": group.subtotal,
    }

    if not seller.offers_delivery:
        return DeliveryOption(
            **base,
            can_deliver=False,
            delivery_available=False,
            requires_platform_delivery=True,
            delivery_fee=platform_fee,
            free_delivery_eligible=False,
            payment_options=(PaymentTiming.BEFORE_DELIVERY.value,),
            delivery_message="This seller uses platform delivery service",
        )

    delivers_to_province = location.province in seller.delivery_provinces
    delivers_to_county = location.county in seller.delivery_counties
    if not delivers_to_province and not delivers_to_county:
        return DeliveryOption(
            **base,
            can_deliver=False,
            delivery_available=False,
            requires_platform_delivery=False,
            delivery_fee=0.0,
            free_delivery_eligible=False,
            payment_options=(PaymentTiming.BEFORE_DELIVERY.value,),
            delivery_message=f"{seller.name} doesn't deliver to {location.county}",
        )

    payment_options = (PaymentTiming.BEFORE_DELIVERY.value,)
    if seller.offers_pay_after_delivery:
        payment_options += (PaymentTiming.AFTER_DELIVERY.value,)

    quote = calculate_fee(seller, group.subtotal)
    return DeliveryOption(
        **base,
        can_deliver=True,
        delivery_available=True,
        requires_platform_delivery=False,
        delivery_fee=quote.fee,
        free_delivery_eligible=quote.free_delivery_eligible,
        payment_options=payment_options,
        delivery_message=quote.message,
    )
