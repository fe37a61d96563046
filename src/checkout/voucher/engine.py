"""Voucher validation and pricing.

Checks run in a fixed order and the first failure wins:

1. the code exists and is active
2. now falls inside ``[valid_from, valid_until]``
3. a use is still available
4. the buyer's role is allowed
5. the cart holds at least one allowed product type
6. the subtotal meets the minimum order amount

Delivery vouchers run a shorter list (active, not expired, not used up,
minimum order) and discount the delivery fee only, never below zero.

Pricing never touches ``used_count``; only the repositories' ``claim_use``
consumes a use, and only when an order is placed.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from protean.utils.globals import current_domain

from checkout.errors import (
    VoucherExhausted,
    VoucherExpired,
    VoucherMinimumNotMet,
    VoucherNotApplicableToProducts,
    VoucherNotApplicableToRole,
    VoucherNotFound,
    VoucherNotYetActive,
)
from checkout.options.fees import format_ksh
from checkout.voucher.delivery_voucher import DeliveryVoucher
from checkout.voucher.repository import normalize_code
from checkout.voucher.voucher import DiscountType, Voucher


@dataclass(frozen=True)
class VoucherContext:
    """What the engine needs to know about the checkout being discounted."""

    role: str
    subtotal: float
    product_types: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class VoucherQuote:
    voucher_id: str
    code: str
    name: str
    discount_type: str
    discount_value: float
    discount_amount: float
    waives_delivery_fee: bool

    def final_total(self, subtotal: float, delivery_fee: float = 0.0) -> float:
        fee = 0.0 if self.waives_delivery_fee else delivery_fee
        return round(subtotal - self.discount_amount + fee, 2)


def as_aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo else moment.replace(tzinfo=UTC)


def validate_voucher(voucher: Voucher | None, context: VoucherContext, now: datetime | None = None) -> Voucher:
    now = as_aware(now or datetime.now(UTC))

    if voucher is None:
        raise VoucherNotFound("Invalid voucher code")
    if not voucher.is_active:
        raise VoucherNotFound("Voucher is no longer active")

    if now < as_aware(voucher.valid_from):
        raise VoucherNotYetActive("Voucher is not yet valid")
    if now > as_aware(voucher.valid_until):
        raise VoucherExpired("Voucher has expired")

    if voucher.is_exhausted():
        raise VoucherExhausted("Voucher usage limit reached")

    roles = voucher.roles
    if roles and context.role not in roles:
        raise VoucherNotApplicableToRole("Voucher not applicable for your account type")

    product_types = voucher.product_types
    if product_types and not set(product_types) & set(context.product_types):
        raise VoucherNotApplicableToProducts("Voucher not applicable for products in your cart")

    if context.subtotal < (voucher.min_order_amount or 0.0):
        raise VoucherMinimumNotMet(f"Minimum order amount is {format_ksh(voucher.min_order_amount)}")

    return voucher


def discount_for(voucher: Voucher, subtotal: float) -> float:
    cap = voucher.max_discount_amount
    discount_type = DiscountType(voucher.discount_type)

    if discount_type == DiscountType.FREE_SHIPPING:
        return 0.0
    if discount_type == DiscountType.PERCENTAGE:
        amount = subtotal * voucher.discount_value / 100
    else:
        amount = voucher.discount_value

    if cap:
        amount = min(amount, cap)
    return round(min(amount, subtotal), 2)


def price_voucher(voucher: Voucher, context: VoucherContext, now: datetime | None = None) -> VoucherQuote:
    validate_voucher(voucher, context, now)
    return VoucherQuote(
        voucher_id=str(voucher.id),
        code=voucher.code,
        name=voucher.name,
        discount_type=voucher.discount_type,
        discount_value=voucher.discount_value,
        discount_amount=discount_for(voucher, context.subtotal),
        waives_delivery_fee=voucher.discount_type == DiscountType.FREE_SHIPPING.value,
    )


def preview_voucher(code: str, context: VoucherContext, now: datetime | None = None) -> VoucherQuote:
    """Price a code for display without consuming a use."""
    voucher = current_domain.repository_for(Voucher).find_by_code(normalize_code(code))
    return price_voucher(voucher, context, now)


# ---------------------------------------------------------------------------
# Delivery vouchers
# ---------------------------------------------------------------------------
_DELIVERY_FIELD = "delivery_voucher_code"


@dataclass(frozen=True)
class DeliveryVoucherQuote:
    voucher_id: str
    code: str
    name: str
    discount_type: str
    discount_value: float
    delivery_discount: float

    def delivery_fee_after(self, delivery_fee: float) -> float:
        return round(max(delivery_fee - self.delivery_discount, 0.0), 2)


def validate_delivery_voucher(
    voucher: DeliveryVoucher | None, subtotal: float, now: datetime | None = None
) -> DeliveryVoucher:
    """Active, not expired, not used up, and the subtotal meets the minimum."""
    now = as_aware(now or datetime.now(UTC))

    if voucher is None or not voucher.is_active:
        raise VoucherNotFound("Invalid delivery voucher code", field=_DELIVERY_FIELD)
    if voucher.is_expired(now):
        raise VoucherExpired("Delivery voucher has expired", field=_DELIVERY_FIELD)
    if voucher.is_exhausted():
        raise VoucherExhausted("Delivery voucher usage limit reached", field=_DELIVERY_FIELD)
    if subtotal < (voucher.min_order_amount or 0.0):
        raise VoucherMinimumNotMet(
            f"Minimum order amount is {format_ksh(voucher.min_order_amount)}", field=_DELIVERY_FIELD
        )
    return voucher


def delivery_discount_for(voucher: DeliveryVoucher, delivery_fee: float) -> float:
    discount_type = DiscountType(voucher.discount_type)
    if discount_type == DiscountType.FREE_SHIPPING:
        amount = delivery_fee
    elif discount_type == DiscountType.PERCENTAGE:
        amount = delivery_fee * voucher.discount_value / 100
    else:
        amount = voucher.discount_value
    return round(min(amount, delivery_fee), 2)


def price_delivery_voucher(
    voucher: DeliveryVoucher | None, subtotal: float, delivery_fee: float, now: datetime | None = None
) -> DeliveryVoucherQuote:
    validate_delivery_voucher(voucher, subtotal, now)
    return DeliveryVoucherQuote(
        voucher_id=str(voucher.id),
        code=voucher.code,
        name=voucher.name,
        discount_type=voucher.discount_type,
        discount_value=voucher.discount_value,
        delivery_discount=delivery_discount_for(voucher, delivery_fee),
    )


def preview_delivery_voucher(
    code: str, subtotal: float, delivery_fee: float, now: datetime | None = None
) -> DeliveryVoucherQuote:
    voucher = current_domain.repository_for(DeliveryVoucher).find_by_code(normalize_code(code))
    return price_delivery_voucher(voucher, subtotal, delivery_fee, now)
