"""Domain events for the Voucher and DeliveryVoucher aggregates."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="Voucher")
class VoucherCreated:
    """A seller, company or admin issued a new voucher code."""

    __version__ = 1

    voucher_id = Identifier(required=True)
    code = String(required=True)
    discount_type = String(required=True)
    discount_value = Float(required=True)
    max_uses = Integer(required=True)
    created_by = Identifier()
    valid_from = DateTime(required=True)
    valid_until = DateTime(required=True)


@checkout.event(part_of="Voucher")
class VoucherRedeemed:
    """One use of the voucher was claimed by an order."""

    __version__ = 1

    voucher_id = Identifier(required=True)
    code = String(required=True)
    used_count = Integer(required=True)
    max_uses = Integer(required=True)
    redeemed_at = DateTime(required=True)


@checkout.event(part_of="Voucher")
class VoucherRedemptionReleased:
    """A claimed use was handed back because the order was never created."""

    __version__ = 1

    voucher_id = Identifier(required=True)
    code = String(required=True)
    used_count = Integer(required=True)
    released_at = DateTime(required=True)


@checkout.event(part_of="Voucher")
class VoucherDeactivated:
    __version__ = 1

    voucher_id = Identifier(required=True)
    code = String(required=True)
    deactivated_at = DateTime(required=True)


@checkout.event(part_of="DeliveryVoucher")
class DeliveryVoucherCreated:
    """An admin issued a code that discounts the delivery fee."""

    __version__ = 1

    voucher_id = Identifier(required=True)
    code = String(required=True)
    discount_type = String(required=True)
    discount_value = Float(required=True)
    max_uses = Integer()
    expires_at = DateTime()


@checkout.event(part_of="DeliveryVoucher")
class DeliveryVoucherRedeemed:
    __version__ = 1

    voucher_id = Identifier(required=True)
    code = String(required=True)
    used_count = Integer(required=True)
    max_uses = Integer()
    redeemed_at = DateTime(required=True)


@checkout.event(part_of="DeliveryVoucher")
class DeliveryVoucherRedemptionReleased:
    __version__ = 1

    voucher_id = Identifier(required=True)
    code = String(required=True)
    used_count = Integer(required=True)
    released_at = DateTime(required=True)


@checkout.event(part_of="DeliveryVoucher")
class DeliveryVoucherDeactivated:
    __version__ = 1

    voucher_id = Identifier(required=True)
    code = String(required=True)
    deactivated_at = DateTime(required=True)
