"""Domain events for the Order aggregate.

One event per transition on either the order axis or the payment axis.
Downstream consumers (notifications, seller dashboards) subscribe to these
rather than polling order state.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from checkout.domain import checkout


@checkout.event(part_of="Order")
class OrderPlaced:
    """A buyer placed an order from a deliverable cart."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of item dicts
    item_count = Integer(required=True)
    subtotal = Float(required=True)
    discount_amount = Float()
    delivery_fee = Float()
    total = Float(required=True)
    currency = String(default="KES")
    payment_type = String(required=True)
    voucher_code = String()
    delivery_voucher_code = String()
    delivery_discount_amount = Float()
    county = String(required=True)
    placed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class PaymentSubmitted:
    """The buyer submitted proof of payment for admin review."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_reference = String(required=True)
    payment_method = String()
    submitted_at = DateTime(required=True)


@checkout.event(part_of="Order")
class PaymentApproved:
    __version__ = 1

    order_id = Identifier(required=True)
    approved_by = Identifier(required=True)
    approved_at = DateTime(required=True)


@checkout.event(part_of="Order")
class PaymentRejected:
    __version__ = 1

    order_id = Identifier(required=True)
    rejected_by = Identifier(required=True)
    reason = String()
    rejected_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderConfirmed:
    __version__ = 1

    order_id = Identifier(required=True)
    confirmed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderPacked:
    __version__ = 1

    order_id = Identifier(required=True)
    packed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderDispatched:
    """The delivery agent collected the packed order."""

    __version__ = 1

    order_id = Identifier(required=True)
    dispatched_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderOutForDelivery:
    __version__ = 1

    order_id = Identifier(required=True)
    out_for_delivery_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    delivered_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    reason = String()
    cancelled_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderRejected:
    __version__ = 1

    order_id = Identifier(required=True)
    reason = String()
    rejected_at = DateTime(required=True)
