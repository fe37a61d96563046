"""Domain events for the Delivery aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from checkout.domain import checkout


@checkout.event(part_of="Delivery")
class DeliveryOpened:
    """A confirmed order entered the delivery pipeline."""

    __version__ = 1

    delivery_id = Identifier(required=True)
    order_id = Identifier(required=True)
    tracking_id = String(required=True)
    fee = Float()
    opened_at = DateTime(required=True)


@checkout.event(part_of="Delivery")
class DeliveryAgentAssigned:
    __version__ = 1

    delivery_id = Identifier(required=True)
    order_id = Identifier(required=True)
    agent_id = Identifier(required=True)
    assigned_at = DateTime(required=True)


@checkout.event(part_of="Delivery")
class DeliveryStatusChanged:
    """An agent scan moved the delivery forward."""

    __version__ = 1

    delivery_id = Identifier(required=True)
    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    notes = String()
    changed_at = DateTime(required=True)


@checkout.event(part_of="Delivery")
class DeliveryFailed:
    __version__ = 1

    delivery_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = String(required=True)
    failed_at = DateTime(required=True)
