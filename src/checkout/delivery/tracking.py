"""Delivery agent actions — commands and handler.

Each scan moves the delivery one step and, where the order axis follows,
the order with it, inside one unit of work:

    PICKED_UP         → order DISPATCHED (order must be PACKED)
    IN_TRANSIT        → order unchanged
    OUT_FOR_DELIVERY  → order OUT_FOR_DELIVERY
    DELIVERED         → order DELIVERED
    FAILED            → order unchanged

A failed attempt is terminal for the delivery and leaves the order
OUT_FOR_DELIVERY. No scan or order command moves it on from there; the
failed attempt is settled with the buyer outside the engine.
"""

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from checkout.delivery.delivery import Delivery
from checkout.domain import checkout, logger
from checkout.order.order import Order


def delivery_for_order(order_id: str) -> Delivery | None:
    results = current_domain.repository_for(Delivery)._dao.query.filter(order_id=str(order_id)).all()
    return results.first if results.items else None


def open_delivery_for(order: Order) -> Delivery:
    """Open the delivery of a freshly confirmed order, once."""
    existing = delivery_for_order(order.id)
    if existing is not None:
        return existing
    delivery = Delivery.open_for(order_id=str(order.id), fee=order.pricing.delivery_fee if order.pricing else 0.0)
    current_domain.repository_for(Delivery).add(delivery)
    logger.info("delivery_opened", order_id=str(order.id), tracking_id=delivery.tracking_id)
    return delivery


@checkout.command(part_of="Delivery")
class AssignDeliveryAgent:
    delivery_id = Identifier(required=True)
    agent_id = Identifier(required=True)


@checkout.command(part_of="Delivery")
class RecordPickup:
    delivery_id = Identifier(required=True)
    agent_id = Identifier(required=True)
    notes = Text()


@checkout.command(part_of="Delivery")
class RecordInTransit:
    delivery_id = Identifier(required=True)
    agent_id = Identifier(required=True)
    notes = Text()


@checkout.command(part_of="Delivery")
class RecordOutForDelivery:
    delivery_id = Identifier(required=True)
    agent_id = Identifier(required=True)
    notes = Text()


@checkout.command(part_of="Delivery")
class ConfirmDelivery:
    delivery_id = Identifier(required=True)
    agent_id = Identifier(required=True)
    notes = Text()


@checkout.command(part_of="Delivery")
class RecordDeliveryFailure:
    delivery_id = Identifier(required=True)
    agent_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@checkout.command_handler(part_of=Delivery)
class DeliveryTrackingHandler:
    def _load(self, command) -> tuple[Delivery, Order]:
        delivery = current_domain.repository_for(Delivery).get(command.delivery_id)
        delivery.assert_handled_by(command.agent_id)
        order = current_domain.repository_for(Order).get(delivery.order_id)
        return delivery, order

    def _save(self, delivery: Delivery, order: Order | None = None) -> None:
        current_domain.repository_for(Delivery).add(delivery)
        if order is not None:
            current_domain.repository_for(Order).add(order)
        logger.info(
            "delivery_status_changed",
            delivery_id=str(delivery.id),
            status=delivery.status,
            order_status=order.status if order is not None else None,
        )

    @handle(AssignDeliveryAgent)
    def assign_agent(self, command):
        repo = current_domain.repository_for(Delivery)
        delivery = repo.get(command.delivery_id)
        delivery.assign_agent(command.agent_id)
        repo.add(delivery)

    @handle(RecordPickup)
    def record_pickup(self, command):
        delivery, order = self._load(command)
        delivery.pick_up(command.notes)
        order.dispatch()
        self._save(delivery, order)

    @handle(RecordInTransit)
    def record_in_transit(self, command):
        delivery, _ = self._load(command)
        delivery.start_transit(command.notes)
        self._save(delivery)

    @handle(RecordOutForDelivery)
    def record_out_for_delivery(self, command):
        delivery, order = self._load(command)
        delivery.send_out_for_delivery(command.notes)
        order.send_out_for_delivery()
        self._save(delivery, order)

    @handle(ConfirmDelivery)
    def confirm_delivery(self, command):
        delivery, order = self._load(command)
        delivery.confirm_delivery(command.notes)
        order.mark_delivered()
        self._save(delivery, order)

    @handle(RecordDeliveryFailure)
    def record_failure(self, command):
        delivery, _ = self._load(command)
        delivery.fail(command.reason)
        self._save(delivery)
