"""Seller and admin order transitions — commands and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from checkout.delivery.tracking import open_delivery_for
from checkout.domain import checkout, logger
from checkout.order.order import Order


@checkout.command(part_of="Order")
class ConfirmOrder:
    """Confirm an order; prepaid orders need an approved payment first."""

    order_id = Identifier(required=True)


@checkout.command(part_of="Order")
class PackOrder:
    order_id = Identifier(required=True)


@checkout.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@checkout.command(part_of="Order")
class RejectOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@checkout.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(ConfirmOrder)
    def confirm_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.confirm()
        repo.add(order)
        open_delivery_for(order)
        logger.info("order_confirmed", order_id=str(order.id))

    @handle(PackOrder)
    def pack_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.pack()
        repo.add(order)

    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel(command.reason)
        repo.add(order)
        logger.info("order_cancelled", order_id=str(order.id), reason=command.reason)

    @handle(RejectOrder)
    def reject_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.reject(command.reason)
        repo.add(order)
        logger.info("order_rejected", order_id=str(order.id), reason=command.reason)
