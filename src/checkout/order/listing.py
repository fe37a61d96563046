"""Order visibility by role.

Customers see their own orders, sellers and companies see orders holding
at least one of their items, delivery agents see orders whose delivery is
assigned to them, and admins see every order.
"""

from datetime import UTC, datetime

from protean.utils.globals import current_domain

from checkout.delivery.delivery import Delivery
from checkout.delivery.tracking import delivery_for_order
from checkout.order.order import Order

SELLING_ROLES = frozenset({"SELLER", "COMPANY"})


def can_view(order: Order, role: str, user_id: str) -> bool:
    if role == "ADMIN":
        return True
    if role == "CUSTOMER":
        return str(order.customer_id) == user_id
    if role in SELLING_ROLES:
        return any(str(item.seller_id) == user_id for item in order.items)
    if role == "DELIVERY_AGENT":
        delivery = delivery_for_order(order.id)
        return delivery is not None and str(delivery.agent_id or "") == user_id
    return False


def orders_for(role: str, user_id: str, status: str | None = None) -> list[Order]:
    """Orders visible to the caller, newest first."""
    repo = current_domain.repository_for(Order)
    if role == "CUSTOMER":
        orders = repo._dao.query.filter(customer_id=user_id).all().items
    elif role == "DELIVERY_AGENT":
        deliveries = current_domain.repository_for(Delivery)._dao.query.filter(agent_id=user_id).all().items
        orders = [repo.get(delivery.order_id) for delivery in deliveries]
    else:
        orders = [order for order in repo._dao.query.all().items if can_view(order, role, user_id)]

    if status:
        orders = [order for order in orders if order.status == status.upper()]
    epoch = datetime.min.replace(tzinfo=UTC)
    return sorted(
        orders,
        key=lambda order: order.created_at.replace(tzinfo=order.created_at.tzinfo or UTC) if order.created_at else epoch,
        reverse=True,
    )
