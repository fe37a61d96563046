"""Delivery aggregate (CQRS) — the delivery axis of a confirmed order.

State Machine:
    ASSIGNED → PICKED_UP → IN_TRANSIT → OUT_FOR_DELIVERY → DELIVERED | FAILED

A delivery is opened in ASSIGNED when its order is confirmed; an agent must
be attached before the parcel can be picked up.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, Text

from checkout.domain import checkout
from checkout.delivery.events import (
    DeliveryAgentAssigned,
    DeliveryFailed,
    DeliveryOpened,
    DeliveryStatusChanged,
)
from checkout.errors import InvalidTransition


class DeliveryStatus(Enum):
    ASSIGNED = "ASSIGNED"
    PICKED_UP = "PICKED_UP"
    IN_TRANSIT = "IN_TRANSIT"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"


_VALID_TRANSITIONS = {
    DeliveryStatus.ASSIGNED: {DeliveryStatus.PICKED_UP},
    DeliveryStatus.PICKED_UP: {DeliveryStatus.IN_TRANSIT},
    DeliveryStatus.IN_TRANSIT: {DeliveryStatus.OUT_FOR_DELIVERY},
    DeliveryStatus.OUT_FOR_DELIVERY: {DeliveryStatus.DELIVERED, DeliveryStatus.FAILED},
    DeliveryStatus.DELIVERED: set(),  # terminal
    DeliveryStatus.FAILED: set(),  # terminal
}


def new_tracking_id() -> str:
    return f"TRK{uuid4().hex[:10].upper()}"


@checkout.aggregate
class Delivery:
    order_id = Identifier(required=True)
    status = String(choices=DeliveryStatus, default=DeliveryStatus.ASSIGNED.value)
    fee = Float(default=0.0, min_value=0.0)
    tracking_id = String(required=True, max_length=50)
    agent_id = Identifier()
    pickup_time = DateTime()
    dispatch_time = DateTime()
    actual_delivery = DateTime()
    notes = Text()
    failure_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def open_for(cls, order_id: str, fee: float):
        now = datetime.now(UTC)
        delivery = cls(
            order_id=order_id,
            status=DeliveryStatus.ASSIGNED.value,
            fee=fee,
            tracking_id=new_tracking_id(),
            created_at=now,
            updated_at=now,
        )
        delivery.raise_(
            DeliveryOpened(
                delivery_id=str(delivery.id),
                order_id=str(order_id),
                tracking_id=delivery.tracking_id,
                fee=fee,
                opened_at=now,
            )
        )
        return delivery

    def _assert_can_transition(self, target: DeliveryStatus) -> None:
        current = DeliveryStatus(self.status)
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition(current.value, target.value)

    def _advance(self, target: DeliveryStatus, notes: str | None = None) -> datetime:
        self._assert_can_transition(target)
        now = datetime.now(UTC)
        previous = self.status
        self.status = target.value
        if notes:
            self.notes = notes
        self.updated_at = now
        self.raise_(
            DeliveryStatusChanged(
                delivery_id=str(self.id),
                order_id=str(self.order_id),
                previous_status=previous,
                new_status=target.value,
                notes=notes,
                changed_at=now,
            )
        )
        return now

    def assign_agent(self, agent_id: str) -> None:
        if DeliveryStatus(self.status) != DeliveryStatus.ASSIGNED:
            raise InvalidTransition(self.status, DeliveryStatus.ASSIGNED.value, detail="delivery already under way")
        if self.agent_id:
            raise ValidationError({"agent_id": ["Delivery already assigned"]})

        now = datetime.now(UTC)
        self.agent_id = agent_id
        self.updated_at = now
        self.raise_(
            DeliveryAgentAssigned(
                delivery_id=str(self.id),
                order_id=str(self.order_id),
                agent_id=agent_id,
                assigned_at=now,
            )
        )

    def assert_handled_by(self, agent_id: str) -> None:
        if str(self.agent_id) != str(agent_id):
            raise ValidationError({"agent_id": ["Delivery is assigned to another agent"]})

    def pick_up(self, notes: str | None = None) -> None:
        if not self.agent_id:
            raise InvalidTransition(self.status, DeliveryStatus.PICKED_UP.value, detail="no agent assigned")
        self.pickup_time = self._advance(DeliveryStatus.PICKED_UP, notes)

    def start_transit(self, notes: str | None = None) -> None:
        self.dispatch_time = self._advance(DeliveryStatus.IN_TRANSIT, notes)

    def send_out_for_delivery(self, notes: str | None = None) -> None:
        self._advance(DeliveryStatus.OUT_FOR_DELIVERY, notes)

    def confirm_delivery(self, notes: str | None = None) -> None:
        self.actual_delivery = self._advance(DeliveryStatus.DELIVERED, notes)

    def fail(self, reason: str) -> None:
        failed_at = self._advance(DeliveryStatus.FAILED, reason)
        self.failure_reason = reason
        self.raise_(
            DeliveryFailed(
                delivery_id=str(self.id),
                order_id=str(self.order_id),
                reason=reason,
                failed_at=failed_at,
            )
        )
