"""Order aggregate (CQRS) — the order and payment axes of a placed order.

Order status:
    PENDING → CONFIRMED → PACKED → DISPATCHED → OUT_FOR_DELIVERY → DELIVERED
    {PENDING, CONFIRMED} → CANCELLED | REJECTED

Payment status:
    UNPAID → SUBMITTED → APPROVED | REJECTED

A BEFORE_DELIVERY order stays PENDING until its payment is approved;
approval confirms it. An AFTER_DELIVERY order is confirmed explicitly and
its payment is settled once the goods arrive. The delivery axis lives on
the Delivery aggregate, which drives DISPATCHED, OUT_FOR_DELIVERY and
DELIVERED here.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from checkout.domain import checkout
from checkout.errors import InvalidTransition
from checkout.order.events import (
    OrderCancelled,
    OrderConfirmed,
    OrderDelivered,
    OrderDispatched,
    OrderOutForDelivery,
    OrderPacked,
    OrderPlaced,
    OrderRejected,
    PaymentApproved,
    PaymentRejected,
    PaymentSubmitted,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PACKED = "PACKED"
    DISPATCHED = "DISPATCHED"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"


class PaymentStatus(Enum):
    UNPAID = "UNPAID"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PaymentType(Enum):
    BEFORE_DELIVERY = "BEFORE_DELIVERY"
    AFTER_DELIVERY = "AFTER_DELIVERY"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED, OrderStatus.REJECTED},
    OrderStatus.CONFIRMED: {OrderStatus.PACKED, OrderStatus.CANCELLED, OrderStatus.REJECTED},
    OrderStatus.PACKED: {OrderStatus.DISPATCHED},
    OrderStatus.DISPATCHED: {OrderStatus.OUT_FOR_DELIVERY},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # terminal
    OrderStatus.CANCELLED: set(),  # terminal
    OrderStatus.REJECTED: set(),  # terminal
}

_PAYMENT_TRANSITIONS = {
    PaymentStatus.UNPAID: {PaymentStatus.SUBMITTED},
    PaymentStatus.SUBMITTED: {PaymentStatus.APPROVED, PaymentStatus.REJECTED},
    PaymentStatus.APPROVED: set(),
    PaymentStatus.REJECTED: set(),
}

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REJECTED})


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@checkout.value_object(part_of="Order")
class OrderPricing:
    """Amounts locked when the order is placed.

    ``total`` is always ``subtotal - discount_amount + delivery_fee``, where
    ``delivery_fee`` is what the buyer pays after ``delivery_discount_amount``.
    """

    subtotal = Float(default=0.0)
    discount_amount = Float(default=0.0)
    delivery_fee = Float(default=0.0)
    delivery_discount_amount = Float(default=0.0)
    total = Float(default=0.0)
    currency = String(max_length=3, default="KES")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@checkout.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    product_type = String(max_length=50)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    line_total = Float(required=True, min_value=0.0)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@checkout.aggregate
class Order:
    customer_id = Identifier(required=True)
    items = HasMany(OrderItem)
    pricing = ValueObject(OrderPricing)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.UNPAID.value)
    payment_type = String(choices=PaymentType, default=PaymentType.BEFORE_DELIVERY.value)
    payment_reference = String(max_length=100)
    payment_phone = String(max_length=20)
    payment_method = String(max_length=50)
    voucher_code = String(max_length=50)
    delivery_voucher_code = String(max_length=50)
    county = String(required=True, max_length=50)
    province = String(required=True, max_length=50)
    cancellation_reason = String(max_length=500)
    rejection_reason = String(max_length=500)
    confirmed_at = DateTime()
    packed_at = DateTime()
    dispatched_at = DateTime()
    delivered_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_balance(self):
        if self.pricing is None:
            return
        expected = round(self.pricing.subtotal - self.pricing.discount_amount + self.pricing.delivery_fee, 2)
        if abs(expected - self.pricing.total) > 0.005:
            raise ValidationError({"pricing": ["Order total must equal subtotal minus discount plus delivery fee"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id: str,
        items_data: list[dict],
        subtotal: float,
        discount_amount: float,
        delivery_fee: float,
        payment_type: str,
        county: str,
        province: str,
        voucher_code: str | None = None,
        delivery_voucher_code: str | None = None,
        delivery_discount_amount: float = 0.0,
    ):
        """Create a PENDING, UNPAID order with its prices locked."""
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = datetime.now(UTC)
        pricing = OrderPricing(
            subtotal=round(subtotal, 2),
            discount_amount=round(discount_amount, 2),
            delivery_fee=round(delivery_fee, 2),
            delivery_discount_amount=round(delivery_discount_amount, 2),
            total=round(subtotal - discount_amount + delivery_fee, 2),
            currency="KES",
        )
        order = cls(
            customer_id=customer_id,
            pricing=pricing,
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.UNPAID.value,
            payment_type=payment_type,
            voucher_code=voucher_code,
            delivery_voucher_code=delivery_voucher_code,
            county=county,
            province=province,
            created_at=now,
            updated_at=now,
        )
        for item_data in items_data:
            order.add_items(OrderItem(**item_data))

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id),
                items=json.dumps(items_data),
                item_count=len(items_data),
                subtotal=pricing.subtotal,
                discount_amount=pricing.discount_amount,
                delivery_fee=pricing.delivery_fee,
                total=pricing.total,
                currency=pricing.currency,
                payment_type=payment_type,
                voucher_code=voucher_code,
                delivery_voucher_code=delivery_voucher_code,
                delivery_discount_amount=pricing.delivery_discount_amount,
                county=county,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Transition guards
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target: OrderStatus) -> None:
        current = OrderStatus(self.status)
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition(current.value, target.value)

    def _assert_payment_open(self, target: PaymentStatus) -> None:
        if OrderStatus(self.status) in (OrderStatus.CANCELLED, OrderStatus.REJECTED):
            raise InvalidTransition(self.status, target.value, detail="order is closed")

    def _assert_payment_can_transition(self, target: PaymentStatus) -> None:
        current = PaymentStatus(self.payment_status)
        if target not in _PAYMENT_TRANSITIONS.get(current, set()):
            raise InvalidTransition(current.value, target.value, detail="payment")

    @property
    def is_terminal(self) -> bool:
        return OrderStatus(self.status) in TERMINAL_STATUSES

    @property
    def pays_before_delivery(self) -> bool:
        return self.payment_type == PaymentType.BEFORE_DELIVERY.value

    # -------------------------------------------------------------------
    # Payment axis
    # -------------------------------------------------------------------
    def submit_payment(self, reference: str, phone: str | None = None, method: str | None = None) -> None:
        self._assert_payment_open(PaymentStatus.SUBMITTED)
        self._assert_payment_can_transition(PaymentStatus.SUBMITTED)

        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.SUBMITTED.value
        self.payment_reference = reference
        self.payment_phone = phone
        self.payment_method = method
        self.updated_at = now
        self.raise_(
            PaymentSubmitted(
                order_id=str(self.id),
                payment_reference=reference,
                payment_method=method,
                submitted_at=now,
            )
        )

    def approve_payment(self, approver_id: str) -> None:
        """Approve the submitted payment; a waiting prepaid order is confirmed."""
        self._assert_payment_open(PaymentStatus.APPROVED)
        self._assert_payment_can_transition(PaymentStatus.APPROVED)

        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.APPROVED.value
        self.updated_at = now
        self.raise_(PaymentApproved(order_id=str(self.id), approved_by=approver_id, approved_at=now))

        if self.pays_before_delivery and OrderStatus(self.status) == OrderStatus.PENDING:
            self.confirm()

    def reject_payment(self, approver_id: str, reason: str | None = None) -> None:
        """Reject the submitted payment; an order not yet packed is rejected with it."""
        self._assert_payment_open(PaymentStatus.REJECTED)
        self._assert_payment_can_transition(PaymentStatus.REJECTED)

        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.REJECTED.value
        self.updated_at = now
        self.raise_(PaymentRejected(order_id=str(self.id), rejected_by=approver_id, reason=reason, rejected_at=now))

        if OrderStatus(self.status) in (OrderStatus.PENDING, OrderStatus.CONFIRMED):
            self.reject(reason or "Payment rejected")

    # -------------------------------------------------------------------
    # Order axis
    # -------------------------------------------------------------------
    def confirm(self) -> None:
        self._assert_can_transition(OrderStatus.CONFIRMED)
        if self.pays_before_delivery and self.payment_status != PaymentStatus.APPROVED.value:
            raise InvalidTransition(
                self.status,
                OrderStatus.CONFIRMED.value,
                detail="payment must be approved before a prepaid order is confirmed",
            )

        now = datetime.now(UTC)
        self.status = OrderStatus.CONFIRMED.value
        self.confirmed_at = now
        self.updated_at = now
        self.raise_(OrderConfirmed(order_id=str(self.id), confirmed_at=now))

    def pack(self) -> None:
        self._assert_can_transition(OrderStatus.PACKED)
        now = datetime.now(UTC)
        self.status = OrderStatus.PACKED.value
        self.packed_at = now
        self.updated_at = now
        self.raise_(OrderPacked(order_id=str(self.id), packed_at=now))

    def dispatch(self) -> None:
        self._assert_can_transition(OrderStatus.DISPATCHED)
        now = datetime.now(UTC)
        self.status = OrderStatus.DISPATCHED.value
        self.dispatched_at = now
        self.updated_at = now
        self.raise_(OrderDispatched(order_id=str(self.id), dispatched_at=now))

    def send_out_for_delivery(self) -> None:
        self._assert_can_transition(OrderStatus.OUT_FOR_DELIVERY)
        now = datetime.now(UTC)
        self.status = OrderStatus.OUT_FOR_DELIVERY.value
        self.updated_at = now
        self.raise_(OrderOutForDelivery(order_id=str(self.id), out_for_delivery_at=now))

    def mark_delivered(self) -> None:
        self._assert_can_transition(OrderStatus.DELIVERED)
        now = datetime.now(UTC)
        self.status = OrderStatus.DELIVERED.value
        self.delivered_at = now
        self.updated_at = now
        self.raise_(OrderDelivered(order_id=str(self.id), delivered_at=now))

    def cancel(self, reason: str | None = None) -> None:
        self._assert_can_transition(OrderStatus.CANCELLED)
        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.updated_at = now
        self.raise_(OrderCancelled(order_id=str(self.id), reason=reason, cancelled_at=now))

    def reject(self, reason: str | None = None) -> None:
        self._assert_can_transition(OrderStatus.REJECTED)
        now = datetime.now(UTC)
        self.status = OrderStatus.REJECTED.value
        self.rejection_reason = reason
        self.updated_at = now
        self.raise_(OrderRejected(order_id=str(self.id), reason=reason, rejected_at=now))
