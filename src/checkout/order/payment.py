"""Payment submission and admin review — commands, handler and audit log.

Buyers submit a payment reference (M-Pesa code, bank slip number) and an
admin approves or rejects it. Every review decision is appended to the
``PaymentApproval`` log; entries are never edited.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from checkout.delivery.tracking import open_delivery_for
from checkout.domain import checkout, logger
from checkout.order.order import Order, OrderStatus


class ApprovalAction(Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"


@checkout.aggregate
class PaymentApproval:
    order_id = Identifier(required=True)
    approver_id = Identifier(required=True)
    action = String(required=True, choices=ApprovalAction)
    notes = Text()
    recorded_at = DateTime(required=True)

    @classmethod
    def record(cls, order_id, approver_id, action, notes=None):
        return cls(
            order_id=order_id,
            approver_id=approver_id,
            action=action,
            notes=notes,
            recorded_at=datetime.now(UTC),
        )


@checkout.command(part_of="Order")
class SubmitPayment:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    payment_reference = String(required=True, max_length=100)
    payment_phone = String(max_length=20)
    payment_method = String(max_length=50)


@checkout.command(part_of="Order")
class ReviewPayment:
    order_id = Identifier(required=True)
    approver_id = Identifier(required=True)
    action = String(required=True, choices=ApprovalAction)
    notes = Text()


@checkout.command_handler(part_of=Order)
class PaymentReviewHandler:
    @handle(SubmitPayment)
    def submit_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if str(order.customer_id) != str(command.customer_id):
            raise ValidationError({"order_id": ["Order belongs to another customer"]})
        order.submit_payment(
            reference=command.payment_reference,
            phone=command.payment_phone,
            method=command.payment_method,
        )
        repo.add(order)
        logger.info("payment_submitted", order_id=str(order.id), reference=command.payment_reference)

    @handle(ReviewPayment)
    def review_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        if command.action == ApprovalAction.APPROVE.value:
            order.approve_payment(command.approver_id)
        else:
            order.reject_payment(command.approver_id, command.notes)
        repo.add(order)

        if order.status == OrderStatus.CONFIRMED.value:
            open_delivery_for(order)

        current_domain.repository_for(PaymentApproval).add(
            PaymentApproval.record(
                order_id=str(order.id),
                approver_id=command.approver_id,
                action=command.action,
                notes=command.notes,
            )
        )
        logger.info(
            "payment_reviewed",
            order_id=str(order.id),
            action=command.action,
            payment_status=order.payment_status,
            order_status=order.status,
        )


def approvals_for(order_id: str) -> list[PaymentApproval]:
    results = current_domain.repository_for(PaymentApproval)._dao.query.filter(order_id=str(order_id)).all()
    return sorted(results.items, key=lambda entry: entry.recorded_at)
