"""SupportTransaction aggregate (CQRS) — one reader tip to a blog author.

State Machine:
    PENDING → COMPLETED | FAILED | CANCELLED

Settled transactions never change again, so a replayed gateway callback is
a no-op. Failures carry a reader-facing reason, the action the reader can
take, and whether retrying makes sense.
"""

import re
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, String, Text

from support import config
from support.domain import support
from support.transaction.events import SupportCompleted, SupportFailed, SupportInitiated


class SupportStatus(Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


CANCELLED_BY_USER = "1032"

# M-Pesa result code → (failed_reason, action_required, can_retry)
FAILURE_CODES = {
    CANCELLED_BY_USER: (
        "You cancelled the payment request.",
        "Tap Support again when you are ready to pay.",
        True,
    ),
    "1037": (
        "Your phone could not be reached.",
        "Make sure your phone is on and has network, then try again.",
        True,
    ),
    "1": (
        "Insufficient M-Pesa balance.",
        "Top up your M-Pesa account and try again.",
        True,
    ),
    "2001": (
        "Wrong M-Pesa PIN entered.",
        "Try again and enter the correct PIN.",
        True,
    ),
}

DEFAULT_ACTION = "Please try again."

_PHONE_PATTERN = re.compile(r"^254[0-9]{9}$")


def failure_details(code: str | None, reason: str | None = None) -> tuple[str, str, bool]:
    if code is not None and str(code) in FAILURE_CODES:
        return FAILURE_CODES[str(code)]
    return (reason or f"Error code: {code}", DEFAULT_ACTION, True)


def normalize_phone(phone: str) -> str:
    """Bring a Kenyan mobile number into gateway format (``2547XXXXXXXX``)."""
    normalized = re.sub(r"[\s-]", "", phone or "")
    if normalized.startswith("+254"):
        return normalized[1:]
    if normalized.startswith("254"):
        return normalized
    if normalized.startswith(("07", "01")):
        return "254" + normalized[1:]
    if normalized.startswith(("7", "1")):
        return "254" + normalized
    return normalized


def split_fee(amount: float) -> tuple[float, float]:
    """Return ``(platform_fee, net_amount)`` for a gross support amount."""
    platform_fee = round(amount * config.platform_fee_percent() / 100, 2)
    return platform_fee, round(amount - platform_fee, 2)


@support.aggregate
class SupportTransaction:
    author_id = Identifier(required=True)
    post_id = Identifier()
    supporter_name = String(max_length=100)
    supporter_phone = String(required=True, max_length=20)
    is_anonymous = Boolean(default=False)
    message = Text()
    amount = Float(required=True, min_value=0.0)
    platform_fee = Float(default=0.0)
    net_amount = Float(default=0.0)
    currency = String(max_length=3, default="KES")
    status = String(choices=SupportStatus, default=SupportStatus.PENDING.value)
    invoice_id = String(max_length=100)
    mpesa_reference = String(max_length=100)
    failed_code = String(max_length=20)
    failed_reason = String(max_length=500)
    action_required = String(max_length=500)
    can_retry = Boolean(default=True)
    completed_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def initiate(
        cls,
        author_id: str,
        amount: float,
        phone: str,
        post_id: str | None = None,
        supporter_name: str | None = None,
        is_anonymous: bool = False,
        message: str | None = None,
    ):
        if amount is None or amount < config.MIN_SUPPORT_AMOUNT:
            raise ValidationError({"amount": [f"Minimum support amount is KES {int(config.MIN_SUPPORT_AMOUNT)}"]})
        normalized = normalize_phone(phone)
        if not _PHONE_PATTERN.match(normalized):
            raise ValidationError({"phone": ["Enter a valid Kenyan phone number"]})

        platform_fee, net_amount = split_fee(amount)
        now = datetime.now(UTC)
        tx = cls(
            author_id=author_id,
            post_id=post_id,
            supporter_name=None if is_anonymous else supporter_name,
            supporter_phone=normalized,
            is_anonymous=is_anonymous,
            message=message,
            amount=round(amount, 2),
            platform_fee=platform_fee,
            net_amount=net_amount,
            currency=config.CURRENCY,
            status=SupportStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        tx.raise_(
            SupportInitiated(
                transaction_id=str(tx.id),
                author_id=str(author_id),
                post_id=post_id,
                amount=tx.amount,
                platform_fee=platform_fee,
                net_amount=net_amount,
                initiated_at=now,
            )
        )
        return tx

    @property
    def api_ref(self) -> str:
        return f"support-{self.id}"

    @property
    def is_settled(self) -> bool:
        return self.status != SupportStatus.PENDING.value

    def attach_invoice(self, invoice_id: str) -> None:
        self.invoice_id = invoice_id
        self.updated_at = datetime.now(UTC)

    def complete(self, mpesa_reference: str | None = None) -> bool:
        """Mark the payment received. Returns False if already settled."""
        if self.is_settled:
            return False
        now = datetime.now(UTC)
        self.status = SupportStatus.COMPLETED.value
        self.mpesa_reference = mpesa_reference
        self.completed_at = now
        self.updated_at = now
        self.raise_(
            SupportCompleted(
                transaction_id=str(self.id),
                author_id=str(self.author_id),
                amount=self.amount,
                net_amount=self.net_amount,
                mpesa_reference=mpesa_reference,
                completed_at=now,
            )
        )
        return True

    def fail(self, code: str | None = None, reason: str | None = None) -> bool:
        """Mark the payment failed (or cancelled). Returns False if already settled."""
        if self.is_settled:
            return False
        failed_reason, action_required, can_retry = failure_details(code, reason)
        status = SupportStatus.CANCELLED if str(code) == CANCELLED_BY_USER else SupportStatus.FAILED

        now = datetime.now(UTC)
        self.status = status.value
        self.failed_code = str(code) if code is not None else None
        self.failed_reason = failed_reason
        self.action_required = action_required
        self.can_retry = can_retry
        self.updated_at = now
        self.raise_(
            SupportFailed(
                transaction_id=str(self.id),
                status=status.value,
                failed_code=self.failed_code,
                failed_reason=failed_reason,
                can_retry=can_retry,
                failed_at=now,
            )
        )
        return True
