"""DeliveryVoucher aggregate (CQRS) — codes that discount only the delivery fee.

An order may carry one delivery voucher next to its regular voucher. Unlike
a regular voucher it has no start date and no role or product restrictions:
it is live until ``expires_at`` (never, when unset) and usable ``max_uses``
times (unlimited, when unset).
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from checkout.domain import checkout
from checkout.errors import VoucherExhausted
from checkout.voucher.events import (
    DeliveryVoucherCreated,
    DeliveryVoucherDeactivated,
    DeliveryVoucherRedeemed,
    DeliveryVoucherRedemptionReleased,
)
from checkout.voucher.voucher import DiscountType


@checkout.aggregate
class DeliveryVoucher:
    code = String(required=True, max_length=50)
    name = String(required=True, max_length=255)
    description = Text()
    discount_type = String(required=True, choices=DiscountType)
    discount_value = Float(required=True, min_value=0.0)
    min_order_amount = Float(default=0.0, min_value=0.0)
    max_uses = Integer(min_value=1)
    used_count = Integer(default=0, min_value=0)
    expires_at = DateTime()
    is_active = Boolean(default=True)
    created_by = Identifier()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def usage_must_stay_within_cap(self):
        if self.max_uses is not None and self.used_count is not None and self.used_count > self.max_uses:
            raise ValidationError({"used_count": ["Delivery voucher usage cannot exceed max uses"]})

    @invariant.post
    def percentage_must_not_exceed_hundred(self):
        if self.discount_type == DiscountType.PERCENTAGE.value and (self.discount_value or 0) > 100:
            raise ValidationError({"discount_value": ["Percentage discount cannot exceed 100%"]})

    @classmethod
    def issue(
        cls,
        code: str,
        name: str,
        discount_type: str,
        discount_value: float,
        description: str | None = None,
        min_order_amount: float = 0.0,
        max_uses: int | None = None,
        expires_at: datetime | None = None,
        created_by: str | None = None,
    ):
        now = datetime.now(UTC)
        voucher = cls(
            code=code.strip().upper(),
            name=name,
            description=description,
            discount_type=discount_type,
            discount_value=discount_value,
            min_order_amount=min_order_amount or 0.0,
            max_uses=max_uses,
            used_count=0,
            expires_at=expires_at,
            is_active=True,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        voucher.raise_(
            DeliveryVoucherCreated(
                voucher_id=str(voucher.id),
                code=voucher.code,
                discount_type=voucher.discount_type,
                discount_value=voucher.discount_value,
                max_uses=max_uses,
                expires_at=expires_at,
            )
        )
        return voucher

    @property
    def remaining_uses(self) -> int | None:
        if self.max_uses is None:
            return None
        return self.max_uses - self.used_count

    def is_exhausted(self) -> bool:
        return self.max_uses is not None and self.used_count >= self.max_uses

    def is_expired(self, now: datetime) -> bool:
        if self.expires_at is None:
            return False
        expires_at = self.expires_at if self.expires_at.tzinfo else self.expires_at.replace(tzinfo=UTC)
        return now > expires_at

    def record_redemption(self) -> None:
        """Consume one use. Callers must hold the voucher claim lock."""
        if self.is_exhausted():
            raise VoucherExhausted(
                f"Delivery voucher {self.code} has reached its usage limit", field="delivery_voucher_code"
            )
        now = datetime.now(UTC)
        self.used_count += 1
        self.updated_at = now
        self.raise_(
            DeliveryVoucherRedeemed(
                voucher_id=str(self.id),
                code=self.code,
                used_count=self.used_count,
                max_uses=self.max_uses,
                redeemed_at=now,
            )
        )

    def release(self) -> None:
        if self.used_count == 0:
            raise ValidationError({"used_count": [f"Delivery voucher {self.code} has no redemption to release"]})
        now = datetime.now(UTC)
        self.used_count -= 1
        self.updated_at = now
        self.raise_(
            DeliveryVoucherRedemptionReleased(
                voucher_id=str(self.id),
                code=self.code,
                used_count=self.used_count,
                released_at=now,
            )
        )

    def deactivate(self) -> None:
        if not self.is_active:
            return
        now = datetime.now(UTC)
        self.is_active = False
        self.updated_at = now
        self.raise_(DeliveryVoucherDeactivated(voucher_id=str(self.id), code=self.code, deactivated_at=now))
