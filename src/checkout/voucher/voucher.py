"""Voucher aggregate (CQRS) — discount codes with a capped number of uses.

A voucher is looked up by its upper-cased code. Restrictions on the buyer's
role and on the product types in the cart are stored as JSON lists; an empty
list means the voucher is not restricted on that dimension.

``used_count`` only moves through ``record_redemption`` and ``release``, and
never leaves ``[0, max_uses]``.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from checkout.domain import checkout
from checkout.errors import VoucherExhausted
from checkout.voucher.events import (
    VoucherCreated,
    VoucherDeactivated,
    VoucherRedeemed,
    VoucherRedemptionReleased,
)


class DiscountType(Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"
    FREE_SHIPPING = "FREE_SHIPPING"


@checkout.aggregate
class Voucher:
    code = String(required=True, max_length=50)
    name = String(required=True, max_length=255)
    description = Text()
    discount_type = String(required=True, choices=DiscountType)
    discount_value = Float(required=True, min_value=0.0)
    min_order_amount = Float(default=0.0, min_value=0.0)
    max_discount_amount = Float(min_value=0.0)
    valid_from = DateTime(required=True)
    valid_until = DateTime(required=True)
    max_uses = Integer(default=1, min_value=1)
    used_count = Integer(default=0, min_value=0)
    applicable_roles = Text(default="[]")  # JSON list of roles
    applicable_product_types = Text(default="[]")  # JSON list of product types
    is_active = Boolean(default=True)
    created_by = Identifier()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def usage_must_stay_within_cap(self):
        if self.used_count is not None and self.max_uses is not None and self.used_count > self.max_uses:
            raise ValidationError({"used_count": ["Voucher usage cannot exceed max uses"]})

    @invariant.post
    def validity_window_must_be_ordered(self):
        if self.valid_from and self.valid_until and self.valid_until <= self.valid_from:
            raise ValidationError({"valid_until": ["Voucher must expire after it becomes valid"]})

    @classmethod
    def issue(
        cls,
        code: str,
        name: str,
        discount_type: str,
        discount_value: float,
        valid_from: datetime,
        valid_until: datetime,
        description: str | None = None,
        min_order_amount: float = 0.0,
        max_discount_amount: float | None = None,
        max_uses: int = 1,
        applicable_roles: list[str] | None = None,
        applicable_product_types: list[str] | None = None,
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
            max_discount_amount=max_discount_amount,
            valid_from=valid_from,
            valid_until=valid_until,
            max_uses=max_uses,
            used_count=0,
            applicable_roles=json.dumps(applicable_roles or []),
            applicable_product_types=json.dumps(applicable_product_types or []),
            is_active=True,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        voucher.raise_(
            VoucherCreated(
                voucher_id=str(voucher.id),
                code=voucher.code,
                discount_type=voucher.discount_type,
                discount_value=voucher.discount_value,
                max_uses=voucher.max_uses,
                created_by=created_by,
                valid_from=valid_from,
                valid_until=valid_until,
            )
        )
        return voucher

    @property
    def roles(self) -> list[str]:
        return json.loads(self.applicable_roles or "[]")

    @property
    def product_types(self) -> list[str]:
        return json.loads(self.applicable_product_types or "[]")

    @property
    def remaining_uses(self) -> int:
        return self.max_uses - self.used_count

    def is_exhausted(self) -> bool:
        return self.used_count >= self.max_uses

    def record_redemption(self) -> None:
        """Consume one use. Callers must hold the voucher's claim lock."""
        if self.is_exhausted():
            raise VoucherExhausted(f"Voucher {self.code} has reached its usage limit")
        now = datetime.now(UTC)
        self.used_count += 1
        self.updated_at = now
        self.raise_(
            VoucherRedeemed(
                voucher_id=str(self.id),
                code=self.code,
                used_count=self.used_count,
                max_uses=self.max_uses,
                redeemed_at=now,
            )
        )

    def release(self) -> None:
        if self.used_count == 0:
            raise ValidationError({"used_count": [f"Voucher {self.code} has no redemption to release"]})
        now = datetime.now(UTC)
        self.used_count -= 1
        self.updated_at = now
        self.raise_(
            VoucherRedemptionReleased(
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
        self.raise_(VoucherDeactivated(voucher_id=str(self.id), code=self.code, deactivated_at=now))
