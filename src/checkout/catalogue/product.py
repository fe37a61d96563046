"""Product aggregate (CQRS) — the checkout engine's view of a listed product.

Products are owned by the catalogue; checkout only reads the price, the
active flag, the product type (used by voucher eligibility) and the owning
seller.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import Boolean, DateTime, Float, Identifier, String

from checkout.domain import checkout


class ProductType(Enum):
    EGGS = "EGGS"
    CHICKS = "CHICKS"
    CHICKEN_MEAT = "CHICKEN_MEAT"
    CHICKEN_FEED = "CHICKEN_FEED"
    EQUIPMENT = "EQUIPMENT"
    OTHER = "OTHER"


@checkout.aggregate
class Product:
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    is_active = Boolean(default=True)
    product_type = String(choices=ProductType, default=ProductType.OTHER.value)
    seller_id = Identifier(required=True)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def list_for(cls, seller_id, name, price, product_type=ProductType.OTHER.value):
        now = datetime.now(UTC)
        return cls(
            seller_id=seller_id,
            name=name,
            price=price,
            product_type=product_type,
            is_active=True,
            created_at=now,
            updated_at=now,
        )

    def deactivate(self):
        self.is_active = False
        self.updated_at = datetime.now(UTC)
