"""Seller aggregate (CQRS) — a marketplace seller and its delivery settings.

Only the delivery-related settings live here: whether the seller delivers
at all, where it delivers, whether buyers may pay on receipt, and the
free-delivery threshold. Checkout reads them through an immutable
``DeliveryTerms`` snapshot so the quoting code never touches the aggregate.
"""

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, String, Text

from checkout.domain import checkout
from checkout.location.counties import COUNTY_TO_PROVINCE, PROVINCES


class SellerRole(Enum):
    SELLER = "SELLER"
    COMPANY = "COMPANY"


@dataclass(frozen=True)
class DeliveryTerms:
    """Read-only view of a seller's delivery settings at checkout time."""

    seller_id: str
    name: str
    role: str
    offers_delivery: bool
    offers_pay_after_delivery: bool
    offers_free_delivery: bool
    delivery_provinces: frozenset[str]
    delivery_counties: frozenset[str]
    min_order_for_free_delivery: float | None
    delivery_fee_per_km: float | None


def _load_list(raw):
    return json.loads(raw) if raw else []


@checkout.aggregate
class Seller:
    name = String(required=True, max_length=255)
    role = String(choices=SellerRole, default=SellerRole.SELLER.value)
    offers_delivery = Boolean(default=False)
    offers_pay_after_delivery = Boolean(default=False)
    offers_free_delivery = Boolean(default=False)
    delivery_provinces = Text()  # JSON array of province names
    delivery_counties = Text()  # JSON array of county names
    min_order_for_free_delivery = Float(min_value=0.0)
    # Charged as a flat fee per order; there is no distance component.
    delivery_fee_per_km = Float(min_value=0.0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def delivery_regions_must_be_known(self):
        unknown_provinces = [p for p in _load_list(self.delivery_provinces) if p not in PROVINCES]
        if unknown_provinces:
            raise ValidationError({"delivery_provinces": [f"Unknown provinces: {', '.join(unknown_provinces)}"]})
        unknown_counties = [c for c in _load_list(self.delivery_counties) if c not in COUNTY_TO_PROVINCE]
        if unknown_counties:
            raise ValidationError({"delivery_counties": [f"Unknown counties: {', '.join(unknown_counties)}"]})

    @classmethod
    def register(cls, name, role=SellerRole.SELLER.value, **delivery_settings):
        now = datetime.now(UTC)
        seller = cls(
            name=name,
            role=role,
            delivery_provinces=json.dumps([]),
            delivery_counties=json.dumps([]),
            created_at=now,
            updated_at=now,
        )
        if delivery_settings:
            seller.update_delivery_settings(**delivery_settings)
        return seller

    def update_delivery_settings(
        self,
        offers_delivery=None,
        offers_pay_after_delivery=None,
        offers_free_delivery=None,
        delivery_provinces=None,
        delivery_counties=None,
        min_order_for_free_delivery=None,
        delivery_fee_per_km=None,
    ):
        """Replace any supplied delivery setting; omitted settings are kept."""
        if offers_delivery is not None:
            self.offers_delivery = offers_delivery
        if offers_pay_after_delivery is not None:
            self.offers_pay_after_delivery = offers_pay_after_delivery
        if offers_free_delivery is not None:
            self.offers_free_delivery = offers_free_delivery
        if delivery_provinces is not None:
            self.delivery_provinces = json.dumps(sorted(set(delivery_provinces)))
        if delivery_counties is not None:
            self.delivery_counties = json.dumps(sorted(set(delivery_counties)))
        if min_order_for_free_delivery is not None:
            self.min_order_for_free_delivery = min_order_for_free_delivery
        if delivery_fee_per_km is not None:
            self.delivery_fee_per_km = delivery_fee_per_km
        self.updated_at = datetime.now(UTC)

    def delivery_terms(self) -> DeliveryTerms:
        return DeliveryTerms(
            seller_id=str(self.id),
            name=self.name,
            role=self.role,
            offers_delivery=bool(self.offers_delivery),
            offers_pay_after_delivery=bool(self.offers_pay_after_delivery),
            offers_free_delivery=bool(self.offers_free_delivery),
            delivery_provinces=frozenset(_load_list(self.delivery_provinces)),
            delivery_counties=frozenset(_load_list(self.delivery_counties)),
            min_order_for_free_delivery=self.min_order_for_free_delivery,
            delivery_fee_per_km=self.delivery_fee_per_km,
        )
