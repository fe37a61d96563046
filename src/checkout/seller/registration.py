"""Seller registration and delivery settings — commands and handler."""

import json

from protean import handle
from protean.fields import Boolean, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.seller.seller import Seller


@checkout.command(part_of="Seller")
class RegisterSeller:
    name = String(required=True, max_length=255)
    role = String(max_length=20, default="SELLER")


@checkout.command(part_of="Seller")
class UpdateDeliverySettings:
    """Change how (and where) a seller delivers. Unset fields are left alone."""

    seller_id = Identifier(required=True)
    offers_delivery = Boolean()
    offers_pay_after_delivery = Boolean()
    offers_free_delivery = Boolean()
    delivery_provinces = Text()  # JSON array
    delivery_counties = Text()  # JSON array
    min_order_for_free_delivery = Float(min_value=0.0)
    delivery_fee_per_km = Float(min_value=0.0)


@checkout.command_handler(part_of=Seller)
class SellerSettingsHandler:
    @handle(RegisterSeller)
    def register_seller(self, command):
        seller = Seller.register(name=command.name, role=command.role or "SELLER")
        current_domain.repository_for(Seller).add(seller)
        return str(seller.id)

    @handle(UpdateDeliverySettings)
    def update_delivery_settings(self, command):
        repo = current_domain.repository_for(Seller)
        seller = repo.get(command.seller_id)
        seller.update_delivery_settings(
            offers_delivery=command.offers_delivery,
            offers_pay_after_delivery=command.offers_pay_after_delivery,
            offers_free_delivery=command.offers_free_delivery,
            delivery_provinces=json.loads(command.delivery_provinces) if command.delivery_provinces else None,
            delivery_counties=json.loads(command.delivery_counties) if command.delivery_counties else None,
            min_order_for_free_delivery=command.min_order_for_free_delivery,
            delivery_fee_per_km=command.delivery_fee_per_km,
        )
        repo.add(seller)
