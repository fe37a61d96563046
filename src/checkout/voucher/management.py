"""Voucher and delivery-voucher issuing and deactivation — commands and handlers."""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from checkout.domain import checkout, logger
from checkout.errors import VoucherNotFound
from checkout.voucher.delivery_voucher import DeliveryVoucher
from checkout.voucher.repository import normalize_code
from checkout.voucher.voucher import DiscountType, Voucher

VOUCHER_ISSUER_ROLES = frozenset({"SELLER", "COMPANY", "ADMIN"})
DELIVERY_VOUCHER_ISSUER_ROLES = frozenset({"ADMIN"})


@checkout.command(part_of="Voucher")
class CreateVoucher:
    code = String(required=True, max_length=50)
    name = String(required=True, max_length=255)
    description = Text()
    discount_type = String(required=True, max_length=20)
    discount_value = Float(required=True, min_value=0.0)
    min_order_amount = Float(default=0.0)
    max_discount_amount = Float()
    valid_from = DateTime(required=True)
    valid_until = DateTime(required=True)
    max_uses = Integer(default=1)
    applicable_roles = Text()  # JSON array
    applicable_product_types = Text()  # JSON array
    created_by = Identifier(required=True)
    creator_role = String(required=True, max_length=20)


@checkout.command(part_of="Voucher")
class DeactivateVoucher:
    code = String(required=True, max_length=50)


@checkout.command_handler(part_of=Voucher)
class VoucherManagementHandler:
    @handle(CreateVoucher)
    def create_voucher(self, command):
        if command.creator_role not in VOUCHER_ISSUER_ROLES:
            raise ValidationError({"creator_role": ["Only sellers, companies and admins can create vouchers"]})
        if command.max_uses is not None and command.max_uses < 1:
            raise ValidationError({"max_uses": ["Max uses must be at least 1"]})

        repo = current_domain.repository_for(Voucher)
        code = normalize_code(command.code)
        if repo.find_by_code(code) is not None:
            raise ValidationError({"code": ["Voucher code already exists"]})

        voucher = Voucher.issue(
            code=code,
            name=command.name,
            description=command.description,
            discount_type=command.discount_type,
            discount_value=command.discount_value,
            min_order_amount=command.min_order_amount,
            max_discount_amount=command.max_discount_amount,
            valid_from=command.valid_from,
            valid_until=command.valid_until,
            max_uses=command.max_uses or 1,
            applicable_roles=json.loads(command.applicable_roles) if command.applicable_roles else [],
            applicable_product_types=(
                json.loads(command.applicable_product_types) if command.applicable_product_types else []
            ),
            created_by=command.created_by,
        )
        repo.add(voucher)
        logger.info("voucher_created", code=voucher.code, discount_type=voucher.discount_type)
        return str(voucher.id)

    @handle(DeactivateVoucher)
    def deactivate_voucher(self, command):
        repo = current_domain.repository_for(Voucher)
        voucher = repo.find_by_code(command.code)
        if voucher is None:
            raise VoucherNotFound(f"Voucher {normalize_code(command.code)} not found")
        voucher.deactivate()
        repo.add(voucher)


@checkout.command(part_of="DeliveryVoucher")
class CreateDeliveryVoucher:
    code = String(required=True, max_length=50)
    name = String(required=True, max_length=255)
    description = Text()
    discount_type = String(required=True, max_length=20)
    discount_value = Float(required=True)
    min_order_amount = Float(default=0.0)
    max_uses = Integer()
    expires_at = DateTime()
    created_by = Identifier(required=True)
    creator_role = String(required=True, max_length=20)


@checkout.command(part_of="DeliveryVoucher")
class DeactivateDeliveryVoucher:
    code = String(required=True, max_length=50)


@checkout.command_handler(part_of=DeliveryVoucher)
class DeliveryVoucherManagementHandler:
    @handle(CreateDeliveryVoucher)
    def create_delivery_voucher(self, command):
        if command.creator_role not in DELIVERY_VOUCHER_ISSUER_ROLES:
            raise ValidationError({"creator_role": ["Only admins can create delivery vouchers"]})
        if command.discount_type not in {t.value for t in DiscountType}:
            raise ValidationError({"discount_type": [f"Unknown discount type {command.discount_type}"]})
        if command.discount_value is None or command.discount_value <= 0:
            raise ValidationError({"discount_value": ["Discount value must be greater than 0"]})
        if command.discount_type == DiscountType.PERCENTAGE.value and command.discount_value > 100:
            raise ValidationError({"discount_value": ["Percentage discount cannot exceed 100%"]})
        if command.max_uses is not None and command.max_uses < 1:
            raise ValidationError({"max_uses": ["Max uses must be at least 1"]})

        repo = current_domain.repository_for(DeliveryVoucher)
        code = normalize_code(command.code)
        if repo.find_by_code(code) is not None:
            raise ValidationError({"code": ["Delivery voucher code already exists"]})

        voucher = DeliveryVoucher.issue(
            code=code,
            name=command.name,
            description=command.description,
            discount_type=command.discount_type,
            discount_value=command.discount_value,
            min_order_amount=command.min_order_amount,
            max_uses=command.max_uses,
            expires_at=command.expires_at,
            created_by=command.created_by,
        )
        repo.add(voucher)
        logger.info("delivery_voucher_created", code=voucher.code, discount_type=voucher.discount_type)
        return str(voucher.id)

    @handle(DeactivateDeliveryVoucher)
    def deactivate_delivery_voucher(self, command):
        repo = current_domain.repository_for(DeliveryVoucher)
        voucher = repo.find_by_code(command.code)
        if voucher is None:
            raise VoucherNotFound(
                f"Delivery voucher {normalize_code(command.code)} not found", field="delivery_voucher_code"
            )
        voucher.deactivate()
        repo.add(voucher)
