"""Order placement — from a cart and a county to a persisted order.

``place_order`` is an application service rather than a command handler:
the voucher claim has to commit on its own, before the order is written,
so that concurrent checkouts see the updated usage count. If writing the
order fails, every claimed use is released again.
"""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from checkout.domain import checkout, logger
from checkout.errors import UndeliverableOrder
from checkout.options.eligibility import PaymentTiming
from checkout.options.summary import DeliveryQuote, quote_delivery
from checkout.order.order import Order, PaymentType
from checkout.voucher.delivery_voucher import DeliveryVoucher
from checkout.voucher.engine import (
    DeliveryVoucherQuote,
    VoucherContext,
    VoucherQuote,
    price_delivery_voucher,
    price_voucher,
)
from checkout.voucher.repository import normalize_code
from checkout.voucher.voucher import Voucher


@checkout.command(part_of="Order")
class CreateOrder:
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of item dicts
    subtotal = Float(required=True, min_value=0.0)
    discount_amount = Float(default=0.0, min_value=0.0)
    delivery_fee = Float(default=0.0, min_value=0.0)
    delivery_discount_amount = Float(default=0.0, min_value=0.0)
    payment_type = String(required=True, choices=PaymentType)
    county = String(required=True, max_length=50)
    province = String(required=True, max_length=50)
    voucher_code = String(max_length=50)
    delivery_voucher_code = String(max_length=50)


@checkout.command_handler(part_of=Order)
class CreateOrderHandler:
    @handle(CreateOrder)
    def create_order(self, command):
        order = Order.place(
            customer_id=command.customer_id,
            items_data=json.loads(command.items),
            subtotal=command.subtotal,
            discount_amount=command.discount_amount or 0.0,
            delivery_fee=command.delivery_fee or 0.0,
            payment_type=command.payment_type,
            county=command.county,
            province=command.province,
            voucher_code=command.voucher_code,
            delivery_voucher_code=command.delivery_voucher_code,
            delivery_discount_amount=command.delivery_discount_amount or 0.0,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)


def _order_items(quote: DeliveryQuote) -> list[dict]:
    return [
        {
            "product_id": item.product_id,
            "seller_id": option.seller_id,
            "name": item.name,
            "product_type": item.product_type,
            "quantity": item.quantity,
            "unit_price": item.unit_price,
            "line_total": item.line_total,
        }
        for option in quote.delivery_options
        for item in option.items
    ]


def _check_payment_type(quote: DeliveryQuote, payment_type: str) -> None:
    try:
        timing = PaymentTiming(payment_type)
    except ValueError:
        raise ValidationError({"payment_type": [f"Unknown payment type {payment_type!r}"]}) from None
    if timing == PaymentTiming.AFTER_DELIVERY and not quote.supports_pay_after_delivery_everywhere():
        raise ValidationError({"payment_type": ["Pay after delivery is not available for every seller in this order"]})


def _release_claims(claims: list[tuple[type, str]]) -> None:
    for aggregate, code in reversed(claims):
        current_domain.repository_for(aggregate).release_use(code)
        logger.warning("order_creation_failed_voucher_released", kind=aggregate.__name__, code=code)


def place_order(
    customer_id: str,
    role: str,
    lines,
    county: str,
    payment_type: str = PaymentType.BEFORE_DELIVERY.value,
    voucher_code: str | None = None,
    delivery_voucher_code: str | None = None,
) -> Order:
    """Quote, price, claim the vouchers and persist the order.

    Both codes are priced before either is claimed. The delivery voucher
    discounts whatever delivery fee is left once the regular voucher has
    been applied.

    Raises ``UndeliverableOrder`` when any seller cannot reach the county,
    a ``VoucherInvalid`` subclass when a code does not apply, and a
    ``ValidationError`` for a payment type some seller does not accept.
    """
    quote = quote_delivery(lines, county)
    if not quote.can_proceed_with_order:
        sellers = ", ".join(option.seller_name for option in quote.undeliverable_items)
        raise UndeliverableOrder(f"{quote.message}: {sellers}")
    _check_payment_type(quote, payment_type)

    items = _order_items(quote)
    delivery_fee = quote.total_delivery_fee
    voucher_quote: VoucherQuote | None = None
    delivery_voucher_quote: DeliveryVoucherQuote | None = None

    if voucher_code:
        context = VoucherContext(
            role=role,
            subtotal=quote.subtotal,
            product_types=frozenset(item["product_type"] for item in items),
        )
        voucher = current_domain.repository_for(Voucher).find_by_code(voucher_code)
        voucher_quote = price_voucher(voucher, context)
        if voucher_quote.waives_delivery_fee:
            delivery_fee = 0.0

    if delivery_voucher_code:
        delivery_voucher = current_domain.repository_for(DeliveryVoucher).find_by_code(delivery_voucher_code)
        delivery_voucher_quote = price_delivery_voucher(delivery_voucher, quote.subtotal, delivery_fee)

    claims: list[tuple[type, str]] = []
    try:
        if voucher_quote is not None:
            current_domain.repository_for(Voucher).claim_use(voucher_quote.code)
            claims.append((Voucher, voucher_quote.code))
        if delivery_voucher_quote is not None:
            current_domain.repository_for(DeliveryVoucher).claim_use(delivery_voucher_quote.code)
            claims.append((DeliveryVoucher, delivery_voucher_quote.code))
    except Exception:
        _release_claims(claims)
        raise

    delivery_discount = delivery_voucher_quote.delivery_discount if delivery_voucher_quote else 0.0
    command = CreateOrder(
        customer_id=customer_id,
        items=json.dumps(items),
        subtotal=quote.subtotal,
        discount_amount=voucher_quote.discount_amount if voucher_quote else 0.0,
        delivery_fee=round(max(delivery_fee - delivery_discount, 0.0), 2),
        delivery_discount_amount=delivery_discount,
        payment_type=payment_type,
        county=quote.location.county,
        province=quote.location.province,
        voucher_code=voucher_quote.code if voucher_quote else None,
        delivery_voucher_code=delivery_voucher_quote.code if delivery_voucher_quote else None,
    )
    try:
        order_id = current_domain.process(command, asynchronous=False)
    except Exception:
        _release_claims(claims)
        raise

    logger.info(
        "order_placed",
        order_id=order_id,
        customer_id=customer_id,
        total=round(quote.subtotal - command.discount_amount + command.delivery_fee, 2),
        voucher_code=normalize_code(voucher_code) if voucher_code else None,
        delivery_voucher_code=normalize_code(delivery_voucher_code) if delivery_voucher_code else None,
    )
    return current_domain.repository_for(Order).get(order_id)
