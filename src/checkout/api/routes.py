"""FastAPI routes for the Checkout domain.

Checkout quotes, vouchers, orders and deliveries. Every route resolves the
caller from the identity headers first; actor-specific transitions are
restricted to the role that performs them.
"""

import json
import math
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from checkout.api.auth import Caller, current_caller, require_roles
from checkout.api.schemas import (
    AssignAgentRequest,
    CreateDeliveryVoucherRequest,
    CreateVoucherRequest,
    DeliveryFailureRequest,
    DeliveryNotesRequest,
    DeliveryOptionSchema,
    DeliveryOptionsRequest,
    DeliveryOptionsResponse,
    DeliveryResponse,
    DeliveryVoucherSchema,
    OrderIdResponse,
    OrderListResponse,
    OrderResponse,
    PaginationSchema,
    PaymentApprovalRequest,
    PaymentApprovalSchema,
    PlaceOrderRequest,
    ReasonRequest,
    StatusResponse,
    SubmitPaymentRequest,
    ValidateDeliveryVoucherRequest,
    ValidateDeliveryVoucherResponse,
    ValidateVoucherRequest,
    ValidateVoucherResponse,
    VoucherIdResponse,
    VoucherListingSchema,
    VoucherListResponse,
)
from checkout.cart.grouping import CartLine
from checkout.delivery.delivery import Delivery
from checkout.delivery.tracking import (
    AssignDeliveryAgent,
    ConfirmDelivery,
    RecordDeliveryFailure,
    RecordInTransit,
    RecordOutForDelivery,
    RecordPickup,
    delivery_for_order,
)
from checkout.options.summary import quote_delivery
from checkout.order.lifecycle import CancelOrder, ConfirmOrder, PackOrder, RejectOrder
from checkout.order.listing import can_view, orders_for
from checkout.order.order import Order
from checkout.order.payment import ReviewPayment, SubmitPayment, approvals_for
from checkout.order.placement import place_order
from checkout.voucher.delivery_voucher import DeliveryVoucher
from checkout.voucher.engine import VoucherContext, preview_delivery_voucher, preview_voucher
from checkout.voucher.listing import live_delivery_vouchers, vouchers_for
from checkout.voucher.management import (
    CreateDeliveryVoucher,
    CreateVoucher,
    DeactivateDeliveryVoucher,
    DeactivateVoucher,
)
from checkout.voucher.voucher import Voucher


def _cart_lines(body) -> list[CartLine]:
    if not body.items:
        raise ValidationError({"items": ["No items provided"]})
    if body.delivery_location is None or not body.delivery_location.county:
        raise ValidationError({"delivery_location": ["Delivery location required"]})
    return [CartLine(product_id=item.product_id, quantity=item.quantity) for item in body.items]


def _page(entries: list, page: int, limit: int) -> tuple[list, PaginationSchema]:
    start = (page - 1) * limit
    pagination = PaginationSchema(page=page, limit=limit, total=len(entries), pages=math.ceil(len(entries) / limit))
    return entries[start : start + limit], pagination


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("/delivery-options", response_model=DeliveryOptionsResponse)
async def delivery_options(
    body: DeliveryOptionsRequest,
    caller: Caller = Depends(require_roles("CUSTOMER")),
) -> DeliveryOptionsResponse:
    """Quote delivery for every seller in the cart."""
    lines = _cart_lines(body)
    quote = quote_delivery(lines, body.delivery_location.county)

    def option_schema(option):
        return DeliveryOptionSchema.model_validate(asdict(option))

    return DeliveryOptionsResponse(
        delivery_location={"county": quote.location.county, "province": quote.location.province},
        delivery_options=[option_schema(option) for option in quote.delivery_options],
        subtotal=quote.subtotal,
        can_proceed_with_order=quote.can_proceed_with_order,
        total_delivery_fee=quote.total_delivery_fee,
        undeliverable_items=(
            [option_schema(option) for option in quote.undeliverable_items] if quote.undeliverable_items else None
        ),
        has_pay_after_delivery_options=quote.has_pay_after_delivery_options,
        message=quote.message,
    )


# ---------------------------------------------------------------------------
# Voucher Router
# ---------------------------------------------------------------------------
voucher_router = APIRouter(prefix="/vouchers", tags=["vouchers"])


@voucher_router.post("", status_code=201, response_model=VoucherIdResponse)
async def create_voucher(
    body: CreateVoucherRequest,
    caller: Caller = Depends(require_roles("SELLER", "COMPANY", "ADMIN")),
) -> VoucherIdResponse:
    command = CreateVoucher(
        code=body.code,
        name=body.name,
        description=body.description,
        discount_type=body.discount_type,
        discount_value=body.discount_value,
        min_order_amount=body.min_order_amount,
        max_discount_amount=body.max_discount_amount,
        valid_from=body.valid_from,
        valid_until=body.valid_until,
        max_uses=body.max_uses,
        applicable_roles=json.dumps(body.applicable_roles),
        applicable_product_types=json.dumps(body.applicable_product_types),
        created_by=caller.user_id,
        creator_role=caller.role,
    )
    result = current_domain.process(command, asynchronous=False)
    return VoucherIdResponse(voucher_id=result)


def _voucher_listing(voucher: Voucher) -> VoucherListingSchema:
    return VoucherListingSchema(
        id=str(voucher.id),
        code=voucher.code,
        name=voucher.name,
        description=voucher.description,
        discount_type=voucher.discount_type,
        discount_value=voucher.discount_value,
        min_order_amount=voucher.min_order_amount,
        max_discount_amount=voucher.max_discount_amount,
        valid_from=voucher.valid_from,
        valid_until=voucher.valid_until,
        max_uses=voucher.max_uses,
        used_count=voucher.used_count,
        remaining_uses=voucher.remaining_uses,
        applicable_roles=voucher.roles,
        applicable_product_types=voucher.product_types,
        is_active=voucher.is_active,
        created_by=str(voucher.created_by) if voucher.created_by else None,
    )


@voucher_router.get("", response_model=VoucherListResponse)
async def list_vouchers(
    active: bool = False,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    caller: Caller = Depends(current_caller),
) -> VoucherListResponse:
    """Vouchers the caller may browse, newest first."""
    vouchers, pagination = _page(vouchers_for(caller.role, caller.user_id, active_only=active), page, limit)
    return VoucherListResponse(vouchers=[_voucher_listing(v) for v in vouchers], pagination=pagination)


@voucher_router.post("/validate", response_model=ValidateVoucherResponse)
async def validate_voucher(
    body: ValidateVoucherRequest,
    caller: Caller = Depends(current_caller),
) -> ValidateVoucherResponse:
    """Price a voucher against an order total. Does not consume a use."""
    if not body.code:
        raise ValidationError({"code": ["Voucher code is required"]})

    context = VoucherContext(
        role=caller.role,
        subtotal=body.order_total,
        product_types=frozenset(body.product_types),
    )
    quote = preview_voucher(body.code, context)
    return ValidateVoucherResponse(
        valid=True,
        voucher={
            "id": quote.voucher_id,
            "code": quote.code,
            "name": quote.name,
            "discount_type": quote.discount_type,
            "discount_value": quote.discount_value,
        },
        discount_amount=quote.discount_amount,
        waives_delivery_fee=quote.waives_delivery_fee,
        final_total=quote.final_total(body.order_total),
    )


@voucher_router.put("/{code}/deactivate", response_model=StatusResponse)
async def deactivate_voucher(
    code: str,
    caller: Caller = Depends(require_roles("SELLER", "COMPANY", "ADMIN")),
) -> StatusResponse:
    current_domain.process(DeactivateVoucher(code=code), asynchronous=False)
    return StatusResponse(status="deactivated")


# ---------------------------------------------------------------------------
# Delivery Voucher Router
# ---------------------------------------------------------------------------
delivery_voucher_router = APIRouter(prefix="/delivery-vouchers", tags=["delivery-vouchers"])


def _delivery_voucher_schema(voucher: DeliveryVoucher) -> DeliveryVoucherSchema:
    return DeliveryVoucherSchema(
        id=str(voucher.id),
        code=voucher.code,
        name=voucher.name,
        description=voucher.description,
        discount_type=voucher.discount_type,
        discount_value=voucher.discount_value,
        min_order_amount=voucher.min_order_amount,
        max_uses=voucher.max_uses,
        used_count=voucher.used_count,
        remaining_uses=voucher.remaining_uses,
        expires_at=voucher.expires_at,
        is_active=voucher.is_active,
    )


@delivery_voucher_router.post("", status_code=201, response_model=VoucherIdResponse)
async def create_delivery_voucher(
    body: CreateDeliveryVoucherRequest,
    caller: Caller = Depends(require_roles("ADMIN")),
) -> VoucherIdResponse:
    command = CreateDeliveryVoucher(
        code=body.code,
        name=body.name,
        description=body.description,
        discount_type=body.discount_type,
        discount_value=body.discount_value,
        min_order_amount=body.min_order_amount,
        max_uses=body.max_uses,
        expires_at=body.expires_at,
        created_by=caller.user_id,
        creator_role=caller.role,
    )
    result = current_domain.process(command, asynchronous=False)
    return VoucherIdResponse(voucher_id=result)


@delivery_voucher_router.get("", response_model=list[DeliveryVoucherSchema])
async def list_delivery_vouchers(caller: Caller = Depends(current_caller)) -> list[DeliveryVoucherSchema]:
    return [_delivery_voucher_schema(voucher) for voucher in live_delivery_vouchers()]


@delivery_voucher_router.post("/validate", response_model=ValidateDeliveryVoucherResponse)
async def validate_delivery_voucher(
    body: ValidateDeliveryVoucherRequest,
    caller: Caller = Depends(current_caller),
) -> ValidateDeliveryVoucherResponse:
    """Price a delivery voucher against a delivery fee. Does not consume a use."""
    if not body.code:
        raise ValidationError({"delivery_voucher_code": ["Delivery voucher code is required"]})

    quote = preview_delivery_voucher(body.code, body.order_total, body.delivery_fee)
    return ValidateDeliveryVoucherResponse(
        valid=True,
        voucher={
            "id": quote.voucher_id,
            "code": quote.code,
            "name": quote.name,
            "discount_type": quote.discount_type,
            "discount_value": quote.discount_value,
        },
        delivery_discount=quote.delivery_discount,
        final_delivery_fee=quote.delivery_fee_after(body.delivery_fee),
    )


@delivery_voucher_router.put("/{code}/deactivate", response_model=StatusResponse)
async def deactivate_delivery_voucher(
    code: str,
    caller: Caller = Depends(require_roles("ADMIN")),
) -> StatusResponse:
    current_domain.process(DeactivateDeliveryVoucher(code=code), asynchronous=False)
    return StatusResponse(status="deactivated")


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


def _order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        id=str(order.id),
        customer_id=str(order.customer_id),
        status=order.status,
        payment_status=order.payment_status,
        payment_type=order.payment_type,
        voucher_code=order.voucher_code,
        delivery_voucher_code=order.delivery_voucher_code,
        county=order.county,
        province=order.province,
        subtotal=order.pricing.subtotal,
        discount_amount=order.pricing.discount_amount,
        delivery_discount_amount=order.pricing.delivery_discount_amount or 0.0,
        delivery_fee=order.pricing.delivery_fee,
        total=order.pricing.total,
        currency=order.pricing.currency,
        items=[
            {
                "product_id": str(item.product_id),
                "seller_id": str(item.seller_id),
                "name": item.name,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "line_total": item.line_total,
            }
            for item in order.items
        ],
    )


def _visible_order(order_id: str, caller: Caller) -> Order:
    order = current_domain.repository_for(Order).get(order_id)
    if not can_view(order, caller.role, caller.user_id):
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def create_order(
    body: PlaceOrderRequest,
    caller: Caller = Depends(require_roles("CUSTOMER")),
) -> OrderIdResponse:
    """Place an order and redeem its vouchers, if any."""
    lines = _cart_lines(body)
    order = place_order(
        customer_id=caller.user_id,
        role=caller.role,
        lines=lines,
        county=body.delivery_location.county,
        payment_type=body.payment_type,
        voucher_code=body.voucher_code,
        delivery_voucher_code=body.delivery_voucher_code,
    )
    return OrderIdResponse(order_id=str(order.id))


@order_router.get("", response_model=OrderListResponse)
async def list_orders(
    status: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    caller: Caller = Depends(current_caller),
) -> OrderListResponse:
    """Orders visible to the caller, newest first."""
    orders, pagination = _page(orders_for(caller.role, caller.user_id, status=status), page, limit)
    return OrderListResponse(orders=[_order_response(order) for order in orders], pagination=pagination)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, caller: Caller = Depends(current_caller)) -> OrderResponse:
    return _order_response(_visible_order(order_id, caller))


@order_router.put("/{order_id}/payment", response_model=StatusResponse)
async def submit_payment(
    order_id: str,
    body: SubmitPaymentRequest,
    caller: Caller = Depends(require_roles("CUSTOMER")),
) -> StatusResponse:
    command = SubmitPayment(
        order_id=order_id,
        customer_id=caller.user_id,
        payment_reference=body.payment_reference,
        payment_phone=body.payment_phone,
        payment_method=body.payment_method,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="payment_submitted")


@order_router.post("/{order_id}/payment-approval", response_model=StatusResponse)
async def review_payment(
    order_id: str,
    body: PaymentApprovalRequest,
    caller: Caller = Depends(require_roles("ADMIN")),
) -> StatusResponse:
    command = ReviewPayment(
        order_id=order_id,
        approver_id=caller.user_id,
        action=body.action.upper(),
        notes=body.notes,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="payment_approved" if command.action == "APPROVE" else "payment_rejected")


@order_router.get("/{order_id}/payment-approvals", response_model=list[PaymentApprovalSchema])
async def list_payment_approvals(
    order_id: str,
    caller: Caller = Depends(current_caller),
) -> list[PaymentApprovalSchema]:
    """Audit trail of admin payment decisions, oldest first."""
    _visible_order(order_id, caller)
    return [
        PaymentApprovalSchema(
            id=str(entry.id),
            approver_id=str(entry.approver_id),
            action=entry.action,
            notes=entry.notes,
            recorded_at=entry.recorded_at,
        )
        for entry in approvals_for(order_id)
    ]


@order_router.put("/{order_id}/confirm", response_model=StatusResponse)
async def confirm_order(
    order_id: str,
    caller: Caller = Depends(require_roles("SELLER", "COMPANY", "ADMIN")),
) -> StatusResponse:
    current_domain.process(ConfirmOrder(order_id=order_id), asynchronous=False)
    return StatusResponse(status="confirmed")


@order_router.put("/{order_id}/pack", response_model=StatusResponse)
async def pack_order(
    order_id: str,
    caller: Caller = Depends(require_roles("SELLER", "COMPANY")),
) -> StatusResponse:
    current_domain.process(PackOrder(order_id=order_id), asynchronous=False)
    return StatusResponse(status="packed")


@order_router.put("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(
    order_id: str,
    body: ReasonRequest | None = None,
    caller: Caller = Depends(require_roles("CUSTOMER", "SELLER", "COMPANY", "ADMIN")),
) -> StatusResponse:
    _visible_order(order_id, caller)
    current_domain.process(CancelOrder(order_id=order_id, reason=body.reason if body else None), asynchronous=False)
    return StatusResponse(status="cancelled")


@order_router.put("/{order_id}/reject", response_model=StatusResponse)
async def reject_order(
    order_id: str,
    body: ReasonRequest | None = None,
    caller: Caller = Depends(require_roles("SELLER", "COMPANY", "ADMIN")),
) -> StatusResponse:
    current_domain.process(RejectOrder(order_id=order_id, reason=body.reason if body else None), asynchronous=False)
    return StatusResponse(status="rejected")


def _delivery_response(delivery: Delivery) -> DeliveryResponse:
    return DeliveryResponse(
        id=str(delivery.id),
        order_id=str(delivery.order_id),
        status=delivery.status,
        fee=delivery.fee,
        tracking_id=delivery.tracking_id,
        agent_id=str(delivery.agent_id) if delivery.agent_id else None,
        pickup_time=delivery.pickup_time,
        dispatch_time=delivery.dispatch_time,
        actual_delivery=delivery.actual_delivery,
        failure_reason=delivery.failure_reason,
    )


@order_router.get("/{order_id}/delivery", response_model=DeliveryResponse)
async def get_order_delivery(order_id: str, caller: Caller = Depends(current_caller)) -> DeliveryResponse:
    _visible_order(order_id, caller)
    delivery = delivery_for_order(order_id)
    if delivery is None:
        raise HTTPException(status_code=404, detail="Delivery not found")
    return _delivery_response(delivery)


# ---------------------------------------------------------------------------
# Delivery Router
# ---------------------------------------------------------------------------
delivery_router = APIRouter(prefix="/deliveries", tags=["deliveries"])


@delivery_router.put("/{delivery_id}/assign", response_model=StatusResponse)
async def assign_agent(
    delivery_id: str,
    body: AssignAgentRequest,
    caller: Caller = Depends(require_roles("ADMIN")),
) -> StatusResponse:
    current_domain.process(AssignDeliveryAgent(delivery_id=delivery_id, agent_id=body.agent_id), asynchronous=False)
    return StatusResponse(status="assigned")


def _scan(command_cls, status: str):
    async def endpoint(
        delivery_id: str,
        body: DeliveryNotesRequest | None = None,
        caller: Caller = Depends(require_roles("DELIVERY_AGENT")),
    ) -> StatusResponse:
        command = command_cls(delivery_id=delivery_id, agent_id=caller.user_id, notes=body.notes if body else None)
        current_domain.process(command, asynchronous=False)
        return StatusResponse(status=status)

    return endpoint


delivery_router.add_api_route(
    "/{delivery_id}/pickup", _scan(RecordPickup, "picked_up"), methods=["PUT"], response_model=StatusResponse
)
delivery_router.add_api_route(
    "/{delivery_id}/in-transit", _scan(RecordInTransit, "in_transit"), methods=["PUT"], response_model=StatusResponse
)
delivery_router.add_api_route(
    "/{delivery_id}/out-for-delivery",
    _scan(RecordOutForDelivery, "out_for_delivery"),
    methods=["PUT"],
    response_model=StatusResponse,
)
delivery_router.add_api_route(
    "/{delivery_id}/delivered", _scan(ConfirmDelivery, "delivered"), methods=["PUT"], response_model=StatusResponse
)


@delivery_router.put("/{delivery_id}/failed", response_model=StatusResponse)
async def record_failure(
    delivery_id: str,
    body: DeliveryFailureRequest,
    caller: Caller = Depends(require_roles("DELIVERY_AGENT")),
) -> StatusResponse:
    command = RecordDeliveryFailure(delivery_id=delivery_id, agent_id=caller.user_id, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="failed")


@delivery_router.get("/{delivery_id}", response_model=DeliveryResponse)
async def get_delivery(delivery_id: str, caller: Caller = Depends(current_caller)) -> DeliveryResponse:
    return _delivery_response(current_domain.repository_for(Delivery).get(delivery_id))
