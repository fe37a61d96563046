"""Pydantic request/response schemas for the Checkout API.

These are external contracts (anti-corruption layer), separate from the
internal Protean commands and the frozen result records. The checkout
and voucher endpoints speak camelCase on the wire; Python code uses
snake_case names throughout.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Delivery options
# ---------------------------------------------------------------------------
class CartItemSchema(CamelModel):
    product_id: str
    quantity: int


class DeliveryLocationRequest(CamelModel):
    county: str | None = None


class DeliveryOptionsRequest(CamelModel):
    items: list[CartItemSchema] | None = None
    delivery_location: DeliveryLocationRequest | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "items": [{"productId": "prod-001", "quantity": 2}],
                    "deliveryLocation": {"county": "Kiambu"},
                }
            ]
        },
    )


class DeliveryLocationSchema(CamelModel):
    county: str
    province: str


class PricedItemSchema(CamelModel):
    product_id: str
    name: str
    product_type: str
    unit_price: float
    quantity: int
    line_total: float


class DeliveryOptionSchema(CamelModel):
    seller_id: str
    seller_name: str
    seller_role: str
    items: list[PricedItemSchema]
    subtotal: float
    can_deliver: bool
    delivery_available: bool
    requires_platform_delivery: bool
    delivery_fee: float
    free_delivery_eligible: bool
    payment_options: list[str]
    delivery_message: str


class DeliveryOptionsResponse(CamelModel):
    delivery_location: DeliveryLocationSchema
    delivery_options: list[DeliveryOptionSchema]
    subtotal: float
    can_proceed_with_order: bool
    total_delivery_fee: float
    undeliverable_items: list[DeliveryOptionSchema] | None
    has_pay_after_delivery_options: bool
    message: str


# ---------------------------------------------------------------------------
# Vouchers
# ---------------------------------------------------------------------------
class CreateVoucherRequest(CamelModel):
    code: str = Field(min_length=1, max_length=50)
    name: str
    description: str | None = None
    discount_type: str
    discount_value: float = Field(ge=0)
    min_order_amount: float = 0.0
    max_discount_amount: float | None = None
    valid_from: datetime
    valid_until: datetime
    max_uses: int = 1
    applicable_roles: list[str] = []
    applicable_product_types: list[str] = []


class VoucherIdResponse(CamelModel):
    voucher_id: str


class ValidateVoucherRequest(CamelModel):
    code: str | None = None
    order_total: float = Field(ge=0)
    product_types: list[str] = []


class VoucherSummarySchema(CamelModel):
    id: str
    code: str
    name: str
    discount_type: str
    discount_value: float


class ValidateVoucherResponse(CamelModel):
    valid: bool
    voucher: VoucherSummarySchema
    discount_amount: float
    waives_delivery_fee: bool
    final_total: float


class VoucherListingSchema(CamelModel):
    id: str
    code: str
    name: str
    description: str | None = None
    discount_type: str
    discount_value: float
    min_order_amount: float
    max_discount_amount: float | None = None
    valid_from: datetime
    valid_until: datetime
    max_uses: int
    used_count: int
    remaining_uses: int
    applicable_roles: list[str]
    applicable_product_types: list[str]
    is_active: bool
    created_by: str | None = None


class PaginationSchema(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class VoucherListResponse(CamelModel):
    vouchers: list[VoucherListingSchema]
    pagination: PaginationSchema


# ---------------------------------------------------------------------------
# Delivery vouchers
# ---------------------------------------------------------------------------
class CreateDeliveryVoucherRequest(CamelModel):
    code: str = Field(min_length=1, max_length=50)
    name: str
    description: str | None = None
    discount_type: str
    discount_value: float
    min_order_amount: float = 0.0
    max_uses: int | None = None
    expires_at: datetime | None = None


class DeliveryVoucherSchema(CamelModel):
    id: str
    code: str
    name: str
    description: str | None = None
    discount_type: str
    discount_value: float
    min_order_amount: float
    max_uses: int | None = None
    used_count: int
    remaining_uses: int | None = None
    expires_at: datetime | None = None
    is_active: bool


class ValidateDeliveryVoucherRequest(CamelModel):
    code: str | None = None
    order_total: float = Field(ge=0)
    delivery_fee: float = Field(ge=0)


class ValidateDeliveryVoucherResponse(CamelModel):
    valid: bool
    voucher: VoucherSummarySchema
    delivery_discount: float
    final_delivery_fee: float


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class PlaceOrderRequest(CamelModel):
    items: list[CartItemSchema] | None = None
    delivery_location: DeliveryLocationRequest | None = None
    payment_type: str = "BEFORE_DELIVERY"
    voucher_code: str | None = None
    delivery_voucher_code: str | None = None


class OrderIdResponse(CamelModel):
    order_id: str


class OrderItemResponse(CamelModel):
    product_id: str
    seller_id: str
    name: str
    quantity: int
    unit_price: float
    line_total: float


class OrderResponse(CamelModel):
    id: str
    customer_id: str
    status: str
    payment_status: str
    payment_type: str
    voucher_code: str | None = None
    delivery_voucher_code: str | None = None
    county: str
    province: str
    subtotal: float
    discount_amount: float
    delivery_discount_amount: float = 0.0
    delivery_fee: float
    total: float
    currency: str
    items: list[OrderItemResponse]


class OrderListResponse(CamelModel):
    orders: list[OrderResponse]
    pagination: PaginationSchema


class SubmitPaymentRequest(CamelModel):
    payment_reference: str = Field(min_length=1, max_length=100)
    payment_phone: str | None = None
    payment_method: str | None = None


class PaymentApprovalRequest(CamelModel):
    action: str  # APPROVE | REJECT
    notes: str | None = None


class PaymentApprovalSchema(CamelModel):
    id: str
    approver_id: str
    action: str
    notes: str | None = None
    recorded_at: datetime


class ReasonRequest(CamelModel):
    reason: str | None = None


class DeliveryResponse(CamelModel):
    id: str
    order_id: str
    status: str
    fee: float
    tracking_id: str
    agent_id: str | None = None
    pickup_time: datetime | None = None
    dispatch_time: datetime | None = None
    actual_delivery: datetime | None = None
    failure_reason: str | None = None


# ---------------------------------------------------------------------------
# Deliveries
# ---------------------------------------------------------------------------
class AssignAgentRequest(CamelModel):
    agent_id: str


class DeliveryNotesRequest(CamelModel):
    notes: str | None = None


class DeliveryFailureRequest(CamelModel):
    reason: str = Field(min_length=1, max_length=500)


class StatusResponse(BaseModel):
    status: str
