"""Domain rejections raised by the checkout engine.

Every rejection is a Protean ``ValidationError`` so that it surfaces as a
400 through the standard FastAPI exception handlers. Each class carries a
stable ``code`` for clients; voucher failures additionally carry the
specific ``reason`` that failed.
"""

from protean.exceptions import ValidationError


class CheckoutRejection(ValidationError):
    code = "checkout_rejected"
    field = "checkout"

    def __init__(self, message: str, field: str | None = None, **kwargs):
        if field:
            self.field = field
        super().__init__({self.field: [message]}, **kwargs)
        self.message = message


class ProductUnavailable(CheckoutRejection):
    code = "product_unavailable"
    field = "items"

    def __init__(self, product_id: str):
        super().__init__(f"Product {product_id} is unavailable")
        self.product_id = product_id


class InvalidLocation(CheckoutRejection):
    code = "invalid_location"
    field = "delivery_location"

    def __init__(self, county):
        super().__init__(f"Invalid delivery location: {county!r}")
        self.county = county


class UndeliverableOrder(CheckoutRejection):
    code = "undeliverable_order"
    field = "items"


class InvalidTransition(CheckoutRejection):
    """An actor asked for a state change the current state does not allow."""

    code = "invalid_transition"
    field = "status"

    def __init__(self, current: str, target: str, detail: str | None = None):
        message = f"Cannot transition from {current} to {target}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.current = current
        self.target = target


# ---------------------------------------------------------------------------
# Voucher failures, in the order the checks run
# ---------------------------------------------------------------------------
class VoucherInvalid(CheckoutRejection):
    code = "voucher_invalid"
    field = "voucher_code"
    reason = "invalid"


class VoucherNotFound(VoucherInvalid):
    reason = "not_found"


class VoucherNotYetActive(VoucherInvalid):
    reason = "not_yet_active"


class VoucherExpired(VoucherInvalid):
    reason = "expired"


class VoucherExhausted(VoucherInvalid):
    reason = "exhausted"


class VoucherNotApplicableToRole(VoucherInvalid):
    reason = "not_applicable_to_role"


class VoucherNotApplicableToProducts(VoucherInvalid):
    reason = "not_applicable_to_products"


class VoucherMinimumNotMet(VoucherInvalid):
    reason = "minimum_not_met"
