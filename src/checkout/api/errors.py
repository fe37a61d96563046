"""HTTP mapping for checkout rejections.

Protean's handlers cover the generic cases (``ValidationError`` → 400,
``ObjectNotFoundError`` → 404). The handlers here are more specific and
add the stable ``code`` (and voucher ``reason``) clients branch on.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from checkout.errors import CheckoutRejection, InvalidTransition, VoucherInvalid


def _body(exc: CheckoutRejection) -> dict:
    body = {"error": exc.message, "code": exc.code}
    if isinstance(exc, VoucherInvalid):
        body["reason"] = exc.reason
        body["field"] = exc.field
        body["valid"] = False
    if isinstance(exc, InvalidTransition):
        body["from"] = exc.current
        body["to"] = exc.target
    return body


async def checkout_rejection_handler(request: Request, exc: CheckoutRejection) -> JSONResponse:
    return JSONResponse(status_code=400, content=_body(exc))


async def invalid_transition_handler(request: Request, exc: InvalidTransition) -> JSONResponse:
    return JSONResponse(status_code=409, content=_body(exc))


def register_checkout_exception_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(CheckoutRejection, checkout_rejection_handler)
    app.add_exception_handler(InvalidTransition, invalid_transition_handler)
