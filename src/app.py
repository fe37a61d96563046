"""Marketplace checkout FastAPI application.

Serves the checkout and support domains over HTTP and processes commands
synchronously. Each request runs inside the domain context that owns its
URL prefix.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

import os
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from checkout.domain import checkout
from checkout.utils.logging import bind_request_context, clear_request_context, configure_logging
from support.domain import support

configure_logging()

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# Domains are initialized at module level so uvicorn workers share them.
checkout.init()
support.init()

# ---------------------------------------------------------------------------
# Route-to-domain mapping
# ---------------------------------------------------------------------------
_ROUTE_DOMAIN_MAP = {
    "/checkout": checkout,
    "/vouchers": checkout,
    "/delivery-vouchers": checkout,
    "/orders": checkout,
    "/deliveries": checkout,
    "/support": support,
}


def _resolve_domain(path: str):
    for prefix, domain in _ROUTE_DOMAIN_MAP.items():
        if path.startswith(prefix):
            return domain
    return None


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Marketplace Checkout API",
    description="Multi-seller checkout, vouchers, order lifecycle and author support payments",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ALLOW_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the owning Protean domain context and tag log lines with the request."""
    bind_request_context(request_id=request.headers.get("x-request-id") or uuid4().hex, path=request.url.path)
    try:
        domain = _resolve_domain(request.url.path)
        if domain is not None:
            with domain.domain_context():
                return await call_next(request)
        # No domain match (health check, docs)
        return await call_next(request)
    finally:
        clear_request_context()


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from checkout.api import (  # noqa: E402
    checkout_router,
    delivery_router,
    delivery_voucher_router,
    order_router,
    register_checkout_exception_handlers,
    voucher_router,
)
from support.api import support_router  # noqa: E402

app.include_router(checkout_router)
app.include_router(voucher_router)
app.include_router(delivery_voucher_router)
app.include_router(order_router)
app.include_router(delivery_router)
app.include_router(support_router)
register_checkout_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {
                "checkout": {"name": checkout.name},
                "support": {"name": support.name},
            },
        }
    )


def main() -> None:
    uvicorn.run(
        "app:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("PROTEAN_ENV", "development") == "development",
    )


if __name__ == "__main__":
    main()
