"""Support domain API package."""

from support.api.routes import support_router

__all__ = ["support_router"]
