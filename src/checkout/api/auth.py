"""Caller identity for the HTTP layer.

Session lookup happens in front of this service; the gateway forwards the
authenticated user as ``X-User-Id`` and ``X-User-Role`` headers.
"""

from dataclasses import dataclass

from fastapi import Header, HTTPException


@dataclass(frozen=True)
class Caller:
    user_id: str
    role: str


def current_caller(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Caller:
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return Caller(user_id=x_user_id, role=x_user_role.upper())


def require_roles(*roles: str):
    """Dependency factory admitting only callers holding one of ``roles``."""
    allowed = frozenset(roles)

    def dependency(
        x_user_id: str | None = Header(default=None),
        x_user_role: str | None = Header(default=None),
    ) -> Caller:
        caller = current_caller(x_user_id, x_user_role)
        if caller.role not in allowed:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return caller

    return dependency
