"""
Caller identity and capabilities.

Authentication happens upstream (reverse proxy / session layer), which
forwards the signed-in user as `X-User-Id` and `X-User-Role` headers. The
services never look at role names directly; they ask the `Caller` for a
capability.
"""

from dataclasses import dataclass
from typing import Optional
from fastapi import Header, HTTPException

from errors import ForbiddenError

ROLES = ("user", "representative", "admin")
AUTO_APPROVE_ROLES = frozenset({"representative", "admin"})


@dataclass(frozen=True)
class Caller:
    user_id: Optional[int]
    role: str = "user"

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def can_auto_approve(self) -> bool:
        return self.is_authenticated and self.role in AUTO_APPROVE_ROLES

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and self.role == "admin"


ANONYMOUS = Caller(user_id=None)


def require_authenticated(caller: Caller) -> None:
    if not caller.is_authenticated:
        raise ForbiddenError("Sign-in required")


def require_admin(caller: Caller) -> None:
    if not caller.is_admin:
        raise ForbiddenError("Admin access required")


def get_caller(
    x_user_id: Optional[int] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> Caller:
    """FastAPI dependency: build the `Caller` from forwarded headers."""

    if x_user_id is None:
        return ANONYMOUS
    role = (x_user_role or "user").strip().lower()
    if role not in ROLES:
        raise HTTPException(status_code=400, detail=f"Unknown role: {x_user_role}")
    return Caller(user_id=x_user_id, role=role)
