"""
Order Access Policy

The authentication gateway in front of this service verifies the caller
and forwards the result as two headers:

    X-User-Id:   opaque user identifier
    X-User-Role: customer | staff | admin

Everything here trusts those headers; nothing issues or checks tokens.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Header

from tableside.core.errors import Forbidden, Unauthorized
from tableside.models import Order

logger = logging.getLogger(__name__)


class Role(str, enum.Enum):
    CUSTOMER = "customer"
    STAFF = "staff"
    ADMIN = "admin"


STAFF_ROLES = frozenset({Role.STAFF, Role.ADMIN})


@dataclass(frozen=True)
class Principal:
    """The verified caller of one request."""
    user_id: str
    role: Role

    @property
    def is_staff(self) -> bool:
        """Staff and admins share every staff permission."""
        return self.role in STAFF_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def owns(self, order: Order) -> bool:
        return order.user_id == self.user_id


async def get_principal(
    x_user_id: Optional[str] = Header(None, alias="x-user-id"),
    x_user_role: Optional[str] = Header(None, alias="x-user-role"),
) -> Principal:
    """FastAPI dependency building the Principal from gateway headers."""
    if not x_user_id or not x_user_role:
        raise Unauthorized()
    try:
        role = Role(x_user_role.lower())
    except ValueError:
        raise Unauthorized(f"Unknown role '{x_user_role}'")
    return Principal(user_id=x_user_id, role=role)


def require_role(principal: Principal, *roles: Role) -> None:
    """Reject the caller unless their role is one of ``roles``."""
    if principal.role not in roles:
        logger.warning(f"User {principal.user_id} ({principal.role.value}) denied, needs {[r.value for r in roles]}")
        raise Forbidden(f"User role {principal.role.value} is not authorized to access this route")


def require_staff(principal: Principal) -> None:
    require_role(principal, Role.STAFF, Role.ADMIN)


def require_admin(principal: Principal) -> None:
    require_role(principal, Role.ADMIN)


def ensure_can_read_order(principal: Principal, order: Order) -> None:
    """Staff read any order; customers only their own."""
    if principal.is_staff or principal.owns(order):
        return
    logger.warning(f"User {principal.user_id} denied read on order {order.id}")
    raise Forbidden("Not authorized to access this order")


def ensure_can_edit_order(principal: Principal, order: Order) -> None:
    """Owners and staff may edit order fields (status rules apply separately)."""
    if principal.is_staff or principal.owns(order):
        return
    logger.warning(f"User {principal.user_id} denied update on order {order.id}")
    raise Forbidden("Not authorized to update this order")
