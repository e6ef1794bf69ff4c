"""Role capabilities.

Every router asks `require(principal, capability)` before calling into the
services, which themselves never look at roles.
"""

from enum import Enum
from typing import Optional

from app.core.errors import ForbiddenError
from app.models import ROLE_FULFILLER, ROLE_ORDERER, ROLE_VISITOR
from app.schemas import VisitorSettings


class Capability(str, Enum):
    VIEW_MENU = "view_menu"
    VIEW_REVIEWS = "view_reviews"
    VIEW_STATS = "view_stats"
    VIEW_ORDERS = "view_orders"
    USE_CART = "use_cart"
    PLACE_ORDER = "place_order"
    MANAGE_MENU = "manage_menu"
    REVIEW = "review"
    DELETE_ORDER = "delete_order"


MEMBERS = frozenset({ROLE_FULFILLER, ROLE_ORDERER})

_ROLE_CAPS: dict[Capability, frozenset[str]] = {
    Capability.VIEW_MENU: MEMBERS,
    Capability.VIEW_REVIEWS: MEMBERS,
    Capability.VIEW_STATS: MEMBERS,
    Capability.VIEW_ORDERS: MEMBERS,
    Capability.USE_CART: MEMBERS,
    Capability.PLACE_ORDER: MEMBERS,
    Capability.MANAGE_MENU: frozenset({ROLE_FULFILLER}),
    Capability.REVIEW: MEMBERS,
    Capability.DELETE_ORDER: frozenset({ROLE_FULFILLER}),
}

# Visitor access to read-only pages is switched by the admin
_VISITOR_TOGGLES = {
    Capability.VIEW_MENU: "show_menu",
    Capability.VIEW_REVIEWS: "show_reviews",
    Capability.VIEW_STATS: "show_stats",
}

_WHITELIST_ONLY = frozenset({Capability.USE_CART, Capability.PLACE_ORDER})

# Target status -> role that drives it
STATUS_DRIVERS = {
    "cooking": ROLE_FULFILLER,
    "ready": ROLE_FULFILLER,
    "cancelled": ROLE_FULFILLER,
    "completed": ROLE_ORDERER,
}


def is_allowed(principal, capability: Capability, visitor: Optional[VisitorSettings] = None) -> bool:
    if principal is None:
        return False
    if principal.role == ROLE_VISITOR:
        toggle = _VISITOR_TOGGLES.get(capability)
        return bool(toggle and visitor is not None and getattr(visitor, toggle))
    if principal.role not in _ROLE_CAPS[capability]:
        return False
    if capability in _WHITELIST_ONLY and not principal.is_whitelisted:
        return False
    return True


def can_drive_status(principal, target: str) -> bool:
    if principal is None:
        return False
    return STATUS_DRIVERS.get(target) == principal.role


def require(principal, capability: Capability, visitor: Optional[VisitorSettings] = None) -> None:
    if not is_allowed(principal, capability, visitor):
        raise ForbiddenError(f"Not allowed: {capability.value}")


def require_status_driver(principal, target: str) -> None:
    if not can_drive_status(principal, target):
        raise ForbiddenError(f"Not allowed to move orders to '{target}'")
