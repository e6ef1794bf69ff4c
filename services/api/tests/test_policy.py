import pytest

from app.core.errors import ForbiddenError
from app.policy import Capability, can_drive_status, is_allowed, require, require_status_driver
from app.schemas import VisitorSettings
from app.services.identity import Principal

CHEF = Principal(user_id=1, role="fulfiller", is_whitelisted=True)
DINER = Principal(user_id=2, role="orderer", is_whitelisted=True)
VISITOR = Principal(user_id=3, role="visitor", is_whitelisted=False)


@pytest.mark.parametrize("cap", [
    Capability.VIEW_MENU,
    Capability.VIEW_ORDERS,
    Capability.USE_CART,
    Capability.PLACE_ORDER,
    Capability.REVIEW,
])
def test_both_members_share_everyday_capabilities(cap):
    assert is_allowed(CHEF, cap)
    assert is_allowed(DINER, cap)


@pytest.mark.parametrize("cap", [Capability.MANAGE_MENU, Capability.DELETE_ORDER])
def test_fulfiller_only_capabilities(cap):
    assert is_allowed(CHEF, cap)
    assert not is_allowed(DINER, cap)


def test_whitelist_gates_cart_and_checkout():
    unlisted = Principal(user_id=2, role="orderer", is_whitelisted=False)
    assert not is_allowed(unlisted, Capability.USE_CART)
    assert not is_allowed(unlisted, Capability.PLACE_ORDER)
    assert is_allowed(unlisted, Capability.VIEW_ORDERS)


def test_visitor_access_follows_toggles():
    closed = VisitorSettings(show_menu=False, show_stats=False, show_reviews=False)
    open_ = VisitorSettings(show_menu=True, show_stats=True, show_reviews=True)

    for cap in (Capability.VIEW_MENU, Capability.VIEW_STATS, Capability.VIEW_REVIEWS):
        assert not is_allowed(VISITOR, cap, closed)
        assert is_allowed(VISITOR, cap, open_)
        assert not is_allowed(VISITOR, cap)

    for cap in (Capability.USE_CART, Capability.PLACE_ORDER, Capability.VIEW_ORDERS, Capability.REVIEW):
        assert not is_allowed(VISITOR, cap, open_)


def test_anonymous_gets_nothing():
    assert not is_allowed(None, Capability.VIEW_MENU, VisitorSettings())
    assert not can_drive_status(None, "cooking")


@pytest.mark.parametrize("target", ["cooking", "ready", "cancelled"])
def test_fulfiller_drives_kitchen_states(target):
    assert can_drive_status(CHEF, target)
    assert not can_drive_status(DINER, target)


def test_orderer_confirms_completion():
    assert can_drive_status(DINER, "completed")
    assert not can_drive_status(CHEF, "completed")
    assert not can_drive_status(CHEF, "pending")


def test_require_raises_forbidden():
    with pytest.raises(ForbiddenError):
        require(DINER, Capability.MANAGE_MENU)
    with pytest.raises(ForbiddenError):
        require_status_driver(VISITOR, "completed")
    require(CHEF, Capability.MANAGE_MENU)
