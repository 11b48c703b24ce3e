"""Tests for the role authorization guard."""
import pytest

from models.user import Role
from utils.exceptions import Forbidden, Unauthenticated
from utils.rbac import (
    ADMIN_ONLY,
    PLANNER_OR_ADMIN,
    VENDOR_OR_PLANNER,
    Identity,
    authorize,
    authorize_owner_or_role,
    role_set,
)

admin = Identity(user_id="u-admin", role=Role.ADMIN)
planner = Identity(user_id="u-planner", role=Role.PLANNER)
vendor = Identity(user_id="u-vendor", role=Role.VENDOR)


@pytest.mark.parametrize(
    "identity, allowed",
    [(admin, ADMIN_ONLY), (planner, PLANNER_OR_ADMIN), (admin, PLANNER_OR_ADMIN), (vendor, VENDOR_OR_PLANNER)],
)
def test_authorize_allows_members(identity, allowed):
    authorize(identity, allowed)


@pytest.mark.parametrize(
    "identity, allowed",
    [(planner, ADMIN_ONLY), (vendor, PLANNER_OR_ADMIN), (admin, VENDOR_OR_PLANNER)],
)
def test_authorize_denies_non_members(identity, allowed):
    with pytest.raises(Forbidden):
        authorize(identity, allowed)


def test_no_role_hierarchy():
    # admin is not implicitly a vendor
    with pytest.raises(Forbidden):
        authorize(admin, role_set([Role.VENDOR]))


def test_missing_identity_is_unauthenticated_not_forbidden():
    with pytest.raises(Unauthenticated):
        authorize(None, ADMIN_ONLY)
    with pytest.raises(Unauthenticated):
        authorize_owner_or_role(None, "u-1", ADMIN_ONLY)


def test_empty_role_set_is_a_programming_error():
    with pytest.raises(ValueError):
        authorize(admin, frozenset())
    with pytest.raises(ValueError):
        role_set([])


def test_role_set_normalizes_strings_and_rejects_unknown():
    assert role_set(["admin", Role.PLANNER]) == frozenset({Role.ADMIN, Role.PLANNER})
    with pytest.raises(ValueError):
        role_set(["superuser"])


def test_owner_is_allowed():
    authorize_owner_or_role(vendor, "u-vendor", ADMIN_ONLY)


def test_privileged_role_is_allowed_for_other_resources():
    authorize_owner_or_role(admin, "u-vendor", ADMIN_ONLY)


def test_other_users_are_forbidden():
    with pytest.raises(Forbidden):
        authorize_owner_or_role(planner, "u-vendor", ADMIN_ONLY)
    with pytest.raises(Forbidden):
        authorize_owner_or_role(planner, None, ADMIN_ONLY)
