"""Tests for roles, permissions and session -> Actor."""

from types import SimpleNamespace

import pytest

from errors import AuthorizationError
from rbac import ROLE_OWNER, ROLE_VIEWER, Actor, actor_from_session, can, normalize_role, require


@pytest.mark.parametrize(
    "perm", ["view_ledger", "create_loan", "edit_loan", "record_payment", "close_loan", "wipe_loans"]
)
def test_owner_can_do_everything(perm):
    assert can(Actor("u1"), perm)


def test_viewer_only_reads():
    viewer = Actor("u1", role=ROLE_VIEWER)
    assert can(viewer, "view_ledger")
    assert not can(viewer, "record_payment")
    assert not can(viewer, "wipe_loans")


def test_permission_aliases():
    assert can(Actor("u1"), "pay")
    assert can(Actor("u1"), "delete_all")


@pytest.mark.parametrize("role, expected", [("OWNER", ROLE_OWNER), (None, ROLE_OWNER), ("admin", ROLE_VIEWER)])
def test_normalize_role(role, expected):
    assert normalize_role(role) == expected


class TestRequire:
    def test_returns_actor(self):
        a = Actor("u1")
        assert require(a, "create_loan") is a

    @pytest.mark.parametrize("who", [None, Actor(""), Actor("   ")])
    def test_not_signed_in(self, who):
        with pytest.raises(AuthorizationError, match="Sign in required"):
            require(who, "view_ledger")

    def test_denied(self):
        with pytest.raises(AuthorizationError, match="close_loan"):
            require(Actor("u1", role=ROLE_VIEWER), "close_loan")

    def test_is_a_permission_error(self):
        with pytest.raises(PermissionError):
            require(None, "view_ledger")


class TestActorFromSession:
    def test_object_session(self):
        session = SimpleNamespace(user=SimpleNamespace(id="abc", email="a@example.com"))
        assert actor_from_session(session) == Actor("abc", ROLE_OWNER, "a@example.com")

    def test_dict_session(self):
        actor = actor_from_session({"user": {"id": 7}}, role="viewer")
        assert actor == Actor("7", ROLE_VIEWER, None)

    @pytest.mark.parametrize("session", [None, {}, {"user": {}}, SimpleNamespace(user=None)])
    def test_no_user(self, session):
        assert actor_from_session(session) is None
