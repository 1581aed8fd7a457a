"""Plan changes and plan-limit gating."""

import pytest

from gopass.common.errors import RecordNotFoundError
from gopass.common.records import Event, Organizer, UserProfile
from gopass.services.accounts.service import AccountService


@pytest.fixture
def accounts(session_factory):
    return AccountService(session_factory)


def test_upgrade_appends_history(accounts, seed):
    seed(UserProfile(uid="u1", plan_id="hobby"))

    accounts.upgrade_user_plan("u1", "pro")
    profile = accounts.upgrade_user_plan("u1", "proPlus")

    assert profile.plan_id == "proPlus"
    assert [entry["planId"] for entry in accounts.get_profile("u1").upgrade_history] == ["pro", "proPlus"]


def test_upgrade_unknown_plan(accounts):
    with pytest.raises(KeyError):
        accounts.upgrade_user_plan("u1", "enterprise")
    assert accounts.get_profile("u1") is None


def test_downgrade_returns_to_hobby(accounts, seed):
    seed(UserProfile(uid="u1", plan_id="pro"))

    assert accounts.downgrade("u1").plan_id == "hobby"


def test_event_limit_follows_plan(accounts, seed):
    seed(
        UserProfile(uid="u1", plan_id="hobby"),
        Event(id="e1", organizer_id="o1", user_id="u1", name="First"),
    )

    assert not accounts.can_create_event("u1")
    accounts.upgrade_user_plan("u1", "pro")
    assert accounts.can_create_event("u1")


def test_unknown_user_gets_hobby_limits(accounts, seed):
    assert accounts.can_create_organization("nobody")
    seed(Organizer(id="o1", user_id="nobody", name="Solo"))
    assert not accounts.can_create_organization("nobody")


def test_ticket_capacity_follows_owner_plan(accounts, seed):
    seed(
        UserProfile(uid="u1", plan_id="hobby"),
        Event(id="e1", organizer_id="o1", user_id="u1", name="First", tickets_issued=5),
    )

    assert not accounts.can_issue_ticket("e1")
    accounts.upgrade_user_plan("u1", "pro")
    assert accounts.can_issue_ticket("e1")


def test_ticket_capacity_for_missing_event(accounts):
    with pytest.raises(RecordNotFoundError):
        accounts.can_issue_ticket("nope")
