"""Tests for the lifecycle state machine and its persistence."""

from datetime import date

import pytest

from grant_discovery.errors import InvalidTransitionError, UnknownEntityError
from grant_discovery.lifecycle import TRANSITIONS, LifecycleService, transition
from grant_discovery.models import OpportunityStatus as S


@pytest.fixture
def lifecycle(store, fixed_now):
    return LifecycleService(store, clock=lambda: fixed_now)


@pytest.fixture
def stored(store, make_opportunity):
    return store.insert_opportunity(make_opportunity())


def test_happy_path_to_awarded(lifecycle, stored, fixed_now):
    for status in (S.UNDER_REVIEW, S.DRAFTING, S.SUBMITTED, S.AWARDED):
        updated = lifecycle.advance(stored.identity_key, status)

    assert updated.status == S.AWARDED
    assert updated.status_changed_at == fixed_now
    assert updated.version == stored.version + 4


def test_transition_is_pure(make_opportunity, fixed_now):
    opp = make_opportunity()

    moved = transition(opp, "under_review", fixed_now)

    assert moved.status == S.UNDER_REVIEW
    assert moved.updated_at == fixed_now
    assert opp.status == S.DISCOVERED


@pytest.mark.parametrize("target", [S.AWARDED, S.DECLINED, S.SUBMITTED, S.DISCOVERED])
def test_invalid_transition_leaves_status_unchanged(lifecycle, store, stored, target):
    with pytest.raises(InvalidTransitionError):
        lifecycle.advance(stored.identity_key, target)

    after = store.get_opportunity(stored.identity_key)
    assert after.status == S.DISCOVERED
    assert after.version == stored.version


def test_unknown_status_is_invalid(make_opportunity):
    with pytest.raises(InvalidTransitionError, match="unknown status"):
        transition(make_opportunity(), "celebrating")


@pytest.mark.parametrize("terminal", [S.AWARDED, S.DECLINED, S.EXPIRED, S.ARCHIVED])
def test_terminal_states_have_no_exits(make_opportunity, terminal):
    assert TRANSITIONS[terminal] == frozenset()
    opp = make_opportunity(status=terminal)
    for target in S:
        with pytest.raises(InvalidTransitionError):
            transition(opp, target)


def test_submitted_cannot_expire(make_opportunity):
    with pytest.raises(InvalidTransitionError):
        transition(make_opportunity(status=S.SUBMITTED), S.EXPIRED)


def test_advance_unknown_key(lifecycle):
    with pytest.raises(UnknownEntityError):
        lifecycle.advance("missing", S.UNDER_REVIEW)


class TestExpireOverdue:
    def test_expires_only_pre_submission_past_deadline(self, store, lifecycle, make_opportunity):
        overdue = store.insert_opportunity(make_opportunity(title="Old", deadline=date(2026, 1, 1)))
        drafting = store.insert_opportunity(
            make_opportunity(title="Drafting", deadline=date(2026, 1, 10), status=S.DRAFTING)
        )
        submitted = store.insert_opportunity(
            make_opportunity(title="Submitted", deadline=date(2026, 1, 1), status=S.SUBMITTED)
        )
        due_today = store.insert_opportunity(make_opportunity(title="Today", deadline=date(2026, 1, 15)))
        undated = store.insert_opportunity(make_opportunity(title="Undated", deadline=None))

        expired = lifecycle.expire_overdue(date(2026, 1, 15))

        assert sorted(expired) == sorted([overdue.identity_key, drafting.identity_key])
        assert store.get_opportunity(overdue.identity_key).status == S.EXPIRED
        assert store.get_opportunity(submitted.identity_key).status == S.SUBMITTED
        assert store.get_opportunity(due_today.identity_key).status == S.DISCOVERED
        assert store.get_opportunity(undated.identity_key).status == S.DISCOVERED

    def test_second_pass_is_a_no_op(self, store, lifecycle, make_opportunity):
        store.insert_opportunity(make_opportunity(deadline=date(2026, 1, 1)))

        assert len(lifecycle.expire_overdue(date(2026, 2, 1))) == 1
        assert lifecycle.expire_overdue(date(2026, 2, 1)) == []
