"""
Tests for the access request status graph.
"""

import itertools

import pytest

from core.access.transitions import (
    ALLOWED_TRANSITIONS,
    INITIAL_STATUS,
    ROLE_ALLOWED_TARGETS,
    TERMINAL_STATUSES,
    allowed_next,
    can_transition,
    is_terminal,
    is_valid_walk,
    role_may_set,
    validate_transition,
)
from core.errors import InvalidTransition
from core.models import AccessStatus, ActorRole


S = AccessStatus

EDGES = {
    (S.PENDING, S.AUTHORIZED),
    (S.PENDING, S.DENIED),
    (S.AUTHORIZED, S.ARRIVED),
    (S.AUTHORIZED, S.DENIED),
    (S.ARRIVED, S.ENTERED),
    (S.ARRIVED, S.DENIED),
    (S.ENTERED, S.COMPLETED),
}


class TestGraph:
    """The whitelist is exactly the documented edges."""

    def test_every_status_has_an_entry(self):
        assert set(ALLOWED_TRANSITIONS) == set(AccessStatus)

    @pytest.mark.parametrize("current,new", list(itertools.product(AccessStatus, AccessStatus)))
    def test_can_transition_matches_edges(self, current, new):
        assert can_transition(current, new) == ((current, new) in EDGES)

    def test_initial_status_is_pending(self):
        assert INITIAL_STATUS == S.PENDING

    def test_terminal_statuses(self):
        assert TERMINAL_STATUSES == {S.DENIED, S.COMPLETED}
        assert is_terminal(S.COMPLETED)
        assert not is_terminal(S.ENTERED)

    def test_allowed_next_from_arrived(self):
        assert allowed_next(S.ARRIVED) == {S.ENTERED, S.DENIED}


class TestValidateTransition:

    def test_valid_edge_passes(self):
        validate_transition(S.PENDING, S.AUTHORIZED)

    def test_skipping_a_step_raises(self):
        with pytest.raises(InvalidTransition) as exc_info:
            validate_transition(S.AUTHORIZED, S.ENTERED)
        assert exc_info.value.current == S.AUTHORIZED
        assert exc_info.value.requested == S.ENTERED
        assert "authorized" in str(exc_info.value)

    def test_nothing_leaves_denied(self):
        for target in AccessStatus:
            with pytest.raises(InvalidTransition):
                validate_transition(S.DENIED, target)

    def test_completed_cannot_be_denied(self):
        with pytest.raises(InvalidTransition):
            validate_transition(S.COMPLETED, S.DENIED)


class TestWalks:

    def test_full_happy_path(self):
        assert is_valid_walk([S.PENDING, S.AUTHORIZED, S.ARRIVED, S.ENTERED, S.COMPLETED])

    def test_repeated_status_is_collapsed(self):
        assert is_valid_walk([S.PENDING, S.PENDING, S.AUTHORIZED, S.AUTHORIZED])

    def test_must_start_pending(self):
        assert not is_valid_walk([S.AUTHORIZED, S.ARRIVED])

    def test_backwards_step_is_invalid(self):
        assert not is_valid_walk([S.PENDING, S.AUTHORIZED, S.PENDING])

    def test_empty_history_is_valid(self):
        assert is_valid_walk([])


class TestRoleTargets:

    def test_every_role_has_an_entry(self):
        assert set(ROLE_ALLOWED_TARGETS) == set(ActorRole)

    @pytest.mark.parametrize("status", list(AccessStatus))
    def test_driver_sets_nothing(self, status):
        assert not role_may_set(ActorRole.DRIVER, status)

    def test_resident_only_decides(self):
        allowed = {s for s in AccessStatus if role_may_set(ActorRole.RESIDENT, s)}
        assert allowed == {S.AUTHORIZED, S.DENIED}

    def test_gatehouse_records_the_visit(self):
        for status in (S.AUTHORIZED, S.DENIED, S.ARRIVED, S.ENTERED, S.COMPLETED):
            assert role_may_set(ActorRole.CONDO, status)
        assert not role_may_set(ActorRole.CONDO, S.PENDING)
