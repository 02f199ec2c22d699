"""
Transition validator tests.

The tables in app/services/transitions.py are the only source of legal
status moves, so these walk every (entity, current, target, role) tuple.
"""

import itertools

import pytest

from app.core.exceptions import InvalidTransition
from app.services.transitions import (
    ASSOCIATION,
    CLASS,
    DEMO,
    REQUIREMENT,
    ROLES,
    TRANSITIONS,
    allowed_targets,
    can_transition,
    is_terminal,
    states,
    validate_transition,
)

ENTITIES = [REQUIREMENT, ASSOCIATION, DEMO, CLASS]


def _all_tuples():
    for entity in ENTITIES:
        for current, target, role in itertools.product(states(entity), states(entity), sorted(ROLES)):
            yield entity, current, target, role


# =============================================================================
# Graph edges
# =============================================================================


class TestGraphEdges:
    @pytest.mark.parametrize("entity,current,target,role", list(_all_tuples()))
    def test_only_table_edges_are_allowed(self, entity, current, target, role):
        in_table = target in TRANSITIONS[entity][current].get(role, set())
        same_state_noop = current == target and not (entity == DEMO and current == "scheduled")
        assert can_transition(entity, current, target, role) == (in_table or same_state_noop)

    def test_requirement_graph(self):
        assert allowed_targets(REQUIREMENT, "open", "admin") == {"matched", "closed"}
        assert allowed_targets(REQUIREMENT, "open", "parent") == {"closed"}
        assert allowed_targets(REQUIREMENT, "closed", "parent") == {"open"}
        assert allowed_targets(REQUIREMENT, "closed", "admin") == set()

    def test_requirement_never_regresses_from_matched(self):
        for role in ROLES:
            assert not can_transition(REQUIREMENT, "matched", "open", role)

    def test_only_parent_reopens(self):
        assert can_transition(REQUIREMENT, "closed", "open", "parent")
        for role in ("tutor", "admin", "system"):
            assert not can_transition(REQUIREMENT, "closed", "open", role)

    def test_assignment_is_admin_only(self):
        for current in ("recommended", "applied", "shortlisted"):
            assert can_transition(ASSOCIATION, current, "assigned", "admin")
            for role in ("parent", "tutor", "system"):
                assert not can_transition(ASSOCIATION, current, "assigned", role)

    def test_tutor_confirms_only_a_recommendation(self):
        assert can_transition(ASSOCIATION, "recommended", "applied", "tutor")
        assert not can_transition(ASSOCIATION, "shortlisted", "applied", "tutor")

    def test_demo_completion_needs_schedule(self):
        assert not can_transition(DEMO, "requested", "completed", "admin")
        assert can_transition(DEMO, "scheduled", "completed", "tutor")

    def test_system_rolls_classes_forward(self):
        assert can_transition(CLASS, "upcoming", "ongoing", "system")
        assert can_transition(CLASS, "ongoing", "past", "system")
        assert not can_transition(CLASS, "past", "ongoing", "system")
        assert not can_transition(CLASS, "upcoming", "past", "system")


# =============================================================================
# Terminal and unknown inputs
# =============================================================================


class TestTerminalAndUnknown:
    @pytest.mark.parametrize("entity,state", [
        (ASSOCIATION, "rejected"),
        (ASSOCIATION, "withdrawn"),
        (DEMO, "completed"),
        (DEMO, "cancelled"),
        (CLASS, "past"),
        (CLASS, "cancelled"),
    ])
    def test_terminal_states_have_no_exits(self, entity, state):
        assert is_terminal(entity, state)
        for target, role in itertools.product(states(entity) - {state}, ROLES):
            assert not can_transition(entity, state, target, role)

    def test_closed_requirement_is_not_terminal(self):
        assert not is_terminal(REQUIREMENT, "closed")

    @pytest.mark.parametrize("entity,current,target,role", [
        ("invoice", "open", "closed", "admin"),
        (REQUIREMENT, "archived", "open", "admin"),
        (REQUIREMENT, "open", "archived", "admin"),
        (REQUIREMENT, "open", "closed", "superuser"),
        (REQUIREMENT, "open", "open", "superuser"),
    ])
    def test_unknown_inputs_are_rejected(self, entity, current, target, role):
        assert not can_transition(entity, current, target, role)


# =============================================================================
# validate_transition
# =============================================================================


class TestValidateTransition:
    def test_returns_false_for_real_move(self):
        assert validate_transition(REQUIREMENT, "open", "matched", "admin") is False

    def test_same_state_is_noop(self):
        assert validate_transition(REQUIREMENT, "closed", "closed", "tutor") is True
        assert validate_transition(ASSOCIATION, "rejected", "rejected", "parent") is True

    def test_scheduled_demo_revalidates(self):
        assert validate_transition(DEMO, "scheduled", "scheduled", "parent") is False
        with pytest.raises(InvalidTransition):
            validate_transition(DEMO, "scheduled", "scheduled", "system")

    def test_error_names_the_move(self):
        with pytest.raises(InvalidTransition) as exc_info:
            validate_transition(ASSOCIATION, "withdrawn", "applied", "tutor")
        err = exc_info.value
        assert (err.entity_type, err.current, err.target, err.role) == (
            ASSOCIATION, "withdrawn", "applied", "tutor",
        )
        assert err.to_dict()["code"] == "INVALID_TRANSITION"
