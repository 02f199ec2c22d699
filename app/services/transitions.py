# app/services/transitions.py
# Legal status graphs per entity type and the roles allowed to walk each edge
#
# Pure lookups only -- no DB, no clock. The workflow service asks
# validate_transition() before every status write.
#
# Same-status moves are idempotent no-ops, except for states whose side data
# must be re-checked every time (a scheduled demo carries its slot, so
# scheduled → scheduled always goes through the full rules).

from typing import Dict, FrozenSet, Set

from app.core.exceptions import InvalidTransition

ROLES = frozenset({"parent", "tutor", "admin", "system"})

REQUIREMENT = "requirement"
ASSOCIATION = "association"
DEMO = "demo"
CLASS = "class"

# state → role → allowed targets
TRANSITIONS: Dict[str, Dict[str, Dict[str, Set[str]]]] = {
    REQUIREMENT: {
        "open": {
            "parent": {"closed"},
            "admin": {"matched", "closed"},
            "system": {"matched", "closed"},
        },
        "matched": {
            "parent": {"closed"},
            "admin": {"closed"},
            "system": {"closed"},
        },
        "closed": {
            "parent": {"open"},
        },
    },
    ASSOCIATION: {
        "recommended": {
            "tutor": {"applied", "withdrawn"},
            "admin": {"shortlisted", "assigned", "rejected"},
        },
        "applied": {
            "tutor": {"withdrawn"},
            "admin": {"shortlisted", "assigned", "rejected"},
        },
        "shortlisted": {
            "tutor": {"withdrawn"},
            "admin": {"assigned", "rejected"},
        },
        "assigned": {
            "tutor": {"withdrawn"},
            "admin": {"rejected"},
        },
        "rejected": {},
        "withdrawn": {},
    },
    DEMO: {
        "requested": {
            "parent": {"cancelled"},
            "tutor": {"scheduled", "cancelled"},
            "admin": {"scheduled", "cancelled"},
            "system": {"cancelled"},
        },
        # scheduled → scheduled is a re-slot (reschedule), never a free no-op
        "scheduled": {
            "parent": {"scheduled", "completed", "cancelled"},
            "tutor": {"scheduled", "completed", "cancelled"},
            "admin": {"scheduled", "completed", "cancelled"},
            "system": {"completed", "cancelled"},
        },
        "completed": {},
        "cancelled": {},
    },
    CLASS: {
        "upcoming": {
            "parent": {"cancelled"},
            "tutor": {"cancelled"},
            "admin": {"ongoing", "cancelled"},
            "system": {"ongoing"},
        },
        "ongoing": {
            "parent": {"cancelled"},
            "tutor": {"cancelled"},
            "admin": {"past", "cancelled"},
            "system": {"past"},
        },
        "past": {},
        "cancelled": {},
    },
}

# Entity states that always re-validate, even when target == current
REVALIDATE_SAME_STATE: Dict[str, FrozenSet[str]] = {
    DEMO: frozenset({"scheduled"}),
}


def states(entity_type: str) -> Set[str]:
    return set(TRANSITIONS.get(entity_type, {}))


def is_terminal(entity_type: str, state: str) -> bool:
    graph = TRANSITIONS.get(entity_type, {})
    return state in graph and not any(graph[state].values())


def allowed_targets(entity_type: str, current: str, role: str) -> Set[str]:
    """Targets `role` may move an entity to from `current`."""
    return set(TRANSITIONS.get(entity_type, {}).get(current, {}).get(role, set()))


def is_noop(entity_type: str, current: str, target: str) -> bool:
    return current == target and target not in REVALIDATE_SAME_STATE.get(entity_type, frozenset())


def can_transition(entity_type: str, current: str, target: str, role: str) -> bool:
    """
    Definitive transition check.
    Unknown entity types, states or roles are never allowed.
    """
    graph = TRANSITIONS.get(entity_type)
    if graph is None or current not in graph or target not in graph or role not in ROLES:
        return False
    if is_noop(entity_type, current, target):
        return True
    return target in allowed_targets(entity_type, current, role)


def validate_transition(entity_type: str, current: str, target: str, role: str) -> bool:
    """
    Raise InvalidTransition unless the edge is legal for `role`.
    Returns True when the move is a same-status no-op, False when it changes state.
    """
    if not can_transition(entity_type, current, target, role):
        raise InvalidTransition(entity_type, current, target, role)
    return is_noop(entity_type, current, target)
