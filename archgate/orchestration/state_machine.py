"""
State machine for the Feature lifecycle.

proposed -> approved -> in-development -> testing -> stable,
with deprecated / removed as side branches. The table below is the
canonical lifecycle; whether it is enforced is the caller's choice.
"""

from enum import Enum
from typing import Dict, List, Set, Union


class FeatureState(str, Enum):
    """Feature lifecycle states."""
    PROPOSED = "proposed"
    APPROVED = "approved"
    IN_DEVELOPMENT = "in-development"
    TESTING = "testing"
    STABLE = "stable"
    DEPRECATED = "deprecated"
    REMOVED = "removed"


_TRANSITIONS: Dict[FeatureState, Set[FeatureState]] = {
    FeatureState.PROPOSED: {FeatureState.APPROVED, FeatureState.REMOVED},
    FeatureState.APPROVED: {
        FeatureState.IN_DEVELOPMENT,
        FeatureState.DEPRECATED,
        FeatureState.REMOVED,
    },
    FeatureState.IN_DEVELOPMENT: {FeatureState.TESTING, FeatureState.DEPRECATED},
    FeatureState.TESTING: {FeatureState.STABLE, FeatureState.IN_DEVELOPMENT},
    FeatureState.STABLE: {FeatureState.DEPRECATED},
    FeatureState.DEPRECATED: {FeatureState.STABLE, FeatureState.REMOVED},
    FeatureState.REMOVED: set(),
}


def valid_transitions(from_state: Union[FeatureState, str]) -> List[FeatureState]:
    """Return list of valid target states from given state."""
    targets = _TRANSITIONS.get(FeatureState(from_state), set())
    return sorted(targets, key=lambda s: list(FeatureState).index(s))


def can_transition(
    from_state: Union[FeatureState, str],
    to_state: Union[FeatureState, str],
) -> bool:
    """Check if the lifecycle allows from_state -> to_state."""
    return FeatureState(to_state) in _TRANSITIONS.get(FeatureState(from_state), set())
