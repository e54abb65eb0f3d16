"""
Orchestration - feature lifecycle transitions.
"""

from archgate.orchestration.state_machine import (
    FeatureState,
    can_transition,
    valid_transitions,
)

__all__ = ["FeatureState", "can_transition", "valid_transitions"]
