"""Unit tests for the feature lifecycle transition table."""

import pytest

from archgate.orchestration import FeatureState, can_transition, valid_transitions


class TestTransitions:
    """Tests for can_transition and valid_transitions."""

    def test_happy_path(self):
        """proposed -> approved -> in-development -> testing -> stable."""
        path = [
            FeatureState.PROPOSED,
            FeatureState.APPROVED,
            FeatureState.IN_DEVELOPMENT,
            FeatureState.TESTING,
            FeatureState.STABLE,
        ]
        for current, following in zip(path, path[1:]):
            assert can_transition(current, following) is True

    def test_cannot_skip_to_stable(self):
        assert can_transition(FeatureState.PROPOSED, FeatureState.STABLE) is False

    def test_testing_can_go_back(self):
        assert can_transition("testing", "in-development") is True

    def test_removed_is_terminal(self):
        assert valid_transitions(FeatureState.REMOVED) == []

    def test_valid_transitions_in_declaration_order(self):
        assert valid_transitions("approved") == [
            FeatureState.IN_DEVELOPMENT,
            FeatureState.DEPRECATED,
            FeatureState.REMOVED,
        ]

    def test_unknown_state(self):
        with pytest.raises(ValueError):
            can_transition("archived", "stable")
