"""
Pytest fixtures for governance engine tests.
"""

from typing import Any, Dict, List, Tuple

import pytest

from archgate.engines.gate.policy_engine import FeatureGatePolicyEngine
from archgate.engines.layers.layer_registry import LayerRegistry
from archgate.engines.stability.stability_tracker import StabilityTracker
from archgate.logging_config import LogLevel


class RecordingSink:
    """LogSink that keeps every call for assertions."""

    def __init__(self):
        self.records: List[Tuple[LogLevel, str, Dict[str, Any]]] = []

    def log(self, level: LogLevel, message: str, context: Dict[str, Any]) -> None:
        self.records.append((LogLevel(level), message, dict(context)))

    def messages(self, level: LogLevel) -> List[str]:
        return [message for lvl, message, _ in self.records if lvl == level]


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def registry(sink: RecordingSink) -> LayerRegistry:
    """Empty layer registry."""
    return LayerRegistry(sink=sink)


@pytest.fixture
def default_registry(sink: RecordingSink) -> LayerRegistry:
    """Registry seeded with the five canonical tiers."""
    return LayerRegistry.with_default_layers(sink=sink)


@pytest.fixture
def tracker(sink: RecordingSink) -> StabilityTracker:
    return StabilityTracker(sink=sink)


@pytest.fixture
def healthy_tracker(tracker: StabilityTracker) -> StabilityTracker:
    """Tracker with one fully stable, fully covered feature."""
    tracker.register_feature(
        "core",
        priority="critical",
        test_coverage=1.0,
        documented=True,
        months_in_use=12,
        bug_rate=0.0,
    )
    return tracker


@pytest.fixture
def gate(
    default_registry: LayerRegistry,
    healthy_tracker: StabilityTracker,
    sink: RecordingSink,
) -> FeatureGatePolicyEngine:
    """Gate over a clean default registry and a healthy tracker, default policies."""
    return FeatureGatePolicyEngine(default_registry, healthy_tracker, sink=sink)


@pytest.fixture
def bare_gate(
    default_registry: LayerRegistry,
    healthy_tracker: StabilityTracker,
    sink: RecordingSink,
) -> FeatureGatePolicyEngine:
    """Gate with no policies, so only the built-in checks apply."""
    return FeatureGatePolicyEngine(default_registry, healthy_tracker, policies=(), sink=sink)
