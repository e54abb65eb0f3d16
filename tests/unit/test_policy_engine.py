"""Unit tests for the feature gate: policy rules, checks, lifecycle and report."""

import pytest

from archgate.engines.gate import (
    CONDITION_EVALUATORS,
    Condition,
    FeatureGatePolicyEngine,
    Policy,
    PolicyAction,
    Rule,
    load_policies,
)
from archgate.engines.layers import LayerRegistry
from archgate.engines.stability import StabilityTracker
from archgate.kernel.errors import FeatureNotFoundError, InvalidStateTransitionError
from archgate.logging_config import LogLevel
from archgate.orchestration import FeatureState
from archgate.schemas.common import Severity


def single_rule_policy(condition, action, message="rule matched"):
    return Policy(
        key="test-policy",
        name="Test policy",
        rules=(Rule(condition=condition, action=action, message=message),),
    )


class TestPolicyRules:
    """Tests for rule evaluation inside can_add_feature."""

    def test_every_condition_has_an_evaluator(self):
        assert set(CONDITION_EVALUATORS) == set(Condition)

    def test_all_checks_pass(self, gate):
        """A service-level feature on a clean architecture is admitted once approved."""
        gate.register_feature("search", abstraction_level="service")

        decision = gate.can_add_feature("search", {"approved": True})

        assert decision.allowed is True
        assert decision.reason == "All conditions are satisfied"
        assert decision.violations == []
        assert decision.recommendations == []

    def test_block_on_low_coverage(self, sink):
        """A block rule on test-coverage-low denies the feature with the rule's message."""
        tracker = StabilityTracker(sink=sink)
        tracker.register_feature("legacy", test_coverage=0.5)
        policy = single_rule_policy(
            Condition.TEST_COVERAGE_LOW,
            PolicyAction.BLOCK,
            "Coverage must reach 80% before new features",
        )
        gate = FeatureGatePolicyEngine(LayerRegistry(sink=sink), tracker, [policy], sink=sink)
        gate.register_feature("reports")

        decision = gate.can_add_feature("reports")

        assert decision.allowed is False
        assert decision.details.policies.passed is False
        matching = [v for v in decision.violations if v.policy == "test-policy"]
        assert len(matching) == 1
        assert matching[0].message == "Coverage must reach 80% before new features"
        assert matching[0].severity == Severity.HIGH

    def test_require_approval(self, gate):
        """New features need context.approved under the gradual-release policy."""
        gate.register_feature("search", abstraction_level="service")

        denied = gate.can_add_feature("search")
        allowed = gate.can_add_feature("search", {"approved": True})

        assert denied.allowed is False
        assert [(v.type, v.policy) for v in denied.violations] == [
            ("new-feature", "gradual-release")
        ]
        assert denied.recommendations[0].type == "policy-violation"
        assert allowed.allowed is True

    def test_require_approval_only_for_proposed(self, gate):
        """Once approved, a feature is no longer new."""
        gate.register_feature("search", abstraction_level="service")
        gate.update_feature_state("search", FeatureState.APPROVED)

        assert gate.can_add_feature("search").allowed is True

    def test_breaking_change_needs_migration_plan(self, gate):
        gate.register_feature("v2-api", impact="major", abstraction_level="service")

        denied = gate.can_add_feature("v2-api", {"approved": True})
        allowed = gate.can_add_feature(
            "v2-api", {"approved": True, "migration_plan": "dual-write for one release"}
        )

        assert denied.allowed is False
        assert [v.type for v in denied.violations] == ["breaking-change"]
        assert allowed.allowed is True

    def test_warn_does_not_fail(self, sink, healthy_tracker):
        """A warn rule reports a medium violation and still admits."""
        policy = single_rule_policy(Condition.NEW_FEATURE, PolicyAction.WARN, "Heads up")
        gate = FeatureGatePolicyEngine(LayerRegistry(sink=sink), healthy_tracker, [policy], sink=sink)
        gate.register_feature("search")

        decision = gate.can_add_feature("search")

        assert decision.allowed is True
        assert decision.details.policies.passed is True
        assert [v.severity for v in decision.violations] == [Severity.MEDIUM]

    def test_load_policies(self):
        """Plain mappings validate into policies."""
        policies = load_policies([{
            "key": "strict",
            "name": "Strict",
            "rules": [
                {"condition": "breaking-change", "action": "block", "message": "No breaking changes"},
            ],
        }])

        assert policies[0].rules[0].condition == Condition.BREAKING_CHANGE
        assert policies[0].rules[0].action == PolicyAction.BLOCK

    def test_load_policies_rejects_unknown_condition(self):
        with pytest.raises(ValueError):
            load_policies([{
                "key": "bad",
                "name": "Bad",
                "rules": [{"condition": "full-moon", "action": "block", "message": "?"}],
            }])


class TestGateChecks:
    """Tests for the stability, abstraction and dependency checks."""

    def test_unstable_critical_blocks_high_priority(self, bare_gate):
        """High priority work waits while a critical feature is unstable."""
        bare_gate.register_feature("legacy-core", priority="critical")
        bare_gate.register_feature("new-thing", priority="high", abstraction_level="service")

        decision = bare_gate.can_add_feature("new-thing")

        assert decision.allowed is False
        assert decision.details.stability.passed is False
        assert decision.violations[0].context["features"] == ["legacy-core"]

    def test_unstable_critical_allows_medium_priority(self, bare_gate):
        bare_gate.register_feature("legacy-core", priority="critical")
        bare_gate.register_feature("tweak", priority="medium", abstraction_level="service")

        assert bare_gate.can_add_feature("tweak").details.stability.passed is True

    def test_low_coverage_fails_stability(self, default_registry, sink):
        tracker = StabilityTracker(sink=sink)
        tracker.register_feature("legacy", test_coverage=0.4)
        gate = FeatureGatePolicyEngine(default_registry, tracker, policies=(), sink=sink)
        gate.register_feature("reports", priority="low", abstraction_level="service")

        decision = gate.can_add_feature("reports")

        assert decision.details.stability.passed is False
        recommendation = decision.recommendations[0]
        assert recommendation.type == "stability"
        assert recommendation.current == "40.0%"
        assert recommendation.target == "80.0%"

    def test_distant_abstraction_level(self, healthy_tracker, sink):
        """A system-level feature next to a dom layer spans four tiers."""
        registry = LayerRegistry(sink=sink)
        registry.register_layer("dom")
        registry.register_layer("system")
        gate = FeatureGatePolicyEngine(registry, healthy_tracker, policies=(), sink=sink)
        gate.register_feature("global-theme", abstraction_level="system")

        decision = gate.can_add_feature("global-theme")

        assert decision.allowed is False
        assert decision.details.abstraction.details["max_distance"] == 4
        assert decision.violations[0].type == "mixed-abstraction-levels"
        assert decision.recommendations[0].type == "abstraction"

    def test_unknown_levels_not_compared(self, healthy_tracker, sink):
        registry = LayerRegistry(sink=sink)
        registry.register_layer("dom")
        registry.register_layer("plugins")
        gate = FeatureGatePolicyEngine(registry, healthy_tracker, policies=(), sink=sink)
        gate.register_feature("custom", abstraction_level="experimental")

        assert gate.can_add_feature("custom").details.abstraction.passed is True

    def test_unauthorized_layer_dependency_fails_abstraction(self, default_registry, healthy_tracker, sink):
        default_registry.register_dependency("dom", "system", "SystemInitializer")
        gate = FeatureGatePolicyEngine(default_registry, healthy_tracker, policies=(), sink=sink)
        gate.register_feature("search", abstraction_level="service")

        decision = gate.can_add_feature("search")

        assert decision.details.abstraction.passed is False
        assert decision.details.abstraction.violations[0].type == "unauthorized-dependencies"

    def test_unstable_dependency(self, bare_gate):
        """Depending on a feature still in testing fails the dependency check."""
        bare_gate.register_feature("A", abstraction_level="service")
        bare_gate.update_feature_state("A", FeatureState.TESTING)
        bare_gate.register_feature("B", abstraction_level="service", dependencies=["A"])

        decision = bare_gate.can_add_feature("B")

        assert decision.allowed is False
        violations = decision.details.dependencies.violations
        assert [(v.type, v.context["dependency"]) for v in violations] == [
            ("unstable-dependency", "A")
        ]

    def test_missing_dependency(self, bare_gate):
        bare_gate.register_feature("B", abstraction_level="service", dependencies=["ghost"])

        result = bare_gate.check_dependencies(bare_gate.get_feature("B"))

        assert result.passed is False
        assert result.violations[0].type == "missing-dependency"

    def test_stable_dependency(self, bare_gate):
        bare_gate.register_feature("A", abstraction_level="service")
        bare_gate.update_feature_state("A", "stable")
        bare_gate.register_feature("B", abstraction_level="service", dependencies=["A"])

        assert bare_gate.can_add_feature("B").allowed is True

    def test_reason_lists_failing_categories(self, bare_gate):
        bare_gate.register_feature("legacy-core", priority="critical")
        bare_gate.register_feature(
            "new-thing", priority="high", abstraction_level="service", dependencies=["ghost"],
        )

        decision = bare_gate.can_add_feature("new-thing")

        assert decision.reason == "Conditions not satisfied: stability, dependencies"
        assert [r.type for r in decision.recommendations] == ["stability", "dependencies"]


class TestDecisionEnvelope:
    """Tests for unregistered features and decision metadata."""

    def test_unregistered_feature(self, gate):
        decision = gate.can_add_feature("ghost")

        assert decision.allowed is False
        assert decision.reason == "Feature is not registered"
        assert decision.details is None
        assert len(decision.recommendations) == 1

    def test_decision_has_evaluation_id(self, gate, sink):
        gate.register_feature("search", abstraction_level="service")

        first = gate.can_add_feature("search")
        second = gate.can_add_feature("search")

        assert first.evaluation_id and second.evaluation_id
        assert first.evaluation_id != second.evaluation_id
        assert "Gate decision: search" in sink.messages(LogLevel.INFO)


class TestFeatureLifecycle:
    """Tests for registration, state updates and gates."""

    def test_register_starts_proposed(self, gate):
        feature = gate.register_feature(
            "search", test_coverage=1.0, documented=True, months_in_use=6, bug_rate=0.0,
        )

        assert feature.state == FeatureState.PROPOSED
        assert feature.stability_score == pytest.approx(1.0)
        assert gate.get_feature("search") is feature

    def test_update_unknown_feature(self, gate):
        with pytest.raises(FeatureNotFoundError):
            gate.update_feature_state("ghost", FeatureState.APPROVED)

    def test_lifecycle_move(self, gate, sink):
        gate.register_feature("search")

        feature = gate.update_feature_state("search", "approved", {"by": "architecture board"})

        assert feature.state == FeatureState.APPROVED
        assert feature.updated_at is not None
        assert feature.update_context == {"by": "architecture board"}
        assert sink.messages(LogLevel.WARN) == []

    def test_administrative_move_is_logged(self, gate, sink):
        """Out-of-table moves are allowed but warned about."""
        gate.register_feature("search")

        gate.update_feature_state("search", FeatureState.STABLE)

        assert gate.get_feature("search").state == FeatureState.STABLE
        assert "Administrative state change: search" in sink.messages(LogLevel.WARN)

    def test_enforced_transitions(self, default_registry, healthy_tracker, sink):
        gate = FeatureGatePolicyEngine(
            default_registry, healthy_tracker, enforce_transitions=True, sink=sink,
        )
        gate.register_feature("search")

        with pytest.raises(InvalidStateTransitionError):
            gate.update_feature_state("search", FeatureState.STABLE)
        assert gate.get_feature("search").state == FeatureState.PROPOSED

    def test_feature_gates(self, gate):
        gate.set_feature_gate("search", enabled=True, policies=["gradual-release"])
        gate.set_feature_gate("beta", enabled=False)

        assert gate.is_gate_enabled("search") is True
        assert gate.is_gate_enabled("beta") is False
        assert gate.is_gate_enabled("ghost") is False


class TestFeatureGateReport:
    """Tests for generate_feature_gate_report."""

    def test_empty_report(self, bare_gate):
        report = bare_gate.generate_feature_gate_report()

        assert report.features.total == 0
        assert report.quality.stability_score == 0.0
        assert report.quality.consistency_score == 0.0
        assert report.quality.gate_effectiveness == 0.0
        assert report.policies.total == 0
        assert [r.type for r in report.recommendations] == ["stability", "consistency", "gates"]

    def test_report_counts(self, gate):
        gate.register_feature(
            "search", abstraction_level="service", priority="high",
            test_coverage=1.0, documented=True, months_in_use=6, bug_rate=0.0,
        )
        gate.register_feature(
            "export", abstraction_level="service", impact="major",
            test_coverage=1.0, documented=True, months_in_use=6, bug_rate=0.0,
        )
        gate.update_feature_state("search", "approved")
        gate.set_feature_gate("search", enabled=True)

        report = gate.generate_feature_gate_report()

        assert report.features.by_state == {"approved": 1, "proposed": 1}
        assert report.features.by_priority == {"high": 1, "medium": 1}
        assert report.features.by_impact == {"minor": 1, "major": 1}
        assert report.gates.total == 1
        assert report.gates.enabled == 1
        assert report.policies.total == 3
        assert report.quality.consistency_score == 1.0
        assert report.quality.stability_score == pytest.approx(1.0)
        assert report.recommendations == []

    def test_consistency_drops_with_spread(self, bare_gate):
        for level in ("dom", "component", "service", "application", "system"):
            bare_gate.register_feature(f"f-{level}", abstraction_level=level)

        report = bare_gate.generate_feature_gate_report()

        assert report.quality.consistency_score == 0.0


class TestApprovalContext:
    """Tests for what counts as approval."""

    @pytest.mark.parametrize("value", ["yes", "true", 1, "on"])
    def test_truthy_values_do_not_approve(self, gate, value):
        """Only a real True approves a new feature."""
        gate.register_feature("search", abstraction_level="service")

        decision = gate.can_add_feature("search", {"approved": value})

        assert decision.allowed is False
        assert decision.details.policies.passed is False

    def test_true_approves(self, gate):
        gate.register_feature("search", abstraction_level="service")
        assert gate.can_add_feature("search", {"approved": True}).allowed is True


class TestPolicyKeys:
    """Tests for duplicate policy keys."""

    def test_engine_rejects_duplicate_keys(self, default_registry, healthy_tracker):
        first = single_rule_policy(Condition.NEW_FEATURE, PolicyAction.WARN, "first")
        second = single_rule_policy(Condition.BREAKING_CHANGE, PolicyAction.BLOCK, "second")

        with pytest.raises(ValueError):
            FeatureGatePolicyEngine(default_registry, healthy_tracker, [first, second])

    def test_load_policies_rejects_duplicate_keys(self):
        item = {
            "key": "strict",
            "name": "Strict",
            "rules": [{"condition": "new-feature", "action": "warn", "message": "new"}],
        }
        with pytest.raises(ValueError):
            load_policies([item, item])
