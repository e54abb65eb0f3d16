"""
Feature Gate Policy Engine - Decides whether a feature may be admitted.

A decision is the AND of four checks:
1. Policy rules (block / warn / require-approval / require-migration-plan)
2. Stability (coverage, critical feature stability for new functionality)
3. Abstraction (tier distance to registered layers, unauthorized dependencies)
4. Dependencies (every dependency registered and stable)

The layer registry and the stability tracker are read only through their
reports, snapshotted once per decision.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from archgate.engines.gate.conditions import (
    COVERAGE_THRESHOLD,
    MAX_ABSTRACTION_DISTANCE,
    GovernanceSignals,
    evaluate_condition,
    max_abstraction_distance,
)
from archgate.engines.gate.models import (
    Feature,
    FeatureCounts,
    FeatureGate,
    FeatureGateReport,
    FeatureImpact,
    GateContext,
    GateCounts,
    GateDecision,
    GateDetails,
    GateQuality,
    PolicyCounts,
)
from archgate.engines.gate.policies import (
    DEFAULT_POLICIES,
    Policy,
    PolicyAction,
    index_policies,
)
from archgate.engines.layers.layer_registry import LayerRegistry
from archgate.engines.layers.tiers import TIER_COUNT, AbstractionLevel
from archgate.engines.stability.scoring import FeaturePriority, calculate_stability_score
from archgate.engines.stability.stability_tracker import StabilityTracker
from archgate.kernel.errors import FeatureNotFoundError, InvalidStateTransitionError
from archgate.logging_config import LogLevel, LogSink, default_sink, evaluation_scope
from archgate.orchestration.state_machine import FeatureState, can_transition
from archgate.schemas.common import (
    CheckResult,
    GovernanceViolation,
    Recommendation,
    Severity,
    as_percent,
)


# Severity of a matching rule per action
_ACTION_SEVERITY: Dict[PolicyAction, Severity] = {
    PolicyAction.BLOCK: Severity.HIGH,
    PolicyAction.WARN: Severity.MEDIUM,
    PolicyAction.REQUIRE_APPROVAL: Severity.HIGH,
    PolicyAction.REQUIRE_MIGRATION_PLAN: Severity.HIGH,
}


def _count_by(values: Iterable[str]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for value in values:
        counts[value] = counts.get(value, 0) + 1
    return counts


class FeatureGatePolicyEngine:
    """
    Feature registry with lifecycle state plus policy-driven admission.

    Report quality:
    - Stability: mean feature stability score
    - Consistency: 1 - (distinct abstraction levels - 1) / (tiers - 1)
    - Gate effectiveness: enabled gates / all gates
    """

    CRITICAL_STABILITY_THRESHOLD = 0.8

    # Priorities that are held back while critical features are unstable
    STABILITY_GATED_PRIORITIES = frozenset({FeaturePriority.HIGH})

    # Report recommendation thresholds
    REPORT_STABILITY_TARGET = 0.8
    REPORT_CONSISTENCY_TARGET = 0.7
    REPORT_GATE_TARGET = 0.8

    def __init__(
        self,
        layer_registry: LayerRegistry,
        stability_tracker: StabilityTracker,
        policies: Optional[Iterable[Policy]] = None,
        *,
        enforce_transitions: bool = False,
        sink: Optional[LogSink] = None,
    ):
        self.layer_registry = layer_registry
        self.stability_tracker = stability_tracker
        self.enforce_transitions = enforce_transitions
        self.sink: LogSink = sink or default_sink(__name__)
        self._policies: Dict[str, Policy] = index_policies(
            DEFAULT_POLICIES if policies is None else policies
        )
        self._features: Dict[str, Feature] = {}
        self._gates: Dict[str, FeatureGate] = {}

    @property
    def policies(self) -> List[Policy]:
        return list(self._policies.values())

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register_feature(
        self,
        name: str,
        *,
        priority: Union[FeaturePriority, str] = FeaturePriority.MEDIUM,
        impact: Union[FeatureImpact, str] = FeatureImpact.MINOR,
        abstraction_level: str = AbstractionLevel.COMPONENT.value,
        dependencies: Iterable[str] = (),
        requirements: Optional[Mapping[str, Any]] = None,
        test_coverage: Optional[float] = None,
        documented: bool = False,
        months_in_use: Optional[float] = None,
        bug_rate: Optional[float] = None,
    ) -> Feature:
        """Register a feature in state PROPOSED."""
        feature = Feature(
            name=name,
            priority=FeaturePriority(priority),
            impact=FeatureImpact(impact),
            abstraction_level=str(getattr(abstraction_level, "value", abstraction_level)),
            dependencies=list(dependencies),
            requirements=dict(requirements or {}),
            test_coverage=test_coverage,
            documented=documented,
            months_in_use=months_in_use,
            bug_rate=bug_rate,
            stability_score=calculate_stability_score(
                test_coverage=test_coverage,
                documented=documented,
                months_in_use=months_in_use,
                bug_rate=bug_rate,
            ),
            registered_at=datetime.now(timezone.utc),
        )
        self._features[name] = feature

        self.sink.log(LogLevel.INFO, f"Feature registered: {name}", {
            "priority": feature.priority.value,
            "impact": feature.impact.value,
            "abstraction_level": feature.abstraction_level,
        })
        return feature

    def get_feature(self, name: str) -> Optional[Feature]:
        return self._features.get(name)

    def update_feature_state(
        self,
        name: str,
        new_state: Union[FeatureState, str],
        context: Optional[Mapping[str, Any]] = None,
    ) -> Feature:
        """
        Move a feature to a new lifecycle state.

        Any state is accepted administratively unless enforce_transitions is set;
        moves outside the lifecycle table are logged at warn level.

        Raises:
            FeatureNotFoundError: feature is not registered
            InvalidStateTransitionError: enforce_transitions and the move is not in the table
        """
        feature = self._features.get(name)
        if feature is None:
            raise FeatureNotFoundError(f"Feature '{name}' does not exist")

        target = FeatureState(new_state)
        old_state = feature.state
        in_lifecycle = target == old_state or can_transition(old_state, target)

        if not in_lifecycle:
            if self.enforce_transitions:
                raise InvalidStateTransitionError(
                    f"Invalid transition: {old_state.value} -> {target.value}"
                )
            self.sink.log(LogLevel.WARN, f"Administrative state change: {name}", {
                "from": old_state.value,
                "to": target.value,
            })

        feature.state = target
        feature.updated_at = datetime.now(timezone.utc)
        feature.update_context = dict(context or {})

        self.sink.log(LogLevel.INFO, f"Feature state updated: {name}", {
            "from": old_state.value,
            "to": target.value,
            "context": feature.update_context,
        })
        return feature

    def set_feature_gate(
        self,
        feature_name: str,
        enabled: bool = False,
        conditions: Iterable[str] = (),
        policies: Iterable[str] = (),
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> FeatureGate:
        gate = FeatureGate(
            feature_name=feature_name,
            enabled=enabled,
            conditions=list(conditions),
            policies=list(policies),
            overrides=dict(overrides or {}),
            set_at=datetime.now(timezone.utc),
        )
        self._gates[feature_name] = gate
        self.sink.log(LogLevel.DEBUG, f"Feature gate set: {feature_name}", {
            "enabled": enabled,
            "policies": gate.policies,
        })
        return gate

    def is_gate_enabled(self, feature_name: str) -> bool:
        gate = self._gates.get(feature_name)
        return bool(gate and gate.enabled)

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _unstable_critical_features(self) -> List[str]:
        return [
            f.name for f in self._features.values()
            if f.priority == FeaturePriority.CRITICAL
            and f.stability_score < self.CRITICAL_STABILITY_THRESHOLD
        ]

    def collect_signals(self) -> GovernanceSignals:
        """Snapshot the layer and stability reports for one decision."""
        return GovernanceSignals.from_reports(
            self.stability_tracker.generate_design_quality_report(),
            self.layer_registry.generate_report(),
            extra_critical_unstable=self._unstable_critical_features(),
        )

    def check_policies(
        self,
        feature: Feature,
        context: GateContext,
        signals: GovernanceSignals,
    ) -> CheckResult:
        violations: List[GovernanceViolation] = []
        blocking = 0

        for policy in self._policies.values():
            for rule in policy.rules:
                result = evaluate_condition(rule.condition, feature, context, signals)
                if not result.met:
                    continue

                if rule.action == PolicyAction.REQUIRE_APPROVAL and context.approved:
                    continue
                if rule.action == PolicyAction.REQUIRE_MIGRATION_PLAN and context.migration_plan:
                    continue
                if rule.action != PolicyAction.WARN:
                    blocking += 1

                violations.append(GovernanceViolation(
                    type=rule.condition.value,
                    message=rule.message,
                    severity=_ACTION_SEVERITY[rule.action],
                    policy=policy.key,
                    context={"action": rule.action.value, "details": result.details},
                ))

        return CheckResult(
            passed=blocking == 0,
            violations=violations,
            details={"policy_count": len(self._policies), "blocking": blocking},
        )

    def check_stability_requirements(
        self,
        feature: Feature,
        signals: GovernanceSignals,
    ) -> CheckResult:
        violations: List[GovernanceViolation] = []

        if feature.priority in self.STABILITY_GATED_PRIORITIES and signals.critical_unstable:
            violations.append(GovernanceViolation(
                type="critical-features-unstable",
                message="New functionality is blocked while critical features are unstable",
                severity=Severity.HIGH,
                context={"features": signals.critical_unstable},
            ))

        if signals.test_coverage < COVERAGE_THRESHOLD:
            violations.append(GovernanceViolation(
                type="test-coverage-low",
                message=f"Test coverage is too low ({as_percent(signals.test_coverage)})",
                severity=Severity.HIGH,
                context={"test_coverage": signals.test_coverage},
            ))

        return CheckResult(
            passed=not violations,
            violations=violations,
            details={"test_coverage": signals.test_coverage},
        )

    def check_abstraction_consistency(
        self,
        feature: Feature,
        signals: GovernanceSignals,
    ) -> CheckResult:
        violations: List[GovernanceViolation] = []
        distance = max_abstraction_distance(feature, signals)

        if distance > MAX_ABSTRACTION_DISTANCE:
            violations.append(GovernanceViolation(
                type="mixed-abstraction-levels",
                message=(
                    f"Feature level '{feature.abstraction_level}' is {distance} tiers "
                    "away from a registered layer"
                ),
                severity=Severity.HIGH,
                context={"distance": distance},
            ))

        if signals.unauthorized_dependencies > 0:
            violations.append(GovernanceViolation(
                type="unauthorized-dependencies",
                message="Unauthorized layer dependencies are registered",
                severity=Severity.HIGH,
                context={"count": signals.unauthorized_dependencies},
            ))

        return CheckResult(
            passed=not violations,
            violations=violations,
            details={
                "max_distance": distance,
                "unauthorized_dependencies": signals.unauthorized_dependencies,
            },
        )

    def check_dependencies(self, feature: Feature) -> CheckResult:
        violations: List[GovernanceViolation] = []

        for dep_name in feature.dependencies:
            dependency = self._features.get(dep_name)
            if dependency is None:
                violations.append(GovernanceViolation(
                    type="missing-dependency",
                    message=f"Dependency '{dep_name}' does not exist",
                    severity=Severity.HIGH,
                    context={"dependency": dep_name},
                ))
            elif dependency.state != FeatureState.STABLE:
                violations.append(GovernanceViolation(
                    type="unstable-dependency",
                    message=f"Dependency '{dep_name}' is not stable (state: {dependency.state.value})",
                    severity=Severity.HIGH,
                    context={"dependency": dep_name, "state": dependency.state.value},
                ))

        return CheckResult(passed=not violations, violations=violations)

    # ------------------------------------------------------------------
    # Decision
    # ------------------------------------------------------------------

    def can_add_feature(
        self,
        name: str,
        context: Optional[Union[GateContext, Mapping[str, Any]]] = None,
    ) -> GateDecision:
        """Evaluate all four checks for a registered feature."""
        if context is None:
            context = GateContext()
        elif not isinstance(context, GateContext):
            context = GateContext.model_validate(context)

        with evaluation_scope() as evaluation_id:
            feature = self._features.get(name)
            if feature is None:
                self.sink.log(LogLevel.INFO, f"Gate decision: {name} is not registered", {
                    "feature": name,
                })
                return GateDecision(
                    feature=name,
                    allowed=False,
                    reason="Feature is not registered",
                    recommendations=[Recommendation(
                        type="registration",
                        priority="high",
                        action="Register the feature before requesting admission",
                    )],
                    evaluation_id=evaluation_id,
                    decided_at=datetime.now(timezone.utc),
                )

            signals = self.collect_signals()
            details = GateDetails(
                policies=self.check_policies(feature, context, signals),
                stability=self.check_stability_requirements(feature, signals),
                abstraction=self.check_abstraction_consistency(feature, signals),
                dependencies=self.check_dependencies(feature),
            )
            failing = [
                category
                for category, result in (
                    ("policies", details.policies),
                    ("stability", details.stability),
                    ("abstraction", details.abstraction),
                    ("dependencies", details.dependencies),
                )
                if not result.passed
            ]
            allowed = not failing

            decision = GateDecision(
                feature=name,
                allowed=allowed,
                reason=(
                    "All conditions are satisfied"
                    if allowed
                    else f"Conditions not satisfied: {', '.join(failing)}"
                ),
                details=details,
                violations=[
                    v
                    for result in (
                        details.policies,
                        details.stability,
                        details.abstraction,
                        details.dependencies,
                    )
                    for v in result.violations
                ],
                recommendations=self._decision_recommendations(details),
                evaluation_id=evaluation_id,
                decided_at=datetime.now(timezone.utc),
            )

            self.sink.log(LogLevel.INFO, f"Gate decision: {name}", {
                "allowed": allowed,
                "failing": failing,
                "violations": len(decision.violations),
            })
            return decision

    def _decision_recommendations(self, details: GateDetails) -> List[Recommendation]:
        recommendations: List[Recommendation] = []

        if not details.policies.passed:
            blocking = [
                v for v in details.policies.violations
                if v.severity != Severity.MEDIUM
            ]
            recommendations.append(Recommendation(
                type="policy-violation",
                priority="high",
                action="Resolve the blocking policy rules",
                current=f"{len(blocking)} blocking rule(s)",
                target="0 blocking rules",
                details=[v.message for v in blocking],
            ))

        if not details.stability.passed:
            recommendations.append(Recommendation(
                type="stability",
                priority="high",
                action="Stabilise existing features first",
                current=as_percent(details.stability.details["test_coverage"]),
                target=as_percent(COVERAGE_THRESHOLD),
                details=[v.message for v in details.stability.violations],
            ))

        if not details.abstraction.passed:
            recommendations.append(Recommendation(
                type="abstraction",
                priority="medium",
                action="Keep the feature close to the tiers it integrates with",
                current=f"max tier distance {details.abstraction.details['max_distance']}",
                target=f"max tier distance {MAX_ABSTRACTION_DISTANCE}, 0 unauthorized dependencies",
                details=[v.message for v in details.abstraction.violations],
            ))

        if not details.dependencies.passed:
            recommendations.append(Recommendation(
                type="dependencies",
                priority="high",
                action="Resolve feature dependencies",
                current=f"{len(details.dependencies.violations)} unresolved",
                target="all dependencies stable",
                details=[v.message for v in details.dependencies.violations],
            ))

        return recommendations

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    @staticmethod
    def calculate_overall_stability_score(features: List[Feature]) -> float:
        if not features:
            return 0.0
        return sum(f.stability_score for f in features) / len(features)

    @staticmethod
    def calculate_consistency_score(features: List[Feature]) -> float:
        if not features:
            return 0.0
        distinct = len({f.abstraction_level for f in features})
        return max(0.0, 1 - (distinct - 1) / (TIER_COUNT - 1))

    @staticmethod
    def calculate_gate_effectiveness(gates: List[FeatureGate]) -> float:
        if not gates:
            return 0.0
        return sum(1 for g in gates if g.enabled) / len(gates)

    def _report_recommendations(self, quality: GateQuality) -> List[Recommendation]:
        recommendations: List[Recommendation] = []

        if quality.stability_score < self.REPORT_STABILITY_TARGET:
            recommendations.append(Recommendation(
                type="stability",
                priority="high",
                action="Raise the overall feature stability score",
                current=as_percent(quality.stability_score),
                target=as_percent(self.REPORT_STABILITY_TARGET),
            ))

        if quality.consistency_score < self.REPORT_CONSISTENCY_TARGET:
            recommendations.append(Recommendation(
                type="consistency",
                priority="medium",
                action="Converge features on fewer abstraction levels",
                current=as_percent(quality.consistency_score),
                target=as_percent(self.REPORT_CONSISTENCY_TARGET),
            ))

        if quality.gate_effectiveness < self.REPORT_GATE_TARGET:
            recommendations.append(Recommendation(
                type="gates",
                priority="medium",
                action="Enable more feature gates",
                current=as_percent(quality.gate_effectiveness),
                target=as_percent(self.REPORT_GATE_TARGET),
            ))

        return recommendations

    def generate_feature_gate_report(self) -> FeatureGateReport:
        features = list(self._features.values())
        gates = list(self._gates.values())
        enabled = sum(1 for g in gates if g.enabled)

        quality = GateQuality(
            stability_score=self.calculate_overall_stability_score(features),
            consistency_score=self.calculate_consistency_score(features),
            gate_effectiveness=self.calculate_gate_effectiveness(gates),
        )
        return FeatureGateReport(
            timestamp=datetime.now(timezone.utc),
            features=FeatureCounts(
                total=len(features),
                by_state=_count_by(f.state.value for f in features),
                by_priority=_count_by(f.priority.value for f in features),
                by_impact=_count_by(f.impact.value for f in features),
            ),
            gates=GateCounts(total=len(gates), enabled=enabled, disabled=len(gates) - enabled),
            policies=PolicyCounts(total=len(self._policies), active=len(self._policies)),
            quality=quality,
            recommendations=self._report_recommendations(quality),
        )
