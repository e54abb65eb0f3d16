"""
Condition evaluation for policy rules.

Each Condition has exactly one evaluator in CONDITION_EVALUATORS. Evaluators
are pure: they read the feature, the caller's context and a GovernanceSignals
snapshot taken from the layer and stability reports.
"""

from typing import Callable, Dict, Iterable, List

from pydantic import BaseModel

from archgate.engines.gate.models import Feature, FeatureImpact, GateContext
from archgate.engines.gate.policies import Condition
from archgate.engines.layers.layer_registry import LayerReport, ViolationType
from archgate.engines.layers.tiers import tier_distance
from archgate.engines.stability.stability_tracker import DesignQualityReport
from archgate.orchestration.state_machine import FeatureState
from archgate.schemas.common import as_percent


# Thresholds used by the conditions
COVERAGE_THRESHOLD = 0.8
DEBT_LEVEL_LIMIT = 0.7
MAX_ABSTRACTION_DISTANCE = 2

BREAKING_IMPACTS = frozenset({FeatureImpact.MAJOR, FeatureImpact.CRITICAL})


class GovernanceSignals(BaseModel):
    """Everything the gate reads from the other engines, taken once per decision."""

    test_coverage: float
    technical_debt_level: float
    critical_unstable: List[str]
    layer_levels: List[str]
    unauthorized_dependencies: int

    @classmethod
    def from_reports(
        cls,
        quality_report: DesignQualityReport,
        layer_report: LayerReport,
        extra_critical_unstable: Iterable[str] = (),
    ) -> "GovernanceSignals":
        critical = list(dict.fromkeys(
            list(quality_report.features.critical_unstable) + list(extra_critical_unstable)
        ))
        return cls(
            test_coverage=quality_report.quality.test_coverage,
            technical_debt_level=quality_report.quality.technical_debt_level,
            critical_unstable=critical,
            layer_levels=[
                layer.level.value
                for layer in layer_report.layers.values()
                if layer.level is not None
            ],
            unauthorized_dependencies=layer_report.violations.by_type.get(
                ViolationType.UNAUTHORIZED_DEPENDENCY.value, 0
            ),
        )


class ConditionResult(BaseModel):
    met: bool
    details: str


def max_abstraction_distance(feature: Feature, signals: GovernanceSignals) -> int:
    """Largest tier distance between the feature and any registered layer (-1 if none comparable)."""
    distances = [tier_distance(feature.abstraction_level, level) for level in signals.layer_levels]
    return max(distances, default=-1)


def _critical_features_unstable(feature: Feature, context: GateContext, signals: GovernanceSignals) -> ConditionResult:
    names = signals.critical_unstable
    return ConditionResult(
        met=bool(names),
        details=f"Unstable critical features: {', '.join(names) or 'none'}",
    )


def _test_coverage_low(feature: Feature, context: GateContext, signals: GovernanceSignals) -> ConditionResult:
    return ConditionResult(
        met=signals.test_coverage < COVERAGE_THRESHOLD,
        details=f"Test coverage: {as_percent(signals.test_coverage)}",
    )


def _technical_debt_high(feature: Feature, context: GateContext, signals: GovernanceSignals) -> ConditionResult:
    return ConditionResult(
        met=signals.technical_debt_level > DEBT_LEVEL_LIMIT,
        details=f"Technical debt level: {as_percent(signals.technical_debt_level)}",
    )


def _mixed_abstraction_levels(feature: Feature, context: GateContext, signals: GovernanceSignals) -> ConditionResult:
    distance = max_abstraction_distance(feature, signals)
    return ConditionResult(
        met=distance > MAX_ABSTRACTION_DISTANCE,
        details=f"Max tier distance from '{feature.abstraction_level}': {distance}",
    )


def _unauthorized_layer_dependency(feature: Feature, context: GateContext, signals: GovernanceSignals) -> ConditionResult:
    return ConditionResult(
        met=signals.unauthorized_dependencies > 0,
        details=f"Unauthorized layer dependencies: {signals.unauthorized_dependencies}",
    )


def _new_feature(feature: Feature, context: GateContext, signals: GovernanceSignals) -> ConditionResult:
    return ConditionResult(
        met=feature.state == FeatureState.PROPOSED,
        details=f"Feature state: {feature.state.value}",
    )


def _breaking_change(feature: Feature, context: GateContext, signals: GovernanceSignals) -> ConditionResult:
    return ConditionResult(
        met=feature.impact in BREAKING_IMPACTS,
        details=f"Feature impact: {feature.impact.value}",
    )


Evaluator = Callable[[Feature, GateContext, GovernanceSignals], ConditionResult]

CONDITION_EVALUATORS: Dict[Condition, Evaluator] = {
    Condition.CRITICAL_FEATURES_UNSTABLE: _critical_features_unstable,
    Condition.TEST_COVERAGE_LOW: _test_coverage_low,
    Condition.TECHNICAL_DEBT_HIGH: _technical_debt_high,
    Condition.MIXED_ABSTRACTION_LEVELS: _mixed_abstraction_levels,
    Condition.UNAUTHORIZED_LAYER_DEPENDENCY: _unauthorized_layer_dependency,
    Condition.NEW_FEATURE: _new_feature,
    Condition.BREAKING_CHANGE: _breaking_change,
}


def evaluate_condition(
    condition: Condition,
    feature: Feature,
    context: GateContext,
    signals: GovernanceSignals,
) -> ConditionResult:
    return CONDITION_EVALUATORS[condition](feature, context, signals)
