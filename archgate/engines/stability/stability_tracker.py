"""
Stability Tracker - Feature stability scores and the technical-debt ledger.

Decides whether the codebase is stable enough to take on a new feature and
aggregates system-wide design quality metrics.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel

from archgate.engines.layers.tiers import HIGH_TIERS, LOW_TIERS, AbstractionLevel
from archgate.engines.stability.principles import DEFAULT_PRINCIPLES, DesignPrinciple
from archgate.engines.stability.scoring import (
    Difficulty,
    FeaturePriority,
    ImpactScope,
    Urgency,
    calculate_debt_score,
    calculate_stability_score,
    debt_severity,
)
from archgate.kernel.ledger import AppendOnlyLog
from archgate.logging_config import LogLevel, LogSink, default_sink
from archgate.schemas.common import (
    CheckResult,
    GovernanceViolation,
    Recommendation,
    Severity,
    as_percent,
    severity_counts,
)


class FeatureProfile(BaseModel):
    """Stability inputs and the derived score for one feature."""

    name: str
    priority: FeaturePriority = FeaturePriority.MEDIUM
    abstraction_level: str = AbstractionLevel.COMPONENT.value
    dependencies: List[str] = []
    test_coverage: Optional[float] = None
    documented: bool = False
    months_in_use: Optional[float] = None
    bug_rate: Optional[float] = None
    stability_score: float = 0.0
    registered_at: datetime


class TechnicalDebtEntry(BaseModel):
    """A recorded piece of technical debt. Entries are never removed."""

    id: int
    description: str
    impact_scope: Optional[ImpactScope] = None
    difficulty: Optional[Difficulty] = None
    urgency: Optional[Urgency] = None
    score: int
    severity: Severity
    resolved: bool = False
    recorded_at: datetime


class FeatureRequirements(BaseModel):
    """Requirements of a proposed feature."""

    levels: List[str] = []


class FeatureAdmission(BaseModel):
    """Result of StabilityTracker.can_add_feature."""

    feature: str
    can_add: bool
    reasons: List[str]
    recommendations: List[Recommendation]


class FeatureSummary(BaseModel):
    total: int
    critical: int
    average_stability: float
    critical_unstable: List[str]


class QualityMetrics(BaseModel):
    test_coverage: float
    technical_debt_level: float
    stability_score: float


class DebtSummary(BaseModel):
    total: int
    unresolved: int
    by_severity: Dict[str, int]


class DesignQualityReport(BaseModel):
    """System-wide design quality snapshot."""

    timestamp: datetime
    principles: Dict[str, DesignPrinciple]
    features: FeatureSummary
    quality: QualityMetrics
    technical_debt: DebtSummary
    recommendations: List[Recommendation]


class StabilityTracker:
    """
    Tracks feature stability and technical debt.

    Admission requires all of:
    - Every CRITICAL feature has stability >= 0.8
    - Mean test coverage across features >= 0.9
    - Debt level <= 0.7 and no unresolved critical debt
    - Requirements do not mix high (system/application) and low (component/dom) tiers

    Overall stability = 0.4 * coverage + 0.4 * (1 - debt level) + 0.2 * mean feature stability
    """

    # Admission thresholds
    CRITICAL_STABILITY_THRESHOLD = 0.8
    COVERAGE_THRESHOLD = 0.9
    DEBT_LEVEL_LIMIT = 0.7

    # Debt level weights
    CRITICAL_DEBT_WEIGHT = 0.5
    HIGH_DEBT_WEIGHT = 0.3
    OTHER_DEBT_WEIGHT = 0.1

    # Overall stability weights
    OVERALL_COVERAGE_WEIGHT = 0.4
    OVERALL_DEBT_WEIGHT = 0.4
    OVERALL_FEATURE_WEIGHT = 0.2

    # Report recommendation thresholds
    REPORT_DEBT_LIMIT = 0.5
    REPORT_STABILITY_TARGET = 0.8

    def __init__(
        self,
        sink: Optional[LogSink] = None,
        principles: Optional[Mapping[str, DesignPrinciple]] = None,
    ):
        self.sink: LogSink = sink or default_sink(__name__)
        self.principles: Dict[str, DesignPrinciple] = {
            str(getattr(k, "value", k)): v
            for k, v in (principles if principles is not None else DEFAULT_PRINCIPLES).items()
        }
        self._features: Dict[str, FeatureProfile] = {}
        self._debt: AppendOnlyLog[TechnicalDebtEntry] = AppendOnlyLog(indexes={
            "severity": lambda d: d.severity.value,
        })

    # ------------------------------------------------------------------
    # Features
    # ------------------------------------------------------------------

    def register_feature(
        self,
        name: str,
        *,
        priority: Union[FeaturePriority, str] = FeaturePriority.MEDIUM,
        abstraction_level: str = AbstractionLevel.COMPONENT.value,
        dependencies: Iterable[str] = (),
        test_coverage: Optional[float] = None,
        documented: bool = False,
        months_in_use: Optional[float] = None,
        bug_rate: Optional[float] = None,
    ) -> FeatureProfile:
        """Store a feature's stability inputs and compute its score."""
        feature = FeatureProfile(
            name=name,
            priority=FeaturePriority(priority),
            abstraction_level=str(getattr(abstraction_level, "value", abstraction_level)),
            dependencies=list(dependencies),
            test_coverage=test_coverage,
            documented=documented,
            months_in_use=months_in_use,
            bug_rate=bug_rate,
            registered_at=datetime.now(timezone.utc),
        )
        feature.stability_score = self._score(feature)
        self._features[name] = feature

        self.sink.log(LogLevel.INFO, f"Feature registered: {name}", {
            "priority": feature.priority.value,
            "stability_score": feature.stability_score,
        })
        return feature

    def update_feature_metrics(self, name: str, **inputs: Any) -> Optional[FeatureProfile]:
        """Change stability inputs of a registered feature and recompute its score."""
        feature = self._features.get(name)
        if feature is None:
            return None
        allowed = {"test_coverage", "documented", "months_in_use", "bug_rate"}
        unknown = set(inputs) - allowed
        if unknown:
            raise ValueError(f"Unknown stability inputs: {sorted(unknown)}")

        updated = feature.model_copy(update=inputs)
        updated.stability_score = self._score(updated)
        self._features[name] = updated
        return updated

    @staticmethod
    def _score(feature: FeatureProfile) -> float:
        return calculate_stability_score(
            test_coverage=feature.test_coverage,
            documented=feature.documented,
            months_in_use=feature.months_in_use,
            bug_rate=feature.bug_rate,
        )

    def get_feature(self, name: str) -> Optional[FeatureProfile]:
        return self._features.get(name)

    def get_critical_features(self) -> List[FeatureProfile]:
        return [f for f in self._features.values() if f.priority == FeaturePriority.CRITICAL]

    def get_unstable_critical_features(self) -> List[FeatureProfile]:
        return [
            f for f in self.get_critical_features()
            if f.stability_score < self.CRITICAL_STABILITY_THRESHOLD
        ]

    def calculate_overall_test_coverage(self) -> float:
        """Mean test coverage across features (missing coverage counts as 0)."""
        if not self._features:
            return 0.0
        return sum(f.test_coverage or 0.0 for f in self._features.values()) / len(self._features)

    def calculate_average_stability(self) -> float:
        if not self._features:
            return 0.0
        return sum(f.stability_score for f in self._features.values()) / len(self._features)

    # ------------------------------------------------------------------
    # Technical debt
    # ------------------------------------------------------------------

    def record_technical_debt(
        self,
        description: str,
        impact_scope: Optional[Union[ImpactScope, str]] = None,
        difficulty: Optional[Union[Difficulty, str]] = None,
        urgency: Optional[Union[Urgency, str]] = None,
    ) -> TechnicalDebtEntry:
        """Append a debt entry; its severity is derived from scope + difficulty + urgency."""
        scope = ImpactScope(impact_scope) if impact_scope else None
        diff = Difficulty(difficulty) if difficulty else None
        urg = Urgency(urgency) if urgency else None
        score = calculate_debt_score(scope, diff, urg)

        entry = TechnicalDebtEntry(
            id=len(self._debt),
            description=description,
            impact_scope=scope,
            difficulty=diff,
            urgency=urg,
            score=score,
            severity=debt_severity(score),
            recorded_at=datetime.now(timezone.utc),
        )
        self._debt.append(entry)

        self.sink.log(LogLevel.WARN, "Technical debt recorded", {
            "description": description,
            "severity": entry.severity.value,
            "score": score,
        })
        return entry

    def resolve_technical_debt(self, debt_id: int) -> TechnicalDebtEntry:
        """Mark a debt entry resolved. The entry stays in the ledger."""
        if not 0 <= debt_id < len(self._debt):
            raise LookupError(f"Unknown technical debt entry: {debt_id}")
        entry = self._debt.get(debt_id)
        entry.resolved = True
        self.sink.log(LogLevel.INFO, "Technical debt resolved", {
            "id": debt_id,
            "description": entry.description,
        })
        return entry

    @property
    def technical_debt(self) -> List[TechnicalDebtEntry]:
        return list(self._debt)

    def _unresolved_debt(self) -> List[TechnicalDebtEntry]:
        return [d for d in self._debt if not d.resolved]

    def get_technical_debt_level(self) -> float:
        """Weighted share of severe debt among unresolved entries (0-1)."""
        open_debt = self._unresolved_debt()
        if not open_debt:
            return 0.0
        total = len(open_debt)
        critical = sum(1 for d in open_debt if d.severity == Severity.CRITICAL)
        high = sum(1 for d in open_debt if d.severity == Severity.HIGH)
        weighted = (
            critical * self.CRITICAL_DEBT_WEIGHT
            + high * self.HIGH_DEBT_WEIGHT
            + (total - critical - high) * self.OTHER_DEBT_WEIGHT
        )
        return weighted / total

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def check_stability_requirements(self) -> CheckResult:
        violations: List[GovernanceViolation] = []

        for feature in self.get_unstable_critical_features():
            violations.append(GovernanceViolation(
                type="critical-feature-unstable",
                message=(
                    f"Critical feature '{feature.name}' is not stable enough "
                    f"(score: {feature.stability_score:.2f})"
                ),
                severity=Severity.HIGH,
                context={"feature": feature.name, "stability_score": feature.stability_score},
            ))

        coverage = self.calculate_overall_test_coverage()
        if coverage < self.COVERAGE_THRESHOLD:
            violations.append(GovernanceViolation(
                type="test-coverage-low",
                message=f"Overall test coverage is too low ({as_percent(coverage)})",
                severity=Severity.HIGH,
                context={"test_coverage": coverage},
            ))

        return CheckResult(
            passed=not violations,
            violations=violations,
            details={"test_coverage": coverage},
        )

    def check_debt_level(self) -> CheckResult:
        violations: List[GovernanceViolation] = []
        level = self.get_technical_debt_level()

        if level > self.DEBT_LEVEL_LIMIT:
            violations.append(GovernanceViolation(
                type="technical-debt-high",
                message=f"Technical debt level is above {as_percent(self.DEBT_LEVEL_LIMIT)}",
                severity=Severity.HIGH,
                context={"debt_level": level},
            ))

        critical_open = [d for d in self._unresolved_debt() if d.severity == Severity.CRITICAL]
        if critical_open:
            violations.append(GovernanceViolation(
                type="critical-debt-unresolved",
                message=f"{len(critical_open)} critical technical debt item(s) unresolved",
                severity=Severity.HIGH,
                context={"debt_ids": [d.id for d in critical_open]},
            ))

        return CheckResult(
            passed=not violations,
            violations=violations,
            details={"debt_level": level},
        )

    @staticmethod
    def check_abstraction_consistency(requirements: FeatureRequirements) -> CheckResult:
        levels = set(requirements.levels)
        if levels & HIGH_TIERS and levels & LOW_TIERS:
            return CheckResult(
                passed=False,
                violations=[GovernanceViolation(
                    type="mixed-abstraction-levels",
                    message="Requirements mix high-level (system/application) and low-level (component/dom) tiers",
                    severity=Severity.MEDIUM,
                    context={"levels": sorted(levels)},
                )],
            )
        return CheckResult(passed=True)

    def can_add_feature(
        self,
        name: str,
        requirements: Optional[Union[FeatureRequirements, Mapping[str, Any]]] = None,
    ) -> FeatureAdmission:
        """AND of the stability, debt and abstraction checks."""
        if requirements is None:
            requirements = FeatureRequirements()
        elif not isinstance(requirements, FeatureRequirements):
            requirements = FeatureRequirements.model_validate(requirements)

        stability = self.check_stability_requirements()
        debt = self.check_debt_level()
        abstraction = self.check_abstraction_consistency(requirements)

        reasons = [
            v.message
            for check in (stability, debt, abstraction)
            for v in check.violations
        ]
        return FeatureAdmission(
            feature=name,
            can_add=stability.passed and debt.passed and abstraction.passed,
            reasons=reasons,
            recommendations=self._admission_recommendations(stability, debt, abstraction),
        )

    def _admission_recommendations(
        self,
        stability: CheckResult,
        debt: CheckResult,
        abstraction: CheckResult,
    ) -> List[Recommendation]:
        recommendations: List[Recommendation] = []

        if not stability.passed:
            recommendations.append(Recommendation(
                type="stability",
                priority="high",
                action="Stabilise existing features first",
                current=as_percent(stability.details["test_coverage"]),
                target=as_percent(self.COVERAGE_THRESHOLD),
                details=[v.message for v in stability.violations],
            ))

        if not debt.passed:
            recommendations.append(Recommendation(
                type="debt",
                priority="high",
                action="Pay down technical debt first",
                current=as_percent(debt.details["debt_level"]),
                target=as_percent(self.DEBT_LEVEL_LIMIT),
                details=[v.message for v in debt.violations],
            ))

        if not abstraction.passed:
            recommendations.append(Recommendation(
                type="abstraction",
                priority="medium",
                action="Keep the feature within one abstraction band",
                current=", ".join(abstraction.violations[0].context["levels"]),
                target="high tiers or low tiers, not both",
                details=[v.message for v in abstraction.violations],
            ))

        return recommendations

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def calculate_overall_stability_score(self) -> float:
        return (
            self.calculate_overall_test_coverage() * self.OVERALL_COVERAGE_WEIGHT
            + (1 - self.get_technical_debt_level()) * self.OVERALL_DEBT_WEIGHT
            + self.calculate_average_stability() * self.OVERALL_FEATURE_WEIGHT
        )

    def _report_recommendations(self, quality: QualityMetrics) -> List[Recommendation]:
        recommendations: List[Recommendation] = []

        if quality.test_coverage < self.COVERAGE_THRESHOLD:
            recommendations.append(Recommendation(
                type="test-coverage",
                priority="high",
                action=f"Raise test coverage to {as_percent(self.COVERAGE_THRESHOLD)} or more",
                current=as_percent(quality.test_coverage),
                target=as_percent(self.COVERAGE_THRESHOLD),
            ))

        if quality.technical_debt_level > self.REPORT_DEBT_LIMIT:
            recommendations.append(Recommendation(
                type="technical-debt",
                priority="high",
                action=f"Reduce technical debt to {as_percent(self.REPORT_DEBT_LIMIT)} or less",
                current=as_percent(quality.technical_debt_level),
                target=as_percent(self.REPORT_DEBT_LIMIT),
            ))

        if quality.stability_score < self.REPORT_STABILITY_TARGET:
            recommendations.append(Recommendation(
                type="stability",
                priority="medium",
                action=f"Raise overall stability to {as_percent(self.REPORT_STABILITY_TARGET)} or more",
                current=as_percent(quality.stability_score),
                target=as_percent(self.REPORT_STABILITY_TARGET),
            ))

        return recommendations

    def generate_design_quality_report(self) -> DesignQualityReport:
        quality = QualityMetrics(
            test_coverage=self.calculate_overall_test_coverage(),
            technical_debt_level=self.get_technical_debt_level(),
            stability_score=self.calculate_overall_stability_score(),
        )
        return DesignQualityReport(
            timestamp=datetime.now(timezone.utc),
            principles=dict(self.principles),
            features=FeatureSummary(
                total=len(self._features),
                critical=len(self.get_critical_features()),
                average_stability=self.calculate_average_stability(),
                critical_unstable=[f.name for f in self.get_unstable_critical_features()],
            ),
            quality=quality,
            technical_debt=DebtSummary(
                total=len(self._debt),
                unresolved=len(self._unresolved_debt()),
                by_severity=severity_counts(self._debt.count_by("severity")),
            ),
            recommendations=self._report_recommendations(quality),
        )
