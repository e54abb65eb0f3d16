"""
Stability and technical-debt scoring formulas.

Pure functions shared by the stability tracker and the feature gate so that
both compute a feature's stability the same way.
"""

import math
from enum import Enum
from typing import Optional

from archgate.schemas.common import Severity


class FeaturePriority(str, Enum):
    """Feature priority."""
    CRITICAL = "critical"  # Stabilising existing functionality
    HIGH = "high"          # New functionality
    MEDIUM = "medium"      # Improvements and optimisation
    LOW = "low"            # Experimental


class ImpactScope(str, Enum):
    COMPONENT = "component"
    APPLICATION = "application"
    SYSTEM = "system"


class Difficulty(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Stability score weights
COVERAGE_WEIGHT = 0.3
DOCUMENTATION_WEIGHT = 0.2
MATURITY_WEIGHT = 0.2
RELIABILITY_WEIGHT = 0.3

# Months in use at which the maturity term saturates
MATURITY_MONTHS = 6

IMPACT_POINTS = {
    ImpactScope.COMPONENT: 1,
    ImpactScope.APPLICATION: 2,
    ImpactScope.SYSTEM: 3,
}
DIFFICULTY_POINTS = {
    Difficulty.LOW: 1,
    Difficulty.MEDIUM: 2,
    Difficulty.HIGH: 3,
}
# Low urgency adds nothing
URGENCY_POINTS = {
    Urgency.LOW: 0,
    Urgency.MEDIUM: 1,
    Urgency.HIGH: 2,
    Urgency.CRITICAL: 3,
}

# Minimum debt score per severity, checked highest first
DEBT_SEVERITY_THRESHOLDS = (
    (7, Severity.CRITICAL),
    (5, Severity.HIGH),
    (3, Severity.MEDIUM),
)


def calculate_stability_score(
    test_coverage: Optional[float] = None,
    documented: bool = False,
    months_in_use: Optional[float] = None,
    bug_rate: Optional[float] = None,
) -> float:
    """
    Stability score in [0, 1].

    Absent inputs contribute nothing to their term. A NaN result scores 0.
    """
    score = 0.0
    if test_coverage is not None:
        score += test_coverage * COVERAGE_WEIGHT
    if documented:
        score += DOCUMENTATION_WEIGHT
    if months_in_use is not None:
        score += min(months_in_use / MATURITY_MONTHS, 1.0) * MATURITY_WEIGHT
    if bug_rate is not None:
        score += (1 - bug_rate) * RELIABILITY_WEIGHT
    if math.isnan(score):
        return 0.0
    return min(max(score, 0.0), 1.0)


def calculate_debt_score(
    impact_scope: Optional[ImpactScope],
    difficulty: Optional[Difficulty],
    urgency: Optional[Urgency],
) -> int:
    return (
        IMPACT_POINTS.get(impact_scope, 0)
        + DIFFICULTY_POINTS.get(difficulty, 0)
        + URGENCY_POINTS.get(urgency, 0)
    )


def debt_severity(score: int) -> Severity:
    for minimum, severity in DEBT_SEVERITY_THRESHOLDS:
        if score >= minimum:
            return severity
    return Severity.LOW
