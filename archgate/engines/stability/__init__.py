"""
Stability Engine - Feature stability scoring and technical-debt tracking.

Stability score (0-1):
- Test coverage: 30%
- Documentation: 20%
- Months in use (saturates at 6): 20%
- 1 - bug rate: 30%

Debt severity from scope + difficulty + urgency points:
critical >= 7, high >= 5, medium >= 3, else low.
"""

from archgate.engines.stability.scoring import (
    FeaturePriority,
    ImpactScope,
    Difficulty,
    Urgency,
    calculate_stability_score,
    calculate_debt_score,
    debt_severity,
)
from archgate.engines.stability.principles import (
    DesignPrinciple,
    DesignPrincipleKey,
    DEFAULT_PRINCIPLES,
)
from archgate.engines.stability.stability_tracker import (
    StabilityTracker,
    FeatureProfile,
    FeatureRequirements,
    FeatureAdmission,
    TechnicalDebtEntry,
    DesignQualityReport,
)

__all__ = [
    "FeaturePriority",
    "ImpactScope",
    "Difficulty",
    "Urgency",
    "calculate_stability_score",
    "calculate_debt_score",
    "debt_severity",
    "DesignPrinciple",
    "DesignPrincipleKey",
    "DEFAULT_PRINCIPLES",
    "StabilityTracker",
    "FeatureProfile",
    "FeatureRequirements",
    "FeatureAdmission",
    "TechnicalDebtEntry",
    "DesignQualityReport",
]
