"""
Shared schemas for reports and verdicts.
"""

from archgate.schemas.common import (
    Severity,
    Recommendation,
    GovernanceViolation,
    CheckResult,
    as_percent,
)

__all__ = [
    "Severity",
    "Recommendation",
    "GovernanceViolation",
    "CheckResult",
    "as_percent",
]
