"""
Common report types shared by all three engines.
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel


class Severity(str, Enum):
    """Severity of a violation or technical debt entry."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Recommendation(BaseModel):
    """Remediation advice attached to every report and verdict."""
    
    type: str
    priority: str  # high, medium, low
    action: str
    current: Optional[str] = None
    target: Optional[str] = None
    details: List[str] = []


class GovernanceViolation(BaseModel):
    """A soft governance finding returned to the caller (never raised)."""
    
    type: str
    message: str
    severity: Severity
    policy: Optional[str] = None
    context: Optional[Dict[str, Any]] = None


class CheckResult(BaseModel):
    """Outcome of one check category."""
    
    passed: bool
    violations: List[GovernanceViolation] = []
    details: Optional[Dict[str, Any]] = None


def as_percent(value: float) -> str:
    """Render a 0-1 ratio the way recommendations show it, e.g. '83.3%'."""
    return f"{value * 100:.1f}%"


def severity_counts(counts: Dict[str, int]) -> Dict[str, int]:
    """Zero-filled count per severity."""
    return {s.value: counts.get(s.value, 0) for s in Severity}
