"""
Feature gate data model.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, field_validator

from archgate.engines.layers.tiers import AbstractionLevel
from archgate.engines.stability.scoring import FeaturePriority
from archgate.orchestration.state_machine import FeatureState
from archgate.schemas.common import CheckResult, GovernanceViolation, Recommendation


class FeatureImpact(str, Enum):
    """Blast radius of a feature change."""
    NONE = "none"
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"
    CRITICAL = "critical"


class Feature(BaseModel):
    """A feature in the gate registry."""

    name: str
    state: FeatureState = FeatureState.PROPOSED
    priority: FeaturePriority = FeaturePriority.MEDIUM
    impact: FeatureImpact = FeatureImpact.MINOR
    abstraction_level: str = AbstractionLevel.COMPONENT.value
    dependencies: List[str] = []
    requirements: Dict[str, Any] = {}

    # Stability inputs
    test_coverage: Optional[float] = None
    documented: bool = False
    months_in_use: Optional[float] = None
    bug_rate: Optional[float] = None
    stability_score: float = 0.0

    registered_at: datetime
    updated_at: Optional[datetime] = None
    update_context: Dict[str, Any] = {}


class FeatureGate(BaseModel):
    """Rollout switch for a feature."""

    feature_name: str
    enabled: bool = False
    conditions: List[str] = []
    policies: List[str] = []
    overrides: Dict[str, Any] = {}
    set_at: datetime


class GateContext(BaseModel):
    """Caller-supplied context for a gate decision."""

    approved: bool = False
    migration_plan: Optional[str] = None
    extra: Dict[str, Any] = {}

    @field_validator("approved", mode="before")
    @classmethod
    def approved_only_when_true(cls, value: Any) -> bool:
        # "yes", 1, "on" and friends do not approve
        return value is True


class GateDetails(BaseModel):
    policies: CheckResult
    stability: CheckResult
    abstraction: CheckResult
    dependencies: CheckResult


class GateDecision(BaseModel):
    """Admit/deny verdict for a feature."""

    feature: str
    allowed: bool
    reason: str
    details: Optional[GateDetails] = None
    violations: List[GovernanceViolation] = []
    recommendations: List[Recommendation] = []
    evaluation_id: Optional[str] = None
    decided_at: datetime


class FeatureCounts(BaseModel):
    total: int
    by_state: Dict[str, int]
    by_priority: Dict[str, int]
    by_impact: Dict[str, int]


class GateCounts(BaseModel):
    total: int
    enabled: int
    disabled: int


class PolicyCounts(BaseModel):
    total: int
    active: int


class GateQuality(BaseModel):
    stability_score: float
    consistency_score: float
    gate_effectiveness: float


class FeatureGateReport(BaseModel):
    timestamp: datetime
    features: FeatureCounts
    gates: GateCounts
    policies: PolicyCounts
    quality: GateQuality
    recommendations: List[Recommendation]
