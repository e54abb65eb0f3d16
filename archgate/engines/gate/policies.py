"""
Declarative policies: ordered rules of (condition, action, message).
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping
from pydantic import BaseModel, ConfigDict


class Condition(str, Enum):
    """Closed set of conditions a rule can test."""
    CRITICAL_FEATURES_UNSTABLE = "critical-features-unstable"
    TEST_COVERAGE_LOW = "test-coverage-low"
    TECHNICAL_DEBT_HIGH = "technical-debt-high"
    MIXED_ABSTRACTION_LEVELS = "mixed-abstraction-levels"
    UNAUTHORIZED_LAYER_DEPENDENCY = "unauthorized-layer-dependency"
    NEW_FEATURE = "new-feature"
    BREAKING_CHANGE = "breaking-change"


class PolicyAction(str, Enum):
    """What a matching rule does to the decision."""
    BLOCK = "block"                                     # Fails the decision
    WARN = "warn"                                       # Reported only
    REQUIRE_APPROVAL = "require-approval"               # Fails unless context.approved
    REQUIRE_MIGRATION_PLAN = "require-migration-plan"   # Fails unless context.migration_plan


class Rule(BaseModel):
    model_config = ConfigDict(frozen=True)

    condition: Condition
    action: PolicyAction
    message: str


class Policy(BaseModel):
    """A named, ordered list of rules. Immutable once configured."""

    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    description: str = ""
    rules: tuple[Rule, ...] = ()


DEFAULT_POLICIES: tuple[Policy, ...] = (
    Policy(
        key="stability-first",
        name="Stability first",
        description="Stabilise existing features before adding new ones",
        rules=(
            Rule(
                condition=Condition.CRITICAL_FEATURES_UNSTABLE,
                action=PolicyAction.BLOCK,
                message="Block new features while critical features are unstable",
            ),
            Rule(
                condition=Condition.TEST_COVERAGE_LOW,
                action=PolicyAction.BLOCK,
                message="Block new features while test coverage is below 80%",
            ),
            Rule(
                condition=Condition.TECHNICAL_DEBT_HIGH,
                action=PolicyAction.WARN,
                message="Warn while technical debt is high",
            ),
        ),
    ),
    Policy(
        key="abstraction-consistency",
        name="Abstraction consistency",
        description="Keep abstraction levels consistent",
        rules=(
            Rule(
                condition=Condition.MIXED_ABSTRACTION_LEVELS,
                action=PolicyAction.BLOCK,
                message="Block features that mix distant abstraction levels",
            ),
            Rule(
                condition=Condition.UNAUTHORIZED_LAYER_DEPENDENCY,
                action=PolicyAction.BLOCK,
                message="Block while unauthorized layer dependencies exist",
            ),
        ),
    ),
    Policy(
        key="gradual-release",
        name="Gradual release",
        description="Release features in stages",
        rules=(
            Rule(
                condition=Condition.NEW_FEATURE,
                action=PolicyAction.REQUIRE_APPROVAL,
                message="New features require approval",
            ),
            Rule(
                condition=Condition.BREAKING_CHANGE,
                action=PolicyAction.REQUIRE_MIGRATION_PLAN,
                message="Breaking changes require a migration plan",
            ),
        ),
    ),
)


def index_policies(policies: Iterable[Policy]) -> Dict[str, Policy]:
    """Policies keyed by Policy.key, in order. Raises ValueError on a repeated key."""
    indexed: Dict[str, Policy] = {}
    for policy in policies:
        if policy.key in indexed:
            raise ValueError(f"Duplicate policy key: {policy.key}")
        indexed[policy.key] = policy
    return indexed


def load_policies(data: Iterable[Mapping[str, Any]]) -> List[Policy]:
    """Validate plain mappings (from JSON, YAML, TOML, ...) into policies."""
    policies = [Policy.model_validate(item) for item in data]
    index_policies(policies)
    return policies
