"""
Gate Engine - Feature lifecycle and policy-driven admission.

A feature is admitted only when policy rules, stability, abstraction
and dependency checks all pass.
"""

from archgate.engines.gate.models import (
    Feature,
    FeatureImpact,
    FeatureGate,
    GateContext,
    GateDecision,
    GateDetails,
    FeatureGateReport,
)
from archgate.engines.gate.policies import (
    Condition,
    PolicyAction,
    Rule,
    Policy,
    DEFAULT_POLICIES,
    load_policies,
    index_policies,
)
from archgate.engines.gate.conditions import (
    CONDITION_EVALUATORS,
    GovernanceSignals,
    evaluate_condition,
)
from archgate.engines.gate.policy_engine import FeatureGatePolicyEngine

__all__ = [
    "Feature",
    "FeatureImpact",
    "FeatureGate",
    "GateContext",
    "GateDecision",
    "GateDetails",
    "FeatureGateReport",
    "Condition",
    "PolicyAction",
    "Rule",
    "Policy",
    "DEFAULT_POLICIES",
    "load_policies",
    "index_policies",
    "CONDITION_EVALUATORS",
    "GovernanceSignals",
    "evaluate_condition",
    "FeatureGatePolicyEngine",
]
