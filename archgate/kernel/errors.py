"""
Hard-failure errors.

Raised when the engine is driven incorrectly (integration errors). Governance
outcomes are never raised; they come back as CheckResult / GateDecision values.
"""


class GovernanceError(Exception):
    """Base class for all hard failures raised by the engines."""


class DependencyNotFoundError(GovernanceError, LookupError):
    pass


class LayerNotFoundError(GovernanceError, LookupError):
    pass


class InterfaceMismatchError(GovernanceError, ValueError):
    pass


class FeatureNotFoundError(GovernanceError, LookupError):
    pass


class InvalidStateTransitionError(GovernanceError, ValueError):
    pass
