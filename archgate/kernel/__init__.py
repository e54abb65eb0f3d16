"""
Kernel - primitives shared by every engine.

- Append-only ledger (violations, dependency edges, technical debt)
- Typed hard-failure errors
"""

from archgate.kernel.errors import (
    GovernanceError,
    DependencyNotFoundError,
    LayerNotFoundError,
    InterfaceMismatchError,
    FeatureNotFoundError,
    InvalidStateTransitionError,
)
from archgate.kernel.ledger import AppendOnlyLog

__all__ = [
    "AppendOnlyLog",
    "GovernanceError",
    "DependencyNotFoundError",
    "LayerNotFoundError",
    "InterfaceMismatchError",
    "FeatureNotFoundError",
    "InvalidStateTransitionError",
]
