"""
Layer Engine - Layer graph, interface ownership and dependency validation.

Tiers (lowest to highest): dom, component, service, application, system.
"""

from archgate.engines.layers.tiers import (
    AbstractionLevel,
    DEFAULT_LAYERS,
    TIER_COUNT,
    tier_distance,
)
from archgate.engines.layers.layer_registry import (
    LayerRegistry,
    LayerReport,
    Layer,
    Interface,
    DependencyEdge,
    Violation,
    ViolationType,
    Operation,
    OperationLevel,
    ConsistencyCheck,
    CommunicationEnvelope,
)

__all__ = [
    "AbstractionLevel",
    "DEFAULT_LAYERS",
    "TIER_COUNT",
    "tier_distance",
    "LayerRegistry",
    "LayerReport",
    "Layer",
    "Interface",
    "DependencyEdge",
    "Violation",
    "ViolationType",
    "Operation",
    "OperationLevel",
    "ConsistencyCheck",
    "CommunicationEnvelope",
]
