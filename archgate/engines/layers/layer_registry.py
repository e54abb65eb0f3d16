"""
Layer Registry - Layers, interface ownership and dependency edges.

Every dependency edge is validated when it is registered. Problems are
appended to the violation log (never raised); the log feeds the consistency
score and the layer report consumed by the feature gate.
"""

import asyncio
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel

from archgate.engines.layers.tiers import (
    DEFAULT_LAYERS,
    MAX_TIER_DISTANCE,
    AbstractionLevel,
    tier_distance,
    tier_of,
)
from archgate.kernel.errors import (
    DependencyNotFoundError,
    InterfaceMismatchError,
    LayerNotFoundError,
)
from archgate.kernel.ledger import AppendOnlyLog
from archgate.logging_config import LogLevel, LogSink, default_sink
from archgate.schemas.common import Recommendation, Severity, as_percent, severity_counts


class ViolationType(str, Enum):
    """Kinds of layer-rule violations."""
    INVALID_DEPENDENCY = "invalid-dependency"
    UNAUTHORIZED_DEPENDENCY = "unauthorized-dependency"
    INTERFACE_MISMATCH = "interface-mismatch"
    RESPONSIBILITY_VIOLATION = "responsibility-violation"
    ABSTRACTION_LEVEL_INCONSISTENCY = "abstraction-level-inconsistency"


class OperationLevel(str, Enum):
    """Abstraction level of a single operation."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


_VIOLATION_SEVERITY: Dict[ViolationType, Severity] = {
    ViolationType.UNAUTHORIZED_DEPENDENCY: Severity.CRITICAL,
    ViolationType.INTERFACE_MISMATCH: Severity.HIGH,
    ViolationType.INVALID_DEPENDENCY: Severity.HIGH,
}


def violation_severity(violation_type: ViolationType) -> Severity:
    """Severity assigned to a violation type."""
    return _VIOLATION_SEVERITY.get(violation_type, Severity.MEDIUM)


class Violation(BaseModel):
    """A recorded layer-rule violation."""

    type: ViolationType
    message: str
    severity: Severity
    context: Dict[str, Any] = {}
    recorded_at: datetime


class Interface(BaseModel):
    """A named interface owned by exactly one layer."""

    name: str
    layer_id: str
    registered_at: datetime


class Layer(BaseModel):
    """A registered layer."""

    id: str
    name: str
    description: str = ""
    level: Optional[AbstractionLevel] = None
    responsibilities: List[str] = []
    interfaces: List[str] = []
    allowed_dependents: List[str] = []
    registered_at: datetime
    violations: List[Violation] = []


class DependencyEdge(BaseModel):
    """from_layer depends on to_layer through interface_name."""

    from_layer: str
    to_layer: str
    interface_name: str
    registered_at: datetime


class CommunicationEnvelope(BaseModel):
    """Result of a cross-layer call."""

    success: bool
    from_layer: str
    to_layer: str
    interface_name: str
    payload: Any = None
    timestamp: datetime


class Operation(BaseModel):
    """An operation to classify in an abstraction consistency check."""

    name: str
    type: Optional[str] = None
    layer: Optional[str] = None


class ConsistencyCheck(BaseModel):
    """Result of check_abstraction_consistency."""

    consistent: bool
    violations: List[Violation]
    layer_operations: Dict[str, List[Operation]]


class ViolationSummary(BaseModel):
    total: int
    by_type: Dict[str, int]
    by_severity: Dict[str, int]


class LayerQuality(BaseModel):
    consistency: float
    separation: float
    coupling: float


class LayerReport(BaseModel):
    """Snapshot of the layer graph and its quality."""

    timestamp: datetime
    layers: Dict[str, Layer]
    interfaces: Dict[str, Interface]
    dependencies: Dict[str, List[DependencyEdge]]
    violations: ViolationSummary
    quality: LayerQuality
    recommendations: List[Recommendation]


def _split_words(text: str) -> List[str]:
    """'addEventListener' -> ['add', 'event', 'listener']; 'event-listener' likewise."""
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", text)
    return [w.lower() for w in re.split(r"[^A-Za-z0-9]+", spaced) if w]


def _compact(text: str) -> str:
    return "".join(_split_words(text))


class LayerRegistry:
    """
    Owns layers, interfaces, dependency edges and the violation log.

    Quality scores (each 0-1, recomputed on demand):
    - Consistency: 1 - (0.5 * critical + 0.3 * high) / total violations
    - Separation: 1 - edges / (layers * (layers - 1))
    - Coupling: mean tier distance of edges with distance > 0 / max distance
    """

    # Consistency penalty weights
    CRITICAL_PENALTY = 0.5
    HIGH_PENALTY = 0.3

    # Recommendation thresholds
    CONSISTENCY_TARGET = 0.8
    SEPARATION_TARGET = 0.7
    COUPLING_LIMIT = 0.5

    # Minimum word length for responsibility keyword matches
    MIN_KEYWORD_LENGTH = 4

    def __init__(self, sink: Optional[LogSink] = None):
        self.sink: LogSink = sink or default_sink(__name__)
        self._layers: Dict[str, Layer] = {}
        self._interfaces: Dict[str, Interface] = {}
        self._dependencies: AppendOnlyLog[DependencyEdge] = AppendOnlyLog(indexes={
            "source": lambda e: e.from_layer,
            "route": lambda e: (e.from_layer, e.to_layer, e.interface_name),
        })
        self._violations: AppendOnlyLog[Violation] = AppendOnlyLog(indexes={
            "type": lambda v: v.type.value,
            "severity": lambda v: v.severity.value,
        })

    @classmethod
    def with_default_layers(cls, sink: Optional[LogSink] = None) -> "LayerRegistry":
        """Registry pre-populated with the five canonical tiers."""
        registry = cls(sink=sink)
        for layer_id, definition in DEFAULT_LAYERS.items():
            registry.register_layer(layer_id, **definition)
        return registry

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_layer(
        self,
        layer_id: str,
        responsibilities: Iterable[str] = (),
        interfaces: Iterable[str] = (),
        allowed_dependents: Iterable[str] = (),
        *,
        name: Optional[str] = None,
        description: str = "",
    ) -> Layer:
        """
        Insert (or overwrite) a layer and register the interfaces it owns.

        On overwrite the previous interface set is released and the layer's
        violation history is carried over.
        """
        previous = self._layers.get(layer_id)
        layer = Layer(
            id=layer_id,
            name=name or layer_id,
            description=description,
            level=tier_of(layer_id),
            responsibilities=list(dict.fromkeys(responsibilities)),
            interfaces=list(dict.fromkeys(interfaces)),
            allowed_dependents=list(dict.fromkeys(allowed_dependents)),
            registered_at=datetime.now(timezone.utc),
            violations=list(previous.violations) if previous else [],
        )
        if previous is not None:
            for interface_name in previous.interfaces:
                owner = self._interfaces.get(interface_name)
                if owner is not None and owner.layer_id == layer_id:
                    del self._interfaces[interface_name]

        self._layers[layer_id] = layer
        for interface_name in layer.interfaces:
            self.register_interface(interface_name, layer_id)

        self.sink.log(LogLevel.DEBUG, f"Layer registered: {layer_id}", {
            "layer_id": layer_id,
            "interfaces": layer.interfaces,
            "allowed_dependents": layer.allowed_dependents,
            "overwrite": previous is not None,
        })
        return layer

    def register_interface(self, interface_name: str, layer_id: str) -> Interface:
        """Assign an interface to a layer. An interface has one owner at a time."""
        current = self._interfaces.get(interface_name)
        if current is not None and current.layer_id != layer_id:
            old_owner = self._layers.get(current.layer_id)
            if old_owner is not None and interface_name in old_owner.interfaces:
                old_owner.interfaces.remove(interface_name)
            self.sink.log(LogLevel.WARN, f"Interface ownership moved: {interface_name}", {
                "interface": interface_name,
                "from_layer": current.layer_id,
                "to_layer": layer_id,
            })

        layer = self._layers.get(layer_id)
        if layer is not None and interface_name not in layer.interfaces:
            layer.interfaces.append(interface_name)

        interface = Interface(
            name=interface_name,
            layer_id=layer_id,
            registered_at=datetime.now(timezone.utc),
        )
        self._interfaces[interface_name] = interface
        return interface

    def register_dependency(
        self,
        from_layer: str,
        to_layer: str,
        interface_name: str,
    ) -> DependencyEdge:
        """Append an edge, then validate it. Problems become violations."""
        edge = DependencyEdge(
            from_layer=from_layer,
            to_layer=to_layer,
            interface_name=interface_name,
            registered_at=datetime.now(timezone.utc),
        )
        self._dependencies.append(edge)
        self._validate_dependency(edge)
        return edge

    def _validate_dependency(self, edge: DependencyEdge) -> None:
        source = self._layers.get(edge.from_layer)
        target = self._layers.get(edge.to_layer)
        context = edge.model_dump(mode="json")

        if source is None or target is None:
            self._record_violation(
                ViolationType.INVALID_DEPENDENCY,
                f"Dependency on unknown layer: {edge.from_layer} -> {edge.to_layer}",
                context,
            )
            return

        if edge.from_layer not in target.allowed_dependents:
            self._record_violation(
                ViolationType.UNAUTHORIZED_DEPENDENCY,
                f"Unauthorized dependency: {edge.from_layer} -> {edge.to_layer}",
                {**context, "allowed_dependents": list(target.allowed_dependents)},
            )

        # Unknown interfaces are tolerated here; communicate() rejects them
        interface = self._interfaces.get(edge.interface_name)
        if interface is not None and interface.layer_id != edge.to_layer:
            self._record_violation(
                ViolationType.INTERFACE_MISMATCH,
                f"Interface {edge.interface_name} is not owned by {edge.to_layer}",
                {
                    **context,
                    "expected_layer": edge.to_layer,
                    "actual_layer": interface.layer_id,
                },
            )

    def _record_violation(
        self,
        violation_type: ViolationType,
        message: str,
        context: Dict[str, Any],
    ) -> Violation:
        violation = Violation(
            type=violation_type,
            message=message,
            severity=violation_severity(violation_type),
            context=context,
            recorded_at=datetime.now(timezone.utc),
        )
        self._violations.append(violation)

        source = self._layers.get(context.get("from_layer", ""))
        if source is not None:
            source.violations.append(violation)

        self.sink.log(LogLevel.WARN, "Layer violation recorded", {
            "type": violation.type.value,
            "severity": violation.severity.value,
            "message": message,
        })
        return violation

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_layer(self, layer_id: str) -> Optional[Layer]:
        return self._layers.get(layer_id)

    def find_dependency(
        self,
        from_layer: str,
        to_layer: str,
        interface_name: str,
    ) -> Optional[DependencyEdge]:
        """First registered edge matching the route, or None."""
        matches = self._dependencies.select("route", (from_layer, to_layer, interface_name))
        return matches[0] if matches else None

    def has_interface(self, interface_name: str) -> bool:
        return interface_name in self._interfaces

    def has_responsibility(self, layer_id: str, responsibility: str) -> bool:
        layer = self._layers.get(layer_id)
        if layer is None:
            return False
        return responsibility in layer.responsibilities

    def get_abstraction_level(self, layer_id: str) -> Optional[AbstractionLevel]:
        layer = self._layers.get(layer_id)
        return layer.level if layer else None

    def calculate_layer_distance(self, layer_a: str, layer_b: str) -> int:
        """Tier distance between two layer ids; -1 if either is not a canonical tier."""
        return tier_distance(layer_a, layer_b)

    @property
    def violations(self) -> List[Violation]:
        return list(self._violations)

    @property
    def dependencies(self) -> List[DependencyEdge]:
        return list(self._dependencies)

    def latest_violation(self) -> Optional[Violation]:
        return self._violations.latest()

    def violations_by_type(self) -> Dict[str, int]:
        return self._violations.count_by("type")

    def violations_by_severity(self) -> Dict[str, int]:
        return severity_counts(self._violations.count_by("severity"))

    # ------------------------------------------------------------------
    # Cross-layer communication
    # ------------------------------------------------------------------

    async def communicate(
        self,
        from_layer: str,
        to_layer: str,
        interface_name: str,
        payload: Any = None,
    ) -> CommunicationEnvelope:
        """
        Simulate a cross-layer call.

        Raises:
            DependencyNotFoundError: no edge registered for the route
            LayerNotFoundError: either layer is unknown
            InterfaceMismatchError: interface unknown or owned by another layer
        """
        if self.find_dependency(from_layer, to_layer, interface_name) is None:
            raise DependencyNotFoundError(
                f"No dependency registered: {from_layer} -> {to_layer} ({interface_name})"
            )

        if from_layer not in self._layers or to_layer not in self._layers:
            raise LayerNotFoundError(f"Unknown layer: {from_layer} -> {to_layer}")

        interface = self._interfaces.get(interface_name)
        if interface is None or interface.layer_id != to_layer:
            raise InterfaceMismatchError(
                f"Interface {interface_name} does not exist or is not owned by {to_layer}"
            )

        self.sink.log(LogLevel.DEBUG, f"Cross-layer call: {from_layer} -> {to_layer}", {
            "interface": interface_name,
            "payload_type": type(payload).__name__,
        })
        return await self._dispatch(from_layer, to_layer, interface_name, payload)

    async def _dispatch(
        self,
        from_layer: str,
        to_layer: str,
        interface_name: str,
        payload: Any,
    ) -> CommunicationEnvelope:
        # Placeholder for a future cross-process hop; yields once to the loop
        await asyncio.sleep(0)
        return CommunicationEnvelope(
            success=True,
            from_layer=from_layer,
            to_layer=to_layer,
            interface_name=interface_name,
            payload=payload,
            timestamp=datetime.now(timezone.utc),
        )

    # ------------------------------------------------------------------
    # Abstraction consistency of operations
    # ------------------------------------------------------------------

    @staticmethod
    def detect_layer_from_operation(operation: Operation) -> str:
        """Guess the layer an operation belongs to from its type or name."""
        name = operation.name
        if operation.type == "dom" or "DOM" in name or "querySelector" in name:
            return AbstractionLevel.DOM.value
        if operation.type == "component" or "Component" in name or "Screen" in name:
            return AbstractionLevel.COMPONENT.value
        if operation.type == "service" or "Service" in name or "Data" in name:
            return AbstractionLevel.SERVICE.value
        if operation.type == "application" or "Application" in name or "Controller" in name:
            return AbstractionLevel.APPLICATION.value
        if operation.type == "system" or "System" in name or "Global" in name:
            return AbstractionLevel.SYSTEM.value
        return AbstractionLevel.COMPONENT.value

    @staticmethod
    def detect_operation_level(operation: Operation) -> OperationLevel:
        name = operation.name
        if "querySelector" in name or "addEventListener" in name:
            return OperationLevel.LOW
        if "render" in name or "update" in name:
            return OperationLevel.MEDIUM
        if "coordinate" in name or "manage" in name:
            return OperationLevel.HIGH
        return OperationLevel.MEDIUM

    def is_operation_in_responsibility(self, operation: Operation, layer: Layer) -> bool:
        """Keyword match between the operation name and the layer's responsibility tags."""
        compact_name = _compact(operation.name)
        words = {w for w in _split_words(operation.name) if len(w) >= self.MIN_KEYWORD_LENGTH}
        for responsibility in layer.responsibilities:
            if _compact(responsibility) in compact_name:
                return True
            if words & set(_split_words(responsibility)):
                return True
        return False

    def check_abstraction_consistency(
        self,
        operations: Iterable[Operation],
    ) -> ConsistencyCheck:
        """
        Check a batch of operations against layer responsibilities.

        Findings are returned, not appended to the registry's violation log.
        """
        grouped: Dict[str, List[Operation]] = {}
        for op in operations:
            layer_id = op.layer or self.detect_layer_from_operation(op)
            grouped.setdefault(layer_id, []).append(op)

        now = datetime.now(timezone.utc)
        violations: List[Violation] = []
        for layer_id, ops in grouped.items():
            layer = self._layers.get(layer_id)
            if layer is None:
                continue

            for op in ops:
                if not self.is_operation_in_responsibility(op, layer):
                    violations.append(Violation(
                        type=ViolationType.RESPONSIBILITY_VIOLATION,
                        message=f"Operation '{op.name}' is outside the responsibilities of layer '{layer_id}'",
                        severity=violation_severity(ViolationType.RESPONSIBILITY_VIOLATION),
                        context={"layer": layer_id, "operation": op.name},
                        recorded_at=now,
                    ))

            levels = sorted({self.detect_operation_level(op).value for op in ops})
            if len(levels) > 1:
                violations.append(Violation(
                    type=ViolationType.ABSTRACTION_LEVEL_INCONSISTENCY,
                    message=f"Layer '{layer_id}' mixes abstraction levels: {', '.join(levels)}",
                    severity=violation_severity(ViolationType.ABSTRACTION_LEVEL_INCONSISTENCY),
                    context={"layer": layer_id, "levels": levels},
                    recorded_at=now,
                ))

        return ConsistencyCheck(
            consistent=not violations,
            violations=violations,
            layer_operations=grouped,
        )

    # ------------------------------------------------------------------
    # Quality scores
    # ------------------------------------------------------------------

    def calculate_consistency_score(self) -> float:
        total = len(self._violations)
        if total == 0:
            return 1.0
        critical = self._violations.count("severity", Severity.CRITICAL.value)
        high = self._violations.count("severity", Severity.HIGH.value)
        penalty = (critical * self.CRITICAL_PENALTY + high * self.HIGH_PENALTY) / total
        return max(0.0, 1 - penalty)

    def calculate_separation_score(self) -> float:
        layer_count = len(self._layers)
        if layer_count < 2:
            return 1.0
        max_edges = layer_count * (layer_count - 1)
        return max(0.0, 1 - len(self._dependencies) / max_edges)

    def calculate_coupling_score(self) -> float:
        distances = [
            d for d in (
                self.calculate_layer_distance(e.from_layer, e.to_layer)
                for e in self._dependencies
            )
            if d > 0
        ]
        if not distances:
            return 0.0
        return (sum(distances) / len(distances)) / MAX_TIER_DISTANCE

    def _recommendations(self, quality: LayerQuality) -> List[Recommendation]:
        recommendations: List[Recommendation] = []

        if quality.consistency < self.CONSISTENCY_TARGET:
            recommendations.append(Recommendation(
                type="consistency",
                priority="high",
                action="Improve consistency between layers",
                current=as_percent(quality.consistency),
                target=as_percent(self.CONSISTENCY_TARGET),
            ))

        if quality.separation < self.SEPARATION_TARGET:
            recommendations.append(Recommendation(
                type="separation",
                priority="medium",
                action="Reduce cross-layer dependencies",
                current=as_percent(quality.separation),
                target=as_percent(self.SEPARATION_TARGET),
            ))

        if quality.coupling > self.COUPLING_LIMIT:
            recommendations.append(Recommendation(
                type="coupling",
                priority="medium",
                action="Reduce the tier distance of cross-layer calls",
                current=as_percent(quality.coupling),
                target=as_percent(self.COUPLING_LIMIT),
            ))

        return recommendations

    def generate_report(self) -> LayerReport:
        """Snapshot of the layer graph, violation counts, quality and advice."""
        quality = LayerQuality(
            consistency=self.calculate_consistency_score(),
            separation=self.calculate_separation_score(),
            coupling=self.calculate_coupling_score(),
        )

        dependencies: Dict[str, List[DependencyEdge]] = {}
        for edge in self._dependencies:
            dependencies.setdefault(edge.from_layer, []).append(edge)

        return LayerReport(
            timestamp=datetime.now(timezone.utc),
            layers={k: v.model_copy(deep=True) for k, v in self._layers.items()},
            interfaces=dict(self._interfaces),
            dependencies=dependencies,
            violations=ViolationSummary(
                total=len(self._violations),
                by_type=self.violations_by_type(),
                by_severity=self.violations_by_severity(),
            ),
            quality=quality,
            recommendations=self._recommendations(quality),
        )
