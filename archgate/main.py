"""
Architecture Governance Engine

Composition root: wires the three engines together from Settings.

Engines are plain instances injected into one another; nothing is held in
module-level state, so a host may build as many independent engines as it needs.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from archgate.config import Settings, get_settings
from archgate.engines.gate.policies import Policy
from archgate.engines.gate.policy_engine import FeatureGatePolicyEngine
from archgate.engines.layers.layer_registry import LayerRegistry
from archgate.engines.stability.stability_tracker import StabilityTracker
from archgate.logging_config import LogSink, configure_logging, get_logger

logger = get_logger(__name__)


@dataclass
class Governance:
    """The wired engines."""
    layers: LayerRegistry
    stability: StabilityTracker
    gate: FeatureGatePolicyEngine


def build_governance(
    settings: Optional[Settings] = None,
    *,
    policies: Optional[Iterable[Policy]] = None,
    sink: Optional[LogSink] = None,
    configure_logs: bool = True,
) -> Governance:
    """
    Build a LayerRegistry, a StabilityTracker and a FeatureGatePolicyEngine.

    Args:
        settings: Defaults to get_settings()
        policies: Overrides the policy catalogue (seed_default_policies is ignored)
        sink: Log sink shared by all three engines
        configure_logs: Install the process-wide log handler from settings
    """
    settings = settings or get_settings()

    if configure_logs:
        configure_logging(
            log_level=settings.log_level,
            environment=settings.environment,
            debug=settings.debug,
        )

    if settings.seed_default_layers:
        layers = LayerRegistry.with_default_layers(sink=sink)
    else:
        layers = LayerRegistry(sink=sink)

    if policies is None and not settings.seed_default_policies:
        policies = ()

    stability = StabilityTracker(sink=sink)
    gate = FeatureGatePolicyEngine(
        layers,
        stability,
        policies,
        enforce_transitions=settings.enforce_state_transitions,
        sink=sink,
    )

    logger.info(
        "Governance engines ready: %s v%s (%d layers, %d policies)",
        settings.project_name,
        settings.version,
        len(layers.generate_report().layers),
        len(gate.policies),
    )
    return Governance(layers=layers, stability=stability, gate=gate)
