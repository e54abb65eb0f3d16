"""
Canonical abstraction tiers and the default layer catalogue.
"""

from enum import Enum
from typing import Dict, List, Optional


class AbstractionLevel(str, Enum):
    """The five canonical tiers, declared from lowest to highest."""
    DOM = "dom"
    COMPONENT = "component"
    SERVICE = "service"
    APPLICATION = "application"
    SYSTEM = "system"


TIER_ORDER: List[str] = [level.value for level in AbstractionLevel]
TIER_COUNT = len(TIER_ORDER)
MAX_TIER_DISTANCE = TIER_COUNT - 1

# Tiers on either side of the service layer
HIGH_TIERS = frozenset({AbstractionLevel.SYSTEM.value, AbstractionLevel.APPLICATION.value})
LOW_TIERS = frozenset({AbstractionLevel.DOM.value, AbstractionLevel.COMPONENT.value})


def tier_of(level: str) -> Optional[AbstractionLevel]:
    """Tier for a layer id or level name, None if it is not canonical."""
    try:
        return AbstractionLevel(level)
    except ValueError:
        return None


def tier_distance(a: str, b: str) -> int:
    """Absolute ordinal distance between two tiers; -1 if either is unknown."""
    if a not in TIER_ORDER or b not in TIER_ORDER:
        return -1
    return abs(TIER_ORDER.index(a) - TIER_ORDER.index(b))


# Default layer catalogue: one layer per tier.
# allowed_dependents lists the layers permitted to depend ON the layer.
DEFAULT_LAYERS: Dict[str, dict] = {
    AbstractionLevel.SYSTEM.value: {
        "name": "System layer",
        "description": "Integration, coordination and monitoring of the whole system",
        "responsibilities": [
            "application-initialization",
            "layer-coordination",
            "global-state",
            "error-aggregation",
            "performance-monitoring",
        ],
        "interfaces": [
            "SystemInitializer",
            "LayerCoordinator",
            "GlobalStateManager",
            "ErrorAggregator",
            "PerformanceMonitor",
        ],
        "allowed_dependents": [AbstractionLevel.APPLICATION.value],
    },
    AbstractionLevel.APPLICATION.value: {
        "name": "Application layer",
        "description": "Implementation and control of application features",
        "responsibilities": [
            "business-logic",
            "user-flow",
            "screen-navigation",
            "data-flow",
            "feature-integration",
        ],
        "interfaces": [
            "ApplicationController",
            "BusinessLogicService",
            "UserFlowManager",
            "ScreenNavigator",
            "DataFlowCoordinator",
        ],
        "allowed_dependents": [
            AbstractionLevel.SERVICE.value,
            AbstractionLevel.COMPONENT.value,
        ],
    },
    AbstractionLevel.SERVICE.value: {
        "name": "Service layer",
        "description": "Business rules, data management and external integration",
        "responsibilities": [
            "data-persistence",
            "api-communication",
            "business-rules",
            "data-validation",
            "cache-management",
        ],
        "interfaces": [
            "DataService",
            "ApiService",
            "BusinessRuleService",
            "DataTransformer",
            "CacheManager",
        ],
        "allowed_dependents": [AbstractionLevel.COMPONENT.value],
    },
    AbstractionLevel.COMPONENT.value: {
        "name": "Component layer",
        "description": "UI components, screen management and user interaction",
        "responsibilities": [
            "component-rendering",
            "screen-visibility",
            "user-interaction",
            "state-display",
            "event-management",
        ],
        "interfaces": [
            "UIComponent",
            "ScreenManager",
            "InteractionHandler",
            "StateRenderer",
            "EventManager",
        ],
        "allowed_dependents": [AbstractionLevel.DOM.value],
    },
    AbstractionLevel.DOM.value: {
        "name": "DOM layer",
        "description": "DOM operations, event listeners and browser APIs",
        "responsibilities": [
            "element-manipulation",
            "event-listener",
            "browser-api",
            "style-application",
            "animation-control",
        ],
        "interfaces": [
            "DOMOperator",
            "EventListenerManager",
            "BrowserApiAdapter",
            "StyleManager",
            "AnimationController",
        ],
        "allowed_dependents": [],
    },
}
