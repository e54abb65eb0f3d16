"""
Design principles the stability tracker reports against.
"""

from enum import Enum
from typing import Dict, List
from pydantic import BaseModel


class DesignPrincipleKey(str, Enum):
    STABILITY_FIRST = "stability-first"
    CONSISTENT_ABSTRACTION = "consistent-abstraction"
    SINGLE_RESPONSIBILITY = "single-responsibility"
    OPEN_CLOSED = "open-closed"
    DEPENDENCY_INVERSION = "dependency-inversion"


class DesignPrinciple(BaseModel):
    name: str
    description: str
    rules: List[str]
    metrics: Dict[str, float] = {}


DEFAULT_PRINCIPLES: Dict[DesignPrincipleKey, DesignPrinciple] = {
    DesignPrincipleKey.STABILITY_FIRST: DesignPrinciple(
        name="Stability first",
        description="Stabilise existing features before adding new ones",
        rules=[
            "Bring existing features to full test coverage before adding new ones",
            "Roll out changes that touch existing features incrementally",
            "Refactor regularly to keep technical debt from accumulating",
        ],
        metrics={
            "test_coverage": 0.9,
            "bug_rate": 0.05,
            "refactor_frequency": 0.1,
        },
    ),
    DesignPrincipleKey.CONSISTENT_ABSTRACTION: DesignPrinciple(
        name="Consistent abstraction",
        description="Offer one consistent interface per abstraction level",
        rules=[
            "Do not mix system-level integration with DOM-level operations",
            "Give every layer a clear responsibility",
            "Keep dependencies between layers one-directional",
        ],
    ),
    DesignPrincipleKey.SINGLE_RESPONSIBILITY: DesignPrinciple(
        name="Single responsibility",
        description="Each class or function has exactly one responsibility",
        rules=[
            "A class has one reason to change",
            "A function has one clear purpose",
            "Split anything that carries several responsibilities",
        ],
    ),
    DesignPrincipleKey.OPEN_CLOSED: DesignPrinciple(
        name="Open-closed",
        description="Open for extension, closed for modification",
        rules=[
            "Add features without changing existing code",
            "Separate implementations behind interfaces",
            "Prefer a plugin architecture",
        ],
    ),
    DesignPrincipleKey.DEPENDENCY_INVERSION: DesignPrinciple(
        name="Dependency inversion",
        description="High-level modules do not depend on low-level modules",
        rules=[
            "Depend on abstractions, not concretions",
            "Use dependency injection",
            "Separate implementations behind interfaces",
        ],
    ),
}
