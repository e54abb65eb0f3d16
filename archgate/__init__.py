"""
Architecture Governance Engine.

Layer dependency validation, feature stability and technical-debt
tracking, and policy-driven feature admission.
"""

__version__ = "1.0.0"
