"""
Print the layer, design quality and feature gate reports as JSON.

Builds a default-wired engine from the environment (.env), optionally
registering a small demo architecture first.

Usage:
    python scripts/governance_report.py
    python scripts/governance_report.py --demo
"""
import argparse
import json
import sys

from archgate.config import get_settings
from archgate.main import build_governance


def seed_demo(gov):
    """A few dependencies, features and debt entries so the reports are not empty."""
    gov.layers.register_dependency("component", "service", "DataService")
    gov.layers.register_dependency("dom", "system", "SystemInitializer")

    gov.stability.register_feature(
        "auth", priority="critical", test_coverage=0.95,
        documented=True, months_in_use=12, bug_rate=0.02,
    )
    gov.stability.record_technical_debt(
        "Legacy event bus", impact_scope="application", difficulty="medium", urgency="high",
    )

    gov.gate.register_feature(
        "auth", priority="critical", abstraction_level="service",
        test_coverage=0.95, documented=True, months_in_use=12, bug_rate=0.02,
    )
    gov.gate.update_feature_state("auth", "stable", {"reason": "demo"})
    gov.gate.register_feature(
        "sso", priority="high", impact="major", abstraction_level="application",
        dependencies=["auth"],
    )
    gov.gate.set_feature_gate("sso", enabled=False, policies=["gradual-release"])


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--demo", action="store_true", help="register demo data first")
    args = parser.parse_args()

    gov = build_governance(get_settings())
    if args.demo:
        seed_demo(gov)

    out = {
        "layers": gov.layers.generate_report().model_dump(mode="json"),
        "design_quality": gov.stability.generate_design_quality_report().model_dump(mode="json"),
        "feature_gate": gov.gate.generate_feature_gate_report().model_dump(mode="json"),
    }
    if args.demo:
        out["decision"] = gov.gate.can_add_feature("sso").model_dump(mode="json")

    json.dump(out, sys.stdout, indent=2)
    print()


if __name__ == "__main__":
    main()
