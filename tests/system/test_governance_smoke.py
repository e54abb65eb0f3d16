"""
System smoke test: engines wired from Settings, driven end to end.
Verifies layer validation, stability tracking, gate decisions and that
every report serialises to JSON.
"""

import json

import pytest

from archgate.config import Settings
from archgate.engines.gate import Condition, Policy, PolicyAction, Rule
from archgate.kernel.errors import InvalidStateTransitionError
from archgate.main import build_governance


@pytest.fixture
def governance():
    settings = Settings(_env_file=None, environment="test")
    return build_governance(settings, configure_logs=False)


def test_default_wiring(governance):
    """Default settings seed five layers and three policies."""
    report = governance.layers.generate_report()

    assert set(report.layers) == {"dom", "component", "service", "application", "system"}
    assert {p.key for p in governance.gate.policies} == {
        "stability-first", "abstraction-consistency", "gradual-release",
    }
    assert governance.gate.layer_registry is governance.layers
    assert governance.gate.stability_tracker is governance.stability


def test_unseeded_wiring():
    settings = Settings(
        _env_file=None,
        seed_default_layers=False,
        seed_default_policies=False,
        enforce_state_transitions=True,
    )
    gov = build_governance(settings, configure_logs=False)

    assert gov.layers.generate_report().layers == {}
    assert gov.gate.policies == []

    gov.gate.register_feature("search")
    with pytest.raises(InvalidStateTransitionError):
        gov.gate.update_feature_state("search", "stable")


def test_explicit_policies_override_catalogue():
    policy = Policy(
        key="no-breaking",
        name="No breaking changes",
        rules=(Rule(
            condition=Condition.BREAKING_CHANGE,
            action=PolicyAction.BLOCK,
            message="Breaking changes are frozen",
        ),),
    )
    gov = build_governance(Settings(_env_file=None), policies=[policy], configure_logs=False)

    assert [p.key for p in gov.gate.policies] == ["no-breaking"]


@pytest.mark.asyncio
async def test_end_to_end_flow(governance):
    """Register, validate, communicate, decide and report."""
    governance.layers.register_dependency("component", "service", "DataService")
    envelope = await governance.layers.communicate(
        "component", "service", "DataService", {"query": "all"}
    )
    assert envelope.success is True

    governance.stability.register_feature(
        "auth", priority="critical", test_coverage=0.95,
        documented=True, months_in_use=12, bug_rate=0.01,
    )
    governance.stability.record_technical_debt("Legacy session store", "application", "medium", "high")

    governance.gate.register_feature(
        "auth", priority="critical", abstraction_level="service",
        test_coverage=0.95, documented=True, months_in_use=12, bug_rate=0.01,
    )
    governance.gate.update_feature_state("auth", "stable")
    governance.gate.register_feature(
        "sso", priority="high", abstraction_level="service", dependencies=["auth"],
    )
    governance.gate.set_feature_gate("sso", enabled=True, policies=["gradual-release"])

    denied = governance.gate.can_add_feature("sso")
    approved = governance.gate.can_add_feature("sso", {"approved": True})

    assert denied.allowed is False
    assert approved.allowed is True

    # Unauthorized edge now blocks through both the policy and the abstraction check
    governance.layers.register_dependency("dom", "system", "SystemInitializer")
    blocked = governance.gate.can_add_feature("sso", {"approved": True})
    assert blocked.allowed is False
    assert blocked.details.abstraction.passed is False
    assert "unauthorized-layer-dependency" in {v.type for v in blocked.violations}

    for report in (
        governance.layers.generate_report(),
        governance.stability.generate_design_quality_report(),
        governance.gate.generate_feature_gate_report(),
        blocked,
    ):
        payload = json.loads(report.model_dump_json())
        assert payload
