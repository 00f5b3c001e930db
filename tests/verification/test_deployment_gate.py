# Copyright (c) 2024 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module tests the deployment gate."""

import os
from pathlib import Path

import pytest

from trustledger.config.defaults import load_defaults
from trustledger.errors import ConfigurationError
from trustledger.verification.deployment_gate import DeploymentGate
from trustledger.verification.enums import VerificationMethod
from trustledger.verification.group_policy import GroupPolicyStore

# pylint: disable=redefined-outer-name


@pytest.fixture()
def gate(policy_store: GroupPolicyStore) -> DeploymentGate:
    """Return a deployment gate with the default configuration."""
    deployment_gate = DeploymentGate(policy_store)
    deployment_gate.load_defaults()
    return deployment_gate


def test_new_project_requires_source_match(gate: DeploymentGate) -> None:
    """Test the strict default for a group without a policy."""
    assert gate.should_apply_new_project_defaults("com.new-org", "lib")

    decision = gate.check_deployment("com.new-org", "lib", "source-match-approx")
    assert not decision.allowed
    assert decision.is_new_project
    assert decision.required_method is VerificationMethod.SOURCE_MATCH
    assert decision.reason == (
        "Deployment requires verification method 'source-match' or higher, "
        "but only 'source-match-approx' was provided"
    )

    allowed = gate.check_deployment("com.new-org", "lib", VerificationMethod.ATTESTATION_GITHUB_TRUSTED)
    assert allowed.allowed
    assert allowed.reason is None


def test_missing_method_is_none(gate: DeploymentGate) -> None:
    """Test that a deployment without a method is rejected with a readable reason."""
    decision = gate.check_deployment("com.new-org", "lib", None)
    assert not decision.allowed
    assert decision.reason is not None
    assert decision.reason.endswith("but only 'none' was provided")


def test_legacy_project_policy(gate: DeploymentGate, policy_store: GroupPolicyStore) -> None:
    """Test that a legacy provenance policy lowers the requirement."""
    policy_store.set_policy("org.legacy", "unverified-legacy-provenance", legacy_provenance=True)
    assert not gate.should_apply_new_project_defaults("org.legacy", "lib")

    decision = gate.check_deployment("org.legacy", "lib", "unverified-legacy-provenance")
    assert decision.allowed
    assert decision.is_legacy_provenance
    assert not decision.is_new_project

    rejected = gate.check_deployment("org.legacy", "lib", "unverified")
    assert not rejected.allowed


def test_unknown_method_ranks_unverified(gate: DeploymentGate, policy_store: GroupPolicyStore) -> None:
    """Test that an unknown method string only meets an unverified requirement."""
    policy_store.set_policy("org.open", "unverified", legacy_provenance=False)
    decision = gate.check_deployment("org.open", "lib", "built-on-my-laptop")
    assert decision.allowed
    assert decision.actual_method == "built-on-my-laptop"
    assert not gate.check_deployment("com.new-org", "lib", "built-on-my-laptop").allowed


def test_policy_without_method_is_new_project(gate: DeploymentGate, policy_store: GroupPolicyStore) -> None:
    """Test that a policy row with an unset method gets the new project default."""
    policy_store.set_policy("org.example", None, legacy_provenance=False)
    requirement = gate.get_requirement("org.example", "lib")
    assert requirement.is_new_project
    assert requirement.required_method is VerificationMethod.SOURCE_MATCH
    assert requirement.get_dict()["required_method"] == "source-match"


def test_decision_dict(gate: DeploymentGate) -> None:
    """Test the dictionary form of a decision."""
    assert gate.check_deployment("com.new-org", "lib", "source-match").get_dict() == {
        "allowed": True,
        "required_method": "source-match",
        "actual_method": "source-match",
        "is_new_project": True,
        "is_legacy_provenance": False,
        "reason": None,
    }


def test_configured_new_project_method(policy_store: GroupPolicyStore, tmp_path: Path) -> None:
    """Test changing the new project default in defaults.ini."""
    user_config_path = os.path.join(tmp_path, "config.ini")
    with open(user_config_path, "w", encoding="utf-8") as user_config_file:
        user_config_file.write("[deployment]\nnew_project_method = attestation-github-trusted\n")
    load_defaults(user_config_path)

    gate = DeploymentGate(policy_store)
    gate.load_defaults()
    assert not gate.check_deployment("com.new-org", "lib", "source-match").allowed


def test_invalid_new_project_method(policy_store: GroupPolicyStore, tmp_path: Path) -> None:
    """Test that an unknown default method is a configuration error."""
    user_config_path = os.path.join(tmp_path, "config.ini")
    with open(user_config_path, "w", encoding="utf-8") as user_config_file:
        user_config_file.write("[deployment]\nnew_project_method = strict\n")
    load_defaults(user_config_path)

    with pytest.raises(ConfigurationError):
        DeploymentGate(policy_store).load_defaults()
