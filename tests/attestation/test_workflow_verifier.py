# Copyright (c) 2024 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module tests the attestation workflow verifier."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from trustledger.attestation.workflow_verifier import (
    TrustedWorkflow,
    WorkflowIdentity,
    format_trusted_workflow,
    list_trusted_workflows,
    parse_identity,
    ref_matches,
    trusted_workflow_list,
    verify_attestation_workflow,
)
from trustledger.config.defaults import defaults

TRUSTED = [
    TrustedWorkflow("org/repo", ".github/workflows/build.yml", "refs/heads/main"),
    TrustedWorkflow("org/repo", ".github/workflows/build.yml", "refs/tags/*"),
    TrustedWorkflow("org/any-ref", ".github/workflows/release.yml"),
]


@pytest.mark.parametrize(
    ("text", "expect"),
    [
        (
            "org/repo/.github/workflows/build.yml@refs/heads/main",
            WorkflowIdentity("org/repo", ".github/workflows/build.yml", "refs/heads/main"),
        ),
        (
            "org/repo/sub/.github/workflows/build.yml@v1",
            WorkflowIdentity("org/repo", "sub/.github/workflows/build.yml", "v1"),
        ),
        ("org/repo/.github/workflows/build.yml", None),
        ("org/repo/workflows/build.yml@refs/heads/main", None),
        ("org/.github/workflows/build.yml@refs/heads/main", None),
        ("org/repo/.github@refs/heads/main", None),
        ("org/repo/.github/workflows/build.yml@main@evil", None),
        ("org/repo/.github/workflows/build.yml@", None),
        ("org/repo/.github/workflows/build.yml@refs/heads/main\n", None),
        ("org/repo/.github/workflows/build.yml@refs/heads/main\nx", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_identity(text: str | None, expect: WorkflowIdentity | None) -> None:
    """Test parsing workflow identities."""
    assert parse_identity(text) == expect


@pytest.mark.parametrize(
    ("actual", "pattern", "expect"),
    [
        ("refs/tags/v1.0.0", "refs/tags/*", True),
        ("refs/tags/", "refs/tags/*", True),
        ("refs/heads/main", "refs/tags/*", False),
        ("refs/heads/main", "refs/heads/main", True),
        ("refs/heads/main-evil", "refs/heads/main", False),
        ("refs/heads/x", "refs/*/x", False),
        ("refs/*/x", "refs/*/x", True),
        ("anything", None, True),
    ],
)
def test_ref_matches(actual: str, pattern: str | None, expect: bool) -> None:
    """Test the ref pattern grammar."""
    assert ref_matches(actual, pattern) is expect


@given(prefix=st.text(max_size=10), suffix=st.text(max_size=10))
def test_trailing_wildcard_is_prefix_match(prefix: str, suffix: str) -> None:
    """Test that a trailing wildcard matches exactly the refs that share its prefix."""
    assert ref_matches(prefix + suffix, prefix + "*")


@pytest.mark.parametrize(
    ("identity", "valid"),
    [
        ("org/repo/.github/workflows/build.yml@refs/heads/main", True),
        ("org/repo/.github/workflows/build.yml@refs/tags/v2.0.0", True),
        ("org/repo/.github/workflows/build.yml@refs/heads/feature", False),
        ("org/repo/.github/workflows/other.yml@refs/heads/main", False),
        ("org/fork/.github/workflows/build.yml@refs/heads/main", False),
        ("org/any-ref/.github/workflows/release.yml@refs/heads/anything", True),
    ],
)
def test_verify_attestation_workflow(identity: str, valid: bool) -> None:
    """Test checking workflow identities against a trusted list."""
    result = verify_attestation_workflow(identity, TRUSTED)
    assert result.valid is valid
    assert result.workflow == parse_identity(identity)
    if valid:
        assert result.reason is None
    else:
        assert result.reason == f"Workflow {identity} is not in the trusted workflow list"


def test_verify_malformed_workflow() -> None:
    """Test that a malformed identity is rejected with the input in the reason."""
    result = verify_attestation_workflow("not-a-workflow", TRUSTED)
    assert not result.valid
    assert result.workflow is None
    assert result.reason == "Could not parse workflow reference: not-a-workflow"
    assert result.get_dict() == {
        "valid": False,
        "workflow": None,
        "reason": "Could not parse workflow reference: not-a-workflow",
    }


def test_empty_override_trusts_nothing() -> None:
    """Test that an empty override list is used instead of the configured list."""
    identity = "clojars/clojars-web/.github/workflows/attestable-build-lein.yml@refs/heads/main"
    assert verify_attestation_workflow(identity).valid
    assert not verify_attestation_workflow(identity, []).valid


def test_configured_trusted_workflows() -> None:
    """Test reading the trusted workflows from defaults.ini."""
    assert list_trusted_workflows() == [
        "clojars/clojars-web/.github/workflows/attestable-build-lein.yml@refs/heads/main",
        "clojars/clojars-web/.github/workflows/attestable-clojure-cli.yml@refs/heads/main",
        "clojars/clojars-web/.github/workflows/attestable-build-lein.yml@refs/tags/*",
        "clojars/clojars-web/.github/workflows/attestable-clojure-cli.yml@refs/tags/*",
    ]
    assert verify_attestation_workflow(
        "clojars/clojars-web/.github/workflows/attestable-clojure-cli.yml@refs/tags/1.2.3"
    ).valid


def test_malformed_configured_entries_are_skipped() -> None:
    """Test that malformed entries in defaults.ini are left out."""
    defaults.set(
        "attestation",
        "trusted_workflows",
        "\norg/repo/.github/workflows/build.yml\nnot-a-workflow\norg/repo/.github/workflows/release.yml@v*",
    )
    assert trusted_workflow_list() == [
        TrustedWorkflow("org/repo", ".github/workflows/build.yml"),
        TrustedWorkflow("org/repo", ".github/workflows/release.yml", "v*"),
    ]


@pytest.mark.parametrize(
    "text",
    [
        "org/repo/.github/workflows/build.yml",
        "org/repo/.github/workflows/build.yml@refs/tags/*",
    ],
)
def test_format_trusted_workflow(text: str) -> None:
    """Test that parsing and formatting a trusted workflow gives back the entry."""
    entry = TrustedWorkflow.from_string(text)
    assert entry is not None
    assert format_trusted_workflow(entry) == text
    assert str(entry) == text


@pytest.mark.parametrize(
    ("text", "expect"),
    [
        (
            "  org/repo/.github/workflows/build.yml@v*\n",
            TrustedWorkflow("org/repo", ".github/workflows/build.yml", "v*"),
        ),
        ("org/repo/.github/workflows/build.yml@v*\nevil/repo/.github/workflows/build.yml", None),
        ("org/repo/.github/workflows/build.yml@", None),
        ("org/repo/workflows/build.yml", None),
    ],
)
def test_parse_trusted_workflow(text: str, expect: TrustedWorkflow | None) -> None:
    """Test that a trusted workflow entry must match as a whole."""
    assert TrustedWorkflow.from_string(text) == expect


def test_verify_identity_with_trailing_newline() -> None:
    """Test that a trailing newline makes an otherwise trusted identity malformed."""
    result = verify_attestation_workflow("org/repo/.github/workflows/build.yml@refs/heads/main\n", TRUSTED)
    assert not result.valid
    assert result.workflow is None
