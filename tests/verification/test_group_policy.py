# Copyright (c) 2024 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module tests the group policy store and the artifact catalog."""

from datetime import datetime, timezone

import pytest

from trustledger.errors import InvalidIdentifierError, PersistenceError
from trustledger.verification import ArtifactKey
from trustledger.verification.catalog import ArtifactCatalog
from trustledger.verification.enums import VerificationMethod
from trustledger.verification.group_policy import GroupPolicyStore


def test_group_without_policy(policy_store: GroupPolicyStore) -> None:
    """Test that a group without a row has no policy."""
    assert policy_store.get_policy("org.example") is None
    assert policy_store.get_minimum_method("org.example") is None


def test_set_policy_creates_and_overwrites(policy_store: GroupPolicyStore) -> None:
    """Test creating a policy and overwriting it."""
    created = policy_store.set_policy("org.example", "source-match-approx", legacy_provenance=True)
    assert created.minimum_verification_method is VerificationMethod.SOURCE_MATCH_APPROX
    assert created.last_analyzed is not None

    policy_store.set_policy("org.example", VerificationMethod.ATTESTATION, legacy_provenance=False)
    policy = policy_store.get_policy("org.example")
    assert policy is not None
    assert policy.minimum_verification_method is VerificationMethod.ATTESTATION
    assert policy.legacy_provenance is False
    assert policy.last_analyzed is not None
    assert policy.last_analyzed > created.last_analyzed
    assert policy_store.get_minimum_method("org.example") is VerificationMethod.ATTESTATION


def test_set_policy_without_method(policy_store: GroupPolicyStore) -> None:
    """Test that a policy row may leave the minimum method unset."""
    policy = policy_store.set_policy("org.example", None, legacy_provenance=False)
    assert policy.get_dict() == {
        "group_name": "org.example",
        "minimum_verification_method": None,
        "verification_legacy_provenance": False,
        "verification_last_analyzed": policy.last_analyzed.isoformat() if policy.last_analyzed else None,
    }
    assert policy_store.get_minimum_method("org.example") is None


def test_set_policy_rejects_unknown_method(policy_store: GroupPolicyStore) -> None:
    """Test that an unknown method is refused and nothing is written."""
    with pytest.raises(InvalidIdentifierError):
        policy_store.set_policy("org.example", "source_match", legacy_provenance=False)
    assert policy_store.get_policy("org.example") is None


def test_catalog_versions(catalog: ArtifactCatalog) -> None:
    """Test adding versions to the catalog and listing the most recent ones."""
    for day, version in enumerate(("1.0.0", "1.1.0", "2.0.0"), start=1):
        catalog.add_version(
            ArtifactKey("org.example", "lib", version), datetime(2024, 1, day, tzinfo=timezone.utc)
        )
    catalog.add_version(ArtifactKey("org.example", "other", "9.0.0"))

    assert [jar.version for jar in catalog.find_recent_versions("org.example", "lib", 2)] == ["2.0.0", "1.1.0"]
    assert catalog.count_versions("org.example", "lib") == 3
    assert catalog.count_versions("org.example", "missing") == 0


def test_catalog_rejects_duplicate_version(catalog: ArtifactCatalog) -> None:
    """Test that a version can be added to the catalog only once."""
    key = ArtifactKey("org.example", "lib", "1.0.0")
    catalog.add_version(key)
    with pytest.raises(PersistenceError):
        catalog.add_version(key)
    assert catalog.count_versions("org.example", "lib") == 1
