# Copyright (c) 2024 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module contains the closed sets of tokens recorded in the verification tables.

The values are persisted verbatim and returned verbatim to reporting clients, so they
must never be renamed.
"""

from enum import Enum
from typing import TypeVar

from trustledger.errors import InvalidIdentifierError

WireTokenT = TypeVar("WireTokenT", bound="WireToken")


class WireToken(str, Enum):
    """Base class for enums that have a stable string form on the wire and in the database."""

    @classmethod
    def from_wire(cls: type[WireTokenT], text: str) -> WireTokenT:
        """Return the member whose wire string is ``text``.

        Parameters
        ----------
        text : str
            The wire string.

        Returns
        -------
        WireTokenT
            The matching member.

        Raises
        ------
        InvalidIdentifierError
            If ``text`` is not the wire string of any member.
        """
        try:
            return cls(text)
        except ValueError as error:
            raise InvalidIdentifierError(f"Unknown {cls.__name__} value: {text!r}.") from error

    @classmethod
    def wire_values(cls) -> list[str]:
        """Return all wire strings in declaration order."""
        return [member.value for member in cls]

    def __str__(self) -> str:
        return str(self.value)


class VerificationStatus(WireToken):
    """The lifecycle state of the provenance confidence of a jar version."""

    VERIFIED = "verified"
    UNVERIFIED = "unverified"
    PARTIAL = "partial"
    FAILED = "failed"
    PENDING = "pending"


class VerificationMethod(WireToken):
    """The technique by which the provenance of a jar version was established."""

    #: Attested by a build on a trusted GitHub Actions workflow.
    ATTESTATION_GITHUB_TRUSTED = "attestation-github-trusted"

    #: SLSA provenance produced by GitLab CI.
    ATTESTATION_GITLAB_SLSA = "attestation-gitlab-slsa"

    #: Every file of the jar matches the tagged source exactly.
    SOURCE_MATCH = "source-match"

    ATTESTATION_CIRCLECI = "attestation-circleci"
    ATTESTATION_JENKINS = "attestation-jenkins"
    ATTESTATION_OTHER_CI = "attestation-other-ci"

    #: The jar matches the source apart from metadata such as timestamps or the manifest.
    SOURCE_MATCH_APPROX = "source-match-approx"

    #: A build attestation whose CI platform is not known.
    ATTESTATION = "attestation"

    #: The source matches but the jar also ships compiled classes.
    PARTIAL_HAS_BUILD_ARTIFACTS = "partial-has-build-artifacts"

    MANUAL_VERIFIED = "manual-verified"
    VERIFIED_RETROSPECTIVE = "verified-retrospective"
    MANUAL = "manual"

    #: Inferred from the history of a project published before verification existed.
    UNVERIFIED_LEGACY_PROVENANCE = "unverified-legacy-provenance"

    UNVERIFIED = "unverified"

    @property
    def is_attestation(self) -> bool:
        """Return True if the method is backed by a CI build attestation."""
        return "attestation" in self.value


class ChangeReason(WireToken):
    """Why the verification state of a jar version changed."""

    INITIAL_VERIFICATION = "initial_verification"
    REVERIFICATION = "reverification"
    COMPROMISED_WORKFLOW = "compromised_workflow"
    HIJACKED_REPO = "hijacked_repo"
    MALICIOUS_NON_MAIN_BRANCH = "malicious_non_main_branch"
    BACKDOOR_DETECTED = "backdoor_detected"
    SECURITY_VULNERABILITY = "security_vulnerability"
    BUILD_SYSTEM_UPDATE = "build_system_update"
    POLICY_CHANGE = "policy_change"
    MANUAL_REVIEW = "manual_review"
    AUTOMATED_SCAN = "automated_scan"
    TRANSITIVE_DEPENDENCY_COMPROMISED = "transitive_dependency_compromised"
    PROVENANCE_UNCHANGED_DESPITE_COMPROMISED_DEP = "provenance_unchanged_despite_compromised_dep"


class ActionTaken(WireToken):
    """The operational response that accompanied a verification change."""

    NONE = "none"
    JAR_DELETED = "jar_deleted"
    CVE_REPORTED = "cve_reported"
    USER_NOTIFIED = "user_notified"
    GROUP_SUSPENDED = "group_suspended"
    VERIFICATION_DOWNGRADED = "verification_downgraded"
    VERIFICATION_UPGRADED = "verification_upgraded"
    UNDER_INVESTIGATION = "under_investigation"
    FLAGGED_FOR_REVIEW = "flagged_for_review"
    AUDIT_LOG_UPDATED = "audit_log_updated"
    JAR_UPDATED = "jar_updated"
