# Copyright (c) 2024 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module checks that a CI build attestation was produced by a trusted workflow.

A workflow identity has the form ``<owner>/<repo>/<workflow-path>@<ref>``, for example
``acme/repo/.github/workflows/build.yml@refs/tags/v2.0.0``. The workflow path must contain a
``.github`` segment followed by at least one more segment.

A trusted workflow may carry a ref pattern. The complete pattern grammar is:

* no pattern matches any ref,
* a pattern ending with ``*`` matches any ref that starts with the text before the ``*``,
* any other pattern matches only the identical ref. A ``*`` anywhere else is a literal character.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from trustledger.config.defaults import defaults

logger: logging.Logger = logging.getLogger(__name__)

_SEGMENT = r"[^@\s/]+"
_WORKFLOW = rf"(?:{_SEGMENT}/)*\.github(?:/{_SEGMENT})+"

#: Matches a whole workflow identity. Exactly one ``@`` separates the path from the ref.
WORKFLOW_IDENTITY_PATTERN = re.compile(
    rf"(?P<repository>{_SEGMENT}/{_SEGMENT})/(?P<workflow>{_WORKFLOW})@(?P<ref>[^@\s]+)"
)

#: Matches a whole trusted workflow entry, whose ref pattern is optional.
TRUSTED_WORKFLOW_PATTERN = re.compile(
    rf"(?P<repository>{_SEGMENT}/{_SEGMENT})/(?P<workflow>{_WORKFLOW})(?:@(?P<ref>[^@\s]+))?"
)


@dataclass(frozen=True)
class WorkflowIdentity:
    """The CI workflow run that produced an attestation."""

    #: The ``owner/repo`` of the workflow.
    repository: str

    #: The path of the workflow file within the repository.
    workflow: str

    #: The git ref the workflow ran on.
    ref: str

    def __str__(self) -> str:
        return f"{self.repository}/{self.workflow}@{self.ref}"

    def get_dict(self) -> dict:
        """Return the identity as a dictionary."""
        return {"repo": self.repository, "workflow": self.workflow, "ref": self.ref}


@dataclass(frozen=True)
class TrustedWorkflow:
    """A workflow accepted as a producer of attestations."""

    repository: str
    workflow: str

    #: The ref pattern. None matches any ref.
    ref_pattern: str | None = None

    @classmethod
    def from_string(cls, text: str) -> "TrustedWorkflow | None":
        """Parse an ``<owner>/<repo>/<workflow-path>[@<ref-pattern>]`` entry.

        Returns
        -------
        TrustedWorkflow | None
            The entry, or None if the text is malformed.
        """
        match = TRUSTED_WORKFLOW_PATTERN.fullmatch(text.strip())
        if not match:
            return None
        return cls(
            repository=match.group("repository"), workflow=match.group("workflow"), ref_pattern=match.group("ref")
        )

    def __str__(self) -> str:
        return format_trusted_workflow(self)


@dataclass(frozen=True)
class WorkflowVerificationResult:
    """The outcome of checking a workflow identity against the trusted workflows."""

    valid: bool

    #: The parsed identity, kept for audit logging. None if the identity could not be parsed.
    workflow: WorkflowIdentity | None = None

    #: Why the identity was rejected. None when it is valid.
    reason: str | None = None

    def get_dict(self) -> dict:
        """Return the result as a dictionary."""
        return {
            "valid": self.valid,
            "workflow": self.workflow.get_dict() if self.workflow else None,
            "reason": self.reason,
        }


def parse_identity(text: str | None) -> WorkflowIdentity | None:
    """Parse a workflow identity string.

    Parameters
    ----------
    text : str | None
        The identity, in the form ``<owner>/<repo>/<workflow-path>@<ref>``.

    Returns
    -------
    WorkflowIdentity | None
        The parsed identity, or None if the text is malformed.

    Examples
    --------
    >>> parse_identity("org/repo/.github/workflows/build.yml@refs/heads/main")
    WorkflowIdentity(repository='org/repo', workflow='.github/workflows/build.yml', ref='refs/heads/main')
    >>> parse_identity("org/repo/workflows/build.yml@main") is None
    True
    """
    if not text:
        return None
    match = WORKFLOW_IDENTITY_PATTERN.fullmatch(text)
    if not match:
        logger.debug("Could not parse the workflow identity %s.", text)
        return None
    return WorkflowIdentity(
        repository=match.group("repository"),
        workflow=match.group("workflow"),
        ref=match.group("ref"),
    )


def ref_matches(actual_ref: str, pattern: str | None) -> bool:
    """Return True if ``actual_ref`` matches the ref ``pattern``.

    Examples
    --------
    >>> ref_matches("refs/tags/v1.0.0", "refs/tags/*")
    True
    >>> ref_matches("refs/heads/main", "refs/tags/*")
    False
    >>> ref_matches("anything", None)
    True
    """
    if pattern is None:
        return True
    if pattern.endswith("*"):
        return actual_ref.startswith(pattern[:-1])
    return actual_ref == pattern


def workflow_trusted(identity: WorkflowIdentity, trusted_list: Iterable[TrustedWorkflow]) -> bool:
    """Return True if some trusted workflow has the same repository and path and a matching ref pattern."""
    return any(
        entry.repository == identity.repository
        and entry.workflow == identity.workflow
        and ref_matches(identity.ref, entry.ref_pattern)
        for entry in trusted_list
    )


def trusted_workflow_list(override: Iterable[TrustedWorkflow] | None = None) -> list[TrustedWorkflow]:
    """Return the trusted workflows.

    Parameters
    ----------
    override : Iterable[TrustedWorkflow] | None
        If given, this list is returned unchanged. Otherwise the ``[attestation] trusted_workflows``
        entries of ``defaults.ini`` are used. Malformed entries are logged and left out.

    Returns
    -------
    list[TrustedWorkflow]
        The trusted workflows.
    """
    if override is not None:
        return list(override)

    trusted = []
    for text in defaults.get_list("attestation", "trusted_workflows"):
        entry = TrustedWorkflow.from_string(text)
        if entry is None:
            logger.error("Ignoring the malformed trusted workflow %s in section [attestation].", text)
            continue
        trusted.append(entry)
    return trusted


def format_trusted_workflow(entry: TrustedWorkflow) -> str:
    """Return the ``<repo>/<workflow>[@<ref-pattern>]`` form of a trusted workflow."""
    text = f"{entry.repository}/{entry.workflow}"
    if entry.ref_pattern is not None:
        text = f"{text}@{entry.ref_pattern}"
    return text


def list_trusted_workflows(override: Iterable[TrustedWorkflow] | None = None) -> list[str]:
    """Return the formatted trusted workflows."""
    return [format_trusted_workflow(entry) for entry in trusted_workflow_list(override)]


def verify_attestation_workflow(
    text: str | None, trusted_list: Iterable[TrustedWorkflow] | None = None
) -> WorkflowVerificationResult:
    """Check that an attestation was produced by a trusted workflow.

    Parameters
    ----------
    text : str | None
        The workflow identity of the attestation.
    trusted_list : Iterable[TrustedWorkflow] | None
        The trusted workflows. Defaults to :func:`trusted_workflow_list`.

    Returns
    -------
    WorkflowVerificationResult
        The outcome. Malformed and untrusted identities are reported as invalid results.
    """
    identity = parse_identity(text)
    if identity is None:
        return WorkflowVerificationResult(valid=False, reason=f"Could not parse workflow reference: {text}")

    if not workflow_trusted(identity, trusted_workflow_list(trusted_list)):
        logger.info("Rejected attestation from untrusted workflow %s.", identity)
        return WorkflowVerificationResult(
            valid=False,
            workflow=identity,
            reason=f"Workflow {identity} is not in the trusted workflow list",
        )

    logger.debug("Accepted attestation from trusted workflow %s.", identity)
    return WorkflowVerificationResult(valid=True, workflow=identity)
