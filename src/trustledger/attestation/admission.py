# Copyright (c) 2024 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module admits deployments whose verification method comes from a CI build attestation."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from trustledger.attestation.workflow_verifier import (
    TrustedWorkflow,
    WorkflowVerificationResult,
    verify_attestation_workflow,
)
from trustledger.verification.deployment_gate import DeploymentDecision, DeploymentGate
from trustledger.verification.enums import VerificationMethod

logger: logging.Logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttestedAdmission:
    """The admission decision for a deployment backed by an attestation."""

    allowed: bool
    workflow_result: WorkflowVerificationResult

    #: The deployment gate decision. None if the workflow was rejected before the gate was asked.
    decision: DeploymentDecision | None = None

    reason: str | None = None

    def get_dict(self) -> dict:
        """Return the admission as a dictionary."""
        return {
            "allowed": self.allowed,
            "workflow": self.workflow_result.get_dict(),
            "decision": self.decision.get_dict() if self.decision else None,
            "reason": self.reason,
        }


def admit_attested_deployment(
    gate: DeploymentGate,
    group_name: str,
    jar_name: str,
    workflow_identity: str | None,
    method: VerificationMethod = VerificationMethod.ATTESTATION_GITHUB_TRUSTED,
    trusted_list: Iterable[TrustedWorkflow] | None = None,
) -> AttestedAdmission:
    """Decide whether a deployment attested by ``workflow_identity`` can be published.

    The attestation only counts as ``method`` if it was produced by a trusted workflow. An
    untrusted or malformed workflow rejects the deployment without consulting the gate.

    Parameters
    ----------
    gate : DeploymentGate
        The gate that ranks the method against the group policy.
    group_name : str
        The group of the jar.
    jar_name : str
        The name of the jar.
    workflow_identity : str | None
        The ``<owner>/<repo>/<workflow-path>@<ref>`` that produced the attestation.
    method : VerificationMethod
        The attestation method the deployment claims.
    trusted_list : Iterable[TrustedWorkflow] | None
        The trusted workflows. Defaults to the configured list.

    Returns
    -------
    AttestedAdmission
        The decision. Rejections are returned, never raised.
    """
    workflow_result = verify_attestation_workflow(workflow_identity, trusted_list)
    if not workflow_result.valid:
        logger.info("Rejected attested deployment of %s/%s: %s.", group_name, jar_name, workflow_result.reason)
        return AttestedAdmission(allowed=False, workflow_result=workflow_result, reason=workflow_result.reason)

    decision = gate.check_deployment(group_name, jar_name, method)
    return AttestedAdmission(
        allowed=decision.allowed,
        workflow_result=workflow_result,
        decision=decision,
        reason=decision.reason,
    )
