# Copyright (c) 2024 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module applies one verification change to many jar versions after a security incident.

Each jar version is updated in its own transaction. A failure on one version is collected and
reported, and never rolls back the versions that were already updated.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from trustledger.errors import TrustLedgerError
from trustledger.verification import ArtifactKey
from trustledger.verification.enums import ActionTaken, ChangeReason, VerificationStatus
from trustledger.verification.verification_store import VerificationStore, normalize_fields

logger: logging.Logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """The outcome of a batch update."""

    succeeded: list[ArtifactKey] = field(default_factory=list)

    #: The versions that could not be updated with the error of each, for retry.
    failed: list[tuple[ArtifactKey, TrustLedgerError]] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        """Return the number of updated versions."""
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        """Return the number of versions that failed."""
        return len(self.failed)

    def get_dict(self) -> dict:
        """Return the result as a JSON serializable dictionary."""
        return {
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "succeeded": [str(key) for key in self.succeeded],
            "failed": [{"key": str(key), "error": str(error)} for key, error in self.failed],
        }


def downgrade_records(
    store: VerificationStore,
    keys: Iterable[ArtifactKey],
    updates: Mapping[str, Any],
    change_reason: ChangeReason | str,
    action_taken: ActionTaken | str,
    changed_by: str | None = None,
) -> BatchResult:
    """Apply ``updates`` to every key with :meth:`VerificationStore.update_with_history`.

    Parameters
    ----------
    store : VerificationStore
        The verification store.
    keys : Iterable[ArtifactKey]
        The jar versions to update.
    updates : Mapping[str, Any]
        The verification fields to change on every version.
    change_reason : ChangeReason | str
        The reason recorded in the ledger.
    action_taken : ActionTaken | str
        The action recorded in the ledger.
    changed_by : str | None
        The actor recorded in the ledger.

    Returns
    -------
    BatchResult
        The updated versions and the failures.

    Raises
    ------
    InvalidIdentifierError
        If the updates, the reason or the action are invalid. Nothing is updated in that case.
    """
    # Validate once up front so that invalid input fails the batch instead of every key.
    normalize_fields(updates)
    reason = ChangeReason.from_wire(change_reason)
    action = ActionTaken.from_wire(action_taken)

    result = BatchResult()
    for key in keys:
        try:
            store.update_with_history(key, updates, reason, action, changed_by)
        except TrustLedgerError as error:
            logger.error("Could not update the verification of %s: %s", key, error)
            result.failed.append((key, error))
            continue
        result.succeeded.append(key)

    logger.info(
        "Batch update (%s, %s): %s succeeded, %s failed.",
        reason,
        action,
        result.success_count,
        result.failure_count,
    )
    return result


def downgrade_compromised_workflow(
    store: VerificationStore,
    workflow: str,
    changed_by: str | None = None,
    limit: int = 1000,
) -> BatchResult:
    """Mark every version attested by a compromised workflow as failed.

    Versions whose attestation URL names ``workflow`` and whose status is not already ``failed``
    are downgraded with the reason ``compromised_workflow`` and the action ``verification_downgraded``.
    Running it again after a partial failure only retries the versions that are left.

    Parameters
    ----------
    store : VerificationStore
        The verification store.
    workflow : str
        The compromised workflow, e.g. ``owner/repo/.github/workflows/build.yml``.
    changed_by : str | None
        The actor recorded in the ledger.
    limit : int
        The maximum number of versions handled in one run.

    Returns
    -------
    BatchResult
        The downgraded versions and the failures.
    """
    records = store.find_by_workflow(workflow, limit, exclude_status=VerificationStatus.FAILED)
    keys = [record.key for record in records]
    logger.info("Found %s versions attested by the compromised workflow %s.", len(keys), workflow)

    return downgrade_records(
        store,
        keys,
        {
            "verification_status": VerificationStatus.FAILED,
            "verification_notes": f"Attested by the compromised workflow {workflow}.",
        },
        ChangeReason.COMPROMISED_WORKFLOW,
        ActionTaken.VERIFICATION_DOWNGRADED,
        changed_by,
    )
