# Copyright (c) 2023 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""
ORM Table definitions used by trustledger.

* ``jars`` is the artifact catalog of the repository. Only the columns read by the
  verification core are mapped.
* ``jar_verifications`` holds the current verification state of each jar version.
* ``jar_verification_history`` is the append-only ledger of every verification change.
* ``group_settings`` holds the minimum verification policy of each group.
"""
import logging
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, Index, Integer, String, UniqueConstraint, event
from sqlalchemy.orm import Mapped, Mapper, mapped_column

from trustledger.database.database_manager import ORMBase
from trustledger.database.db_custom_types import RFC3339DateTime, WireTokenType
from trustledger.errors import LedgerImmutableError
from trustledger.verification import ArtifactKey
from trustledger.verification.enums import ActionTaken, ChangeReason, VerificationMethod, VerificationStatus

logger: logging.Logger = logging.getLogger(__name__)


class ArtifactKeyMixin:
    """The SQLAlchemy mixin for the (group, artifact, version) coordinate of a jar."""

    #: The Maven group of the jar.
    group_name: Mapped[str] = mapped_column(String, nullable=False)

    #: The artifact name of the jar.
    jar_name: Mapped[str] = mapped_column(String, nullable=False)

    #: The version of the jar.
    version: Mapped[str] = mapped_column(String, nullable=False)

    @property
    def key(self) -> ArtifactKey:
        """Return the artifact key of this row."""
        return ArtifactKey(group_name=self.group_name, jar_name=self.jar_name, version=self.version)


class VerificationFieldsMixin:
    """The SQLAlchemy mixin for the descriptive fields shared by the current state and the ledger."""

    #: The verification status.
    verification_status: Mapped[VerificationStatus] = mapped_column(
        WireTokenType(VerificationStatus), nullable=False
    )

    #: The method by which provenance was established, ranked by the trust hierarchy.
    verification_method: Mapped[VerificationMethod | None] = mapped_column(
        WireTokenType(VerificationMethod), nullable=True
    )

    #: The URL of the source repository.
    repo_url: Mapped[str | None] = mapped_column(String, nullable=True)

    #: The commit the jar was built from.
    commit_sha: Mapped[str | None] = mapped_column(String, nullable=True)

    #: The tag the jar was built from.
    commit_tag: Mapped[str | None] = mapped_column(String, nullable=True)

    #: The location of the build attestation.
    attestation_url: Mapped[str | None] = mapped_column(String, nullable=True)

    #: The location of a script that reproduces the build.
    reproducibility_script_url: Mapped[str | None] = mapped_column(String, nullable=True)

    #: Free form notes.
    verification_notes: Mapped[str | None] = mapped_column(String, nullable=True)


#: The mutable fields of a verification record. Upserts overwrite all of them.
VERIFICATION_FIELDS = (
    "verification_status",
    "verification_method",
    "repo_url",
    "commit_sha",
    "commit_tag",
    "attestation_url",
    "reproducibility_script_url",
    "verification_notes",
)


def _token_value(value: Any) -> Any:
    """Return the wire string of a token, or the value unchanged."""
    return value.value if hasattr(value, "value") else value


class Jar(ArtifactKeyMixin, ORMBase):
    """ORM Class for a jar version published to the repository."""

    __tablename__ = "jars"

    #: The primary key.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)  # noqa: A003

    #: The time the version was published.
    created: Mapped[datetime] = mapped_column(RFC3339DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("group_name", "jar_name", "version", name="jars_gav_unique"),
        Index("jars_created_idx", "created"),
    )


class JarVerification(ArtifactKeyMixin, VerificationFieldsMixin, ORMBase):
    """ORM Class for the current verification state of a jar version.

    This is the newest ledger entry of the key, materialized for fast lookup.
    """

    __tablename__ = "jar_verifications"

    #: The primary key.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)  # noqa: A003

    #: The time of the last write.
    verified_at: Mapped[datetime] = mapped_column(RFC3339DateTime, nullable=False)

    #: Incremented on every write. Updates check it to detect a concurrent writer.
    revision: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("group_name", "jar_name", "version", name="jar_verifications_gav_unique"),
        Index("jar_verifications_idx0", "group_name", "jar_name"),
        Index("jar_verifications_idx1", "verification_status"),
    )

    __mapper_args__ = {"version_id_col": revision}

    def get_dict(self) -> dict:
        """Return the record as a JSON serializable dictionary."""
        result: dict = {"group_name": self.group_name, "jar_name": self.jar_name, "version": self.version}
        for field_name in VERIFICATION_FIELDS:
            result[field_name] = _token_value(getattr(self, field_name))
        result["verified_at"] = self.verified_at.isoformat() if self.verified_at else None
        return result


class JarVerificationHistory(ArtifactKeyMixin, VerificationFieldsMixin, ORMBase):
    """ORM Class for an immutable entry of the verification ledger."""

    __tablename__ = "jar_verification_history"

    #: The primary key. It also orders entries written within the same instant.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)  # noqa: A003

    #: Why the verification state changed.
    change_reason: Mapped[ChangeReason] = mapped_column(WireTokenType(ChangeReason), nullable=False)

    #: What action accompanied the change.
    action_taken: Mapped[ActionTaken] = mapped_column(WireTokenType(ActionTaken), nullable=False)

    #: The user or service that made the change.
    changed_by: Mapped[str | None] = mapped_column(String, nullable=True)

    #: The time of the change.
    changed_at: Mapped[datetime] = mapped_column(RFC3339DateTime, nullable=False)

    __table_args__ = (
        Index("jar_verification_history_gav_idx", "group_name", "jar_name", "version"),
        Index("jar_verification_history_changed_at_idx", "changed_at"),
        Index("jar_verification_history_status_idx", "verification_status"),
        Index("jar_verification_history_reason_idx", "change_reason"),
    )

    def get_dict(self) -> dict:
        """Return the ledger entry as a JSON serializable dictionary."""
        result: dict = {"group_name": self.group_name, "jar_name": self.jar_name, "version": self.version}
        for field_name in VERIFICATION_FIELDS:
            result[field_name] = _token_value(getattr(self, field_name))
        result["change_reason"] = _token_value(self.change_reason)
        result["action_taken"] = _token_value(self.action_taken)
        result["changed_by"] = self.changed_by
        result["changed_at"] = self.changed_at.isoformat() if self.changed_at else None
        return result


@event.listens_for(JarVerificationHistory, "before_update")
def _refuse_ledger_update(mapper: Mapper, connection: Any, target: JarVerificationHistory) -> None:
    raise LedgerImmutableError(f"Ledger entry {target.id} for {target.key} cannot be modified.")


@event.listens_for(JarVerificationHistory, "before_delete")
def _refuse_ledger_delete(mapper: Mapper, connection: Any, target: JarVerificationHistory) -> None:
    raise LedgerImmutableError(f"Ledger entry {target.id} for {target.key} cannot be deleted.")


class GroupSettings(ORMBase):
    """ORM Class for the verification policy of a group."""

    __tablename__ = "group_settings"

    #: The group name.
    group_name: Mapped[str] = mapped_column(String, primary_key=True)

    #: The lowest trust a group accepts for new publishes. NULL means no policy is set.
    minimum_verification_method: Mapped[VerificationMethod | None] = mapped_column(
        WireTokenType(VerificationMethod), nullable=True, default=None
    )

    #: True if the policy was inferred from the project history rather than set by an administrator.
    verification_legacy_provenance: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    #: The time the policy was last written.
    verification_last_analyzed: Mapped[datetime | None] = mapped_column(RFC3339DateTime, nullable=True)
