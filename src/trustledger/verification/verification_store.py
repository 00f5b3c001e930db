# Copyright (c) 2024 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module stores the current verification state of jar versions and its append-only history.

Every write to the current state appends a ledger entry in the same transaction. Either both
rows are written or neither is.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.orm import Session

from trustledger.database.database_manager import DatabaseManager
from trustledger.database.table_definitions import (
    VERIFICATION_FIELDS,
    Jar,
    JarVerification,
    JarVerificationHistory,
)
from trustledger.errors import InvalidIdentifierError, RecordNotFoundError
from trustledger.util import utc_now
from trustledger.verification import ArtifactKey
from trustledger.verification.enums import ActionTaken, ChangeReason, VerificationMethod, VerificationStatus

logger: logging.Logger = logging.getLogger(__name__)

#: The escape character of the LIKE patterns built from user input.
LIKE_ESCAPE = "\\"

#: The number of ledger entries returned when no limit is given.
DEFAULT_HISTORY_LIMIT = 100


@dataclass(frozen=True)
class VerificationMetrics:
    """Verification coverage of all versions of a jar."""

    #: The number of versions in the catalog.
    total_versions: int

    #: The number of versions whose current status is ``verified``.
    verified_count: int

    #: The number of versions with a verification record of any status.
    records_count: int

    #: ``verified_count / total_versions``, or 0.0 without versions.
    rate: float

    def get_dict(self) -> dict:
        """Return the metrics as a dictionary."""
        return {
            "total_versions": self.total_versions,
            "verified_count": self.verified_count,
            "verification_records_count": self.records_count,
            "verification_rate": self.rate,
        }


def normalize_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Check the field names of an update and convert the status and method to tokens.

    Parameters
    ----------
    fields : Mapping[str, Any]
        A mapping from verification field names to values.

    Returns
    -------
    dict[str, Any]
        The fields with ``verification_status`` and ``verification_method`` converted to enum members.

    Raises
    ------
    InvalidIdentifierError
        If a field name is unknown or a status or method string is not a known token.
    """
    unknown = set(fields) - set(VERIFICATION_FIELDS)
    if unknown:
        raise InvalidIdentifierError(f"Unknown verification fields: {', '.join(sorted(unknown))}.")

    result = dict(fields)
    if result.get("verification_status") is not None:
        result["verification_status"] = VerificationStatus.from_wire(result["verification_status"])
    if result.get("verification_method") is not None:
        result["verification_method"] = VerificationMethod.from_wire(result["verification_method"])
    return result


def _escape_like(text: str) -> str:
    return text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2).replace("%", f"{LIKE_ESCAPE}%").replace("_", f"{LIKE_ESCAPE}_")


def _where_key(model: type[JarVerification] | type[JarVerificationHistory], key: ArtifactKey) -> Any:
    return and_(
        model.group_name == key.group_name,
        model.jar_name == key.jar_name,
        model.version == key.version,
    )


class VerificationStore:
    """The current verification state of jar versions together with its history ledger."""

    def __init__(self, db_man: DatabaseManager, clock: Callable[[], datetime] = utc_now) -> None:
        """Initialize instance.

        Parameters
        ----------
        db_man : DatabaseManager
            The database holding the verification tables.
        clock : Callable[[], datetime]
            Returns the time recorded for writes.
        """
        self.db_man = db_man
        self.clock = clock

    # Writes.

    def upsert_verification(
        self,
        key: ArtifactKey,
        fields: Mapping[str, Any],
        change_reason: ChangeReason | str = ChangeReason.INITIAL_VERIFICATION,
        action_taken: ActionTaken | str = ActionTaken.NONE,
        changed_by: str | None = None,
    ) -> JarVerification:
        """Insert the current record of ``key`` or overwrite all of its mutable fields.

        Fields missing from ``fields`` are cleared. ``verified_at`` is set to the write time and
        the written state is appended to the ledger in the same transaction.

        Parameters
        ----------
        key : ArtifactKey
            The jar version.
        fields : Mapping[str, Any]
            The new verification fields. ``verification_status`` is required.
        change_reason : ChangeReason | str
            The reason recorded in the ledger.
        action_taken : ActionTaken | str
            The action recorded in the ledger.
        changed_by : str | None
            The actor recorded in the ledger.

        Returns
        -------
        JarVerification
            The current record after the write.

        Raises
        ------
        InvalidIdentifierError
            If a field name or token is unknown, or the status is missing.
        PersistenceError
            If the write fails. Nothing is written in that case.
        """
        values = normalize_fields(fields)
        if values.get("verification_status") is None:
            raise InvalidIdentifierError("A verification status is required.")
        reason = ChangeReason.from_wire(change_reason)
        action = ActionTaken.from_wire(action_taken)

        now = self.clock()
        with self.db_man.transaction() as session:
            record = self._select_current_for_update(session, key)
            if record is None:
                record = JarVerification(group_name=key.group_name, jar_name=key.jar_name, version=key.version)
                session.add(record)
                logger.debug("Creating the verification record of %s.", key)
            for field_name in VERIFICATION_FIELDS:
                setattr(record, field_name, values.get(field_name))
            record.verified_at = now
            session.add(self._ledger_entry(record, reason, action, changed_by, now))

        logger.info("Recorded %s verification of %s (%s).", record.verification_status, key, reason)
        return record

    def update_with_history(
        self,
        key: ArtifactKey,
        updates: Mapping[str, Any],
        change_reason: ChangeReason | str,
        action_taken: ActionTaken | str,
        changed_by: str | None = None,
    ) -> JarVerificationHistory:
        """Merge ``updates`` into the current record of ``key`` and append the merged state to the ledger.

        The read, the merge and both writes run in one transaction. The current row is locked on
        databases that support ``SELECT ... FOR UPDATE``, and the write is conditional on the
        revision that was read, so a concurrent writer makes this call fail instead of being lost.

        Parameters
        ----------
        key : ArtifactKey
            The jar version.
        updates : Mapping[str, Any]
            The verification fields to change. Other fields keep their current values.
        change_reason : ChangeReason | str
            The reason recorded in the ledger.
        action_taken : ActionTaken | str
            The action recorded in the ledger.
        changed_by : str | None
            The actor recorded in the ledger.

        Returns
        -------
        JarVerificationHistory
            The appended ledger entry.

        Raises
        ------
        RecordNotFoundError
            If ``key`` has no current record.
        ConcurrentUpdateError
            If the record changed after it was read.
        PersistenceError
            If either write fails. Nothing is written in that case.
        """
        values = normalize_fields(updates)
        if "verification_status" in values and values["verification_status"] is None:
            raise InvalidIdentifierError("The verification status cannot be cleared.")
        reason = ChangeReason.from_wire(change_reason)
        action = ActionTaken.from_wire(action_taken)

        now = self.clock()
        with self.db_man.transaction() as session:
            record = self._select_current_for_update(session, key)
            if record is None:
                raise RecordNotFoundError(f"No verification record exists for {key}.")
            previous_status = record.verification_status
            for field_name, value in values.items():
                setattr(record, field_name, value)
            entry = self._ledger_entry(record, reason, action, changed_by, now)
            session.add(entry)

        logger.info(
            "Updated the verification of %s from %s to %s (%s, %s, by %s).",
            key,
            previous_status,
            entry.verification_status,
            reason,
            action,
            changed_by or "unknown",
        )
        return entry

    # Current state queries.

    def find_current(self, key: ArtifactKey) -> JarVerification | None:
        """Return the current record of ``key``, or None if the key was never recorded."""
        statement = select(JarVerification).where(_where_key(JarVerification, key)).limit(1)
        with self.db_man.transaction() as session:
            return session.execute(statement).scalars().one_or_none()

    def find_all_for_jar(self, group_name: str, jar_name: str) -> list[JarVerification]:
        """Return the current records of all versions of a jar, most recently verified first."""
        statement = (
            select(JarVerification)
            .where(JarVerification.group_name == group_name, JarVerification.jar_name == jar_name)
            .order_by(JarVerification.verified_at.desc(), JarVerification.id.desc())
        )
        return self._fetch(statement)

    def find_recent_verified(self, limit: int) -> list[JarVerification]:
        """Return up to ``limit`` verified records, most recently verified first."""
        statement = (
            select(JarVerification)
            .where(JarVerification.verification_status == VerificationStatus.VERIFIED)
            .order_by(JarVerification.verified_at.desc(), JarVerification.id.desc())
            .limit(limit)
        )
        return self._fetch(statement)

    def find_by_workflow(
        self, workflow: str, limit: int, exclude_status: VerificationStatus | None = None
    ) -> list[JarVerification]:
        """Return up to ``limit`` records attested by ``workflow``, most recently verified first.

        The workflow must appear in the attestation URL as whole path segments: it starts the URL
        or follows a ``/``, and it ends the URL or is followed by ``@``. So ``acme/repo/...`` does
        not match an attestation of ``evilacme/repo/...``.

        Parameters
        ----------
        workflow : str
            The workflow path, e.g. ``owner/repo/.github/workflows/build.yml``.
        limit : int
            The maximum number of records.
        exclude_status : VerificationStatus | None
            Records with this status are skipped before the limit is applied.

        Returns
        -------
        list[JarVerification]
            The matching records.
        """
        url = JarVerification.attestation_url
        escaped = _escape_like(workflow)
        statement = select(JarVerification).where(
            or_(
                url == workflow,
                url.like(f"{escaped}@%", escape=LIKE_ESCAPE),
                url.like(f"%/{escaped}", escape=LIKE_ESCAPE),
                url.like(f"%/{escaped}@%", escape=LIKE_ESCAPE),
            )
        )
        if exclude_status is not None:
            statement = statement.where(JarVerification.verification_status != exclude_status)
        statement = statement.order_by(JarVerification.verified_at.desc(), JarVerification.id.desc()).limit(limit)
        return self._fetch(statement)

    def find_unverified(self, limit: int, offset: int = 0) -> list[ArtifactKey]:
        """Return catalog versions that have no verification record, newest first."""
        statement = (
            select(Jar.group_name, Jar.jar_name, Jar.version)
            .outerjoin(
                JarVerification,
                and_(
                    Jar.group_name == JarVerification.group_name,
                    Jar.jar_name == JarVerification.jar_name,
                    Jar.version == JarVerification.version,
                ),
            )
            .where(JarVerification.id.is_(None))
            .order_by(Jar.created.desc(), Jar.id.desc())
            .limit(limit)
            .offset(offset)
        )
        with self.db_man.transaction() as session:
            rows = session.execute(statement).all()
        return [ArtifactKey(group_name=row[0], jar_name=row[1], version=row[2]) for row in rows]

    def verification_metrics(self, group_name: str, jar_name: str) -> VerificationMetrics:
        """Return the verification coverage of all versions of a jar."""
        of_jar = and_(JarVerification.group_name == group_name, JarVerification.jar_name == jar_name)
        with self.db_man.transaction() as session:
            total_versions = session.execute(
                select(func.count()).select_from(Jar).where(Jar.group_name == group_name, Jar.jar_name == jar_name)
            ).scalar_one()
            verified_count = session.execute(
                select(func.count())
                .select_from(JarVerification)
                .where(of_jar, JarVerification.verification_status == VerificationStatus.VERIFIED)
            ).scalar_one()
            records_count = session.execute(
                select(func.count()).select_from(JarVerification).where(of_jar)
            ).scalar_one()

        return VerificationMetrics(
            total_versions=total_versions,
            verified_count=verified_count,
            records_count=records_count,
            rate=float(verified_count) / total_versions if total_versions > 0 else 0.0,
        )

    # Ledger queries.

    def find_history(self, key: ArtifactKey, limit: int = DEFAULT_HISTORY_LIMIT) -> list[JarVerificationHistory]:
        """Return up to ``limit`` ledger entries of ``key``, newest first."""
        statement = self._history_statement(_where_key(JarVerificationHistory, key), limit)
        return self._fetch(statement)

    def find_history_for_jar(
        self, group_name: str, jar_name: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[JarVerificationHistory]:
        """Return up to ``limit`` ledger entries of all versions of a jar, newest first."""
        condition = and_(JarVerificationHistory.group_name == group_name, JarVerificationHistory.jar_name == jar_name)
        return self._fetch(self._history_statement(condition, limit))

    def find_by_reason(self, change_reason: ChangeReason | str, limit: int) -> list[JarVerificationHistory]:
        """Return up to ``limit`` ledger entries with the given change reason, newest first."""
        reason = ChangeReason.from_wire(change_reason)
        return self._fetch(self._history_statement(JarVerificationHistory.change_reason == reason, limit))

    def find_by_action(self, action_taken: ActionTaken | str, limit: int) -> list[JarVerificationHistory]:
        """Return up to ``limit`` ledger entries with the given action, newest first."""
        action = ActionTaken.from_wire(action_taken)
        return self._fetch(self._history_statement(JarVerificationHistory.action_taken == action, limit))

    # Helpers.

    @staticmethod
    def _history_statement(condition: Any, limit: int) -> Select:
        return (
            select(JarVerificationHistory)
            .where(condition)
            .order_by(JarVerificationHistory.changed_at.desc(), JarVerificationHistory.id.desc())
            .limit(limit)
        )

    def _fetch(self, statement: Select) -> list:
        with self.db_man.transaction() as session:
            return list(session.execute(statement).scalars().all())

    @staticmethod
    def _select_current_for_update(session: Session, key: ArtifactKey) -> JarVerification | None:
        statement = select(JarVerification).where(_where_key(JarVerification, key)).with_for_update()
        return session.execute(statement).scalars().one_or_none()

    @staticmethod
    def _ledger_entry(
        record: JarVerification,
        change_reason: ChangeReason,
        action_taken: ActionTaken,
        changed_by: str | None,
        changed_at: datetime,
    ) -> JarVerificationHistory:
        entry = JarVerificationHistory(
            group_name=record.group_name,
            jar_name=record.jar_name,
            version=record.version,
            change_reason=change_reason,
            action_taken=action_taken,
            changed_by=changed_by,
            changed_at=changed_at,
        )
        for field_name in VERIFICATION_FIELDS:
            setattr(entry, field_name, getattr(record, field_name))
        return entry
