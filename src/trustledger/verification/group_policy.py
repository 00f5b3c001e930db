# Copyright (c) 2024 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module stores the minimum verification policy of each group."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select

from trustledger.database.database_manager import DatabaseManager
from trustledger.database.table_definitions import GroupSettings
from trustledger.util import utc_now
from trustledger.verification.enums import VerificationMethod

logger: logging.Logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroupPolicy:
    """The verification policy of a group."""

    group_name: str

    #: The lowest trust accepted for new publishes. None means no policy is set.
    minimum_verification_method: VerificationMethod | None

    #: True if the policy was inferred from the project history.
    legacy_provenance: bool

    #: The time the policy was last written.
    last_analyzed: datetime | None

    def get_dict(self) -> dict:
        """Return the policy as a JSON serializable dictionary."""
        method = self.minimum_verification_method
        return {
            "group_name": self.group_name,
            "minimum_verification_method": method.value if method else None,
            "verification_legacy_provenance": self.legacy_provenance,
            "verification_last_analyzed": self.last_analyzed.isoformat() if self.last_analyzed else None,
        }


class GroupPolicyStore:
    """Reads and writes group policies. Rows are overwritten, never deleted."""

    def __init__(self, db_man: DatabaseManager, clock: Callable[[], datetime] = utc_now) -> None:
        self.db_man = db_man
        self.clock = clock

    def get_policy(self, group_name: str) -> GroupPolicy | None:
        """Return the policy of a group, or None if the group has no policy row."""
        with self.db_man.transaction() as session:
            settings = session.get(GroupSettings, group_name)
            if settings is None:
                return None
            return GroupPolicy(
                group_name=settings.group_name,
                minimum_verification_method=settings.minimum_verification_method,
                legacy_provenance=bool(settings.verification_legacy_provenance),
                last_analyzed=settings.verification_last_analyzed,
            )

    def get_minimum_method(self, group_name: str) -> VerificationMethod | None:
        """Return the minimum verification method of a group, or None if it is not set."""
        statement = select(GroupSettings.minimum_verification_method).where(GroupSettings.group_name == group_name)
        with self.db_man.transaction() as session:
            return session.execute(statement).scalar_one_or_none()

    def set_policy(
        self, group_name: str, minimum_method: VerificationMethod | str | None, legacy_provenance: bool
    ) -> GroupPolicy:
        """Create or overwrite the policy of a group and stamp it with the current time.

        Raises
        ------
        InvalidIdentifierError
            If ``minimum_method`` is not a known method.
        PersistenceError
            If the write fails.
        """
        method = VerificationMethod.from_wire(minimum_method) if minimum_method is not None else None
        now = self.clock()
        with self.db_man.transaction() as session:
            settings = session.get(GroupSettings, group_name, with_for_update=True)
            if settings is None:
                settings = GroupSettings(group_name=group_name)
                session.add(settings)
            settings.minimum_verification_method = method
            settings.verification_legacy_provenance = legacy_provenance
            settings.verification_last_analyzed = now

        logger.info(
            "Set the minimum verification method of group %s to %s (legacy provenance: %s).",
            group_name,
            method,
            legacy_provenance,
        )
        return GroupPolicy(
            group_name=group_name,
            minimum_verification_method=method,
            legacy_provenance=legacy_provenance,
            last_analyzed=now,
        )
