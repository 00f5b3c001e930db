# Copyright (c) 2024 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module computes security statistics over the verification ledger."""

import logging
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import func, select

from trustledger.config.defaults import defaults
from trustledger.database.database_manager import DatabaseManager
from trustledger.database.table_definitions import JarVerification, JarVerificationHistory
from trustledger.errors import ConfigurationError, InvalidIdentifierError
from trustledger.util import utc_now
from trustledger.verification.enums import ActionTaken, ChangeReason

logger: logging.Logger = logging.getLogger(__name__)

#: The change reasons that are reported as critical security events unless configured otherwise.
DEFAULT_CRITICAL_REASONS = (
    ChangeReason.COMPROMISED_WORKFLOW,
    ChangeReason.HIJACKED_REPO,
    ChangeReason.BACKDOOR_DETECTED,
    ChangeReason.TRANSITIVE_DEPENDENCY_COMPROMISED,
)


@dataclass(frozen=True)
class CriticalEvent:
    """A ledger entry with a critical change reason."""

    group_name: str
    jar_name: str
    version: str
    change_reason: ChangeReason
    action_taken: ActionTaken
    changed_at: datetime

    def get_dict(self) -> dict:
        """Return the event as a JSON serializable dictionary."""
        return {
            "group_name": self.group_name,
            "jar_name": self.jar_name,
            "version": self.version,
            "change_reason": self.change_reason.value,
            "action_taken": self.action_taken.value,
            "changed_at": self.changed_at.isoformat(),
        }


@dataclass(frozen=True)
class SecurityStatistics:
    """Counts of the ledger entries and the recent critical events."""

    #: The number of ledger entries per change reason, most frequent first.
    reason_counts: dict[str, int]

    #: The number of ledger entries per action, most frequent first.
    action_counts: dict[str, int]

    #: The critical events within the window, newest first.
    recent_critical_events: list[CriticalEvent]

    total_history_entries: int

    def get_dict(self) -> dict:
        """Return the statistics as a JSON serializable dictionary."""
        return {
            "reason_counts": self.reason_counts,
            "action_counts": self.action_counts,
            "recent_critical_events": [event.get_dict() for event in self.recent_critical_events],
            "total_history_entries": self.total_history_entries,
        }


@dataclass(frozen=True)
class ImpactedGroup:
    """A group and the number of its verification downgrades."""

    group_name: str
    downgrade_count: int

    def get_dict(self) -> dict:
        """Return the group as a dictionary."""
        return {"group_name": self.group_name, "downgrade_count": self.downgrade_count}


@dataclass(frozen=True)
class SecurityReport:
    """All security statistics of the ledger at one point in time."""

    generated_at: datetime
    statistics: SecurityStatistics

    #: The number of critical events per UTC date, oldest first.
    compromise_trend: list[tuple[str, int]]

    #: The number of current verification records per status.
    verification_distribution: dict[str, int]

    most_impacted_groups: list[ImpactedGroup]
    trend_days: int = 30

    def get_dict(self) -> dict:
        """Return the report as a JSON serializable dictionary."""
        return {
            "generated_at": self.generated_at.isoformat(),
            "statistics": self.statistics.get_dict(),
            "trend_days": self.trend_days,
            "compromise_trend": [{"date": date, "count": count} for date, count in self.compromise_trend],
            "verification_distribution": self.verification_distribution,
            "most_impacted_groups": [group.get_dict() for group in self.most_impacted_groups],
        }


class SecurityReporting:
    """Computes security statistics over the verification ledger."""

    def __init__(self, db_man: DatabaseManager, clock: Callable[[], datetime] = utc_now) -> None:
        self.db_man = db_man
        self.clock = clock
        self.critical_reasons: list[ChangeReason] = list(DEFAULT_CRITICAL_REASONS)
        self.critical_window_days = 30
        self.critical_events_limit = 100
        self.impacted_groups_limit = 10

    def load_defaults(self) -> None:
        """Load the default values from defaults.ini.

        Raises
        ------
        ConfigurationError
            If a value in the ``[report]`` section is invalid.
        """
        if "report" not in defaults:
            return
        section = defaults["report"]
        try:
            reasons = defaults.get_list("report", "critical_reasons")
            if reasons:
                self.critical_reasons = [ChangeReason.from_wire(reason) for reason in reasons]
            self.critical_window_days = section.getint("critical_window_days", fallback=30)
            self.critical_events_limit = section.getint("critical_events_limit", fallback=100)
            self.impacted_groups_limit = section.getint("impacted_groups_limit", fallback=10)
        except (ValueError, InvalidIdentifierError) as error:
            raise ConfigurationError(f"Invalid value in section [report]: {error}") from error

    def get_security_statistics(self, now: datetime | None = None) -> SecurityStatistics:
        """Return the ledger entry counts and the critical events of the last ``critical_window_days`` days."""
        history = JarVerificationHistory
        cutoff = (now or self.clock()) - timedelta(days=self.critical_window_days)
        reason_count = func.count(history.id)
        action_count = func.count(history.id)

        with self.db_man.transaction() as session:
            reason_rows = session.execute(
                select(history.change_reason, reason_count)
                .group_by(history.change_reason)
                .order_by(reason_count.desc(), history.change_reason)
            ).all()
            action_rows = session.execute(
                select(history.action_taken, action_count)
                .group_by(history.action_taken)
                .order_by(action_count.desc(), history.action_taken)
            ).all()
            critical_rows = (
                session.execute(
                    select(history)
                    .where(history.change_reason.in_(self.critical_reasons), history.changed_at > cutoff)
                    .order_by(history.changed_at.desc(), history.id.desc())
                    .limit(self.critical_events_limit)
                )
                .scalars()
                .all()
            )

        reason_counts = {reason.value: count for reason, count in reason_rows}
        return SecurityStatistics(
            reason_counts=reason_counts,
            action_counts={action.value: count for action, count in action_rows},
            recent_critical_events=[
                CriticalEvent(
                    group_name=entry.group_name,
                    jar_name=entry.jar_name,
                    version=entry.version,
                    change_reason=entry.change_reason,
                    action_taken=entry.action_taken,
                    changed_at=entry.changed_at,
                )
                for entry in critical_rows
            ],
            total_history_entries=sum(reason_counts.values()),
        )

    def get_compromise_trend(self, days: int, now: datetime | None = None) -> list[tuple[str, int]]:
        """Return the number of critical events per UTC date over the last ``days`` days, oldest first."""
        history = JarVerificationHistory
        cutoff = (now or self.clock()) - timedelta(days=days)
        with self.db_man.transaction() as session:
            timestamps = (
                session.execute(
                    select(history.changed_at).where(
                        history.change_reason.in_(self.critical_reasons), history.changed_at > cutoff
                    )
                )
                .scalars()
                .all()
            )

        per_date = Counter(timestamp.date().isoformat() for timestamp in timestamps)
        return sorted(per_date.items())

    def get_verification_status_distribution(self) -> dict[str, int]:
        """Return the number of current verification records per status, most frequent first."""
        status_count = func.count(JarVerification.id)
        with self.db_man.transaction() as session:
            rows = session.execute(
                select(JarVerification.verification_status, status_count)
                .group_by(JarVerification.verification_status)
                .order_by(status_count.desc(), JarVerification.verification_status)
            ).all()
        return {status.value: count for status, count in rows}

    def get_most_impacted_groups(self, limit: int | None = None) -> list[ImpactedGroup]:
        """Return the groups with the most verification downgrades, most impacted first."""
        history = JarVerificationHistory
        downgrade_count = func.count(history.id)
        with self.db_man.transaction() as session:
            rows = session.execute(
                select(history.group_name, downgrade_count)
                .where(history.action_taken == ActionTaken.VERIFICATION_DOWNGRADED)
                .group_by(history.group_name)
                .order_by(downgrade_count.desc(), history.group_name)
                .limit(limit if limit is not None else self.impacted_groups_limit)
            ).all()
        return [ImpactedGroup(group_name=group_name, downgrade_count=count) for group_name, count in rows]

    def generate_security_report(self) -> SecurityReport:
        """Compute all security statistics at the current time."""
        now = self.clock()
        report = SecurityReport(
            generated_at=now,
            statistics=self.get_security_statistics(now),
            compromise_trend=self.get_compromise_trend(self.critical_window_days, now),
            verification_distribution=self.get_verification_status_distribution(),
            most_impacted_groups=self.get_most_impacted_groups(),
            trend_days=self.critical_window_days,
        )
        logger.info(
            "Generated the security report with %s ledger entries and %s recent critical events.",
            report.statistics.total_history_entries,
            len(report.statistics.recent_critical_events),
        )
        return report
