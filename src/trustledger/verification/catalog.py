# Copyright (c) 2024 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module provides read access to the catalog of published jar versions."""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import func, select

from trustledger.database.database_manager import DatabaseManager
from trustledger.database.table_definitions import Jar
from trustledger.util import utc_now
from trustledger.verification import ArtifactKey

logger: logging.Logger = logging.getLogger(__name__)


class ArtifactCatalog:
    """The catalog of jar versions known to the repository.

    The publish pipeline owns this table. The verification core only reads it, apart from
    :meth:`add_version`, which exists for imports and tests.
    """

    def __init__(self, db_man: DatabaseManager, clock: Callable[[], datetime] = utc_now) -> None:
        self.db_man = db_man
        self.clock = clock

    def add_version(self, key: ArtifactKey, created: datetime | None = None) -> Jar:
        """Record a published jar version."""
        jar = Jar(
            group_name=key.group_name,
            jar_name=key.jar_name,
            version=key.version,
            created=created or self.clock(),
        )
        with self.db_man.transaction() as session:
            session.add(jar)
        logger.debug("Added %s to the catalog.", key)
        return jar

    def find_recent_versions(self, group_name: str, jar_name: str, limit: int) -> list[Jar]:
        """Return up to ``limit`` versions of a jar, newest first."""
        statement = (
            select(Jar)
            .where(Jar.group_name == group_name, Jar.jar_name == jar_name)
            .order_by(Jar.created.desc(), Jar.id.desc())
            .limit(limit)
        )
        with self.db_man.transaction() as session:
            return list(session.execute(statement).scalars().all())

    def count_versions(self, group_name: str, jar_name: str) -> int:
        """Return the number of published versions of a jar."""
        statement = (
            select(func.count()).select_from(Jar).where(Jar.group_name == group_name, Jar.jar_name == jar_name)
        )
        with self.db_man.transaction() as session:
            return session.execute(statement).scalar_one()
