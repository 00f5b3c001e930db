# Copyright (c) 2024 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""Fixtures for tests."""
from collections.abc import Callable, Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

import trustledger
from trustledger.config.defaults import defaults, load_defaults
from trustledger.database.database_manager import DatabaseManager, get_db_manager
from trustledger.verification.catalog import ArtifactCatalog
from trustledger.verification.group_policy import GroupPolicyStore
from trustledger.verification.trust_hierarchy import trust_hierarchy
from trustledger.verification.verification_store import VerificationStore

# We need to pass fixture names as arguments to maintain an order.
# pylint: disable=redefined-outer-name

START_TIME = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """A clock that moves one second forward on every reading."""

    def __init__(self, start: datetime = START_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current

    def advance(self, delta: timedelta) -> None:
        """Move the clock forward by ``delta``."""
        self.now = self.now + delta


@pytest.fixture()
def test_dir() -> Path:
    """Set the root test_dir path.

    Returns
    -------
    Path
        The root path to the test directory.
    """
    return Path(__file__).parent


@pytest.fixture()
def trustledger_path() -> Path:
    """Set the trustledger package path.

    Returns
    -------
    Path
        The trustledger package path.
    """
    return Path(trustledger.TRUSTLEDGER_PATH)


@pytest.fixture(autouse=True)
def setup_test() -> Iterator[None]:
    """Load the values from defaults.ini and reset the shared state after each test."""
    load_defaults("")
    trust_hierarchy.load_defaults()
    yield
    defaults.clear()
    get_db_manager.clear()


@pytest.fixture()
def clock() -> FakeClock:
    """Return a deterministic clock."""
    return FakeClock()


@pytest.fixture()
def db_man() -> DatabaseManager:
    """Return a private in-memory database with all tables created."""
    db_manager = DatabaseManager(":memory:")
    db_manager.create_tables()
    return db_manager


@pytest.fixture()
def store(db_man: DatabaseManager, clock: Callable[[], datetime]) -> VerificationStore:
    """Return a verification store on the in-memory database."""
    return VerificationStore(db_man, clock)


@pytest.fixture()
def catalog(db_man: DatabaseManager, clock: Callable[[], datetime]) -> ArtifactCatalog:
    """Return an artifact catalog on the in-memory database."""
    return ArtifactCatalog(db_man, clock)


@pytest.fixture()
def policy_store(db_man: DatabaseManager, clock: Callable[[], datetime]) -> GroupPolicyStore:
    """Return a group policy store on the in-memory database."""
    return GroupPolicyStore(db_man, clock)
