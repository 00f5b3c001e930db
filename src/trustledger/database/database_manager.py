# Copyright (c) 2022 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This DatabaseManager module handles the connection to the verification database."""
import functools
import logging
import os
import typing
from collections.abc import Iterator
from contextlib import contextmanager

import sqlalchemy.exc
import sqlalchemy.orm.exc
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from trustledger.config.defaults import defaults
from trustledger.config.global_config import global_config
from trustledger.errors import ConcurrentUpdateError, PersistenceError

logger: logging.Logger = logging.getLogger(__name__)


class ORMBase(DeclarativeBase):
    """ORM base class."""


class DatabaseManager:
    """This class handles and manages the connection to the database during the session."""

    def __init__(self, db_path: str, base: type[DeclarativeBase] = ORMBase):
        """Initialize instance.

        Parameters
        ----------
        db_path : str
            The path to the target SQLite database, ``:memory:`` for a private in-memory
            database, or a full SQLAlchemy URL such as ``postgresql+psycopg://...``.
        base : type[DeclarativeBase]
            The declarative base whose tables are managed.
        """
        if "://" in db_path:
            self.engine = create_engine(db_path, echo=False)
        elif db_path == ":memory:":
            # All sessions must share the single connection that holds the in-memory database.
            self.engine = create_engine(
                "sqlite+pysqlite://",
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(f"sqlite+pysqlite:///{db_path}", echo=False)
        self.db_name = db_path
        self._base = base
        self.session_factory = sessionmaker(self.engine, expire_on_commit=False)

    def create_tables(self) -> None:
        """Create all tables known to the declarative base if they do not exist.

        Raises
        ------
        PersistenceError
            If the tables cannot be created.
        """
        try:
            self._base.metadata.create_all(self.engine, checkfirst=True)
        except sqlalchemy.exc.SQLAlchemyError as error:
            logger.error("Database error on create tables %s", error)
            raise PersistenceError(f"Cannot create tables in {self.db_name}.") from error

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Open a session and run the enclosed block as one transaction.

        The transaction commits when the block exits normally and rolls back otherwise.
        SQLAlchemy errors are re-raised as :class:`PersistenceError`.

        Yields
        ------
        Session
            The session bound to the transaction.
        """
        try:
            with self.session_factory() as session, session.begin():
                yield session
        except sqlalchemy.orm.exc.StaleDataError as error:
            logger.error("Concurrent modification detected on %s: %s", self.db_name, error)
            raise ConcurrentUpdateError(str(error)) from error
        except sqlalchemy.exc.SQLAlchemyError as error:
            logger.error("Database transaction on %s failed: %s", self.db_name, error)
            raise PersistenceError(str(error)) from error


class cache_return:  # pylint: disable=invalid-name # noqa: N801
    """The decorator to create a singleton return value."""

    def __init__(self, function: typing.Callable) -> None:
        functools.update_wrapper(self, function)
        self.function = function

    def __call__(self, *args: typing.Any, **kwargs: typing.Any) -> typing.Any:
        """Store or get the cached function return value."""
        try:
            return self.return_value  # type: ignore[has-type]
        except AttributeError:
            self.return_value = self.function(*args, **kwargs)  # pylint: disable=attribute-defined-outside-init
            return self.return_value

    def clear(self) -> None:
        """Remove the cached return value."""
        try:
            delattr(self, "return_value")
        except AttributeError:
            logger.debug("No cached return value to remove.")


@cache_return
def get_db_manager() -> DatabaseManager:
    """
    Get the database manager singleton object.

    The database is ``global_config.database`` if set, otherwise the ``[database] db_name``
    file inside the output directory.

    Returns
    -------
    DatabaseManager
        The database manager singleton object.
    """
    db_path = global_config.database or os.path.join(
        global_config.output_path, defaults.get("database", "db_name", fallback="trustledger.db")
    )
    db_man = DatabaseManager(db_path)
    db_man.create_tables()
    return db_man
