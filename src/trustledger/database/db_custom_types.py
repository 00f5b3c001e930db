# Copyright (c) 2023 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module implements SQLAlchemy types for Python data types that cannot be automatically stored."""

import datetime
from typing import Any

from sqlalchemy import String, TypeDecorator

from trustledger.verification.enums import WireToken


class RFC3339DateTime(TypeDecorator):  # pylint: disable=W0223
    """
    SQLAlchemy column type to serialise datetime objects as RFC 3339 strings in UTC.

    Values are normalized to UTC with microsecond precision so that the stored strings sort in
    chronological order.

    https://docs.sqlalchemy.org/en/20/core/custom_types.html#store-timezone-aware-timestamps-as-timezone-naive-utc
    """

    # It is stored in the database as a string
    impl = String

    # To prevent Sphinx from rendering the docstrings for `cache_ok`, make this docstring private.
    #: :meta private:
    cache_ok = True

    def process_bind_param(self, value: None | Any, dialect: Any) -> None | str:
        """Process when storing a ``datetime`` object to the db.

        A naive ``datetime`` object is assumed to be in UTC.

        value: None | datetime.datetime
            The value being stored.
        """
        if value is None:
            return None
        if not isinstance(value, datetime.datetime):
            raise TypeError("RFC3339DateTime type expects a datetime object")
        if not value.tzinfo:
            value = value.replace(tzinfo=datetime.timezone.utc)
        return value.astimezone(datetime.timezone.utc).isoformat(timespec="microseconds")

    def process_result_value(self, value: None | str, dialect: Any) -> None | datetime.datetime:
        """Process when loading a ``datetime`` object from the db.

        value: None | str
            The value being loaded.
        """
        if value is None:
            return None
        result = datetime.datetime.fromisoformat(value)
        if result.tzinfo:
            return result
        return result.replace(tzinfo=datetime.timezone.utc)


class WireTokenType(TypeDecorator):  # pylint: disable=W0223
    """SQLAlchemy column type that stores a :class:`WireToken` member as its wire string.

    Unknown strings are rejected in both directions with
    :class:`trustledger.errors.InvalidIdentifierError`.
    """

    impl = String

    #: :meta private:
    cache_ok = True

    def __init__(self, enum_class: type[WireToken], *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.enum_class = enum_class

    def process_bind_param(self, value: None | str | WireToken, dialect: Any) -> None | str:
        """Process when storing a token to the db.

        value: None | str | WireToken
            The value being stored. Plain strings must be a known wire string.
        """
        if value is None:
            return None
        return self.enum_class.from_wire(value).value

    def process_result_value(self, value: None | str, dialect: Any) -> None | WireToken:
        """Process when loading a token from the db.

        value: None | str
            The value being loaded.
        """
        if value is None:
            return None
        return self.enum_class.from_wire(value)
