# Copyright (c) 2023 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module contains error classes for trustledger."""


class TrustLedgerError(Exception):
    """The base class for trustledger errors."""


class ConfigurationError(TrustLedgerError):
    """Happens when there is an error in the configuration (.ini) file."""


class PersistenceError(TrustLedgerError):
    """Happens when the underlying store cannot complete a read or a write.

    This is the only error class that store operations let escape. A missing record
    is never reported through this class.
    """


class ConcurrentUpdateError(PersistenceError):
    """Happens when a verification record changed between the read and the write of an update."""


class RecordNotFoundError(TrustLedgerError):
    """Happens when an update is requested for a verification record that does not exist."""


class LedgerImmutableError(TrustLedgerError):
    """Happens on any attempt to modify or delete an entry of the verification history."""


class InvalidIdentifierError(TrustLedgerError):
    """Happens when a status, method, reason or action string is not a known token."""


class InvalidArtifactKeyError(TrustLedgerError):
    """Happens when an artifact coordinate or PURL cannot be turned into a key."""
