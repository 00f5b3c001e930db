# Copyright (c) 2024 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module ranks verification methods by how much trust they establish."""

import logging
from collections.abc import Iterable, Mapping

from trustledger.config.defaults import defaults
from trustledger.errors import ConfigurationError
from trustledger.verification.enums import VerificationMethod

logger: logging.Logger = logging.getLogger(__name__)

#: The built-in rank table, from the most to the least trusted method. Equal ranks are equally trusted.
DEFAULT_TRUST_RANKS: tuple[tuple[VerificationMethod, int], ...] = (
    (VerificationMethod.ATTESTATION_GITHUB_TRUSTED, 100),
    (VerificationMethod.ATTESTATION_GITLAB_SLSA, 90),
    (VerificationMethod.SOURCE_MATCH, 85),
    (VerificationMethod.ATTESTATION_CIRCLECI, 75),
    (VerificationMethod.ATTESTATION_JENKINS, 70),
    (VerificationMethod.ATTESTATION_OTHER_CI, 65),
    (VerificationMethod.SOURCE_MATCH_APPROX, 60),
    (VerificationMethod.ATTESTATION, 60),
    (VerificationMethod.PARTIAL_HAS_BUILD_ARTIFACTS, 40),
    (VerificationMethod.MANUAL_VERIFIED, 35),
    (VerificationMethod.VERIFIED_RETROSPECTIVE, 35),
    (VerificationMethod.MANUAL, 30),
    (VerificationMethod.UNVERIFIED_LEGACY_PROVENANCE, 10),
    (VerificationMethod.UNVERIFIED, 0),
)


class TrustHierarchy:
    """A rank table for verification methods.

    The table is plain data. Methods that are not in the table rank 0, the same as ``unverified``.
    """

    def __init__(self, ranks: Iterable[tuple[str, int]] | Mapping[str, int] = DEFAULT_TRUST_RANKS) -> None:
        """Initialize instance.

        Parameters
        ----------
        ranks : Iterable[tuple[str, int]] | Mapping[str, int]
            The method to rank pairs.
        """
        items = ranks.items() if isinstance(ranks, Mapping) else ranks
        self._ranks: dict[str, int] = {str(method): rank for method, rank in items}

    def load_defaults(self) -> None:
        """Merge the ``[trust.hierarchy]`` section of ``defaults.ini`` into the table.

        Raises
        ------
        ConfigurationError
            If a rank in the section is not an integer.
        """
        if "trust.hierarchy" not in defaults:
            return
        section = defaults["trust.hierarchy"]
        for method in section:
            try:
                self._ranks[method] = section.getint(method)
            except ValueError as error:
                raise ConfigurationError(
                    f"The trust rank of {method} in section [trust.hierarchy] must be an integer."
                ) from error
            logger.debug("Trust rank of %s set to %s from the defaults.", method, self._ranks[method])

    def rank(self, method: str | VerificationMethod | None) -> int:
        """Return the trust rank of a method.

        Parameters
        ----------
        method : str | VerificationMethod | None
            The method, as a member or as its wire string.

        Returns
        -------
        int
            The rank, or 0 if the method is unknown or None.
        """
        if method is None:
            return 0
        return self._ranks.get(str(method), 0)

    def meets_requirement(
        self, actual: str | VerificationMethod | None, required: str | VerificationMethod | None
    ) -> bool:
        """Return True if ``actual`` is at least as trusted as ``required``."""
        return self.rank(actual) >= self.rank(required)

    def ranked_methods(self) -> list[tuple[str, int]]:
        """Return the table sorted from the most to the least trusted method."""
        return sorted(self._ranks.items(), key=lambda item: item[1], reverse=True)


trust_hierarchy = TrustHierarchy()
"""The rank table used by the module level functions."""


def rank(method: str | VerificationMethod | None) -> int:
    """Return the trust rank of ``method`` in the global table."""
    return trust_hierarchy.rank(method)


def meets_requirement(actual: str | VerificationMethod | None, required: str | VerificationMethod | None) -> bool:
    """Return True if ``actual`` meets or exceeds ``required`` in the global table.

    Examples
    --------
    >>> meets_requirement("attestation-github-trusted", "source-match")
    True
    >>> meets_requirement("source-match-approx", "source-match")
    False
    """
    return trust_hierarchy.meets_requirement(actual, required)
