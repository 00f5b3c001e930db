# Copyright (c) 2024 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module infers a minimum verification policy for projects published before verification existed.

The analysis looks at the most recent versions of a jar and how they were verified. Missing or
ambiguous evidence never raises the inferred requirement: without enough data the result is
always ``unverified-legacy-provenance``.
"""

import abc
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from trustledger.config.defaults import defaults
from trustledger.errors import ConfigurationError
from trustledger.verification import ArtifactKey
from trustledger.verification.catalog import ArtifactCatalog
from trustledger.verification.enums import VerificationMethod, VerificationStatus
from trustledger.verification.group_policy import GroupPolicyStore
from trustledger.verification.verification_store import VerificationStore

logger: logging.Logger = logging.getLogger(__name__)


class ProvenancePattern(str, Enum):
    """The verification pattern that dominates the history of a project."""

    SOURCE_MATCH = "source-match"
    SOURCE_MATCH_APPROX = "source-match-approx"
    PARTIAL_HAS_BUILD_ARTIFACTS = "partial-has-build-artifacts"
    ATTESTATION_REQUIRED = "attestation-required"
    UNVERIFIED_LEGACY_PROVENANCE = "unverified-legacy-provenance"


#: The minimum verification method required for each pattern.
PATTERN_MINIMUM_METHOD: dict[ProvenancePattern, VerificationMethod] = {
    ProvenancePattern.SOURCE_MATCH: VerificationMethod.SOURCE_MATCH,
    ProvenancePattern.SOURCE_MATCH_APPROX: VerificationMethod.SOURCE_MATCH_APPROX,
    ProvenancePattern.PARTIAL_HAS_BUILD_ARTIFACTS: VerificationMethod.PARTIAL_HAS_BUILD_ARTIFACTS,
    ProvenancePattern.ATTESTATION_REQUIRED: VerificationMethod.ATTESTATION,
    ProvenancePattern.UNVERIFIED_LEGACY_PROVENANCE: VerificationMethod.UNVERIFIED_LEGACY_PROVENANCE,
}

PATTERN_RECOMMENDATION: dict[ProvenancePattern, str] = {
    ProvenancePattern.SOURCE_MATCH: (
        "Project has consistently deployed source-only artifacts. New versions should be source-only."
    ),
    ProvenancePattern.SOURCE_MATCH_APPROX: (
        "Project has deployed reproducible source artifacts with minor metadata differences. This is acceptable."
    ),
    ProvenancePattern.PARTIAL_HAS_BUILD_ARTIFACTS: (
        "Project includes compiled code alongside its source. Consider using build attestation for higher trust."
    ),
    ProvenancePattern.ATTESTATION_REQUIRED: "Project cannot be verified from source. Build attestation is required.",
    ProvenancePattern.UNVERIFIED_LEGACY_PROVENANCE: (
        "Insufficient data to determine verification pattern. Legacy provenance as unverified."
    ),
}


@dataclass(frozen=True)
class ArtifactFacts:
    """What a content analysis found out about one artifact."""

    #: The artifact contains no compiled classes.
    source_only: bool = False

    #: All source files match the repository at the tagged commit.
    source_matches: bool = False

    #: The only differences are timestamps or manifest entries.
    metadata_only_diff: bool = False

    #: The artifact contains compiled classes.
    has_build_artifacts: bool = True

    #: The compiled classes come from the project's own source.
    class_from_project: bool = False

    #: False if the analysis could not be run. The other fields are meaningless in that case.
    analysis_available: bool = False


class ArtifactAnalyzer(abc.ABC):
    """The base class for comparing the contents of a published artifact with its source repository."""

    @abc.abstractmethod
    def analyze(self, key: ArtifactKey, repo_url: str | None, commit_tag: str | None) -> ArtifactFacts:
        """Analyze the artifact of ``key`` against the repository at ``commit_tag``.

        Parameters
        ----------
        key : ArtifactKey
            The jar version.
        repo_url : str | None
            The source repository, if known.
        commit_tag : str | None
            The tag the jar claims to be built from, if known.

        Returns
        -------
        ArtifactFacts
            The findings. Implementations return facts with ``analysis_available=False``
            rather than raising when the analysis cannot be run.
        """


class UnavailableArtifactAnalyzer(ArtifactAnalyzer):
    """An analyzer for deployments without content analysis. It reports nothing as known."""

    def analyze(self, key: ArtifactKey, repo_url: str | None, commit_tag: str | None) -> ArtifactFacts:
        """Return the conservative facts of an artifact that was not analyzed."""
        return ArtifactFacts()


def method_from_artifact_facts(facts: ArtifactFacts) -> VerificationMethod | None:
    """Return the verification method that the content analysis of an artifact supports.

    Returns
    -------
    VerificationMethod | None
        The method, or None if the facts do not establish a source match.
    """
    if not facts.analysis_available or not facts.source_matches:
        return None
    if facts.source_only and not facts.metadata_only_diff:
        return VerificationMethod.SOURCE_MATCH
    if facts.source_only:
        return VerificationMethod.SOURCE_MATCH_APPROX
    return VerificationMethod.PARTIAL_HAS_BUILD_ARTIFACTS


def pattern_from_methods(methods: Sequence[VerificationMethod], dominance_threshold: float) -> ProvenancePattern:
    """Return the pattern that dominates a list of verification methods.

    A pattern dominates when strictly more than ``dominance_threshold`` of the methods belong to it.
    Exact source matches win over approximate ones, which win over attestations.

    Examples
    --------
    >>> pattern_from_methods([VerificationMethod.SOURCE_MATCH] * 3, 0.6)
    <ProvenancePattern.SOURCE_MATCH: 'source-match'>
    >>> pattern_from_methods([], 0.6)
    <ProvenancePattern.UNVERIFIED_LEGACY_PROVENANCE: 'unverified-legacy-provenance'>
    """
    total = len(methods)
    if total == 0:
        return ProvenancePattern.UNVERIFIED_LEGACY_PROVENANCE

    source_match_count = sum(1 for method in methods if method == VerificationMethod.SOURCE_MATCH)
    approx_count = sum(1 for method in methods if method == VerificationMethod.SOURCE_MATCH_APPROX)
    attestation_count = sum(1 for method in methods if method.is_attestation)

    if source_match_count > dominance_threshold * total:
        return ProvenancePattern.SOURCE_MATCH
    if approx_count > dominance_threshold * total:
        return ProvenancePattern.SOURCE_MATCH_APPROX
    if attestation_count > dominance_threshold * total:
        return ProvenancePattern.ATTESTATION_REQUIRED
    return ProvenancePattern.UNVERIFIED_LEGACY_PROVENANCE


@dataclass(frozen=True)
class VersionAnalysis:
    """How one recent version of a project was classified."""

    version: str

    #: True if the version counts as analyzed.
    verified: bool

    #: The verification method of an analyzed version.
    method: VerificationMethod | None = None

    #: The content analysis facts, for versions without a usable verification record.
    facts: ArtifactFacts | None = None

    def get_dict(self) -> dict:
        """Return the classification as a dictionary."""
        return {
            "version": self.version,
            "verified": self.verified,
            "method": self.method.value if self.method else None,
            "analysis_available": self.verified or bool(self.facts and self.facts.analysis_available),
        }


@dataclass(frozen=True)
class LegacyProvenanceAnalysis:
    """The outcome of analyzing the history of a project."""

    group_name: str
    jar_name: str
    pattern: ProvenancePattern
    minimum_method: VerificationMethod
    recommendation: str

    #: The number of versions examined.
    analyzed_count: int

    #: The number of examined versions that count as analyzed.
    verified_count: int

    has_sufficient_data: bool
    analyses: list[VersionAnalysis] = field(default_factory=list)

    def get_dict(self) -> dict:
        """Return the analysis as a JSON serializable dictionary."""
        return {
            "group_name": self.group_name,
            "jar_name": self.jar_name,
            "pattern": self.pattern.value,
            "minimum_method": self.minimum_method.value,
            "recommendation": self.recommendation,
            "analyzed_count": self.analyzed_count,
            "verified_count": self.verified_count,
            "has_sufficient_data": self.has_sufficient_data,
            "analyses": [analysis.get_dict() for analysis in self.analyses],
        }


class LegacyProvenanceAnalyzer:
    """Infers and persists the group policy of a project from its deployment history."""

    def __init__(
        self,
        store: VerificationStore,
        catalog: ArtifactCatalog,
        policy_store: GroupPolicyStore,
        artifact_analyzer: ArtifactAnalyzer | None = None,
    ) -> None:
        """Initialize instance.

        Parameters
        ----------
        store : VerificationStore
            The verification records of the project.
        catalog : ArtifactCatalog
            The published versions of the project.
        policy_store : GroupPolicyStore
            Where the inferred policy is persisted.
        artifact_analyzer : ArtifactAnalyzer | None
            The content analysis for versions without a verification record.
            Defaults to :class:`UnavailableArtifactAnalyzer`.
        """
        self.store = store
        self.catalog = catalog
        self.policy_store = policy_store
        self.artifact_analyzer = artifact_analyzer or UnavailableArtifactAnalyzer()
        self.recent_versions_window = 5
        self.min_analyzed_versions = 3
        self.min_examined_versions = 5
        self.dominance_threshold = 0.6

    def load_defaults(self) -> None:
        """Load the default values from defaults.ini.

        Raises
        ------
        ConfigurationError
            If a value in the ``[legacy_provenance]`` section is invalid.
        """
        if "legacy_provenance" not in defaults:
            return
        section = defaults["legacy_provenance"]
        try:
            self.recent_versions_window = section.getint("recent_versions_window", fallback=5)
            self.min_analyzed_versions = section.getint("min_analyzed_versions", fallback=3)
            self.min_examined_versions = section.getint("min_examined_versions", fallback=5)
            self.dominance_threshold = section.getfloat("dominance_threshold", fallback=0.6)
        except ValueError as error:
            raise ConfigurationError(f"Invalid value in section [legacy_provenance]: {error}") from error

        if not 0.0 <= self.dominance_threshold < 1.0:
            raise ConfigurationError("The dominance_threshold in section [legacy_provenance] must be in [0, 1).")

    def analyze(self, group_name: str, jar_name: str) -> LegacyProvenanceAnalysis:
        """Infer the verification pattern of a project without persisting anything.

        Parameters
        ----------
        group_name : str
            The group of the project.
        jar_name : str
            The jar of the project.

        Returns
        -------
        LegacyProvenanceAnalysis
            The inferred pattern and the evidence it is based on.
        """
        recent_versions = self.catalog.find_recent_versions(group_name, jar_name, self.recent_versions_window)
        analyses = [
            self._classify_version(ArtifactKey(group_name=group_name, jar_name=jar_name, version=jar.version))
            for jar in recent_versions
        ]

        verified_count = sum(1 for analysis in analyses if analysis.verified)
        has_sufficient_data = (
            verified_count >= self.min_analyzed_versions or len(analyses) >= self.min_examined_versions
        )

        if has_sufficient_data:
            methods = [analysis.method for analysis in analyses if analysis.verified and analysis.method]
            pattern = pattern_from_methods(methods, self.dominance_threshold)
        else:
            logger.debug(
                "Only %s of %s recent versions of %s/%s are analyzed. Not enough to infer a pattern.",
                verified_count,
                len(analyses),
                group_name,
                jar_name,
            )
            pattern = ProvenancePattern.UNVERIFIED_LEGACY_PROVENANCE

        return LegacyProvenanceAnalysis(
            group_name=group_name,
            jar_name=jar_name,
            pattern=pattern,
            minimum_method=PATTERN_MINIMUM_METHOD[pattern],
            recommendation=PATTERN_RECOMMENDATION[pattern],
            analyzed_count=len(analyses),
            verified_count=verified_count,
            has_sufficient_data=has_sufficient_data,
            analyses=analyses,
        )

    def apply(self, group_name: str, jar_name: str) -> LegacyProvenanceAnalysis:
        """Analyze a project and persist the inferred minimum method as a legacy provenance group policy."""
        analysis = self.analyze(group_name, jar_name)
        self.policy_store.set_policy(group_name, analysis.minimum_method, legacy_provenance=True)
        logger.info(
            "Legacy provenance of %s/%s: %s (%s of %s versions analyzed). %s",
            group_name,
            jar_name,
            analysis.pattern.value,
            analysis.verified_count,
            analysis.analyzed_count,
            analysis.recommendation,
        )
        return analysis

    def _classify_version(self, key: ArtifactKey) -> VersionAnalysis:
        record = self.store.find_current(key)
        if (
            record is not None
            and record.verification_status == VerificationStatus.VERIFIED
            and record.verification_method is not None
        ):
            return VersionAnalysis(version=key.version, verified=True, method=record.verification_method)

        facts = self.artifact_analyzer.analyze(
            key,
            record.repo_url if record else None,
            record.commit_tag if record else None,
        )
        method = method_from_artifact_facts(facts)
        return VersionAnalysis(version=key.version, verified=method is not None, method=method, facts=facts)
