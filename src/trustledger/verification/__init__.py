# Copyright (c) 2024 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This package contains the verification state, trust policy and deployment admission tools."""

from dataclasses import dataclass

from packageurl import PackageURL

from trustledger.errors import InvalidArtifactKeyError


@dataclass(frozen=True)
class ArtifactKey:
    """The (group, artifact, version) coordinate that identifies one published jar version."""

    group_name: str
    jar_name: str
    version: str

    @classmethod
    def from_purl(cls, purl_string: str) -> "ArtifactKey":
        """Create a key from a Maven PURL such as ``pkg:maven/org.example/lib@1.0.0``.

        Raises
        ------
        InvalidArtifactKeyError
            If the string is not a Maven PURL with a namespace and a version.
        """
        try:
            purl = PackageURL.from_string(purl_string)
        except ValueError as error:
            raise InvalidArtifactKeyError(f"Could not parse PURL {purl_string}: {error}") from error

        if purl.type != "maven" or not purl.namespace or not purl.version:
            raise InvalidArtifactKeyError(
                f"Expected a Maven PURL with a group and a version, got {purl_string}."
            )
        return cls(group_name=purl.namespace, jar_name=purl.name, version=purl.version)

    def to_purl(self) -> str:
        """Return the Maven PURL string of this key."""
        return PackageURL(type="maven", namespace=self.group_name, name=self.jar_name, version=self.version).to_string()

    def __str__(self) -> str:
        return f"{self.group_name}/{self.jar_name}@{self.version}"
