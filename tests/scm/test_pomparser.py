# Copyright (c) 2024 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module tests the POM parser."""

import pytest

from trustledger.scm.pomparser import find_element, find_text, parse_pom_string


@pytest.mark.parametrize(
    "pom_string",
    [
        "",
        "<project>",
        "not xml",
        # Entity expansion is refused by defusedxml.
        '<?xml version="1.0"?><!DOCTYPE lolz [<!ENTITY lol "lol">]><project>&lol;</project>',
    ],
)
def test_invalid_pom(pom_string: str) -> None:
    """Test that invalid or unsafe POMs are not parsed."""
    assert parse_pom_string(pom_string) is None


def test_find_element_with_namespace() -> None:
    """Test that elements are found with and without the Maven namespace."""
    pom = parse_pom_string('<project xmlns="http://maven.apache.org/POM/4.0.0"><scm><url>u</url></scm></project>')
    assert pom is not None
    scm = find_element(pom, "scm")
    assert scm is not None
    assert find_element(scm, "url") is not None
    assert find_element(scm, "tag") is None
    assert find_element(None, "scm") is None


@pytest.mark.parametrize(
    ("path", "expect"),
    [
        ("version", "2.1.0"),
        ("scm.tag", "release-2.1.0"),
        ("scm.url", "https://github.com/owner/lib"),
        ("scm.connection", None),
        ("description", None),
        ("properties.git.host", "github.com"),
    ],
)
def test_find_text_resolves_properties(path: str, expect: str | None) -> None:
    """Test resolving project and user properties within the same POM."""
    pom = parse_pom_string(
        """
        <project>
          <version> 2.1.0 </version>
          <description>   </description>
          <properties>
            <git.host>github.com</git.host>
          </properties>
          <scm>
            <url>https://${git.host}/owner/lib</url>
            <connection>${missing}</connection>
            <tag>release-${project.version}</tag>
          </scm>
        </project>
        """
    )
    assert pom is not None
    assert find_text(pom, path) == expect
