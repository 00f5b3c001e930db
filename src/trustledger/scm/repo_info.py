# Copyright (c) 2024 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module extracts the source repository of a jar from the SCM section of its POM."""

import logging
import re
import urllib.parse
from dataclasses import dataclass
from enum import Enum
from typing import Any
from xml.etree.ElementTree import Element  # nosec B405

from trustledger.config.defaults import defaults
from trustledger.scm.pomparser import find_element, find_text, parse_pom_string
from trustledger.verification.enums import VerificationStatus

logger: logging.Logger = logging.getLogger(__name__)


class GitHost(str, Enum):
    """The git services whose repository URLs are understood."""

    GITHUB = "github"
    GITLAB = "gitlab"
    UNKNOWN = "unknown"


# The owner and repository follow the hostname after "/" or, for scp-like URLs, after ":".
_REPO_PATH = r"[/:](?P<owner>[^/:\s]+)/(?P<repo_name>[^/\s?#]+?)(?:\.git)?(?:[/?#]|$)"

HOST_PATTERNS: dict[GitHost, tuple[str, re.Pattern[str]]] = {
    GitHost.GITHUB: ("github.com", re.compile(r"(?:www\.)?github\.com" + _REPO_PATH)),
    GitHost.GITLAB: ("gitlab.com", re.compile(r"(?:www\.)?gitlab\.com" + _REPO_PATH)),
}


@dataclass(frozen=True)
class GitRepoInfo:
    """A parsed repository URL."""

    host: GitHost

    #: The canonical ``https://`` URL for known hosts, or the URL as given otherwise.
    url: str

    owner: str | None = None
    repo_name: str | None = None


@dataclass(frozen=True)
class ScmInfo:
    """The contents of the ``<scm>`` element of a POM."""

    url: str | None = None
    connection: str | None = None
    developer_connection: str | None = None
    tag: str | None = None


@dataclass(frozen=True)
class RepoInfo:
    """The source repository and the commit a jar claims to be built from."""

    repo_url: str
    commit_tag: str | None = None
    repo_host: GitHost = GitHost.UNKNOWN
    repo_owner: str | None = None
    repo_name: str | None = None


@dataclass(frozen=True)
class RepoUrlValidation:
    """The outcome of validating a repository URL."""

    valid: bool
    error: str | None = None


def parse_git_url(url: str | None) -> GitRepoInfo | None:
    """Parse a git URL to extract repository information.

    GitHub and GitLab URLs of any common form, including ``scm:git:`` prefixed ones, are reduced
    to their canonical ``https://<host>/<owner>/<repo>`` URL. Other absolute URLs are kept unchanged
    with an unknown host.

    Parameters
    ----------
    url : str | None
        The URL to parse.

    Returns
    -------
    GitRepoInfo | None
        The parsed URL, or None if it is not a URL.

    Examples
    --------
    >>> parse_git_url("scm:git:git@github.com:owner/project.git").url
    'https://github.com/owner/project'
    >>> parse_git_url("not a url") is None
    True
    """
    if not url:
        return None

    for host, (hostname, pattern) in HOST_PATTERNS.items():
        if hostname not in url:
            continue
        match = pattern.search(url)
        if not match:
            logger.debug("Could not find the owner and repository in %s.", url)
            return None
        owner = match.group("owner")
        repo_name = match.group("repo_name")
        return GitRepoInfo(host=host, url=f"https://{hostname}/{owner}/{repo_name}", owner=owner, repo_name=repo_name)

    if any(char.isspace() for char in url):
        return None
    try:
        parsed_url = urllib.parse.urlparse(url)
    except ValueError as error:
        logger.debug(error)
        return None
    if not parsed_url.scheme or not parsed_url.netloc:
        return None
    return GitRepoInfo(host=GitHost.UNKNOWN, url=url)


def extract_scm_info(pom: Element) -> ScmInfo | None:
    """Return the contents of the ``<scm>`` element of a parsed POM, or None if it has none."""
    if find_element(pom, "scm") is None:
        return None
    return ScmInfo(
        url=find_text(pom, "scm.url"),
        connection=find_text(pom, "scm.connection"),
        developer_connection=find_text(pom, "scm.developerConnection"),
        tag=find_text(pom, "scm.tag"),
    )


def extract_repo_info(pom: Element | str) -> RepoInfo | None:
    """Extract the repository URL and the commit tag from a POM.

    The SCM ``url`` is preferred over ``connection``, which is preferred over ``developerConnection``.

    Parameters
    ----------
    pom : Element | str
        The parsed POM or its contents.

    Returns
    -------
    RepoInfo | None
        The repository information, or None if the POM cannot be parsed or has no usable SCM URL.
    """
    element = parse_pom_string(pom) if isinstance(pom, str) else pom
    if element is None:
        return None

    scm_info = extract_scm_info(element)
    if scm_info is None:
        logger.debug("The POM has no SCM section.")
        return None

    parsed = parse_git_url(scm_info.url or scm_info.connection or scm_info.developer_connection)
    if parsed is None:
        return None

    return RepoInfo(
        repo_url=parsed.url,
        commit_tag=scm_info.tag,
        repo_host=parsed.host,
        repo_owner=parsed.owner,
        repo_name=parsed.repo_name,
    )


def get_allowed_hosts() -> list[str]:
    """Return the git service hostnames accepted for source repositories."""
    return defaults.get_list("scm", "allowed_hosts", fallback=["github.com", "gitlab.com"])


def validate_repo_url(repo_url: str | None) -> RepoUrlValidation:
    """Validate that a repository URL looks legitimate.

    Examples
    --------
    >>> validate_repo_url("http://github.com/owner/repo").error
    'Repository URL must use HTTPS'
    """
    if not repo_url:
        return RepoUrlValidation(valid=False, error="No repository URL provided")

    if not repo_url.startswith("https://"):
        return RepoUrlValidation(valid=False, error="Repository URL must use HTTPS")

    hostname = urllib.parse.urlparse(repo_url).hostname or ""
    if hostname.removeprefix("www.") not in get_allowed_hosts():
        return RepoUrlValidation(valid=False, error="Repository must be hosted on GitHub or GitLab")

    return RepoUrlValidation(valid=True)


def extract_verification_info(group_name: str, jar_name: str, version: str, pom: Element | str) -> dict[str, Any]:
    """Return the pending verification fields of a newly deployed jar.

    The result can be passed to ``VerificationStore.upsert_verification`` as is. The commit SHA and
    the verification method are left to the verification process.
    """
    repo_info = extract_repo_info(pom)
    if repo_info is None:
        logger.info("No source repository found in the POM of %s/%s@%s.", group_name, jar_name, version)

    return {
        "repo_url": repo_info.repo_url if repo_info else None,
        "commit_tag": repo_info.commit_tag if repo_info else None,
        "commit_sha": None,
        "verification_status": VerificationStatus.PENDING,
        "verification_method": None,
        "attestation_url": None,
        "reproducibility_script_url": None,
        "verification_notes": None,
    }
