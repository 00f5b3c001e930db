# Copyright (c) 2022 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module tests the defaults module."""

import os
from pathlib import Path
from textwrap import dedent

import pytest

from trustledger.config.defaults import create_defaults, defaults, load_defaults


def _write_user_config(tmp_path: Path, content: str) -> str:
    user_config_path = os.path.join(tmp_path, "config.ini")
    with open(user_config_path, "w", encoding="utf-8") as user_config_file:
        user_config_file.write(dedent(content))
    return user_config_path


def test_load_defaults(tmp_path: Path) -> None:
    """Test loading defaults."""
    user_config_path = _write_user_config(
        tmp_path,
        """
        [deployment]
        new_project_method = attestation-github-trusted
        """,
    )

    # Test that the user configuration is loaded.
    assert load_defaults(user_config_path) is True

    # Test that the values in user configuration is prioritized.
    assert defaults.get("deployment", "new_project_method") == "attestation-github-trusted"

    # Test that the packaged values are still there.
    assert defaults.get("database", "db_name") == "trustledger.db"


def test_load_defaults_missing_user_config() -> None:
    """Test that a missing user configuration only loads the packaged values."""
    assert load_defaults("invalid") is True
    assert defaults.get("deployment", "new_project_method") == "source-match"


def test_load_defaults_malformed_user_config(tmp_path: Path) -> None:
    """Test that a malformed user configuration is reported."""
    user_config_path = _write_user_config(tmp_path, "no section header\n")
    assert load_defaults(user_config_path) is False


def test_create_defaults(tmp_path: Path) -> None:
    """Test dumping the default values."""
    assert create_defaults(str(tmp_path), str(tmp_path)) is True
    assert tmp_path.joinpath("defaults.ini").is_file()


@pytest.mark.xfail(
    os.geteuid() == 0,
    reason="Only effective for non-root users",
)
def test_create_defaults_without_permission() -> None:
    """Test dumping default config in cases where the user does not have write permission to the output location."""
    assert create_defaults(output_path="/", cwd_path="/") is False


@pytest.mark.parametrize(
    ("user_config_input", "delimiter", "duplicated_ok", "expect"),
    [
        (
            """
            [test.list]
            list = ,github.com, gitlab.com, space string, space string
            """,
            ",",
            False,
            ["", "github.com", " gitlab.com", " space string"],
        ),
        (
            """
            [test.list]
            list = ,github.com, gitlab.com, space string, space string
            """,
            ",",
            True,
            ["", "github.com", " gitlab.com", " space string", " space string"],
        ),
        (
            """
            [test.list]
            list =
                github.com
                comma_ended,
                space string
                space string
            """,
            None,
            False,
            ["github.com", "comma_ended,", "space", "string"],
        ),
        (
            """
            [test.list]
            list =
            """,
            None,
            False,
            [],
        ),
    ],
)
def test_get_list(
    user_config_input: str,
    delimiter: str | None,
    duplicated_ok: bool,
    expect: list[str],
    tmp_path: Path,
) -> None:
    """Test getting a list of strings from defaults.ini."""
    load_defaults(_write_user_config(tmp_path, user_config_input))

    results = defaults.get_list("test.list", "list", delimiter=delimiter, duplicated_ok=duplicated_ok)
    assert results == expect


@pytest.mark.parametrize(
    ("section", "item", "fallback", "expect"),
    [
        ("attestation", "non-existing", None, []),
        ("non-existing", "trusted_workflows", None, []),
        ("non-existing", "non-existing", ["some", "fallback"], ["some", "fallback"]),
    ],
)
def test_get_list_fallback(section: str, item: str, fallback: list[str] | None, expect: list[str]) -> None:
    """Test the fallback of a missing section or option."""
    assert defaults.get_list(section, item, fallback=fallback) == expect


def test_packaged_trusted_workflows() -> None:
    """Test that the packaged configuration trusts the four repository build workflows."""
    workflows = defaults.get_list("attestation", "trusted_workflows")
    assert len(workflows) == 4
    assert "clojars/clojars-web/.github/workflows/attestable-build-lein.yml@refs/tags/*" in workflows
