# Copyright (c) 2023 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""Tests for the command-line interface."""

import os
from importlib import metadata as importlib_metadata
from pathlib import Path

import pytest

from trustledger.__main__ import main
from trustledger.database.database_manager import get_db_manager
from trustledger.verification import ArtifactKey
from trustledger.verification.enums import ActionTaken, ChangeReason, VerificationMethod, VerificationStatus
from trustledger.verification.group_policy import GroupPolicyStore
from trustledger.verification.verification_store import VerificationStore

# pylint: disable=redefined-outer-name

KEY = ArtifactKey("org.example", "lib", "1.0.0")
PURL = "pkg:maven/org.example/lib@1.0.0"
TRUSTED_IDENTITY = "clojars/clojars-web/.github/workflows/attestable-build-lein.yml@refs/tags/v1.0.0"


@pytest.fixture()
def run(tmp_path: Path):  # type: ignore[no-untyped-def]
    """Return a function that runs the command line against a database in ``tmp_path`` and returns the exit code."""

    def run_command(*argv: str) -> int | str | None:
        with pytest.raises(SystemExit) as exc_info:
            main(["-o", str(tmp_path / "output"), "-d", str(tmp_path / "ledger.db"), *argv])
        return exc_info.value.code

    return run_command


def _store() -> VerificationStore:
    return VerificationStore(get_db_manager())


@pytest.mark.parametrize(
    ("flag"),
    [
        "--version",
        "-V",
    ],
)
def test_version(capsys: pytest.CaptureFixture, flag: str) -> None:
    """Test the ``--version/-V`` flag.

    Stdout format should be correct and exit code should be 0.
    """
    with pytest.raises(SystemExit) as exc_info:
        main([flag])
    out, err = capsys.readouterr()

    assert out == f"trustledger {importlib_metadata.version('trustledger')}\n"
    assert err == ""
    assert exc_info.value.code == 0


def test_no_action() -> None:
    """Test that running without an action is a usage error."""
    with pytest.raises(SystemExit) as exc_info:
        main([])
    assert exc_info.value.code == os.EX_USAGE


def test_output_dir_is_a_file(tmp_path: Path) -> None:
    """Test that the output directory cannot be an existing file."""
    output_file = tmp_path / "output"
    output_file.write_text("", encoding="utf-8")
    with pytest.raises(SystemExit) as exc_info:
        main(["-o", str(output_file), "recent"])
    assert exc_info.value.code == os.EX_USAGE


def test_dump_defaults(run, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
    """Test dumping defaults.ini to the output directory."""
    assert run("dump-defaults") == os.EX_OK
    assert (tmp_path / "output" / "defaults.ini").is_file()
    assert (tmp_path / "output" / "debug.log").is_file()


def test_record_and_update(run) -> None:  # type: ignore[no-untyped-def]
    """Test recording a verification and changing it with a ledger entry."""
    assert run("record", "-purl", PURL, "--status", "verified", "--method", "source-match") == os.EX_OK
    assert run("status", "-g", "org.example", "-j", "lib", "-ver", "1.0.0") == os.EX_OK
    assert (
        run(
            "update",
            "-purl",
            PURL,
            "--status",
            "failed",
            "--reason",
            "hijacked_repo",
            "--action",
            "verification_downgraded",
            "--changed-by",
            "admin",
        )
        == os.EX_OK
    )

    record = _store().find_current(KEY)
    assert record is not None
    assert record.verification_status is VerificationStatus.FAILED
    assert record.verification_method is VerificationMethod.SOURCE_MATCH

    history = _store().find_history(KEY)
    assert [entry.change_reason for entry in history] == [
        ChangeReason.HIJACKED_REPO,
        ChangeReason.INITIAL_VERIFICATION,
    ]
    assert history[0].changed_by == "admin"

    assert run("history", "-purl", PURL, "--limit", "1") == os.EX_OK
    assert run("history", "-purl", "pkg:maven/org.example/lib", "--all-versions") == os.EX_OK
    assert run("changes", "--reason", "hijacked_repo") == os.EX_OK
    assert run("changes", "--action", "verification_downgraded") == os.EX_OK
    assert run("metrics", "-g", "org.example", "-j", "lib") == os.EX_OK
    assert run("recent") == os.EX_OK


def test_record_from_pom(run, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
    """Test taking the source repository and the tag of a pending record from a POM."""
    pom_path = tmp_path / "lib.pom"
    pom_path.write_text(
        "<project><scm><url>https://github.com/example/lib.git</url><tag>v1.0.0</tag></scm></project>",
        encoding="utf-8",
    )
    assert run("record", "-purl", PURL, "--pom", str(pom_path)) == os.EX_OK

    record = _store().find_current(KEY)
    assert record is not None
    assert record.verification_status is VerificationStatus.PENDING
    assert record.repo_url == "https://github.com/example/lib"
    assert record.commit_tag == "v1.0.0"


def test_record_without_status(run) -> None:  # type: ignore[no-untyped-def]
    """Test that a record needs a status."""
    assert run("record", "-purl", PURL, "--method", "manual") == os.EX_USAGE
    assert run("record", "-purl", PURL, "--pom", "missing.pom") == os.EX_NOINPUT


@pytest.mark.parametrize(
    "artifact",
    [
        ["-purl", "pkg:npm/lib@1.0.0"],
        ["-purl", "pkg:maven/org.example/lib"],
        ["-g", "org.example", "-j", "lib"],
    ],
)
def test_invalid_artifact(run, artifact: list[str]) -> None:  # type: ignore[no-untyped-def]
    """Test that a jar version must be fully identified."""
    assert run("status", *artifact) == os.EX_USAGE


def test_update_missing_record(run) -> None:  # type: ignore[no-untyped-def]
    """Test that updating a version without a record fails."""
    assert (
        run("update", "-purl", PURL, "--status", "failed", "--reason", "manual_review", "--action", "none")
        == os.EX_NOINPUT
    )
    assert run("update", "-purl", PURL, "--reason", "manual_review", "--action", "none") == os.EX_USAGE


def test_check_deployment(run) -> None:  # type: ignore[no-untyped-def]
    """Test the deployment gate of a new project."""
    assert run("check-deployment", "-g", "com.new-org", "-j", "lib", "--method", "manual") == os.EX_DATAERR
    assert run("check-deployment", "-g", "com.new-org", "-j", "lib", "--method", "source-match") == os.EX_OK
    assert run("check-deployment", "-g", "com.new-org", "-j", "lib") == os.EX_DATAERR
    assert run("check-deployment", "-g", "com.new-org", "-j", "lib", "--method", "bogus") == os.EX_DATAERR


def test_check_attested_deployment(run) -> None:  # type: ignore[no-untyped-def]
    """Test that an attested deployment needs a trusted workflow."""
    assert run("check-deployment", "-purl", "pkg:maven/com.new-org/lib", "--workflow", TRUSTED_IDENTITY) == os.EX_OK
    assert (
        run("check-deployment", "-g", "com.new-org", "-j", "lib", "--workflow", "evil/fork/.github/workflows/x.yml@v1")
        == os.EX_DATAERR
    )


def test_policy(run) -> None:  # type: ignore[no-untyped-def]
    """Test setting and clearing a group policy."""
    assert run("policy", "get", "org.example") == os.EX_OK
    assert run("policy", "set", "org.example", "--method", "attestation", "--legacy") == os.EX_OK

    policy = GroupPolicyStore(get_db_manager()).get_policy("org.example")
    assert policy is not None
    assert policy.minimum_verification_method is VerificationMethod.ATTESTATION
    assert policy.legacy_provenance

    assert run("check-deployment", "-g", "org.example", "-j", "lib", "--method", "manual") == os.EX_DATAERR
    assert run("policy", "set", "org.example", "--clear") == os.EX_OK
    assert GroupPolicyStore(get_db_manager()).get_minimum_method("org.example") is None


def test_verify_workflow(run) -> None:  # type: ignore[no-untyped-def]
    """Test checking workflow identities from the command line."""
    assert run("verify-workflow", TRUSTED_IDENTITY) == os.EX_OK
    assert run("verify-workflow", "not-a-workflow") == os.EX_DATAERR
    assert (
        run("verify-workflow", "org/repo/.github/workflows/a.yml@v1", "--trusted", "org/repo/.github/workflows/a.yml")
        == os.EX_OK
    )
    assert run("verify-workflow", TRUSTED_IDENTITY, "--trusted", "malformed") == os.EX_USAGE
    assert run("list-workflows") == os.EX_OK


def test_downgrade_workflow(run) -> None:  # type: ignore[no-untyped-def]
    """Test downgrading the versions of a compromised workflow."""
    assert (
        run(
            "record",
            "-purl",
            PURL,
            "--status",
            "verified",
            "--method",
            "attestation-github-trusted",
            "--attestation-url",
            "https://attestations.example.org/example/lib/.github/workflows/release.yml@refs/tags/v1.0.0",
        )
        == os.EX_OK
    )
    assert run("downgrade-workflow", "example/lib/.github/workflows/release.yml") == os.EX_OK

    record = _store().find_current(KEY)
    assert record is not None
    assert record.verification_status is VerificationStatus.FAILED


def test_catalog_and_legacy_analysis(run) -> None:  # type: ignore[no-untyped-def]
    """Test adding versions and analyzing a project without verifications."""
    for version in ("1.0.0", "1.1.0"):
        assert run("add-version", "-purl", f"pkg:maven/org.example/lib@{version}") == os.EX_OK
    created = "2025-01-01T00:00:00+00:00"
    assert run("add-version", "-purl", "pkg:maven/org.example/lib@1.2.0", "--created", created) == os.EX_OK
    assert run("unverified") == os.EX_OK
    assert run("analyze-legacy", "-g", "org.example", "-j", "lib", "--dry-run") == os.EX_OK
    assert GroupPolicyStore(get_db_manager()).get_policy("org.example") is None

    assert run("analyze-legacy", "-g", "org.example", "-j", "lib") == os.EX_OK
    assert (
        GroupPolicyStore(get_db_manager()).get_minimum_method("org.example")
        is VerificationMethod.UNVERIFIED_LEGACY_PROVENANCE
    )


@pytest.mark.parametrize(
    ("report_format", "files"),
    [
        ("json", {"security_report.json"}),
        ("html", {"security_report.html"}),
        ("all", {"security_report.json", "security_report.html"}),
    ],
)
def test_report(run, tmp_path: Path, report_format: str, files: set[str]) -> None:  # type: ignore[no-untyped-def]
    """Test writing the security report to the output directory."""
    assert run("record", "-purl", PURL, "--status", "verified") == os.EX_OK
    assert run("report", "--format", report_format) == os.EX_OK
    written = {path.name for path in (tmp_path / "output").iterdir() if path.name.startswith("security_report")}
    assert written == files


def test_action_option_does_not_replace_command(run) -> None:  # type: ignore[no-untyped-def]
    """Test that ``--action`` is recorded in the ledger and still runs the requested command."""
    assert (
        run(
            "record",
            "-purl",
            PURL,
            "--status",
            "verified",
            "--reason",
            "manual_review",
            "--action",
            "jar_deleted",
            "--changed-by",
            "admin",
        )
        == os.EX_OK
    )

    record = _store().find_current(KEY)
    assert record is not None
    assert record.verification_status is VerificationStatus.VERIFIED
    history = _store().find_history(KEY)
    assert len(history) == 1
    assert history[0].action_taken is ActionTaken.JAR_DELETED
    assert _store().find_by_action(ActionTaken.JAR_DELETED, 10)[0].changed_by == "admin"

    assert run("changes", "--action", "jar_deleted", "--limit", "1") == os.EX_OK
