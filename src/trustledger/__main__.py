# Copyright (c) 2022 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This is the main entrypoint to run trustledger."""

import argparse
import logging
import os
import sys
from collections.abc import Callable
from datetime import datetime
from importlib import metadata as importlib_metadata
from typing import Any

from packageurl import PackageURL

import trustledger
from trustledger.attestation.admission import admit_attested_deployment
from trustledger.attestation.workflow_verifier import (
    TrustedWorkflow,
    list_trusted_workflows,
    verify_attestation_workflow,
)
from trustledger.config.defaults import create_defaults, load_defaults
from trustledger.config.global_config import global_config
from trustledger.console import RichConsoleHandler, access_handler
from trustledger.database.database_manager import get_db_manager
from trustledger.errors import (
    ConfigurationError,
    InvalidArtifactKeyError,
    InvalidIdentifierError,
    LedgerImmutableError,
    PersistenceError,
    RecordNotFoundError,
)
from trustledger.output_reporter.reporter import HTMLReporter, JSONReporter
from trustledger.output_reporter.security_report import SecurityReporting
from trustledger.scm.repo_info import extract_verification_info, validate_repo_url
from trustledger.verification import ArtifactKey
from trustledger.verification.batch import downgrade_compromised_workflow
from trustledger.verification.catalog import ArtifactCatalog
from trustledger.verification.deployment_gate import DeploymentGate
from trustledger.verification.enums import ActionTaken, ChangeReason, VerificationMethod, VerificationStatus
from trustledger.verification.group_policy import GroupPolicyStore
from trustledger.verification.legacy_provenance import LegacyProvenanceAnalyzer
from trustledger.verification.trust_hierarchy import trust_hierarchy
from trustledger.verification.verification_store import DEFAULT_HISTORY_LIMIT, VerificationStore

logger: logging.Logger = logging.getLogger(__name__)

#: Maps the command-line options to the verification fields they set.
FIELD_OPTIONS = {
    "status": "verification_status",
    "method": "verification_method",
    "repo_url": "repo_url",
    "commit_sha": "commit_sha",
    "commit_tag": "commit_tag",
    "attestation_url": "attestation_url",
    "reproducibility_script_url": "reproducibility_script_url",
    "notes": "verification_notes",
}


def _artifact_key(args: argparse.Namespace) -> ArtifactKey:
    """Return the jar version given as a PURL or as separate coordinates."""
    if args.package_url:
        return ArtifactKey.from_purl(args.package_url)
    if not (args.group and args.jar and args.version):
        raise InvalidArtifactKeyError("Provide a PURL or all of --group, --jar and --version.")
    return ArtifactKey(group_name=args.group, jar_name=args.jar, version=args.version)


def _jar_coordinates(args: argparse.Namespace) -> tuple[str, str]:
    """Return the group and the jar given as a PURL, whose version is optional, or as separate coordinates."""
    if args.package_url:
        try:
            purl = PackageURL.from_string(args.package_url)
        except ValueError as error:
            raise InvalidArtifactKeyError(f"Could not parse PURL {args.package_url}: {error}") from error
        if purl.type != "maven" or not purl.namespace:
            raise InvalidArtifactKeyError(f"Expected a Maven PURL with a group, got {args.package_url}.")
        return purl.namespace, purl.name
    if not (args.group and args.jar):
        raise InvalidArtifactKeyError("Provide a PURL or both --group and --jar.")
    return args.group, args.jar


def _provided_fields(args: argparse.Namespace) -> dict[str, Any]:
    """Return the verification fields set on the command line."""
    return {
        field_name: getattr(args, option)
        for option, field_name in FIELD_OPTIONS.items()
        if getattr(args, option, None) is not None
    }


def add_version(args: argparse.Namespace) -> int:
    """Add a published jar version to the catalog."""
    key = _artifact_key(args)
    created = datetime.fromisoformat(args.created) if args.created else None
    jar = ArtifactCatalog(get_db_manager()).add_version(key, created)
    access_handler.get_handler().show_details("Catalog", {"Artifact:": str(key), "Created:": jar.created.isoformat()})
    return os.EX_OK


def record_verification(args: argparse.Namespace) -> int:
    """Create or overwrite the verification record of a jar version."""
    key = _artifact_key(args)
    fields: dict[str, Any] = {}
    if args.pom:
        try:
            with open(args.pom, encoding="utf-8") as file:
                fields = extract_verification_info(key.group_name, key.jar_name, key.version, file.read())
        except OSError as error:
            logger.error("Could not read the POM %s: %s", args.pom, error)
            return os.EX_NOINPUT
    fields.update(_provided_fields(args))

    if fields.get("verification_status") is None:
        logger.error("A verification status is required. Provide --status or a POM with --pom.")
        return os.EX_USAGE

    if fields.get("repo_url"):
        validation = validate_repo_url(fields["repo_url"])
        if not validation.valid:
            logger.warning("The repository URL %s looks suspicious: %s.", fields["repo_url"], validation.error)

    record = VerificationStore(get_db_manager()).upsert_verification(
        key, fields, args.reason, args.action_taken, args.changed_by
    )
    access_handler.get_handler().show_details("Verification", record.get_dict())
    return os.EX_OK


def update_verification(args: argparse.Namespace) -> int:
    """Change the verification record of a jar version and record the change in the ledger."""
    key = _artifact_key(args)
    updates = _provided_fields(args)
    if not updates:
        logger.error("Nothing to update. Provide at least one verification field.")
        return os.EX_USAGE

    entry = VerificationStore(get_db_manager()).update_with_history(
        key, updates, args.reason, args.action_taken, args.changed_by
    )
    access_handler.get_handler().show_details("Ledger Entry", entry.get_dict())
    return os.EX_OK


def show_status(args: argparse.Namespace) -> int:
    """Show the current verification record of a jar version."""
    key = _artifact_key(args)
    record = VerificationStore(get_db_manager()).find_current(key)
    if record is None:
        access_handler.get_handler().show_details("Verification", {"Artifact:": str(key), "Record:": "None"})
        return os.EX_OK
    access_handler.get_handler().show_details("Verification", record.get_dict())
    return os.EX_OK


def show_history(args: argparse.Namespace) -> int:
    """Show the ledger of a jar version, or of all versions of a jar."""
    store = VerificationStore(get_db_manager())
    if args.all_versions:
        group_name, jar_name = _jar_coordinates(args)
        entries = store.find_history_for_jar(group_name, jar_name, args.limit)
    else:
        entries = store.find_history(_artifact_key(args), args.limit)
    access_handler.get_handler().show_rows("History", [entry.get_dict() for entry in entries])
    return os.EX_OK


def show_changes(args: argparse.Namespace) -> int:
    """Show the ledger entries with a change reason or an action."""
    store = VerificationStore(get_db_manager())
    if args.reason:
        entries = store.find_by_reason(args.reason, args.limit)
    else:
        entries = store.find_by_action(args.action_taken, args.limit)
    access_handler.get_handler().show_rows("Changes", [entry.get_dict() for entry in entries])
    return os.EX_OK


def show_metrics(args: argparse.Namespace) -> int:
    """Show the verification coverage of a jar."""
    group_name, jar_name = _jar_coordinates(args)
    metrics = VerificationStore(get_db_manager()).verification_metrics(group_name, jar_name)
    access_handler.get_handler().show_details(f"Metrics of {group_name}/{jar_name}", metrics.get_dict())
    return os.EX_OK


def show_unverified(args: argparse.Namespace) -> int:
    """Show catalog versions without a verification record."""
    keys = VerificationStore(get_db_manager()).find_unverified(args.limit, args.offset)
    rows = [{"artifact": str(key), "purl": key.to_purl()} for key in keys]
    access_handler.get_handler().show_rows("Unverified", rows)
    return os.EX_OK


def show_recent(args: argparse.Namespace) -> int:
    """Show the most recently verified jar versions."""
    records = VerificationStore(get_db_manager()).find_recent_verified(args.limit)
    access_handler.get_handler().show_rows("Recently Verified", [record.get_dict() for record in records])
    return os.EX_OK


def manage_policy(args: argparse.Namespace) -> int:
    """Show or set the verification policy of a group."""
    policy_store = GroupPolicyStore(get_db_manager())
    if args.policy_action == "set":
        method = None if args.clear else args.method
        if method is None and not args.clear:
            logger.error("Provide --method or --clear.")
            return os.EX_USAGE
        policy = policy_store.set_policy(args.group_name, method, args.legacy)
    else:
        found = policy_store.get_policy(args.group_name)
        if found is None:
            access_handler.get_handler().show_details("Policy", {"Group:": args.group_name, "Policy:": "None"})
            return os.EX_OK
        policy = found
    access_handler.get_handler().show_details("Policy", policy.get_dict())
    return os.EX_OK


def analyze_legacy(args: argparse.Namespace) -> int:
    """Infer the verification policy of a project from its history."""
    group_name, jar_name = _jar_coordinates(args)
    db_man = get_db_manager()
    analyzer = LegacyProvenanceAnalyzer(VerificationStore(db_man), ArtifactCatalog(db_man), GroupPolicyStore(db_man))
    analyzer.load_defaults()

    analysis = analyzer.analyze(group_name, jar_name) if args.dry_run else analyzer.apply(group_name, jar_name)
    rich_handler = access_handler.get_handler()
    details = analysis.get_dict()
    rows = details.pop("analyses")
    rich_handler.show_details("Legacy Provenance", details)
    rich_handler.show_rows("Examined Versions", rows)
    return os.EX_OK


def check_deployment(args: argparse.Namespace) -> int:
    """Decide whether a deployment can be published. Exits with EX_DATAERR if it cannot."""
    group_name, jar_name = _jar_coordinates(args)
    gate = DeploymentGate(GroupPolicyStore(get_db_manager()))
    gate.load_defaults()
    rich_handler = access_handler.get_handler()

    if args.workflow:
        method = (
            VerificationMethod.from_wire(args.method) if args.method else VerificationMethod.ATTESTATION_GITHUB_TRUSTED
        )
        admission = admit_attested_deployment(gate, group_name, jar_name, args.workflow, method)
        if admission.decision:
            rich_handler.show_details("Deployment", admission.decision.get_dict())
        rich_handler.show_decision(admission.allowed, admission.reason)
        return os.EX_OK if admission.allowed else os.EX_DATAERR

    decision = gate.check_deployment(group_name, jar_name, args.method)
    rich_handler.show_details("Deployment", decision.get_dict())
    rich_handler.show_decision(decision.allowed, decision.reason)
    return os.EX_OK if decision.allowed else os.EX_DATAERR


def _trusted_override(args: argparse.Namespace) -> list[TrustedWorkflow] | None:
    if not args.trusted:
        return None
    trusted = []
    for text in args.trusted:
        entry = TrustedWorkflow.from_string(text)
        if entry is None:
            raise InvalidIdentifierError(f"Malformed trusted workflow {text}.")
        trusted.append(entry)
    return trusted


def verify_workflow(args: argparse.Namespace) -> int:
    """Check that a workflow identity is trusted. Exits with EX_DATAERR if it is not."""
    result = verify_attestation_workflow(args.identity, _trusted_override(args))
    rich_handler = access_handler.get_handler()
    if result.workflow:
        rich_handler.show_details("Workflow", result.workflow.get_dict())
    rich_handler.show_decision(result.valid, result.reason)
    return os.EX_OK if result.valid else os.EX_DATAERR


def list_workflows(args: argparse.Namespace) -> int:
    """Show the trusted workflows."""
    workflows = list_trusted_workflows(_trusted_override(args))
    access_handler.get_handler().show_rows("Trusted Workflows", [{"workflow": workflow} for workflow in workflows])
    return os.EX_OK


def downgrade_workflow(args: argparse.Namespace) -> int:
    """Downgrade every version attested by a compromised workflow. Exits with EX_TEMPFAIL on partial failure."""
    result = downgrade_compromised_workflow(
        VerificationStore(get_db_manager()), args.workflow, args.changed_by, args.limit
    )
    rich_handler = access_handler.get_handler()
    summary = result.get_dict()
    rich_handler.show_details(
        "Downgrade", {"Succeeded:": summary["success_count"], "Failed:": summary["failure_count"]}
    )
    if summary["failed"]:
        rich_handler.show_rows("Failures", summary["failed"])
        return os.EX_TEMPFAIL
    return os.EX_OK


def write_report(args: argparse.Namespace) -> int:
    """Write the security report of the ledger to the output directory."""
    reporting = SecurityReporting(get_db_manager())
    reporting.load_defaults()
    report = reporting.generate_security_report()

    reporters = []
    if args.format in ("json", "all"):
        reporters.append(("JSON Report", JSONReporter()))
    if args.format in ("html", "all"):
        reporters.append(("HTML Report", HTMLReporter()))

    paths: dict[str, str] = {}
    for name, reporter in reporters:
        path = reporter.generate(global_config.output_path, report)
        if path is None:
            logger.error("Could not write the %s.", name)
            return os.EX_CANTCREAT
        paths[name] = os.path.relpath(path, os.getcwd())

    rich_handler = access_handler.get_handler()
    rich_handler.show_details("Security Report", report.statistics.reason_counts)
    rich_handler.show_details("Reports", paths)
    return os.EX_OK


COMMANDS: dict[str, Callable[[argparse.Namespace], int]] = {
    "add-version": add_version,
    "record": record_verification,
    "update": update_verification,
    "status": show_status,
    "history": show_history,
    "changes": show_changes,
    "metrics": show_metrics,
    "unverified": show_unverified,
    "recent": show_recent,
    "policy": manage_policy,
    "analyze-legacy": analyze_legacy,
    "check-deployment": check_deployment,
    "verify-workflow": verify_workflow,
    "list-workflows": list_workflows,
    "downgrade-workflow": downgrade_workflow,
    "report": write_report,
}


def perform_action(action_args: argparse.Namespace) -> None:
    """Perform the indicated action of trustledger."""
    if action_args.action == "dump-defaults":
        # Create the defaults.ini file in the output dir and exit.
        create_defaults(action_args.output_dir, os.getcwd())
        sys.exit(os.EX_OK)

    command = COMMANDS.get(action_args.action)
    if command is None:
        logger.error("trustledger does not support command option %s.", action_args.action)
        sys.exit(os.EX_USAGE)

    try:
        trust_hierarchy.load_defaults()
        status_code = command(action_args)
    except ConfigurationError as error:
        logger.error(error)
        status_code = os.EX_USAGE
    except (InvalidArtifactKeyError, InvalidIdentifierError, ValueError) as error:
        logger.error(error)
        status_code = os.EX_USAGE
    except RecordNotFoundError as error:
        logger.error(error)
        status_code = os.EX_NOINPUT
    except LedgerImmutableError as error:
        logger.critical(error)
        status_code = os.EX_SOFTWARE
    except PersistenceError as error:
        logger.error("The verification database failed: %s", error)
        status_code = os.EX_IOERR

    sys.exit(status_code)


def _add_artifact_arguments(parser: argparse.ArgumentParser, version_required: bool = True) -> None:
    """Add the options that identify a jar or a jar version."""
    parser.add_argument(
        "-purl",
        "--package-url",
        required=False,
        type=str,
        help="The Maven PURL of the jar, e.g. pkg:maven/org.example/lib@1.0.0.",
    )
    parser.add_argument("-g", "--group", required=False, type=str, help="The group of the jar.")
    parser.add_argument("-j", "--jar", required=False, type=str, help="The name of the jar.")
    if version_required:
        parser.add_argument("-ver", "--version", required=False, type=str, help="The version of the jar.")


def _add_field_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the options that set verification fields."""
    parser.add_argument("--status", choices=VerificationStatus.wire_values(), help="The verification status.")
    parser.add_argument("--method", choices=VerificationMethod.wire_values(), help="The verification method.")
    parser.add_argument("--repo-url", help="The URL of the source repository.")
    parser.add_argument("--commit-sha", help="The commit the jar was built from.")
    parser.add_argument("--commit-tag", help="The tag the jar was built from.")
    parser.add_argument("--attestation-url", help="The location of the build attestation.")
    parser.add_argument("--reproducibility-script-url", help="The location of a script that reproduces the build.")
    parser.add_argument("--notes", help="Free form verification notes.")
    parser.add_argument("--changed-by", help="The user or service making the change.")


def main(argv: list[str] | None = None) -> None:
    """Execute trustledger as a standalone command-line tool.

    Parameters
    ----------
    argv: list[str] | None
        Command-line arguments.
        If ``argv`` is ``None``, argparse automatically looks at ``sys.argv``.
        Hence, we set ``argv = None`` by default.
    """
    main_parser = argparse.ArgumentParser(prog="trustledger")

    main_parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {importlib_metadata.version('trustledger')}",
        help="Show trustledger's version number and exit",
    )

    main_parser.add_argument(
        "-v",
        "--verbose",
        help="Run trustledger with more debug logs",
        action="store_true",
    )

    main_parser.add_argument(
        "-o",
        "--output-dir",
        default=os.path.join(os.getcwd(), "output"),
        help="The output destination path for trustledger",
    )

    main_parser.add_argument(
        "-dp",
        "--defaults-path",
        default="",
        help="The path to the defaults configuration file.",
    )

    main_parser.add_argument(
        "-d",
        "--database",
        default="",
        help="The path or SQLAlchemy URL of the verification database. Defaults to a file in the output directory.",
    )

    # Add sub parsers for each action.
    sub_parser = main_parser.add_subparsers(dest="action", help="Run trustledger <action> --help for help")

    # Dump the default values.
    sub_parser.add_parser(name="dump-defaults", description="Dumps the defaults.ini file to the output directory.")

    add_version_parser = sub_parser.add_parser(name="add-version", description="Add a jar version to the catalog.")
    _add_artifact_arguments(add_version_parser)
    add_version_parser.add_argument("--created", help="The ISO 8601 publication time. Defaults to now.")

    record_parser = sub_parser.add_parser(
        name="record", description="Create or overwrite the verification record of a jar version."
    )
    _add_artifact_arguments(record_parser)
    _add_field_arguments(record_parser)
    record_parser.add_argument("--pom", help="A POM file to take the source repository and the tag from.")
    record_parser.add_argument(
        "--reason",
        choices=ChangeReason.wire_values(),
        default=ChangeReason.INITIAL_VERIFICATION.value,
        help="The change reason recorded in the ledger.",
    )
    record_parser.add_argument(
        "--action",
        dest="action_taken",
        choices=ActionTaken.wire_values(),
        default=ActionTaken.NONE.value,
        help="The action recorded in the ledger.",
    )

    update_parser = sub_parser.add_parser(
        name="update", description="Change the verification record of a jar version and record it in the ledger."
    )
    _add_artifact_arguments(update_parser)
    _add_field_arguments(update_parser)
    update_parser.add_argument("--reason", required=True, choices=ChangeReason.wire_values(), help="The change reason.")
    update_parser.add_argument(
        "--action", dest="action_taken", required=True, choices=ActionTaken.wire_values(), help="The action taken."
    )

    status_parser = sub_parser.add_parser(name="status", description="Show the verification record of a jar version.")
    _add_artifact_arguments(status_parser)

    history_parser = sub_parser.add_parser(name="history", description="Show the verification ledger, newest first.")
    _add_artifact_arguments(history_parser)
    history_parser.add_argument("--all-versions", action="store_true", help="Show the ledger of all versions.")
    history_parser.add_argument(
        "--limit", type=int, default=DEFAULT_HISTORY_LIMIT, help="The maximum number of entries."
    )

    changes_parser = sub_parser.add_parser(
        name="changes", description="Show the ledger entries with a change reason or an action."
    )
    changes_group = changes_parser.add_mutually_exclusive_group(required=True)
    changes_group.add_argument("--reason", choices=ChangeReason.wire_values(), help="The change reason.")
    changes_group.add_argument(
        "--action", dest="action_taken", choices=ActionTaken.wire_values(), help="The action taken."
    )
    changes_parser.add_argument("--limit", type=int, default=100, help="The maximum number of entries.")

    metrics_parser = sub_parser.add_parser(name="metrics", description="Show the verification coverage of a jar.")
    _add_artifact_arguments(metrics_parser, version_required=False)

    unverified_parser = sub_parser.add_parser(
        name="unverified", description="Show catalog versions without a verification record."
    )
    unverified_parser.add_argument("--limit", type=int, default=100, help="The maximum number of versions.")
    unverified_parser.add_argument("--offset", type=int, default=0, help="The number of versions to skip.")

    recent_parser = sub_parser.add_parser(name="recent", description="Show the most recently verified versions.")
    recent_parser.add_argument("--limit", type=int, default=20, help="The maximum number of versions.")

    policy_parser = sub_parser.add_parser(name="policy", description="Show or set the verification policy of a group.")
    policy_sub_parser = policy_parser.add_subparsers(dest="policy_action", required=True)
    policy_get_parser = policy_sub_parser.add_parser(name="get", description="Show the policy of a group.")
    policy_get_parser.add_argument("group_name", help="The group.")
    policy_set_parser = policy_sub_parser.add_parser(name="set", description="Set the policy of a group.")
    policy_set_parser.add_argument("group_name", help="The group.")
    policy_method_group = policy_set_parser.add_mutually_exclusive_group(required=True)
    policy_method_group.add_argument(
        "--method", choices=VerificationMethod.wire_values(), help="The minimum verification method."
    )
    policy_method_group.add_argument(
        "--clear", action="store_true", help="Unset the minimum method so that the new project default applies."
    )
    policy_set_parser.add_argument("--legacy", action="store_true", help="Mark the policy as legacy provenance.")

    legacy_parser = sub_parser.add_parser(
        name="analyze-legacy", description="Infer and store the verification policy of a project from its history."
    )
    _add_artifact_arguments(legacy_parser, version_required=False)
    legacy_parser.add_argument("--dry-run", action="store_true", help="Show the analysis without storing the policy.")

    deployment_parser = sub_parser.add_parser(
        name="check-deployment", description="Decide whether a deployment can be published."
    )
    _add_artifact_arguments(deployment_parser, version_required=False)
    deployment_parser.add_argument("--method", help="The verification method the deployment achieved.")
    deployment_parser.add_argument(
        "--workflow",
        help="The workflow identity of the build attestation. The method only counts if the workflow is trusted.",
    )

    verify_workflow_parser = sub_parser.add_parser(
        name="verify-workflow", description="Check that an attestation workflow identity is trusted."
    )
    verify_workflow_parser.add_argument("identity", help="The identity, <owner>/<repo>/<workflow-path>@<ref>.")
    verify_workflow_parser.add_argument(
        "--trusted", nargs="+", help="Trusted workflows to use instead of the configured ones."
    )

    list_workflows_parser = sub_parser.add_parser(name="list-workflows", description="Show the trusted workflows.")
    list_workflows_parser.add_argument(
        "--trusted", nargs="+", help="Trusted workflows to use instead of the configured ones."
    )

    downgrade_parser = sub_parser.add_parser(
        name="downgrade-workflow", description="Downgrade every version attested by a compromised workflow."
    )
    downgrade_parser.add_argument("workflow", help="The compromised workflow, e.g. owner/repo/.github/workflows/x.yml.")
    downgrade_parser.add_argument("--changed-by", help="The user or service making the change.")
    downgrade_parser.add_argument("--limit", type=int, default=1000, help="The maximum number of versions.")

    report_parser = sub_parser.add_parser(name="report", description="Write the security report of the ledger.")
    report_parser.add_argument("--format", choices=["json", "html", "all"], default="all", help="The report format.")

    args = main_parser.parse_args(argv)

    if not args.action:
        main_parser.print_help()
        sys.exit(os.EX_USAGE)

    if args.verbose:
        log_level = logging.DEBUG
        log_format = "%(asctime)s [%(name)s:%(funcName)s:%(lineno)d] [%(levelname)s] %(message)s"
    else:
        log_level = logging.INFO
        log_format = "%(asctime)s [%(levelname)s] %(message)s"

    # Set global logging config. We need the stream handler for the initial
    # output directory checking log messages.
    st_handler = logging.StreamHandler(sys.stdout)
    logging.basicConfig(format=log_format, handlers=[st_handler], force=True, level=log_level)

    # Set the output directory.
    if not args.output_dir:
        logger.error("The output path cannot be empty. Exiting ...")
        sys.exit(os.EX_USAGE)

    if os.path.isfile(args.output_dir):
        logger.error("The output directory already exists. Exiting ...")
        sys.exit(os.EX_USAGE)

    if os.path.isdir(args.output_dir):
        logger.info("Setting the output directory to %s", os.path.relpath(args.output_dir, os.getcwd()))
    else:
        logger.info("No directory at %s. Creating one ...", os.path.relpath(args.output_dir, os.getcwd()))
        os.makedirs(args.output_dir)

    # Add file handler to the root logger. Remove stream handler from the
    # root logger to prevent dependencies printing logs to stdout.
    debug_log_path = os.path.join(args.output_dir, "debug.log")
    log_file_handler = logging.FileHandler(debug_log_path, "w")
    log_file_handler.setFormatter(logging.Formatter(log_format))
    logging.getLogger().removeHandler(st_handler)
    logging.getLogger().addHandler(log_file_handler)

    # Add the rich console handler to the trustledger logger only.
    tl_logger = logging.getLogger("trustledger")
    for handler in list(tl_logger.handlers):
        if isinstance(handler, RichConsoleHandler):
            tl_logger.removeHandler(handler)
    tl_logger.addHandler(access_handler.set_handler(args.verbose))

    logger.info("The logs will be stored in debug.log")

    global_config.load(
        trustledger_path=trustledger.TRUSTLEDGER_PATH,
        output_path=args.output_dir,
        database=args.database,
        debug_level=log_level,
    )

    # Load the default values from defaults.ini files.
    if not load_defaults(args.defaults_path):
        logger.error("Exiting because the defaults configuration could not be loaded.")
        sys.exit(os.EX_NOINPUT)

    perform_action(args)


if __name__ == "__main__":
    main()
