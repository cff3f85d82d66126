"""iamshadow CLI entry point."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import boto3
import botocore.exceptions
import click
from rich.console import Console

from .analyzer import analyze
from .diff import diff
from .expansion import CatalogUnavailableError, WildcardExpansionEngine, load_action_catalog
from .formatters import get_formatter
from .models import PolicyDocument, Severity
from .policy import PolicyParseError, parse_document
from .sources import PolicySourceError, get_policy_document, get_policy_versions, list_policy_versions

logger = logging.getLogger(__name__)

_OUTPUT_CHOICE = click.Choice(["text", "json"])
_FAIL_ON = {
    "critical": Severity.CRITICAL.rank,
    "high": Severity.HIGH.rank,
    "medium": Severity.MEDIUM.rank,
    "low": Severity.LOW.rank,
}


@click.group()
@click.option(
    "--profile",
    default=None,
    envvar="AWS_PROFILE",
    help="AWS credentials profile name (only used with --policy-arn).",
)
@click.option(
    "--region",
    default=None,
    envvar="AWS_DEFAULT_REGION",
    help="AWS region.",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def main(ctx: click.Context, profile: str | None, region: str | None, verbose: bool) -> None:
    """Find shadow-admin escalation paths and wildcard blast radius in IAM policies.

    Policies are read from local JSON files, or fetched from IAM with
    --policy-arn using the standard boto3 credential chain.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    ctx.obj = {"profile": profile, "region": region}


@main.command("analyze")
@click.argument("policy_file", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.option("--policy-arn", default=None, help="Managed policy ARN to fetch from IAM.")
@click.option("--version-id", default=None, help="Policy version (default: the default version).")
@click.option("--output", type=_OUTPUT_CHOICE, default="text", show_default=True, help="Output format.")
@click.option(
    "--fail-on",
    type=click.Choice(["critical", "high", "medium", "low", "never"]),
    default="critical",
    show_default=True,
    help="Exit 1 when an issue of this severity or higher is found.",
)
@click.pass_context
def analyze_command(
    ctx: click.Context,
    policy_file: Path | None,
    policy_arn: str | None,
    version_id: str | None,
    output: str,
    fail_on: str,
) -> None:
    """Detect privilege escalation methods and wildcard grants in a policy.

    Exit code is 0 when nothing at or above --fail-on was found, 1 otherwise.
    """
    err = Console(stderr=True, highlight=False)
    document = _load_document(ctx, err, policy_file, policy_arn, version_id)

    result = analyze(document)

    out_console = Console(highlight=False)
    get_formatter(output, console=out_console).render(result)

    if fail_on != "never":
        threshold = _FAIL_ON[fail_on]
        if any(i.severity.rank >= threshold for i in result.issues):
            sys.exit(1)


@main.command("expand")
@click.argument("policy_file", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--catalog",
    "catalog_path",
    required=True,
    envvar="IAMSHADOW_ACTION_CATALOG",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to the AWS action catalog (policies.js or its JSON serviceMap).",
)
@click.option("--policy-arn", default=None, help="Managed policy ARN to fetch from IAM.")
@click.option("--version-id", default=None, help="Policy version (default: the default version).")
@click.option("--output", type=_OUTPUT_CHOICE, default="text", show_default=True, help="Output format.")
@click.pass_context
def expand_command(
    ctx: click.Context,
    policy_file: Path | None,
    catalog_path: Path,
    policy_arn: str | None,
    version_id: str | None,
    output: str,
) -> None:
    """Expand wildcard actions against the AWS action catalog."""
    err = Console(stderr=True, highlight=False)

    try:
        catalog = load_action_catalog(catalog_path)
    except CatalogUnavailableError as exc:
        err.print(f"[bold red]Action catalog unavailable:[/bold red] {exc}")
        sys.exit(2)

    document = _load_document(ctx, err, policy_file, policy_arn, version_id)
    engine = WildcardExpansionEngine(catalog)
    result = engine.analyze_policy(document)

    out_console = Console(highlight=False)
    get_formatter(output, console=out_console).render(result)
    if not result.is_valid:
        sys.exit(2)


@main.command("diff")
@click.argument("policy_files", nargs=-1, type=click.Path(dir_okay=False, path_type=Path))
@click.option("--policy-arn", default=None, help="Managed policy ARN whose versions to compare.")
@click.option(
    "--versions",
    nargs=2,
    default=None,
    metavar="OLD NEW",
    help="Version IDs to compare (default: the two newest versions).",
)
@click.option("--output", type=_OUTPUT_CHOICE, default="text", show_default=True, help="Output format.")
@click.pass_context
def diff_command(
    ctx: click.Context,
    policy_files: tuple[Path, ...],
    policy_arn: str | None,
    versions: Optional[tuple[str, str]],
    output: str,
) -> None:
    """Compare the actions and resources of two policy versions.

    Pass two files (OLD NEW), or --policy-arn to compare versions in IAM.
    """
    err = Console(stderr=True, highlight=False)

    if policy_arn:
        old, new = _fetch_versions(ctx, err, policy_arn, versions)
    elif len(policy_files) == 2:
        old = _read_document(err, policy_files[0])
        new = _read_document(err, policy_files[1])
    else:
        err.print("[bold red]Error:[/bold red] Provide two policy files or --policy-arn.")
        sys.exit(2)

    result = diff(old, new)
    out_console = Console(highlight=False)
    get_formatter(output, console=out_console).render(result)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _load_document(
    ctx: click.Context,
    err: Console,
    policy_file: Path | None,
    policy_arn: str | None,
    version_id: str | None,
) -> PolicyDocument:
    if policy_file is not None and policy_arn:
        err.print("[bold red]Error:[/bold red] Use either a policy file or --policy-arn, not both.")
        sys.exit(2)
    if policy_file is not None:
        return _read_document(err, policy_file)
    if policy_arn:
        iam = _iam_client(ctx, err)
        try:
            return get_policy_document(policy_arn, iam, version_id=version_id)
        except ValueError as exc:
            err.print(f"[bold red]Error:[/bold red] {exc}")
            sys.exit(2)
        except PolicySourceError as exc:
            _handle_source_error(exc, err)
            sys.exit(2)
        except botocore.exceptions.BotoCoreError as exc:
            err.print(f"[bold red]AWS error:[/bold red] {exc}")
            sys.exit(2)
    err.print("[bold red]Error:[/bold red] Provide a policy file or --policy-arn.")
    sys.exit(2)


def _read_document(err: Console, path: Path) -> PolicyDocument:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        err.print(f"[bold red]Error:[/bold red] Cannot read {path}: {exc.strerror or exc}")
        sys.exit(2)
    try:
        return parse_document(text)
    except (PolicyParseError, TypeError) as exc:
        err.print(f"[bold red]Invalid policy document[/bold red] {path}: {exc}")
        sys.exit(2)


def _fetch_versions(
    ctx: click.Context,
    err: Console,
    policy_arn: str,
    versions: Optional[tuple[str, str]],
) -> tuple[PolicyDocument, PolicyDocument]:
    iam = _iam_client(ctx, err)
    try:
        if not versions:
            listed = list_policy_versions(policy_arn, iam)
            if len(listed) < 2:
                err.print(f"[bold red]Error:[/bold red] {policy_arn} has fewer than two versions.")
                sys.exit(2)
            # newest first; compare previous -> latest
            versions = (listed[1].version_id, listed[0].version_id)
        fetched = get_policy_versions(policy_arn, iam, versions)
    except ValueError as exc:
        err.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(2)
    except PolicySourceError as exc:
        _handle_source_error(exc, err)
        sys.exit(2)
    except botocore.exceptions.BotoCoreError as exc:
        err.print(f"[bold red]AWS error:[/bold red] {exc}")
        sys.exit(2)
    logger.debug("Comparing %s versions %s -> %s", policy_arn, *versions)
    return fetched[0].document, fetched[1].document


def _iam_client(ctx: click.Context, err: Console):
    obj = ctx.obj or {}
    try:
        session = boto3.Session(profile_name=obj.get("profile"), region_name=obj.get("region"))
        return session.client("iam")
    except botocore.exceptions.ProfileNotFound as exc:
        err.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(2)


def _handle_source_error(exc: PolicySourceError, console: Console) -> None:
    if exc.error_code == "AccessDenied":
        console.print(f"[bold red]Access denied:[/bold red] {exc}")
        console.print(
            "[dim]iamshadow requires iam:GetPolicy, iam:GetPolicyVersion and "
            "iam:ListPolicyVersions permissions.[/dim]"
        )
    else:
        console.print(f"[bold red]AWS error ({exc.error_code}):[/bold red] {exc}")
