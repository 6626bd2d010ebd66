"""Command-line interface for preview_publisher.

Provides the main entry point and subcommands for publishing preview
packages from CI, inspecting computed versions, and running retention
cleanup on its own.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional
from urllib.parse import urlparse

import typer
from rich.console import Console
from rich.table import Table

from preview_publisher import hasher
from preview_publisher.branches import GitHubBranchOracle
from preview_publisher.build import build_packages
from preview_publisher.cleanup import cleanup_old_versions
from preview_publisher.config import (
    DEFAULT_BUILD_COMMAND,
    DEFAULT_HASH_LENGTH,
    DEFAULT_MAX_VERSIONS,
    DEFAULT_MIN_AGE_DAYS,
    DEFAULT_PACKAGES_DIR,
    DEFAULT_REGISTRY,
    parse_package_list,
    parse_repository,
)
from preview_publisher.discover import discover_packages
from preview_publisher.errors import PreviewPublishError, ValidationError
from preview_publisher.models import CleanupReport, RetentionPolicy
from preview_publisher.pipeline import PipelineResult, PreviewPipeline
from preview_publisher.registry import (
    BaseRegistry,
    GitHubClient,
    GitHubPackagesRegistry,
    NpmRegistry,
)
from preview_publisher.reporters import JsonReporter, MarkdownReporter
from preview_publisher.versions import branch_from_ref, resolve_package

app = typer.Typer(
    name="preview-publisher",
    help="Publish content-addressed preview packages and retire stale ones.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s",
)
logger = logging.getLogger("preview_publisher")

GITHUB_PACKAGES_HOST = "npm.pkg.github.com"


def _setup_logging(verbose: bool) -> None:
    """Configure logging level based on verbosity flag."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.getLogger("preview_publisher").setLevel(level)


def _resolve_branch(branch: Optional[str], ref: Optional[str]) -> str:
    if branch:
        return branch
    if ref:
        return branch_from_ref(ref)
    raise ValidationError("Branch name is required (--branch or GITHUB_REF)")


def _create_registry(
    registry_url: str,
    registry_token: Optional[str],
    github: GitHubClient,
    owner: str,
    owner_type: str,
) -> BaseRegistry:
    """Create the registry client for a registry URL.

    GitHub Packages cannot unpublish through npm, so it gets a client that
    deletes through the GitHub API.
    """
    if urlparse(registry_url).netloc == GITHUB_PACKAGES_HOST:
        return GitHubPackagesRegistry(
            github,
            owner,
            registry_url=registry_url,
            token=registry_token,
            owner_type=owner_type,
        )
    return NpmRegistry(registry_url=registry_url, token=registry_token)


def _print_results(result: PipelineResult) -> None:
    """Print a per-package summary of a pipeline run."""
    for package in result.published:
        status = "[green]published[/green]" if package.is_new else "[cyan]tagged[/cyan]"
        console.print(
            f"  {package.name}@[bold]{package.version}[/bold] ({package.tag}) {status}"
        )

    for report in result.cleanup:
        _print_cleanup_report(report)

    if result.failures:
        err_console.print(f"\n[red]Failed ({len(result.failures)}):[/red]")
        for name, message in sorted(result.failures.items()):
            err_console.print(f"  - {name}: {message}")


def _print_cleanup_report(report: CleanupReport, dry_run: bool = False) -> None:
    if report.skipped:
        console.print(
            f"[yellow]Skipped cleanup for {report.package_name}:[/yellow] "
            f"{report.skipped_reason}"
        )
        return

    if dry_run and report.decision:
        console.print(f"[bold]{report.package_name}[/bold] would delete:")
        for candidate in report.decision.deletions:
            console.print(f"  - {candidate.version} ({int(candidate.age_days)} days old)")
        return

    if report.deleted or report.failed:
        console.print(
            f"Cleaned up [bold]{report.package_name}[/bold]: "
            f"{len(report.deleted)} deleted, {len(report.failed)} failed"
        )


def _write_outputs(
    result: PipelineResult,
    output: Optional[Path],
    github_output: Optional[Path],
    summary: Optional[Path],
    summary_template: Optional[Path] = None,
) -> None:
    json_reporter = JsonReporter()
    if output:
        json_reporter.write(result, output)
        console.print(f"[green]Wrote:[/green] {output}")
    if github_output:
        with open(github_output, "a", encoding="utf-8") as f:
            f.write(f"published-packages={json_reporter.render(result)}\n")
    if summary:
        if summary_template:
            reporter = MarkdownReporter(template_path=summary_template)
        else:
            reporter = MarkdownReporter()
        reporter.append(result, summary)


async def _run_publish(
    registry: str,
    registry_token: Optional[str],
    github_token: Optional[str],
    repository: str,
    owner_type: str,
    branch: str,
    packages_dir: Path,
    package_list: Optional[str],
    scope: Optional[str],
    build_command: str,
    skip_build: bool,
    max_versions: int,
    min_age_days: int,
    hash_length: int,
    skip_cleanup: bool,
) -> PipelineResult:
    """Async implementation of the publish command."""
    owner, repo = parse_repository(repository)
    policy = RetentionPolicy(max_versions=max_versions, min_age_days=min_age_days)

    console.print(f"Publishing preview packages for branch: [bold]{branch}[/bold]")
    console.print(f"[dim]Registry: {registry}[/dim]")

    packages = discover_packages(
        packages_dir, parse_package_list(package_list), scope=scope
    )
    console.print(f"Found [bold]{len(packages)}[/bold] packages to process")

    if skip_build:
        console.print("[dim]Skipping build[/dim]")
    else:
        await build_packages(packages_dir, build_command)

    async with GitHubClient(token=github_token) as github:
        async with _create_registry(
            registry, registry_token, github, owner, owner_type
        ) as registry_client:
            pipeline = PreviewPipeline(
                registry_client,
                GitHubBranchOracle(github, owner, repo),
                policy=policy,
                hash_length=hash_length,
                cleanup_enabled=not skip_cleanup,
            )
            return await pipeline.run(packages, branch)


@app.command()
def publish(
    repository: Annotated[
        str,
        typer.Option(
            "--repository",
            envvar="GITHUB_REPOSITORY",
            help="Repository as owner/repo, used to list live branches",
        ),
    ],
    branch: Annotated[
        Optional[str],
        typer.Option("--branch", "-b", help="Branch being built"),
    ] = None,
    ref: Annotated[
        Optional[str],
        typer.Option(
            "--ref",
            envvar="GITHUB_REF",
            help="Git ref being built (refs/heads/...), used when --branch is not set",
        ),
    ] = None,
    registry: Annotated[
        str,
        typer.Option("--registry", envvar="PREVIEW_REGISTRY", help="Registry URL"),
    ] = DEFAULT_REGISTRY,
    registry_token: Annotated[
        Optional[str],
        typer.Option(
            "--registry-token",
            envvar=["REGISTRY_TOKEN", "NODE_AUTH_TOKEN"],
            help="Registry auth token",
        ),
    ] = None,
    github_token: Annotated[
        Optional[str],
        typer.Option(
            "--github-token",
            envvar="GITHUB_TOKEN",
            help="GitHub API token for branch listing and version deletion",
        ),
    ] = None,
    owner_type: Annotated[
        str,
        typer.Option(
            "--owner-type",
            help="Whether the package owner is an organization ('orgs') or a user ('users')",
        ),
    ] = "orgs",
    packages_dir: Annotated[
        Path,
        typer.Option("--packages-dir", "-d", help="Directory containing packages"),
    ] = Path(DEFAULT_PACKAGES_DIR),
    package_list: Annotated[
        Optional[str],
        typer.Option(
            "--package-list",
            "-p",
            help="Comma-separated package directories to publish (default: all)",
        ),
    ] = None,
    scope: Annotated[
        Optional[str],
        typer.Option("--scope", help="npm scope to enforce on package names"),
    ] = None,
    build_command: Annotated[
        str,
        typer.Option("--build-command", help="Command that builds the packages"),
    ] = DEFAULT_BUILD_COMMAND,
    skip_build: Annotated[
        bool,
        typer.Option("--skip-build", help="Skip the build step"),
    ] = False,
    max_versions: Annotated[
        int,
        typer.Option(
            "--max-versions", min=1, help="Maximum preview versions kept per package"
        ),
    ] = DEFAULT_MAX_VERSIONS,
    min_age_days: Annotated[
        int,
        typer.Option(
            "--min-age-days", min=0, help="Minimum age in days before a version can be deleted"
        ),
    ] = DEFAULT_MIN_AGE_DAYS,
    hash_length: Annotated[
        int,
        typer.Option(
            "--hash-length", min=1, max=64, help="Hex characters kept from the content hash"
        ),
    ] = DEFAULT_HASH_LENGTH,
    skip_cleanup: Annotated[
        bool,
        typer.Option("--skip-cleanup", help="Do not delete old preview versions"),
    ] = False,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write published packages as JSON"),
    ] = None,
    github_output: Annotated[
        Optional[Path],
        typer.Option(
            "--github-output",
            envvar="GITHUB_OUTPUT",
            help="GitHub Actions output file to append published-packages to",
        ),
    ] = None,
    summary: Annotated[
        Optional[Path],
        typer.Option(
            "--summary",
            envvar="GITHUB_STEP_SUMMARY",
            help="File to append a Markdown summary to",
        ),
    ] = None,
    summary_template: Annotated[
        Optional[Path],
        typer.Option(
            "--summary-template",
            help="Custom Jinja2 template for the Markdown summary",
            exists=True,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output"),
    ] = False,
) -> None:
    """Build, version, clean up and publish preview packages.

    Exit codes:
        0 - All packages published or tagged
        1 - At least one package failed, or the run could not start
    """
    _setup_logging(verbose)

    try:
        result = asyncio.run(
            _run_publish(
                registry=registry,
                registry_token=registry_token,
                github_token=github_token,
                repository=repository,
                owner_type=owner_type,
                branch=_resolve_branch(branch, ref),
                packages_dir=packages_dir,
                package_list=package_list,
                scope=scope,
                build_command=build_command,
                skip_build=skip_build,
                max_versions=max_versions,
                min_age_days=min_age_days,
                hash_length=hash_length,
                skip_cleanup=skip_cleanup,
            )
        )
    except (PreviewPublishError, OSError) as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    except Exception:
        logger.exception("Unexpected error during publish")
        raise typer.Exit(code=1)

    _print_results(result)

    try:
        _write_outputs(result, output, github_output, summary, summary_template)
    except OSError as e:
        err_console.print(f"[red]Error writing output:[/red] {e}")
        raise typer.Exit(code=1)

    console.print(
        f"\n[green]Complete![/green] Processed {len(result.published)} packages"
    )
    raise typer.Exit(code=0 if result.ok else 1)


@app.command()
def versions(
    branch: Annotated[
        Optional[str],
        typer.Option("--branch", "-b", help="Branch being built"),
    ] = None,
    ref: Annotated[
        Optional[str],
        typer.Option("--ref", envvar="GITHUB_REF", help="Git ref being built"),
    ] = None,
    packages_dir: Annotated[
        Path,
        typer.Option("--packages-dir", "-d", help="Directory containing packages"),
    ] = Path(DEFAULT_PACKAGES_DIR),
    package_list: Annotated[
        Optional[str],
        typer.Option("--package-list", "-p", help="Comma-separated package directories"),
    ] = None,
    hash_length: Annotated[
        int,
        typer.Option(
            "--hash-length", min=1, max=64, help="Hex characters kept from the content hash"
        ),
    ] = DEFAULT_HASH_LENGTH,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output"),
    ] = False,
) -> None:
    """Show the preview version and branch tag each package would get.

    Reads build output only; nothing is published.
    """
    _setup_logging(verbose)

    try:
        branch_name = _resolve_branch(branch, ref)
        packages = discover_packages(packages_dir, parse_package_list(package_list))
    except (PreviewPublishError, OSError) as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    table = Table(title=f"Preview versions for {branch_name}")
    table.add_column("Package")
    table.add_column("Declared")
    table.add_column("Preview version")
    table.add_column("Tag")

    failed = False
    for package in packages:
        try:
            resolved = resolve_package(package, branch_name, hash_length=hash_length)
        except (PreviewPublishError, OSError) as e:
            err_console.print(f"[red]{package.name}:[/red] {e}")
            failed = True
            continue
        table.add_row(
            package.name,
            package.declared_version,
            resolved.preview_version,
            resolved.branch_tag,
        )

    console.print(table)
    raise typer.Exit(code=1 if failed else 0)


@app.command("hash")
def hash_command(
    directory: Annotated[
        Path,
        typer.Argument(help="Directory to fingerprint", exists=True, file_okay=False),
    ],
    length: Annotated[
        int,
        typer.Option("--length", "-l", min=1, max=64, help="Hex characters to print"),
    ] = DEFAULT_HASH_LENGTH,
) -> None:
    """Print the content fingerprint of a directory."""
    try:
        console.print(hasher.fingerprint(directory, length=length))
    except (PreviewPublishError, OSError) as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)


async def _run_cleanup(
    package_names: list[str],
    registry: str,
    registry_token: Optional[str],
    github_token: Optional[str],
    repository: str,
    owner_type: str,
    policy: RetentionPolicy,
    dry_run: bool,
) -> list[CleanupReport]:
    """Async implementation of the cleanup command."""
    owner, repo = parse_repository(repository)

    async with GitHubClient(token=github_token) as github:
        async with _create_registry(
            registry, registry_token, github, owner, owner_type
        ) as registry_client:
            return await cleanup_old_versions(
                package_names,
                registry_client,
                GitHubBranchOracle(github, owner, repo),
                policy,
                dry_run=dry_run,
            )


@app.command()
def cleanup(
    packages: Annotated[
        list[str],
        typer.Argument(help="Registry names of the packages to clean up"),
    ],
    repository: Annotated[
        str,
        typer.Option("--repository", envvar="GITHUB_REPOSITORY", help="Repository as owner/repo"),
    ],
    registry: Annotated[
        str,
        typer.Option("--registry", envvar="PREVIEW_REGISTRY", help="Registry URL"),
    ] = DEFAULT_REGISTRY,
    registry_token: Annotated[
        Optional[str],
        typer.Option(
            "--registry-token",
            envvar=["REGISTRY_TOKEN", "NODE_AUTH_TOKEN"],
            help="Registry auth token",
        ),
    ] = None,
    github_token: Annotated[
        Optional[str],
        typer.Option("--github-token", envvar="GITHUB_TOKEN", help="GitHub API token"),
    ] = None,
    owner_type: Annotated[
        str,
        typer.Option("--owner-type", help="'orgs' or 'users'"),
    ] = "orgs",
    max_versions: Annotated[
        int,
        typer.Option("--max-versions", min=1, help="Maximum preview versions kept per package"),
    ] = DEFAULT_MAX_VERSIONS,
    min_age_days: Annotated[
        int,
        typer.Option("--min-age-days", min=0, help="Minimum age in days before deletion"),
    ] = DEFAULT_MIN_AGE_DAYS,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would be deleted without deleting"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output"),
    ] = False,
) -> None:
    """Delete old preview versions whose branches are gone."""
    _setup_logging(verbose)

    try:
        reports = asyncio.run(
            _run_cleanup(
                package_names=packages,
                registry=registry,
                registry_token=registry_token,
                github_token=github_token,
                repository=repository,
                owner_type=owner_type,
                policy=RetentionPolicy(
                    max_versions=max_versions, min_age_days=min_age_days
                ),
                dry_run=dry_run,
            )
        )
    except (PreviewPublishError, OSError) as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    for report in reports:
        if not report.skipped and not report.decision:
            console.print(f"{report.package_name}: no cleanup needed")
        _print_cleanup_report(report, dry_run=dry_run)

    failed = any(report.failed for report in reports)
    raise typer.Exit(code=1 if failed else 0)


if __name__ == "__main__":
    app()
