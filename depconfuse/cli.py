"""Command line interface: depconfuse.

Subcommands:
    depconfuse scan-repo --repo https://github.com/org/app.git
    depconfuse scan-repo --path ./app
    depconfuse scan-files --list files.txt --project ./app

Registry settings default to the ``DEPCONFUSE_*`` environment variables
(see ``depconfuse.config``); options given on the command line win. The
process exits with the report's exit code (1 when a confusion risk was
found), or 2 on usage and repository errors.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable

import click

from depconfuse import __version__
from depconfuse.config import ScanConfig
from depconfuse.errors import RepositoryError
from depconfuse.models import ScanReport
from depconfuse.renderer import OUTPUT_FORMATS, render_report
from depconfuse.repo import checkout
from depconfuse.scanner import scan_file_list, scan_repository


def _common_options(func: Callable) -> Callable:
    options = [
        click.option("--concurrency", type=int, default=None, help="Concurrent registry checks (default 10)"),
        click.option("--timeout", type=float, default=None, help="Per-query timeout in seconds (default 5)"),
        click.option("--registry-url", default=None, help="Registry base URL"),
        click.option(
            "--format",
            "output_format",
            type=click.Choice(OUTPUT_FORMATS),
            default="text",
            show_default=True,
            help="Output format",
        ),
        click.option("--no-color", is_flag=True, help="Disable coloured output"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_config(**overrides: object) -> ScanConfig:
    try:
        return ScanConfig.from_env(**overrides)
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc


def _finish(report: ScanReport, output_format: str, no_color: bool) -> None:
    render_report(report, output_format=output_format, no_color=no_color)
    sys.exit(report.exit_code)


@click.group()
@click.version_option(__version__, prog_name="depconfuse")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
def main(verbose: bool) -> None:
    """Dependency confusion scanner for repositories and JavaScript files."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


@main.command("scan-repo")
@click.option("--repo", "repo_url", default=None, help="git clone URL")
@click.option("--path", "local_path", default=None, help="Local repository path")
@click.option("--skip-declared", is_flag=True, help="Do not check declared names on the registry")
@_common_options
def scan_repo(
    repo_url: str | None,
    local_path: str | None,
    skip_declared: bool,
    concurrency: int | None,
    timeout: float | None,
    registry_url: str | None,
    output_format: str,
    no_color: bool,
) -> None:
    """Clone or open a repository and scan it."""
    target = repo_url or local_path
    if not target:
        raise click.UsageError("Provide --repo or --path")

    config = _build_config(
        concurrency=concurrency,
        timeout=timeout,
        registry_url=registry_url,
        check_declared=False if skip_declared else None,
    )
    try:
        with checkout(target) as root:
            report = scan_repository(root, config, target=target)
    except RepositoryError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)
    _finish(report, output_format, no_color)


@main.command("scan-files")
@click.option(
    "--list",
    "list_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to newline-delimited list of files",
)
@click.option(
    "--project",
    "project_root",
    default=".",
    show_default=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Project root for resolving package.json",
)
@_common_options
def scan_files(
    list_file: Path,
    project_root: Path,
    concurrency: int | None,
    timeout: float | None,
    registry_url: str | None,
    output_format: str,
    no_color: bool,
) -> None:
    """Scan a list of files for package references."""
    config = _build_config(concurrency=concurrency, timeout=timeout, registry_url=registry_url)
    try:
        report = scan_file_list(list_file.resolve(), project_root.resolve(), config)
    except OSError as exc:
        click.echo(f"Error: cannot read file list {list_file}: {exc}", err=True)
        sys.exit(2)
    _finish(report, output_format, no_color)


if __name__ == "__main__":
    main()
