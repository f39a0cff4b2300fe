"""Rich-based terminal output renderer for depconfuse scan results.

This module provides a Rich-powered renderer that formats ScanReport
findings as styled tables and summary panels for interactive terminal use.
It also supports JSON and compact one-line output modes for CI/CD pipeline
consumption.

The renderer produces:
- A header panel showing the target and scan metadata
- One findings table ordered by category severity, then specifier
- Project notes (lockfiles, private flag, missing manifest)
- A summary panel with per-category counts, exit code and PASS / FAIL

Public API:
    Renderer: Main class implementing all rendering modes
    render_report: Convenience function to render a ScanReport to the console
"""

from __future__ import annotations

import json

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from depconfuse.models import Category, Finding, ScanReport

OUTPUT_FORMATS: tuple[str, ...] = ("text", "json", "compact")

_CATEGORY_LABEL: dict[Category, str] = {
    Category.UNDECLARED_AND_PUBLIC: "Confusion risk",
    Category.UNREADABLE_SOURCE: "Unreadable",
    Category.UNDECLARED_PRIVATE: "Undeclared",
    Category.DECLARED_AND_PUBLIC: "Declared, public",
}


class Renderer:
    """Rich-based renderer for depconfuse ScanReport output.

    Attributes:
        console: The Rich Console instance used for output

    Example::

        renderer = Renderer()
        renderer.render(report)
        # Or for JSON output:
        renderer.render_json(report)
    """

    def __init__(self, console: Console | None = None, no_color: bool = False) -> None:
        """Initialise the Renderer.

        Args:
            console: Optional Rich Console instance. When None, a new Console
                is created writing to stdout.
            no_color: When True, disable Rich colour and styling.
        """
        self.console: Console = console or Console(highlight=False, no_color=no_color)

    # ------------------------------------------------------------------
    # Primary rendering entry points
    # ------------------------------------------------------------------

    def render(self, report: ScanReport) -> None:
        """Render a full ScanReport with Rich formatting."""
        self._render_header(report)
        self._render_findings(report)
        self._render_notes(report)
        self._render_summary(report)

    def render_json(self, report: ScanReport) -> None:
        """Render a ScanReport as pretty-printed JSON without styling."""
        output = json.dumps(report.to_dict(), indent=2, default=str)
        self.console.print(output, highlight=False, markup=False, soft_wrap=True)

    def render_compact(self, report: ScanReport) -> None:
        """Render a one-line summary suitable for CI log output.

        Outputs a single line like:
            [FAIL] depconfuse: 3 finding(s) (2 UNDECLARED_AND_PUBLIC, 1 DECLARED_AND_PUBLIC) in 12 source(s), target: ./app
        """
        status = "FAIL" if report.exit_code != 0 else "PASS"
        style = "bold red" if report.exit_code != 0 else "bold green"
        non_zero = [f"{v} {k}" for k, v in report.category_counts.items() if v > 0]
        counts_str = f" ({', '.join(non_zero)})" if non_zero else ""
        line = (
            f"[{style}]\\[{status}][/{style}] depconfuse: "
            f"{report.total_findings} finding(s){counts_str} "
            f"in {report.sources_scanned} source(s), target: {escape(report.target)}"
        )
        self.console.print(line, soft_wrap=True)

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _render_header(self, report: ScanReport) -> None:
        from depconfuse import __version__

        lines: list[str] = [
            f"[bold]depconfuse[/bold] v{__version__} - Dependency Confusion Scan",
            "",
            f"[dim]Target:[/dim]       [cyan]{escape(report.target)}[/cyan]",
            f"[dim]Scanned:[/dim]      {report.scan_timestamp}",
            f"[dim]Sources:[/dim]      {report.sources_scanned} source(s)",
            f"[dim]Declared:[/dim]     {report.declared_count} dependency name(s)",
            f"[dim]Lookups:[/dim]      {report.names_resolved} registry name(s)",
        ]
        panel = Panel(
            "\n".join(lines),
            title="[bold blue]depconfuse scan[/bold blue]",
            border_style="blue",
            padding=(1, 2),
        )
        self.console.print()
        self.console.print(panel)
        self.console.print()

    def _render_findings(self, report: ScanReport) -> None:
        self.console.rule("[bold]Findings[/bold]", style="blue")
        self.console.print()
        if not report.findings:
            self.console.print("  [bold green]✅  No package references found.[/bold green]")
            self.console.print()
            return
        self.console.print(self._build_findings_table(report.findings))
        self.console.print()

    def _build_findings_table(self, findings: list[Finding]) -> Table:
        table = Table(
            box=box.ROUNDED,
            show_header=True,
            header_style="bold dim",
            border_style="dim",
            expand=True,
            padding=(0, 1),
        )
        table.add_column("Category", width=18, no_wrap=True)
        table.add_column("Package", min_width=20, no_wrap=True)
        table.add_column("Source", min_width=20)
        table.add_column("Details", min_width=30)

        for finding in findings:
            table.add_row(
                self._category_badge(finding.category),
                Text(finding.specifier or "-", style="cyan", no_wrap=True),
                Text(finding.source),
                Text(_details(finding), style="dim"),
            )
        return table

    def _render_notes(self, report: ScanReport) -> None:
        if not report.notes:
            return
        for note in report.notes:
            self.console.print(f"  [dim]• {escape(note)}[/dim]")
        self.console.print()

    def _render_summary(self, report: ScanReport) -> None:
        self.console.rule("[bold]Scan Summary[/bold]", style="blue")
        self.console.print()

        counts = report.category_counts
        lines: list[str] = []
        for category in Category:
            count = counts.get(category.value, 0)
            style = category.severity.rich_style
            marker = "●" if count > 0 else "○"
            lines.append(
                f"  [{style}]{marker} {_CATEGORY_LABEL[category]:<18}[/{style}]  {count}"
            )

        if report.exit_code == 0:
            status_text = "[bold green]✅  PASS[/bold green]"
            border_style = "green"
            advice = "[dim]No undeclared public package references detected.[/dim]"
        else:
            status_text = "[bold red]❌  FAIL[/bold red]"
            border_style = "red"
            advice = (
                "[dim]Undeclared references resolve to public packages. Declare "
                "them, scope them to your private registry, or remove them.[/dim]"
            )

        content = (
            "\n".join(lines) + "\n\n"
            f"  [dim]Total findings:[/dim]  {report.total_findings}\n"
            f"  [dim]Exit code:[/dim]       {report.exit_code}\n\n"
            f"  Status: {status_text}\n\n"
            f"  {advice}"
        )
        self.console.print(
            Panel(content, title="[bold]Results[/bold]", border_style=border_style, padding=(1, 2))
        )
        self.console.print()

    @staticmethod
    def _category_badge(category: Category) -> Text:
        return Text(_CATEGORY_LABEL[category], style=category.severity.rich_style, no_wrap=True)


def _details(finding: Finding) -> str:
    """Build the details cell: reason plus resolution and near-miss hints."""
    parts = [finding.category.reason]
    meta = finding.metadata
    if meta.get("resolution") == "assumed":
        parts.append("registry answer uncertain, assumed public")
    if meta.get("similar_declared"):
        parts.append(f"resembles declared '{meta['similar_declared']}'")
    if meta.get("error"):
        parts.append(str(meta["error"]))
    return "; ".join(parts)


def render_report(
    report: ScanReport,
    output_format: str = "text",
    console: Console | None = None,
    no_color: bool = False,
) -> None:
    """Render a ScanReport in the requested format.

    Args:
        report: The ScanReport to render.
        output_format: One of 'text', 'json', or 'compact'.
        console: Optional Rich Console instance to use.
        no_color: When True, disable Rich styling.

    Raises:
        ValueError: If output_format is not one of the accepted values.
    """
    if output_format not in OUTPUT_FORMATS:
        raise ValueError(
            f"output_format must be one of {OUTPUT_FORMATS}, got '{output_format}'"
        )
    renderer = Renderer(console=console, no_color=no_color)
    if output_format == "json":
        renderer.render_json(report)
    elif output_format == "compact":
        renderer.render_compact(report)
    else:
        renderer.render(report)
