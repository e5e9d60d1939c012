"""CLI command: tonaudit scan <file> — rule-based scan and auto-patch."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from tonaudit.analyzer.engine import RuleEngine
from tonaudit.analyzer.models import ScanResult, Severity
from tonaudit.cli.common import read_source, resolve_catalog

console = Console(stderr=True)

_SEVERITY_COLORS = {
    Severity.CRITICAL: "red",
    Severity.HIGH: "magenta",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "cyan",
    Severity.INFO: "blue",
}

_SEVERITY_ORDER = {s: i for i, s in enumerate(Severity)}


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--patch-out",
    "-o",
    type=click.Path(dir_okay=False, writable=True),
    help="Write the patched source to this path.",
)
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON on stdout.")
@click.pass_context
def scan(
    ctx: click.Context,
    file: str,
    patch_out: str | None,
    as_json: bool,
) -> None:
    """Scan a contract for known vulnerability patterns."""
    catalog = resolve_catalog(ctx)
    source = read_source(file)

    result = RuleEngine(catalog).scan(source)

    if patch_out:
        Path(patch_out).write_text(result.patched_source, encoding="utf-8")

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        console.print(
            f"[bold]tonaudit[/bold] scanning [cyan]{file}[/cyan] "
            f"with catalog [cyan]{catalog.name}[/cyan]\n"
        )
        _print_findings(result)
        if patch_out:
            console.print(f"Patched source written to [cyan]{patch_out}[/cyan]")

    critical_count = sum(1 for f in result.findings if f.severity == Severity.CRITICAL)
    if critical_count > 0:
        if not as_json:
            console.print(f"\n[red]{critical_count} critical finding(s)[/red]")
        sys.exit(1)


def _print_findings(result: ScanResult) -> None:
    if not result.findings:
        console.print("[green]No findings.[/green]")
        _print_summary(result)
        return

    findings = sorted(
        result.findings,
        key=lambda f: (_SEVERITY_ORDER[f.severity], f.line),
    )

    table = Table(title="Findings", show_lines=False)
    table.add_column("Severity", style="bold", width=10)
    table.add_column("Line", justify="right")
    table.add_column("Function", style="cyan")
    table.add_column("Title")
    table.add_column("Code", max_width=50)

    for finding in findings:
        color = _SEVERITY_COLORS.get(finding.severity, "white")
        table.add_row(
            f"[{color}]{finding.severity.value}[/{color}]",
            str(finding.line) if finding.line else "-",
            finding.function or "",
            finding.title,
            (finding.affected_code or "")[:50],
        )

    console.print(table)
    _print_summary(result)


def _print_summary(result: ScanResult) -> None:
    console.print(f"\n{result.summary}")
    console.print(f"Security score: [bold]{result.score}[/bold]/100")
