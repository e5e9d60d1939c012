"""CLI command: tonaudit surface <file> — heuristic attack surface."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from tonaudit.analyzer import enumerate_attack_surface
from tonaudit.analyzer.surface import extract_handlers
from tonaudit.cli.common import read_source

console = Console(stderr=True)


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def surface(file: str) -> None:
    """List entry points and fund-moving functions of a contract."""
    source = read_source(file)
    surfaces = enumerate_attack_surface(source)

    if not surfaces:
        console.print("[green]No attack surface found.[/green]")
        return

    table = Table(title="Attack surface", show_lines=False)
    table.add_column("ID", style="bold")
    table.add_column("Entry point", style="cyan")
    table.add_column("Line", justify="right")
    table.add_column("Risk factors")

    for s in surfaces:
        table.add_row(s.id, s.entry_point, str(s.line_number or ""), ", ".join(s.risk_factors))

    console.print(table)
    handlers = extract_handlers(source)
    if handlers:
        console.print(f"\nHandlers: {', '.join(handlers)}")
