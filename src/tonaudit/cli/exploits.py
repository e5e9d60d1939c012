"""CLI command: tonaudit exploits <source> <candidates.json> — feasibility filter."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from tonaudit.analyzer import validate_exploits
from tonaudit.analyzer.feasibility import resilience_score, risk_level
from tonaudit.analyzer.models import ExploitStatus
from tonaudit.cli.common import read_source

console = Console(stderr=True)

_STATUS_COLORS = {
    ExploitStatus.PLAUSIBLE: "red",
    ExploitStatus.THEORETICAL: "yellow",
    ExploitStatus.NOT_APPLICABLE: "dim",
}


def _load_candidates(path: str) -> list[dict]:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise click.UsageError(f"{path}: invalid JSON ({e})") from e
    # Accept a bare list or the AI layer's {"exploits": [...]} envelope
    if isinstance(data, dict):
        data = data.get("exploits", [])
    if not isinstance(data, list) or not all(isinstance(c, dict) for c in data):
        raise click.UsageError(f"{path}: expected a list of exploit objects")
    return data


@click.command()
@click.argument("source_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("candidates_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print verdicts as JSON on stdout.")
def exploits(source_file: str, candidates_file: str, as_json: bool) -> None:
    """Check AI-proposed exploits against the contract structure."""
    source = read_source(source_file)
    verdicts = validate_exploits(_load_candidates(candidates_file), source)

    score = resilience_score(verdicts)
    plausible = sum(1 for v in verdicts if v.status == ExploitStatus.PLAUSIBLE)
    level = risk_level(score, plausible)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "exploits": [v.to_dict() for v in verdicts],
                    "resilience_score": score,
                    "risk_level": level,
                },
                indent=2,
            )
        )
        return

    table = Table(title="Exploit feasibility", show_lines=False)
    table.add_column("ID", style="bold")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Functions", style="cyan")

    for verdict in verdicts:
        color = _STATUS_COLORS[verdict.status]
        table.add_row(
            verdict.candidate.id,
            verdict.candidate.title,
            f"[{color}]{verdict.status.value}[/{color}]",
            ", ".join(verdict.referenced_functions),
        )

    console.print(table)
    console.print(f"\nResilience score: [bold]{score}[/bold]/100 (risk: {level})")
