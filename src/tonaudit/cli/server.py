"""CLI command: tonaudit server — start the web API."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console

from tonaudit.config import TonAuditConfig

console = Console(stderr=True)


@click.command()
@click.option(
    "--port",
    type=int,
    default=None,
    help="Port to listen on (default: 8471).",
)
@click.pass_context
def server(ctx: click.Context, port: int | None) -> None:
    """Start the tonaudit web API."""
    try:
        import uvicorn
    except ImportError:
        console.print(
            "[red]Web dependencies not installed.[/red]\n"
            "Install with: pip install tonaudit[web]"
        )
        raise SystemExit(1)

    config = TonAuditConfig.load()
    if port is not None:
        config.web_port = port
    catalog_path = ctx.obj.get("catalog_path") if ctx.obj else None
    if catalog_path:
        config.catalog_path = Path(catalog_path)

    console.print(
        f"[bold]tonaudit[/bold] API starting on "
        f"[cyan]http://{config.web_host}:{config.web_port}[/cyan]"
    )

    from tonaudit.web.app import create_app

    uvicorn.run(
        create_app(config),
        host=config.web_host,
        port=config.web_port,
        log_level="info",
    )
