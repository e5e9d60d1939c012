"""tonaudit command line.

Commands:
    scan      report findings and a security score, optionally write the patch
    exploits  classify exploit candidates against a contract
    surface   list entry points and their risk factors
    server    serve the same analysis over HTTP (needs the web extra)

Every command reads the rule catalog from ``--catalog``, falling back to
``TONAUDIT_CATALOG`` and then the built-in rules.
"""

from __future__ import annotations

import logging

import click

from tonaudit import __version__
from tonaudit.config import TonAuditConfig

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=_LOG_FORMAT,
        datefmt="%H:%M:%S",
    )


@click.group()
@click.version_option(version=__version__, prog_name="tonaudit")
@click.option(
    "--catalog",
    "-c",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML rule catalog to scan with instead of the built-in rules.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log rule hits and skipped patches.")
@click.pass_context
def main(ctx: click.Context, catalog: str | None, verbose: bool) -> None:
    """tonaudit: static analysis and auto-patching for TON FunC contracts."""
    verbose = verbose or TonAuditConfig.load().verbose
    ctx.ensure_object(dict)
    ctx.obj["catalog_path"] = catalog
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose)


def _register_commands() -> None:
    from tonaudit.cli.exploits import exploits
    from tonaudit.cli.scan import scan
    from tonaudit.cli.server import server
    from tonaudit.cli.surface import surface

    for command in (scan, exploits, surface, server):
        main.add_command(command)


_register_commands()
