"""Helpers shared by CLI commands."""

from __future__ import annotations

from pathlib import Path

import click

from tonaudit.analyzer import AnalysisInputError, ensure_source
from tonaudit.analyzer.loader import load_catalog
from tonaudit.analyzer.rules import RuleCatalog
from tonaudit.config import TonAuditConfig


def resolve_catalog(ctx: click.Context) -> RuleCatalog:
    """--catalog wins over TONAUDIT_CATALOG and the config-dir catalog."""
    path = ctx.obj.get("catalog_path") if ctx.obj else None
    try:
        if path:
            return load_catalog(path)
        return TonAuditConfig.load().catalog()
    except ValueError as e:
        raise click.ClickException(f"Invalid rule catalog: {e}") from e


def read_source(path: str) -> str:
    """Read and validate a contract file, exiting with status 2 on bad input."""
    config = TonAuditConfig.load()
    text = Path(path).read_text(encoding="utf-8", errors="replace")
    try:
        return ensure_source(text, max_bytes=config.max_source_bytes)
    except AnalysisInputError as e:
        raise click.UsageError(f"{path}: {e}") from e
