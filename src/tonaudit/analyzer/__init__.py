"""Deterministic analysis core — scan, patch and exploit feasibility checks."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from tonaudit.analyzer.engine import RuleEngine
from tonaudit.analyzer.feasibility import validate
from tonaudit.analyzer.models import ExploitCandidate, ExploitVerdict, ScanResult
from tonaudit.analyzer.rules import DEFAULT_CATALOG, RuleCatalog
from tonaudit.analyzer.surface import enumerate_attack_surface


class AnalysisInputError(ValueError):
    """Source text rejected before it reaches the engine."""


def ensure_source(source: object, max_bytes: int | None = None) -> str:
    """Validate caller input at the boundary; the engine assumes a non-empty str."""
    if not isinstance(source, str):
        raise AnalysisInputError("Source must be a string")
    if not source.strip():
        raise AnalysisInputError("Source is empty")
    if max_bytes is not None and len(source.encode("utf-8")) > max_bytes:
        raise AnalysisInputError(f"Source exceeds {max_bytes} bytes")
    return source


def scan(source: str, catalog: RuleCatalog | None = None) -> ScanResult:
    """Strip, map, run the rules and synthesize the patch in one call."""
    return RuleEngine(catalog).scan(source)


def validate_exploits(
    candidates: Iterable[ExploitCandidate | Mapping],
    source: str,
) -> list[ExploitVerdict]:
    return validate(candidates, source)


__all__ = [
    "AnalysisInputError",
    "DEFAULT_CATALOG",
    "RuleCatalog",
    "RuleEngine",
    "enumerate_attack_surface",
    "ensure_source",
    "scan",
    "validate_exploits",
]
