"""Heuristic attack-surface enumeration from the function table."""

from __future__ import annotations

import re

from tonaudit.analyzer.models import AttackSurface
from tonaudit.analyzer.source import map_functions, strip_comments

_RISKY_KEYWORDS = ("withdraw", "transfer", "send", "deposit", "mint", "burn", "admin", "owner")

_STATE_VAR_PATTERNS = [
    re.compile(r"(?:global\s+)?(?:int|cell|slice|builder)\s+(\w+)"),
    re.compile(r"(\w+)\s*::="),
]

_EXTERNAL_CALL_PATTERNS = [
    re.compile(r"send_raw_message"),
    re.compile(r"send_message"),
    re.compile(r"\.load_"),
    re.compile(r"\.store_"),
]

_HANDLER_PATTERNS = [
    re.compile(r"recv_internal"),
    re.compile(r"recv_external"),
    re.compile(r"tick_tock"),
    re.compile(r"on_bounce"),
]


def extract_state_variables(source: str) -> list[str]:
    clean = strip_comments(source)
    names: list[str] = []
    for pattern in _STATE_VAR_PATTERNS:
        for m in pattern.finditer(clean):
            if m.group(1) not in names:
                names.append(m.group(1))
    return names


def extract_external_calls(source: str) -> list[str]:
    clean = strip_comments(source)
    return [p.pattern for p in _EXTERNAL_CALL_PATTERNS if p.search(clean)]


def extract_handlers(source: str) -> list[str]:
    clean = strip_comments(source)
    return [p.pattern for p in _HANDLER_PATTERNS if p.search(clean)]


def enumerate_attack_surface(source: str) -> list[AttackSurface]:
    """List functions that look like entry points or touch funds."""
    lines = strip_comments(source).split("\n")
    surfaces: list[AttackSurface] = []

    for func in map_functions(source):
        body = "\n".join(lines[func.start_line - 1 : func.end_line])
        name_lower = func.name.lower()
        body_lower = body.lower()
        risky = any(k in name_lower or k in body_lower for k in _RISKY_KEYWORDS)
        if not risky and "recv" not in func.name:
            continue

        factors: list[str] = []
        if "send_raw_message" in body or "send_message" in body:
            factors.append("external call")
        if "balance" in body or "total" in body:
            factors.append("affects balance")
        if "throw_unless" not in body and "equal_slices" not in body:
            factors.append("missing access control")

        surfaces.append(
            AttackSurface(
                id=f"AS{len(surfaces) + 1}",
                entry_point=func.name,
                risk_factors=factors or ["potential entry point"],
                notes=f"Function {func.name} may be an attack surface",
                line_number=func.start_line,
            )
        )

    return surfaces
