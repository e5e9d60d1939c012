"""Exploit feasibility filter — cross-checks AI-proposed exploits against the contract.

This is textual correlation against the function table and a few risk
patterns, not verification. Every candidate is kept; impossible ones are
marked not-applicable so callers can still show what was tried.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping

from tonaudit.analyzer.models import (
    ExploitCandidate,
    ExploitStatus,
    ExploitVerdict,
    FunctionRecord,
)
from tonaudit.analyzer.source import map_functions, strip_comments

logger = logging.getLogger(__name__)

_IMPOSSIBLE_PREREQUISITES = [
    re.compile(r"function.*doesn't exist", re.IGNORECASE),
    re.compile(r"function.*does not exist", re.IGNORECASE),
    re.compile(r"variable.*is immutable", re.IGNORECASE),
    re.compile(r"cannot.*be called", re.IGNORECASE),
]

_STATE_PATTERNS = [
    re.compile(r"balance", re.IGNORECASE),
    re.compile(r"owner", re.IGNORECASE),
    re.compile(r"admin", re.IGNORECASE),
    re.compile(r"total", re.IGNORECASE),
]

_RISK_PATTERNS = [
    re.compile(r"send.*message", re.IGNORECASE),
    re.compile(r"withdraw", re.IGNORECASE),
    re.compile(r"transfer", re.IGNORECASE),
    re.compile(r"deposit", re.IGNORECASE),
    re.compile(r"balance", re.IGNORECASE),
]

# Code-style references: foo_bar(...), "call foo_bar", "invoke foo_bar"
_CALL_RE = re.compile(r"\b([A-Za-z_]\w*)\(")
_NAMED_CALL_RE = re.compile(r"\b(?:call|calls|calling|invoke|invokes|invoking)\s+`?([A-Za-z_]\w*)")

_LIKELIHOOD_PENALTY = {"high": 20, "medium": 10, "low": 5}
_SEVERITY_PENALTY = {"critical": 15, "high": 10, "medium": 5, "low": 2}
_THEORETICAL_PENALTY = 1


def _candidate_text(candidate: ExploitCandidate) -> str:
    return " ".join(
        [candidate.title, candidate.prerequisites, " ".join(candidate.steps), candidate.expected_impact]
    )


def referenced_functions(candidate: ExploitCandidate, functions: list[FunctionRecord]) -> list[str]:
    """Names from the function table that the candidate mentions, in table order."""
    text = _candidate_text(candidate).lower()
    names: list[str] = []
    for func in functions:
        if func.name.lower() in text and func.name not in names:
            names.append(func.name)
    return names


def missing_references(text: str, functions: list[FunctionRecord], source_lower: str) -> list[str]:
    """Code-style identifiers in text that exist neither as functions nor anywhere in source."""
    known = {f.name.lower() for f in functions}
    missing: list[str] = []
    for m in _CALL_RE.finditer(text):
        name = m.group(1)
        if name.lower() not in known and name.lower() not in source_lower:
            missing.append(name)
    for m in _NAMED_CALL_RE.finditer(text):
        name = m.group(1)
        # Only identifiers that look like code, "call the owner" is prose
        if "_" not in name:
            continue
        if name.lower() not in known and name.lower() not in source_lower:
            missing.append(name)
    return list(dict.fromkeys(missing))


def is_impossible(prerequisites: str) -> bool:
    return any(p.search(prerequisites) for p in _IMPOSSIBLE_PREREQUISITES)


def prerequisites_supported(
    candidate: ExploitCandidate,
    functions: list[FunctionRecord],
    source_lower: str,
) -> bool:
    """Whatever the candidate relies on must exist in the contract.

    A candidate naming no specific function or state is supported.
    """
    if missing_references(_candidate_text(candidate), functions, source_lower):
        return False

    prerequisites = candidate.prerequisites.strip()
    if not prerequisites:
        return True

    prereq_lower = prerequisites.lower()
    if any(f.name.lower() in prereq_lower for f in functions):
        return True

    for pattern in _STATE_PATTERNS:
        if pattern.search(prerequisites) and not pattern.search(source_lower):
            return False
    return True


def steps_correlate(steps: list[str], source_lower: str) -> bool:
    """At least one risk pattern appears both in the steps and in the source."""
    if not steps:
        return False
    steps_text = " ".join(steps)
    return any(p.search(steps_text) and p.search(source_lower) for p in _RISK_PATTERNS)


def classify(
    candidate: ExploitCandidate,
    functions: list[FunctionRecord],
    source_lower: str,
) -> ExploitVerdict:
    referenced = tuple(referenced_functions(candidate, functions))

    if is_impossible(candidate.prerequisites):
        status = ExploitStatus.NOT_APPLICABLE
    else:
        prereqs_ok = prerequisites_supported(candidate, functions, source_lower)
        steps_ok = steps_correlate(candidate.steps, source_lower)
        if prereqs_ok and steps_ok:
            status = ExploitStatus.PLAUSIBLE
        elif prereqs_ok or steps_ok:
            status = ExploitStatus.THEORETICAL
        elif not referenced:
            status = ExploitStatus.NOT_APPLICABLE
        else:
            status = ExploitStatus.THEORETICAL

    logger.debug("Exploit %s classified as %s", candidate.id, status.value)
    return ExploitVerdict(candidate=candidate, status=status, referenced_functions=referenced)


def validate(
    exploits: Iterable[ExploitCandidate | Mapping],
    source: str,
) -> list[ExploitVerdict]:
    """Classify each candidate as plausible, theoretical or not-applicable."""
    functions = map_functions(source)
    source_lower = strip_comments(source).lower()
    verdicts: list[ExploitVerdict] = []
    for exploit in exploits:
        candidate = exploit if isinstance(exploit, ExploitCandidate) else ExploitCandidate.from_dict(exploit)
        verdicts.append(classify(candidate, functions, source_lower))
    return verdicts


def resilience_score(verdicts: Iterable[ExploitVerdict]) -> int:
    """100 minus penalties for plausible and theoretical exploits, floored at 0."""
    score = 100
    for verdict in verdicts:
        if verdict.status == ExploitStatus.PLAUSIBLE:
            score -= _LIKELIHOOD_PENALTY.get(verdict.candidate.likelihood.lower(), 0)
            score -= _SEVERITY_PENALTY.get(verdict.candidate.severity.lower(), 0)
        elif verdict.status == ExploitStatus.THEORETICAL:
            score -= _THEORETICAL_PENALTY
    return max(0, score)


def risk_level(score: int, plausible_count: int) -> str:
    if score < 30 or plausible_count > 3:
        return "critical"
    if score < 50 or plausible_count > 1:
        return "high"
    if score < 70:
        return "medium"
    if score < 90:
        return "low"
    return "none"
