"""Analyzer data models — source documents, findings, scan results, exploits."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field


class Severity(enum.Enum):
    """Finding severity level."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def weight(self) -> int:
        """Points deducted from the security score when a rule of this severity fires."""
        return _SEVERITY_WEIGHTS[self]


_SEVERITY_WEIGHTS = {
    Severity.CRITICAL: 25,
    Severity.HIGH: 15,
    Severity.MEDIUM: 10,
    Severity.LOW: 5,
    Severity.INFO: 0,
}


class FindingKind(enum.Enum):
    """Stable identifier of a vulnerability class, used to pick a patch template."""

    UNPROTECTED_WITHDRAWAL = "unprotected_withdrawal"
    MISSING_OWNER_CHECK = "missing_owner_check"
    MISSING_BOUNCE_CHECK = "missing_bounce_check"
    UNCHECKED_SEND_MODE = "unchecked_send_mode"
    OTHER = "other"


class ExploitStatus(enum.Enum):
    """Feasibility verdict for an exploit candidate."""

    PLAUSIBLE = "plausible"
    THEORETICAL = "theoretical"
    NOT_APPLICABLE = "not-applicable"


@dataclass(frozen=True)
class SourceDocument:
    """Raw contract text plus its lines. Built per analysis call."""

    text: str
    lines: tuple[str, ...]

    @classmethod
    def from_text(cls, text: str) -> SourceDocument:
        return cls(text=text, lines=tuple(text.split("\n")))

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def snippet(self, line: int) -> str | None:
        """Stripped text of a 1-based line, or None when out of range."""
        if line <= 0 or line > len(self.lines):
            return None
        return self.lines[line - 1].strip()


@dataclass(frozen=True)
class FunctionRecord:
    """Approximate line range of a function, 1-based and inclusive."""

    name: str
    start_line: int
    end_line: int

    def contains(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line


@dataclass
class Finding:
    """A single triggered rule located in a source document."""

    line: int
    severity: Severity
    title: str
    description: str
    scenario: str
    suggestion: str
    function: str | None = None
    affected_code: str | None = None
    rule_id: str = ""
    kind: FindingKind = FindingKind.OTHER

    def to_dict(self) -> dict:
        return {
            "line": self.line,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "scenario": self.scenario,
            "suggestion": self.suggestion,
            "function": self.function,
            "affected_code": self.affected_code,
            "rule_id": self.rule_id,
            "kind": self.kind.value,
        }


@dataclass
class ScanResult:
    """Aggregate result of one static scan."""

    findings: list[Finding] = field(default_factory=list)
    score: int = 100
    patched_source: str = ""
    functions: list[FunctionRecord] = field(default_factory=list)
    catalog_name: str = ""
    duration: float = 0.0
    timestamp: float = field(default_factory=time.time)

    @property
    def stats(self) -> dict[str, int]:
        counts = {"total": len(self.findings)}
        for severity in Severity:
            counts[severity.value] = sum(
                1 for f in self.findings if f.severity == severity
            )
        return counts

    @property
    def summary(self) -> str:
        return (
            "Static analysis completed. "
            f"Found {len(self.findings)} potential issues."
        )

    def to_dict(self) -> dict:
        return {
            "findings": [f.to_dict() for f in self.findings],
            "score": self.score,
            "patched_source": self.patched_source,
            "functions": [
                {"name": f.name, "start_line": f.start_line, "end_line": f.end_line}
                for f in self.functions
            ],
            "stats": self.stats,
            "summary": self.summary,
            "catalog": self.catalog_name,
        }


def _pick(data: dict, *keys: str, default=None):
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass
class ExploitCandidate:
    """An exploit proposed by the AI layer, consumed as plain data."""

    id: str
    title: str
    prerequisites: str = ""
    steps: list[str] = field(default_factory=list)
    expected_impact: str = ""
    attack_surface_id: str = ""
    type: str = "other"
    likelihood: str = "medium"
    severity: str = "Medium"
    exploit_code: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> ExploitCandidate:
        """Build a candidate from a camelCase or snake_case mapping."""
        steps = _pick(data, "steps", default=[])
        if isinstance(steps, str):
            steps = [steps]
        return cls(
            id=str(_pick(data, "id", default="")),
            title=str(_pick(data, "title", default="")),
            prerequisites=str(_pick(data, "prerequisites", default="")),
            steps=[str(s) for s in steps],
            expected_impact=str(
                _pick(data, "expectedImpact", "expected_impact", default="")
            ),
            attack_surface_id=str(
                _pick(data, "attackSurfaceId", "attack_surface_id", default="")
            ),
            type=str(_pick(data, "type", default="other")),
            likelihood=str(_pick(data, "likelihood", default="medium")),
            severity=str(_pick(data, "severity", default="Medium")),
            exploit_code=_pick(data, "exploitCode", "exploit_code"),
        )


@dataclass(frozen=True)
class ExploitVerdict:
    """A candidate together with its computed feasibility status."""

    candidate: ExploitCandidate
    status: ExploitStatus
    referenced_functions: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        c = self.candidate
        return {
            "id": c.id,
            "title": c.title,
            "prerequisites": c.prerequisites,
            "steps": list(c.steps),
            "expected_impact": c.expected_impact,
            "attack_surface_id": c.attack_surface_id,
            "type": c.type,
            "likelihood": c.likelihood,
            "severity": c.severity,
            "status": self.status.value,
            "referenced_functions": list(self.referenced_functions),
        }


@dataclass
class AttackSurface:
    """A contract entry point worth attacking, with heuristic risk factors."""

    id: str
    entry_point: str
    risk_factors: list[str] = field(default_factory=list)
    notes: str = ""
    line_number: int | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "entry_point": self.entry_point,
            "risk_factors": list(self.risk_factors),
            "notes": self.notes,
            "line_number": self.line_number,
        }
