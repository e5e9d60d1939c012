"""Patch synthesizer — turns findings into canned line edits on the original source.

Edits are planned against the untouched line tuple and applied bottom-up in a
single pass, so an edit never shifts the line numbers of one still pending.
The output is not re-scanned.
"""

from __future__ import annotations

import enum
import logging
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from tonaudit.analyzer.models import Finding, FindingKind

logger = logging.getLogger(__name__)

OWNER_GUARD = "throw_unless(401, equal_slices(sender_address, owner_address));"
BOUNCE_GUARD = "if (flags & 1) { return (); }"
SAFE_SEND_MODE = "64"
SEND_MODE_MARKER = ";; patched: safe send mode"

_INDENT_RE = re.compile(r"^[ \t]*")
_SEND_MODE_RE = re.compile(r"(send_raw_message\s*\(\s*[^,]+,\s*)(?:0|1|2)(\s*\))")
_BODY_INDENT = "    "


class EditOp(enum.Enum):
    INSERT_BEFORE = "insert_before"
    INSERT_AFTER = "insert_after"
    REPLACE = "replace"


# Same-line edits are applied replace first, then after, then before, so each
# one still addresses the original line.
_OP_ORDER = {EditOp.REPLACE: 0, EditOp.INSERT_AFTER: 1, EditOp.INSERT_BEFORE: 2}


@dataclass(frozen=True)
class Edit:
    """A pending change against a 1-based line of the original source."""

    line: int
    op: EditOp
    text: str
    kind: FindingKind = FindingKind.OTHER


def _indent_of(line: str) -> str:
    return _INDENT_RE.match(line).group(0)


def _owner_guard(lines: Sequence[str], finding: Finding) -> Edit | None:
    target = lines[finding.line - 1]
    return Edit(finding.line, EditOp.INSERT_BEFORE, _indent_of(target) + OWNER_GUARD, finding.kind)


def _bounce_guard(lines: Sequence[str], finding: Finding) -> Edit | None:
    # The handler may open its body on the line after the signature
    opening = finding.line
    for i in range(finding.line - 1, min(finding.line + 1, len(lines))):
        if "{" in lines[i]:
            opening = i + 1
            break
    indent = _indent_of(lines[finding.line - 1]) + _BODY_INDENT
    return Edit(opening, EditOp.INSERT_AFTER, indent + BOUNCE_GUARD, finding.kind)


def _safe_send_mode(lines: Sequence[str], finding: Finding) -> Edit | None:
    target = lines[finding.line - 1]
    patched, count = _SEND_MODE_RE.subn(rf"\g<1>{SAFE_SEND_MODE}\g<2>", target, count=1)
    if not count:
        return None
    return Edit(finding.line, EditOp.REPLACE, f"{patched} {SEND_MODE_MARKER}", finding.kind)


_TEMPLATES: dict[FindingKind, Callable[[Sequence[str], Finding], Edit | None]] = {
    FindingKind.UNPROTECTED_WITHDRAWAL: _owner_guard,
    FindingKind.MISSING_OWNER_CHECK: _owner_guard,
    FindingKind.MISSING_BOUNCE_CHECK: _bounce_guard,
    FindingKind.UNCHECKED_SEND_MODE: _safe_send_mode,
}


def plan_edits(lines: Sequence[str], findings: Iterable[Finding]) -> list[Edit]:
    """Build the edit list for findings, highest line first.

    Findings without a template, without a location, or whose template does
    not apply are left unpatched. An edit identical to one already planned
    supersedes nothing and is dropped.
    """
    edits: list[Edit] = []
    seen: set[tuple[int, EditOp, str]] = set()

    for finding in sorted(findings, key=lambda f: f.line, reverse=True):
        if finding.line <= 0 or finding.line > len(lines):
            continue
        template = _TEMPLATES.get(finding.kind)
        if template is None:
            logger.debug("No patch template for %r", finding.title)
            continue
        edit = template(lines, finding)
        if edit is None:
            logger.debug("Template for %r did not apply at line %d", finding.title, finding.line)
            continue
        key = (edit.line, edit.op, edit.text.strip())
        if key in seen:
            continue
        # One replacement per line; the first planned wins
        if edit.op == EditOp.REPLACE and any(
            e.line == edit.line and e.op == EditOp.REPLACE for e in edits
        ):
            continue
        seen.add(key)
        edits.append(edit)

    edits.sort(key=lambda e: (-e.line, _OP_ORDER[e.op]))
    return edits


def apply_edits(lines: Sequence[str], edits: Iterable[Edit]) -> list[str]:
    """Apply edits already ordered by descending line to a copy of lines."""
    out = list(lines)
    for edit in edits:
        idx = edit.line - 1
        if edit.op == EditOp.REPLACE:
            out[idx] = edit.text
        elif edit.op == EditOp.INSERT_AFTER:
            out.insert(idx + 1, edit.text)
        else:
            out.insert(idx, edit.text)
    return out


def synthesize_patch(original_lines: Sequence[str], findings: Iterable[Finding]) -> str:
    """Return the full patched source text for a set of findings."""
    lines = tuple(original_lines)
    return "\n".join(apply_edits(lines, plan_edits(lines, findings)))
