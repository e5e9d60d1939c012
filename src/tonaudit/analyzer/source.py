"""Source preprocessing — comment stripping and function boundary mapping.

Both operate on raw text with regexes and brace counting only. Line numbers
reported downstream always refer to the original source, so stripping never
adds or removes newline characters.
"""

from __future__ import annotations

import logging
import re

from tonaudit.analyzer.models import FunctionRecord

logger = logging.getLogger(__name__)

# One alternation scanned left to right, so a comment opener inside another
# comment is never treated as a second comment.
_COMMENT_RE = re.compile(
    r"//[^\n]*"
    r"|;;[^\n]*"
    r"|/\*.*?(?:\*/|\Z)"
    r"|\{-.*?(?:-\}|\Z)",
    re.DOTALL,
)

# Matches: () recv_internal(...) {, int sum(int a, int b) {,
# (int, int) get_data() method_id {
_SIGNATURE_RE = re.compile(r"^(?:(?:\([^()]*\)|[\w\[\]]+)\s+)*(\w+)\s*\(")

_CONTROL_KEYWORDS = frozenset(
    {"if", "ifnot", "elseif", "elseifnot", "else", "while", "repeat", "until", "do", "return", "try", "catch"}
)


def _blank_comment(match: re.Match[str]) -> str:
    text = match.group(0)
    newlines = text.count("\n")
    if newlines:
        return "\n" * newlines
    # A single space keeps ";" + "/*x*/" + ";" from fusing into ";;".
    if text.startswith(("/*", "{-")):
        return " "
    return ""


def strip_comments(source: str) -> str:
    """Remove //, ;;, /* */ and {- -} comments, preserving every newline.

    An unterminated block comment runs to the end of the input.
    """
    return _COMMENT_RE.sub(_blank_comment, source)


def match_signature(line: str) -> str | None:
    """Return the function name declared on a (stripped) line, if any."""
    m = _SIGNATURE_RE.match(line)
    if not m:
        return None
    name = m.group(1)
    if name in _CONTROL_KEYWORDS:
        return None
    return name


def map_functions(source: str) -> list[FunctionRecord]:
    """Recover (name, start, end) line ranges with a brace-depth heuristic.

    Top-level blocks without a recognisable signature are ignored, and a
    function still open at end of input is dropped.
    """
    lines = [line.strip() for line in strip_comments(source).split("\n")]
    functions: list[FunctionRecord] = []
    depth = 0
    pending: tuple[str, int] | None = None
    last_nonempty = -1

    for i, line in enumerate(lines):
        if not line:
            continue

        if depth == 0 and "{" in line:
            name = match_signature(line)
            if name:
                pending = (name, i + 1)
            elif last_nonempty >= 0:
                # Signature split from its opening brace
                name = match_signature(lines[last_nonempty])
                if name:
                    pending = (name, last_nonempty + 1)

        depth += line.count("{") - line.count("}")

        if depth < 0:
            logger.debug("Unbalanced '}' at line %d, resetting depth", i + 1)
            depth = 0
            pending = None
        elif depth == 0 and pending is not None:
            name, start = pending
            functions.append(FunctionRecord(name=name, start_line=start, end_line=i + 1))
            pending = None

        last_nonempty = i

    return functions


def find_function(functions: list[FunctionRecord], line: int) -> str | None:
    """Name of the first function whose range contains a 1-based line."""
    for func in functions:
        if func.contains(line):
            return func.name
    return None
