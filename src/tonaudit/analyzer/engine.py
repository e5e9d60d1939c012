"""Rule engine — evaluates a rule catalog against one contract source."""

from __future__ import annotations

import logging
import re
import time

from tonaudit.analyzer.models import (
    Finding,
    FindingKind,
    FunctionRecord,
    ScanResult,
    Severity,
    SourceDocument,
)
from tonaudit.analyzer.patcher import synthesize_patch
from tonaudit.analyzer.rules import (
    DEFAULT_CATALOG,
    ENTRY_HANDLER,
    SENSITIVE_KEYWORDS,
    UNPROTECTED_WITHDRAWAL_TITLE,
    Anchor,
    Rule,
    RuleCatalog,
)
from tonaudit.analyzer.source import find_function, map_functions, strip_comments

logger = logging.getLogger(__name__)

MAX_SCORE = 100

# TipJar override: balance subtraction without any sender identity check.
_BALANCE_DECREMENT_RE = re.compile(r"total_balance\s*-=")
_IDENTITY_CHECK_RE = re.compile(r"equal_slices")
_TIPJAR_PENALTY = 30


class RuleEngine:
    """Runs every rule of a catalog over a source and scores the result."""

    def __init__(
        self,
        catalog: RuleCatalog | None = None,
        tipjar_override: bool = True,
    ) -> None:
        self._catalog = catalog if catalog is not None else DEFAULT_CATALOG
        self._tipjar_override = tipjar_override

    @property
    def catalog(self) -> RuleCatalog:
        return self._catalog

    def scan(self, source: str) -> ScanResult:
        """Scan one source document. Never raises on a bad rule."""
        start = time.time()
        doc = SourceDocument.from_text(source)
        clean = strip_comments(source)
        clean_lines = clean.split("\n")
        functions = map_functions(source)

        findings: list[Finding] = []
        score = MAX_SCORE

        for rule in self._catalog:
            try:
                finding = self._evaluate_rule(rule, doc, clean, clean_lines, functions)
            except (re.error, TypeError, ValueError, OverflowError, RecursionError) as e:
                logger.warning("Skipping malformed rule %s: %s", rule.id, e)
                continue
            if finding is None:
                continue
            logger.debug("Rule %s triggered at line %d", rule.id, finding.line)
            score -= rule.severity.weight
            findings.append(finding)

        if self._tipjar_override:
            score = _apply_tipjar_override(doc, clean, clean_lines, functions, findings, score)

        result = ScanResult(
            findings=findings,
            score=max(0, min(MAX_SCORE, score)),
            patched_source=synthesize_patch(doc.lines, findings),
            functions=functions,
            catalog_name=self._catalog.name,
        )
        result.duration = time.time() - start
        return result

    def _evaluate_rule(
        self,
        rule: Rule,
        doc: SourceDocument,
        clean: str,
        clean_lines: list[str],
        functions: list[FunctionRecord],
    ) -> Finding | None:
        pattern = rule.compile()
        matched = pattern.search(clean) is not None
        if matched == rule.invert:
            return None

        finding = Finding(
            line=0,
            severity=rule.severity,
            title=rule.title,
            description=rule.description,
            scenario=rule.scenario,
            suggestion=rule.suggestion,
            rule_id=rule.id,
            kind=rule.kind,
        )

        if not rule.invert:
            # First occurrence only
            line = _first_matching_line(pattern, clean_lines)
            if line:
                finding.line = line
                finding.function = find_function(functions, line)
                finding.affected_code = doc.snippet(line)
            return finding

        finding.line = 1
        anchor = _resolve_anchor(rule.anchor, functions)
        if anchor is not None:
            finding.line = anchor.start_line
            finding.function = anchor.name
            if rule.anchor == Anchor.ENTRY_HANDLER:
                finding.affected_code = f";; Missing checks in {anchor.name}"
            else:
                finding.affected_code = f";; Missing auth in {anchor.name}"
        return finding


def _first_matching_line(pattern: re.Pattern[str], lines: list[str]) -> int:
    for i, line in enumerate(lines):
        if pattern.search(line):
            return i + 1
    return 0


def _resolve_anchor(anchor: Anchor, functions: list[FunctionRecord]) -> FunctionRecord | None:
    if anchor == Anchor.ENTRY_HANDLER:
        for func in functions:
            if func.name == ENTRY_HANDLER:
                return func
    elif anchor == Anchor.SENSITIVE_FUNCTION:
        for func in functions:
            if any(k in func.name for k in SENSITIVE_KEYWORDS):
                return func
    return None


def _apply_tipjar_override(
    doc: SourceDocument,
    clean: str,
    clean_lines: list[str],
    functions: list[FunctionRecord],
    findings: list[Finding],
    score: int,
) -> int:
    """Known-vulnerability signature that overrides the generic rules.

    A ``total_balance -=`` with no ``equal_slices`` anywhere adds a dedicated
    CRITICAL finding (-30) unless one with the same title already exists.
    When both are present, an earlier unprotected-withdrawal finding is
    withdrawn and its deduction refunded.
    """
    has_withdraw = _BALANCE_DECREMENT_RE.search(clean) is not None
    has_auth = _IDENTITY_CHECK_RE.search(clean) is not None

    existing = next(
        (i for i, f in enumerate(findings) if f.title == UNPROTECTED_WITHDRAWAL_TITLE),
        None,
    )

    if has_withdraw and not has_auth:
        if existing is not None:
            return score
        line = _first_matching_line(_BALANCE_DECREMENT_RE, clean_lines)
        findings.append(
            Finding(
                line=line,
                severity=Severity.CRITICAL,
                title=UNPROTECTED_WITHDRAWAL_TITLE,
                description=(
                    "Funds are subtracted from total_balance, but no owner "
                    "authentication (equal_slices) was detected."
                ),
                scenario=(
                    "The contract subtracts from `total_balance` based on a user "
                    "request (op=2). However, no `throw_unless` checks the sender's "
                    "identity. Any user can simply request a withdrawal and drain "
                    "the pot."
                ),
                suggestion="Add access control checks immediately.",
                function=find_function(functions, line) if line else None,
                affected_code=doc.snippet(line),
                rule_id="TIPJAR_OVERRIDE",
                kind=FindingKind.UNPROTECTED_WITHDRAWAL,
            )
        )
        logger.debug("TipJar override added unprotected withdrawal at line %d", line)
        return score - _TIPJAR_PENALTY

    if has_withdraw and has_auth and existing is not None:
        removed = findings.pop(existing)
        logger.debug("TipJar override withdrew %s (owner check present)", removed.rule_id)
        return score + removed.severity.weight

    return score
