"""Tests for the rule engine and the scan facade."""

from __future__ import annotations

import pytest

from tonaudit.analyzer import AnalysisInputError, ensure_source, scan
from tonaudit.analyzer.engine import RuleEngine
from tonaudit.analyzer.models import FindingKind, Severity
from tonaudit.analyzer.rules import DEFAULT_CATALOG, Anchor, Rule, RuleCatalog

from conftest import CLEAN_SOURCE, GUARDED_SOURCE, TIPJAR_SOURCE


def _by_rule(result, rule_id):
    return [f for f in result.findings if f.rule_id == rule_id]


def _rule(rule_id: str, severity: Severity, pattern: str, **kwargs) -> Rule:
    return Rule(
        id=rule_id,
        title=rule_id.title(),
        severity=severity,
        description="",
        scenario="",
        suggestion="",
        pattern=pattern,
        **kwargs,
    )


class TestDefaultCatalog:
    def test_rule_order(self):
        assert [r.id for r in DEFAULT_CATALOG] == [
            "FUNC_BOUNCED_CHECK",
            "FUNC_OWNER_CHECK",
            "FUNC_SEND_RAW_MSG",
            "TIPJAR_VULNERABILITY",
        ]

    def test_duplicate_ids_rejected(self):
        rule = _rule("DUP", Severity.LOW, "x")
        with pytest.raises(ValueError, match="Duplicate"):
            RuleCatalog(name="dup", rules=(rule, rule))


class TestTipJarScan:
    def test_unchecked_send_and_missing_owner(self):
        result = scan(TIPJAR_SOURCE)
        titles = {f.title: f for f in result.findings}

        send = titles["Unchecked Message Sending"]
        assert send.severity == Severity.HIGH
        assert send.line == 18
        assert send.function == "recv_internal"
        assert send.affected_code == "send_raw_message(msg, 0);"

        owner = titles["Missing Owner Access Control"]
        assert owner.severity == Severity.CRITICAL
        # No withdraw/admin function to anchor on
        assert owner.line == 1
        assert owner.function is None

        assert result.score <= 100 - 15 - 25

    def test_bounce_check_anchored_at_handler(self):
        result = scan(TIPJAR_SOURCE)
        (bounce,) = _by_rule(result, "FUNC_BOUNCED_CHECK")
        assert bounce.severity == Severity.MEDIUM
        assert bounce.line == 9
        assert bounce.function == "recv_internal"
        assert bounce.kind == FindingKind.MISSING_BOUNCE_CHECK

    def test_generic_withdrawal_reported_once(self):
        result = scan(TIPJAR_SOURCE)
        withdrawals = [f for f in result.findings if f.title == "Potential Unprotected Withdrawal"]
        assert len(withdrawals) == 1
        assert withdrawals[0].line == 17

    def test_exact_score(self):
        # 100 - 10 (bounce) - 25 (owner) - 15 (send) - 25 (withdrawal)
        assert scan(TIPJAR_SOURCE).score == 25

    def test_stats(self):
        stats = scan(TIPJAR_SOURCE).stats
        assert stats["total"] == 4
        assert stats["critical"] == 2
        assert stats["high"] == 1
        assert stats["medium"] == 1

    def test_functions_reported(self):
        names = [f.name for f in scan(TIPJAR_SOURCE).functions]
        assert names == ["load_data", "recv_internal"]

    def test_deterministic(self):
        first = scan(TIPJAR_SOURCE)
        second = scan(TIPJAR_SOURCE)
        assert first.findings == second.findings
        assert first.score == second.score
        assert first.patched_source == second.patched_source


class TestOwnerAnchor:
    def test_points_at_sensitive_function(self):
        source = "() admin_withdraw() impure {\n    send_raw_message(msg, 64);\n}"
        result = scan(source)
        (owner,) = _by_rule(result, "FUNC_OWNER_CHECK")
        assert owner.line == 1
        assert owner.function == "admin_withdraw"
        assert owner.affected_code == ";; Missing auth in admin_withdraw"

    def test_later_sensitive_function(self):
        source = "() helper() {\n}\n\n() withdraw_all() impure {\n    return ();\n}"
        (owner,) = _by_rule(scan(source), "FUNC_OWNER_CHECK")
        assert owner.line == 4
        assert owner.function == "withdraw_all"


class TestTipJarOverride:
    def test_guarded_withdrawal_refunded(self):
        result = scan(GUARDED_SOURCE)
        assert not [f for f in result.findings if f.title == "Potential Unprotected Withdrawal"]
        assert result.findings == []
        assert result.score == 100

    def test_composite_added_without_generic_rule(self, empty_catalog):
        source = "() withdraw() impure {\n    total_balance -= 10;\n}"
        result = RuleEngine(empty_catalog).scan(source)
        (finding,) = result.findings
        assert finding.rule_id == "TIPJAR_OVERRIDE"
        assert finding.severity == Severity.CRITICAL
        assert finding.line == 2
        assert finding.function == "withdraw"
        assert result.score == 70

    def test_composite_not_duplicated(self):
        source = "() withdraw() impure {\n    total_balance -= 10;\n}"
        result = scan(source)
        titles = [f.title for f in result.findings]
        assert titles.count("Potential Unprotected Withdrawal") == 1

    def test_override_can_be_disabled(self, empty_catalog):
        source = "total_balance -= 10;"
        result = RuleEngine(empty_catalog, tipjar_override=False).scan(source)
        assert result.findings == []
        assert result.score == 100

    def test_commented_withdrawal_ignored(self, empty_catalog):
        source = ";; total_balance -= 10;\nint x = 1;"
        assert RuleEngine(empty_catalog).scan(source).findings == []


class TestCleanSource:
    def test_no_findings(self):
        result = scan(CLEAN_SOURCE)
        assert result.findings == []
        assert result.score == 100
        assert result.patched_source == CLEAN_SOURCE

    def test_commented_out_send_ignored(self):
        source = CLEAN_SOURCE + "\n;; send_raw_message(msg, 0);\n{- send_raw_message(msg, 1); -}"
        assert scan(source).findings == []


class TestRuleFailures:
    def test_malformed_rule_skipped(self, broken_catalog):
        result = RuleEngine(broken_catalog, tipjar_override=False).scan(TIPJAR_SOURCE)
        assert [f.rule_id for f in result.findings] == ["SEND_ANY"]
        assert result.score == 95

    @pytest.mark.parametrize(
        "pattern",
        [r"a{99999999999}", "(" * 1000 + "x" + ")" * 1000],
        ids=["huge-repeat", "deep-nesting"],
    )
    def test_uncompilable_rule_skipped(self, pattern: str):
        catalog = RuleCatalog(
            name="custom",
            rules=(
                _rule("HUGE", Severity.CRITICAL, pattern),
                _rule("SEND", Severity.LOW, "send_raw_message"),
            ),
        )
        result = RuleEngine(catalog, tipjar_override=False).scan("send_raw_message(msg, 0);")
        assert [f.rule_id for f in result.findings] == ["SEND"]
        assert result.score == 95

    def test_inverted_rule_without_anchor_defaults_to_line_one(self):
        catalog = RuleCatalog(
            name="custom",
            rules=(_rule("NEEDS_TOKEN", Severity.LOW, r"never_present_token", invert=True),),
        )
        (finding,) = RuleEngine(catalog).scan(CLEAN_SOURCE).findings
        assert finding.line == 1
        assert finding.function is None

    def test_entry_anchor_missing_handler(self):
        catalog = RuleCatalog(
            name="custom",
            rules=(
                _rule("BOUNCE", Severity.MEDIUM, r"flags\s*&\s*1", invert=True, anchor=Anchor.ENTRY_HANDLER),
            ),
        )
        (finding,) = RuleEngine(catalog).scan("int x = 1;").findings
        assert finding.line == 1

    def test_multiline_match_unlocated(self):
        catalog = RuleCatalog(
            name="custom",
            rules=(_rule("SPLIT", Severity.INFO, r"foo\s*\n\s*bar"),),
        )
        (finding,) = RuleEngine(catalog).scan("foo\nbar").findings
        assert finding.line == 0
        assert finding.affected_code is None

    def test_score_floored_at_zero(self):
        rules = tuple(
            _rule(f"MISSING_{i}", Severity.CRITICAL, f"token_{i}", invert=True) for i in range(6)
        )
        result = RuleEngine(RuleCatalog(name="harsh", rules=rules)).scan("int x = 1;")
        assert len(result.findings) == 6
        assert result.score == 0

    @pytest.mark.parametrize("source", [TIPJAR_SOURCE, GUARDED_SOURCE, CLEAN_SOURCE, "}", "{{{"])
    def test_score_in_range(self, source: str):
        score = scan(source).score
        assert isinstance(score, int)
        assert 0 <= score <= 100


class TestEnsureSource:
    def test_rejects_non_string(self):
        with pytest.raises(AnalysisInputError):
            ensure_source(42)

    def test_rejects_blank(self):
        with pytest.raises(AnalysisInputError, match="empty"):
            ensure_source("  \n ")

    def test_rejects_oversized(self):
        with pytest.raises(AnalysisInputError, match="exceeds"):
            ensure_source("x" * 11, max_bytes=10)

    def test_accepts_source(self):
        assert ensure_source(CLEAN_SOURCE) == CLEAN_SOURCE
