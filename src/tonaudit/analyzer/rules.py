"""Security rule catalog — declarative patterns with severity and remediation text."""

from __future__ import annotations

import enum
import re
from collections.abc import Iterator
from dataclasses import dataclass

from tonaudit.analyzer.models import FindingKind, Severity


class Anchor(enum.Enum):
    """Where an inverted rule points when its required construct is missing."""

    NONE = "none"
    ENTRY_HANDLER = "entry_handler"
    SENSITIVE_FUNCTION = "sensitive_function"


ENTRY_HANDLER = "recv_internal"
SENSITIVE_KEYWORDS = ("withdraw", "admin")


@dataclass(frozen=True)
class Rule:
    """A detection rule.

    With ``invert`` unset a pattern match is a violation; with it set the
    *absence* of the pattern is the violation.
    """

    id: str
    title: str
    severity: Severity
    description: str
    scenario: str
    suggestion: str
    pattern: re.Pattern[str] | str
    invert: bool = False
    kind: FindingKind = FindingKind.OTHER
    anchor: Anchor = Anchor.NONE

    def compile(self) -> re.Pattern[str]:
        """Return the compiled pattern. Raises re.error (or OverflowError) for a malformed one."""
        if isinstance(self.pattern, re.Pattern):
            return self.pattern
        return re.compile(self.pattern)


@dataclass(frozen=True)
class RuleCatalog:
    """An ordered, immutable set of rules handed to the rule engine."""

    name: str
    rules: tuple[Rule, ...] = ()

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for rule in self.rules:
            if rule.id in seen:
                raise ValueError(f"Duplicate rule id in catalog {self.name!r}: {rule.id}")
            seen.add(rule.id)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def get(self, rule_id: str) -> Rule | None:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None


UNPROTECTED_WITHDRAWAL_TITLE = "Potential Unprotected Withdrawal"

DEFAULT_RULES: tuple[Rule, ...] = (
    Rule(
        id="FUNC_BOUNCED_CHECK",
        title="Missing Bounced Message Check",
        severity=Severity.MEDIUM,
        description=(
            "Smart contracts should handle or ignore bounced messages to avoid "
            "processing them as normal transactions."
        ),
        scenario=(
            "An attacker triggers a bounce (e.g., insufficient gas or error in a "
            "called contract). If unhandled, your contract might re-process this "
            "as a new deposit or command, potentially corrupting state or "
            "double-spending."
        ),
        suggestion="Add `if (flags & 1) { return (); }` at the start of recv_internal.",
        pattern=re.compile(r"flags\s*&\s*1"),
        invert=True,
        kind=FindingKind.MISSING_BOUNCE_CHECK,
        anchor=Anchor.ENTRY_HANDLER,
    ),
    Rule(
        id="FUNC_OWNER_CHECK",
        title="Missing Owner Access Control",
        severity=Severity.CRITICAL,
        description=(
            "Critical functions (like withdrawals) appear to be missing access controls."
        ),
        scenario=(
            "An attacker calls a privileged function (e.g., change_owner, "
            "withdraw). Without an `equal_slices(sender, owner)` check, the "
            "contract executes the command, allowing full takeover or fund "
            "drainage."
        ),
        suggestion=(
            "Ensure you check `equal_slices(sender_address, owner_address)` "
            "before processing privileged operations."
        ),
        pattern=re.compile(r"equal_slices", re.IGNORECASE),
        invert=True,
        kind=FindingKind.MISSING_OWNER_CHECK,
        anchor=Anchor.SENSITIVE_FUNCTION,
    ),
    Rule(
        id="FUNC_SEND_RAW_MSG",
        title="Unchecked Message Sending",
        severity=Severity.HIGH,
        description=(
            "The contract sends raw messages. Ensure the mode (e.g., 128, 64) is "
            "correct to avoid draining the balance."
        ),
        scenario=(
            "A contract sends funds using a mode like 128 (carry all balance) "
            "based on user input. An attacker exploits this to drain the entire "
            "contract balance in a single transaction."
        ),
        suggestion=(
            "Verify the second argument of `send_raw_message`. Use mode 64 for "
            "returning change, or explicit amounts."
        ),
        pattern=re.compile(r"send_raw_message\s*\(\s*[^,]+,\s*(0|1|2)\s*\)"),
        kind=FindingKind.UNCHECKED_SEND_MODE,
    ),
    Rule(
        id="TIPJAR_VULNERABILITY",
        title=UNPROTECTED_WITHDRAWAL_TITLE,
        severity=Severity.CRITICAL,
        description=(
            "Detected a pattern resembling the 'TipJar' bug: balance subtraction "
            "without obvious authority checks."
        ),
        scenario=(
            "The contract subtracts from `total_balance` based on a user request "
            "(op=2). However, no `throw_unless` checks the sender's identity. Any "
            "user can simply request a withdrawal and drain the pot."
        ),
        suggestion=(
            "Add `throw_unless(401, equal_slices(sender_address, owner_address));` "
            "before modifying the balance."
        ),
        pattern=re.compile(r"total_balance\s*-=|send_raw_message"),
        kind=FindingKind.UNPROTECTED_WITHDRAWAL,
    ),
)

DEFAULT_CATALOG = RuleCatalog(name="default", rules=DEFAULT_RULES)
