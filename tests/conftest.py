"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from tonaudit.analyzer.models import FindingKind, Severity
from tonaudit.analyzer.rules import Rule, RuleCatalog

# Withdraws from total_balance with no owner check, no bounce check and a
# mode-0 send. Line numbers are relied upon by the tests.
TIPJAR_SOURCE = """\
;; TipJar contract
global int total_balance;

() load_data() impure {
    var ds = get_data().begin_parse();
    total_balance = ds~load_coins();
}

() recv_internal(int my_balance, int msg_value, cell in_msg_full, slice in_msg_body) impure {
    slice cs = in_msg_full.begin_parse();
    int flags = cs~load_uint(4);
    slice sender_address = cs~load_msg_addr();
    load_data();
    int op = in_msg_body~load_uint(32);
    if (op == 2) {
        int amount = in_msg_body~load_coins();
        total_balance -= amount;
        send_raw_message(msg, 0);
    }
}"""

# Same withdrawal, but guarded by bounce and owner checks.
GUARDED_SOURCE = """\
global int total_balance;
global slice owner_address;

() recv_internal(int my_balance, int msg_value, cell in_msg_full, slice in_msg_body) impure {
    slice cs = in_msg_full.begin_parse();
    int flags = cs~load_uint(4);
    if (flags & 1) {
        return ();
    }
    slice sender_address = cs~load_msg_addr();
    int op = in_msg_body~load_uint(32);
    if (op == 2) {
        throw_unless(401, equal_slices(sender_address, owner_address));
        int amount = in_msg_body~load_coins();
        total_balance -= amount;
    }
}"""

# Nothing any default rule reacts to.
CLEAN_SOURCE = """\
global slice owner_address;

() recv_internal(int my_balance, int msg_value, cell in_msg_full, slice in_msg_body) impure {
    slice cs = in_msg_full.begin_parse();
    int flags = cs~load_uint(4);
    if (flags & 1) {
        return ();
    }
    slice sender_address = cs~load_msg_addr();
    throw_unless(401, equal_slices(sender_address, owner_address));
}

int get_counter() method_id {
    return 0;
}"""


@pytest.fixture
def tipjar_source() -> str:
    return TIPJAR_SOURCE


@pytest.fixture
def guarded_source() -> str:
    return GUARDED_SOURCE


@pytest.fixture
def clean_source() -> str:
    return CLEAN_SOURCE


@pytest.fixture
def tipjar_file(tmp_path: Path) -> Path:
    path = tmp_path / "tipjar.fc"
    path.write_text(TIPJAR_SOURCE)
    return path


@pytest.fixture
def clean_file(tmp_path: Path) -> Path:
    path = tmp_path / "clean.fc"
    path.write_text(CLEAN_SOURCE)
    return path


@pytest.fixture
def empty_catalog() -> RuleCatalog:
    return RuleCatalog(name="empty")


@pytest.fixture
def broken_catalog() -> RuleCatalog:
    return RuleCatalog(
        name="broken",
        rules=(
            Rule(
                id="BROKEN",
                title="Broken Rule",
                severity=Severity.CRITICAL,
                description="",
                scenario="",
                suggestion="",
                pattern="(unclosed",
            ),
            Rule(
                id="SEND_ANY",
                title="Any Send",
                severity=Severity.LOW,
                description="",
                scenario="",
                suggestion="",
                pattern=r"send_raw_message",
                kind=FindingKind.OTHER,
            ),
        ),
    )
