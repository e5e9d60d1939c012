"""Tests for attack surface enumeration."""

from __future__ import annotations

from tonaudit.analyzer import enumerate_attack_surface
from tonaudit.analyzer.surface import (
    extract_external_calls,
    extract_handlers,
    extract_state_variables,
)

from conftest import CLEAN_SOURCE, TIPJAR_SOURCE


class TestAttackSurface:
    def test_tipjar_entry_point(self):
        (surface,) = enumerate_attack_surface(TIPJAR_SOURCE)
        assert surface.id == "AS1"
        assert surface.entry_point == "recv_internal"
        assert surface.line_number == 9
        assert surface.risk_factors == [
            "external call",
            "affects balance",
            "missing access control",
        ]

    def test_guarded_handler_has_no_access_control_factor(self):
        surfaces = enumerate_attack_surface(CLEAN_SOURCE)
        assert [s.entry_point for s in surfaces] == ["recv_internal"]
        assert "missing access control" not in surfaces[0].risk_factors

    def test_quiet_function_gets_default_factor(self):
        source = "() recv_external() impure {\n    accept_message();\n    throw_unless(35, 1);\n}"
        (surface,) = enumerate_attack_surface(source)
        assert surface.risk_factors == ["potential entry point"]

    def test_to_dict(self):
        (surface,) = enumerate_attack_surface(TIPJAR_SOURCE)
        assert surface.to_dict()["entry_point"] == "recv_internal"


class TestExtractors:
    def test_state_variables(self):
        names = extract_state_variables(TIPJAR_SOURCE)
        assert "total_balance" in names
        assert "flags" in names

    def test_external_calls(self):
        assert extract_external_calls(TIPJAR_SOURCE) == ["send_raw_message"]

    def test_handlers(self):
        assert extract_handlers(TIPJAR_SOURCE) == ["recv_internal"]

    def test_commented_handler_ignored(self):
        assert extract_handlers(";; recv_external\nint x = 1;") == []
