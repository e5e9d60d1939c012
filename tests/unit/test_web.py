"""Tests for the web API."""

from __future__ import annotations

import inspect

import pytest

pytest.importorskip("fastapi")
pytest.importorskip("httpx")

from fastapi.testclient import TestClient  # noqa: E402

from tonaudit.analyzer.engine import RuleEngine  # noqa: E402
from tonaudit.config import TonAuditConfig  # noqa: E402
from tonaudit.web.api import analysis  # noqa: E402
from tonaudit.web.app import create_app  # noqa: E402
from tonaudit.web.cache import ResultCache, content_hash  # noqa: E402

from conftest import TIPJAR_SOURCE  # noqa: E402


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app(TonAuditConfig(max_source_bytes=4096)))


class TestScanApi:
    def test_scan(self, client: TestClient):
        resp = client.post("/api/scan", json={"code": TIPJAR_SOURCE})
        assert resp.status_code == 200
        data = resp.json()
        assert data["score"] == 25
        assert len(data["findings"]) == 4
        assert "send_raw_message(msg, 64);" in data["patched_source"]

    def test_scan_is_cached(self, client: TestClient):
        first = client.post("/api/scan", json={"code": TIPJAR_SOURCE}).json()
        second = client.post("/api/scan", json={"code": TIPJAR_SOURCE}).json()
        assert len(client.app.state.cache) == 1
        assert second == first

    def test_layout_change_is_a_separate_entry(self, client: TestClient):
        multi_line = "() recv_internal(int flags) impure {\n    send_raw_message(msg, 0);\n}"
        one_line = "() recv_internal(int flags) impure { send_raw_message(msg, 0); }"
        client.post("/api/scan", json={"code": multi_line})
        data = client.post("/api/scan", json={"code": one_line}).json()

        assert len(client.app.state.cache) == 2
        expected = RuleEngine().scan(one_line)
        assert [f["line"] for f in data["findings"]] == [f.line for f in expected.findings]
        assert {f["line"] for f in data["findings"]} == {1}
        assert data["patched_source"] == expected.patched_source

    def test_empty_code_rejected(self, client: TestClient):
        resp = client.post("/api/scan", json={"code": "  "})
        assert resp.status_code == 400

    def test_oversized_code_rejected(self, client: TestClient):
        resp = client.post("/api/scan", json={"code": "x" * 5000})
        assert resp.status_code == 400

    def test_rules(self, client: TestClient):
        data = client.get("/api/rules").json()
        assert data["catalog"] == "default"
        assert len(data["rules"]) == 4


class TestExploitApi:
    def test_validate(self, client: TestClient):
        resp = client.post(
            "/api/exploits/validate",
            json={
                "code": TIPJAR_SOURCE,
                "exploits": [{"id": "E1", "title": "Ghost", "steps": ["Call ghost_admin() now"]}],
            },
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["exploits"][0]["status"] == "not-applicable"
        assert data["resilience_score"] == 100

    def test_surface(self, client: TestClient):
        data = client.post("/api/surface", json={"code": TIPJAR_SOURCE}).json()
        assert data["attack_surface"][0]["entry_point"] == "recv_internal"


class TestResultCache:
    def test_evicts_least_recent(self):
        cache = ResultCache(max_size=2)
        cache.put("a", {"n": 1})
        cache.put("b", {"n": 2})
        cache.get("a")
        cache.put("c", {"n": 3})
        assert cache.get("b") is None
        assert cache.get("a") == {"n": 1}

    def test_zero_size_disables(self):
        cache = ResultCache(max_size=0)
        cache.put("a", {})
        assert len(cache) == 0

    def test_hash_depends_on_catalog_and_layout(self):
        assert content_hash("x", "a") != content_hash("x", "b")
        assert content_hash("a  b") != content_hash("a b")
        assert content_hash("a\nb") != content_hash("a b")


@pytest.mark.parametrize("handler", [analysis.scan_source, analysis.validate, analysis.attack_surface])
def test_analysis_handlers_run_in_threadpool(handler):
    # Sync handlers are dispatched off the event loop by FastAPI
    assert not inspect.iscoroutinefunction(handler)
