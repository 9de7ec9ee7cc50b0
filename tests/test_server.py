"""Tests for the polyfunc Flask server."""

from __future__ import annotations

import pytest

flask = pytest.importorskip("flask", reason="Flask not installed (pip install polyfunc[server])")

from polyfunc.config import Config  # noqa: E402
from polyfunc.profiles import LanguageProfile, ProfileRegistry  # noqa: E402
from polyfunc.server import create_app  # noqa: E402


@pytest.fixture
def client():
    app = create_app()
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


class TestHealth:
    def test_health_ok(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["status"] == "ok"
        assert "version" in data

    def test_cors_headers(self, client):
        resp = client.get("/health")
        assert resp.headers.get("Access-Control-Allow-Origin") == "*"


class TestLanguages:
    def test_lists_profiles_in_order(self, client):
        resp = client.get("/languages")
        assert resp.status_code == 200
        data = resp.get_json()
        assert [p["name"] for p in data] == ["javascript", "python", "go", "rust"]
        assert data[2]["characteristics"]["concurrency"] == 10
        assert data[0]["libraries"]["express"] == {"purpose": "web server", "maturity": 9}


class TestRecommend:
    def test_flat_query(self, client):
        resp = client.post("/recommend", json={
            "performance": {"weight": 1},
            "concurrency": {"weight": 1},
            "useCase": "system",
        })
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["language"] == "rust"
        assert data["profile"]["name"] == "rust"
        assert [r["language"] for r in data["ranking"]] == ["rust", "go", "javascript", "python"]

    def test_nested_analysis(self, client):
        resp = client.post("/recommend", json={
            "useCase": "ml",
            "requirements": {"ecosystem": {"importance": 9, "weight": 1}},
        })
        assert resp.get_json()["language"] == "python"

    def test_not_json(self, client):
        resp = client.post("/recommend", data="not json", content_type="text/plain")
        assert resp.status_code == 400
        assert "error" in resp.get_json()

    def test_not_an_object(self, client):
        resp = client.post("/recommend", json=[1, 2])
        assert resp.status_code == 400

    def test_options_preflight(self, client):
        resp = client.options("/recommend")
        assert resp.status_code == 204
        assert "POST" in resp.headers.get("Access-Control-Allow-Methods", "")

    def test_empty_registry(self):
        app = create_app(registry=ProfileRegistry())
        with app.test_client() as client:
            data = client.post("/recommend", json={"memory": {"weight": 1}}).get_json()
        assert data["language"] is None
        assert data["ranking"] == []

    def test_custom_registry(self):
        registry = ProfileRegistry([LanguageProfile("zig", {"memory": 10})])
        app = create_app(registry=registry)
        with app.test_client() as client:
            data = client.post("/recommend", json={"memory": {"weight": 1}}).get_json()
        assert data["language"] == "zig"
        assert data["score"] == 10


class TestConfig:
    def test_hides_api_key(self):
        app = create_app(config=Config({"llm": {"apiKey": "sk-secret"}}))
        with app.test_client() as client:
            data = client.get("/config").get_json()
        assert "apiKey" not in data["llm"]
        assert data["llm"]["model"] == "gpt-4"

    def test_scalar_llm_section(self):
        config = Config()
        config.set("llm", "disabled")
        app = create_app(config=config)
        with app.test_client() as client:
            resp = client.get("/config")

        assert resp.status_code == 200
        assert resp.get_json()["llm"] == "disabled"
