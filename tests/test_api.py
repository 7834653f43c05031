import logging
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from robotscan_agent import main
from robotscan_agent.errors import InvalidUrlError, ScanConnectivityError
from robotscan_agent.logging_setup import JsonFormatter
from robotscan_agent.models import BotAccessResult, Scan
from robotscan_agent.storage import InMemoryCooldownStore, InMemoryScanStore


def _fake_scan(url, config=None, **kw):
    return Scan(
        url=url,
        robots_txt_found=True,
        robots_txt_content="User-agent: *\nDisallow: /admin",
        bot_permissions={"GPTBot": "Disallow: /admin"},
        score=45,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(main, "_scans", InMemoryScanStore())
    monkeypatch.setattr(main, "_cooldowns", InMemoryCooldownStore())
    monkeypatch.setattr(main, "run_scan", _fake_scan)
    return TestClient(main.app)


def test_healthz(client):
    assert client.get("/healthz").json() == {"ok": True}


def test_scan_returns_camel_case(client):
    res = client.post("/scan", json={"url": "example.com"})
    assert res.status_code == 200
    body = res.json()
    assert body["id"] == 1
    assert body["url"] == "example.com"
    assert body["robotsTxtFound"] is True
    assert body["llmsTxtFound"] is False
    assert body["llmsTxtContent"] is None
    assert body["botPermissions"] == {"GPTBot": "Disallow: /admin"}
    assert body["score"] == 45
    assert body["cooldownActive"] is False


def test_repeat_scan_of_same_domain_is_on_cooldown(client):
    first = client.post("/scan", json={"url": "https://www.example.com/a", "userId": "u1"}).json()
    second = client.post("/scan", json={"url": "http://example.com/b", "user_id": "u1"}).json()
    other_user = client.post("/scan", json={"url": "example.com", "user_id": "u2"}).json()
    assert first["cooldownActive"] is False
    assert second["cooldownActive"] is True
    assert second["id"] == 2
    assert other_user["cooldownActive"] is False


def test_invalid_url_is_400(client, monkeypatch):
    def boom(url, config=None, **kw):
        raise InvalidUrlError("Please enter a valid website domain.")

    monkeypatch.setattr(main, "run_scan", boom)
    res = client.post("/scan", json={"url": "nope"})
    assert res.status_code == 400
    assert res.json()["detail"] == "Please enter a valid website domain."


def test_unreachable_site_is_502(client, monkeypatch):
    def boom(url, config=None, **kw):
        raise ScanConnectivityError("dns", "DNS resolution failed: Unable to resolve the domain name.")

    monkeypatch.setattr(main, "run_scan", boom)
    res = client.post("/scan", json={"url": "missing.example"})
    assert res.status_code == 502
    assert res.json()["detail"].startswith("DNS resolution failed")


def test_get_scan_and_404(client):
    client.post("/scan", json={"url": "example.com"})
    res = client.get("/scans/1")
    assert res.status_code == 200
    assert res.json()["robotsTxtContent"] == "User-agent: *\nDisallow: /admin"
    assert client.get("/scans/99").status_code == 404


def test_recommendations_and_score(client):
    client.post("/scan", json={"url": "example.com"})
    recs = client.get("/scans/1/recommendations").json()
    assert recs[0]["key"] == "missing_llms_txt"
    assert any(r["category"] == "llms_txt" for r in recs)

    score = client.get("/scans/1/score").json()
    assert score["status"] in ("Excellent", "Good", "Needs Work", "Poor")
    assert {f["key"] for f in score["factors"]} >= {"baseline", "robots_txt"}


def test_compare(client):
    client.post("/scan", json={"url": "example.com"})
    client.post("/scan", json={"url": "example.com"})
    body = client.get("/compare", params={"old_id": 1, "new_id": 2}).json()
    assert body["oldScanId"] == 1
    assert body["differences"] == []
    assert body["stats"]["total"] == 0
    assert body["stats"]["byType"]["bot_permission"] == 0
    assert body["botRows"] == [{"bot": "GPTBot", "valA": "Disallow: /admin", "valB": "Disallow: /admin", "status": "same"}]
    assert body["changes"]["hasChanges"] is False
    assert body["changes"]["newErrors"] == []

    assert client.get("/compare", params={"old_id": 1, "new_id": 5}).status_code == 404


def test_bot_access(client, monkeypatch):
    def fake_probe(url, bot_name, config=None, **kw):
        return BotAccessResult(bot=bot_name, user_agent="GPTBot/1.0", status=200, accessible=True, status_text="OK")

    monkeypatch.setattr(main, "probe_bot_access", fake_probe)
    body = client.post("/test-bot-access", json={"url": "example.com", "botName": "GPTBot"}).json()
    assert body["accessible"] is True
    assert body["statusText"] == "OK"


def test_import_robots_txt(client):
    res = client.post("/import/robots-txt", json={"content": "User-agent: *\nDisallow: /admin\nSitemap: https://h/s.xml"})
    assert res.status_code == 200
    body = res.json()
    assert body["summary"] == "Found: 1 user-agent group, Sitemap URL, 1 Disallow rules"
    assert body["parsed"]["sitemaps"] == ["https://h/s.xml"]
    assert body["parsed"]["userAgentsFound"] == ["*"]
    assert body["parsed"]["disallowedPaths"] == ["/admin"]
    assert body["parsed"]["groups"][0]["userAgents"] == ["*"]

    assert client.post("/import/robots-txt", json={"content": "<html><body>hi</body></html>"}).status_code == 422


def test_import_llms_txt(client):
    res = client.post("/import/llms-txt", json={"content": "# Acme\n## Docs\n- [Guide](https://acme.test/guide)"})
    assert res.status_code == 200
    assert res.json()["summary"] == "Found: Title, 1 section (Docs), 1 link"
    assert res.json()["parsed"]["sectionNames"] == ["Docs"]
    assert res.json()["parsed"]["totalLinks"] == 1

    assert client.post("/import/llms-txt", json={"content": "<html></html>"}).status_code == 422


def test_json_logging_is_installed_at_startup_not_on_import():
    root = logging.getLogger()
    assert not any(isinstance(h.formatter, JsonFormatter) for h in root.handlers)

    handlers, level = list(root.handlers), root.level
    try:
        with TestClient(main.app):
            assert any(isinstance(h.formatter, JsonFormatter) for h in root.handlers)
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)
