"""Tests for the HTTP API."""
import io

import httpx
from docx import Document

import auth
import llm
import routes
from models import ParsedOutput, MAX_INPUT_CHARS


def _fake_translate(result=None, error=None):
    async def _translate(text, api_key, model):
        if error is not None:
            raise error
        return result
    return _translate


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "history": {"count": 0, "capacity": 20}}


def test_models(client):
    r = client.get("/api/models")
    assert r.status_code == 200
    ids = [m["id"] for m in r.json()["models"]]
    assert "gemini-2.5-pro" in ids
    assert "gpt-4-1106-preview" in ids


def test_process_without_key_returns_mock_and_saves(client, store):
    r = client.post("/api/process", json={"text": "第1条 本契約は", "model": "gemini-2.5-flash"})
    assert r.status_code == 200
    d = r.json()
    assert d["originalText"] == "第1条 本契約は"
    assert "gemini-2.5-flash" in d["translation"]
    assert d["interpretation"]

    records = store.list()
    assert len(records) == 1
    assert records[0].model == "gemini-2.5-flash"
    assert records[0].original_text == "第1条 本契約は"


def test_process_uses_parsed_provider_output(client, store, monkeypatch):
    monkeypatch.setattr(llm, "translate_content",
                        _fake_translate(ParsedOutput(translation="甲方", interpretation="* 甲")))
    r = client.post("/api/process", json={"text": "甲", "apiKey": "sk-test", "model": "gpt-4-1106-preview"})
    assert r.status_code == 200
    assert r.json() == {"originalText": "甲", "translation": "甲方", "interpretation": "* 甲"}
    assert store.list()[0].translation == "甲方"


def test_incomplete_result_is_not_saved(client, store, monkeypatch):
    monkeypatch.setattr(llm, "translate_content",
                        _fake_translate(ParsedOutput(translation="plain text only", interpretation="")))
    r = client.post("/api/process", json={"text": "甲", "apiKey": "sk-test"})
    assert r.status_code == 200
    assert r.json()["translation"] == "plain text only"
    assert store.list() == []


def test_process_rejects_empty_text(client):
    assert client.post("/api/process", json={"text": ""}).status_code == 400
    assert client.post("/api/process", json={"text": "   \n"}).status_code == 400


def test_process_rejects_long_text(client):
    r = client.post("/api/process", json={"text": "あ" * (MAX_INPUT_CHARS + 1)})
    assert r.status_code == 400
    assert str(MAX_INPUT_CHARS) in r.json()["detail"]


def test_process_provider_error_is_502(client, store, monkeypatch):
    monkeypatch.setattr(llm, "translate_content",
                        _fake_translate(error=llm.TranslationError("Rate limit exceeded. Please try again later.")))
    r = client.post("/api/process", json={"text": "甲", "apiKey": "sk-test"})
    assert r.status_code == 502
    assert r.json()["detail"] == "Rate limit exceeded. Please try again later."
    assert store.list() == []


def test_test_key_validation(client):
    assert client.post("/api/test-key", json={"provider": "openai"}).status_code == 400
    r = client.post("/api/test-key", json={"apiKey": "k", "provider": "anthropic"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Unknown provider"


def test_test_key_delegates(client, monkeypatch):
    seen = {}

    async def _check(api_key, provider, model=None):
        seen.update(api_key=api_key, provider=provider, model=model)
        return {"success": True, "message": "Gemini API Connected!"}

    monkeypatch.setattr(llm, "check_connection", _check)
    r = client.post("/api/test-key", json={"apiKey": "k", "provider": "google", "model": "gemini-2.5-pro"})
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert seen == {"api_key": "k", "provider": "google", "model": "gemini-2.5-pro"}


def test_scrape(client, monkeypatch):
    async def _scrape(url):
        return "第1条 目的"

    monkeypatch.setattr(routes, "scrape_url", _scrape)
    r = client.post("/api/scrape", json={"url": "https://elaws.e-gov.go.jp/document"})
    assert r.status_code == 200
    assert r.json() == {"text": "第1条 目的"}


def test_scrape_rejects_non_http_url(client):
    assert client.post("/api/scrape", json={"url": "file:///etc/passwd"}).status_code == 400


def test_history_listing_and_delete(client, store):
    for n in range(3):
        store.save(f"原文 {n}", "译文", "解读", "gemini-2.5-pro")
    r = client.get("/api/history")
    assert r.status_code == 200
    entries = r.json()
    assert len(entries) == 3
    assert {"id", "timestamp", "model", "originalText", "translation", "interpretation",
            "preview"} == set(entries[0])

    target = entries[0]["id"]
    r = client.delete(f"/api/history/{target}")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "count": 2}
    assert target not in {e["id"] for e in client.get("/api/history").json()}

    r = client.delete("/api/history/unknown")
    assert r.json()["count"] == 2


def test_history_clear(client, store):
    store.save("原文", "译文", "解读", "m")
    assert client.delete("/api/history").status_code == 200
    assert client.get("/api/history").json() == []


def test_export_markdown(client, store):
    store.save("甲は乙に対し", "甲方对乙方", "* 对し: 对", "gemini-2.5-pro")
    record = store.list()[0]
    r = client.get(f"/api/history/{record.id}/export")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/markdown")
    assert "甲は乙に対し" in r.text
    assert "甲方对乙方" in r.text
    assert "gemini-2.5-pro" in r.text


def test_export_docx(client, store):
    store.save("甲は乙に対し", "甲方对乙方", "解读", "gemini-2.5-pro")
    record = store.list()[0]
    r = client.get(f"/api/history/{record.id}/export", params={"format": "docx"})
    assert r.status_code == 200
    assert f"translation-{record.timestamp}.docx" in r.headers["content-disposition"]
    texts = [p.text for p in Document(io.BytesIO(r.content)).paragraphs]
    assert "甲方对乙方" in texts


def test_export_errors(client, store):
    assert client.get("/api/history/missing/export").status_code == 404
    store.save("o", "t", "i", "m")
    record = store.list()[0]
    assert client.get(f"/api/history/{record.id}/export", params={"format": "pdf"}).status_code == 400


def test_password_gate(client, monkeypatch):
    monkeypatch.setattr(auth, "APP_PASSWORD", "secret")
    assert client.get("/api/history").status_code == 401
    assert client.get("/api/history", headers={"X-App-Password": "wrong"}).status_code == 401
    assert client.get("/api/history", headers={"X-App-Password": "secret"}).status_code == 200


def test_rate_limit(client, monkeypatch):
    monkeypatch.setattr(auth, "RATE_LIMIT_REQUESTS", 2)
    assert client.post("/api/process", json={"text": "甲"}).status_code == 200
    assert client.post("/api/process", json={"text": "乙"}).status_code == 200
    r = client.post("/api/process", json={"text": "丙"})
    assert r.status_code == 429


def test_process_malformed_provider_response_is_502(client, store, monkeypatch):
    monkeypatch.setattr(llm, "_transport", httpx.MockTransport(
        lambda request: httpx.Response(200, text="<html>proxy</html>")))
    r = client.post("/api/process", json={"text": "甲", "apiKey": "sk-test", "model": "gpt-4-1106-preview"})
    assert r.status_code == 502
    assert "malformed response" in r.json()["detail"]
    assert store.list() == []


def test_export_format_query_parameter(client, store):
    store.save("原文", "译文", "解读", "gemini-2.5-pro")
    record = store.list()[0]
    r = client.get(f"/api/history/{record.id}/export", params={"format": "md"})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/markdown")
    assert "译文" in r.text
