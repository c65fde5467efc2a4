from kasbot.formatter import ERROR_REPLY, FALLBACK_SUGGESTIONS
from kasbot.knowledge.knowledge_updater import RefreshReport

ORIGIN = "https://egy-tronix.com"


def test_liveness_is_plain_text(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.text == "KAS Bot is running"
    assert response.headers["content-type"].startswith("text/plain")


def test_branch_address_two_turns(client):
    first = client.post("/chat", json={"message": "عنوان", "context": {}})
    assert first.status_code == 200
    body = first.json()
    assert body["context"]["awaiting"] == "branch_address"
    assert {chip["send"] for chip in body["suggestions"]} >= {"فيصل", "الإسكندرية"}

    second = client.post("/chat", json={"message": "الاسكندرية", "context": body["context"]})
    body = second.json()
    assert "شارع 45، العصافرة" in body["reply"]
    assert body["context"]["awaiting"] is None
    assert body["context"]["lastBranch"] == "الإسكندرية"
    assert "suggestions" not in body


def test_greeting_returns_context_unchanged(client):
    context = {"lastDept": "المبيعات", "visits": 3}
    body = client.post("/chat", json={"message": "السلام عليكم", "context": context}).json()
    assert body["reply"].endswith("☎️ الخط الساخن: 01000000000")
    assert body["context"] == context


def test_fallback_carries_suggestions(client):
    body = client.post("/chat", json={"message": "qwerty"}).json()
    assert body["suggestions"] == FALLBACK_SUGGESTIONS
    assert body["context"] == {}


def test_non_json_body_is_answered_as_empty_turn(client):
    response = client.post("/chat", content=b"not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 200
    body = response.json()
    assert body["context"] == {}
    assert body["suggestions"] == FALLBACK_SUGGESTIONS


def test_non_object_context_and_message_are_coerced(client):
    response = client.post("/chat", json={"message": 42, "context": ["x"]})
    assert response.status_code == 200
    assert response.json()["context"] == {}

    response = client.post("/chat", json={"message": "عنوان", "context": {"awaiting": None, "deep": {"a": 1}}})
    assert response.json()["context"] == {"awaiting": "branch_address", "lastUserMessage": "عنوان"}


def test_agent_failure_returns_retry_reply(make_client):
    client = make_client()
    client.app.state.agent.handle_message = _explode
    context = {"lastProductId": "kas_2025"}
    response = client.post("/chat", json={"message": "دليل", "context": context})
    assert response.status_code == 200
    assert response.json() == {"reply": ERROR_REPLY, "context": context}


def test_agent_failure_status_is_configurable(make_client):
    client = make_client(error_status_code=500)
    client.app.state.agent.handle_message = _explode
    response = client.post("/chat", json={"message": "دليل"})
    assert response.status_code == 500
    assert response.json()["reply"] == ERROR_REPLY


def test_strip_emoji_setting(make_client):
    client = make_client(strip_emoji=True)
    body = client.post("/chat", json={"message": "ازيك"}).json()
    assert "👋" not in body["reply"]
    assert "الخط الساخن: 01000000000" in body["reply"]


def test_debug_reports_knowledge_status(client):
    body = client.get("/debug").json()
    assert body["ok"] is True
    assert body["version"] == 1
    assert body["file"] == "knowledge.json"
    assert body["counts"] == {"branches": 4, "departments": 5, "products": 7, "greetings": 9}
    assert body["scrape_enabled"] is False
    assert body["scheduler_running"] is False
    assert body["routes"][0] == "greeting"
    assert body["routes"][-1] == "fallback"


def test_debug_reports_broken_knowledge_file(make_client, tmp_path):
    broken = tmp_path / "knowledge.json"
    broken.write_text("{", encoding="utf-8")
    client = make_client(knowledge_path=broken)
    body = client.get("/debug").json()
    assert body["ok"] is False
    assert body["error"]

    reply = client.post("/chat", json={"message": "عنوان"}).json()
    assert reply["context"]["awaiting"] == "branch_address"


def test_refresh_endpoint_returns_report(client, mocker):
    report = RefreshReport(refreshed_at="2026-01-01T00:00:00", version=2, fetched=["kas_2025"], failed=["mini_8"])
    refresh = mocker.patch.object(client.app.state.updater, "refresh", return_value=report)
    response = client.post("/refresh")
    assert response.status_code == 200
    assert response.json() == {
        "ok": True,
        "refreshedAt": "2026-01-01T00:00:00",
        "version": 2,
        "fetched": ["kas_2025"],
        "failed": ["mini_8"],
    }
    refresh.assert_called_once_with()


def test_refresh_endpoint_failure(client, mocker):
    mocker.patch.object(client.app.state.updater, "refresh", side_effect=RuntimeError("offline"))
    response = client.post("/refresh")
    assert response.status_code == 500
    assert response.json() == {"ok": False}


def test_cors_preflight_has_no_body(client):
    response = client.options(
        "/chat",
        headers={
            "Origin": ORIGIN,
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )
    assert response.status_code == 204
    assert response.headers["access-control-allow-origin"] == ORIGIN
    assert "POST" in response.headers["access-control-allow-methods"]
    assert response.content == b""


def test_cors_headers_on_simple_request(client):
    allowed = client.post("/chat", json={"message": "ازيك"}, headers={"Origin": ORIGIN})
    assert allowed.headers["access-control-allow-origin"] == ORIGIN

    other = client.post("/chat", json={"message": "ازيك"}, headers={"Origin": "https://evil.example"})
    assert other.status_code == 200
    assert "access-control-allow-origin" not in other.headers


def _explode(*args, **kwargs):
    raise RuntimeError("boom")
