from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from langgraph.checkpoint.memory import MemorySaver

from carelog.agent.graph import build_draft_graph, get_draft_graph
from carelog.main import app
from carelog.schemas.models import ExtractionServiceError
from carelog.services.stores import get_field_settings_store, get_record_store, set_record_store

MEAL_ANSWER = {
    "record_type": "meal",
    "details": {"main_dish": "全粥", "amount_percent": "8割", "fluid_type": "お茶", "fluid_ml": "200ml"},
}
MEAL_TEXT = "お昼ご飯は全粥を8割、お茶を200ml飲みました。"


@pytest.fixture
def client(record_store, settings_store):
    graph = build_draft_graph(MemorySaver())
    app.dependency_overrides[get_record_store] = lambda: record_store
    app.dependency_overrides[get_field_settings_store] = lambda: settings_store
    app.dependency_overrides[get_draft_graph] = lambda: graph
    # the save node looks the store up itself
    set_record_store(record_store)
    yield TestClient(app)
    app.dependency_overrides.clear()
    set_record_store(None)


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


class TestParse:

    def test_parse(self, client, fake_service):
        fake_service.return_value = MEAL_ANSWER
        r = client.post("/parse", json={"text": MEAL_TEXT})
        assert r.status_code == 200
        body = r.json()
        assert body["draft"]["details"]["amount_percent"] == "80"
        assert [f["key"] for f in body["fields"]] == [
            "main_dish", "side_dish", "amount_percent", "fluid_type", "fluid_ml",
        ]
        assert body["fields"][0]["label"] == "主食内容"

    def test_persisted_settings_are_used(self, client, settings_store, fake_service):
        settings_store.save({"meal": [{"key": "snack", "label": "おやつ"}]})
        fake_service.return_value = {"record_type": "meal", "details": {}}
        r = client.post("/parse", json={"text": "おやつなし"})
        assert r.json()["draft"]["details"] == {"snack": ""}

    def test_empty_text(self, client, fake_service):
        r = client.post("/parse", json={"text": "  "})
        assert r.status_code == 400
        fake_service.assert_not_called()

    def test_empty_settings(self, client, fake_service):
        r = client.post("/parse", json={"text": MEAL_TEXT, "field_settings": {}})
        assert r.status_code == 400
        fake_service.assert_not_called()

    def test_service_failure(self, client, fake_service):
        fake_service.side_effect = ExtractionServiceError("Ollama 500")
        r = client.post("/parse", json={"text": MEAL_TEXT})
        assert r.status_code == 502
        assert r.json()["detail"]["error"] == "解析に失敗しました。もう一度試してください。"


class TestDrafts:

    def _create(self, client, fake_service):
        fake_service.return_value = MEAL_ANSWER
        r = client.post("/drafts", json={"text": MEAL_TEXT})
        assert r.status_code == 200
        return r.json()

    def test_create_is_under_review(self, client, fake_service):
        body = self._create(client, fake_service)
        assert body["draft_id"].startswith("draft_")
        assert body["status"] == "UNDER_REVIEW"
        assert body["draft"]["provenance"]["side_dish"] == "empty"

    def test_review_then_save(self, client, fake_service, record_store):
        draft_id = self._create(client, fake_service)["draft_id"]

        r = client.post("/drafts/review", json={
            "draft_id": draft_id,
            "edits": [
                {"op": "set", "key": "side_dish", "value": "煮魚"},
                {"op": "set", "key": "fluid_type", "value": ""},
                {"op": "add", "key": "memo", "value": "むせ込みなし"},
            ],
        })
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "UNDER_REVIEW"
        assert body["draft"]["provenance"]["side_dish"] == "manual"
        assert body["draft"]["provenance"]["fluid_type"] == "empty"
        assert body["fields"][-1]["key"] == "memo"

        r = client.post("/drafts/save", json={"draft_id": draft_id})
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "SAVED"
        assert body["record"]["details"] == {
            "main_dish": "全粥",
            "side_dish": "煮魚",
            "amount_percent": "80",
            "fluid_ml": "200",
            "memo": "むせ込みなし",
        }
        assert [r.id for r in record_store.list()] == [body["record"]["id"]]

        # finished drafts cannot be resumed
        assert client.post("/drafts/save", json={"draft_id": draft_id}).status_code == 409

    def test_change_record_type(self, client, fake_service):
        draft_id = self._create(client, fake_service)["draft_id"]
        r = client.post("/drafts/review", json={"draft_id": draft_id, "record_type": "vital"})
        body = r.json()
        assert body["draft"]["record_type"] == "vital"
        keys = [f["key"] for f in body["fields"]]
        assert keys[:5] == ["temperature", "systolic_bp", "diastolic_bp", "pulse", "spo2"]
        assert "main_dish" in keys

    def test_invalid_edit_keeps_draft_reviewable(self, client, fake_service):
        draft_id = self._create(client, fake_service)["draft_id"]
        r = client.post("/drafts/review", json={
            "draft_id": draft_id,
            "edits": [{"op": "rename", "key": "main_dish", "new_key": "side_dish"}],
        })
        assert r.status_code == 400
        assert client.get(f"/drafts/{draft_id}").json()["status"] == "UNDER_REVIEW"
        assert client.post("/drafts/save", json={"draft_id": draft_id}).status_code == 200

    def test_discard(self, client, fake_service, record_store):
        draft_id = self._create(client, fake_service)["draft_id"]
        r = client.post("/drafts/discard", json={"draft_id": draft_id})
        assert r.json()["status"] == "DISCARDED"
        assert record_store.list() == []

        events = [e["event"] for e in client.get(f"/drafts/{draft_id}/audit").json()["audit"]]
        assert events[0] == "extract.done"
        assert events[-1] == "discard.done"

    def test_unknown_draft(self, client):
        assert client.get("/drafts/draft_missing").status_code == 404
        assert client.post("/drafts/save", json={"draft_id": "draft_missing"}).status_code == 404

    def test_service_failure(self, client, fake_service):
        fake_service.side_effect = ExtractionServiceError("Ollama 500")
        assert client.post("/drafts", json={"text": MEAL_TEXT}).status_code == 502


class TestRecords:

    def test_crud(self, client):
        r = client.post("/records", json={"record_type": "vital", "details": {"temperature": "36.5", "pulse": ""}})
        assert r.status_code == 201
        rec = r.json()
        assert rec["details"] == {"temperature": "36.5"}

        r = client.put(f"/records/{rec['id']}", json={"details": {"temperature": "37.0"}})
        assert r.json()["details"] == {"temperature": "37.0"}

        assert [x["id"] for x in client.get("/records").json()] == [rec["id"]]

        assert client.delete(f"/records/{rec['id']}").json() == {"ok": True, "id": rec["id"]}
        assert client.delete(f"/records/{rec['id']}").status_code == 404

    def test_limit_bounds(self, client):
        assert client.get("/records", params={"limit": 0}).status_code == 422
        assert client.get("/records", params={"limit": 501}).status_code == 422


class TestSettings:

    def test_defaults(self, client):
        body = client.get("/settings/fields").json()
        assert set(body["field_settings"]) == {"meal", "excretion", "vital", "hygiene", "other"}
        assert body["record_type_labels"]["meal"] == "食事"

    def test_put_hydrates_and_reset_restores(self, client):
        r = client.put("/settings/fields", json={"meal": [{"key": "fluid_ml", "label": "水分量"}]})
        assert r.status_code == 200
        meal = r.json()["field_settings"]["meal"]
        assert meal == [{
            "key": "fluid_ml",
            "label": "水分量",
            "description": "摂取した水分の量。数値のみ（例：200）。",
        }]
        assert len(r.json()["field_settings"]["vital"]) == 5

        body = client.post("/settings/fields/reset").json()
        assert len(body["field_settings"]["meal"]) == 5

    def test_rejects_empty(self, client):
        assert client.put("/settings/fields", json={}).status_code == 400


class TestChat:

    def test_answers_over_recent_records(self, client, record_store):
        client.post("/records", json={"record_type": "meal", "details": {"amount_percent": "80"}})
        with patch("carelog.services.llm.chat.ollama_chat_text", return_value="8割召し上がっています。") as chat:
            r = client.post("/chat", json={"message": "食事量は？"})
        assert r.json() == {"reply": "8割召し上がっています。", "record_count": 1}
        assert "amount_percent" in chat.call_args.kwargs["user"]

    def test_empty_message(self, client):
        assert client.post("/chat", json={"message": ""}).status_code == 400
