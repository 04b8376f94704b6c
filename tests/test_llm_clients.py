from unittest.mock import MagicMock, patch

import pytest
import requests

from carelog.schemas.models import ExtractionRequest, ExtractionServiceError
from carelog.services.llm.extraction import llm_extract_record
from carelog.services.ollama_client import OllamaError, _safe_json_parse, ollama_chat_json


def _response(status_code=200, content="", text=""):
    r = MagicMock()
    r.status_code = status_code
    r.text = text
    r.json.return_value = {"message": {"content": content}}
    return r


class TestSafeJsonParse:

    def test_plain_json(self):
        assert _safe_json_parse('{"record_type": "meal"}') == {"record_type": "meal"}

    def test_json_wrapped_in_prose(self):
        assert _safe_json_parse('結果です: {"record_type": "vital", "details": {}} 以上') == {
            "record_type": "vital", "details": {},
        }

    def test_code_fenced_reply(self):
        assert _safe_json_parse("```json\n{\"details\": {\"pulse\": \"72\"}}\n```") == {"details": {"pulse": "72"}}

    def test_garbage(self):
        with pytest.raises(OllamaError):
            _safe_json_parse("no json here")


class TestOllamaChatJson:

    def test_schema_is_sent_as_format(self):
        with patch("carelog.services.ollama_client.requests.post", return_value=_response(content='{"a": 1}')) as post:
            out = ollama_chat_json(model="m", system="s", user="u", schema={"type": "object"})
        assert out == {"a": 1}
        payload = post.call_args.kwargs["json"]
        assert payload["format"] == {"type": "object"}
        assert payload["stream"] is False

    def test_http_error(self):
        with patch("carelog.services.ollama_client.requests.post", return_value=_response(500, text="boom")):
            with pytest.raises(OllamaError):
                ollama_chat_json(model="m", system="s", user="u")

    def test_network_error(self):
        with patch("carelog.services.ollama_client.requests.post", side_effect=requests.ConnectionError("down")):
            with pytest.raises(OllamaError):
                ollama_chat_json(model="m", system="s", user="u")


def test_provider_errors_become_service_errors():
    req = ExtractionRequest(
        text="体温36.5度",
        instructions="rules",
        structural_schema={"properties": {"details": {"properties": {}}}},
    )
    with patch("carelog.services.llm.extraction.ollama_chat_json", side_effect=OllamaError("Ollama 503")):
        with pytest.raises(ExtractionServiceError):
            llm_extract_record(req)


def test_extraction_sends_instructions_and_schema():
    req = ExtractionRequest(
        text="体温36.5度",
        instructions="rules",
        structural_schema={"properties": {"details": {"properties": {"temperature": {"type": "string"}}}}},
    )
    with patch("carelog.services.llm.extraction.ollama_chat_json", return_value={"record_type": "vital"}) as chat:
        assert llm_extract_record(req) == {"record_type": "vital"}
    kwargs = chat.call_args.kwargs
    assert kwargs["system"] == "rules"
    assert kwargs["schema"] == req.structural_schema
    assert "体温36.5度" in kwargs["user"]
