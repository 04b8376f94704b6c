# carelog/services/ollama_client.py
import logging
from typing import Any, Dict, Optional, Union

import requests

from carelog.core.llm_config import OLLAMA_BASE_URL, OLLAMA_TEMPERATURE, OLLAMA_TIMEOUT_S
from carelog.services.llm.json_reply import chat_messages, first_json_object

logger = logging.getLogger(__name__)


class OllamaError(RuntimeError):
    pass


def _safe_json_parse(text: str) -> Dict[str, Any]:
    try:
        return first_json_object(text)
    except ValueError as e:
        raise OllamaError(f"Invalid JSON from LLM: {e}") from e


def _post_chat(
    model: str,
    system: str,
    user: str,
    temperature: Optional[float],
    timeout_s: Optional[int],
    fmt: Union[str, Dict[str, Any], None] = None,
) -> str:
    """POST /api/chat (non-streaming) and return the assistant message content."""
    payload: Dict[str, Any] = {
        "model": model,
        "messages": chat_messages(system, user),
        "stream": False,
        "options": {"temperature": OLLAMA_TEMPERATURE if temperature is None else temperature},
    }
    if fmt is not None:
        payload["format"] = fmt

    try:
        r = requests.post(f"{OLLAMA_BASE_URL}/chat", json=payload, timeout=timeout_s or OLLAMA_TIMEOUT_S)
    except requests.RequestException as e:
        raise OllamaError(f"Ollama request failed: {e}") from e
    if r.status_code >= 400:
        raise OllamaError(f"Ollama {r.status_code}: {r.text}")

    try:
        body = r.json()
    except ValueError as e:
        raise OllamaError(f"Ollama returned non-JSON body: {r.text[:200]}") from e
    return (body.get("message") or {}).get("content") or ""


def ollama_chat_json(
    model: str,
    system: str,
    user: str,
    schema: Optional[Dict[str, Any]] = None,
    temperature: Optional[float] = None,
    timeout_s: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Structured output: the JSON schema goes in `format` so Ollama constrains
    decoding to it; without a schema plain "json" mode is requested.
    """
    logger.debug("Ollama chat (json) model=%s", model)
    content = _post_chat(model, system, user, temperature, timeout_s, fmt=schema if schema is not None else "json")
    return _safe_json_parse(content)


def ollama_chat_text(
    model: str,
    system: str,
    user: str,
    temperature: Optional[float] = None,
    timeout_s: Optional[int] = None,
) -> str:
    logger.debug("Ollama chat (text) model=%s", model)
    return _post_chat(model, system, user, temperature, timeout_s).strip()
