# carelog/services/hf_client.py
import logging
import os
from typing import Any, Dict, Optional

from huggingface_hub import InferenceClient

from carelog.core.llm_config import HF_MAX_TOKENS, HF_TEMPERATURE, HF_TIMEOUT_S
from carelog.services.llm.json_reply import chat_messages, first_json_object

logger = logging.getLogger(__name__)


class HFLLMError(RuntimeError):
    pass


def _inference_client(timeout_s: Optional[int]) -> InferenceClient:
    # token and provider are read per call so a restart is not needed after editing config.env
    token = os.getenv("HF_TOKEN", "").strip()
    if not token:
        raise HFLLMError("HF_TOKEN is not set; add it to config.env.")
    return InferenceClient(
        provider=os.getenv("HF_PROVIDER", "").strip() or "auto",
        api_key=token,
        timeout=float(timeout_s or HF_TIMEOUT_S),
    )


def _chat_completion(
    model: str,
    system: str,
    user: str,
    temperature: Optional[float],
    max_tokens: Optional[int],
    timeout_s: Optional[int],
    response_format: Optional[Dict[str, Any]] = None,
) -> str:
    client = _inference_client(timeout_s)
    try:
        out = client.chat_completion(
            model=model,
            messages=chat_messages(system, user),
            temperature=HF_TEMPERATURE if temperature is None else temperature,
            max_tokens=HF_MAX_TOKENS if max_tokens is None else max_tokens,
            response_format=response_format,
        )
    except Exception as e:  # huggingface_hub raises several unrelated error types
        raise HFLLMError(f"HF inference failed: {e}") from e
    return out.choices[0].message.content or ""


def _response_format(schema: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not schema:
        return {"type": "json_object"}
    # strict=False: details is an open object
    return {
        "type": "json_schema",
        "json_schema": {"name": "CareRecord", "schema": schema, "strict": False},
    }


def hf_chat_json(
    *,
    model: str,
    system: str,
    user: str,
    schema: Optional[Dict[str, Any]] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    timeout_s: Optional[int] = None,
) -> Dict[str, Any]:
    logger.debug("HF chat (json) model=%s", model)
    content = _chat_completion(model, system, user, temperature, max_tokens, timeout_s, _response_format(schema))
    try:
        return first_json_object(content)
    except ValueError as e:
        raise HFLLMError(f"Model did not return valid JSON: {e}") from e


def hf_chat_text(
    *,
    model: str,
    system: str,
    user: str,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    timeout_s: Optional[int] = None,
) -> str:
    logger.debug("HF chat (text) model=%s", model)
    return _chat_completion(model, system, user, temperature, max_tokens, timeout_s).strip()
