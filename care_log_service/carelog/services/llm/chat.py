# carelog/services/llm/chat.py
import json
import logging
from typing import Any, Dict, List

from carelog.core.llm_config import HF_MODEL_CHAT, LLM_PROVIDER, OLLAMA_MODEL_CHAT
from carelog.schemas.models import ExtractionServiceError, InvalidInputError
from carelog.services.hf_client import HFLLMError, hf_chat_text
from carelog.services.ollama_client import OllamaError, ollama_chat_text

logger = logging.getLogger(__name__)

CHAT_SYSTEM_PROMPT = (
    "あなたは介護記録に関する相談に答えるAIアシスタントです。\n"
    "記録データを参照して、ユーザーの質問に日本語で回答してください。\n"
    "回答ルール:\n"
    "- 記録データに基づいて具体的に回答する。\n"
    "- 推測の場合は「推測ですが」と前置きする。\n"
    "- 記録にない情報は「記録がありません」と回答する。\n"
    "- 診断や処方はしない。\n"
)

NO_ANSWER = "回答を生成できませんでした"


def build_chat_user_message(message: str, records: List[Dict[str, Any]]) -> str:
    context = json.dumps(records, ensure_ascii=False, indent=2)
    return f"【記録データ】\n{context}\n\n【ユーザーの質問】\n{message}"


def answer_about_records(message: str, records: List[Dict[str, Any]]) -> str:
    if not (message or "").strip():
        raise InvalidInputError("メッセージが必要です")

    user = build_chat_user_message(message.strip(), records)
    try:
        if LLM_PROVIDER == "hf":
            reply = hf_chat_text(model=HF_MODEL_CHAT, system=CHAT_SYSTEM_PROMPT, user=user)
        else:
            reply = ollama_chat_text(model=OLLAMA_MODEL_CHAT, system=CHAT_SYSTEM_PROMPT, user=user)
    except (OllamaError, HFLLMError) as e:
        logger.warning("Chat completion failed: %s", e)
        raise ExtractionServiceError(str(e)) from e

    return reply or NO_ANSWER
