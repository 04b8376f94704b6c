# carelog/services/llm/json_reply.py
import json
from typing import Any, Dict, List

_decoder = json.JSONDecoder()


def chat_messages(system: str, user: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]


def first_json_object(text: str) -> Dict[str, Any]:
    """
    Decode the model reply as a JSON object. Models sometimes wrap it in prose
    or code fences, so the first decodable object in the text is taken.
    Raises ValueError when there is none.
    """
    text = (text or "").strip()
    pos = text.find("{")
    while pos != -1:
        try:
            obj, _ = _decoder.raw_decode(text, pos)
        except ValueError:
            pos = text.find("{", pos + 1)
            continue
        if isinstance(obj, dict):
            return obj
        pos = text.find("{", pos + 1)
    raise ValueError(f"no JSON object in reply: {text[:200]}")
