# carelog/services/llm/extraction_schema.py
from typing import Any, Dict, List

from carelog.schemas.models import RECORD_TYPES, FieldSettings
from carelog.services.field_settings import default_field_settings
from carelog.services.llm.extraction_prompt import FEW_SHOT_KEYS

# top-level contract fields; never declared as detail properties
_RESERVED_KEYS = {"record_type", "suggested_date"}


def always_known_keys() -> List[str]:
    """Every built-in field key plus the keys used by the few-shot examples."""
    keys: List[str] = []
    for fields in default_field_settings().values():
        keys.extend(f.key for f in fields)
    keys.extend(FEW_SHOT_KEYS)
    return list(dict.fromkeys(keys))


def detail_keys(settings: FieldSettings) -> List[str]:
    """
    Superset of detail keys: every key of every record type in `settings`
    (user order) followed by the always-known keys.
    """
    keys: List[str] = []
    for fields in settings.values():
        keys.extend(f.key for f in fields)
    keys.extend(always_known_keys())
    return [k for k in dict.fromkeys(keys) if k and k not in _RESERVED_KEYS]


def build_extraction_schema(settings: FieldSettings) -> Dict[str, Any]:
    # details stays open (no additionalProperties=False): a recognized key
    # outside the user's settings must not make the answer non-conforming
    return {
        "type": "object",
        "properties": {
            "record_type": {"type": "string", "enum": list(RECORD_TYPES)},
            "details": {
                "type": "object",
                "properties": {k: {"type": "string"} for k in detail_keys(settings)},
            },
            "suggested_date": {"type": "string", "description": "ISO8601 date-time, only if stated"},
        },
        "required": ["record_type", "details"],
    }
