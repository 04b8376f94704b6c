# carelog/services/llm/extraction_sanitize.py
import json
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

from carelog.schemas.models import RECORD_TYPES, ExtractionResult, ExtractionServiceError

logger = logging.getLogger(__name__)

_FULLWIDTH_DIGITS = str.maketrans("０１２３４５６７８９", "0123456789")
# full-width point only as a decimal separator; "全粥．副食なし" keeps its "．"
_FULLWIDTH_POINT_RE = re.compile(r"(?<=\d)．(?=\d)")

# "<number> <unit>" -> number. Free text ("全粥", "120/80") never matches.
_UNIT_RE = re.compile(
    r"^(\d+(?:\.\d+)?)\s*(ml|l|cc|ミリ|%|％|度|℃|bpm|回/分|回|mmhg)$",
    re.IGNORECASE,
)
# tenths idiom: "8割" -> "80"
_WARI_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*割$")

_NULL_MARKERS = {"", "null", "none", "undefined", "nil"}


def to_halfwidth_digits(s: str) -> str:
    return _FULLWIDTH_POINT_RE.sub(".", s.translate(_FULLWIDTH_DIGITS))


def times_ten(num: str) -> Optional[str]:
    try:
        d = Decimal(num) * 10
    except InvalidOperation:
        return None
    return format(d.normalize(), "f")


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def is_blank(value: Any) -> bool:
    """True for None, empty/whitespace strings and literal null markers."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().lower() in _NULL_MARKERS
    return False


def normalize_value(value: Any) -> Optional[str]:
    """
    Canonical text for one extracted value, or None when the value is empty.
    1. full-width digits -> half-width
    2. "<n> <unit>" -> "<n>"
    3. "<n>割" -> n*10
    4. anything else unchanged
    Never raises; idempotent.
    """
    s = _as_text(value)
    if s is None:
        return None
    s = to_halfwidth_digits(s).strip()
    if s.lower() in _NULL_MARKERS:
        return None

    m = _UNIT_RE.match(s)
    if m:
        return m.group(1)

    m = _WARI_RE.match(s)
    if m:
        return times_ten(m.group(1)) or s

    return s


def normalize_details(raw_details: Mapping[str, Any]) -> Dict[str, str]:
    """Normalize every value; empty values are dropped (absence == empty here)."""
    out: Dict[str, str] = {}
    for k, v in (raw_details or {}).items():
        key = str(k).strip()
        if not key:
            continue
        nv = normalize_value(v)
        if nv is None:
            continue
        out[key] = nv
    return out


def resolve_record_type(raw_type: Any) -> str:
    rtype = str(raw_type or "").strip().lower()
    if rtype in RECORD_TYPES:
        return rtype
    logger.info("Unknown record_type %r from extraction service, using 'other'", raw_type)
    return "other"


def sanitize_extraction_response(raw: Any) -> ExtractionResult:
    """
    Validate the service answer's top-level shape, then normalize it.
    Shape violations are service failures; keys outside the declared schema are kept.
    """
    if not isinstance(raw, dict):
        raise ExtractionServiceError(f"Extraction response is not an object: {type(raw).__name__}")

    if "record_type" not in raw or not isinstance(raw.get("record_type"), str):
        raise ExtractionServiceError("Extraction response is missing a string 'record_type'.")

    details = raw.get("details")
    if not isinstance(details, dict):
        raise ExtractionServiceError("Extraction response is missing a 'details' object.")

    suggested = raw.get("suggested_date")
    suggested_date = None if is_blank(suggested) else _as_text(suggested).strip()

    return ExtractionResult(
        record_type=resolve_record_type(raw["record_type"]),
        details=normalize_details(details),
        suggested_date=suggested_date,
    )
