import logging
import re
import unicodedata
from typing import Callable, Dict, Mapping

from carelog.core.llm_config import USE_FALLBACK_EXTRACTION
from carelog.services.llm.extraction_sanitize import is_blank, times_ten

logger = logging.getLogger(__name__)

_WARI_RE = re.compile(r"(\d+(?:\.\d+)?)\s*割")
_PERCENT_IDIOMS = {"完食": "100", "全量": "100", "半分": "50"}
_ML_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:ml|cc|ミリ)", re.IGNORECASE)
# longest names first; "水" must not match inside "水分"
_FLUID_RE = re.compile(r"(味噌汁|ほうじ茶|ジュース|コーヒー|スープ|牛乳|紅茶|麦茶|緑茶|お茶|白湯|水(?!分))")

# digit lookarounds keep matches off the middle of longer numbers ("100度", dates)
_TEMP_RE = re.compile(r"(?<![\d.])(\d{2}(?:\.\d+)?)\s*(?:度|℃|°C)")  # NFKC folds ℃ to °C
_BP_ANCHORED_RE = re.compile(r"血圧\D{0,4}?(\d{2,3})\s*[/／の]\s*(\d{2,3})(?![\d.])")
_BP_RE = re.compile(r"(?<![\d./／])(\d{2,3})\s*[/／の]\s*(\d{2,3})(?![\d./／])")

Fallback = Callable[[str, Dict[str, str]], None]


def _missing(details: Mapping[str, str], key: str) -> bool:
    return key not in details


def _meal_fallbacks(text: str, details: Dict[str, str]) -> None:
    if _missing(details, "amount_percent"):
        m = _WARI_RE.search(text)
        if m:
            pct = times_ten(m.group(1))
            if pct is not None:
                details["amount_percent"] = pct
        else:
            idiom = next((v for k, v in _PERCENT_IDIOMS.items() if k in text), None)
            if idiom:
                details["amount_percent"] = idiom

    if _missing(details, "fluid_ml"):
        m = _ML_RE.search(text)
        if m:
            details["fluid_ml"] = m.group(1)

    # a beverage name alone is too weak a signal; require a volume
    if _missing(details, "fluid_type") and not _missing(details, "fluid_ml"):
        m = _FLUID_RE.search(text)
        if m:
            details["fluid_type"] = m.group(1)


def _vital_fallbacks(text: str, details: Dict[str, str]) -> None:
    if _missing(details, "temperature"):
        m = _TEMP_RE.search(text)
        if m:
            details["temperature"] = m.group(1)

    if _missing(details, "systolic_bp") or _missing(details, "diastolic_bp"):
        m = _BP_ANCHORED_RE.search(text) or _BP_RE.search(text)
        if m:
            # each half only fills its own gap
            if _missing(details, "systolic_bp"):
                details["systolic_bp"] = m.group(1)
            if _missing(details, "diastolic_bp"):
                details["diastolic_bp"] = m.group(2)


def _no_fallbacks(text: str, details: Dict[str, str]) -> None:
    return None


FALLBACKS: Dict[str, Fallback] = {
    "meal": _meal_fallbacks,
    "excretion": _no_fallbacks,
    "vital": _vital_fallbacks,
    "hygiene": _no_fallbacks,
    "other": _no_fallbacks,
}


def apply_fallbacks(record_type: str, text: str, details: Mapping[str, str]) -> Dict[str, str]:
    """
    Deterministic safety net for values the extraction service missed.
    Only fills absent keys; a value already present is never replaced.
    Returns a new dict; the input is not modified.
    """
    out: Dict[str, str] = dict(details or {})
    if not USE_FALLBACK_EXTRACTION or not text:
        return out

    before = set(out)
    # full-width digits and units ("１５０ｃｃ") match the same patterns
    FALLBACKS.get(record_type, _no_fallbacks)(unicodedata.normalize("NFKC", text), out)

    filled = [k for k, v in out.items() if k not in before and not is_blank(v)]
    if filled:
        logger.debug("Fallback extraction filled %s for %s", filled, record_type)
    return out
