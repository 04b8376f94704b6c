# carelog/services/field_settings.py
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from carelog.schemas.models import FieldDefinition, FieldSettings, InvalidInputError

logger = logging.getLogger(__name__)

# Built-in field settings. The descriptions are the extraction rules sent to
# the extraction service, so they are refreshed into every loaded settings file.
_DEFAULT_FIELD_SETTINGS: Dict[str, List[Dict[str, str]]] = {
    "meal": [
        {"key": "main_dish", "label": "主食内容", "description": "食べた主食の種類（例：全粥、ご飯、パン）。量は含めない。"},
        {"key": "side_dish", "label": "副食内容", "description": "食べたおかずの内容。"},
        {"key": "amount_percent", "label": "摂取率(%)", "description": "食事全体の摂取割合。数値のみ（例：80）。"},
        {"key": "fluid_type", "label": "水分種類", "description": "摂取した水分の名称のみ（例：お茶、水）。量はここには入れない。"},
        {"key": "fluid_ml", "label": "水分摂取量(ml)", "description": "摂取した水分の量。数値のみ（例：200）。"},
    ],
    "excretion": [
        {"key": "excretion_type", "label": "種類(尿/便)", "description": "排泄物の種類（尿、便）。"},
        {"key": "amount", "label": "量", "description": "排泄量（多量、普通、少量など）。"},
        {"key": "characteristics", "label": "性状・状態", "description": "便や尿の状態（泥状、普通、血尿など）。"},
        {"key": "incontinence", "label": "失禁有無", "description": "失禁があったかどうか。"},
    ],
    "vital": [
        {"key": "temperature", "label": "体温(℃)", "description": "体温の数値（例：36.5）。"},
        {"key": "systolic_bp", "label": "血圧(上)", "description": "収縮期血圧の数値（高い方）。"},
        {"key": "diastolic_bp", "label": "血圧(下)", "description": "拡張期血圧の数値（低い方）。"},
        {"key": "pulse", "label": "脈拍(回/分)", "description": "脈拍数。"},
        {"key": "spo2", "label": "SpO2(%)", "description": "酸素飽和度。"},
    ],
    "hygiene": [
        {"key": "bath_type", "label": "入浴形態", "description": "入浴の方法（全身浴、シャワー浴、清拭など）。"},
        {"key": "skin_condition", "label": "皮膚状態", "description": "皮膚の異常や状態（発赤、剥離など）。"},
        {"key": "notes", "label": "特記事項", "description": "処置内容や特記事項。"},
    ],
    "other": [
        {"key": "title", "label": "件名", "description": "記録のタイトル。"},
        {"key": "detail", "label": "詳細", "description": "記録の詳細内容。"},
    ],
}


def default_field_settings() -> FieldSettings:
    """Fresh copy of the built-in settings (safe to mutate)."""
    return {
        rtype: [FieldDefinition(**f) for f in fields]
        for rtype, fields in _DEFAULT_FIELD_SETTINGS.items()
    }


def _default_descriptions(rtype: str) -> Dict[str, str]:
    return {
        f["key"]: f["description"]
        for f in _DEFAULT_FIELD_SETTINGS.get(rtype, [])
        if f.get("description")
    }


def _as_definition(f: Any) -> FieldDefinition:
    if isinstance(f, FieldDefinition):
        return f
    return FieldDefinition.model_validate(f)


def hydrate(persisted: Optional[Mapping[str, List[Any]]]) -> FieldSettings:
    """
    Align persisted (possibly stale or user-edited) settings with the built-in table:
    - record types missing from `persisted` get the built-in list verbatim
    - a field whose key exists in the built-in list gets the built-in description
    - keys and labels are never touched; unknown record types pass through
    The input is not mutated.
    """
    if persisted is None:
        return default_field_settings()

    hydrated: FieldSettings = {}
    for rtype, fields in persisted.items():
        defaults = _default_descriptions(rtype)
        out: List[FieldDefinition] = []
        for f in fields or []:
            fd = _as_definition(f)
            desc = defaults.get(fd.key)
            if desc and fd.description != desc:
                fd = fd.model_copy(update={"description": desc})
            else:
                fd = fd.model_copy()
            out.append(fd)
        hydrated[rtype] = out

    for rtype, fields in default_field_settings().items():
        if rtype not in hydrated:
            hydrated[rtype] = fields

    return hydrated


def parse_persisted(raw: Any) -> FieldSettings:
    """
    Decode persisted settings (JSON text or an already-decoded dict) and hydrate them.
    Anything undecodable falls back to the built-in settings.
    """
    if raw is None:
        return default_field_settings()

    data = raw
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning("Persisted field settings are not valid JSON, using defaults: %s", e)
            return default_field_settings()

    if not isinstance(data, dict) or not all(isinstance(v, list) for v in data.values()):
        logger.warning("Persisted field settings have an unexpected shape, using defaults.")
        return default_field_settings()

    try:
        return hydrate(data)
    except ValidationError as e:
        logger.warning("Persisted field settings failed validation, using defaults: %s", e)
        return default_field_settings()


def coerce_field_settings(raw: Optional[Mapping[str, List[Any]]]) -> FieldSettings:
    """
    Settings supplied by a caller alongside text: hydrated, but an empty or
    malformed value is the caller's mistake (InvalidInputError), not a silent default.
    """
    if raw is None:
        return default_field_settings()
    if not isinstance(raw, Mapping) or not raw:
        raise InvalidInputError("field_settings must be a non-empty object keyed by record type.")
    try:
        settings = hydrate(raw)
    except (ValidationError, TypeError) as e:
        raise InvalidInputError(f"field_settings is malformed: {e}") from e
    validate_field_settings(settings)
    return settings


def validate_field_settings(settings: FieldSettings) -> None:
    if not settings:
        raise InvalidInputError("field_settings is empty.")
    for rtype, fields in settings.items():
        seen = set()
        for f in fields:
            key = (f.key or "").strip()
            if not key:
                raise InvalidInputError(f"Empty field key in record type '{rtype}'.")
            if key in seen:
                raise InvalidInputError(f"Duplicate field key '{key}' in record type '{rtype}'.")
            seen.add(key)


def settings_to_json(settings: FieldSettings) -> Dict[str, List[Dict[str, Any]]]:
    return {
        rtype: [f.model_dump(exclude_none=True) for f in fields]
        for rtype, fields in settings.items()
    }


class FieldSettingsStore:
    """JSON file holding the user's field settings; last writer wins."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> FieldSettings:
        if not self.path.exists():
            return default_field_settings()
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("Could not read field settings at %s, using defaults: %s", self.path, e)
            return default_field_settings()
        return parse_persisted(raw)

    def save(self, settings: Mapping[str, List[Any]]) -> FieldSettings:
        hydrated = coerce_field_settings(settings)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(
            json.dumps(settings_to_json(hydrated), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        tmp.replace(self.path)
        logger.info("Saved field settings (%d record types) to %s", len(hydrated), self.path)
        return hydrated

    def reset(self) -> FieldSettings:
        if self.path.exists():
            self.path.unlink()
        return default_field_settings()
