# carelog/services/reconcile.py
from typing import Dict, Iterable, List, Mapping, Optional

from carelog.schemas.models import (
    DraftEdit,
    DraftField,
    ExtractionDraft,
    FieldSettings,
    InvalidInputError,
    Provenance,
    RecordCreate,
)
from carelog.services.llm.extraction_sanitize import is_blank


def _schema_keys(settings: FieldSettings, record_type: str) -> List[str]:
    return list(dict.fromkeys(f.key for f in settings.get(record_type, [])))


def _ordered(
    details: Mapping[str, str],
    provenance: Mapping[str, Provenance],
    first: Iterable[str],
) -> tuple[Dict[str, str], Dict[str, Provenance]]:
    # `first` keys in their order, then the rest in first-seen order
    keys = [k for k in dict.fromkeys(first) if k in details]
    keys += [k for k in details if k not in keys]
    return (
        {k: details[k] for k in keys},
        {k: provenance.get(k, "manual") for k in keys},
    )


def reconcile(
    record_type: str,
    extracted_details: Mapping[str, str],
    settings: FieldSettings,
    suggested_date: Optional[str] = None,
) -> ExtractionDraft:
    """
    Merge extracted values with the full field list of `record_type`:
    every schema key is present (empty string when nothing was extracted),
    schema keys come first in schema order, unexpected keys follow in
    first-seen order. Extracted values are tagged ai-filled, gaps empty.
    """
    extracted_details = extracted_details or {}
    details: Dict[str, str] = {}
    provenance: Dict[str, Provenance] = {}

    for key in _schema_keys(settings, record_type):
        value = extracted_details.get(key)
        if is_blank(value):
            details[key] = ""
            provenance[key] = "empty"
        else:
            details[key] = str(value)
            provenance[key] = "ai-filled"

    for key, value in extracted_details.items():
        if key in details or is_blank(value):
            continue
        details[key] = str(value)
        provenance[key] = "ai-filled"

    return ExtractionDraft(
        record_type=record_type,
        details=details,
        provenance=provenance,
        suggested_date=suggested_date,
    )


def change_record_type(draft: ExtractionDraft, new_type: str, settings: FieldSettings) -> ExtractionDraft:
    """Switch type: add the new schema's missing keys, keep every value already entered."""
    details = dict(draft.details)
    provenance = dict(draft.provenance)
    new_keys = _schema_keys(settings, new_type)
    for key in new_keys:
        if key not in details:
            details[key] = ""
            provenance[key] = "empty"

    details, provenance = _ordered(details, provenance, new_keys)
    return draft.model_copy(update={"record_type": new_type, "details": details, "provenance": provenance})


def ordered_keys(draft: ExtractionDraft, settings: FieldSettings) -> List[str]:
    schema = _schema_keys(settings, draft.record_type)
    keys = [k for k in schema if k in draft.details]
    return keys + [k for k in draft.details if k not in keys]


def draft_fields(draft: ExtractionDraft, settings: FieldSettings) -> List[DraftField]:
    labels = {f.key: f.label for f in settings.get(draft.record_type, [])}
    return [
        DraftField(
            key=k,
            label=labels.get(k),
            value=draft.details.get(k, ""),
            provenance=draft.provenance.get(k, "manual"),
        )
        for k in ordered_keys(draft, settings)
    ]


# ---------------------------
# review edits
# ---------------------------

def set_value(draft: ExtractionDraft, key: str, value: Optional[str]) -> ExtractionDraft:
    if not (key or "").strip():
        raise InvalidInputError("key is required.")
    details = dict(draft.details)
    provenance = dict(draft.provenance)
    text = "" if value is None else str(value)
    details[key] = text
    provenance[key] = "empty" if is_blank(text) else "manual"
    return draft.model_copy(update={"details": details, "provenance": provenance})


def add_field(draft: ExtractionDraft, key: Optional[str] = None, value: Optional[str] = None) -> ExtractionDraft:
    if key is None or not key.strip():
        n = len(draft.details) + 1
        key = f"item_{n}"
        while key in draft.details:
            n += 1
            key = f"item_{n}"
    key = key.strip()
    if key in draft.details:
        raise InvalidInputError(f"Field '{key}' already exists.")

    details = dict(draft.details)
    provenance = dict(draft.provenance)
    details[key] = "" if value is None else str(value)
    provenance[key] = "manual"
    return draft.model_copy(update={"details": details, "provenance": provenance})


def rename_field(draft: ExtractionDraft, old_key: str, new_key: Optional[str]) -> ExtractionDraft:
    new_key = (new_key or "").strip()
    if not new_key:
        raise InvalidInputError("new_key is required.")
    if old_key == new_key:
        return draft
    if old_key not in draft.details:
        raise InvalidInputError(f"Field '{old_key}' does not exist.")
    if new_key in draft.details:
        raise InvalidInputError(f"Field '{new_key}' already exists.")

    # same position, same value
    details: Dict[str, str] = {}
    provenance: Dict[str, Provenance] = {}
    for k, v in draft.details.items():
        if k == old_key:
            details[new_key] = v
            provenance[new_key] = "manual"
        else:
            details[k] = v
            provenance[k] = draft.provenance.get(k, "manual")
    return draft.model_copy(update={"details": details, "provenance": provenance})


def remove_field(draft: ExtractionDraft, key: str) -> ExtractionDraft:
    if key not in draft.details:
        return draft
    details = {k: v for k, v in draft.details.items() if k != key}
    provenance = {k: p for k, p in draft.provenance.items() if k != key}
    return draft.model_copy(update={"details": details, "provenance": provenance})


def apply_edits(
    draft: ExtractionDraft,
    edits: Iterable[DraftEdit],
    settings: FieldSettings,
    record_type: Optional[str] = None,
) -> ExtractionDraft:
    """Record-type change first (if any), then edits in order."""
    if record_type and record_type != draft.record_type:
        draft = change_record_type(draft, record_type, settings)

    for e in edits:
        if e.op == "set":
            draft = set_value(draft, e.key or "", e.value)
        elif e.op == "add":
            draft = add_field(draft, e.key, e.value)
        elif e.op == "rename":
            draft = rename_field(draft, e.key or "", e.new_key)
        elif e.op == "remove":
            draft = remove_field(draft, e.key or "")
        else:
            raise InvalidInputError(f"Unknown edit op: {e.op}")
    return draft


# ---------------------------
# save
# ---------------------------

def clean_details_for_save(details: Mapping[str, str]) -> Dict[str, str]:
    """Empty fields are not persisted."""
    return {k: v for k, v in details.items() if not is_blank(v)}


def to_record_create(draft: ExtractionDraft) -> RecordCreate:
    return RecordCreate(
        record_type=draft.record_type,
        details=clean_details_for_save(draft.details),
        recorded_at=draft.suggested_date,
    )
