# carelog/api/routes_parse.py
from fastapi import APIRouter, Depends, HTTPException

from carelog.schemas.models import (
    SERVICE_ERROR_MESSAGE,
    ExtractionServiceError,
    FieldSettings,
    InvalidInputError,
    ParseRequest,
    ParseResponse,
)
from carelog.services.field_settings import FieldSettingsStore, coerce_field_settings
from carelog.services.parsing import parse_care_text
from carelog.services.reconcile import draft_fields
from carelog.services.stores import get_field_settings_store

router = APIRouter(tags=["parse"])

def resolve_settings(raw, store: FieldSettingsStore) -> FieldSettings:
    # caller-supplied settings win; otherwise the persisted ones
    if raw is None:
        return store.load()
    return coerce_field_settings(raw)

@router.post("/parse", response_model=ParseResponse)
def parse(req: ParseRequest, store: FieldSettingsStore = Depends(get_field_settings_store)):
    try:
        settings = resolve_settings(req.field_settings, store)
        draft = parse_care_text(req.text, settings)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ExtractionServiceError as e:
        raise HTTPException(status_code=502, detail={"error": SERVICE_ERROR_MESSAGE, "details": str(e)})

    return ParseResponse(draft=draft, fields=draft_fields(draft, settings))
