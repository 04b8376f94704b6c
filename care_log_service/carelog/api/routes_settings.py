# carelog/api/routes_settings.py
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException

from carelog.schemas.models import FieldDefinition, FieldSettingsResponse, InvalidInputError
from carelog.services.field_settings import FieldSettingsStore
from carelog.services.stores import get_field_settings_store

router = APIRouter(prefix="/settings", tags=["settings"])

@router.get("/fields", response_model=FieldSettingsResponse)
def get_field_settings(store: FieldSettingsStore = Depends(get_field_settings_store)):
    return FieldSettingsResponse(field_settings=store.load())

@router.put("/fields", response_model=FieldSettingsResponse)
def put_field_settings(
    settings: Dict[str, List[FieldDefinition]],
    store: FieldSettingsStore = Depends(get_field_settings_store),
):
    try:
        saved = store.save(settings)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return FieldSettingsResponse(field_settings=saved)

@router.post("/fields/reset", response_model=FieldSettingsResponse)
def reset_field_settings(store: FieldSettingsStore = Depends(get_field_settings_store)):
    return FieldSettingsResponse(field_settings=store.reset())
