# carelog/api/routes_records.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from carelog.schemas.models import CareRecord, InvalidInputError, RecordCreate, RecordNotFoundError, RecordUpdate
from carelog.services.reconcile import clean_details_for_save
from carelog.services.records_store import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT, RecordStore
from carelog.services.stores import get_record_store

router = APIRouter(prefix="/records", tags=["records"])

@router.get("", response_model=List[CareRecord])
def list_records(
    limit: int = Query(DEFAULT_LIST_LIMIT, ge=1, le=MAX_LIST_LIMIT),
    store: RecordStore = Depends(get_record_store),
):
    return store.list(limit)

@router.post("", response_model=CareRecord, status_code=201)
def create_record(req: RecordCreate, store: RecordStore = Depends(get_record_store)):
    rec = req.model_copy(update={"details": clean_details_for_save(req.details)})
    try:
        return store.create(rec)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

@router.put("/{record_id}", response_model=CareRecord)
def update_record(record_id: int, req: RecordUpdate, store: RecordStore = Depends(get_record_store)):
    if req.details is not None:
        req = req.model_copy(update={"details": clean_details_for_save(req.details)})
    try:
        return store.update(record_id, req)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="record not found")

@router.delete("/{record_id}")
def delete_record(record_id: int, store: RecordStore = Depends(get_record_store)):
    try:
        store.delete(record_id)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="record not found")
    return {"ok": True, "id": record_id}
