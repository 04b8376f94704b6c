# carelog/api/routes_drafts.py
import uuid
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from langgraph.types import Command

from carelog.agent.graph import get_draft_graph
from carelog.api.routes_parse import resolve_settings
from carelog.schemas.models import (
    SERVICE_ERROR_MESSAGE,
    CareRecord,
    DraftCreateRequest,
    DraftDecisionRequest,
    DraftResponse,
    DraftReviewRequest,
    ExtractionDraft,
    ExtractionServiceError,
    InvalidInputError,
)
from carelog.services.field_settings import FieldSettingsStore, coerce_field_settings, settings_to_json
from carelog.services.reconcile import apply_edits, draft_fields
from carelog.services.stores import get_field_settings_store

router = APIRouter(prefix="/drafts", tags=["drafts"])

def _config(draft_id: str):
    return {"configurable": {"thread_id": draft_id}}

def _snapshot(graph, draft_id: str):
    snap = graph.get_state(_config(draft_id))
    state = snap.values or {}
    if not state:
        raise HTTPException(status_code=404, detail="draft_id not found")
    return snap, state

def _awaiting_review(snap) -> bool:
    return "review" in (snap.next or ())

def _response(draft_id: str, state: Dict[str, Any]) -> DraftResponse:
    draft_dict = state.get("draft")
    draft = ExtractionDraft(**draft_dict) if draft_dict else None
    settings = coerce_field_settings(state.get("field_settings"))
    record = state.get("record")
    return DraftResponse(
        draft_id=draft_id,
        status=state.get("status", "CREATED"),
        draft=draft,
        fields=draft_fields(draft, settings) if draft else [],
        record=CareRecord(**record) if record else None,
    )

def _resume(graph, draft_id: str, payload: Dict[str, Any]) -> DraftResponse:
    snap, _ = _snapshot(graph, draft_id)
    if not _awaiting_review(snap):
        raise HTTPException(status_code=409, detail="Draft is not under review.")

    graph.invoke(Command(resume=payload), config=_config(draft_id))
    _, state = _snapshot(graph, draft_id)
    return _response(draft_id, state)

@router.post("", response_model=DraftResponse)
def create_draft(
    req: DraftCreateRequest,
    graph=Depends(get_draft_graph),
    store: FieldSettingsStore = Depends(get_field_settings_store),
):
    if not (req.text or "").strip():
        raise HTTPException(status_code=400, detail="テキスト入力が必要です")
    try:
        settings = resolve_settings(req.field_settings, store)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    draft_id = "draft_" + uuid.uuid4().hex
    initial_state = {
        "draft_id": draft_id,
        "text": req.text,
        "field_settings": settings_to_json(settings),
        "audit": [],
    }

    try:
        graph.invoke(initial_state, config=_config(draft_id))
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ExtractionServiceError as e:
        raise HTTPException(status_code=502, detail={"error": SERVICE_ERROR_MESSAGE, "details": str(e)})

    _, state = _snapshot(graph, draft_id)
    return _response(draft_id, state)

@router.get("/{draft_id}", response_model=DraftResponse)
def get_draft(draft_id: str, graph=Depends(get_draft_graph)):
    _, state = _snapshot(graph, draft_id)
    return _response(draft_id, state)

@router.get("/{draft_id}/audit")
def draft_audit(draft_id: str, graph=Depends(get_draft_graph)):
    _, state = _snapshot(graph, draft_id)
    return {"draft_id": draft_id, "audit": state.get("audit", [])}

@router.post("/review", response_model=DraftResponse)
def review_draft(req: DraftReviewRequest, graph=Depends(get_draft_graph)):
    snap, state = _snapshot(graph, req.draft_id)
    if not _awaiting_review(snap):
        raise HTTPException(status_code=409, detail="Draft is not under review.")

    # reject bad edits here, before the graph is resumed
    try:
        settings = coerce_field_settings(state.get("field_settings"))
        apply_edits(ExtractionDraft(**state["draft"]), req.edits, settings, req.record_type)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _resume(graph, req.draft_id, {
        "action": "edit",
        "edits": [e.model_dump() for e in req.edits],
        "record_type": req.record_type,
    })

@router.post("/save", response_model=DraftResponse)
def save_draft(req: DraftDecisionRequest, graph=Depends(get_draft_graph)):
    return _resume(graph, req.draft_id, {"action": "save"})

@router.post("/discard", response_model=DraftResponse)
def discard_draft(req: DraftDecisionRequest, graph=Depends(get_draft_graph)):
    return _resume(graph, req.draft_id, {"action": "discard"})
