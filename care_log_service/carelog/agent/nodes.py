# carelog/agent/nodes.py
from typing import Any, Dict

from langgraph.types import interrupt

from carelog.agent.state import DraftState
from carelog.schemas.models import DraftEdit, ExtractionDraft, ExtractionResult
from carelog.services.extraction import apply_fallbacks
from carelog.services.field_settings import coerce_field_settings
from carelog.services.parsing import request_extraction
from carelog.services.reconcile import apply_edits, reconcile, to_record_create
from carelog.services.stores import get_record_store

def _audit(state: DraftState, event: str, extra: Dict[str, Any] | None = None) -> Dict[str, Any]:
    audit = list(state.get("audit") or [])
    audit.append({"event": event, **(extra or {})})
    return {"audit": audit}

def extract_node(state: DraftState) -> Dict[str, Any]:
    settings = coerce_field_settings(state.get("field_settings"))
    result = request_extraction(state["text"], settings)
    return {
        "extraction": result.model_dump(),
        "status": "CREATED",
        **_audit(state, "extract.done", {"record_type": result.record_type, "keys": list(result.details)}),
    }

def fallback_node(state: DraftState) -> Dict[str, Any]:
    result = ExtractionResult(**state["extraction"])
    details = apply_fallbacks(result.record_type, state.get("text") or "", result.details)
    filled = [k for k in details if k not in result.details]
    return {"details": details, **_audit(state, "fallback.done", {"filled": filled})}

def reconcile_node(state: DraftState) -> Dict[str, Any]:
    settings = coerce_field_settings(state.get("field_settings"))
    result = ExtractionResult(**state["extraction"])
    draft = reconcile(result.record_type, state.get("details") or {}, settings, suggested_date=result.suggested_date)
    return {
        "draft": draft.model_dump(),
        "status": "UNDER_REVIEW",
        **_audit(state, "reconcile.done", {"record_type": draft.record_type, "keys": list(draft.details)}),
    }

def review_node(state: DraftState) -> Dict[str, Any]:
    """
    Interrupt for human review.
    Resume payload: {"action": "edit"|"save"|"discard", "edits": [...], "record_type": "..."}.
    """
    payload = {
        "type": "REVIEW_REQUIRED",
        "draft_id": state["draft_id"],
        "draft": state["draft"],
        "instructions": "Review the extracted fields, edit as needed, then save or discard.",
    }

    resume = interrupt(payload)
    resume = resume if isinstance(resume, dict) else {}
    action = resume.get("action") or "edit"

    updates: Dict[str, Any] = {"decision": action}
    if action == "edit":
        settings = coerce_field_settings(state.get("field_settings"))
        edits = [DraftEdit(**e) for e in (resume.get("edits") or [])]
        draft = apply_edits(ExtractionDraft(**state["draft"]), edits, settings, resume.get("record_type"))
        updates["draft"] = draft.model_dump()

    updates.update(_audit(state, "review.resumed", {"action": action}))
    return updates

def route_after_review(state: DraftState) -> str:
    # conditional edge target; more edits loop back into review
    decision = state.get("decision")
    if decision == "save":
        return "save"
    if decision == "discard":
        return "discard"
    return "review"

def save_node(state: DraftState) -> Dict[str, Any]:
    draft = ExtractionDraft(**state["draft"])
    record = get_record_store().create(to_record_create(draft))
    return {
        "record": record.model_dump(),
        "status": "SAVED",
        **_audit(state, "save.done", {"record_id": record.id}),
    }

def discard_node(state: DraftState) -> Dict[str, Any]:
    return {"status": "DISCARDED", **_audit(state, "discard.done")}
