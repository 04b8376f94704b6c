from typing import Any, Dict, List, TypedDict

class DraftState(TypedDict, total=False):
    # identity (draft_id doubles as LangGraph thread_id)
    draft_id: str

    # inputs
    text: str
    field_settings: Dict[str, List[Dict[str, Any]]]  # hydrated settings, JSON form

    # pipeline
    extraction: Dict[str, Any]  # ExtractionResult dict (normalized service answer)
    details: Dict[str, str]     # after fallbacks
    draft: Dict[str, Any]       # ExtractionDraft dict under review

    # lifecycle
    status: str                 # CREATED / UNDER_REVIEW / SAVED / DISCARDED
    decision: str               # edit / save / discard (last review resume)
    record: Dict[str, Any]      # stored CareRecord once saved
    audit: List[Dict[str, Any]]
