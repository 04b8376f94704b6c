# carelog/services/parsing.py
from typing import Any, List, Mapping, Optional

from carelog.schemas.models import ExtractionDraft, ExtractionResult
from carelog.services.extraction import apply_fallbacks
from carelog.services.field_settings import coerce_field_settings
from carelog.services.llm.extraction import llm_extract_record
from carelog.services.llm.extraction_request import build_extraction_request
from carelog.services.llm.extraction_sanitize import sanitize_extraction_response
from carelog.services.reconcile import reconcile


def request_extraction(text: str, field_settings: Optional[Mapping[str, List[Any]]]) -> ExtractionResult:
    """Build the contract, call the extraction service, ingest + normalize its answer."""
    request = build_extraction_request(text, field_settings)
    raw = llm_extract_record(request)
    return sanitize_extraction_response(raw)


def parse_care_text(text: str, field_settings: Optional[Mapping[str, List[Any]]] = None) -> ExtractionDraft:
    """
    Free text -> draft ready for review.
    InvalidInputError before any external call; ExtractionServiceError if the
    service fails (no partial draft).
    """
    settings = coerce_field_settings(field_settings)
    result = request_extraction(text, settings)
    details = apply_fallbacks(result.record_type, text, result.details)
    return reconcile(result.record_type, details, settings, suggested_date=result.suggested_date)
