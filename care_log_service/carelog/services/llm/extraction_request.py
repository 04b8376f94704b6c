# carelog/services/llm/extraction_request.py
import logging
from typing import Any, List, Mapping, Optional

from carelog.schemas.models import ExtractionRequest, FieldSettings, InvalidInputError
from carelog.services.field_settings import coerce_field_settings
from carelog.services.llm.extraction_prompt import build_instructions
from carelog.services.llm.extraction_schema import build_extraction_schema

logger = logging.getLogger(__name__)


def build_extraction_request(
    text: str,
    settings: Optional[Mapping[str, List[Any]]],
) -> ExtractionRequest:
    """
    Turn free text + the active field settings into the extraction contract.
    Settings are hydrated again here so stale descriptions never reach the service.
    """
    if not (text or "").strip():
        raise InvalidInputError("テキスト入力が必要です")
    if not settings:
        raise InvalidInputError("field settings are empty.")

    hydrated: FieldSettings = coerce_field_settings(settings)

    schema = build_extraction_schema(hydrated)
    logger.debug(
        "Built extraction request: %d record types, %d detail keys",
        len(hydrated),
        len(schema["properties"]["details"]["properties"]),
    )
    return ExtractionRequest(
        text=text.strip(),
        instructions=build_instructions(hydrated),
        structural_schema=schema,
    )
