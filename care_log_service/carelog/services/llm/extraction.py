# carelog/services/llm/extraction.py
import logging
from typing import Any, Dict

from carelog.core.llm_config import HF_MODEL_EXTRACT, LLM_PROVIDER, OLLAMA_MODEL_EXTRACT
from carelog.schemas.models import ExtractionRequest, ExtractionServiceError
from carelog.services.hf_client import HFLLMError, hf_chat_json
from carelog.services.llm.extraction_prompt import build_user_message
from carelog.services.ollama_client import OllamaError, ollama_chat_json

logger = logging.getLogger(__name__)


def llm_extract_record(request: ExtractionRequest) -> Dict[str, Any]:
    """
    One request/response exchange with the extraction service.
    Returns the raw JSON object; no retry, failures raise ExtractionServiceError.
    """
    user = build_user_message(request.text)
    detail_count = len(request.structural_schema["properties"]["details"]["properties"])
    logger.info("Extraction request via %s (%d detail keys)", LLM_PROVIDER, detail_count)

    try:
        if LLM_PROVIDER == "hf":
            return hf_chat_json(
                model=HF_MODEL_EXTRACT,
                system=request.instructions,
                user=user,
                schema=request.structural_schema,
            )
        return ollama_chat_json(
            model=OLLAMA_MODEL_EXTRACT,
            system=request.instructions,
            user=user,
            schema=request.structural_schema,
        )
    except (OllamaError, HFLLMError) as e:
        logger.warning("Extraction service failed: %s", e)
        raise ExtractionServiceError(str(e)) from e
