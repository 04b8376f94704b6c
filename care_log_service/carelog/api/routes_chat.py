# carelog/api/routes_chat.py
from fastapi import APIRouter, Depends, HTTPException

from carelog.schemas.models import ChatRequest, ChatResponse, ExtractionServiceError, InvalidInputError
from carelog.services.llm.chat import answer_about_records
from carelog.services.records_store import RecordStore
from carelog.services.stores import get_record_store

router = APIRouter(tags=["chat"])

CHAT_CONTEXT_RECORDS = 50

@router.post("/chat", response_model=ChatResponse)
def chat(req: ChatRequest, store: RecordStore = Depends(get_record_store)):
    records = [r.model_dump() for r in store.list(CHAT_CONTEXT_RECORDS)]
    try:
        reply = answer_about_records(req.message, records)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ExtractionServiceError as e:
        raise HTTPException(status_code=502, detail={"error": "回答の生成に失敗しました", "details": str(e)})
    return ChatResponse(reply=reply, record_count=len(records))
