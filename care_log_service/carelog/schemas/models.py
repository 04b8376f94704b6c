from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field

RecordType = Literal["meal", "excretion", "vital", "hygiene", "other"]
Provenance = Literal["ai-filled", "empty", "manual"]
DraftStatus = Literal["CREATED", "UNDER_REVIEW", "SAVED", "DISCARDED"]
EditOp = Literal["set", "add", "rename", "remove"]

RECORD_TYPES: List[str] = ["meal", "excretion", "vital", "hygiene", "other"]

RECORD_TYPE_LABELS: Dict[str, str] = {
    "meal": "食事",
    "excretion": "排泄",
    "vital": "バイタル",
    "hygiene": "衛生・入浴",
    "other": "その他",
}

SERVICE_ERROR_MESSAGE = "解析に失敗しました。もう一度試してください。"


class InvalidInputError(ValueError):
    """User-correctable input problem; raised before any external call."""


class ExtractionServiceError(RuntimeError):
    """The extraction service failed or answered outside its contract."""


class RecordNotFoundError(KeyError):
    pass


class FieldDefinition(BaseModel):
    key: str
    label: str
    description: Optional[str] = Field(
        default=None,
        description="Extraction hint sent to the extraction service.",
    )


# record type -> ordered field list (JSON form of the persisted settings)
FieldSettings = Dict[str, List[FieldDefinition]]


class ExtractionRequest(BaseModel):
    text: str
    instructions: str
    structural_schema: Dict[str, Any]


class ExtractionResult(BaseModel):
    record_type: RecordType
    details: Dict[str, str] = Field(default_factory=dict)
    suggested_date: Optional[str] = None


class ExtractionDraft(BaseModel):
    record_type: RecordType
    details: Dict[str, str] = Field(default_factory=dict)  # ordered: schema keys first
    provenance: Dict[str, Provenance] = Field(default_factory=dict)
    suggested_date: Optional[str] = None


class CareRecord(BaseModel):
    id: int
    record_type: str
    details: Dict[str, Any] = Field(default_factory=dict)
    recorded_at: str
    created_at: str
    updated_at: Optional[str] = None


class RecordCreate(BaseModel):
    record_type: str
    details: Dict[str, Any]
    recorded_at: Optional[str] = None  # ISO8601; defaults to now


class RecordUpdate(BaseModel):
    record_type: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    recorded_at: Optional[str] = None


class ParseRequest(BaseModel):
    text: str
    # client-side settings (may be stale); hydrated before use
    field_settings: Optional[Dict[str, List[FieldDefinition]]] = None


class DraftCreateRequest(BaseModel):
    text: str
    field_settings: Optional[Dict[str, List[FieldDefinition]]] = None


class DraftEdit(BaseModel):
    op: EditOp
    key: Optional[str] = None
    value: Optional[str] = None
    new_key: Optional[str] = None  # rename only


class DraftReviewRequest(BaseModel):
    draft_id: str
    edits: List[DraftEdit] = Field(default_factory=list)
    record_type: Optional[RecordType] = None


class DraftDecisionRequest(BaseModel):
    draft_id: str


class DraftField(BaseModel):
    key: str
    label: Optional[str] = None
    value: str = ""
    provenance: Provenance


class DraftResponse(BaseModel):
    draft_id: str
    status: DraftStatus
    draft: Optional[ExtractionDraft] = None
    fields: List[DraftField] = Field(default_factory=list)  # display order
    record: Optional[CareRecord] = None


class FieldSettingsResponse(BaseModel):
    field_settings: Dict[str, List[FieldDefinition]]
    record_type_labels: Dict[str, str] = Field(default_factory=lambda: dict(RECORD_TYPE_LABELS))


class ChatRequest(BaseModel):
    message: str


class ChatResponse(BaseModel):
    reply: str
    record_count: int = 0


class ParseResponse(BaseModel):
    draft: ExtractionDraft
    fields: List[DraftField] = Field(default_factory=list)  # display order
