from typing import Optional, Dict, Any, List, Literal, Annotated
from datetime import datetime
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

from retrospect.models.assistant import Rating
from retrospect.models.generation_job import JobStatus

MIN_OFFER_CHARS = 50


def _require_offer_text(value: str) -> str:
    if len(value.strip()) < MIN_OFFER_CHARS:
        raise ValueError(f"Offer text is too short or missing (minimum {MIN_OFFER_CHARS} characters)")
    return value


OfferText = Annotated[str, AfterValidator(_require_offer_text)]


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(min_length=1)
    conversation_id: Optional[int] = None
    save: bool = False


class ChatResponse(BaseModel):
    message: str
    conversation_id: Optional[int] = None


class ConversationRead(BaseModel):
    id: int
    title: str
    messages: List[Dict[str, Any]]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EstimateRequest(BaseModel):
    brief_text: str = ""
    project_type: str = ""
    cms: str = ""
    integrations: str = ""


class EstimateResponse(BaseModel):
    estimate: Optional[Dict[str, Any]]
    raw: Optional[str] = None
    error: Optional[str] = None
    estimate_id: Optional[int] = None


class EstimateRead(BaseModel):
    id: int
    brief_text: str
    project_type: Optional[str]
    cms: Optional[str]
    integrations: Optional[str]
    estimate_result: Dict[str, Any]
    suggested_price: Optional[float]
    confidence: Optional[str]
    risks: List[str]
    user_feedback: Optional[Rating]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EstimateFeedback(BaseModel):
    user_feedback: Rating


class MessageFeedbackCreate(BaseModel):
    message_index: int = Field(ge=0)
    rating: Rating

    @field_validator("rating")
    @classmethod
    def thumbs_only(cls, value: Rating) -> Rating:
        if value == Rating.NEUTRAL:
            raise ValueError("Message feedback is either good or bad")
        return value


class MessageFeedbackRead(MessageFeedbackCreate):
    id: int
    conversation_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ParseOfferRequest(BaseModel):
    offer_text: OfferText


class ParseOfferResponse(BaseModel):
    parsed: Optional[Dict[str, Any]]
    raw: Optional[str] = None
    error: Optional[str] = None
    extracted_text: Optional[str] = None


class TaskGenerationRequest(BaseModel):
    offer_text: OfferText
    additional_notes: Optional[str] = None
    language: Literal["en", "sl"] = "en"


class JobSubmitted(BaseModel):
    job_id: str
    status: JobStatus


class JobRead(BaseModel):
    id: str
    kind: str
    status: JobStatus
    result: Optional[Dict[str, Any]] = None
    raw: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TaskTemplateCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    project_type: Optional[str] = None
    tasks: List[Dict[str, Any]] = Field(min_length=1)


class TaskTemplateRead(TaskTemplateCreate):
    id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TaskGenerationCreate(BaseModel):
    project_name: Optional[str] = None
    project_brief: str = ""
    tasks: List[Dict[str, Any]] = Field(min_length=1)
    summary: Optional[Dict[str, Any]] = None


class TaskGenerationRead(TaskGenerationCreate):
    id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
