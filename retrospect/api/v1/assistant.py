import logging
from typing import List
from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from retrospect.api.deps import get_completion_gateway, get_metrics_config
from retrospect.api.v1.analytics import load_portfolio
from retrospect.core.config import settings
from retrospect.core.database import get_session
from retrospect.core.security import require_edit_capability
from retrospect.models.assistant import AIConversation
from retrospect.models.common import utcnow
from retrospect.schemas.assistant import (
    ChatRequest,
    ChatResponse,
    ConversationRead,
    EstimateFeedback,
    EstimateRead,
    EstimateRequest,
    EstimateResponse,
    MessageFeedbackCreate,
    MessageFeedbackRead,
    ParseOfferRequest,
    ParseOfferResponse,
    MIN_OFFER_CHARS,
)
from retrospect.services import ai_service, history_service
from retrospect.services.completion import CompletionGateway
from retrospect.services.documents import extract_text
from retrospect.services.metrics import MetricsConfig

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assistant", tags=["assistant"])

CONVERSATION_TITLE_CHARS = 60

edit = [Depends(require_edit_capability)]


@router.post("/chat", response_model=ChatResponse)
async def chat(
    payload: ChatRequest,
    session: AsyncSession = Depends(get_session),
    gateway: CompletionGateway = Depends(get_completion_gateway),
    config: MetricsConfig = Depends(get_metrics_config),
):
    conversation = None
    if payload.conversation_id is not None:
        conversation = await history_service.get_conversation(session, payload.conversation_id)

    summary = await load_portfolio(session, config)
    messages = [m.model_dump() for m in payload.messages]
    reply = await ai_service.chat(gateway, messages, summary, config)

    if conversation is None and not payload.save:
        return ChatResponse(message=reply)

    history = messages + [{"role": "assistant", "content": reply}]
    if conversation is None:
        first_user = next((m["content"] for m in messages if m["role"] == "user"), "")
        conversation = AIConversation(title=first_user[:CONVERSATION_TITLE_CHARS])
    conversation.messages = history
    conversation.updated_at = utcnow()
    session.add(conversation)
    await session.commit()
    await session.refresh(conversation)
    return ChatResponse(message=reply, conversation_id=conversation.id)


@router.get("/conversations", response_model=List[ConversationRead])
async def list_conversations(session: AsyncSession = Depends(get_session)):
    result = await session.execute(select(AIConversation).order_by(AIConversation.updated_at.desc()))
    return result.scalars().all()


@router.get("/conversations/{conversation_id}", response_model=ConversationRead)
async def get_conversation(conversation_id: int, session: AsyncSession = Depends(get_session)):
    return await history_service.get_conversation(session, conversation_id)


@router.delete("/conversations/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=edit)
async def delete_conversation(conversation_id: int, session: AsyncSession = Depends(get_session)):
    await history_service.delete_conversation(session, conversation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/conversations/{conversation_id}/feedback",
    response_model=MessageFeedbackRead,
    status_code=status.HTTP_201_CREATED,
)
async def rate_message(
    conversation_id: int, payload: MessageFeedbackCreate, session: AsyncSession = Depends(get_session)
):
    conversation = await history_service.get_conversation(session, conversation_id)
    if not history_service.is_assistant_message(conversation, payload.message_index):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Message {payload.message_index} is not an assistant reply",
        )
    return await history_service.rate_message(session, conversation, payload)


@router.post("/estimate", response_model=EstimateResponse)
async def estimate(
    payload: EstimateRequest,
    session: AsyncSession = Depends(get_session),
    gateway: CompletionGateway = Depends(get_completion_gateway),
    config: MetricsConfig = Depends(get_metrics_config),
):
    summary = await load_portfolio(session, config)
    outcome = await ai_service.estimate(
        gateway,
        payload.brief_text,
        payload.project_type,
        payload.cms,
        payload.integrations,
        summary,
        config,
    )
    response = EstimateResponse(estimate=outcome.parsed, raw=outcome.raw, error=outcome.error)
    if outcome.parsed is not None:
        record = await history_service.save_estimate(session, payload, outcome.parsed)
        response.estimate_id = record.id
    return response


@router.get("/estimates", response_model=List[EstimateRead])
async def list_estimates(limit: int = 20, session: AsyncSession = Depends(get_session)):
    return await history_service.list_estimates(session, limit=limit)


@router.put("/estimates/{estimate_id}/feedback", response_model=EstimateRead)
async def rate_estimate(estimate_id: int, payload: EstimateFeedback, session: AsyncSession = Depends(get_session)):
    return await history_service.rate_estimate(session, estimate_id, payload.user_feedback)


@router.delete("/estimates/{estimate_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=edit)
async def delete_estimate(estimate_id: int, session: AsyncSession = Depends(get_session)):
    await history_service.delete_estimate(session, estimate_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/parse-offer", response_model=ParseOfferResponse)
async def parse_offer(payload: ParseOfferRequest, gateway: CompletionGateway = Depends(get_completion_gateway)):
    outcome = await ai_service.parse_offer(gateway, payload.offer_text)
    return ParseOfferResponse(parsed=outcome.parsed, raw=outcome.raw, error=outcome.error)


@router.post("/parse-offer/upload", response_model=ParseOfferResponse)
async def parse_offer_upload(
    document: UploadFile = File(...),
    gateway: CompletionGateway = Depends(get_completion_gateway),
):
    data = await document.read()
    if len(data) > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="File too large")

    text = extract_text(document.filename, document.content_type, data)
    logger.info("Offer document extracted", extra={"upload_name": document.filename, "chars": len(text)})
    if len(text.strip()) < MIN_OFFER_CHARS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Offer text is too short or missing")

    outcome = await ai_service.parse_offer(gateway, text)
    return ParseOfferResponse(parsed=outcome.parsed, raw=outcome.raw, error=outcome.error, extracted_text=text)
