"""Stored AI output: estimate history, kept task breakdowns and chat ratings."""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from retrospect.core.exceptions import RecordNotFound
from retrospect.models.assistant import AIConversation, AIEstimate, AIFeedback, Rating, TaskGeneration
from retrospect.schemas.assistant import EstimateRequest, MessageFeedbackCreate, TaskGenerationCreate

logger = logging.getLogger(__name__)


async def _get(session: AsyncSession, model, record_id: int, kind: str):
    record = await session.get(model, record_id)
    if not record:
        raise RecordNotFound(kind, record_id)
    return record


# Estimates

def _realistic_price(estimate: Dict[str, Any]) -> Optional[float]:
    price = estimate.get("suggested_price")
    if isinstance(price, dict):
        price = price.get("realistic")
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        return None
    return float(price)


def _risk_texts(estimate: Dict[str, Any]) -> List[str]:
    risks = estimate.get("risks")
    if not isinstance(risks, list):
        return []
    texts = [r.get("risk") if isinstance(r, dict) else r for r in risks]
    return [t for t in texts if isinstance(t, str) and t]


async def save_estimate(session: AsyncSession, request: EstimateRequest, estimate: Dict[str, Any]) -> AIEstimate:
    confidence = estimate.get("confidence")
    record = AIEstimate(
        brief_text=request.brief_text,
        project_type=request.project_type or None,
        cms=request.cms or None,
        integrations=request.integrations or None,
        estimate_result=estimate,
        suggested_price=_realistic_price(estimate),
        confidence=confidence if isinstance(confidence, str) else None,
        risks=_risk_texts(estimate),
    )
    session.add(record)
    await session.commit()
    await session.refresh(record)
    logger.info("Estimate stored", extra={"estimate_id": record.id})
    return record


async def list_estimates(session: AsyncSession, limit: int = 20) -> List[AIEstimate]:
    stmt = select(AIEstimate).order_by(AIEstimate.created_at.desc(), AIEstimate.id.desc()).limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def rate_estimate(session: AsyncSession, estimate_id: int, rating: Rating) -> AIEstimate:
    record = await _get(session, AIEstimate, estimate_id, "Estimate")
    record.user_feedback = rating
    session.add(record)
    await session.commit()
    await session.refresh(record)
    return record


async def delete_estimate(session: AsyncSession, estimate_id: int) -> None:
    record = await _get(session, AIEstimate, estimate_id, "Estimate")
    await session.delete(record)
    await session.commit()


# Task generations

async def save_generation(session: AsyncSession, payload: TaskGenerationCreate) -> TaskGeneration:
    record = TaskGeneration(**payload.model_dump())
    session.add(record)
    await session.commit()
    await session.refresh(record)
    return record


async def list_generations(session: AsyncSession, limit: int = 50) -> List[TaskGeneration]:
    stmt = select(TaskGeneration).order_by(TaskGeneration.created_at.desc(), TaskGeneration.id.desc()).limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def delete_generation(session: AsyncSession, generation_id: int) -> None:
    record = await _get(session, TaskGeneration, generation_id, "TaskGeneration")
    await session.delete(record)
    await session.commit()


# Conversations

async def get_conversation(session: AsyncSession, conversation_id: int) -> AIConversation:
    return await _get(session, AIConversation, conversation_id, "Conversation")


def is_assistant_message(conversation: AIConversation, index: int) -> bool:
    messages = conversation.messages or []
    return index < len(messages) and messages[index].get("role") == "assistant"


async def rate_message(session: AsyncSession, conversation: AIConversation, payload: MessageFeedbackCreate) -> AIFeedback:
    record = AIFeedback(conversation_id=conversation.id, message_index=payload.message_index, rating=payload.rating)
    session.add(record)
    await session.commit()
    await session.refresh(record)
    return record


async def delete_conversation(session: AsyncSession, conversation_id: int) -> None:
    conversation = await get_conversation(session, conversation_id)
    await session.execute(delete(AIFeedback).where(AIFeedback.conversation_id == conversation.id))
    await session.delete(conversation)
    await session.commit()
