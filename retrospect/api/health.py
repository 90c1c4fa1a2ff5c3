from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from retrospect.api.deps import get_completion_gateway
from retrospect.core.config import settings
from retrospect.core.database import get_session
from retrospect.services.completion import CompletionGateway

router = APIRouter()


class HealthResponse(BaseModel):
    status: str = "ok"
    app: str
    database: bool
    completion_provider: bool


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(
    session: AsyncSession = Depends(get_session),
    gateway: CompletionGateway = Depends(get_completion_gateway),
):
    """Liveness plus the state of the record store and the completion provider key."""
    await session.execute(text("SELECT 1"))
    return HealthResponse(app=settings.APP_NAME, database=True, completion_provider=gateway.is_available())
