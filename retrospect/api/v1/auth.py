import logging
from fastapi import APIRouter, HTTPException, status

from retrospect.core.config import settings
from retrospect.core.security import create_edit_token, verify_edit_password
from retrospect.schemas.auth import UnlockRequest, EditTokenResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/unlock", response_model=EditTokenResponse)
async def unlock(payload: UnlockRequest):
    """Exchange the shared edit password for an edit-capability token."""
    if not verify_edit_password(payload.password):
        logger.info("Edit unlock rejected")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid password")
    return EditTokenResponse(
        access_token=create_edit_token(),
        expires_in=settings.EDIT_TOKEN_EXPIRE_MINUTES * 60,
    )
