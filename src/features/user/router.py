"""User router (profile endpoints)."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.dependencies import get_db_session
from src.features.auth.dependencies import get_current_user
from src.features.auth.ledger import RefreshTokenLedger

from .models import User
from .schemas import SessionResponse, SessionsData, SessionsEnvelope, UserData, UserEnvelope, UserResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/user", tags=["User"])


@router.get("/me", response_model=UserEnvelope)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get the authenticated user's profile."""
    return UserEnvelope(
        message="User profile retrieved successfully",
        data=UserData(user=UserResponse.model_validate(current_user)),
    )


@router.get("/sessions", response_model=SessionsEnvelope)
async def list_sessions(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """List the devices currently holding a valid refresh token."""
    records = await RefreshTokenLedger.list_active(session, current_user.id)
    return SessionsEnvelope(
        message="Active sessions retrieved successfully",
        data=SessionsData(sessions=[SessionResponse.model_validate(r) for r in records]),
    )
