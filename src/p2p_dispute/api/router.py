"""p2p_dispute participant endpoint. Admin endpoints live in p2p_admin."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.database import get_db_session
from src.p2p_common.response import ApiResponse, success_response
from src.p2p_dispute.application.service import DisputeApplicationService
from src.p2p_gateway.auth.dependencies import actor_of, get_current_user
from src.p2p_gateway.user.db_models import UserModel

router = APIRouter(prefix="/disputes", tags=["disputes"])

_service = DisputeApplicationService()


@router.get("/{dispute_id}")
async def get_dispute(
    dispute_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_dispute(db, actor_of(current_user), dispute_id)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
