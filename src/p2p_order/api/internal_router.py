"""Auto-release endpoint, called by an external timer once auto_release_at passes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.database import get_db_session
from src.p2p_common.response import ApiResponse, success_response
from src.p2p_gateway.auth.dependencies import require_internal_caller
from src.p2p_order.application.service import OrderApplicationService

router = APIRouter(
    prefix="/internal",
    tags=["internal"],
    dependencies=[Depends(require_internal_caller)],
)

_service = OrderApplicationService()


@router.post("/orders/{order_id}/auto-release")
async def auto_release(
    order_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.auto_release(db, order_id)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
