"""Deposit feed endpoint for the external chain monitor (X-Deposit-Feed-Token)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.database import get_db_session
from src.p2p_common.response import ApiResponse, success_response
from src.p2p_gateway.auth.dependencies import require_internal_caller
from src.p2p_wallet.application.schemas import DepositFeedRequest
from src.p2p_wallet.application.service import WalletApplicationService

router = APIRouter(
    prefix="/internal",
    tags=["internal"],
    dependencies=[Depends(require_internal_caller)],
)

_service = WalletApplicationService()


@router.post("/deposits")
async def credit_deposit(
    body: DepositFeedRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.credit_deposit(
        db, body.user_id, body.currency, body.amount, body.reference
    )
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
