"""p2p_order REST endpoints.

POST /orders                      — place an order against an offer (escrow held)
GET  /orders                      — caller's orders as buyer or seller
GET  /orders/{order_id}
POST /orders/{order_id}/paid      — buyer marks fiat payment sent
POST /orders/{order_id}/deliver   — seller (or admin) delivers
POST /orders/{order_id}/confirm   — buyer (or admin) releases escrow
POST /orders/{order_id}/cancel
POST /orders/{order_id}/dispute
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.database import get_db_session
from src.p2p_common.enums import OrderStatus
from src.p2p_common.response import ApiResponse, success_response
from src.p2p_dispute.application.schemas import OpenDisputeRequest
from src.p2p_dispute.application.service import DisputeApplicationService
from src.p2p_gateway.auth.dependencies import actor_of, get_current_user
from src.p2p_gateway.user.db_models import UserModel
from src.p2p_order.application.schemas import (
    CancelRequest,
    ConfirmRequest,
    CreateOrderRequest,
    DeliverRequest,
)
from src.p2p_order.application.service import OrderApplicationService

router = APIRouter(prefix="/orders", tags=["orders"])

_service = OrderApplicationService()
_disputes = DisputeApplicationService()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    body: CreateOrderRequest,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_order(db, actor_of(current_user), body)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("")
async def list_orders(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: OrderStatus | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_orders(
        db, actor_of(current_user), status.value if status else None, cursor, limit
    )
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_order(db, actor_of(current_user), order_id)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{order_id}/paid")
async def mark_paid(
    order_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.mark_paid(db, actor_of(current_user), order_id)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{order_id}/deliver")
async def deliver(
    order_id: str,
    body: DeliverRequest,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.deliver(db, actor_of(current_user), order_id, body.delivery_note)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{order_id}/confirm")
async def confirm(
    order_id: str,
    body: ConfirmRequest,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.confirm(db, actor_of(current_user), order_id, body.step_up_code)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{order_id}/cancel")
async def cancel(
    order_id: str,
    body: CancelRequest,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.cancel(db, actor_of(current_user), order_id, body.reason)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{order_id}/dispute", status_code=status.HTTP_201_CREATED)
async def open_dispute(
    order_id: str,
    body: OpenDisputeRequest,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _disputes.open_dispute(db, actor_of(current_user), order_id, body.reason)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
