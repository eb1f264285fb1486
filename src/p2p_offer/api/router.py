"""p2p_offer REST endpoints.

POST  /offers               — create listing (vendor, KYC approved)
GET   /offers               — active marketplace listings
GET   /offers/mine          — caller's own listings
GET   /offers/{offer_id}    — single listing
PATCH /offers/{offer_id}    — edit price / limits / payment methods / terms
POST  /offers/{offer_id}/close
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.database import get_db_session
from src.p2p_common.enums import TradeIntent
from src.p2p_common.response import ApiResponse, success_response
from src.p2p_gateway.auth.dependencies import actor_of, get_current_user
from src.p2p_gateway.user.db_models import UserModel
from src.p2p_offer.application.schemas import CreateOfferRequest, UpdateOfferRequest
from src.p2p_offer.application.service import OfferApplicationService

router = APIRouter(prefix="/offers", tags=["offers"])

_service = OfferApplicationService()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_offer(
    body: CreateOfferRequest,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_offer(db, actor_of(current_user), body)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("")
async def list_offers(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    trade_intent: TradeIntent | None = Query(None),
    currency: str | None = Query(None),
    payment_method: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_offers(
        db,
        trade_intent.value if trade_intent else None,
        currency,
        payment_method,
        cursor,
        limit,
    )
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/mine")
async def list_my_offers(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_my_offers(db, actor_of(current_user), cursor, limit)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{offer_id}")
async def get_offer(
    offer_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_offer(db, offer_id)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.patch("/{offer_id}")
async def update_offer(
    offer_id: str,
    body: UpdateOfferRequest,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.update_offer(db, actor_of(current_user), offer_id, body)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{offer_id}/close")
async def close_offer(
    offer_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.close_offer(db, actor_of(current_user), offer_id)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
