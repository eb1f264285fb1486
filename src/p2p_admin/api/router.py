"""Admin endpoints: dispute handling, account freeze, ledger verification."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_admin.application.schemas import FreezeRequest
from src.p2p_admin.application.service import AdminService
from src.p2p_common.database import get_db_session
from src.p2p_common.enums import DisputeStatus
from src.p2p_common.response import ApiResponse, success_response
from src.p2p_dispute.application.schemas import ResolveDisputeRequest
from src.p2p_dispute.application.service import DisputeApplicationService
from src.p2p_gateway.auth.dependencies import actor_of, require_admin, require_dispute_admin
from src.p2p_gateway.user.db_models import UserModel

router = APIRouter(prefix="/admin", tags=["admin"])

_admin = AdminService()
_disputes = DisputeApplicationService()


@router.get("/disputes")
async def list_disputes(
    request: Request,
    admin: Annotated[UserModel, Depends(require_dispute_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: DisputeStatus | None = Query(None, description="Default: open and in_review"),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _disputes.list_disputes(
        db, actor_of(admin), status.value if status else None, cursor, limit
    )
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/disputes/{dispute_id}/review")
async def start_review(
    dispute_id: str,
    request: Request,
    admin: Annotated[UserModel, Depends(require_dispute_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _disputes.start_review(db, actor_of(admin), dispute_id)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/disputes/{dispute_id}/resolve")
async def resolve_dispute(
    dispute_id: str,
    body: ResolveDisputeRequest,
    request: Request,
    admin: Annotated[UserModel, Depends(require_dispute_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _disputes.resolve(
        db, actor_of(admin), dispute_id, body.outcome, body.notes, body.step_up_code
    )
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/users/{user_id}/freeze")
async def freeze_user(
    user_id: UUID,
    body: FreezeRequest,
    request: Request,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _admin.freeze_user(db, actor_of(admin), str(user_id), body.reason)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/users/{user_id}/unfreeze")
async def unfreeze_user(
    user_id: UUID,
    request: Request,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _admin.unfreeze_user(db, actor_of(admin), str(user_id))
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/invariants")
async def check_invariants(
    request: Request,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _admin.check_invariants(db)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
