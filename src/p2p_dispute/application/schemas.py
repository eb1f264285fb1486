"""Pydantic schemas for p2p_dispute API."""

import base64
import json

from pydantic import BaseModel, Field

from src.p2p_common.enums import DisputeOutcome
from src.p2p_dispute.domain.models import Dispute
from src.p2p_order.application.schemas import OrderResponse


def cursor_encode(last_id: str) -> str:
    return base64.b64encode(json.dumps({"id": last_id}).encode()).decode()


def cursor_decode(cursor: str | None) -> str | None:
    if cursor is None:
        return None
    try:
        return str(json.loads(base64.b64decode(cursor.encode()).decode())["id"])
    except Exception:
        return None


class OpenDisputeRequest(BaseModel):
    reason: str = Field(..., min_length=10, max_length=2000)


class ResolveDisputeRequest(BaseModel):
    outcome: DisputeOutcome
    notes: str = Field(..., min_length=1, max_length=2000)
    step_up_code: str | None = Field(None, min_length=6, max_length=6)


class DisputeResponse(BaseModel):
    id: str
    order_id: str
    opened_by: str
    reason: str
    status: str
    outcome: str | None
    resolution: str | None
    reviewed_by: str | None
    resolved_by: str | None
    resolved_at: str | None
    created_at: str | None

    @classmethod
    def from_dispute(cls, dispute: Dispute) -> "DisputeResponse":
        return cls(
            id=dispute.id,
            order_id=dispute.order_id,
            opened_by=dispute.opened_by,
            reason=dispute.reason,
            status=dispute.status,
            outcome=dispute.outcome,
            resolution=dispute.resolution,
            reviewed_by=dispute.reviewed_by,
            resolved_by=dispute.resolved_by,
            resolved_at=dispute.resolved_at.isoformat() if dispute.resolved_at else None,
            created_at=dispute.created_at.isoformat() if dispute.created_at else None,
        )


class DisputeWithOrderResponse(BaseModel):
    dispute: DisputeResponse
    order: OrderResponse


class DisputeListResponse(BaseModel):
    items: list[DisputeResponse]
    next_cursor: str | None
    has_more: bool
