"""Pydantic schemas for p2p_admin API."""

from pydantic import BaseModel, Field


class FreezeRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class FreezeResponse(BaseModel):
    user_id: str
    is_frozen: bool
    frozen_reason: str | None


class InvariantReport(BaseModel):
    ok: bool
    violations: list[str]
