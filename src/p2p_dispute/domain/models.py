"""Domain models for p2p_dispute."""

from dataclasses import dataclass
from datetime import datetime

from src.p2p_common.enums import DisputeStatus


@dataclass
class Dispute:
    id: str
    order_id: str
    opened_by: str
    reason: str
    status: str                      # DisputeStatus value
    outcome: str | None = None       # DisputeOutcome value once resolved
    resolution: str | None = None    # admin's resolution notes
    reviewed_by: str | None = None
    resolved_by: str | None = None
    resolved_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_resolved(self) -> bool:
        return self.status in (DisputeStatus.RESOLVED_REFUND, DisputeStatus.RESOLVED_RELEASE)
