"""Actor — who is performing a state transition.

Services take an Actor instead of a UserModel so they stay independent of
the gateway ORM and can be driven by the internal timer (SYSTEM_ACTOR).
"""

from dataclasses import dataclass

from src.p2p_common.enums import UserRole

SYSTEM_ROLE = "system"


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: str

    @property
    def is_system(self) -> bool:
        return self.role == SYSTEM_ROLE

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def can_resolve_disputes(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.DISPUTE_ADMIN)


SYSTEM_ACTOR = Actor(user_id="system", role=SYSTEM_ROLE)
