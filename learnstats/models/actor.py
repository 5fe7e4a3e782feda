from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Actor:
    """Verified identity attached to a request by the upstream gateway.

    The gateway has already authenticated the caller; learnstats only
    reads the identity and its platform role.
    """

    user_id: str
    role: str  # student|teacher|staff|admin

    def has_any_role(self, roles: set[str]) -> bool:
        return self.role in roles

    def is_self(self, user_id: str) -> bool:
        return self.user_id == user_id

    def is_platform_admin(self) -> bool:
        return self.role == "admin"
