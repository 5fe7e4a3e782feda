from __future__ import annotations

import datetime
from dataclasses import dataclass
from uuid import uuid4

ROLES = ("student", "teacher", "staff", "admin")


@dataclass(frozen=True, slots=True)
class User:
    """Identity record owned by the identity system; read-only here."""

    id: str
    name: str
    role: str = "student"  # student|teacher|staff|admin
    current_promotion_id: str | None = None
    last_login_at: datetime.datetime | None = None

    @staticmethod
    def new(
        *,
        name: str,
        role: str = "student",
        current_promotion_id: str | None = None,
        last_login_at: datetime.datetime | None = None,
    ) -> User:
        if role not in ROLES:
            raise ValueError(f"unknown role {role!r}")
        return User(
            id=uuid4().hex,
            name=name,
            role=role,
            current_promotion_id=current_promotion_id,
            last_login_at=last_login_at,
        )
