"""Identity and service dependencies for the HTTP layer.

Authentication happens upstream: the gateway verifies the caller and
forwards ``X-User-Id`` and ``X-User-Role``.  These dependencies only
read those headers, turn them into an Actor and apply role gates.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from learnstats.models.actor import Actor
from learnstats.models.user import ROLES
from learnstats.services.dashboards import StatsServices

logger = logging.getLogger(__name__)

STAFF_ROLES = {"staff", "admin"}


def get_services(request: Request) -> StatsServices:
    return request.app.state.services


def require_actor(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> Actor:
    """Build the Actor from gateway headers; 401 when either is missing."""
    if not x_user_id or not x_user_role:
        logger.warning("Request without gateway identity headers rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing identity",
        )

    role = x_user_role.strip().lower()
    if role not in ROLES:
        logger.warning("Unknown role rejected: user=%s role=%s", x_user_id, role)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )
    return Actor(user_id=x_user_id.strip(), role=role)


def require_any_role(roles: set[str]):
    """Dependency factory: demand at least one of the given roles.

    Usage: Depends(require_any_role({"staff", "admin"}))
    """

    def _guard(actor: Annotated[Actor, Depends(require_actor)]) -> Actor:
        if not actor.has_any_role(roles):
            logger.warning(
                "Access denied: user=%s role=%s allowed=%s",
                actor.user_id,
                actor.role,
                sorted(roles),
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return actor

    return _guard


def ensure_any_role(actor: Actor, roles: set[str], target: str | None = None) -> None:
    """403 unless ``actor`` holds one of ``roles``."""
    if actor.has_any_role(roles):
        return
    logger.warning(
        "Access denied: user=%s role=%s target=%s", actor.user_id, actor.role, target
    )
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Insufficient permissions",
    )


def ensure_self_or_role(actor: Actor, user_id: str, roles: set[str]) -> None:
    """403 unless ``actor`` is ``user_id`` or holds one of ``roles``."""
    if not actor.is_self(user_id):
        ensure_any_role(actor, roles, target=user_id)


ActorDep = Annotated[Actor, Depends(require_actor)]
ServicesDep = Annotated[StatsServices, Depends(get_services)]
