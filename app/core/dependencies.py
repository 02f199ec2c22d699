# app/core/dependencies.py
# FastAPI dependency functions for actor identity and the workflow service
#
# Identity is owned by an external service. The bearer JWT it issues carries
# `sub` (user id) and `role`; we trust both and never look users up.
#   get_actor()       -- 401 without a valid token
#   require_admin()   -- 403 for every role except admin
#   get_workflow()    -- process-wide WorkflowService

from functools import lru_cache
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.security import decode_token
from app.db.session import SessionLocal
from app.services.concurrency import Actor
from app.services.transitions import ROLES
from app.services.workflow_service import WorkflowService

# Bearer token extractor -- auto_error=False so we can handle 401 ourselves
bearer_scheme = HTTPBearer(auto_error=False)


# ── Token Extraction ──────────────────────────────────────────────────────────

def _extract_actor(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[Actor]:
    """
    Decode the Bearer token into an Actor.
    Returns None if no token, invalid token, or unknown role.
    """
    if not credentials:
        return None

    payload = decode_token(credentials.credentials)
    if not payload or payload.get("type") != "access":
        return None

    role = payload.get("role")
    if role not in ROLES:
        return None

    user_id = payload.get("sub")
    if user_id is None:
        # Only the system actor may act without an id
        return Actor(role=role) if role == "system" else None
    try:
        return Actor(role=role, id=UUID(user_id))
    except ValueError:
        return None


# ── Auth Dependencies ─────────────────────────────────────────────────────────

def get_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Actor:
    """Requires a valid JWT token. Raises 401 if not authenticated."""
    actor = _extract_actor(credentials)
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required. Please log in.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor


def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    """
    Requires role='admin'. Raises 403 for all other roles.
    Use for: admin-only listings and maintenance endpoints.
    """
    if actor.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required.",
        )
    return actor


# ── Workflow ──────────────────────────────────────────────────────────────────

@lru_cache()
def get_workflow() -> WorkflowService:
    """One service per process; it opens its own sessions per attempt."""
    return WorkflowService(SessionLocal)
