# app/core/security.py
# JWT access token creation/decoding
# Used by: dependencies.py (actor identity), tests and local tooling

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from jose import JWTError, jwt

from app.core.config import settings


# ── JWT Tokens ────────────────────────────────────────────────────────────────

def create_access_token(user_id: Optional[UUID], role: str) -> str:
    """
    Create a short-lived JWT access token.
    Tokens are normally minted by the identity service; this exists for
    local development, jobs and tests.

    Payload:
        sub  -- user UUID as string (absent for the system actor)
        role -- parent | tutor | admin | system
        type -- "access"
        exp  -- expiry timestamp
    """
    now = datetime.now(timezone.utc)
    payload = {
        "role": role,
        "type": "access",
        "exp": now + timedelta(minutes=settings.access_token_expire_minutes),
        "iat": now,
    }
    if user_id is not None:
        payload["sub"] = str(user_id)
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """
    Decode and validate a JWT token.
    Returns the payload dict if valid, None if expired or invalid.
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None
