"""
Reusable FastAPI dependencies.

Dependencies:
  - get_session_id  — browsing-session id from the ``X-Session-ID`` header
  - get_scheduler   — the process-wide market refresh scheduler
"""

import re

from fastapi import Header, HTTPException, status

from app.services.refresh_scheduler import RefreshScheduler, refresh_scheduler

SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{8,128}$")


async def get_session_id(
    x_session_id: str = Header(..., description="Opaque browsing-session id"),
) -> str:
    """Validate and return the caller's session id (400 if malformed)."""
    if not SESSION_ID_PATTERN.match(x_session_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid session id",
        )
    return x_session_id


async def get_scheduler() -> RefreshScheduler:
    """FastAPI dependency that provides the refresh scheduler."""
    return refresh_scheduler
