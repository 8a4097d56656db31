"""
Referral endpoints — session attribution capture and share links.
"""

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_session_id
from app.redis_client import get_redis
from app.schemas.referral import ReferralInitRequest, ReferralState, ShareLinksResponse
from app.services.referral_service import ReferralTracker, build_share_link, build_share_targets

router = APIRouter()


@router.post("/session", response_model=ReferralState)
async def init_referral(
    payload: ReferralInitRequest,
    session_id: str = Depends(get_session_id),
    redis=Depends(get_redis),
):
    """
    Capture the referrer from the entry context.

    The first referrer seen in a session is kept; later values are ignored.
    """
    return await ReferralTracker(redis).init(session_id, payload.entry_context)


@router.get("/session", response_model=ReferralState)
async def get_referral(
    session_id: str = Depends(get_session_id),
    redis=Depends(get_redis),
):
    return await ReferralTracker(redis).get(session_id)


@router.get("/share", response_model=ShareLinksResponse)
async def get_share_links(
    handle: str = Query(..., min_length=1, max_length=64),
):
    """Share link and pre-filled targets carrying the caller's own handle."""
    return ShareLinksResponse(
        share_link=build_share_link(handle),
        targets=build_share_targets(handle),
    )
