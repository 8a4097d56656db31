"""
Pydantic schemas for referral attribution and share links.
"""

from pydantic import BaseModel, ConfigDict


class ReferralState(BaseModel):
    """Referrer captured once per browsing session."""
    model_config = ConfigDict(frozen=True)

    referrer_id: str | None = None


class ReferralInitRequest(BaseModel):
    """Key-value view of how the application was entered (e.g. URL query)."""
    entry_context: dict[str, str] = {}


class ShareLinksResponse(BaseModel):
    share_link: str
    targets: dict[str, str]
