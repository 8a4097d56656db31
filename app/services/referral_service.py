"""
Referral tracker — session-scoped referral attribution and share links.

The referrer is read once from the entry context (``?ref=<handle>``) and
written to Redis with ``SET NX``, so the first value adopted in a
browsing session is never overwritten. Share links are a separate,
one-way helper: they carry the current user's own handle outwards and
never touch the session's referral state.
"""

import logging
from collections.abc import Mapping
from urllib.parse import quote, urlencode

from app.config import settings
from app.schemas.referral import ReferralState

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "session:"
REFERRER_KEY_SUFFIX = ":referrer"

MAX_REFERRER_LENGTH = 64

# Outbound share targets. {url} is the URL-encoded share link,
# {text} the URL-encoded message (intro + hashtags + link).
SHARE_TARGETS = {
    "whatsapp": "https://wa.me/?text={text}",
    "telegram": "https://t.me/share/url?url={url}&text={intro}",
    "twitter": "https://twitter.com/intent/tweet?text={intro}&url={url}",
    "facebook": "https://www.facebook.com/sharer/sharer.php?u={url}",
    "linkedin": "https://www.linkedin.com/sharing/share-offsite/?url={url}",
    "reddit": "https://www.reddit.com/submit?url={url}&title={intro}",
    "email": "mailto:?subject={subject}&body={text}",
    "sms": "sms:?body={text}",
    "copy": "{raw}",
}

SHARE_INTRO = "Sell your Worldcoin instantly on Wekewa"
SHARE_SUBJECT = "Trade WLD on Wekewa"


def _referrer_key(session_id: str) -> str:
    return f"{SESSION_KEY_PREFIX}{session_id}{REFERRER_KEY_SUFFIX}"


def _clean_referrer(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip().lstrip("@")
    if not value:
        return None
    return value[:MAX_REFERRER_LENGTH]


class ReferralTracker:
    """Write-once referral attribution backed by a Redis session key."""

    def __init__(self, redis):
        self.redis = redis

    async def init(self, session_id: str, entry_context: Mapping[str, str]) -> ReferralState:
        """
        Capture the referrer for *session_id*.

        Adopts the entry context's referrer if the session has none yet,
        otherwise restores the stored one. The stored value always wins.
        """
        key = _referrer_key(session_id)
        candidate = _clean_referrer(entry_context.get(settings.REFERRAL_QUERY_PARAM))

        if candidate is not None:
            created = await self.redis.set(
                key, candidate, ex=settings.SESSION_TTL_SECONDS, nx=True,
            )
            if created:
                logger.info("Session %s attributed to referrer %s", session_id, candidate)
                return ReferralState(referrer_id=candidate)

        return await self.get(session_id)

    async def get(self, session_id: str) -> ReferralState:
        """Restore the session's referral state (empty if none captured)."""
        stored = await self.redis.get(_referrer_key(session_id))
        return ReferralState(referrer_id=stored or None)


# ---------------------------------------------------------------------------
# Share links
# ---------------------------------------------------------------------------


def build_share_link(handle: str) -> str:
    """Shareable storefront link tagged with the sharer's own handle."""
    base = settings.SHARE_BASE_URL.rstrip("/")
    return f"{base}/?{urlencode({settings.REFERRAL_QUERY_PARAM: handle.strip().lstrip('@')})}"


def build_share_targets(handle: str) -> dict[str, str]:
    """Pre-filled share URLs for every supported target."""
    link = build_share_link(handle)
    message = f"{SHARE_INTRO} {settings.SHARE_HASHTAGS} {link}"
    values = {
        "url": quote(link, safe=""),
        "intro": quote(f"{SHARE_INTRO} {settings.SHARE_HASHTAGS}", safe=""),
        "text": quote(message, safe=""),
        "subject": quote(SHARE_SUBJECT, safe=""),
        "raw": link,
    }
    return {name: template.format(**values) for name, template in SHARE_TARGETS.items()}
