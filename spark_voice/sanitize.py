"""
GBP-only policy for system speech.

This protects what the agent says. It does not block callers from saying
"dollars": caller speech is never passed through here.
"""
from .logging_config import get_logger

logger = get_logger("sanitize")

CURRENCY_MARKERS = ("$", "usd", "dollar", "bucks")

GBP_CLARIFICATION = (
    "Sorry, I only quote in pounds. "
    "Is the cleaning for a home or for a business premises?"
)


def contains_currency_marker(text: str) -> bool:
    lowered = str(text or "").lower()
    return any(marker in lowered for marker in CURRENCY_MARKERS)


def ensure_gbp_only(text: str, call_sid: str = "") -> str:
    """Return text unchanged, or the pounds-only clarification if it mentions another currency."""
    if contains_currency_marker(text):
        logger.warning(
            f"Replaced non-GBP prompt: '{text[:60]}'",
            extra={"call_sid": call_sid},
        )
        return GBP_CLARIFICATION
    return text
