"""
Hand-off of completed intake sessions to the Make.com quote automation.

Delivery happens after the caller has been answered, so failures here are
logged and never reach the call flow.
"""
import httpx

from .config import HANDOFF_MODE, HANDOFF_TIMEOUT_SECONDS, MAKE_GETQUOTE_WEBHOOK_URL
from .logging_config import get_logger, log_external_service
from .session_store import CallSession

logger = get_logger("handoff")


def build_quote_request(session: CallSession) -> dict:
    """Assemble the get_quote record from whatever the call collected."""
    data = session.collected_data
    category = data.get("service_category", "")

    job_type = data.get("job_type")
    if not job_type:
        # Only commercial calls are asked for a cadence
        job_type = "one_time" if category == "domestic" else ""

    return {
        "intent": "get_quote",
        "service_category": category,
        "domestic_service_type": data.get("domestic_service_type", ""),
        "commercial_service_type": data.get("commercial_service_type", ""),
        "domestic_property_type": data.get("domestic_property_type", ""),
        "commercial_property_type": data.get("commercial_property_type", ""),
        "job_type": job_type,
        "bedrooms": data.get("bedrooms", 0),
        "bathrooms": data.get("bathrooms", 0),
        "toilets": data.get("toilets", 0),
        "kitchens": data.get("kitchens", 0),
        "postcode": data.get("postcode") or data.get("property_and_postcode", ""),
        "preferred_hours": data.get("preferred_hours", 0),
        "visit_frequency_per_week": data.get("visit_frequency_per_week", 0),
        "areas_scope": data.get("areas_scope", ""),
        "extras": data.get("extras", []),
        "notes": " | ".join(session.transcript),
    }


class QuoteHandoff:
    """Delivers quote requests according to HANDOFF_MODE ("webhook", "log" or "off")."""

    def __init__(
        self,
        webhook_url: str = MAKE_GETQUOTE_WEBHOOK_URL,
        mode: str = HANDOFF_MODE,
        timeout: float = HANDOFF_TIMEOUT_SECONDS,
        client: httpx.Client | None = None,
    ):
        self.webhook_url = webhook_url
        self.mode = mode
        if self.mode == "webhook" and not self.webhook_url:
            logger.warning("HANDOFF_MODE is webhook but no URL is configured; logging quotes instead")
            self.mode = "log"
        self._client = client if client is not None else httpx.Client(timeout=timeout)

    def close(self):
        self._client.close()

    def deliver(self, session: CallSession) -> bool:
        if self.mode == "off":
            return False

        payload = build_quote_request(session)

        if self.mode == "log":
            logger.info(
                "Quote request ready (not sent)",
                extra={"call_sid": session.call_id, "extra_data": payload},
            )
            return False

        try:
            resp = self._client.post(self.webhook_url, json=payload)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            log_external_service("make", "get_quote", success=False, call_sid=session.call_id, error=str(e))
            logger.error(f"Quote hand-off failed: {e}", extra={"call_sid": session.call_id})
            return False

        log_external_service("make", "get_quote", success=True, call_sid=session.call_id, status=resp.status_code)
        return True
