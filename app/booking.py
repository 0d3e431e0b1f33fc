from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional

import httpx

from app.state import Lead

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 8.0


class BookingDispatcher:
    """Fire-and-forget POST of a confirmed slot to the booking webhook.

    ``notify`` hands the request to a worker thread and returns at once; the
    outcome is only logged. Without a webhook URL nothing is sent.
    """

    def __init__(
        self,
        url: Optional[str],
        *,
        timeout: float = DEFAULT_TIMEOUT,
        client_factory: Callable[..., httpx.Client] = httpx.Client,
        max_workers: int = 4,
    ) -> None:
        self.url = (url or "").strip() or None
        self.timeout = timeout
        self._client_factory = client_factory
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="booking")

    @staticmethod
    def build_payload(lead: Lead, slot: str, conversation_id: Optional[str]) -> Dict[str, Any]:
        return {
            "name": lead.name,
            "phone": lead.phone,
            "slot": slot,
            "conversation_id": conversation_id,
        }

    def notify(self, lead: Lead, slot: str, conversation_id: Optional[str]) -> Optional[Future]:
        if not self.url:
            logger.debug("No booking webhook configured; skipping", extra={"session": conversation_id})
            return None
        payload = self.build_payload(lead, slot, conversation_id)
        try:
            return self._executor.submit(self._post, payload)
        except RuntimeError:
            logger.warning(
                "Booking dispatcher is shut down; dropping booking",
                extra={"session": conversation_id, "slot": slot},
            )
            return None

    def _post(self, payload: Dict[str, Any]) -> bool:
        session = payload.get("conversation_id")
        try:
            with self._client_factory(timeout=self.timeout) as client:
                response = client.post(self.url, json=payload)
                response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning(
                "Booking webhook failed: %s",
                exc,
                extra={"session": session, "slot": payload.get("slot")},
            )
            return False
        logger.info("Booking webhook delivered", extra={"session": session, "slot": payload.get("slot")})
        return True

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)


__all__ = ["BookingDispatcher", "DEFAULT_TIMEOUT"]
