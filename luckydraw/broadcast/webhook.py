import os
import logging
from typing import Any, Mapping, Optional

import requests
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class WebhookSubscriber:
    """Broadcast subscriber that POSTs each event to an HTTP endpoint.

    Configuration falls back to ``LUCKYDRAW_WEBHOOK_URL``,
    ``LUCKYDRAW_WEBHOOK_TOKEN`` and ``LUCKYDRAW_WEBHOOK_TIMEOUT``.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        load_dotenv()
        target = url or os.getenv("LUCKYDRAW_WEBHOOK_URL")
        if not target:
            raise ValueError("Environment variable 'LUCKYDRAW_WEBHOOK_URL' is not set")

        self.url = target
        self.token = token or os.getenv("LUCKYDRAW_WEBHOOK_TOKEN")
        self.timeout = (
            timeout
            if timeout is not None
            else float(os.getenv("LUCKYDRAW_WEBHOOK_TIMEOUT", "10"))
        )
        self.session = session or requests.Session()

    @property
    def headers(self) -> Mapping[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def __call__(self, event: str, payload: Mapping[str, Any]) -> None:
        r = self.session.post(
            self.url,
            json={"event": event, "data": dict(payload)},
            headers=self.headers,
            timeout=self.timeout,
        )
        r.raise_for_status()
        # Payload carries participant names; only log the event name.
        logger.debug(f"Delivered {event} to webhook (status {r.status_code})")

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<WebhookSubscriber(url={self.url})>"


__all__ = ["WebhookSubscriber"]
