"""Notification side channel for lucky draw outcomes."""

import os
from typing import Optional

from dotenv import load_dotenv

from .hub import WINNER_EVENT, Broadcaster, Subscriber
from .webhook import WebhookSubscriber


def broadcaster_from_env(broadcaster: Optional[Broadcaster] = None) -> Broadcaster:
    """Return a broadcaster with a webhook subscriber attached when configured."""

    load_dotenv()
    hub = broadcaster or Broadcaster()
    if os.getenv("LUCKYDRAW_WEBHOOK_URL"):
        hub.subscribe(WebhookSubscriber())
    return hub


__all__ = [
    "Broadcaster",
    "Subscriber",
    "WINNER_EVENT",
    "WebhookSubscriber",
    "broadcaster_from_env",
]
