"""
Notifier implementations and fire-and-forget dispatch.
"""

import asyncio
import logging
from typing import Optional, Set

import httpx

from credverify.core.config import settings
from credverify.utils.retry_decorator import retry_external_api
from credverify.verification.notifier.base import BaseNotifier, VerificationEvent

logger = logging.getLogger(__name__)

NOTIFY_STATUSES = ("verified", "rejected")

# Strong references so pending deliveries are not garbage collected
_background_tasks: Set[asyncio.Task] = set()


class LoggingNotifier(BaseNotifier):
    async def notify(self, event: VerificationEvent) -> None:
        logger.info(
            f"Verification status changed: submission_id={event.submission_id}, "
            f"{event.previous_status} -> {event.status}, tier={event.tier}, "
            f"trigger={event.trigger}"
        )


class WebhookNotifier(BaseNotifier):
    """POSTs the event as JSON to VERIFICATION_WEBHOOK_URL."""

    def __init__(
        self,
        url: str,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.timeout = timeout or settings.VERIFICATION_WEBHOOK_TIMEOUT
        self._http_client = http_client

    async def _post(self, client: httpx.AsyncClient, event: VerificationEvent) -> None:
        async for attempt in retry_external_api("verification_webhook"):
            with attempt:
                response = await client.post(
                    self.url, json=event.to_payload(), timeout=self.timeout
                )
                response.raise_for_status()

    async def notify(self, event: VerificationEvent) -> None:
        if self._http_client is not None:
            await self._post(self._http_client, event)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                await self._post(client, event)
        logger.info(
            f"Verification webhook delivered: submission_id={event.submission_id}, "
            f"status={event.status}"
        )


def get_notifier() -> BaseNotifier:
    """FastAPI dependency: webhook delivery when configured, logging otherwise."""
    if settings.VERIFICATION_WEBHOOK_URL:
        return WebhookNotifier(settings.VERIFICATION_WEBHOOK_URL)
    return LoggingNotifier()


def should_notify(previous_status: Optional[str], new_status: str) -> bool:
    return new_status in NOTIFY_STATUSES and previous_status != new_status


async def _deliver(notifier: BaseNotifier, event: VerificationEvent) -> None:
    try:
        await notifier.notify(event)
    except Exception as e:
        logger.error(
            f"Failed to deliver verification event for submission "
            f"{event.submission_id}: {type(e).__name__}: {e}",
            exc_info=True,
        )


def dispatch_event(notifier: BaseNotifier, event: VerificationEvent) -> asyncio.Task:
    """Schedule delivery without waiting for it."""
    task = asyncio.create_task(_deliver(notifier, event))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task
