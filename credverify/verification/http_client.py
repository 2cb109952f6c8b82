"""
Shared HTTP plumbing for registry and profile lookup clients.

Clients accept an injected httpx.AsyncClient (tests pass one backed by
httpx.MockTransport) and otherwise open a short-lived client per lookup.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from credverify.core.config import settings
from credverify.utils.retry_decorator import retry_external_api


class ExternalLookupClient:
    name: str = "external_lookup"
    default_timeout: float = 10.0

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        retry_attempts: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self._http_client = http_client
        self.retry_attempts = retry_attempts
        self.timeout = timeout or self.default_timeout

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers={
                "User-Agent": settings.REGISTRY_USER_AGENT,
                "Accept": "application/json",
            },
        ) as client:
            yield client

    async def _request(
        self, client: httpx.AsyncClient, method: str, url: str, **kwargs
    ) -> httpx.Response:
        """Send one request, retrying transient failures, and raise on HTTP errors."""
        async for attempt in retry_external_api(self.name, self.retry_attempts):
            with attempt:
                response = await client.request(
                    method, url, timeout=self.timeout, **kwargs
                )
                response.raise_for_status()
        return response
