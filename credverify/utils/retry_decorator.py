"""
Retry helper for external API calls using tenacity library.

Provides automatic retry logic with exponential backoff for HTTP requests
to credential registries, profile data providers and the notification webhook.

Features:
- Exponential backoff between attempts
- Smart error detection (retry transient errors, fail fast on permanent errors)
- Structured logging with service name and attempt numbers
- Configuration driven by settings (EXTERNAL_API_RETRY_*)
"""

import logging
from typing import Optional

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception as tenacity_retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..core.config import settings

logger = logging.getLogger(__name__)

TRANSIENT_HTTP_ERRORS = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


def is_retryable_http_error(exception: BaseException) -> bool:
    """
    Determine if an HTTP error should be retried.

    Retryable errors (transient failures):
    - Network errors (timeouts, connection errors)
    - 5xx server errors
    - 429 Too Many Requests
    - 408 Request Timeout

    Everything else (4xx, parsing errors) fails fast. A registry answering
    404 for an unknown license is an answer, not an outage.
    """
    if isinstance(exception, TRANSIENT_HTTP_ERRORS):
        return True

    if isinstance(exception, httpx.HTTPStatusError):
        status_code = exception.response.status_code
        if 500 <= status_code < 600:
            return True
        return status_code in (408, 429)

    return False


def retry_external_api(
    service_name: str = "external_api", attempts: Optional[int] = None
):
    """
    Create a tenacity AsyncRetrying instance for external API calls.

    Usage:
        async for attempt in retry_external_api("sep_registry"):
            with attempt:
                response = await client.get(url)
                response.raise_for_status()

    Args:
        service_name: Name of the external service (for logging)
        attempts: Override for EXTERNAL_API_RETRY_ATTEMPTS

    Returns:
        AsyncRetrying instance configured with retry logic
    """
    logger.debug(f"[{service_name}] Building retry policy")
    return AsyncRetrying(
        stop=stop_after_attempt(attempts or settings.EXTERNAL_API_RETRY_ATTEMPTS),
        wait=wait_exponential(
            multiplier=settings.EXTERNAL_API_RETRY_MULTIPLIER,
            min=settings.EXTERNAL_API_RETRY_MIN_WAIT,
            max=settings.EXTERNAL_API_RETRY_MAX_WAIT,
        ),
        retry=retry_if_exception_type(TRANSIENT_HTTP_ERRORS + (httpx.HTTPStatusError,))
        & tenacity_retry_if_exception(is_retryable_http_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        # Re-raise the last error so the caller can record it
        reraise=True,
    )
