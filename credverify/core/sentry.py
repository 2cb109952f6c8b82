"""
Sentry initialization and scope helpers.

Every Sentry event carries the request_id / verification_run_id / submission_id
of the context it was raised in.
"""

import logging

import sentry_sdk

from credverify.core.config import settings

logger = logging.getLogger(__name__)


def init_sentry() -> None:
    """Initialize Sentry SDK.

    Called once at app startup (main.py). No-op if SENTRY_DSN is not set.
    """
    if not settings.SENTRY_DSN or not settings.SENTRY_ENABLED:
        logger.info("Sentry DSN not configured, skipping initialization")
        return

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        traces_sample_rate=(
            1.0 if settings.is_local else settings.SENTRY_TRACES_SAMPLE_RATE
        ),
        environment=settings.ENVIRONMENT,
        # Submissions carry licensing PII; never ship request bodies
        send_default_pii=False,
    )
    logger.info("Sentry initialized (environment=%s)", settings.ENVIRONMENT)


def set_sentry_context(
    *,
    request_id: str | None = None,
    verification_run_id: str | None = None,
    submission_id: str | None = None,
) -> None:
    """Set Sentry scope tags for the current execution context."""
    if not settings.SENTRY_DSN or not settings.SENTRY_ENABLED:
        return

    if request_id:
        sentry_sdk.set_tag("request_id", request_id)
    if verification_run_id:
        sentry_sdk.set_tag("verification_run_id", verification_run_id)
    if submission_id:
        sentry_sdk.set_tag("submission_id", submission_id)


def clear_sentry_context() -> None:
    """Clear Sentry scope tags after request/run completes."""
    if not settings.SENTRY_DSN or not settings.SENTRY_ENABLED:
        return

    sentry_sdk.set_tag("request_id", "")
    sentry_sdk.set_tag("verification_run_id", "")
    sentry_sdk.set_tag("submission_id", "")
