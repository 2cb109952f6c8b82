from credverify.verification.notifier.base import BaseNotifier, VerificationEvent
from credverify.verification.notifier.service import (
    LoggingNotifier,
    WebhookNotifier,
    dispatch_event,
    get_notifier,
    should_notify,
)

__all__ = [
    "BaseNotifier",
    "LoggingNotifier",
    "VerificationEvent",
    "WebhookNotifier",
    "dispatch_event",
    "get_notifier",
    "should_notify",
]
