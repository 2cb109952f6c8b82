from credverify.verification.status.service import (
    VerificationStatusService,
    aggregate_status,
    cache_control_for,
    status_message,
)

__all__ = [
    "VerificationStatusService",
    "aggregate_status",
    "cache_control_for",
    "status_message",
]
