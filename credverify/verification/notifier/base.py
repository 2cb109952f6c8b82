"""
Base notifier interface for verification status changes.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Optional


@dataclass(frozen=True)
class VerificationEvent:
    """An overall-status transition that was committed."""

    submission_id: str
    status: str
    previous_status: Optional[str]
    tier: Optional[str]
    trigger: str  # "verification_run", "review_approved", "review_rejected"
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_payload(self) -> dict:
        payload = asdict(self)
        payload["occurred_at"] = self.occurred_at.isoformat()
        return payload


class BaseNotifier(ABC):
    """
    Abstract base class for delivering verification events.

    Implementations handle channel-specific delivery (log line, webhook, ...).
    Delivery happens after the state change is committed and its outcome never
    affects the verification itself.
    """

    @abstractmethod
    async def notify(self, event: VerificationEvent) -> None:
        """
        Deliver one event.

        Args:
            event: The committed status transition
        """
        pass
