"""
Manual review queue (Tier 3).

Items are created by the orchestrator for results that could not be settled
automatically. A reviewer resolution updates the linked verification result,
then the item, then recomputes the overall status, all in one commit; the
status-change notification is sent only after that commit.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fastapi import Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from credverify.core.config import settings
from credverify.models import (
    OPEN_REVIEW_STATUSES,
    ManualReviewItem,
    ManualReviewType,
    ReviewPriority,
    ReviewStatus,
    VerificationResult,
    VerificationStatus,
    VerificationTier,
    utcnow,
)
from credverify.verification.notifier import (
    BaseNotifier,
    VerificationEvent,
    dispatch_event,
    should_notify,
)
from credverify.verification.review_queue.schemas import ManualReviewItemResponse
from credverify.verification.schemas import OverallVerificationStatus
from credverify.verification.status import VerificationStatusService

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 200

_ESCALATION_ORDER = [
    ReviewPriority.LOW,
    ReviewPriority.NORMAL,
    ReviewPriority.HIGH,
    ReviewPriority.URGENT,
]


def verify_admin_token(x_admin_token: str = Header(...)):
    """
    Verify the admin token from request header.

    Args:
        x_admin_token: Token from X-Admin-Token header

    Raises:
        HTTPException: If token is invalid or missing

    Returns:
        bool: True if token is valid
    """
    if not settings.ADMIN_API_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Admin token not configured on server",
        )

    if x_admin_token != settings.ADMIN_API_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token",
        )

    return True


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def describe_sla(deadline: datetime, now: Optional[datetime] = None) -> str:
    """
    Human-readable time left before an SLA deadline.

    "Overdue" once the deadline has passed, "{d}d {h}h remaining" when a day
    or more is left, "{h}h {m}m remaining" otherwise.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    remaining = _as_utc(deadline) - now
    if remaining.total_seconds() <= 0:
        return "Overdue"

    total_minutes = int(remaining.total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours >= 24:
        return f"{hours // 24}d {hours % 24}h remaining"
    return f"{hours}h {minutes}m remaining"


def parse_review_id(review_id: str) -> str:
    """Review ids are UUIDs; anything else is rejected before storage access."""
    try:
        return str(uuid.UUID(str(review_id)))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Malformed review id",
        )


def sla_deadline_from(created_at: datetime, window_hours: Optional[int] = None) -> datetime:
    return created_at + timedelta(hours=window_hours or settings.REVIEW_SLA_HOURS)


def to_response(
    item: ManualReviewItem, now: Optional[datetime] = None
) -> ManualReviewItemResponse:
    response = ManualReviewItemResponse.model_validate(item)
    if item.status in OPEN_REVIEW_STATUSES:
        response.sla_remaining = describe_sla(item.sla_deadline, now)
    return response


class ManualReviewQueue:
    """Service layer for review queue operations."""

    def __init__(self, db: AsyncSession, notifier: Optional[BaseNotifier] = None):
        self.db = db
        self.notifier = notifier
        self.status_service = VerificationStatusService(db)

    def enqueue(
        self,
        *,
        submission_id: str,
        verification_result_id: str,
        credential_key: str,
        review_type: ManualReviewType,
        priority: ReviewPriority,
        reason: str,
        review_data: Dict[str, Any],
        created_at: Optional[datetime] = None,
    ) -> ManualReviewItem:
        """Add a pending item to the session; the caller owns the commit."""
        created_at = created_at or utcnow()
        item = ManualReviewItem(
            id=str(uuid.uuid4()),
            submission_id=submission_id,
            verification_result_id=verification_result_id,
            credential_key=credential_key,
            review_type=review_type,
            priority=priority,
            reason=reason,
            review_data=review_data,
            sla_deadline=sla_deadline_from(created_at),
            status=ReviewStatus.PENDING,
            created_at=created_at,
            updated_at=created_at,
        )
        self.db.add(item)
        logger.info(
            f"Queued manual review: submission_id={submission_id}, "
            f"credential_key={credential_key}, type={review_type.value}, "
            f"priority={priority.value}"
        )
        return item

    async def list_pending(
        self, priority: Optional[ReviewPriority] = None, limit: Optional[int] = None
    ) -> List[ManualReviewItem]:
        """Open items (pending, in progress, escalated), nearest deadline first."""
        limit = min(limit or DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT)
        query = select(ManualReviewItem).where(
            ManualReviewItem.status.in_(OPEN_REVIEW_STATUSES)
        )
        if priority is not None:
            query = query.where(ManualReviewItem.priority == priority)
        query = query.order_by(
            ManualReviewItem.sla_deadline.asc(), ManualReviewItem.created_at.asc()
        ).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get(self, review_id: str) -> ManualReviewItem:
        item = await self.db.get(ManualReviewItem, parse_review_id(review_id))
        if item is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Review item not found",
            )
        return item

    async def _get_open(self, review_id: str) -> ManualReviewItem:
        item = await self.get(review_id)
        if item.status not in OPEN_REVIEW_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Review item already resolved ({item.status.value})",
            )
        return item

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def assign(self, review_id: str, reviewer_id: str) -> ManualReviewItem:
        item = await self._get_open(review_id)
        now = utcnow()
        item.status = ReviewStatus.IN_PROGRESS
        item.assigned_to = reviewer_id
        item.assigned_at = now
        item.updated_at = now
        await self._commit()
        logger.info(f"Review {review_id} assigned to {reviewer_id}")
        return item

    async def escalate(
        self, review_id: str, reviewer_id: str, notes: Optional[str] = None
    ) -> ManualReviewItem:
        """Hand the item off: raises priority one level and marks it escalated."""
        item = await self._get_open(review_id)
        position = _ESCALATION_ORDER.index(item.priority)
        item.priority = _ESCALATION_ORDER[min(position + 1, len(_ESCALATION_ORDER) - 1)]
        item.status = ReviewStatus.ESCALATED
        item.resolution_notes = notes
        item.assigned_to = None
        item.assigned_at = None
        item.updated_at = utcnow()
        await self._commit()
        logger.info(
            f"Review {review_id} escalated by {reviewer_id} "
            f"(priority={item.priority.value})"
        )
        return item

    async def approve(
        self, review_id: str, reviewer_id: str, notes: Optional[str] = None
    ) -> tuple[ManualReviewItem, OverallVerificationStatus]:
        return await self._resolve(
            review_id,
            reviewer_id,
            approved=True,
            notes=notes or "Approved by reviewer",
        )

    async def reject(
        self, review_id: str, reviewer_id: str, reason: Optional[str]
    ) -> tuple[ManualReviewItem, OverallVerificationStatus]:
        if not reason or not reason.strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="A rejection reason is required",
            )
        return await self._resolve(
            review_id, reviewer_id, approved=False, notes=reason.strip()
        )

    async def _resolve(
        self, review_id: str, reviewer_id: str, *, approved: bool, notes: str
    ) -> tuple[ManualReviewItem, OverallVerificationStatus]:
        item = await self._get_open(review_id)
        result = await self.db.get(VerificationResult, item.verification_result_id)
        if result is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Linked verification result no longer exists",
            )

        now = utcnow()
        try:
            # Result first: a failure before the item update leaves the item open
            result.status = (
                VerificationStatus.VERIFIED if approved else VerificationStatus.REJECTED
            )
            result.tier = VerificationTier.TIER3
            result.verified_by = f"manual:{reviewer_id}"
            result.verified_at = now if approved else None
            result.notes = notes
            result.updated_at = now

            item.status = ReviewStatus.APPROVED if approved else ReviewStatus.REJECTED
            item.resolved_by = reviewer_id
            item.resolved_at = now
            item.resolution_notes = notes
            item.updated_at = now

            await self.db.flush()
            previous, overall = await self.status_service.recompute(item.submission_id)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.error(f"Failed to resolve review {review_id}", exc_info=True)
            raise

        logger.info(
            f"Review {review_id} {'approved' if approved else 'rejected'} by "
            f"{reviewer_id}: submission {item.submission_id} is now {overall.status.value}"
        )

        if self.notifier is not None and should_notify(previous, overall.status.value):
            dispatch_event(
                self.notifier,
                VerificationEvent(
                    submission_id=item.submission_id,
                    status=overall.status.value,
                    previous_status=previous,
                    tier=overall.tier,
                    trigger="review_approved" if approved else "review_rejected",
                ),
            )
        return item, overall
