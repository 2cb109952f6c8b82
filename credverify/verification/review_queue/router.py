"""
FastAPI router for the manual review queue (admin).

All endpoints require the X-Admin-Token header.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from credverify.core.database import get_db
from credverify.models import ReviewPriority
from credverify.verification.notifier import BaseNotifier, get_notifier
from credverify.verification.review_queue.schemas import (
    ApproveReviewRequest,
    AssignReviewRequest,
    EscalateReviewRequest,
    ManualReviewItemResponse,
    ManualReviewListResponse,
    RejectReviewRequest,
    ReviewResolutionResponse,
)
from credverify.verification.review_queue.service import (
    ManualReviewQueue,
    to_response,
    verify_admin_token,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/reviews",
    tags=["manual-review"],
    dependencies=[Depends(verify_admin_token)],
)


def _parse_priority(priority: Optional[str]) -> Optional[ReviewPriority]:
    if priority is None:
        return None
    try:
        return ReviewPriority(priority.lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown priority '{priority}'",
        )


@router.get("", response_model=ManualReviewListResponse)
async def list_pending_reviews(
    priority: Optional[str] = Query(None, description="urgent, high, normal or low"),
    limit: Optional[int] = Query(None, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    """
    List open review items, nearest SLA deadline first.
    """
    queue = ManualReviewQueue(db)
    items = await queue.list_pending(priority=_parse_priority(priority), limit=limit)
    return ManualReviewListResponse(
        items=[to_response(item) for item in items], total=len(items)
    )


@router.get("/{review_id}", response_model=ManualReviewItemResponse)
async def get_review(review_id: str, db: AsyncSession = Depends(get_db)):
    queue = ManualReviewQueue(db)
    return to_response(await queue.get(review_id))


@router.post("/{review_id}/assign", response_model=ManualReviewItemResponse)
async def assign_review(
    review_id: str,
    request: AssignReviewRequest,
    db: AsyncSession = Depends(get_db),
):
    queue = ManualReviewQueue(db)
    item = await queue.assign(review_id, request.reviewer_id)
    return to_response(item)


@router.post("/{review_id}/escalate", response_model=ManualReviewItemResponse)
async def escalate_review(
    review_id: str,
    request: EscalateReviewRequest,
    db: AsyncSession = Depends(get_db),
):
    queue = ManualReviewQueue(db)
    item = await queue.escalate(review_id, request.reviewer_id, request.notes)
    return to_response(item)


@router.post("/{review_id}/approve", response_model=ReviewResolutionResponse)
async def approve_review(
    review_id: str,
    request: ApproveReviewRequest,
    db: AsyncSession = Depends(get_db),
    notifier: BaseNotifier = Depends(get_notifier),
):
    """
    Approve a review item.

    Marks the linked verification result verified (verified_by=manual:<reviewer>)
    and recomputes the submission's overall status.
    """
    queue = ManualReviewQueue(db, notifier=notifier)
    item, overall = await queue.approve(review_id, request.reviewer_id, request.notes)
    return ReviewResolutionResponse(review=to_response(item), overall_status=overall)


@router.post("/{review_id}/reject", response_model=ReviewResolutionResponse)
async def reject_review(
    review_id: str,
    request: RejectReviewRequest,
    db: AsyncSession = Depends(get_db),
    notifier: BaseNotifier = Depends(get_notifier),
):
    """
    Reject a review item. A non-empty reason is required.
    """
    queue = ManualReviewQueue(db, notifier=notifier)
    item, overall = await queue.reject(review_id, request.reviewer_id, request.reason)
    return ReviewResolutionResponse(review=to_response(item), overall_status=overall)
