"""
Overall verification status.

The overall status is always derived from the current result of each
credential reference; superseded rows are audit history and never counted.
A snapshot is written back to the submission row for the onboarding system,
but callers of this service always get a freshly computed value.
"""

import logging
from typing import List, Optional, Sequence

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from credverify.models import (
    OPEN_REVIEW_STATUSES,
    CredentialSubmission,
    ManualReviewItem,
    VerificationResult,
    VerificationStatus,
)
from credverify.verification.schemas import (
    TERMINAL_OVERALL_STATUSES,
    OverallStatus,
    OverallVerificationStatus,
    VerificationResultResponse,
    VerificationSummary,
)

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    OverallStatus.VERIFIED: "All credentials verified successfully",
    OverallStatus.PARTIALLY_VERIFIED: "Some credentials verified, others pending review",
    OverallStatus.IN_PROGRESS: "Verification in progress, some items queued for manual review",
    OverallStatus.REJECTED: "One or more credentials could not be verified",
}
DEFAULT_STATUS_MESSAGE = "Verification initiated"

CACHE_CONTROL_IN_PROGRESS = "private, max-age=30"
CACHE_CONTROL_TERMINAL = "private, max-age=300"


def status_message(overall: OverallStatus) -> str:
    return STATUS_MESSAGES.get(overall, DEFAULT_STATUS_MESSAGE)


def cache_control_for(overall: OverallStatus) -> str:
    if overall in TERMINAL_OVERALL_STATUSES:
        return CACHE_CONTROL_TERMINAL
    return CACHE_CONTROL_IN_PROGRESS


def aggregate_status(
    submission_id: str,
    results: Sequence[VerificationResult],
    pending_manual_reviews: int = 0,
) -> OverallVerificationStatus:
    """
    Fold current results into one verdict.

    - no results: pending
    - any failed or rejected: rejected (wins over partial success)
    - all verified: verified, tier1 unless a reviewer confirmed one (tier2)
    - some verified: partially_verified, tier2
    - any awaiting review: in_progress, tier3
    """
    statuses = [r.status for r in results]
    summary = VerificationSummary(
        total=len(statuses),
        verified=statuses.count(VerificationStatus.VERIFIED),
        failed=statuses.count(VerificationStatus.FAILED)
        + statuses.count(VerificationStatus.REJECTED),
        pending=statuses.count(VerificationStatus.PENDING),
        manual_review=statuses.count(VerificationStatus.MANUAL_REVIEW),
    )

    tier: Optional[str] = None
    if summary.total == 0:
        overall = OverallStatus.PENDING
    elif summary.failed > 0:
        overall = OverallStatus.REJECTED
    elif summary.verified == summary.total:
        overall = OverallStatus.VERIFIED
        manually_confirmed = any(
            (r.verified_by or "").startswith("manual:") for r in results
        )
        tier = "tier2" if manually_confirmed else "tier1"
    elif summary.verified > 0:
        overall = OverallStatus.PARTIALLY_VERIFIED
        tier = "tier2"
    elif summary.manual_review > 0:
        overall = OverallStatus.IN_PROGRESS
        tier = "tier3"
    else:
        overall = OverallStatus.PENDING

    verified_at = None
    if overall == OverallStatus.VERIFIED:
        verified_at = max((r.verified_at for r in results if r.verified_at), default=None)

    return OverallVerificationStatus(
        submission_id=submission_id,
        status=overall,
        tier=tier,
        summary=summary,
        pending_manual_reviews=pending_manual_reviews,
        verified_at=verified_at,
        message=status_message(overall),
        results=[VerificationResultResponse.model_validate(r) for r in results],
    )


class VerificationStatusService:
    """Reads current results and keeps the submission snapshot in sync."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def current_results(self, submission_id: str) -> List[VerificationResult]:
        result = await self.db.execute(
            select(VerificationResult)
            .where(
                VerificationResult.submission_id == submission_id,
                VerificationResult.is_current.is_(True),
            )
            .order_by(VerificationResult.credential_key)
        )
        return list(result.scalars().all())

    async def count_open_reviews(self, submission_id: str) -> int:
        result = await self.db.execute(
            select(func.count(ManualReviewItem.id)).where(
                ManualReviewItem.submission_id == submission_id,
                ManualReviewItem.status.in_(OPEN_REVIEW_STATUSES),
            )
        )
        return result.scalar_one()

    async def compute(self, submission_id: str) -> OverallVerificationStatus:
        results = await self.current_results(submission_id)
        open_reviews = await self.count_open_reviews(submission_id)
        return aggregate_status(submission_id, results, open_reviews)

    def write_snapshot(
        self, submission: CredentialSubmission, overall: OverallVerificationStatus
    ) -> None:
        """Copy the overall status onto the submission row (caller commits)."""
        submission.verification_status = overall.status.value
        submission.verification_tier = overall.tier
        submission.verified_at = overall.verified_at
        submission.verification_notes = (
            f"{overall.summary.verified}/{overall.summary.total} credentials verified"
        )

    async def recompute(
        self, submission_id: str
    ) -> tuple[Optional[str], OverallVerificationStatus]:
        """
        Recompute and snapshot the overall status.

        Returns the snapshot status from before the recompute alongside the new
        value so callers can detect transitions.
        """
        submission = await self.db.get(CredentialSubmission, submission_id)
        overall = await self.compute(submission_id)
        previous = submission.verification_status if submission else None
        if submission is not None:
            self.write_snapshot(submission, overall)
        return previous, overall

    async def get_status(self, submission_id: str) -> OverallVerificationStatus:
        """Current status without any external calls; 404 before the first run."""
        overall = await self.compute(submission_id)
        if overall.summary.total == 0:
            submission = await self.db.get(CredentialSubmission, submission_id)
            detail = (
                "Submission not found"
                if submission is None
                else "No verification activity for this submission"
            )
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
        return overall
