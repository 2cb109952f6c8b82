"""
Tier orchestrator.

One verify() call:
1. validates the request and loads the submission (400/404 before any
   external call),
2. loads the current result of every credential reference once,
3. skips references that are already settled unless force_recheck,
4. runs the remaining checks concurrently, each under its own timeout,
5. persists new results (superseding old ones), queues review items,
   recomputes the overall status and commits,
6. emits a status-change event after the commit.

External failures only ever degrade the affected credential to manual review.
Storage errors propagate.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from credverify.core.config import settings
from credverify.core.logging_config import verification_run_context
from credverify.core.sentry import set_sentry_context
from credverify.models import (
    OPEN_REVIEW_STATUSES,
    CredentialSubmission,
    ManualReviewItem,
    ReviewStatus,
    VerificationResult,
    VerificationStatus,
    VerificationType,
    utcnow,
)
from credverify.verification.notifier import (
    BaseNotifier,
    VerificationEvent,
    dispatch_event,
    should_notify,
)
from credverify.verification.orchestrator.checks import (
    LINKEDIN_KEY,
    SCHOLAR_KEY,
    CheckOutcome,
    CredentialCheck,
    LicenseCheck,
    ProfileCheck,
    UnsupportedLicenseCheck,
    license_verification_type,
)
from credverify.verification.policy import MatchPolicy
from credverify.verification.profile_clients import (
    BaseProfileClient,
    LinkedInProfileClient,
    ScholarProfileClient,
)
from credverify.verification.registry_clients import RegistryDirectory
from credverify.verification.review_queue import ManualReviewQueue
from credverify.verification.schemas import (
    OverallVerificationStatus,
    SubmittedCredentialRecord,
    VerifyRequest,
)
from credverify.verification.status import VerificationStatusService

logger = logging.getLogger(__name__)


@dataclass
class VerificationClients:
    registries: RegistryDirectory
    linkedin: BaseProfileClient
    scholar: BaseProfileClient


def get_verification_clients() -> VerificationClients:
    """FastAPI dependency: the production lookup clients."""
    return VerificationClients(
        registries=RegistryDirectory.default(),
        linkedin=LinkedInProfileClient(),
        scholar=ScholarProfileClient(),
    )


def parse_submission_id(submission_id: str) -> str:
    """Submission ids are UUIDs; anything else is rejected before storage access."""
    try:
        return str(uuid.UUID(str(submission_id)))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Malformed submission id",
        )


def parse_specific_types(
    specific_types: Optional[Sequence[str]],
) -> Optional[set]:
    if specific_types is None:
        return None
    parsed = set()
    for value in specific_types:
        try:
            parsed.add(VerificationType(value))
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unsupported verification type '{value}'",
            )
    return parsed


class VerificationOrchestrator:
    """Service layer for verification runs."""

    def __init__(
        self,
        db: AsyncSession,
        clients: VerificationClients,
        policy: Optional[MatchPolicy] = None,
        notifier: Optional[BaseNotifier] = None,
        check_timeout: Optional[float] = None,
    ):
        self.db = db
        self.clients = clients
        self.policy = policy or MatchPolicy.from_settings()
        self.notifier = notifier
        self.check_timeout = check_timeout or settings.CHECK_TIMEOUT_SECONDS
        self.status_service = VerificationStatusService(db)
        self.queue = ManualReviewQueue(db)

    async def get_status(self, submission_id: str) -> OverallVerificationStatus:
        submission_id = parse_submission_id(submission_id)
        return await self.status_service.get_status(submission_id)

    async def verify(
        self, submission_id: str, request: Optional[VerifyRequest] = None
    ) -> OverallVerificationStatus:
        request = request or VerifyRequest()
        submission_id = parse_submission_id(submission_id)
        types = parse_specific_types(request.specific_types)

        submission = await self.db.get(CredentialSubmission, submission_id)
        if submission is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Submission not found",
            )
        record = SubmittedCredentialRecord.from_submission(submission)
        self._validate_record(record, types)

        run_id = str(uuid.uuid4())
        set_sentry_context(verification_run_id=run_id, submission_id=submission_id)
        with verification_run_context(run_id):
            logger.info(
                f"Verification run started: submission_id={submission_id}, "
                f"force_recheck={request.force_recheck}, "
                f"types={sorted(t.value for t in types) if types else 'all'}"
            )
            current = await self._load_current(submission_id)
            checks = self._plan(record, current, types, request.force_recheck)
            outcomes = await self._run_checks(record, checks, current)
            overall, previous = await self._persist(record, outcomes, current)

        logger.info(
            f"Verification run finished: submission_id={submission_id}, "
            f"checked={len(outcomes)}, status={overall.status.value}, tier={overall.tier}"
        )
        if self.notifier is not None and should_notify(previous, overall.status.value):
            dispatch_event(
                self.notifier,
                VerificationEvent(
                    submission_id=submission_id,
                    status=overall.status.value,
                    previous_status=previous,
                    tier=overall.tier,
                    trigger="verification_run",
                ),
            )
        return overall

    def _validate_record(
        self, record: SubmittedCredentialRecord, types: Optional[set]
    ) -> None:
        """Reject submissions that cannot be looked up at all (invalid input)."""
        for index, license in enumerate(record.licenses):
            if types is not None and license_verification_type(license) not in types:
                continue
            if not license.clean_number:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"License #{index + 1} has no license number",
                )
            if license.jurisdiction == "US" and not license.clean_state:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"License #{index + 1}: a US license requires a state",
                )

    async def _load_current(self, submission_id: str) -> Dict[str, VerificationResult]:
        results = await self.status_service.current_results(submission_id)
        return {r.credential_key: r for r in results}

    def _is_settled(self, existing: Optional[VerificationResult]) -> bool:
        if existing is None:
            return False
        if existing.status == VerificationStatus.VERIFIED:
            return True
        # A reviewer's rejection is not overwritten by an unforced run
        return existing.status == VerificationStatus.REJECTED and (
            existing.verified_by or ""
        ).startswith("manual:")

    def _plan(
        self,
        record: SubmittedCredentialRecord,
        current: Dict[str, VerificationResult],
        types: Optional[set],
        force_recheck: bool,
    ) -> List[CredentialCheck]:
        def wanted(verification_type: VerificationType) -> bool:
            return types is None or verification_type in types

        candidates: List[CredentialCheck] = []
        for index, license in enumerate(record.licenses):
            if not wanted(license_verification_type(license)):
                continue
            client = self.clients.registries.client_for(license)
            if client is None:
                candidates.append(UnsupportedLicenseCheck(record, license, index))
            else:
                candidates.append(
                    LicenseCheck(record, license, index, client, self.policy)
                )

        if record.linkedin_url and wanted(VerificationType.EDUCATION_LINKEDIN):
            candidates.append(
                ProfileCheck(
                    record,
                    record.linkedin_url,
                    self.clients.linkedin,
                    self.policy,
                    credential_key=LINKEDIN_KEY,
                    label="LinkedIn",
                    imported=record.linkedin_data,
                )
            )
        if record.google_scholar_url and wanted(VerificationType.PUBLICATIONS_SCHOLAR):
            candidates.append(
                ProfileCheck(
                    record,
                    record.google_scholar_url,
                    self.clients.scholar,
                    self.policy,
                    credential_key=SCHOLAR_KEY,
                    label="Google Scholar",
                )
            )

        checks: List[CredentialCheck] = []
        seen = set()
        for check in candidates:
            if check.credential_key in seen:
                continue
            seen.add(check.credential_key)
            if not force_recheck and self._is_settled(current.get(check.credential_key)):
                logger.debug(f"Skipping settled credential {check.credential_key}")
                continue
            checks.append(check)
        return checks

    async def _run_one(self, check: CredentialCheck) -> CheckOutcome:
        try:
            return await asyncio.wait_for(check.run(), timeout=self.check_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Check timed out after {self.check_timeout}s: {check.credential_key}"
            )
            return check.degraded("timeout")
        except Exception as e:
            logger.error(
                f"Check failed unexpectedly: {check.credential_key}: "
                f"{type(e).__name__}: {e}",
                exc_info=True,
            )
            return check.degraded(type(e).__name__)

    async def _run_checks(
        self,
        record: SubmittedCredentialRecord,
        checks: List[CredentialCheck],
        current: Dict[str, VerificationResult],
    ) -> List[CheckOutcome]:
        """Fan out all checks and join; on cancellation keep what already finished."""
        if not checks:
            return []

        tasks = [asyncio.ensure_future(self._run_one(check)) for check in checks]
        try:
            return list(await asyncio.gather(*tasks))
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            finished = [
                task.result()
                for task in tasks
                if task.done() and not task.cancelled() and task.exception() is None
            ]
            logger.warning(
                f"Verification run cancelled: persisting {len(finished)} of "
                f"{len(tasks)} completed checks"
            )
            if finished:
                await asyncio.shield(self._persist(record, finished, current))
            raise

    async def _open_reviews_for(
        self, result_ids: List[str]
    ) -> Dict[str, List[ManualReviewItem]]:
        if not result_ids:
            return {}
        rows = await self.db.execute(
            select(ManualReviewItem).where(
                ManualReviewItem.verification_result_id.in_(result_ids),
                ManualReviewItem.status.in_(OPEN_REVIEW_STATUSES),
            )
        )
        by_result: Dict[str, List[ManualReviewItem]] = {}
        for item in rows.scalars().all():
            by_result.setdefault(item.verification_result_id, []).append(item)
        return by_result

    async def _persist(
        self,
        record: SubmittedCredentialRecord,
        outcomes: List[CheckOutcome],
        current: Dict[str, VerificationResult],
    ) -> tuple[OverallVerificationStatus, Optional[str]]:
        """
        Write results and review items, recompute the overall status, commit.

        If an overlapping run already stored a current result for one of these
        credentials, the unique index rejects this write; the transaction is
        rolled back and the committed status is returned instead.
        """
        now = utcnow()
        try:
            superseded = [
                current[o.credential_key] for o in outcomes if o.credential_key in current
            ]
            open_reviews = await self._open_reviews_for([r.id for r in superseded])

            # Old rows stop being current before their replacements are inserted
            for previous in superseded:
                previous.is_current = False
                previous.updated_at = now
            await self.db.flush()

            new_results: Dict[str, VerificationResult] = {}
            for outcome in outcomes:
                result = VerificationResult(
                    id=str(uuid.uuid4()),
                    submission_id=record.id,
                    verification_type=outcome.verification_type,
                    credential_key=outcome.credential_key,
                    credential_reference=outcome.credential_reference,
                    status=outcome.status,
                    verification_method=outcome.method,
                    tier=outcome.tier,
                    match_confidence=outcome.match_confidence,
                    discrepancies=outcome.discrepancies,
                    external_data=outcome.external_data,
                    notes=outcome.notes,
                    is_current=True,
                    verified_at=now if outcome.status == VerificationStatus.VERIFIED else None,
                    verified_by="system" if outcome.status == VerificationStatus.VERIFIED else None,
                    created_at=now,
                    updated_at=now,
                )
                self.db.add(result)
                new_results[outcome.credential_key] = result

            await self.db.flush()

            for outcome in outcomes:
                result = new_results[outcome.credential_key]
                previous = current.get(outcome.credential_key)
                carried_over = False
                if previous is not None:
                    previous.superseded_by_id = result.id
                    for item in open_reviews.get(previous.id, []):
                        carried_over = self._carry_over_review(item, outcome, result) or carried_over

                if outcome.review is not None and not carried_over:
                    self.queue.enqueue(
                        submission_id=record.id,
                        verification_result_id=result.id,
                        credential_key=outcome.credential_key,
                        review_type=outcome.review.review_type,
                        priority=outcome.review.priority,
                        reason=outcome.review.reason,
                        review_data=outcome.review.review_data,
                        created_at=now,
                    )

            await self.db.flush()
            previous_status, overall = await self.status_service.recompute(record.id)
            await self.db.commit()
        except IntegrityError:
            # Overlapping run committed first; its results stand
            await self.db.rollback()
            logger.warning(
                f"Concurrent verification run already recorded results for "
                f"{record.id}; discarding {len(outcomes)} outcomes from this run"
            )
            overall = await self.status_service.compute(record.id)
            return overall, overall.status.value
        except SQLAlchemyError:
            await self.db.rollback()
            logger.error(
                f"Failed to persist verification results for {record.id}", exc_info=True
            )
            raise
        return overall, previous_status

    def _carry_over_review(
        self, item: ManualReviewItem, outcome: CheckOutcome, result: VerificationResult
    ) -> bool:
        """
        Point an open review item at the superseding result.

        Returns True when the item stays open for the new result. When the
        re-check settled the credential the item is closed by the system.
        """
        now = utcnow()
        item.updated_at = now
        if outcome.review is not None:
            item.verification_result_id = result.id
            item.review_type = outcome.review.review_type
            item.reason = outcome.review.reason
            item.review_data = outcome.review.review_data
            logger.info(f"Review {item.id} moved to superseding result {result.id}")
            return True

        item.status = (
            ReviewStatus.APPROVED
            if outcome.status == VerificationStatus.VERIFIED
            else ReviewStatus.REJECTED
        )
        item.resolved_by = "system"
        item.resolved_at = now
        item.resolution_notes = f"Closed by automated re-check ({outcome.status.value})"
        logger.info(f"Review {item.id} closed by re-check: {outcome.status.value}")
        return False
