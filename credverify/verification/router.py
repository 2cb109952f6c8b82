"""
FastAPI router for submission verification endpoints
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from credverify.core.database import get_db
from credverify.verification.notifier import BaseNotifier, get_notifier
from credverify.verification.orchestrator import (
    VerificationClients,
    VerificationOrchestrator,
    get_verification_clients,
)
from credverify.verification.policy import MatchPolicy, get_match_policy
from credverify.verification.schemas import (
    TERMINAL_OVERALL_STATUSES,
    OverallVerificationStatus,
    VerifyRequest,
)
from credverify.verification.status import cache_control_for

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/submissions", tags=["verification"])


def get_orchestrator(
    db: AsyncSession = Depends(get_db),
    clients: VerificationClients = Depends(get_verification_clients),
    policy: MatchPolicy = Depends(get_match_policy),
    notifier: BaseNotifier = Depends(get_notifier),
) -> VerificationOrchestrator:
    return VerificationOrchestrator(db, clients, policy=policy, notifier=notifier)


@router.post(
    "/{submission_id}/verify",
    response_model=OverallVerificationStatus,
    responses={202: {"description": "Verification in progress or partial"}},
)
async def verify_submission(
    submission_id: str,
    response: Response,
    request: Optional[VerifyRequest] = None,
    orchestrator: VerificationOrchestrator = Depends(get_orchestrator),
):
    """
    Run verification for a submission.

    Returns 200 once the verdict is final (verified or rejected) and 202 while
    it is still in progress or partial. Already verified credentials are not
    re-checked unless force_recheck is set.
    """
    overall = await orchestrator.verify(submission_id, request)
    if overall.status not in TERMINAL_OVERALL_STATUSES:
        response.status_code = status.HTTP_202_ACCEPTED
    return overall


@router.get(
    "/{submission_id}/verification-status",
    response_model=OverallVerificationStatus,
)
async def get_verification_status(
    submission_id: str,
    response: Response,
    orchestrator: VerificationOrchestrator = Depends(get_orchestrator),
):
    """Current overall status. Never calls external services."""
    overall = await orchestrator.get_status(submission_id)
    response.headers["Cache-Control"] = cache_control_for(overall.status)
    return overall
