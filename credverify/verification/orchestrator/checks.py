"""
Per-credential checks run by the orchestrator.

A check wraps one external lookup plus comparison and turns it into a
CheckOutcome: the status, method and tier to record, and, when a human has to
look at it, the review item to queue. Checks never touch the database, so
they can run concurrently and be cancelled without leaving partial rows.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from credverify.models import (
    ManualReviewType,
    ReviewPriority,
    VerificationMethod,
    VerificationStatus,
    VerificationTier,
    VerificationType,
)
from credverify.verification.comparators import (
    compare_license_record,
    compare_linkedin_profile,
    compare_scholar_profile,
)
from credverify.verification.policy import MatchPolicy
from credverify.verification.profile_clients import BaseProfileClient
from credverify.verification.registry_clients import BaseRegistryClient
from credverify.verification.schemas import (
    ComparisonResult,
    Discrepancy,
    LicenseClaim,
    SubmittedCredentialRecord,
)

logger = logging.getLogger(__name__)

LINKEDIN_KEY = "profile:linkedin"
SCHOLAR_KEY = "profile:scholar"

LICENSE_TYPES_BY_JURISDICTION = {
    "MX": VerificationType.LICENSE_MEXICO,
    "US": VerificationType.LICENSE_USA,
}


def license_verification_type(license: LicenseClaim) -> VerificationType:
    return LICENSE_TYPES_BY_JURISDICTION.get(
        license.jurisdiction, VerificationType.INTERNATIONAL_CREDENTIAL
    )


@dataclass
class ReviewPlan:
    review_type: ManualReviewType
    priority: ReviewPriority
    reason: str
    review_data: Dict[str, Any]


@dataclass
class CheckOutcome:
    credential_key: str
    verification_type: VerificationType
    credential_reference: Dict[str, Any]
    status: VerificationStatus
    method: VerificationMethod
    tier: VerificationTier
    match_confidence: Optional[float] = None
    discrepancies: List[Dict[str, Any]] = field(default_factory=list)
    external_data: Optional[Any] = None
    notes: Optional[str] = None
    review: Optional[ReviewPlan] = None


def _dump(discrepancies: List[Discrepancy]) -> List[Dict[str, Any]]:
    return [d.model_dump(mode="json") for d in discrepancies]


def _submitter_context(record: SubmittedCredentialRecord) -> Dict[str, Any]:
    return {"submitter_name": record.full_name, "submitter_email": record.email}


class CredentialCheck:
    """One credential reference to verify."""

    credential_key: str
    verification_type: VerificationType
    method: VerificationMethod
    credential_reference: Dict[str, Any]

    async def run(self) -> CheckOutcome:
        raise NotImplementedError

    def degraded(self, reason: str) -> CheckOutcome:
        """Outcome when the check could not complete (timeout, client crash)."""
        raise NotImplementedError


class UnsupportedLicenseCheck(CredentialCheck):
    """No registry covers the jurisdiction: straight to a reviewer, no lookup."""

    def __init__(self, record: SubmittedCredentialRecord, license: LicenseClaim, index: int):
        self.record = record
        self.license = license
        self.credential_key = license.credential_key
        self.verification_type = license_verification_type(license)
        self.method = VerificationMethod.MANUAL_REVIEW
        self.credential_reference = {"license_index": index, **license.model_dump()}

    def _outcome(self) -> CheckOutcome:
        label = self.license.country or self.license.jurisdiction or "unknown jurisdiction"
        if self.license.state:
            label = f"{label} ({self.license.state})"
        notes = f"International license from {label} requires manual verification"
        return CheckOutcome(
            credential_key=self.credential_key,
            verification_type=self.verification_type,
            credential_reference=self.credential_reference,
            status=VerificationStatus.MANUAL_REVIEW,
            method=self.method,
            tier=VerificationTier.TIER3,
            notes=notes,
            review=ReviewPlan(
                review_type=ManualReviewType.UNSUPPORTED_JURISDICTION,
                priority=ReviewPriority.NORMAL,
                reason=notes,
                review_data={
                    **_submitter_context(self.record),
                    "license": self.license.model_dump(),
                    "board_lookup_url": None,
                    "discrepancies": [],
                },
            ),
        )

    async def run(self) -> CheckOutcome:
        return self._outcome()

    def degraded(self, reason: str) -> CheckOutcome:
        return self._outcome()


class LicenseCheck(CredentialCheck):
    """Tier 1: registry lookup followed by the license comparator."""

    def __init__(
        self,
        record: SubmittedCredentialRecord,
        license: LicenseClaim,
        index: int,
        client: BaseRegistryClient,
        policy: MatchPolicy,
    ):
        self.record = record
        self.license = license
        self.client = client
        self.policy = policy
        self.credential_key = license.credential_key
        self.verification_type = client.verification_type
        self.method = client.method
        self.credential_reference = {"license_index": index, **license.model_dump()}

    def _review_data(self, attempt: Dict[str, Any], discrepancies) -> Dict[str, Any]:
        return {
            **_submitter_context(self.record),
            "license": self.license.model_dump(),
            "verification_attempt": attempt,
            "board_lookup_url": self.client.board_lookup_url(self.license),
            "discrepancies": discrepancies,
        }

    def _not_found(self, notes: str, attempt: Dict[str, Any], raw=None) -> CheckOutcome:
        return CheckOutcome(
            credential_key=self.credential_key,
            verification_type=self.verification_type,
            credential_reference=self.credential_reference,
            status=VerificationStatus.MANUAL_REVIEW,
            method=self.method,
            tier=VerificationTier.TIER3,
            external_data=raw,
            notes=notes,
            review=ReviewPlan(
                review_type=ManualReviewType.LICENSE_NOT_FOUND,
                priority=ReviewPriority.NORMAL,
                reason=notes,
                review_data=self._review_data(attempt, []),
            ),
        )

    def degraded(self, reason: str) -> CheckOutcome:
        return self._not_found(
            f"Registry lookup did not complete ({reason}) - queued for manual verification",
            {"source": self.client.name, "error": reason},
        )

    async def run(self) -> CheckOutcome:
        lookup = await self.client.lookup(self.license, last_name=self.record.last_name)
        attempt = {"source": lookup.source, "error": lookup.error, "found": lookup.found}

        if not lookup.found:
            if lookup.error:
                notes = (
                    f"Registry lookup failed ({lookup.error}) - queued for manual verification"
                )
            else:
                notes = "License not found in registry - queued for manual verification"
            return self._not_found(notes, attempt, lookup.raw)

        comparison: ComparisonResult = compare_license_record(
            self.record, lookup.fields, self.policy
        )
        discrepancies = _dump(comparison.discrepancies)
        base = dict(
            credential_key=self.credential_key,
            verification_type=self.verification_type,
            credential_reference=self.credential_reference,
            method=self.method,
            discrepancies=discrepancies,
            external_data=lookup.raw,
        )
        fields = lookup.fields
        found_note = (
            f"License found via {lookup.source}: "
            f"{fields.license_status or 'status unknown'}. "
            f"Name: {fields.legal_name or 'N/A'}"
        )

        if comparison.total_checks == 0:
            # On file with an authoritative registry and nothing contradicts the claim
            return CheckOutcome(
                **base,
                status=VerificationStatus.VERIFIED,
                tier=VerificationTier.TIER1,
                notes=f"{found_note}. No comparable fields",
            )

        if comparison.matches and comparison.confidence >= self.policy.verify_confidence:
            return CheckOutcome(
                **base,
                status=VerificationStatus.VERIFIED,
                tier=VerificationTier.TIER1,
                match_confidence=comparison.confidence,
                notes=f"{found_note}. Confidence: {comparison.confidence:.0%}",
            )

        priority = (
            ReviewPriority.HIGH if comparison.has_high_severity else ReviewPriority.NORMAL
        )
        reason = (
            f"Registry record differs from submitted data "
            f"(confidence {comparison.confidence:.0%}, "
            f"{len(discrepancies)} discrepancies)"
        )
        attempt["confidence"] = comparison.confidence
        return CheckOutcome(
            **base,
            status=VerificationStatus.MANUAL_REVIEW,
            tier=VerificationTier.TIER3,
            match_confidence=comparison.confidence,
            notes=f"{found_note}. {reason}",
            review=ReviewPlan(
                review_type=ManualReviewType.DATA_DISCREPANCY,
                priority=priority,
                reason=reason,
                review_data=self._review_data(attempt, discrepancies),
            ),
        )


class ProfileCheck(CredentialCheck):
    """Tier 2: profile lookup followed by the matching profile comparator."""

    def __init__(
        self,
        record: SubmittedCredentialRecord,
        url: str,
        client: BaseProfileClient,
        policy: MatchPolicy,
        credential_key: str,
        label: str,
        imported: Optional[dict] = None,
    ):
        self.record = record
        self.url = url
        self.client = client
        self.policy = policy
        self.imported = imported
        self.label = label
        self.credential_key = credential_key
        self.verification_type = client.verification_type
        self.method = client.method
        self.credential_reference = {"source": client.name, "url": url}

    def _compare(self, profile) -> ComparisonResult:
        if self.verification_type == VerificationType.PUBLICATIONS_SCHOLAR:
            return compare_scholar_profile(self.record, profile, self.policy)
        return compare_linkedin_profile(self.record, profile, self.policy)

    def _outcome(
        self,
        status: VerificationStatus,
        confidence: Optional[float],
        discrepancies: List[Dict[str, Any]],
        notes: str,
        raw=None,
    ) -> CheckOutcome:
        review = None
        if status == VerificationStatus.MANUAL_REVIEW:
            review = ReviewPlan(
                review_type=(
                    ManualReviewType.DATA_DISCREPANCY
                    if discrepancies
                    else ManualReviewType.PROFILE_UNVERIFIED
                ),
                priority=ReviewPriority.LOW,
                reason=notes,
                review_data={
                    **_submitter_context(self.record),
                    "profile_url": self.url,
                    "confidence": confidence,
                    "discrepancies": discrepancies,
                },
            )
        return CheckOutcome(
            credential_key=self.credential_key,
            verification_type=self.verification_type,
            credential_reference=self.credential_reference,
            status=status,
            method=self.method,
            tier=(
                VerificationTier.TIER3
                if status == VerificationStatus.MANUAL_REVIEW
                else VerificationTier.TIER2
            ),
            match_confidence=confidence,
            discrepancies=discrepancies,
            external_data=raw,
            notes=notes,
            review=review,
        )

    def degraded(self, reason: str) -> CheckOutcome:
        return self._outcome(
            VerificationStatus.MANUAL_REVIEW,
            self.policy.unverified_profile_confidence,
            [],
            f"{self.label} profile could not be checked ({reason})",
        )

    async def run(self) -> CheckOutcome:
        lookup = await self.client.lookup(self.url, imported=self.imported)

        if not lookup.valid:
            return self._outcome(
                VerificationStatus.FAILED,
                0.0,
                _dump(lookup.discrepancies),
                f"Invalid {self.label} URL format",
            )

        if not lookup.found or lookup.profile is None:
            return self._outcome(
                VerificationStatus.MANUAL_REVIEW,
                self.policy.unverified_profile_confidence,
                [],
                f"{self.label} profile URL is well-formed but its data could not be "
                f"retrieved ({lookup.error or 'no data'})",
                lookup.raw,
            )

        comparison = self._compare(lookup.profile)
        discrepancies = _dump(comparison.discrepancies)
        if comparison.matches and comparison.confidence >= self.policy.verify_confidence:
            status = VerificationStatus.VERIFIED
            notes = f"{self.label} profile verified. Confidence: {comparison.confidence:.0%}"
        else:
            status = VerificationStatus.MANUAL_REVIEW
            notes = (
                f"{self.label} profile requires manual review. "
                f"Confidence: {comparison.confidence:.0%}"
            )
        return self._outcome(
            status, comparison.confidence, discrepancies, notes, lookup.raw
        )
