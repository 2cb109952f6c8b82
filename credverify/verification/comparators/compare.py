"""
Comparators: submitted facts vs. what an external source says.

Every comparator is jurisdiction- and provider-agnostic: it only sees the
normalized shapes produced by the registry and profile clients.
"""

from datetime import date, datetime, timezone
from typing import Optional

from credverify.verification.comparators.scorecard import Scorecard, field_similarity
from credverify.verification.policy import MatchPolicy
from credverify.verification.schemas import (
    ComparisonResult,
    NormalizedFields,
    ProfileData,
    SubmittedCredentialRecord,
)

MAX_PUBLICATIONS_COMPARED = 5
PUBLICATION_MISMATCH_RATIO = 0.3
PUBLICATION_MISMATCH_MIN_CLAIMED = 2


def compare_license_record(
    submitted: SubmittedCredentialRecord,
    fields: NormalizedFields,
    policy: MatchPolicy,
    today: Optional[date] = None,
) -> ComparisonResult:
    """Compare a registry record with the applicant's claims."""
    today = today or datetime.now(timezone.utc).date()
    card = Scorecard(policy, policy.registry_threshold)

    card.check_name(submitted.full_name, fields.legal_name)
    card.check_text("medical_school", submitted.medical_school, [fields.institution])
    card.check_year("graduation_year", submitted.graduation_year, [fields.graduation_year])
    card.check_license_status(fields.license_status)
    card.check_expiration(fields.expiration_date, today)
    card.check_soft("specialty", [submitted.primary_specialty], fields.specialty)

    return card.result()


def compare_linkedin_profile(
    submitted: SubmittedCredentialRecord,
    profile: ProfileData,
    policy: MatchPolicy,
) -> ComparisonResult:
    card = Scorecard(policy, policy.profile_threshold)

    card.check_name(submitted.full_name, profile.full_name)
    card.check_text(
        "medical_school",
        submitted.medical_school,
        [edu.school for edu in profile.education],
    )
    card.check_year(
        "graduation_year",
        submitted.graduation_year,
        [edu.end_year for edu in profile.education],
    )
    card.check_soft(
        "current_institution", submitted.current_institutions, profile.current_company
    )
    card.signal(bool(profile.photo_url))

    return card.result()


def compare_scholar_profile(
    submitted: SubmittedCredentialRecord,
    profile: ProfileData,
    policy: MatchPolicy,
) -> ComparisonResult:
    """
    Compare a citation-index author profile with the applicant's claims.

    Up to five claimed publication titles are looked up among the profile's
    articles; the fraction found is added to the score. Citation count and
    h-index only ever corroborate.
    """
    card = Scorecard(policy, policy.profile_threshold)

    card.check_name(submitted.full_name, profile.full_name)
    card.check_soft("affiliation", submitted.current_institutions, profile.affiliation)

    claimed = submitted.publications
    if claimed:
        card.total += 1
        if profile.publications:
            sample = claimed[:MAX_PUBLICATIONS_COMPARED]
            matched = sum(
                1
                for pub in sample
                if any(
                    field_similarity(pub.title, found.title)
                    > policy.publication_similarity
                    for found in profile.publications
                )
            )
            ratio = matched / len(sample)
            card.score += ratio
            if (
                ratio < PUBLICATION_MISMATCH_RATIO
                and len(claimed) > PUBLICATION_MISMATCH_MIN_CLAIMED
            ):
                card.flag(
                    "publications",
                    f"{len(claimed)} publications",
                    f"{len(profile.publications)} found, {matched} matched",
                    "medium",
                )
        else:
            card.flag(
                "publications",
                f"{len(claimed)} publications",
                "none found on profile",
                "medium",
            )

    card.signal(bool(profile.citation_count))
    card.signal(bool(profile.h_index))

    return card.result()
