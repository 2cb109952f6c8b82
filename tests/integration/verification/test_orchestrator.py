"""
Integration tests for the tier orchestrator.

Runs VerificationOrchestrator.verify against an in-memory database with a fake
registry client and the real profile clients (no provider keys configured).
"""

import asyncio
import uuid

import pytest
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from credverify.models import (
    ManualReviewItem,
    ManualReviewType,
    ReviewPriority,
    ReviewStatus,
    VerificationMethod,
    VerificationResult,
    VerificationStatus,
    VerificationTier,
    VerificationType,
)
from credverify.verification.orchestrator import VerificationOrchestrator
from credverify.verification.policy import MatchPolicy
from credverify.verification.review_queue import ManualReviewQueue
from credverify.verification.schemas import OverallStatus, VerifyRequest

MX_LICENSE = {
    "country": "Mexico",
    "country_code": "MX",
    "license_type": "cedula",
    "number": "1234567",
}
LINKEDIN_URL = "https://www.linkedin.com/in/ana-ruiz-md"


def mx_license(number: str) -> dict:
    return {**MX_LICENSE, "number": number}


async def all_results(db, submission_id):
    rows = await db.execute(
        select(VerificationResult)
        .where(VerificationResult.submission_id == submission_id)
        .order_by(VerificationResult.created_at)
    )
    return list(rows.scalars().all())


async def current_result(db, submission_id, credential_key):
    rows = await db.execute(
        select(VerificationResult).where(
            VerificationResult.submission_id == submission_id,
            VerificationResult.credential_key == credential_key,
            VerificationResult.is_current.is_(True),
        )
    )
    return rows.scalar_one()


async def review_items(db, submission_id):
    rows = await db.execute(
        select(ManualReviewItem).where(ManualReviewItem.submission_id == submission_id)
    )
    return list(rows.scalars().all())


async def drain_background_tasks():
    for _ in range(3):
        await asyncio.sleep(0)


class TestLicenseVerification:
    @pytest.mark.asyncio
    async def test_registry_match_verifies_at_tier1(
        self, submission_in_db, orchestrator_factory, fake_registry, registry_hit, notifier
    ):
        fake_registry.answers["1234567"] = registry_hit(
            "Ana Ruiz", license_status="Vigente"
        )
        submission = await submission_in_db(full_name="Ana Ruiz", licenses=[MX_LICENSE])

        overall = await orchestrator_factory().verify(submission.id)
        await drain_background_tasks()

        assert overall.status == OverallStatus.VERIFIED
        assert overall.tier == "tier1"
        assert overall.summary.verified == 1
        assert overall.verified_at is not None
        assert submission.verification_status == "verified"
        assert [e.status for e in notifier.events] == ["verified"]

    @pytest.mark.asyncio
    async def test_rerun_without_force_makes_no_external_calls(
        self, submission_in_db, orchestrator_factory, fake_registry, registry_hit, notifier
    ):
        fake_registry.answers["1234567"] = registry_hit("Ana Ruiz")
        submission = await submission_in_db(full_name="Ana Ruiz", licenses=[MX_LICENSE])
        orchestrator = orchestrator_factory()

        first = await orchestrator.verify(submission.id)
        second = await orchestrator.verify(submission.id)
        await drain_background_tasks()

        assert fake_registry.calls == ["1234567"]
        assert first.status == OverallStatus.VERIFIED
        assert second.model_dump() == first.model_dump()
        assert len(await all_results(orchestrator.db, submission.id)) == 1
        assert len(notifier.events) == 1

    @pytest.mark.asyncio
    async def test_extra_registry_surname_goes_to_review_without_high_severity(
        self, test_db, submission_in_db, orchestrator_factory, fake_registry, registry_hit
    ):
        fake_registry.answers["1234567"] = registry_hit("Ana Ruiz Garcia")
        submission = await submission_in_db(full_name="Ana Ruiz", licenses=[MX_LICENSE])

        overall = await orchestrator_factory().verify(submission.id)

        [result] = await all_results(test_db, submission.id)
        assert result.status == VerificationStatus.MANUAL_REVIEW
        assert result.match_confidence == pytest.approx(0.5)
        assert [(d["field"], d["severity"]) for d in result.discrepancies] == [
            ("full_name", "low")
        ]

        [item] = await review_items(test_db, submission.id)
        assert item.review_type == ManualReviewType.DATA_DISCREPANCY
        assert item.priority == ReviewPriority.NORMAL
        assert item.verification_result_id == result.id

        assert overall.status == OverallStatus.IN_PROGRESS
        assert overall.tier == "tier3"
        assert overall.pending_manual_reviews == 1

    @pytest.mark.asyncio
    async def test_identity_mismatch_is_high_priority_review(
        self, test_db, submission_in_db, orchestrator_factory, fake_registry, registry_hit
    ):
        fake_registry.answers["1234567"] = registry_hit(
            "John Smith", license_status="Vigente"
        )
        submission = await submission_in_db(
            full_name="Maria Lopez", licenses=[MX_LICENSE]
        )

        await orchestrator_factory().verify(submission.id)

        [result] = await all_results(test_db, submission.id)
        assert result.status == VerificationStatus.MANUAL_REVIEW
        [item] = await review_items(test_db, submission.id)
        assert item.priority == ReviewPriority.HIGH
        assert any(d["severity"] == "high" for d in item.review_data["discrepancies"])

    @pytest.mark.asyncio
    async def test_not_found_goes_to_review_not_failed(
        self, test_db, submission_in_db, orchestrator_factory
    ):
        submission = await submission_in_db(licenses=[MX_LICENSE])

        overall = await orchestrator_factory().verify(submission.id)

        [result] = await all_results(test_db, submission.id)
        assert result.status == VerificationStatus.MANUAL_REVIEW
        assert result.tier == VerificationTier.TIER3
        [item] = await review_items(test_db, submission.id)
        assert item.review_type == ManualReviewType.LICENSE_NOT_FOUND
        assert item.review_data["board_lookup_url"] == "https://registry.example.gob.mx/"
        assert item.review_data["submitter_name"] == "Ana Ruiz"
        assert overall.status == OverallStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_unsupported_jurisdiction_is_queued(
        self, test_db, submission_in_db, orchestrator_factory, fake_registry
    ):
        submission = await submission_in_db(
            licenses=[{"country": "Colombia", "country_code": "CO", "number": "998877"}]
        )

        await orchestrator_factory().verify(submission.id)

        assert fake_registry.calls == []
        [result] = await all_results(test_db, submission.id)
        assert result.status == VerificationStatus.MANUAL_REVIEW
        assert result.credential_key == "license:CO:-:998877"

        pending = await ManualReviewQueue(test_db).list_pending()
        assert [i.review_type for i in pending] == [
            ManualReviewType.UNSUPPORTED_JURISDICTION
        ]
        assert pending[0].verification_result_id == result.id


class TestIsolation:
    @pytest.mark.asyncio
    async def test_crashing_lookup_does_not_affect_other_license(
        self, test_db, submission_in_db, orchestrator_factory, fake_registry, registry_hit
    ):
        fake_registry.answers["1111111"] = RuntimeError("registry client bug")
        fake_registry.answers["2222222"] = registry_hit("Ana Ruiz")
        submission = await submission_in_db(
            licenses=[mx_license("1111111"), mx_license("2222222")]
        )

        overall = await orchestrator_factory().verify(submission.id)

        crashed = await current_result(test_db, submission.id, "license:MX:-:1111111")
        healthy = await current_result(test_db, submission.id, "license:MX:-:2222222")
        assert crashed.status == VerificationStatus.MANUAL_REVIEW
        assert "RuntimeError" in crashed.notes
        assert healthy.status == VerificationStatus.VERIFIED
        assert overall.status == OverallStatus.PARTIALLY_VERIFIED

    @pytest.mark.asyncio
    async def test_slow_lookup_times_out_alone(
        self, test_db, submission_in_db, orchestrator_factory, fake_registry, registry_hit
    ):
        fake_registry.answers["1111111"] = "hang"
        fake_registry.answers["2222222"] = registry_hit("Ana Ruiz")
        submission = await submission_in_db(
            licenses=[mx_license("1111111"), mx_license("2222222")]
        )

        await orchestrator_factory(check_timeout=0.2).verify(submission.id)

        slow = await current_result(test_db, submission.id, "license:MX:-:1111111")
        fast = await current_result(test_db, submission.id, "license:MX:-:2222222")
        assert slow.status == VerificationStatus.MANUAL_REVIEW
        assert "timeout" in slow.notes
        assert fast.status == VerificationStatus.VERIFIED

    @pytest.mark.asyncio
    async def test_cancellation_persists_completed_checks(
        self, test_db, submission_in_db, orchestrator_factory, fake_registry, registry_hit
    ):
        fake_registry.answers["1111111"] = "hang"
        fake_registry.answers["2222222"] = registry_hit("Ana Ruiz")
        submission = await submission_in_db(
            licenses=[mx_license("1111111"), mx_license("2222222")]
        )

        task = asyncio.create_task(orchestrator_factory().verify(submission.id))
        while len(fake_registry.calls) < 2:
            await asyncio.sleep(0.01)
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        results = await all_results(test_db, submission.id)
        assert [(r.credential_key, r.status) for r in results] == [
            ("license:MX:-:2222222", VerificationStatus.VERIFIED)
        ]
        assert submission.verification_status == "verified"


class TestRechecks:
    @pytest.mark.asyncio
    async def test_force_recheck_supersedes_previous_result(
        self, test_db, submission_in_db, orchestrator_factory, fake_registry, registry_hit
    ):
        fake_registry.answers["1234567"] = registry_hit("Ana Ruiz")
        submission = await submission_in_db(licenses=[MX_LICENSE])
        orchestrator = orchestrator_factory()

        await orchestrator.verify(submission.id)
        overall = await orchestrator.verify(
            submission.id, VerifyRequest(force_recheck=True)
        )

        assert fake_registry.calls == ["1234567", "1234567"]
        old, new = await all_results(test_db, submission.id)
        assert old.is_current is False
        assert old.superseded_by_id == new.id
        assert new.is_current is True
        assert overall.summary.total == 1

    @pytest.mark.asyncio
    async def test_overlapping_runs_keep_one_current_result(
        self, file_db_sessions, submission_factory, verification_clients, fake_registry
    ):
        fake_registry.delay = 0.2
        async with file_db_sessions() as session:
            submission = submission_factory(licenses=[MX_LICENSE])
            session.add(submission)
            await session.commit()

        async with file_db_sessions() as first, file_db_sessions() as second:
            overall_first, overall_second = await asyncio.gather(
                *[
                    VerificationOrchestrator(
                        session, verification_clients, policy=MatchPolicy()
                    ).verify(submission.id)
                    for session in (first, second)
                ]
            )

        assert fake_registry.calls == ["1234567", "1234567"]
        async with file_db_sessions() as session:
            results = await all_results(session, submission.id)
            items = await review_items(session, submission.id)
        assert [r.is_current for r in results] == [True]
        assert [i.verification_result_id for i in items] == [results[0].id]
        assert overall_first.summary.total == 1
        assert overall_second.summary.total == 1
        assert overall_second.pending_manual_reviews == 1

    @pytest.mark.asyncio
    async def test_storage_allows_one_current_result_per_credential(
        self, test_db, submission_in_db
    ):
        submission = await submission_in_db(licenses=[MX_LICENSE])

        def row(is_current: bool) -> VerificationResult:
            return VerificationResult(
                id=str(uuid.uuid4()),
                submission_id=submission.id,
                verification_type=VerificationType.LICENSE_MEXICO,
                credential_key="license:MX:-:1234567",
                status=VerificationStatus.MANUAL_REVIEW,
                verification_method=VerificationMethod.SEP_REGISTRY,
                tier=VerificationTier.TIER3,
                is_current=is_current,
            )

        test_db.add_all([row(False), row(False), row(True)])
        await test_db.commit()

        test_db.add(row(True))
        with pytest.raises(IntegrityError):
            await test_db.flush()
        await test_db.rollback()

    @pytest.mark.asyncio
    async def test_reviewer_rejection_is_not_rechecked_without_force(
        self, test_db, submission_in_db, orchestrator_factory, fake_registry
    ):
        submission = await submission_in_db(licenses=[MX_LICENSE])
        orchestrator = orchestrator_factory()
        await orchestrator.verify(submission.id)
        [item] = await review_items(test_db, submission.id)
        await ManualReviewQueue(test_db).reject(item.id, "reviewer-1", "Not on file")

        overall = await orchestrator.verify(submission.id)

        assert fake_registry.calls == ["1234567"]
        assert overall.status == OverallStatus.REJECTED

    @pytest.mark.asyncio
    async def test_open_review_follows_the_superseding_result(
        self, test_db, submission_in_db, orchestrator_factory
    ):
        submission = await submission_in_db(linkedin_url=LINKEDIN_URL)
        orchestrator = orchestrator_factory()

        await orchestrator.verify(submission.id)
        await orchestrator.verify(submission.id, VerifyRequest(force_recheck=True))

        current = await current_result(test_db, submission.id, "profile:linkedin")
        [item] = await review_items(test_db, submission.id)
        assert item.status == ReviewStatus.PENDING
        assert item.review_type == ManualReviewType.PROFILE_UNVERIFIED
        assert item.verification_result_id == current.id

    @pytest.mark.asyncio
    async def test_settled_recheck_closes_open_review(
        self, test_db, submission_in_db, orchestrator_factory, fake_registry, registry_hit
    ):
        submission = await submission_in_db(licenses=[MX_LICENSE])
        orchestrator = orchestrator_factory()
        await orchestrator.verify(submission.id)

        fake_registry.answers["1234567"] = registry_hit("Ana Ruiz")
        overall = await orchestrator.verify(submission.id)

        [item] = await review_items(test_db, submission.id)
        assert item.status == ReviewStatus.APPROVED
        assert item.resolved_by == "system"
        assert overall.status == OverallStatus.VERIFIED
        assert overall.pending_manual_reviews == 0


class TestProfiles:
    @pytest.mark.asyncio
    async def test_unconfigured_provider_caps_confidence(
        self, test_db, submission_in_db, orchestrator_factory
    ):
        submission = await submission_in_db(linkedin_url=LINKEDIN_URL)

        await orchestrator_factory().verify(submission.id)

        [result] = await all_results(test_db, submission.id)
        assert result.status == VerificationStatus.MANUAL_REVIEW
        assert result.match_confidence == pytest.approx(0.3)
        [item] = await review_items(test_db, submission.id)
        assert item.priority == ReviewPriority.LOW

    @pytest.mark.asyncio
    async def test_imported_linkedin_profile_verifies(
        self, test_db, submission_in_db, orchestrator_factory
    ):
        submission = await submission_in_db(
            full_name="Ana Ruiz",
            medical_school="Universidad de Guadalajara",
            graduation_year=2011,
            linkedin_url=LINKEDIN_URL,
            linkedin_data={
                "fullName": "Ana Ruiz",
                "photoUrl": "https://media.licdn.com/ana.jpg",
                "education": [{"school": "Universidad de Guadalajara", "endYear": 2011}],
            },
        )

        overall = await orchestrator_factory().verify(submission.id)

        [result] = await all_results(test_db, submission.id)
        assert result.status == VerificationStatus.VERIFIED
        assert result.tier == VerificationTier.TIER2
        assert result.verified_by == "system"
        assert overall.status == OverallStatus.VERIFIED

    @pytest.mark.asyncio
    async def test_malformed_profile_url_fails_without_review(
        self, test_db, submission_in_db, orchestrator_factory
    ):
        submission = await submission_in_db(
            linkedin_url="https://www.linkedin.com/company/hospital"
        )

        overall = await orchestrator_factory().verify(submission.id)

        [result] = await all_results(test_db, submission.id)
        assert result.status == VerificationStatus.FAILED
        assert await review_items(test_db, submission.id) == []
        assert overall.status == OverallStatus.REJECTED

    @pytest.mark.asyncio
    async def test_specific_types_limit_the_run(
        self, test_db, submission_in_db, orchestrator_factory, fake_registry
    ):
        submission = await submission_in_db(
            licenses=[MX_LICENSE], linkedin_url=LINKEDIN_URL
        )

        await orchestrator_factory().verify(
            submission.id, VerifyRequest(specific_types=["education_linkedin"])
        )

        assert fake_registry.calls == []
        [result] = await all_results(test_db, submission.id)
        assert result.credential_key == "profile:linkedin"


class TestInvalidInput:
    @pytest.mark.asyncio
    async def test_malformed_submission_id(self, orchestrator_factory):
        with pytest.raises(HTTPException) as exc_info:
            await orchestrator_factory().verify("not-a-uuid")
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_submission(self, orchestrator_factory):
        with pytest.raises(HTTPException) as exc_info:
            await orchestrator_factory().verify("0b6f7a39-5d0c-4a87-9a51-3c2d8e1f0a99")
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_unsupported_specific_type(self, submission_in_db, orchestrator_factory):
        submission = await submission_in_db(licenses=[MX_LICENSE])
        with pytest.raises(HTTPException) as exc_info:
            await orchestrator_factory().verify(
                submission.id, VerifyRequest(specific_types=["criminal_record"])
            )
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "license",
        [
            {"country": "USA", "country_code": "US", "number": "Q1234"},
            {"country": "Mexico", "country_code": "MX", "number": " "},
        ],
    )
    async def test_incomplete_license_rejected_before_lookup(
        self, test_db, submission_in_db, orchestrator_factory, fake_registry, license
    ):
        submission = await submission_in_db(licenses=[license])

        with pytest.raises(HTTPException) as exc_info:
            await orchestrator_factory().verify(submission.id)

        assert exc_info.value.status_code == 400
        assert fake_registry.calls == []
        assert await all_results(test_db, submission.id) == []
