"""
Unified database models for the application.
All SQLAlchemy models are defined here.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls):
    return [e.value for e in enum_cls]


# Enums
class VerificationType(enum.Enum):
    """Kind of credential a verification result covers"""

    LICENSE_MEXICO = "license_mexico"
    LICENSE_USA = "license_usa"
    INTERNATIONAL_CREDENTIAL = "international_credential"
    EDUCATION_LINKEDIN = "education_linkedin"
    PUBLICATIONS_SCHOLAR = "publications_scholar"


class VerificationStatus(enum.Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    FAILED = "failed"
    MANUAL_REVIEW = "manual_review"
    REJECTED = "rejected"


class VerificationMethod(enum.Enum):
    """Client or tier that produced a result"""

    SEP_REGISTRY = "sep_registry"
    STATE_MEDICAL_BOARD = "state_medical_board"
    LINKEDIN_MATCH = "linkedin_match"
    SCHOLAR_FETCH = "scholar_fetch"
    MANUAL_REVIEW = "manual_review"


class VerificationTier(enum.Enum):
    TIER1 = "tier1"  # Authoritative registry
    TIER2 = "tier2"  # Semi-automated profile match
    TIER3 = "tier3"  # Human review


class ManualReviewType(enum.Enum):
    LICENSE_NOT_FOUND = "license_not_found"
    UNSUPPORTED_JURISDICTION = "unsupported_jurisdiction"
    DATA_DISCREPANCY = "data_discrepancy"
    PROFILE_UNVERIFIED = "profile_unverified"


class ReviewPriority(enum.Enum):
    URGENT = "urgent"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class ReviewStatus(enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    APPROVED = "approved"
    REJECTED = "rejected"
    ESCALATED = "escalated"


OPEN_REVIEW_STATUSES = (
    ReviewStatus.PENDING,
    ReviewStatus.IN_PROGRESS,
    ReviewStatus.ESCALATED,
)


# Submission owned by the onboarding system
class CredentialSubmission(Base):
    """
    Applicant-asserted credential facts.

    Written by onboarding; the verification service only reads the claim
    columns and writes the verification_* snapshot columns.
    """

    __tablename__ = "credential_submissions"

    id = Column(String, primary_key=True)
    full_name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    primary_specialty = Column(String, nullable=True)

    # [{"country": "Mexico", "country_code": "MX", "number": "1234567",
    #   "state": null, "license_type": "cedula"}]
    licenses = Column(JSON, nullable=False, default=list)

    medical_school = Column(String, nullable=True)
    medical_school_country = Column(String, nullable=True)
    graduation_year = Column(Integer, nullable=True)
    current_institutions = Column(JSON, nullable=False, default=list)

    linkedin_url = Column(String, nullable=True)
    linkedin_data = Column(JSON, nullable=True)  # Imported during onboarding
    google_scholar_url = Column(String, nullable=True)
    publications = Column(JSON, nullable=False, default=list)

    # Snapshot of the last computed overall status
    verification_status = Column(String, nullable=True)
    verification_tier = Column(String, nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verification_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class VerificationResult(Base):
    """
    One check of one credential reference.

    Rows are never deleted. A forced recheck inserts a new row, flips the old
    row's is_current to False and points superseded_by_id at the new row.
    """

    __tablename__ = "verification_results"

    id = Column(String, primary_key=True)
    submission_id = Column(
        String, ForeignKey("credential_submissions.id"), nullable=False
    )
    verification_type = Column(
        Enum(VerificationType, values_callable=_enum_values), nullable=False
    )
    credential_key = Column(String, nullable=False)
    credential_reference = Column(JSON, nullable=False, default=dict)

    status = Column(
        Enum(VerificationStatus, values_callable=_enum_values),
        nullable=False,
        default=VerificationStatus.PENDING,
    )
    verification_method = Column(
        Enum(VerificationMethod, values_callable=_enum_values), nullable=False
    )
    tier = Column(Enum(VerificationTier, values_callable=_enum_values), nullable=False)
    match_confidence = Column(Float, nullable=True)
    discrepancies = Column(JSON, nullable=False, default=list)
    external_data = Column(JSON, nullable=True)  # Opaque, for audit only
    notes = Column(Text, nullable=True)

    is_current = Column(Boolean, nullable=False, default=True)
    superseded_by_id = Column(
        String, ForeignKey("verification_results.id"), nullable=True
    )

    verified_at = Column(DateTime(timezone=True), nullable=True)
    verified_by = Column(String, nullable=True)  # "system" or "manual:<reviewer_id>"

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index(
            "idx_verification_results_submission_current",
            "submission_id",
            "is_current",
        ),
        Index("idx_verification_results_credential_key", "credential_key"),
        # At most one current result per credential reference
        Index(
            "uq_verification_results_current_credential",
            "submission_id",
            "credential_key",
            unique=True,
            postgresql_where=text("is_current"),
            sqlite_where=text("is_current = 1"),
        ),
    )


class ManualReviewItem(Base):
    """Queue entry for a result that needs human judgment."""

    __tablename__ = "manual_review_items"

    id = Column(String, primary_key=True)
    submission_id = Column(
        String, ForeignKey("credential_submissions.id"), nullable=False
    )
    verification_result_id = Column(
        String, ForeignKey("verification_results.id"), nullable=False
    )
    credential_key = Column(String, nullable=False)

    review_type = Column(
        Enum(ManualReviewType, values_callable=_enum_values), nullable=False
    )
    priority = Column(
        Enum(ReviewPriority, values_callable=_enum_values),
        nullable=False,
        default=ReviewPriority.NORMAL,
    )
    review_data = Column(JSON, nullable=False, default=dict)
    reason = Column(Text, nullable=False)
    sla_deadline = Column(DateTime(timezone=True), nullable=False)

    status = Column(
        Enum(ReviewStatus, values_callable=_enum_values),
        nullable=False,
        default=ReviewStatus.PENDING,
    )
    assigned_to = Column(String, nullable=True)
    assigned_at = Column(DateTime(timezone=True), nullable=True)
    resolution_notes = Column(Text, nullable=True)
    resolved_by = Column(String, nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_manual_review_items_status_deadline", "status", "sla_deadline"),
        Index("idx_manual_review_items_submission", "submission_id"),
    )
