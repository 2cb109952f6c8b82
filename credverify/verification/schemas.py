"""
Pydantic schemas for credential verification.

Covers the submitted credential record read from onboarding, the normalized
shapes returned by registry and profile clients, comparator output and the
overall verification status exposed over HTTP.
"""

import re
from datetime import date, datetime
from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

Severity = Literal["low", "medium", "high"]

_COUNTRY_ALIASES = {
    "mx": "MX",
    "mexico": "MX",
    "méxico": "MX",
    "us": "US",
    "usa": "US",
    "united states": "US",
    "united states of america": "US",
    "estados unidos": "US",
}


def resolve_country_code(
    country_code: Optional[str], country: Optional[str]
) -> Optional[str]:
    """ISO alpha-2 code from an explicit code or a country label."""
    if country_code and country_code.strip():
        code = country_code.strip().upper()
        return _COUNTRY_ALIASES.get(code.lower(), code)
    if country and country.strip():
        return _COUNTRY_ALIASES.get(country.strip().lower())
    return None


# Submitted credential record
class LicenseClaim(BaseModel):
    """One license as asserted by the applicant."""

    country: Optional[str] = None
    country_code: Optional[str] = None
    license_type: Optional[str] = None
    number: Optional[str] = None
    state: Optional[str] = None

    class Config:
        frozen = True

    @property
    def jurisdiction(self) -> Optional[str]:
        return resolve_country_code(self.country_code, self.country)

    @property
    def clean_number(self) -> str:
        return re.sub(r"[^0-9A-Za-z]", "", self.number or "").upper()

    @property
    def clean_state(self) -> Optional[str]:
        return self.state.strip().upper() if self.state and self.state.strip() else None

    @property
    def credential_key(self) -> str:
        jurisdiction = self.jurisdiction or (self.country or "unknown").strip().upper()
        return f"license:{jurisdiction}:{self.clean_state or '-'}:{self.clean_number}"


class PublicationClaim(BaseModel):
    title: str
    year: Optional[int] = None

    class Config:
        frozen = True


class SubmittedCredentialRecord(BaseModel):
    """
    Immutable snapshot of a credential submission for one verification run.

    Built from the credential_submissions row; the orchestrator never writes
    back to these fields.
    """

    id: str
    full_name: str
    email: Optional[str] = None
    primary_specialty: Optional[str] = None
    licenses: List[LicenseClaim] = []
    medical_school: Optional[str] = None
    medical_school_country: Optional[str] = None
    graduation_year: Optional[int] = None
    current_institutions: List[str] = []
    linkedin_url: Optional[str] = None
    linkedin_data: Optional[dict] = None
    google_scholar_url: Optional[str] = None
    publications: List[PublicationClaim] = []

    class Config:
        frozen = True

    @field_validator("licenses", mode="before")
    @classmethod
    def _licenses(cls, value):
        return value or []

    @field_validator("current_institutions", mode="before")
    @classmethod
    def _institutions(cls, value):
        # Onboarding stores either plain names or {"name": ...} objects
        names = []
        for item in value or []:
            name = item.get("name") if isinstance(item, dict) else item
            if name:
                names.append(str(name))
        return names

    @field_validator("publications", mode="before")
    @classmethod
    def _publications(cls, value):
        items = []
        for item in value or []:
            if isinstance(item, str):
                items.append({"title": item})
            elif isinstance(item, dict) and item.get("title"):
                items.append(item)
        return items

    @classmethod
    def from_submission(cls, submission) -> "SubmittedCredentialRecord":
        return cls(
            id=submission.id,
            full_name=submission.full_name,
            email=submission.email,
            primary_specialty=submission.primary_specialty,
            licenses=submission.licenses,
            medical_school=submission.medical_school,
            medical_school_country=submission.medical_school_country,
            graduation_year=submission.graduation_year,
            current_institutions=submission.current_institutions,
            linkedin_url=submission.linkedin_url,
            linkedin_data=submission.linkedin_data,
            google_scholar_url=submission.google_scholar_url,
            publications=submission.publications,
        )

    @property
    def last_name(self) -> Optional[str]:
        parts = self.full_name.split()
        return parts[-1] if parts else None


# Comparator output
class Discrepancy(BaseModel):
    field: str
    submitted_value: Any = None
    found_value: Any = None
    severity: Severity


class ComparisonResult(BaseModel):
    matches: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    discrepancies: List[Discrepancy] = []
    total_checks: float = 0
    match_score: float = 0

    @property
    def has_high_severity(self) -> bool:
        return any(d.severity == "high" for d in self.discrepancies)


# Registry clients (Tier 1)
class NormalizedFields(BaseModel):
    """Registry fields mapped to one jurisdiction-agnostic shape."""

    legal_name: Optional[str] = None
    institution: Optional[str] = None
    program_or_degree: Optional[str] = None
    graduation_year: Optional[int] = None
    license_number: Optional[str] = None
    license_status: Optional[str] = None
    license_type: Optional[str] = None
    expiration_date: Optional[date] = None
    specialty: Optional[str] = None


class RegistryLookup(BaseModel):
    found: bool
    supported: bool = True
    fields: Optional[NormalizedFields] = None
    raw: Optional[Any] = None
    error: Optional[str] = None
    source: Optional[str] = None


# Profile clients (Tier 2)
class ProfileEducation(BaseModel):
    school: Optional[str] = None
    degree: Optional[str] = None
    field: Optional[str] = None
    end_year: Optional[int] = None


class ProfilePublication(BaseModel):
    title: str
    year: Optional[int] = None


class ProfileData(BaseModel):
    full_name: Optional[str] = None
    headline: Optional[str] = None
    photo_url: Optional[str] = None
    current_company: Optional[str] = None
    current_title: Optional[str] = None
    affiliation: Optional[str] = None
    education: List[ProfileEducation] = []
    citation_count: Optional[int] = None
    h_index: Optional[int] = None
    i10_index: Optional[int] = None
    publications: List[ProfilePublication] = []


class ProfileLookup(BaseModel):
    valid: bool
    found: bool = False
    profile: Optional[ProfileData] = None
    raw: Optional[Any] = None
    error: Optional[str] = None
    source: Optional[str] = None
    discrepancies: List[Discrepancy] = []


# Overall status
class OverallStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    VERIFIED = "verified"
    PARTIALLY_VERIFIED = "partially_verified"
    REJECTED = "rejected"


TERMINAL_OVERALL_STATUSES = (OverallStatus.VERIFIED, OverallStatus.REJECTED)


class VerificationSummary(BaseModel):
    total: int = 0
    verified: int = 0
    failed: int = 0
    pending: int = 0
    manual_review: int = 0


class VerificationResultResponse(BaseModel):
    """Submitter-safe view of one current result (no raw payloads)."""

    id: str
    verification_type: str
    credential_key: str
    status: str
    verification_method: str
    tier: str
    match_confidence: Optional[float] = None
    verified_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator(
        "verification_type", "status", "verification_method", "tier", mode="before"
    )
    @classmethod
    def _enum_value(cls, value):
        return value.value if isinstance(value, Enum) else value


class OverallVerificationStatus(BaseModel):
    submission_id: str
    status: OverallStatus
    tier: Optional[str] = None
    summary: VerificationSummary
    pending_manual_reviews: int = 0
    verified_at: Optional[datetime] = None
    message: str
    results: List[VerificationResultResponse] = []


# Requests
class VerifyRequest(BaseModel):
    """Body of POST /submissions/{id}/verify."""

    force_recheck: bool = Field(
        default=False, description="Re-check credentials that are already verified"
    )
    specific_types: Optional[List[str]] = Field(
        default=None,
        description="Restrict the run to these verification types",
    )
