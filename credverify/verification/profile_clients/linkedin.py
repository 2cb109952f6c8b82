"""
LinkedIn profile client.

LinkedIn has no public profile API; profiles are fetched through Proxycurl
when PROXYCURL_API_KEY is set. Data the applicant imported during onboarding
is used as-is and needs no fetch.
"""

import logging
from typing import Optional
from urllib.parse import urlparse

import httpx

from credverify.core.config import settings
from credverify.models import VerificationMethod, VerificationType
from credverify.verification.profile_clients.base import BaseProfileClient
from credverify.verification.schemas import (
    ProfileData,
    ProfileEducation,
    ProfileLookup,
)

logger = logging.getLogger(__name__)

LINKEDIN_HOSTS = ("linkedin.com", "www.linkedin.com")


def _year(value) -> Optional[int]:
    if isinstance(value, dict):
        value = value.get("year")
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def parse_proxycurl_profile(data: dict) -> ProfileData:
    """Map a Proxycurl person payload to ProfileData."""
    experiences = data.get("experiences") or []
    current = experiences[0] if experiences else {}
    return ProfileData(
        full_name=data.get("full_name"),
        headline=data.get("headline"),
        photo_url=data.get("profile_pic_url"),
        current_company=current.get("company"),
        current_title=current.get("title"),
        education=[
            ProfileEducation(
                school=edu.get("school"),
                degree=edu.get("degree_name"),
                field=edu.get("field_of_study"),
                end_year=_year(edu.get("ends_at")),
            )
            for edu in data.get("education") or []
        ],
    )


def parse_imported_profile(data: dict) -> ProfileData:
    """Map LinkedIn data captured by onboarding (camelCase keys) to ProfileData."""
    position = data.get("currentPosition") or {}
    return ProfileData(
        full_name=data.get("fullName"),
        headline=data.get("headline"),
        photo_url=data.get("photoUrl"),
        current_company=position.get("company"),
        current_title=position.get("title"),
        education=[
            ProfileEducation(
                school=edu.get("school"),
                degree=edu.get("degree"),
                field=edu.get("field"),
                end_year=_year(edu.get("endYear")),
            )
            for edu in data.get("education") or []
        ],
    )


class LinkedInProfileClient(BaseProfileClient):
    name = "linkedin"
    verification_type = VerificationType.EDUCATION_LINKEDIN
    method = VerificationMethod.LINKEDIN_MATCH
    url_field = "linkedin_url"
    invalid_url_severity = "high"

    def __init__(self, *args, api_key: Optional[str] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.api_key = api_key if api_key is not None else settings.PROXYCURL_API_KEY

    def validate_url(self, url: Optional[str]) -> bool:
        if not url:
            return False
        parsed = urlparse(url.strip())
        if parsed.scheme not in ("http", "https"):
            return False
        slug = parsed.path[len("/in/"):].strip("/") if parsed.path.startswith("/in/") else ""
        return (parsed.hostname or "").lower() in LINKEDIN_HOSTS and bool(slug)

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def from_imported(self, imported: Optional[dict]) -> Optional[ProfileData]:
        if not imported or not imported.get("fullName"):
            return None
        return parse_imported_profile(imported)

    async def fetch(self, client: httpx.AsyncClient, url: str) -> ProfileLookup:
        response = await self._request(
            client,
            "GET",
            settings.PROXYCURL_API_URL,
            params={"url": url},
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        data = response.json()
        if not data or not data.get("full_name"):
            return ProfileLookup(valid=True, found=False, raw=data, source="proxycurl")

        return ProfileLookup(
            valid=True,
            found=True,
            profile=parse_proxycurl_profile(data),
            raw=data,
            source="proxycurl",
        )
