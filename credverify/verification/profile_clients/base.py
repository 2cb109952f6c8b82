"""
Base class for Tier 2 profile clients.

A profile client validates the shape of a profile URL before anything else.
A malformed URL is reported as valid=False with a discrepancy and no network
call. A well-formed URL whose data provider is not configured, or is down,
is reported as valid=True, found=False: the reference may be genuine, we
just could not confirm it.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from credverify.core.config import settings
from credverify.models import VerificationMethod, VerificationType
from credverify.verification.http_client import ExternalLookupClient
from credverify.verification.schemas import (
    Discrepancy,
    ProfileData,
    ProfileLookup,
    Severity,
)

logger = logging.getLogger(__name__)


class BaseProfileClient(ExternalLookupClient, ABC):
    name: str = "profile"
    default_timeout = settings.PROFILE_TIMEOUT_SECONDS
    verification_type: VerificationType
    method: VerificationMethod
    url_field: str = "profile_url"
    invalid_url_severity: Severity = "medium"

    @abstractmethod
    def validate_url(self, url: Optional[str]) -> bool:
        """Host and path shape check, no network access."""

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the backing data provider has credentials."""

    @abstractmethod
    async def fetch(self, client: httpx.AsyncClient, url: str) -> ProfileLookup:
        """Fetch and normalize the profile from the data provider."""

    def from_imported(self, imported: Optional[dict]) -> Optional[ProfileData]:
        """Profile data captured during onboarding, if this source has any."""
        return None

    async def lookup(self, url: str, imported: Optional[dict] = None) -> ProfileLookup:
        if not self.validate_url(url):
            logger.info(f"[{self.name}] Rejecting malformed profile URL")
            return ProfileLookup(
                valid=False,
                error="invalid_url",
                source=self.name,
                discrepancies=[
                    Discrepancy(
                        field=self.url_field,
                        submitted_value=url,
                        found_value=None,
                        severity=self.invalid_url_severity,
                    )
                ],
            )

        profile = self.from_imported(imported)
        if profile is not None:
            return ProfileLookup(
                valid=True, found=True, profile=profile, raw=imported, source="imported"
            )

        if not self.is_configured():
            logger.warning(f"[{self.name}] Data provider not configured - fetch disabled")
            return ProfileLookup(
                valid=True, found=False, error="provider_not_configured", source=self.name
            )

        try:
            async with self._client() as client:
                return await self.fetch(client, url)
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"[{self.name}] Profile fetch failed: {type(e).__name__}: {e}")
            return ProfileLookup(
                valid=True,
                found=False,
                error=f"{type(e).__name__}",
                source=self.name,
            )
