"""
Base class for Tier 1 registry clients.

A registry client answers "is this license on file, and what does the registry
say about its holder?". Lookups never raise: timeouts, network failures and
unparseable payloads come back as RegistryLookup(found=False, error=...), so
one unavailable registry only degrades its own credential.
"""

import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List, Optional, Tuple

import httpx

from credverify.core.config import settings
from credverify.models import VerificationMethod, VerificationType
from credverify.verification.http_client import ExternalLookupClient
from credverify.verification.schemas import LicenseClaim, RegistryLookup

logger = logging.getLogger(__name__)

Endpoint = Tuple[str, Callable[[httpx.AsyncClient], Awaitable[RegistryLookup]]]


class BaseRegistryClient(ExternalLookupClient, ABC):
    """
    Lookup flow shared by registry clients.

    Subclasses implement supports() and endpoints(); the base class walks the
    endpoints in order (primary, then fallback) and returns the first hit.
    """

    name: str = "registry"
    default_timeout = settings.REGISTRY_TIMEOUT_SECONDS
    verification_type: VerificationType
    method: VerificationMethod

    @abstractmethod
    def supports(self, license: LicenseClaim) -> bool:
        """Whether this client covers the license's jurisdiction."""

    @abstractmethod
    def endpoints(
        self, license: LicenseClaim, last_name: Optional[str]
    ) -> List[Endpoint]:
        """Ordered (source, fetch) pairs to try for this license."""

    def validate(self, license: LicenseClaim) -> Optional[str]:
        """Return an error marker when the license cannot be looked up."""
        return None

    def board_lookup_url(self, license: LicenseClaim) -> Optional[str]:
        """Public page a reviewer can use to check the license by hand."""
        return None

    async def lookup(
        self, license: LicenseClaim, last_name: Optional[str] = None
    ) -> RegistryLookup:
        """Look the license up, primary endpoint first."""
        if not self.supports(license):
            return RegistryLookup(
                found=False,
                supported=False,
                error="unsupported_jurisdiction",
                source=self.name,
            )

        invalid = self.validate(license)
        if invalid:
            logger.info(f"[{self.name}] Skipping lookup: {invalid}")
            return RegistryLookup(found=False, error=invalid, source=self.name)

        errors: List[str] = []
        last_raw = None
        async with self._client() as client:
            for source, fetch in self.endpoints(license, last_name):
                try:
                    result = await fetch(client)
                except (
                    httpx.HTTPError,
                    ValueError,
                    KeyError,
                    TypeError,
                    AttributeError,
                ) as e:
                    logger.warning(
                        f"[{self.name}] {source} lookup failed: {type(e).__name__}: {e}"
                    )
                    errors.append(f"{source}: {type(e).__name__}")
                    continue

                if result.found:
                    logger.info(f"[{self.name}] License found via {source}")
                    return result
                last_raw = result.raw if result.raw is not None else last_raw

        logger.info(f"[{self.name}] License not found ({len(errors)} endpoint errors)")
        return RegistryLookup(
            found=False,
            raw=last_raw,
            error="; ".join(errors) if errors else None,
            source=self.name,
        )
