"""Routes a license claim to the registry client that covers its jurisdiction."""

import logging
from typing import List, Optional

import httpx

from credverify.verification.registry_clients.base import BaseRegistryClient
from credverify.verification.registry_clients.mexico import MexicoSEPRegistryClient
from credverify.verification.registry_clients.usa import USStateBoardRegistryClient
from credverify.verification.schemas import LicenseClaim

logger = logging.getLogger(__name__)


class RegistryDirectory:
    def __init__(self, clients: List[BaseRegistryClient]):
        self.clients = list(clients)

    @classmethod
    def default(
        cls, http_client: Optional[httpx.AsyncClient] = None
    ) -> "RegistryDirectory":
        return cls(
            [
                MexicoSEPRegistryClient(http_client=http_client),
                USStateBoardRegistryClient(http_client=http_client),
            ]
        )

    def client_for(self, license: LicenseClaim) -> Optional[BaseRegistryClient]:
        """First client that supports the license, or None."""
        for client in self.clients:
            if client.supports(license):
                return client
        logger.debug(f"No registry client for jurisdiction {license.jurisdiction!r}")
        return None
