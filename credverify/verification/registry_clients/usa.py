"""
USA: state medical board license lookup.

The FSMB DocInfo aggregated search is the primary source. When it has no
record, the state's own board is queried for the few boards that expose a
JSON search (TX, CA, NY, FL).
"""

import logging
from datetime import date, datetime
from typing import Callable, Dict, Optional

import httpx

from credverify.core.config import settings
from credverify.models import VerificationMethod, VerificationType
from credverify.verification.registry_clients.base import BaseRegistryClient
from credverify.verification.registry_clients.state_boards import (
    US_JURISDICTIONS,
    get_state_board_url,
)
from credverify.verification.schemas import (
    LicenseClaim,
    NormalizedFields,
    RegistryLookup,
)

logger = logging.getLogger(__name__)

TX_SEARCH_URL = "https://profile.tmb.state.tx.us/PublicSearch/Search"
CA_SEARCH_URL = "https://search.dca.ca.gov/results"
NY_SEARCH_URL = "http://www.op.nysed.gov/verification/search"
FL_SEARCH_URL = "https://mqa-internet.doh.state.fl.us/MQASearchServices/HealthCareProviders"

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%Y/%m/%d")


def parse_date(value) -> Optional[date]:
    """Best-effort parse of the date formats the boards return."""
    if not value:
        return None
    text = str(value).strip()[:10]
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    logger.debug(f"Unrecognized date format from state board: {value!r}")
    return None


def parse_docinfo_response(data: dict) -> RegistryLookup:
    physician = (data or {}).get("physician")
    if not physician:
        return RegistryLookup(found=False, raw=data, source="docinfo")

    return RegistryLookup(
        found=True,
        fields=NormalizedFields(
            legal_name=physician.get("fullName"),
            license_number=physician.get("licenseNumber"),
            license_type=physician.get("licenseType"),
            license_status=physician.get("status"),
            expiration_date=parse_date(physician.get("expirationDate")),
            specialty=physician.get("specialty"),
        ),
        raw=data,
        source="docinfo",
    )


def parse_texas_response(data: dict) -> RegistryLookup:
    results = (data or {}).get("Results") or []
    if not results:
        return RegistryLookup(found=False, raw=data, source="tx_board")

    item = results[0]
    name = " ".join(p for p in (item.get("FirstName"), item.get("LastName")) if p)
    return RegistryLookup(
        found=True,
        fields=NormalizedFields(
            legal_name=name or None,
            license_number=item.get("LicenseNumber"),
            license_type=item.get("LicenseType"),
            license_status=item.get("Status"),
            expiration_date=parse_date(item.get("ExpirationDate")),
        ),
        raw=item,
        source="tx_board",
    )


def parse_california_response(data: dict) -> RegistryLookup:
    results = (data or {}).get("results") or []
    if not results:
        return RegistryLookup(found=False, raw=data, source="ca_board")

    item = results[0]
    return RegistryLookup(
        found=True,
        fields=NormalizedFields(
            legal_name=item.get("name"),
            license_number=item.get("license_number"),
            license_type=item.get("license_type"),
            license_status=item.get("status"),
            expiration_date=parse_date(item.get("expiration_date")),
        ),
        raw=item,
        source="ca_board",
    )


def parse_new_york_response(data: dict) -> RegistryLookup:
    licensee = (data or {}).get("licensee")
    if not licensee:
        return RegistryLookup(found=False, raw=data, source="ny_board")

    return RegistryLookup(
        found=True,
        fields=NormalizedFields(
            legal_name=licensee.get("name"),
            license_number=licensee.get("licenseNumber"),
            license_type=licensee.get("profession"),
            license_status=licensee.get("status"),
        ),
        raw=data,
        source="ny_board",
    )


def parse_florida_response(data: dict) -> RegistryLookup:
    providers = (data or {}).get("providers") or []
    if not providers:
        return RegistryLookup(found=False, raw=data, source="fl_board")

    item = providers[0]
    return RegistryLookup(
        found=True,
        fields=NormalizedFields(
            legal_name=item.get("fullName"),
            license_number=item.get("licenseNumber"),
            license_type=item.get("profession"),
            license_status=item.get("status"),
            expiration_date=parse_date(item.get("expirationDate")),
        ),
        raw=item,
        source="fl_board",
    )


class USStateBoardRegistryClient(BaseRegistryClient):
    name = "state_medical_board"
    verification_type = VerificationType.LICENSE_USA
    method = VerificationMethod.STATE_MEDICAL_BOARD

    def supports(self, license: LicenseClaim) -> bool:
        return license.jurisdiction == "US" and license.clean_state in US_JURISDICTIONS

    def board_lookup_url(self, license: LicenseClaim) -> Optional[str]:
        return get_state_board_url(license.clean_state)

    def endpoints(self, license: LicenseClaim, last_name: Optional[str]):
        state = license.clean_state
        number = license.clean_number

        async def docinfo(client: httpx.AsyncClient) -> RegistryLookup:
            params = {"state": state, "license": number}
            if last_name:
                params["lastName"] = last_name
            response = await self._request(
                client, "GET", f"{settings.DOCINFO_URL}/api/search", params=params
            )
            return parse_docinfo_response(response.json())

        async def texas(client: httpx.AsyncClient) -> RegistryLookup:
            response = await self._request(
                client,
                "POST",
                TX_SEARCH_URL,
                json={"LicenseNumber": number, "LastName": last_name or ""},
            )
            return parse_texas_response(response.json())

        async def california(client: httpx.AsyncClient) -> RegistryLookup:
            response = await self._request(
                client,
                "GET",
                CA_SEARCH_URL,
                params={"license_number": number, "board": "16"},
            )
            return parse_california_response(response.json())

        async def new_york(client: httpx.AsyncClient) -> RegistryLookup:
            response = await self._request(
                client, "GET", NY_SEARCH_URL, params={"lic": number, "prof": "60"}
            )
            return parse_new_york_response(response.json())

        async def florida(client: httpx.AsyncClient) -> RegistryLookup:
            response = await self._request(
                client,
                "GET",
                FL_SEARCH_URL,
                params={"LicenseNumber": number, "Profession": "MD"},
            )
            return parse_florida_response(response.json())

        board_fetchers: Dict[str, Callable] = {
            "TX": texas,
            "CA": california,
            "NY": new_york,
            "FL": florida,
        }

        endpoints = [("docinfo", docinfo)]
        if state in board_fetchers:
            endpoints.append((f"{state.lower()}_board", board_fetchers[state]))
        return endpoints
