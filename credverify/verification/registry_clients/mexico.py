"""
Mexico: Registro Nacional de Profesionistas (SEP cedula profesional).

There is no official API. The JSON action behind the public search form is
tried first, then the mirror host that serves the same action over GET.
"""

import json
import logging
import re
from typing import Optional

import httpx

from credverify.core.config import settings
from credverify.models import VerificationMethod, VerificationType
from credverify.verification.registry_clients.base import BaseRegistryClient
from credverify.verification.schemas import (
    LicenseClaim,
    NormalizedFields,
    RegistryLookup,
)

logger = logging.getLogger(__name__)

CEDULA_MIN_DIGITS = 6
CEDULA_MAX_DIGITS = 10


def clean_cedula(number: Optional[str]) -> str:
    return re.sub(r"\D", "", number or "")


def _to_year(value) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(str(value).strip()[:4])
    except ValueError:
        return None


def parse_sep_response(data: dict, cedula: str) -> RegistryLookup:
    """Map the SEP search payload ({"items": [...]}) to normalized fields."""
    items = (data or {}).get("items") or []
    if not items:
        return RegistryLookup(found=False, raw=data, source="sep")

    item = items[0]
    legal_name = " ".join(
        part for part in (item.get("nombre"), item.get("paterno"), item.get("materno")) if part
    )
    return RegistryLookup(
        found=True,
        fields=NormalizedFields(
            legal_name=legal_name or None,
            institution=item.get("desins"),
            program_or_degree=item.get("titulo"),
            graduation_year=_to_year(item.get("anioEgreso")),
            license_number=str(item.get("idCedula") or cedula),
            license_type=item.get("tipo"),
        ),
        raw=item,
        source="sep",
    )


def parse_mirror_response(data: dict) -> RegistryLookup:
    """Map the mirror payload (flat object keyed by cedula) to normalized fields."""
    if not data or not data.get("cedula"):
        return RegistryLookup(found=False, raw=data, source="sep_mirror")

    return RegistryLookup(
        found=True,
        fields=NormalizedFields(
            legal_name=data.get("nombre"),
            institution=data.get("institucion"),
            program_or_degree=data.get("carrera"),
            license_number=str(data.get("cedula")),
        ),
        raw=data,
        source="sep_mirror",
    )


class MexicoSEPRegistryClient(BaseRegistryClient):
    name = "sep_registry"
    verification_type = VerificationType.LICENSE_MEXICO
    method = VerificationMethod.SEP_REGISTRY

    def supports(self, license: LicenseClaim) -> bool:
        return license.jurisdiction == "MX"

    def validate(self, license: LicenseClaim) -> Optional[str]:
        cedula = clean_cedula(license.number)
        if not CEDULA_MIN_DIGITS <= len(cedula) <= CEDULA_MAX_DIGITS:
            return "invalid_format"
        return None

    def board_lookup_url(self, license: LicenseClaim) -> Optional[str]:
        return settings.SEP_PUBLIC_LOOKUP_URL

    def endpoints(self, license: LicenseClaim, last_name: Optional[str]):
        cedula = clean_cedula(license.number)

        async def primary(client: httpx.AsyncClient) -> RegistryLookup:
            response = await self._request(
                client,
                "POST",
                settings.SEP_CEDULA_URL,
                data={"json": json.dumps({"maxResult": 10, "numero": cedula})},
            )
            return parse_sep_response(response.json(), cedula)

        async def mirror(client: httpx.AsyncClient) -> RegistryLookup:
            response = await self._request(
                client,
                "GET",
                settings.SEP_CEDULA_MIRROR_URL,
                params={"cedula": cedula},
            )
            return parse_mirror_response(response.json())

        return [("sep", primary), ("sep_mirror", mirror)]
