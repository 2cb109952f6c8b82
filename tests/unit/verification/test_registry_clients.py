"""
Tests for Tier 1 registry clients.

HTTP is served by httpx.MockTransport; no request leaves the process.
"""

import json
from datetime import date
from urllib.parse import parse_qs

import httpx
import pytest

from credverify.core.config import settings
from credverify.verification.registry_clients import (
    MexicoSEPRegistryClient,
    RegistryDirectory,
    USStateBoardRegistryClient,
    get_state_board_url,
)
from credverify.verification.registry_clients.mexico import (
    clean_cedula,
    parse_sep_response,
)
from credverify.verification.registry_clients.usa import parse_date
from credverify.verification.schemas import LicenseClaim

SEP_ITEM = {
    "nombre": "ANA",
    "paterno": "RUIZ",
    "materno": "GARCIA",
    "desins": "UNIVERSIDAD DE GUADALAJARA",
    "titulo": "MEDICO CIRUJANO Y PARTERO",
    "anioEgreso": "2011",
    "tipo": "C1",
    "idCedula": "1234567",
}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _mx(number="1234567") -> LicenseClaim:
    return LicenseClaim(country="Mexico", country_code="MX", number=number)


def _us(state="TX", number="Q1234") -> LicenseClaim:
    return LicenseClaim(country="USA", country_code="US", number=number, state=state)


class TestMexicoSEPRegistryClient:
    def test_clean_cedula(self):
        assert clean_cedula(" 12-345 67 ") == "1234567"
        assert clean_cedula(None) == ""

    def test_parse_sep_response_joins_name_parts(self):
        lookup = parse_sep_response({"items": [SEP_ITEM]}, "1234567")
        assert lookup.found is True
        assert lookup.fields.legal_name == "ANA RUIZ GARCIA"
        assert lookup.fields.institution == "UNIVERSIDAD DE GUADALAJARA"
        assert lookup.fields.graduation_year == 2011
        assert lookup.source == "sep"

    def test_parse_sep_response_empty(self):
        assert parse_sep_response({"items": []}, "1234567").found is False

    @pytest.mark.asyncio
    async def test_primary_hit(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"items": [SEP_ITEM]})

        async with _client(handler) as http:
            client = MexicoSEPRegistryClient(http_client=http, retry_attempts=1)
            lookup = await client.lookup(_mx())

        assert lookup.found is True
        assert lookup.fields.legal_name == "ANA RUIZ GARCIA"
        assert len(requests) == 1
        assert requests[0].method == "POST"
        form = parse_qs(requests[0].content.decode())
        assert json.loads(form["json"][0]) == {"maxResult": 10, "numero": "1234567"}

    @pytest.mark.asyncio
    async def test_falls_back_to_mirror_on_server_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(503)
            assert request.url.params["cedula"] == "1234567"
            return httpx.Response(
                200, json={"cedula": "1234567", "nombre": "ANA RUIZ GARCIA"}
            )

        async with _client(handler) as http:
            client = MexicoSEPRegistryClient(http_client=http, retry_attempts=1)
            lookup = await client.lookup(_mx())

        assert lookup.found is True
        assert lookup.source == "sep_mirror"

    @pytest.mark.asyncio
    async def test_not_found_everywhere(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(200, json={"items": []})
            return httpx.Response(200, json={})

        async with _client(handler) as http:
            client = MexicoSEPRegistryClient(http_client=http, retry_attempts=1)
            lookup = await client.lookup(_mx())

        assert lookup.found is False
        assert lookup.error is None

    @pytest.mark.asyncio
    async def test_network_failure_never_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("registry unreachable", request=request)

        async with _client(handler) as http:
            client = MexicoSEPRegistryClient(http_client=http, retry_attempts=1)
            lookup = await client.lookup(_mx())

        assert lookup.found is False
        assert "ConnectError" in lookup.error

    @pytest.mark.asyncio
    async def test_malformed_payload_never_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>maintenance</html>")

        async with _client(handler) as http:
            client = MexicoSEPRegistryClient(http_client=http, retry_attempts=1)
            lookup = await client.lookup(_mx())

        assert lookup.found is False
        assert lookup.error

    @pytest.mark.asyncio
    @pytest.mark.parametrize("number", ["123", "12345678901", "ABC"])
    async def test_invalid_cedula_skips_network(self, number):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        async with _client(handler) as http:
            client = MexicoSEPRegistryClient(http_client=http)
            lookup = await client.lookup(_mx(number))

        assert lookup.found is False
        assert lookup.error == "invalid_format"

    @pytest.mark.asyncio
    async def test_unsupported_jurisdiction(self):
        client = MexicoSEPRegistryClient()
        lookup = await client.lookup(_us())
        assert lookup.supported is False
        assert lookup.error == "unsupported_jurisdiction"


class TestUSStateBoardRegistryClient:
    def test_supports_valid_states_only(self):
        client = USStateBoardRegistryClient()
        assert client.supports(_us("tx")) is True
        assert client.supports(_us("ZZ")) is False
        assert client.supports(_mx()) is False

    def test_board_lookup_url(self):
        client = USStateBoardRegistryClient()
        assert client.board_lookup_url(_us("TX")) == get_state_board_url("TX")

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2027-06-30", date(2027, 6, 30)),
            ("06/30/2027", date(2027, 6, 30)),
            ("2027-06-30T00:00:00Z", date(2027, 6, 30)),
            ("June 2027", None),
            (None, None),
        ],
    )
    def test_parse_date(self, value, expected):
        assert parse_date(value) == expected

    @pytest.mark.asyncio
    async def test_docinfo_hit(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/search"
            assert request.url.params["state"] == "TX"
            assert request.url.params["lastName"] == "Smith"
            return httpx.Response(
                200,
                json={
                    "physician": {
                        "fullName": "John A Smith",
                        "licenseNumber": "Q1234",
                        "status": "Active",
                        "expirationDate": "2027-06-30",
                    }
                },
            )

        async with _client(handler) as http:
            client = USStateBoardRegistryClient(http_client=http, retry_attempts=1)
            lookup = await client.lookup(_us(), last_name="Smith")

        assert lookup.found is True
        assert lookup.source == "docinfo"
        assert lookup.fields.license_status == "Active"
        assert lookup.fields.expiration_date == date(2027, 6, 30)

    @pytest.mark.asyncio
    async def test_falls_back_to_state_board(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == httpx.URL(settings.DOCINFO_URL).host:
                return httpx.Response(200, json={"physician": None})
            assert request.method == "POST"
            return httpx.Response(
                200,
                json={
                    "Results": [
                        {
                            "FirstName": "John",
                            "LastName": "Smith",
                            "LicenseNumber": "Q1234",
                            "Status": "Active",
                        }
                    ]
                },
            )

        async with _client(handler) as http:
            client = USStateBoardRegistryClient(http_client=http, retry_attempts=1)
            lookup = await client.lookup(_us("TX"), last_name="Smith")

        assert lookup.found is True
        assert lookup.source == "tx_board"
        assert lookup.fields.legal_name == "John Smith"

    @pytest.mark.asyncio
    async def test_state_without_board_endpoint_uses_docinfo_only(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.host)
            return httpx.Response(200, json={})

        async with _client(handler) as http:
            client = USStateBoardRegistryClient(http_client=http, retry_attempts=1)
            lookup = await client.lookup(_us("OH"))

        assert lookup.found is False
        assert len(calls) == 1


class TestRegistryDirectory:
    def test_routes_by_jurisdiction(self):
        directory = RegistryDirectory.default()
        assert isinstance(directory.client_for(_mx()), MexicoSEPRegistryClient)
        assert isinstance(directory.client_for(_us()), USStateBoardRegistryClient)

    def test_unknown_jurisdiction(self):
        directory = RegistryDirectory.default()
        claim = LicenseClaim(country="Colombia", country_code="CO", number="998877")
        assert directory.client_for(claim) is None

    def test_country_label_without_code(self):
        directory = RegistryDirectory.default()
        claim = LicenseClaim(country="México", number="1234567")
        assert isinstance(directory.client_for(claim), MexicoSEPRegistryClient)
