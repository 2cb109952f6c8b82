"""
Google Scholar profile client.

Scholar has no official API; author profiles are fetched through SerpAPI's
google_scholar_author engine when SERPAPI_KEY is set.
"""

import logging
from typing import Optional
from urllib.parse import parse_qs, urlparse

import httpx

from credverify.core.config import settings
from credverify.models import VerificationMethod, VerificationType
from credverify.verification.profile_clients.base import BaseProfileClient
from credverify.verification.schemas import (
    ProfileData,
    ProfileLookup,
    ProfilePublication,
)

logger = logging.getLogger(__name__)

SCHOLAR_HOST = "scholar.google.com"
MAX_ARTICLES = 20


def extract_scholar_id(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    values = parse_qs(urlparse(url.strip()).query).get("user")
    return values[0] if values and values[0] else None


def _metric(table: list, index: int, key: str) -> Optional[int]:
    try:
        return int(table[index][key]["all"])
    except (IndexError, KeyError, TypeError, ValueError):
        return None


def _year(value) -> Optional[int]:
    try:
        return int(str(value)[:4]) if value else None
    except ValueError:
        return None


def parse_serpapi_author(data: dict) -> ProfileData:
    author = data.get("author") or {}
    table = (data.get("cited_by") or {}).get("table") or []
    return ProfileData(
        full_name=author.get("name"),
        affiliation=author.get("affiliations"),
        photo_url=author.get("thumbnail"),
        citation_count=_metric(table, 0, "citations"),
        h_index=_metric(table, 1, "h_index"),
        i10_index=_metric(table, 2, "i10_index"),
        publications=[
            ProfilePublication(title=article["title"], year=_year(article.get("year")))
            for article in (data.get("articles") or [])[:MAX_ARTICLES]
            if article.get("title")
        ],
    )


class ScholarProfileClient(BaseProfileClient):
    name = "google_scholar"
    verification_type = VerificationType.PUBLICATIONS_SCHOLAR
    method = VerificationMethod.SCHOLAR_FETCH
    url_field = "google_scholar_url"
    invalid_url_severity = "medium"

    def __init__(self, *args, api_key: Optional[str] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.api_key = api_key if api_key is not None else settings.SERPAPI_KEY

    def validate_url(self, url: Optional[str]) -> bool:
        if not url:
            return False
        parsed = urlparse(url.strip())
        return (
            parsed.scheme in ("http", "https")
            and (parsed.hostname or "").lower() == SCHOLAR_HOST
            and parsed.path.rstrip("/") == "/citations"
            and extract_scholar_id(url) is not None
        )

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def fetch(self, client: httpx.AsyncClient, url: str) -> ProfileLookup:
        response = await self._request(
            client,
            "GET",
            settings.SERPAPI_URL,
            params={
                "engine": "google_scholar_author",
                "author_id": extract_scholar_id(url),
                "api_key": self.api_key,
            },
        )
        data = response.json()
        if not data or not data.get("author"):
            return ProfileLookup(valid=True, found=False, raw=data, source="serpapi")

        return ProfileLookup(
            valid=True,
            found=True,
            profile=parse_serpapi_author(data),
            raw=data,
            source="serpapi",
        )
