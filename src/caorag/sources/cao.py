"""Client for the FPS Employment joint work convention search portal."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, Sequence

import httpx

from caorag.errors import TransportError
from caorag.metrics.observability import get_logger

API_PREFIX = "/website-service/joint-work-convention"
DEFAULT_BASE_URL = "https://public-search.werk.belgie.be"

# Filters the portal expects even when unused.
_DATE_FILTERS = (
    "signatureDate",
    "noticeDepositMBDate",
    "royalDecreeDate",
    "publicationRoyalDecreeDate",
    "recordDate",
    "correctedDate",
    "depositDate",
)


class DocumentSource(Protocol):
    """Catalog that can enumerate and fetch raw documents."""

    def search(self, category: int | None = None) -> Sequence[str]:
        """Return absolute document URLs, optionally filtered by joint committee."""

    def fetch(self, url: str) -> bytes:
        """Return the raw bytes of one document."""


@dataclass(frozen=True)
class SearchConfig:
    base_url: str = DEFAULT_BASE_URL
    language: str = "nl"
    timeout: float = 60.0

    @property
    def search_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{API_PREFIX}/search"

    @property
    def document_base(self) -> str:
        return f"{self.base_url.rstrip('/')}{API_PREFIX}"


def build_search_request(category: int | None, *, language: str = "nl") -> dict[str, Any]:
    """Build the portal's search body; ``category`` is the joint committee number."""

    body: dict[str, Any] = {
        "lang": language,
        "jc": category,
        "title": None,
        "superTheme": "",
        "theme": None,
        "textSearchTerms": None,
        "depositNumber": {"start": None, "end": None},
        "enforced": None,
        "advancedSearch": False,
    }
    for name in _DATE_FILTERS:
        body[name] = {"start": None, "end": None}
    return body


class CaoSearchClient:
    """HTTPX-based client for the joint work convention search API."""

    def __init__(self, config: SearchConfig | None = None, *, client: httpx.Client | None = None) -> None:
        self._config = config or SearchConfig()
        self._client = client or httpx.Client(timeout=self._config.timeout, follow_redirects=True)
        self._logger = get_logger("source")

    def search(self, category: int | None = None) -> list[str]:
        body = build_search_request(category, language=self._config.language)
        headers = {"Accept": "application/json, text/plain, */*"}
        try:
            response = self._client.post(self._config.search_url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise TransportError(f"failed to execute search request: {exc}") from exc
        if response.status_code != httpx.codes.OK:
            raise TransportError(f"unexpected status code from search: {response.status_code}")
        try:
            results = response.json()
        except ValueError as exc:
            raise TransportError(f"failed to decode search response: {exc}") from exc
        if not isinstance(results, list):
            raise TransportError("failed to decode search response: expected a JSON array")

        urls: list[str] = []
        for result in results:
            link = result.get("documentLink") if isinstance(result, dict) else None
            if not link:
                continue
            if not isinstance(link, str):
                raise TransportError("failed to decode search response: documentLink is not a string")
            if not link.startswith("/"):
                link = "/" + link
            urls.append(self._config.document_base + link)
        self._logger.info("source.search", category=category, document_count=len(urls))
        return urls

    def fetch(self, url: str) -> bytes:
        try:
            response = self._client.get(url)
        except httpx.HTTPError as exc:
            raise TransportError(f"failed to download document: {exc}") from exc
        if response.status_code != httpx.codes.OK:
            raise TransportError(f"unexpected status code downloading {url}: {response.status_code}")
        return response.content

    def close(self) -> None:
        self._client.close()
