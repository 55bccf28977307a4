# -*- coding: utf-8 -*-
"""
Reporting backend reached by the `search` and `fetch` tools.

Two implementations:
- MockReportBackend: canned data, used by default and in tests.
- HttpReportBackend: talks to the reporting system's HTTP endpoints
  (bearer auth, bounded timeout, retry with backoff on 429/5xx).
"""

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol

import httpx

from .errors import BackendFailure, NotFound

logger = logging.getLogger(__name__)


class ReportBackend(Protocol):
    async def search(self, query: str) -> List[Dict[str, Any]]: ...

    async def fetch(self, record_id: str) -> Dict[str, Any]: ...


# -----------------------------------------------------------------------------
# Mock backend
# -----------------------------------------------------------------------------
BALANCE_SHEET = {
    "id": "-202",
    "title": "Balance Sheet Report",
    "period": "2025-09",
    "currency": "EUR",
    "columns": ["account", "amount"],
    "rows": [
        {"account": "Assets", "amount": 1250000.0},
        {"account": "Liabilities", "amount": 480000.0},
        {"account": "Equity", "amount": 770000.0},
    ],
}


class MockReportBackend:
    """
    Canned reporting data.

    `search` ignores the query and always returns the same single item;
    `fetch` looks the id up in `documents` and raises `NotFound` otherwise.
    """

    def __init__(
        self,
        items: Optional[List[Dict[str, Any]]] = None,
        documents: Optional[Mapping[str, Dict[str, Any]]] = None,
    ):
        self.items = items if items is not None else [{"id": "-202", "name": "Balance Sheet Report"}]
        self.documents = dict(documents) if documents is not None else {"-202": BALANCE_SHEET}

    async def search(self, query: str) -> List[Dict[str, Any]]:
        return [dict(item) for item in self.items]

    async def fetch(self, record_id: str) -> Dict[str, Any]:
        try:
            return dict(self.documents[record_id])
        except KeyError:
            raise NotFound(record_id) from None


# -----------------------------------------------------------------------------
# HTTP backend
# -----------------------------------------------------------------------------
async def backoff_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    retries: int = 3,
    delay: float = 0.5,
    **kwargs: Any,
) -> httpx.Response:
    """Retry on 429 and 5xx, honouring Retry-After; the last attempt is returned as-is."""
    for _ in range(retries):
        resp = await client.request(method, url, **kwargs)
        if resp.status_code != 429 and resp.status_code < 500:
            return resp
        retry_after = float(resp.headers.get("retry-after", delay))
        logger.warning(f"{method} {url} -> {resp.status_code}, retrying in {retry_after}s")
        await asyncio.sleep(retry_after)
        delay *= 2
    return await client.request(method, url, **kwargs)


class HttpReportBackend:
    def __init__(
        self,
        search_url: str,
        fetch_url: str,
        api_key: str = "",
        timeout: float = 20.0,
        retries: int = 3,
        backoff: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not search_url or not fetch_url:
            raise ValueError("HttpReportBackend needs both a search and a fetch URL")
        self.search_url = search_url
        self.fetch_url = fetch_url
        self.api_key = api_key
        self.timeout = timeout
        self.retries = retries
        self.backoff = backoff
        self._transport = transport

    def headers(self) -> Dict[str, str]:
        h = {"Accept": "application/json"}
        if self.api_key:
            h["Authorization"] = f"Bearer {self.api_key}"
        return h

    async def _get(self, url: str, params: Dict[str, str]) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                headers=self.headers(), timeout=self.timeout, transport=self._transport
            ) as client:
                return await backoff_request(
                    client, "GET", url, retries=self.retries, delay=self.backoff, params=params
                )
        except httpx.TimeoutException as e:
            raise BackendFailure(f"Reporting backend timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise BackendFailure(f"Reporting backend unreachable: {e}") from e

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise BackendFailure("Invalid upstream response") from e

    async def search(self, query: str) -> List[Dict[str, Any]]:
        resp = await self._get(self.search_url, {"query": query})
        if resp.status_code >= 400:
            raise BackendFailure(f"Search failed with HTTP {resp.status_code}")
        data = self._json(resp)
        items = data.get("items") if isinstance(data, dict) else data
        if not isinstance(items, list):
            raise BackendFailure("Search response has no item list")
        return items

    async def fetch(self, record_id: str) -> Dict[str, Any]:
        resp = await self._get(self.fetch_url, {"id": record_id})
        if resp.status_code == 404:
            raise NotFound(record_id)
        if resp.status_code >= 400:
            raise BackendFailure(f"Fetch failed with HTTP {resp.status_code}")
        data = self._json(resp)
        if data is None or data == {}:
            raise NotFound(record_id)
        if not isinstance(data, dict):
            raise BackendFailure("Fetch response is not a JSON object")
        return data


def build_backend(settings) -> ReportBackend:
    if settings.backend == "http":
        return HttpReportBackend(
            settings.search_url,
            settings.fetch_url,
            api_key=settings.api_key,
            timeout=settings.backend_timeout,
        )
    if settings.backend != "mock":
        raise ValueError(f"Unknown REPORT_BACKEND: {settings.backend!r}")
    return MockReportBackend()
