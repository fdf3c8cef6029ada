"""HTTP client for the upstream scan/analysis service.

All technical analysis lives upstream; this module only moves JSON across the
wire and checks that what comes back has the shape the dashboard needs.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
from uuid import uuid4

import httpx

from scanboard.core.settings import settings
from scanboard.obs import log_event

logger = logging.getLogger(__name__)

SCAN_CACHED_PATH = "/scan-cached"
SCAN_PATH = "/api/stocks/scan"

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

# Minimum shape every StockData record must carry
REQUIRED_STRING_FIELDS = ("Symbol", "Name")
REQUIRED_NUMBER_FIELDS = ("Current Price", "RSI (14)")

QueryParams = Union[Dict[str, Any], Sequence[Tuple[str, str]]]


class ScanApiError(RuntimeError):
    """Base class for upstream scan API failures."""


class ScanApiUnavailable(ScanApiError):
    """The upstream could not be reached (refused, DNS, timeout)."""


class ScanApiHTTPError(ScanApiError):
    def __init__(self, status_code: int, reason: str) -> None:
        super().__init__(f"API returned {status_code}: {reason}")
        self.status_code = status_code
        self.reason = reason


class MalformedScanResponse(ScanApiError):
    pass


class InvalidStockData(ScanApiError):
    pass


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_stock_record(item: Any) -> Dict[str, Any]:
    """Return ``item`` unchanged if it has the minimum StockData shape."""
    if not isinstance(item, dict):
        raise InvalidStockData(f"Invalid stock data structure: {json.dumps(item, default=str)}")
    ok = all(isinstance(item.get(f), str) for f in REQUIRED_STRING_FIELDS) and all(
        _is_number(item.get(f)) for f in REQUIRED_NUMBER_FIELDS
    )
    if not ok:
        raise InvalidStockData(f"Invalid stock data structure: {json.dumps(item, default=str)}")
    return item


def validate_stock_records(payload: Any) -> List[Dict[str, Any]]:
    """Validate a ``{results: [...]}`` payload; one bad record fails the batch."""
    results = payload.get("results") if isinstance(payload, dict) else None
    if not isinstance(results, list):
        raise MalformedScanResponse("API response does not contain results array")
    return [validate_stock_record(item) for item in results]


class ScanApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base = (base_url or settings.scan_api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.SCAN_API_TIMEOUT
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _session(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base,
                timeout=self.timeout,
                headers=DEFAULT_HEADERS,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        cid = uuid4().hex[:12]
        s = await self._session()
        log_event("scan.request", cid=cid, method=method, url=url)
        try:
            r = await s.request(method, url, **kwargs)
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            log_event("scan.unavailable", level="warning", cid=cid, url=url, error=str(exc))
            raise ScanApiUnavailable(f"Could not connect to the stock analysis API server at {self.base}: {exc}") from exc
        except httpx.HTTPError as exc:
            log_event("scan.error", level="error", cid=cid, url=url, error=str(exc))
            raise ScanApiError(str(exc)) from exc
        log_event("scan.response", cid=cid, status=r.status_code, url=url)
        if r.status_code >= 400:
            raise ScanApiHTTPError(r.status_code, r.reason_phrase or "")
        return r

    @staticmethod
    def _json(r: httpx.Response) -> Any:
        try:
            return r.json()
        except ValueError as exc:
            raise MalformedScanResponse(f"Upstream returned non-JSON body: {exc}") from exc

    async def scan_cached(self, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """POST /scan-cached and return the validated ``results`` list."""
        kwargs: Dict[str, Any] = {}
        if filters is not None:
            kwargs["json"] = filters
        r = await self._request("POST", SCAN_CACHED_PATH, **kwargs)
        records = validate_stock_records(self._json(r))
        logger.debug("scan-cached returned %d records", len(records))
        return records

    async def scan(self, params: Optional[QueryParams] = None) -> Any:
        """GET /api/stocks/scan with the given query params; raw JSON back."""
        r = await self._request("GET", SCAN_PATH, params=params or None)
        return self._json(r)


_shared_client: Optional[ScanApiClient] = None


def get_scan_client() -> ScanApiClient:
    """FastAPI dependency: one shared client per process."""
    global _shared_client
    if _shared_client is None:
        _shared_client = ScanApiClient()
    return _shared_client


async def close_scan_client() -> None:
    global _shared_client
    if _shared_client is not None:
        await _shared_client.close()
        _shared_client = None
