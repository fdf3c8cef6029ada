from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from scanboard.core.errors import ApiError
from scanboard.obs import log_event
from scanboard.services.scan_client import ScanApiClient, get_scan_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analyze", tags=["analyze"])

CACHE_HEADERS = {"Cache-Control": "public, s-maxage=3600, stale-while-revalidate=86400"}


async def _fetch(client: ScanApiClient, filters: Optional[Dict[str, Any]]) -> JSONResponse:
    try:
        records = await client.scan_cached(filters)
    except Exception as exc:
        logger.error("Failed to fetch stock data: %s", exc)
        raise ApiError(500, "Failed to fetch stock data", message=str(exc) or "Unknown error")
    log_event("analyze.fetched", results=len(records))
    return JSONResponse(content=records, headers=CACHE_HEADERS)


@router.get("")
async def analyze(client: ScanApiClient = Depends(get_scan_client)):
    return await _fetch(client, None)


@router.post("")
async def analyze_with_filters(request: Request, client: ScanApiClient = Depends(get_scan_client)):
    # Filters are forwarded as-is; an empty or unparseable body means no filters.
    try:
        body = await request.json()
    except ValueError:
        body = {}
    log_event("analyze.filters", filters=body)
    return await _fetch(client, body)
