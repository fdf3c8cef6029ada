from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from scanboard.core.errors import ApiError
from scanboard.core.settings import settings
from scanboard.obs import log_event
from scanboard.schemas.stocks import FilterParams, FilterResult, ScenarioCatalog, ScenarioOut
from scanboard.services.filters import (
    DEFAULT_FILTERS,
    DEFAULT_SCENARIO,
    SCENARIOS,
    VIEW_ALL_FILTERS,
    build_scan_params,
    failure_notification,
    filter_name,
    normalize_scan_response,
    success_notification,
)
from scanboard.services.scan_client import (
    ScanApiClient,
    ScanApiError,
    ScanApiHTTPError,
    ScanApiUnavailable,
    get_scan_client,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stocks", tags=["stocks"])

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def _dump(filters: FilterParams) -> dict:
    return filters.model_dump(by_alias=True, exclude_none=True)


@router.get("/scenarios", response_model=ScenarioCatalog)
async def list_scenarios() -> ScenarioCatalog:
    return ScenarioCatalog(
        default_scenario=DEFAULT_SCENARIO,
        scenarios=[
            ScenarioOut(id=s.id, label=s.label, description=s.description, filters=_dump(s.filters))
            for s in SCENARIOS.values()
        ],
        default_filters=_dump(DEFAULT_FILTERS),
        view_all_filters=_dump(VIEW_ALL_FILTERS),
    )


@router.get("/scan")
async def scan_passthrough(request: Request, client: ScanApiClient = Depends(get_scan_client)):
    """Forward every query param to the upstream scan endpoint untouched."""
    params = list(request.query_params.multi_items())
    details = f"Make sure the stock analysis API server is running on {settings.scan_api_base_url}"
    try:
        data = await client.scan(params)
    except ScanApiHTTPError as exc:
        logger.error("Stock scan API error: %s %s", exc.status_code, exc.reason)
        raise ApiError(exc.status_code, "Stock scan API error", message=str(exc), details=details)
    except ScanApiUnavailable:
        raise ApiError(
            503,
            "Connection failed",
            message="Could not connect to the stock analysis API server",
            details=f"Please make sure the stock analysis API server is running on {settings.scan_api_base_url}",
        )
    except Exception as exc:
        logger.exception("Stock scan API proxy error")
        raise ApiError(500, "Internal server error", message=str(exc) or "Unknown error occurred")

    count = None
    if isinstance(data, dict) and isinstance(data.get("data"), list):
        count = len(data["data"])
    elif isinstance(data, list):
        count = len(data)
    log_event("scan.proxied", results=count)
    return JSONResponse(content=data, headers=NO_CACHE_HEADERS)


@router.post("/filter", response_model=FilterResult)
async def filter_stocks(
    filters: FilterParams,
    client: ScanApiClient = Depends(get_scan_client),
) -> FilterResult:
    """Run a scenario or advanced filter against the scan API.

    Failures never raise: the dashboard gets an empty result set and a
    notification to show the user.
    """
    name = filter_name(filters)
    params = build_scan_params(filters)
    log_event("filter.request", filter=name, params="&".join(f"{k}={v}" for k, v in params))
    try:
        page = normalize_scan_response(await client.scan(params))
    except (ScanApiError, TypeError, ValueError) as exc:
        log_event("filter.failed", level="warning", filter=name, error=str(exc))
        return FilterResult(ok=False, filter_name=name, data=[], total=0, notification=failure_notification(str(exc)))
    return FilterResult(ok=True, filter_name=name, data=page.data, total=page.total, notification=success_notification(page))
