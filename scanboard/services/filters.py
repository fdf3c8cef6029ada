"""Dashboard filter presets and their translation into scan API query params.

Two modes:

* scenario mode: a named preset; only the scenario id, ``limit`` and the one
  knob each scenario takes are sent. Advanced fields are never forwarded, even
  if the UI still holds values for them, so the upstream does not filter twice.
* advanced mode: free-form filters; only values that actually narrow the
  result set are sent (e.g. ``max_score`` is dropped at its ceiling of 100).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from scanboard.schemas.stocks import FilterParams
from scanboard.services.scan_client import MalformedScanResponse

MAX_SCORE_CEILING = 100
MAX_DRAWDOWN_CEILING = 50
DEFAULT_SORT_FIELD = "Momentum Score"
CUSTOM_FILTER_NAME = "Custom Filter"


@dataclass(frozen=True)
class Scenario:
    id: str
    label: str
    description: str
    filters: FilterParams


SCENARIOS: Dict[str, Scenario] = {
    s.id: s
    for s in (
        Scenario(
            "perfect_momentum",
            "Perfect Momentum",
            "Stocks meeting ALL momentum criteria (best candidates)",
            FilterParams(scenario="perfect_momentum", limit=20),
        ),
        Scenario(
            "high_score",
            "High Score Stocks",
            "Top scoring opportunities",
            FilterParams(scenario="high_score", min_score=70, limit=15),
        ),
        Scenario(
            "consolidation",
            "Consolidation Candidates",
            "Range-bound stocks ready for potential breakout",
            FilterParams(scenario="consolidation", limit=25),
        ),
        Scenario(
            "optimal_drawdown",
            "Optimal Drawdown",
            "Stocks 10-40% down from 52W high (buying opportunities)",
            FilterParams(scenario="optimal_drawdown", limit=30),
        ),
        Scenario(
            "breakout",
            "Breakout Candidates",
            "High volume activity stocks (>1.5x volume ratio)",
            FilterParams(scenario="breakout", min_volume=2.0, limit=20),
        ),
    )
}

DEFAULT_SCENARIO = "perfect_momentum"

DEFAULT_FILTERS = FilterParams(
    min_score=0,
    max_score=MAX_SCORE_CEILING,
    min_drawdown=0,
    max_drawdown=MAX_DRAWDOWN_CEILING,
    min_volume=1.0,
    sort_by=DEFAULT_SORT_FIELD,
    sort_order="desc",
    limit=50,
)

VIEW_ALL_FILTERS = FilterParams(limit=50, sort_by=DEFAULT_SORT_FIELD, sort_order="desc")


def _fmt(value: Any) -> str:
    # 2.0 -> "2", 1.5 -> "1.5"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_scan_params(filters: FilterParams) -> List[Tuple[str, str]]:
    """Translate dashboard filters into ordered scan API query params."""
    params: List[Tuple[str, str]] = []

    if filters.scenario:
        params.append(("scenario", filters.scenario))
        if filters.limit:
            params.append(("limit", _fmt(filters.limit)))
        if filters.scenario == "high_score" and filters.min_score:
            params.append(("min_score", _fmt(filters.min_score)))
        if filters.scenario == "breakout" and filters.min_volume:
            params.append(("min_volume", _fmt(filters.min_volume)))
        return params

    if filters.limit:
        params.append(("limit", _fmt(filters.limit)))
    if filters.offset:
        params.append(("offset", _fmt(filters.offset)))
    if filters.min_score is not None:
        params.append(("min_score", _fmt(filters.min_score)))
    if filters.max_score is not None and filters.max_score < MAX_SCORE_CEILING:
        params.append(("max_score", _fmt(filters.max_score)))
    if filters.min_drawdown is not None and filters.min_drawdown > 0:
        params.append(("min_drawdown", _fmt(filters.min_drawdown)))
    if filters.max_drawdown is not None and filters.max_drawdown < MAX_DRAWDOWN_CEILING:
        params.append(("max_drawdown", _fmt(filters.max_drawdown)))
    if filters.market_cap:
        params.append(("market_cap", filters.market_cap))
    if filters.min_volume and filters.min_volume > 0:
        params.append(("min_volume", _fmt(filters.min_volume)))
    if filters.sort_by:
        params.append(("sort_by", filters.sort_by))
        params.append(("sort_order", filters.sort_order or "desc"))
    return params


@dataclass
class ScanPage:
    data: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0


def normalize_scan_response(payload: Any) -> ScanPage:
    """Pull ``data``/``total`` out of a scan response; ``total`` falls back to ``len(data)``."""
    if not isinstance(payload, dict):
        raise MalformedScanResponse("Scan response is not a JSON object")
    data = payload.get("data") or []
    if not isinstance(data, list):
        raise MalformedScanResponse("Scan response 'data' is not a list")
    if not all(isinstance(row, dict) for row in data):
        raise MalformedScanResponse("Scan response 'data' contains non-object rows")
    total = payload.get("total") or len(data)
    return ScanPage(data=data, total=int(total))


def filter_name(filters: FilterParams) -> str:
    if not filters.scenario:
        return CUSTOM_FILTER_NAME
    scenario = SCENARIOS.get(filters.scenario)
    if scenario:
        return scenario.label
    return filters.scenario.replace("_", " ", 1)


def success_notification(page: ScanPage) -> str:
    return f"Found {len(page.data)} stocks matching criteria ({page.total} total available)"


def failure_notification(reason: Optional[str]) -> str:
    return f"Failed to fetch stocks: {reason or 'Unknown error occurred'}"
