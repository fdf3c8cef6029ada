from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FilterParams(BaseModel):
    """Dashboard filter state; accepts ``minScore`` or ``min_score`` style keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    scenario: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=0)
    offset: Optional[int] = Field(default=None, ge=0)
    min_score: Optional[float] = None
    max_score: Optional[float] = None
    min_drawdown: Optional[float] = None
    max_drawdown: Optional[float] = None
    market_cap: Optional[Literal["large", "mid", "small"]] = None
    min_volume: Optional[float] = None
    sort_by: Optional[str] = None
    sort_order: Optional[Literal["asc", "desc"]] = None


class ScenarioOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    label: str
    description: str
    filters: Dict[str, Any]


class ScenarioCatalog(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ok: bool = True
    default_scenario: str
    scenarios: List[ScenarioOut]
    default_filters: Dict[str, Any]
    view_all_filters: Dict[str, Any]


class FilterResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ok: bool
    filter_name: str
    data: List[Dict[str, Any]]
    total: int
    notification: str
