from __future__ import annotations

import datetime as dt
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_LABEL = "All"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WatchlistItem(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    user_id: str
    symbol: str
    label: str = DEFAULT_LABEL
    metrics: Dict[str, Any] = Field(default_factory=dict)
    created_at: dt.datetime
    updated_at: dt.datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: dt.datetime) -> dt.datetime:
        # SQLite hands DateTime(timezone=True) columns back naive; they are stored as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.timezone.utc)
        return value


class WatchlistCreate(CamelModel):
    # symbol is optional here so a missing one is answered with 400, not 422
    symbol: Optional[str] = Field(default=None, max_length=32)
    label: Optional[str] = Field(default=None, max_length=64)
    name: Optional[str] = None
    current_price: Optional[float] = None
    rsi: Optional[float] = None
    drawdown: Optional[float] = None
    volume: Optional[float] = None
    momentum_score: Optional[float] = None
    metrics: Optional[Dict[str, Any]] = None


class WatchlistUpdate(CamelModel):
    label: Optional[str] = Field(default=None, max_length=64)


class MessageResponse(BaseModel):
    message: str


def iso_utc(ts: dt.datetime) -> str:
    """Millisecond ISO-8601 in UTC with a trailing ``Z``."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=dt.timezone.utc)
    return ts.astimezone(dt.timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def snapshot_metrics(body: WatchlistCreate, now: Optional[dt.datetime] = None) -> Dict[str, Any]:
    """Build the metrics snapshot stored alongside a new watchlist item.

    Named fields that were not sent are left out. Keys in ``body.metrics`` are
    merged last and win over the named ones.
    """
    now = now or dt.datetime.now(dt.timezone.utc)
    named = {
        "name": body.name,
        "currentPrice": body.current_price,
        "rsi": body.rsi,
        "drawdown": body.drawdown,
        "volume": body.volume,
        "momentumScore": body.momentum_score,
    }
    snap: Dict[str, Any] = {k: v for k, v in named.items() if v is not None}
    snap["addedAt"] = iso_utc(now)
    snap.update(body.metrics or {})
    return snap
