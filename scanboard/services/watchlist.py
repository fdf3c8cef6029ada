from __future__ import annotations

import datetime as dt
from typing import Any, List, Optional, Tuple

from scanboard.schemas.watchlist import WatchlistItem

# Sort keys read off the item itself; anything else is looked up in metrics.
_ITEM_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "symbol": "symbol",
    "label": "label",
}


def _parse_ts(value: Any) -> Optional[dt.datetime]:
    if isinstance(value, dt.datetime):
        ts = value
    elif isinstance(value, str):
        try:
            ts = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    return ts if ts.tzinfo else ts.replace(tzinfo=dt.timezone.utc)


def _sort_value(item: WatchlistItem, field: str) -> Any:
    attr = _ITEM_FIELDS.get(field)
    if attr:
        value = getattr(item, attr)
    else:
        value = item.metrics.get(field)
    if field in ("createdAt", "updatedAt", "addedAt"):
        return _parse_ts(value)
    return value


def _rank(value: Any) -> Tuple[int, Any]:
    # numbers, then strings, then timestamps; missing values always sort last
    if isinstance(value, bool):
        return (0, int(value))
    if isinstance(value, (int, float)):
        return (0, value)
    if isinstance(value, str):
        return (1, value.casefold())
    if isinstance(value, dt.datetime):
        return (2, value.timestamp())
    return (3, 0)


def sort_items(items: List[WatchlistItem], sort_by: str = "createdAt", sort_order: str = "desc") -> List[WatchlistItem]:
    """Sort watchlist items by an item field or a metrics key.

    Items whose value is missing or not comparable end up last regardless of
    direction. Ties keep newest-inserted first when descending.
    """
    desc = sort_order == "desc"
    present = []
    missing = []
    for it in items:
        kind, key = _rank(_sort_value(it, sort_by))
        (missing if kind == 3 else present).append(((kind, key), it))

    ordered = list(reversed(present)) if desc else present
    ordered.sort(key=lambda pair: pair[0], reverse=desc)
    return [it for _, it in ordered] + [it for _, it in missing]


def filter_by_label(items: List[WatchlistItem], label: Optional[str]) -> List[WatchlistItem]:
    if not label:
        return items
    return [it for it in items if it.label == label]
