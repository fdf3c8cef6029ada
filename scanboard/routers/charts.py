from __future__ import annotations

from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Query

from scanboard.core.errors import ApiError
from scanboard.repositories.watchlist import normalize_symbol

router = APIRouter(prefix="/api/charts", tags=["charts"])

TV_EMBED_BASE = "https://s.tradingview.com/widgetembed/"

# Dashboard timeframe -> TradingView interval
_TIMEFRAMES = {
    "1D": ("1 Day", "1"),
    "1W": ("1 Week", "1W"),
    "1M": ("1 Month", "1M"),
    "3M": ("3 Months", "3M"),
    "1Y": ("1 Year", "12M"),
}
DEFAULT_TIMEFRAME = "1D"


def _normalize_timeframe(value: Optional[str]) -> str:
    raw = (value or "").strip().upper()
    return raw if raw in _TIMEFRAMES else DEFAULT_TIMEFRAME


def embed_url(symbol: str, interval: str) -> str:
    params = {
        "frameElementId": "tradingview_chart",
        "symbol": symbol,
        "interval": interval,
        "hidesidetoolbar": 1,
        "hidetoptoolbar": 1,
        "symboledit": 1,
        "saveimage": 1,
        "toolbarbg": "F1F3F6",
        "studies": "[]",
        "hideideas": 1,
        "theme": "Light",
        "style": 1,
        "timezone": "Etc/UTC",
        "locale": "en",
    }
    return f"{TV_EMBED_BASE}?{urlencode(params)}"


@router.get("/{symbol}")
def chart_config(symbol: str, timeframe: Optional[str] = Query(default=None, max_length=8)):
    sym = normalize_symbol(symbol)
    if not sym:
        raise ApiError(400, "Symbol is required")
    tf = _normalize_timeframe(timeframe)
    interval = _TIMEFRAMES[tf][1]
    return {
        "ok": True,
        "symbol": sym,
        "timeframe": tf,
        "interval": interval,
        "timeframes": [{"value": k, "label": label, "interval": iv} for k, (label, iv) in _TIMEFRAMES.items()],
        "embedUrl": embed_url(sym, interval),
    }
