from __future__ import annotations

import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query

from scanboard.core.errors import ApiError
from scanboard.obs import log_event
from scanboard.repositories.watchlist import (
    DuplicateWatchlistItem,
    InvalidWatchlistItem,
    WatchlistRepository,
    get_watchlist_repository,
    normalize_symbol,
)
from scanboard.schemas.watchlist import (
    MessageResponse,
    WatchlistCreate,
    WatchlistItem,
    WatchlistUpdate,
    snapshot_metrics,
)
from scanboard.security import current_user_id
from scanboard.services.watchlist import filter_by_label, sort_items

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/watchlist", tags=["watchlist"])


def _internal(error: str, exc: Exception) -> ApiError:
    logger.exception("%s", error)
    return ApiError(500, error, message=str(exc) or type(exc).__name__)


async def _owned_item(repo: WatchlistRepository, item_id: str, user_id: str) -> WatchlistItem:
    item = await repo.find_by_id(item_id)
    if item is None:
        raise ApiError(404, "Watchlist item not found")
    if item.user_id != user_id:
        raise ApiError(403, "Unauthorized")
    return item


@router.get("", response_model=List[WatchlistItem])
async def list_watchlist(
    label: Optional[str] = Query(default=None, max_length=64),
    sort_by: str = Query(default="createdAt", max_length=64),
    sort_order: Literal["asc", "desc"] = Query(default="desc"),
    user_id: str = Depends(current_user_id),
    repo: WatchlistRepository = Depends(get_watchlist_repository),
) -> List[WatchlistItem]:
    try:
        items = await repo.list(user_id)
    except Exception as exc:
        raise _internal("Failed to fetch watchlist", exc)
    return sort_items(filter_by_label(items, label), sort_by, sort_order)


@router.post("", response_model=WatchlistItem, status_code=201)
async def add_to_watchlist(
    body: WatchlistCreate,
    user_id: str = Depends(current_user_id),
    repo: WatchlistRepository = Depends(get_watchlist_repository),
) -> WatchlistItem:
    symbol = normalize_symbol(body.symbol)
    if not symbol:
        raise ApiError(400, "Symbol is required")
    try:
        if await repo.find_by_owner_and_symbol(user_id, symbol):
            raise ApiError(409, "Stock already in watchlist")
        item = await repo.create(user_id, symbol, body.label, snapshot_metrics(body))
    except ApiError:
        raise
    except DuplicateWatchlistItem:
        # lost a race with a concurrent add of the same symbol
        raise ApiError(409, "Stock already in watchlist")
    except InvalidWatchlistItem as exc:
        raise ApiError(400, str(exc))
    except Exception as exc:
        raise _internal("Failed to add to watchlist", exc)
    log_event("watchlist.added", user=user_id, symbol=symbol, id=item.id)
    return item


@router.get("/{item_id}", response_model=WatchlistItem)
async def get_watchlist_item(
    item_id: str,
    user_id: str = Depends(current_user_id),
    repo: WatchlistRepository = Depends(get_watchlist_repository),
) -> WatchlistItem:
    try:
        return await _owned_item(repo, item_id, user_id)
    except ApiError:
        raise
    except Exception as exc:
        raise _internal("Failed to fetch watchlist item", exc)


@router.patch("/{item_id}", response_model=WatchlistItem)
async def update_watchlist_item(
    item_id: str,
    body: WatchlistUpdate,
    user_id: str = Depends(current_user_id),
    repo: WatchlistRepository = Depends(get_watchlist_repository),
) -> WatchlistItem:
    label = (body.label or "").strip()
    if not label:
        raise ApiError(400, "Label is required")
    try:
        await _owned_item(repo, item_id, user_id)
        updated = await repo.update(item_id, label)
    except ApiError:
        raise
    except Exception as exc:
        raise _internal("Failed to update watchlist item", exc)
    if updated is None:
        raise ApiError(404, "Watchlist item not found")
    return updated


@router.delete("/{item_id}", response_model=MessageResponse)
async def remove_from_watchlist(
    item_id: str,
    user_id: str = Depends(current_user_id),
    repo: WatchlistRepository = Depends(get_watchlist_repository),
) -> MessageResponse:
    try:
        item = await _owned_item(repo, item_id, user_id)
        removed = await repo.delete(item_id)
    except ApiError:
        raise
    except Exception as exc:
        raise _internal("Failed to remove from watchlist", exc)
    if not removed:
        raise ApiError(404, "Watchlist item not found")
    log_event("watchlist.removed", user=user_id, symbol=item.symbol, id=item_id)
    return MessageResponse(message="Removed from watchlist")
