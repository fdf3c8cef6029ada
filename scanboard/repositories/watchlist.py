from __future__ import annotations

import asyncio
import copy
import datetime as dt
import time
import uuid
from abc import ABC, abstractmethod
from typing import Any, AsyncGenerator, Dict, List, Optional

from sqlalchemy import delete as sa_delete
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from scanboard.core.settings import settings
from scanboard.db.models import WatchlistEntry
from scanboard.db.session import get_session
from scanboard.schemas.watchlist import DEFAULT_LABEL, WatchlistItem


class WatchlistError(Exception):
    """Base class for watchlist store failures."""


class InvalidWatchlistItem(WatchlistError, ValueError):
    pass


class DuplicateWatchlistItem(WatchlistError):
    def __init__(self, user_id: str, symbol: str) -> None:
        super().__init__(f"{symbol} already in watchlist for {user_id}")
        self.user_id = user_id
        self.symbol = symbol


def normalize_symbol(symbol: Optional[str]) -> str:
    return (symbol or "").strip().upper()


def new_item_id() -> str:
    return f"watchlist_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class WatchlistRepository(ABC):
    """User-scoped watchlist storage.

    Each public operation is one atomic mutation; there are no multi-call
    transactions. Implementations never hand out references to their stored
    state.
    """

    @abstractmethod
    async def list(self, user_id: str) -> List[WatchlistItem]: ...

    @abstractmethod
    async def find_by_owner_and_symbol(self, user_id: str, symbol: str) -> Optional[WatchlistItem]: ...

    @abstractmethod
    async def find_by_id(self, item_id: str) -> Optional[WatchlistItem]: ...

    @abstractmethod
    async def create(
        self, user_id: str, symbol: str, label: Optional[str], metrics: Dict[str, Any]
    ) -> WatchlistItem: ...

    @abstractmethod
    async def update(self, item_id: str, label: str) -> Optional[WatchlistItem]: ...

    @abstractmethod
    async def delete(self, item_id: str) -> bool: ...

    @abstractmethod
    async def count(self, user_id: str) -> int: ...

    @abstractmethod
    async def clear(self) -> None: ...


class InMemoryWatchlistRepository(WatchlistRepository):
    """Process-local store; everything is gone on restart."""

    def __init__(self) -> None:
        self._items: List[WatchlistItem] = []
        self._lock = asyncio.Lock()

    async def list(self, user_id: str) -> List[WatchlistItem]:
        async with self._lock:
            return [it.model_copy(deep=True) for it in self._items if it.user_id == user_id]

    async def find_by_owner_and_symbol(self, user_id: str, symbol: str) -> Optional[WatchlistItem]:
        sym = normalize_symbol(symbol)
        async with self._lock:
            for it in self._items:
                if it.user_id == user_id and it.symbol == sym:
                    return it.model_copy(deep=True)
        return None

    async def find_by_id(self, item_id: str) -> Optional[WatchlistItem]:
        async with self._lock:
            for it in self._items:
                if it.id == item_id:
                    return it.model_copy(deep=True)
        return None

    async def create(
        self, user_id: str, symbol: str, label: Optional[str], metrics: Dict[str, Any]
    ) -> WatchlistItem:
        sym = normalize_symbol(symbol)
        if not sym:
            raise InvalidWatchlistItem("Symbol is required")
        now = _utcnow()
        item = WatchlistItem(
            id=new_item_id(),
            user_id=user_id,
            symbol=sym,
            label=label or DEFAULT_LABEL,
            metrics=copy.deepcopy(metrics),
            created_at=now,
            updated_at=now,
        )
        async with self._lock:
            if any(it.user_id == user_id and it.symbol == sym for it in self._items):
                raise DuplicateWatchlistItem(user_id, sym)
            self._items.append(item)
        return item.model_copy(deep=True)

    async def update(self, item_id: str, label: str) -> Optional[WatchlistItem]:
        async with self._lock:
            for idx, it in enumerate(self._items):
                if it.id == item_id:
                    updated = it.model_copy(update={"label": label, "updated_at": _utcnow()})
                    self._items[idx] = updated
                    return updated.model_copy(deep=True)
        return None

    async def delete(self, item_id: str) -> bool:
        async with self._lock:
            for idx, it in enumerate(self._items):
                if it.id == item_id:
                    del self._items[idx]
                    return True
        return False

    async def count(self, user_id: str) -> int:
        async with self._lock:
            return sum(1 for it in self._items if it.user_id == user_id)

    async def clear(self) -> None:
        async with self._lock:
            self._items = []


class SqlWatchlistRepository(WatchlistRepository):
    """Watchlist rows in the ``watchlist_items`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list(self, user_id: str) -> List[WatchlistItem]:
        stmt = select(WatchlistEntry).where(WatchlistEntry.user_id == user_id).order_by(WatchlistEntry.created_at)
        result = await self.session.execute(stmt)
        return [WatchlistItem.model_validate(row) for row in result.scalars().all()]

    async def find_by_owner_and_symbol(self, user_id: str, symbol: str) -> Optional[WatchlistItem]:
        stmt = select(WatchlistEntry).where(
            WatchlistEntry.user_id == user_id,
            WatchlistEntry.symbol == normalize_symbol(symbol),
        )
        row = (await self.session.execute(stmt)).scalars().first()
        return WatchlistItem.model_validate(row) if row else None

    async def find_by_id(self, item_id: str) -> Optional[WatchlistItem]:
        row = await self.session.get(WatchlistEntry, item_id)
        return WatchlistItem.model_validate(row) if row else None

    async def create(
        self, user_id: str, symbol: str, label: Optional[str], metrics: Dict[str, Any]
    ) -> WatchlistItem:
        sym = normalize_symbol(symbol)
        if not sym:
            raise InvalidWatchlistItem("Symbol is required")
        now = _utcnow()
        row = WatchlistEntry(
            id=new_item_id(),
            user_id=user_id,
            symbol=sym,
            label=label or DEFAULT_LABEL,
            metrics=copy.deepcopy(metrics),
            created_at=now,
            updated_at=now,
        )
        self.session.add(row)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise DuplicateWatchlistItem(user_id, sym) from exc
        await self.session.refresh(row)
        return WatchlistItem.model_validate(row)

    async def update(self, item_id: str, label: str) -> Optional[WatchlistItem]:
        row = await self.session.get(WatchlistEntry, item_id)
        if row is None:
            return None
        row.label = label
        row.updated_at = _utcnow()
        await self.session.commit()
        await self.session.refresh(row)
        return WatchlistItem.model_validate(row)

    async def delete(self, item_id: str) -> bool:
        row = await self.session.get(WatchlistEntry, item_id)
        if row is None:
            return False
        await self.session.delete(row)
        await self.session.commit()
        return True

    async def count(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(WatchlistEntry).where(WatchlistEntry.user_id == user_id)
        return int((await self.session.execute(stmt)).scalar_one())

    async def clear(self) -> None:
        await self.session.execute(sa_delete(WatchlistEntry))
        await self.session.commit()
        self.session.expunge_all()


_memory_repository = InMemoryWatchlistRepository()


def memory_repository() -> InMemoryWatchlistRepository:
    return _memory_repository


async def get_watchlist_repository() -> AsyncGenerator[WatchlistRepository, None]:
    """FastAPI dependency yielding the configured watchlist backend."""
    if settings.WATCHLIST_BACKEND == "memory":
        yield _memory_repository
        return
    async for session in get_session():
        yield SqlWatchlistRepository(session)
