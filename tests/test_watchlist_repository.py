import asyncio

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from scanboard.db.models import Base
from scanboard.repositories.watchlist import (
    DuplicateWatchlistItem,
    InMemoryWatchlistRepository,
    InvalidWatchlistItem,
    SqlWatchlistRepository,
)


async def _exercise(repo):
    a = await repo.create("u1", "aaa", None, {"rsi": 50, "nested": {"k": [1, 2]}})
    assert a.symbol == "AAA"
    assert a.label == "All"
    assert a.created_at == a.updated_at

    with pytest.raises(DuplicateWatchlistItem):
        await repo.create("u1", "AAA", "Tech", {})
    with pytest.raises(InvalidWatchlistItem):
        await repo.create("u1", "  ", None, {})

    b = await repo.create("u1", "BBB", "Tech", {})
    await repo.create("u2", "AAA", None, {})

    assert (await repo.find_by_owner_and_symbol("u1", "aaa")).id == a.id
    assert await repo.find_by_owner_and_symbol("u1", "ZZZ") is None
    assert (await repo.find_by_id(b.id)).label == "Tech"
    assert await repo.find_by_id("missing") is None
    assert await repo.count("u1") == 2

    updated = await repo.update(a.id, "Swing")
    assert updated.label == "Swing"
    assert updated.metrics == a.metrics
    assert updated.symbol == a.symbol
    assert updated.updated_at >= updated.created_at
    assert await repo.update("missing", "x") is None

    assert await repo.delete(b.id) is True
    assert await repo.delete(b.id) is False
    items = await repo.list("u1")
    assert [it.id for it in items] == [a.id]
    assert items[0].label == "Swing"

    await repo.clear()
    assert await repo.count("u1") == 0
    assert await repo.count("u2") == 0


def test_memory_repository_contract():
    asyncio.run(_exercise(InMemoryWatchlistRepository()))


def test_memory_repository_hands_out_copies():
    async def run():
        repo = InMemoryWatchlistRepository()
        item = await repo.create("u1", "AAA", None, {"rsi": 50})
        item.metrics["rsi"] = 1
        (await repo.list("u1"))[0].metrics["rsi"] = 2
        stored = await repo.find_by_id(item.id)
        assert stored.metrics == {"rsi": 50}

    asyncio.run(run())


def test_memory_repository_concurrent_adds_keep_one():
    async def run():
        repo = InMemoryWatchlistRepository()
        results = await asyncio.gather(
            *(repo.create("u1", "AAA", None, {}) for _ in range(5)), return_exceptions=True
        )
        created = [r for r in results if not isinstance(r, Exception)]
        assert len(created) == 1
        assert all(isinstance(r, DuplicateWatchlistItem) for r in results if isinstance(r, Exception))
        assert await repo.count("u1") == 1

    asyncio.run(run())


def test_sql_repository_contract(tmp_path):
    async def run():
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'watchlist.db'}")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        factory = async_sessionmaker(engine, expire_on_commit=False)
        try:
            async with factory() as session:
                await _exercise(SqlWatchlistRepository(session))
        finally:
            await engine.dispose()

    asyncio.run(run())
