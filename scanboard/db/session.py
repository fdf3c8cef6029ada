from __future__ import annotations

import ssl
from typing import Any, AsyncGenerator, Dict, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from scanboard.core.settings import settings

from .models import Base

SQLITE_FALLBACK_URL = "sqlite+aiosqlite:///./local.db"

# Lazily (re)built so tests can point settings.DATABASE_URL somewhere else after import.
engine: Optional[AsyncEngine] = None
SessionLocal: Optional[async_sessionmaker[AsyncSession]] = None
_engine_url: Optional[str] = None


def _ssl_connect_args(mode: Optional[str], root_cert: Optional[str]) -> Dict[str, Any]:
    mode_norm = (mode or "").strip().lower()
    if mode_norm == "disable":
        return {"ssl": False}
    if mode_norm in ("", "allow", "prefer"):
        return {}
    ctx = ssl.create_default_context(cafile=root_cert) if root_cert else ssl.create_default_context()
    if mode_norm == "require" and not root_cert:
        # libpq "require" encrypts without verifying the server
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    elif mode_norm == "verify-ca":
        ctx.check_hostname = False
    return {"ssl": ctx}


def normalize_url(url: str) -> Tuple[str, Dict[str, Any]]:
    """Map sync driver URLs onto their async drivers.

    ``postgres://`` and ``postgresql+psycopg://`` become ``postgresql+asyncpg://``
    (libpq ``sslmode``/``sslrootcert`` query args move into ``connect_args``);
    plain ``sqlite://`` becomes ``sqlite+aiosqlite://``.
    """
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()

    if scheme == "sqlite":
        # urlunparse would collapse the empty netloc in sqlite:///path
        return "sqlite+aiosqlite" + url[len("sqlite"):], {}
    if not scheme.startswith("postgres") or scheme == "postgresql+asyncpg":
        return url, {}

    sslmode: Optional[str] = None
    root_cert: Optional[str] = None
    kept = []
    for key, val in parse_qsl(parsed.query, keep_blank_values=True):
        low = key.lower()
        if low == "sslmode":
            sslmode = val or None
        elif low == "sslrootcert":
            root_cert = val or None
        else:
            kept.append((key, val))

    normalized = urlunparse(parsed._replace(scheme="postgresql+asyncpg", query=urlencode(kept, doseq=True)))
    return normalized, _ssl_connect_args(sslmode, root_cert)


def database_url() -> str:
    return (settings.DATABASE_URL or "").strip() or SQLITE_FALLBACK_URL


async def _ensure_engine() -> async_sessionmaker[AsyncSession]:
    global engine, SessionLocal, _engine_url
    url = database_url()
    if engine is not None and SessionLocal is not None and url == _engine_url:
        return SessionLocal
    if engine is not None:
        # the URL moved; release the old pool before replacing it
        await engine.dispose()
    normalized, connect_args = normalize_url(url)
    engine = create_async_engine(normalized, future=True, pool_pre_ping=True, connect_args=connect_args)
    SessionLocal = async_sessionmaker(engine, expire_on_commit=False)
    _engine_url = url
    return SessionLocal


async def init_db() -> None:
    """Create tables on startup."""

    await _ensure_engine()
    assert engine is not None
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    global engine, SessionLocal, _engine_url
    if engine is not None:
        await engine.dispose()
    engine = None
    SessionLocal = None
    _engine_url = None


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    factory = await _ensure_engine()
    async with factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
