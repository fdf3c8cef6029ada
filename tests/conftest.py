import asyncio
import os
import sys

# Ensure repository root is on sys.path so `import scanboard` works under pytest
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# Settings are read at import time; keep tests off the on-disk database
os.environ.setdefault("WATCHLIST_BACKEND", "memory")
os.environ.setdefault("SCAN_API_BASE", "http://scan.test")

import httpx
import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def repo():
    from scanboard.repositories.watchlist import InMemoryWatchlistRepository

    return InMemoryWatchlistRepository()


@pytest.fixture
def client(repo):
    from scanboard.main import app
    from scanboard.repositories.watchlist import get_watchlist_repository

    app.dependency_overrides[get_watchlist_repository] = lambda: repo
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def upstream():
    """Install an httpx handler standing in for the scan API."""
    from scanboard.main import app
    from scanboard.services.scan_client import ScanApiClient, get_scan_client

    clients = []

    def install(handler):
        scan_client = ScanApiClient(base_url="http://scan.test", transport=httpx.MockTransport(handler))
        clients.append(scan_client)
        app.dependency_overrides[get_scan_client] = lambda: scan_client

    yield install
    app.dependency_overrides.pop(get_scan_client, None)
    for scan_client in clients:
        asyncio.run(scan_client.close())


def stock(symbol="AAA", **extra):
    rec = {
        "Symbol": symbol,
        "Name": f"{symbol} Co",
        "Current Price": 10,
        "RSI (14)": 50,
        "Drawdown %": 12.5,
        "Momentum Score": 72,
        "Above 200MA": True,
    }
    rec.update(extra)
    return rec
