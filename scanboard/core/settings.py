import os
from typing import Optional

from pydantic import BaseModel


class Settings(BaseModel):
    # Core
    APP_NAME: str = os.getenv("APP_NAME", "Stock Scan Dashboard API")
    APP_ENV: str = os.getenv("APP_ENV", "prod")  # prod|dev|test

    # Upstream scan/analysis service
    SCAN_API_BASE: str = os.getenv("SCAN_API_BASE", "http://127.0.0.1:8000")
    SCAN_API_TIMEOUT: float = float(os.getenv("SCAN_API_TIMEOUT", "30"))

    @property
    def scan_api_base_url(self) -> str:
        """Return the upstream scan API base URL without a trailing slash."""
        return self.SCAN_API_BASE.rstrip("/")

    # Watchlist storage: sql (durable) | memory (process-local)
    WATCHLIST_BACKEND: str = os.getenv("WATCHLIST_BACKEND", "sql").lower()
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL")

    # Identity used when a request carries no X-User-Id header
    DEFAULT_USER_ID: str = os.getenv("DEFAULT_USER_ID", "demo-user-1")


settings = Settings()


class HealthStatus(BaseModel):
    ok: bool
    env: str
    watchlist_backend: str
    scan_api_base: str
