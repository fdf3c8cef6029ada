from fastapi import APIRouter

from scanboard.core.settings import HealthStatus, settings

router = APIRouter()


@router.get("/healthz")
def healthz():
    return {"status": "ok"}


@router.get("/api/v1/diag/health")
def diag_health():
    return {"ok": True}


@router.get("/api/v1/diag/config", response_model=HealthStatus)
def diag_config() -> HealthStatus:
    # non-secret settings only; DATABASE_URL may carry credentials
    return HealthStatus(
        ok=True,
        env=settings.APP_ENV,
        watchlist_backend=settings.WATCHLIST_BACKEND,
        scan_api_base=settings.scan_api_base_url,
    )
