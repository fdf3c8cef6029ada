from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from prometheus_fastapi_instrumentator import Instrumentator

from scanboard.core.errors import ApiError, all_exception_handler, api_error_handler, validation_error_handler
from scanboard.core.settings import settings
from scanboard.db import dispose_engine, init_db
from scanboard.middleware.logging import RequestLogMiddleware
from scanboard.routers.analyze import router as analyze_router
from scanboard.routers.charts import router as charts_router
from scanboard.routers.health import router as health_router
from scanboard.routers.stocks import router as stocks_router
from scanboard.routers.watchlist import router as watchlist_router
from scanboard.services.scan_client import close_scan_client

app = FastAPI(title=settings.APP_NAME)

app.add_exception_handler(ApiError, api_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(Exception, all_exception_handler)

app.add_middleware(RequestLogMiddleware)


@app.on_event("startup")
async def on_startup() -> None:
    if settings.WATCHLIST_BACKEND == "sql":
        await init_db()


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await close_scan_client()
    await dispose_engine()


app.include_router(health_router)
app.include_router(watchlist_router)
app.include_router(stocks_router)
app.include_router(analyze_router)
app.include_router(charts_router)

# Expose /metrics for Prometheus
Instrumentator().instrument(app).expose(app)
