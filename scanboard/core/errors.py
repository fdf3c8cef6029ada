from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from scanboard.obs import log_event


class ApiError(Exception):
    """An error that maps straight onto a JSON ``{error, message}`` response."""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message or error)
        self.status_code = status_code
        self.error = error
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error}
        if self.message is not None:
            body["message"] = self.message
        if self.details is not None:
            body["details"] = self.details
        return body


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = first.get("msg", "Malformed request")
    message = f"{loc}: {msg}" if loc else msg
    return JSONResponse(status_code=400, content={"error": "Invalid request", "message": message})


async def all_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log_event("unhandled_error", level="error", path=request.url.path, error=type(exc).__name__, detail=str(exc))
    return JSONResponse(status_code=500, content={"error": "Internal server error", "message": str(exc)})
