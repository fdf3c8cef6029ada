import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
import logging

from scanboard.obs import new_request_id

log = logging.getLogger("uvicorn.access")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        rid = new_request_id(request.headers.get(REQUEST_ID_HEADER))
        start = time.time()
        rsp = await call_next(request)
        dur = int((time.time() - start)*1000)
        rsp.headers[REQUEST_ID_HEADER] = rid
        log.info("%s %s %s %dms rid=%s", request.method, request.url.path, rsp.status_code, dur, rid)
        return rsp
