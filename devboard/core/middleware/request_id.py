"""Per-request correlation id and the access log line for every API call."""
import logging
import time
from typing import Optional
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from devboard.core.logging import latency_bucket_ms, request_id_ctx_var

logger = logging.getLogger("devboard")

REQUEST_ID_HEADER = "x-request-id"


def route_template(request: Request) -> Optional[str]:
    """Matched route path such as ``/api/v1/todos/{todo_id}``; raw ids stay out of the logs."""
    route = request.scope.get("route")
    return getattr(route, "path", None)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Bind an ``x-request-id`` to the request and log ``request.complete``.

    The id is taken from the incoming header when present, exposed on
    ``request.state`` and in the logging context, and echoed on the response.
    The completion log carries the route template and the authenticated
    user (set on ``request.state`` by ``get_current_user``).
    """

    def __init__(self, app, header_name: str = REQUEST_ID_HEADER):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get(self.header_name) or str(uuid4())
        request.state.request_id = rid
        token = request_id_ctx_var.set(rid)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.error(
                "request.failed",
                extra=self._fields(request, rid, 500, start),
            )
            raise
        finally:
            request_id_ctx_var.reset(token)

        response.headers[self.header_name] = rid
        logger.info("request.complete", extra=self._fields(request, rid, response.status_code, start))
        return response

    @staticmethod
    def _fields(request: Request, rid: str, status: int, start: float) -> dict:
        return {
            "request_id": rid,
            "method": request.method,
            "path": request.url.path,
            "route": route_template(request) or "unmatched",
            "user_id": getattr(request.state, "user_id", None),
            "status": status,
            "latency_bucket": latency_bucket_ms((time.perf_counter() - start) * 1000),
        }
