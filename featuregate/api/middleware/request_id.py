"""
Request correlation.

Every request carries an X-Request-ID: the caller's, when an SDK forwards
one, otherwise a fresh UUID. The id is echoed on the response and exposed
to log processors through get_request_id().
"""

from contextvars import ContextVar
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

_current_request_id: ContextVar[str] = ContextVar("featuregate_request_id", default="")


def get_request_id() -> str:
    """Request id of the request being served, or "" outside a request."""
    return _current_request_id.get()


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER, "").strip()
        request_id = incoming or uuid4().hex
        request.state.request_id = request_id

        token = _current_request_id.set(request_id)
        try:
            response = await call_next(request)
        finally:
            _current_request_id.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
