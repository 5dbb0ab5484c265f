"""Request context and last-resort failure boundary.

Starlette's ServerErrorMiddleware re-raises whatever it handles, so failures
no exception handler claims are translated here instead, inside the app
stack, and never reach the server.
"""

import uuid
from collections.abc import Awaitable, Callable

import structlog
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from realestate.translator import FailureTranslator, TranslatedFailure

REQUEST_ID_HEADER = "X-Request-ID"


def failure_response(result: TranslatedFailure) -> JSONResponse:
    return JSONResponse(status_code=result.response.status, content=result.response.to_json())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind the request ID for failure logs and translate unclaimed exceptions.

    The X-Request-ID header is reused when present and echoed on every
    response, error responses included, so a client can quote it to find
    the matching log record.
    """

    def __init__(self, app: ASGIApp, translator: FailureTranslator) -> None:
        super().__init__(app)
        self.translator = translator

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, method=request.method)

        try:
            response = await call_next(request)
        except Exception as exc:
            response = failure_response(self.translator.translate(exc, request.url.path))

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
