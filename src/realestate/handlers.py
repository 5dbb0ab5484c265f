"""Failure handling for a FastAPI app, backed by a FailureTranslator.

Everything is registered explicitly on the app passed in, with the translator
passed in, so tests and embedding applications choose their own
configuration.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from realestate.exceptions import RealEstateError
from realestate.middleware import RequestContextMiddleware, failure_response
from realestate.translator import FailureTranslator

# Handled by ExceptionMiddleware. Anything else is caught by
# RequestContextMiddleware; registering Exception here would hand it to
# ServerErrorMiddleware, which re-raises after responding.
HANDLED_EXCEPTIONS: tuple[type[Exception], ...] = (
    RequestValidationError,
    PydanticValidationError,
    RealEstateError,
    ValueError,
    SQLAlchemyError,
)


def install_error_handlers(app: FastAPI, translator: FailureTranslator) -> None:
    """Route every failure raised while serving ``app`` through ``translator``."""

    async def handle_failure(request: Request, exc: Exception) -> JSONResponse:
        return failure_response(translator.translate(exc, request.url.path))

    for exc_class in HANDLED_EXCEPTIONS:
        app.add_exception_handler(exc_class, handle_failure)
    app.add_middleware(RequestContextMiddleware, translator=translator)
