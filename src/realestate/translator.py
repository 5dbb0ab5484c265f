"""Failure translation: any raised exception -> error response + one log record.

FailureTranslator is the single place that decides the HTTP status, the
client message and the log severity of a failure. It is a plain object with
immutable configuration, injected into the web layer by
realestate.handlers.install_error_handlers; there is no module-level handler.

Dispatch order matters: pydantic's ValidationError subclasses ValueError, and
every domain kind subclasses RealEstateError, so specific cases come first.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from http import HTTPStatus

from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import exc as sa_exc
from structlog.stdlib import BoundLogger

from realestate.config import settings
from realestate.exceptions import (
    BusinessRuleError,
    NotFoundError,
    PersistenceError,
    RealEstateError,
    ValidationError,
)
from realestate.logging import get_logger
from realestate.persistence import is_connection_failure, is_malformed_statement
from realestate.schemas.error import ErrorResponse
from realestate.status import friendly_message, infer_status
from realestate.validation import field_errors_from_pydantic

CHECK_INPUT = "Please check the data you entered"
NOT_FOUND = "The requested information was not found"
UNEXPECTED = "An unexpected error occurred"

FIELD_VALIDATION_FAILED = "Field validation failed"
INTERNAL_SERVER_ERROR = "Internal server error"
DATA_ACCESS_ERROR = "Data access error"

SERVICE_UNAVAILABLE = "The service is temporarily unavailable. Please try again later."
DATA_INTEGRITY = "Data integrity error. Please check the information you entered."
INTERNAL_SYSTEM = "Internal system error. Please contact the administrator."
DATABASE_RETRY = "A database error occurred. Please try again later."


class Severity(StrEnum):
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class FailureLog:
    """Structured log record emitted for one translated failure."""

    severity: Severity
    event: str
    error_type: str
    raw_message: str
    detail: str
    cause_chain: tuple[str, ...] = ()
    code: str | None = None

    def fields(self) -> dict[str, object]:
        fields: dict[str, object] = {
            "error_type": self.error_type,
            "raw_message": self.raw_message,
            "detail": self.detail,
            "cause_chain": list(self.cause_chain),
        }
        if self.code is not None:
            fields["code"] = self.code
        return fields


@dataclass(frozen=True)
class TranslatedFailure:
    response: ErrorResponse
    log: FailureLog


@dataclass(frozen=True)
class _Outcome:
    status: int
    message: str
    details: str
    severity: Severity
    event: str
    field_errors: dict[str, str] = field(default_factory=dict)


def cause_chain(exc: BaseException) -> tuple[str, ...]:
    """Describe every exception behind ``exc`` as ``"Type: message"``, nearest first."""
    chain: list[str] = []
    seen = {id(exc)}
    current = exc.__cause__ or (None if exc.__suppress_context__ else exc.__context__)
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        chain.append(f"{type(current).__name__}: {current}")
        current = current.__cause__ or (
            None if current.__suppress_context__ else current.__context__
        )
    return tuple(chain)


def _data_access_message(exc: sa_exc.SQLAlchemyError) -> str:
    if is_connection_failure(exc):
        return SERVICE_UNAVAILABLE
    if isinstance(exc, sa_exc.IntegrityError):
        return DATA_INTEGRITY
    if is_malformed_statement(exc):
        return INTERNAL_SYSTEM
    return DATABASE_RETRY


class FailureTranslator:
    """Turns raised exceptions into ErrorResponse objects and logs them.

    Args:
        conflict_status: status for duplicate inserts (409, or 400 for legacy clients)
        logger: structlog logger receiving one record per translation
        clock: returns the response timestamp; UTC now by default
    """

    def __init__(
        self,
        conflict_status: int | None = None,
        logger: BoundLogger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.conflict_status = (
            conflict_status if conflict_status is not None else settings.conflict_status_code
        )
        self._logger = logger if logger is not None else get_logger(__name__)
        self._clock = clock or (lambda: datetime.now(UTC))

    def translate(self, exc: BaseException, path: str) -> TranslatedFailure:
        outcome = self._classify(exc)
        response = ErrorResponse(
            status=int(outcome.status),
            message=outcome.message,
            details=outcome.details,
            path=path,
            timestamp=self._clock(),
            field_errors=outcome.field_errors,
        )
        log = FailureLog(
            severity=outcome.severity,
            event=outcome.event,
            error_type=type(exc).__name__,
            raw_message=str(exc),
            detail=exc.detailed_message() if isinstance(exc, RealEstateError) else repr(exc),
            cause_chain=cause_chain(exc),
            code=exc.code if isinstance(exc, RealEstateError) else None,
        )
        self._emit(log, exc, response)
        return TranslatedFailure(response=response, log=log)

    def _classify(self, exc: BaseException) -> _Outcome:
        match exc:
            case RequestValidationError() | PydanticValidationError():
                return _Outcome(
                    HTTPStatus.BAD_REQUEST,
                    CHECK_INPUT,
                    FIELD_VALIDATION_FAILED,
                    Severity.WARNING,
                    "request_validation_failed",
                    field_errors_from_pydantic(exc.errors()),
                )
            case NotFoundError():
                return _Outcome(
                    HTTPStatus.NOT_FOUND, NOT_FOUND, exc.message, Severity.WARNING, "entity_not_found"
                )
            case ValidationError():
                return _Outcome(
                    HTTPStatus.BAD_REQUEST,
                    CHECK_INPUT,
                    exc.message,
                    Severity.WARNING,
                    "validation_failed",
                    dict(exc.field_errors),
                )
            case PersistenceError():
                return _Outcome(
                    infer_status(exc, self.conflict_status),
                    friendly_message(exc),
                    exc.message,
                    Severity.ERROR,
                    "database_error",
                )
            case BusinessRuleError():
                return _Outcome(
                    HTTPStatus.INTERNAL_SERVER_ERROR,
                    UNEXPECTED,
                    exc.message,
                    Severity.ERROR,
                    "business_rule_violated",
                )
            case RealEstateError():
                return _Outcome(
                    HTTPStatus.INTERNAL_SERVER_ERROR,
                    UNEXPECTED,
                    exc.message,
                    Severity.ERROR,
                    "domain_error",
                )
            case ValueError():
                return _Outcome(
                    HTTPStatus.BAD_REQUEST, CHECK_INPUT, str(exc), Severity.WARNING, "invalid_argument"
                )
            case sa_exc.SQLAlchemyError():
                return _Outcome(
                    HTTPStatus.INTERNAL_SERVER_ERROR,
                    _data_access_message(exc),
                    DATA_ACCESS_ERROR,
                    Severity.ERROR,
                    "data_access_error",
                )
            case _:
                return _Outcome(
                    HTTPStatus.INTERNAL_SERVER_ERROR,
                    UNEXPECTED,
                    INTERNAL_SERVER_ERROR,
                    Severity.ERROR,
                    "unhandled_exception",
                )

    def _emit(self, log: FailureLog, exc: BaseException, response: ErrorResponse) -> None:
        fields = log.fields()
        fields["status"] = response.status
        fields["path"] = response.path
        if log.severity is Severity.WARNING:
            self._logger.warning(log.event, **fields)
        elif log.event == "unhandled_exception":
            # Traceback only for failures nobody anticipated
            self._logger.error(log.event, exc_info=exc, **fields)
        else:
            self._logger.error(log.event, **fields)
