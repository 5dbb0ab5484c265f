"""Domain exceptions raised by services and repositories.

Every failure the application raises on purpose derives from RealEstateError
and carries a stable machine code plus a human-readable message. Nothing is
handled locally: exceptions propagate to the failure translator
(realestate.translator), which alone decides status, client message and log
severity.

The set of kinds is closed: not-found, validation, business-rule and
persistence failures, plus RealEstateError itself as the generic domain
failure.
"""

from collections.abc import Iterable, Mapping
from enum import StrEnum
from types import MappingProxyType


class OperationType(StrEnum):
    """Persistence action that was running when a database failure occurred."""

    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class PersistenceReason(StrEnum):
    """Structured sub-reason attached to a PersistenceError where it is created.

    Status inference reads this value, never the message text.
    """

    DUPLICATE_KEY = "DUPLICATE_KEY"
    FOREIGN_KEY_MISSING = "FOREIGN_KEY_MISSING"
    RECORD_NOT_FOUND = "RECORD_NOT_FOUND"
    INTEGRITY_VIOLATION = "INTEGRITY_VIOLATION"
    CONNECTION_LOST = "CONNECTION_LOST"
    MALFORMED_STATEMENT = "MALFORMED_STATEMENT"
    UNKNOWN = "UNKNOWN"


class RealEstateError(Exception):
    """Base class for all domain exceptions.

    Raised directly it acts as the generic domain failure. ``details`` are
    opaque diagnostic values; they are rendered into log output and never
    parsed back. ``cause`` is stored as ``__cause__`` so the chain shows up
    in tracebacks the usual way. A later ``raise err from other`` rebinds
    ``__cause__``; raise errors built with ``cause=`` without ``from``.
    """

    default_code = "GENERAL_ERROR"

    def __init__(
        self,
        message: str,
        *details: object,
        code: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        code = code if code is not None else self.default_code
        if not code:
            raise ValueError("error code must not be empty")
        if not message:
            raise ValueError("error message must not be empty")
        self._code = code
        self._message = message
        self._details = tuple(details)
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    @property
    def code(self) -> str:
        return self._code

    @property
    def message(self) -> str:
        return self._message

    @property
    def details(self) -> tuple[object, ...]:
        return self._details

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    def detailed_message(self) -> str:
        """Render ``[CODE] message`` plus the details list for logs."""
        text = f"[{self.code}] {self.message}"
        if self._details:
            text += " Details: " + ", ".join(str(detail) for detail in self._details)
        return text

    def __str__(self) -> str:
        return self._message


class NotFoundError(RealEstateError):
    """Raised when a requested entity does not exist."""

    default_code = "ENTITY_NOT_FOUND"

    def __init__(
        self,
        entity_type: str,
        entity_id: object,
        additional_message: str | None = None,
        *,
        cause: BaseException | None = None,
    ) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        message = f"{entity_type} with identifier {entity_id} not found"
        details: tuple[object, ...] = (entity_type, entity_id)
        if additional_message:
            message = f"{message}. {additional_message}"
            details += (additional_message,)
        super().__init__(message, *details, cause=cause)


class ValidationError(RealEstateError):
    """Raised when input fails structural or domain validation.

    ``field_errors`` maps field name to a message and is read-only; build it
    incrementally with realestate.validation.ValidationAggregator.
    """

    default_code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str | Mapping[str, str],
        field_errors: Mapping[str, str] | None = None,
        *,
        cause: BaseException | None = None,
    ) -> None:
        if isinstance(message, Mapping):
            field_errors, message = message, f"{len(message)} validation error(s) found"
        errors = dict(field_errors or {})
        self._field_errors = MappingProxyType(errors)
        super().__init__(message, cause=cause)

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(f"Validation failed for field '{field}': {message}", {field: message})

    @property
    def field_errors(self) -> Mapping[str, str]:
        return self._field_errors

    def has_errors(self) -> bool:
        return bool(self._field_errors)

    def error_count(self) -> int:
        return len(self._field_errors)

    def field_error(self, field: str) -> str | None:
        return self._field_errors.get(field)

    def detailed_message(self) -> str:
        text = super().detailed_message()
        if self._field_errors:
            text += " Field errors: " + "; ".join(
                f"{field}: {message}" for field, message in self._field_errors.items()
            )
        return text


class BusinessRuleError(RealEstateError):
    """Raised when an operation is refused by a business rule."""

    default_code = "BUSINESS_RULE_VIOLATION"

    def __init__(
        self,
        rule_name: str,
        detail: str,
        *,
        context: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.rule_name = rule_name
        self.context = context
        self.detail = detail
        if context is None:
            message = f"Rule '{rule_name}' violated: {detail}"
            details: tuple[object, ...] = (rule_name, detail)
        else:
            message = f"Rule '{rule_name}' violated in context '{context}': {detail}"
            details = (rule_name, context, detail)
        super().__init__(message, *details, cause=cause)

    def has_context(self) -> bool:
        return self.context is not None


class PersistenceError(RealEstateError):
    """Raised when a database operation fails.

    The SQL text and its parameters go to logs through detailed_message();
    they never appear in ``message``, which may reach clients.
    """

    default_code = "DATABASE_ERROR"

    def __init__(
        self,
        operation: OperationType | str,
        message: str,
        *,
        query: str | None = None,
        params: Iterable[object] | None = None,
        reason: PersistenceReason = PersistenceReason.UNKNOWN,
        cause: BaseException | None = None,
    ) -> None:
        if not message:
            raise ValueError("error message must not be empty")
        if params is not None and query is None:
            raise ValueError("query parameters given without query text")
        self.operation = OperationType(operation)
        self.reason = PersistenceReason(reason)
        self.query = query
        self._params = tuple(params) if params is not None else None
        super().__init__(
            f"Database error during {self.operation}: {message}",
            self.operation,
            message,
            cause=cause,
        )

    @property
    def params(self) -> tuple[object, ...] | None:
        return self._params

    def has_query(self) -> bool:
        return self.query is not None

    def has_params(self) -> bool:
        return bool(self._params)

    def detailed_message(self) -> str:
        text = super().detailed_message()
        if self.query is not None:
            text += f" SQL: {self.query}"
            if self._params:
                text += " Parameters: [" + ", ".join(str(p) for p in self._params) + "]"
        return text
