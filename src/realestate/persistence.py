"""Conversion of SQLAlchemy errors into domain exceptions.

Repositories wrap their statements in ``database_operation`` so driver-level
failures leave the data-access layer as NotFoundError or PersistenceError
with a structured reason. Classification of the driver error happens here,
once, where the driver exception is still at hand; status inference later
relies only on the reason.
"""

from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from sqlalchemy import exc as sa_exc

from realestate.exceptions import (
    NotFoundError,
    OperationType,
    PersistenceError,
    PersistenceReason,
    RealEstateError,
)
from realestate.logging import get_logger

logger = get_logger(__name__)

# https://www.postgresql.org/docs/current/errcodes-appendix.html
_SQLSTATE_REASONS = {
    "23505": PersistenceReason.DUPLICATE_KEY,
    "23503": PersistenceReason.FOREIGN_KEY_MISSING,
    "23502": PersistenceReason.INTEGRITY_VIOLATION,
    "23514": PersistenceReason.INTEGRITY_VIOLATION,
}

# Wording used by drivers that expose no SQLSTATE (sqlite, some mysql drivers)
_MESSAGE_REASONS = (
    (("unique constraint", "duplicate entry", "duplicate key"), PersistenceReason.DUPLICATE_KEY),
    (("foreign key constraint", "is not present in table"), PersistenceReason.FOREIGN_KEY_MISSING),
)

# SQLSTATE classes for connection exceptions, resource exhaustion and shutdown
_CONNECTION_SQLSTATE_PREFIXES = ("08", "53", "57P")

# Syntax errors and access rule violations
_SYNTAX_SQLSTATE_PREFIX = "42"

# sqlite reports statement problems as OperationalError too
_STATEMENT_WORDING = ("no such table", "no such column", "syntax error")


def _sqlstate(orig: object) -> str | None:
    # psycopg exposes .sqlstate, psycopg2 .pgcode, asyncpg .sqlstate on the wrapped error
    for attr in ("sqlstate", "pgcode"):
        value = getattr(orig, attr, None)
        if isinstance(value, str):
            return value
    return None


def _driver_message(exc: sa_exc.DBAPIError) -> str:
    return str(exc.orig if exc.orig is not None else exc).lower()


def is_connection_failure(exc: BaseException) -> bool:
    """Whether ``exc`` means the database could not be reached or dropped the session."""
    if isinstance(exc, (sa_exc.DisconnectionError, sa_exc.TimeoutError)):
        return True
    if not isinstance(exc, sa_exc.OperationalError):
        return False
    if exc.connection_invalidated:
        return True
    code = _sqlstate(exc.orig)
    if code is not None:
        return code.startswith(_CONNECTION_SQLSTATE_PREFIXES)
    return not any(wording in _driver_message(exc) for wording in _STATEMENT_WORDING)


def is_malformed_statement(exc: BaseException) -> bool:
    """Whether ``exc`` was caused by the SQL text itself rather than the server or data."""
    if isinstance(exc, sa_exc.ProgrammingError):
        return True
    if not isinstance(exc, sa_exc.OperationalError) or exc.connection_invalidated:
        return False
    code = _sqlstate(exc.orig)
    if code is not None:
        return code.startswith(_SYNTAX_SQLSTATE_PREFIX)
    return any(wording in _driver_message(exc) for wording in _STATEMENT_WORDING)


def classify_integrity_error(exc: sa_exc.IntegrityError) -> PersistenceReason:
    """Work out which constraint an IntegrityError violated."""
    code = _sqlstate(exc.orig)
    if code is not None:
        reason = _SQLSTATE_REASONS.get(code)
        if reason is None:
            logger.warning("unknown_integrity_sqlstate", sqlstate=code)
            return PersistenceReason.INTEGRITY_VIOLATION
        return reason

    message = _driver_message(exc)
    for keywords, reason in _MESSAGE_REASONS:
        if any(keyword in message for keyword in keywords):
            return reason
    return PersistenceReason.INTEGRITY_VIOLATION


def to_domain_error(
    exc: Exception,
    operation: OperationType,
    entity_type: str,
    entity_id: object = None,
    *,
    query: str | None = None,
    params: Iterable[object] | None = None,
) -> RealEstateError:
    """Map a data-access exception onto the domain hierarchy.

    The returned error keeps ``exc`` as its cause.
    """
    logger.debug(
        "translating_database_error",
        error_type=type(exc).__name__,
        operation=operation,
        entity_type=entity_type,
        entity_id=entity_id,
    )

    if isinstance(exc, sa_exc.NoResultFound):
        return NotFoundError(entity_type, entity_id, cause=exc)

    if isinstance(exc, sa_exc.IntegrityError):
        reason, prefix = classify_integrity_error(exc), "Data integrity violation"
    elif is_connection_failure(exc):
        reason, prefix = PersistenceReason.CONNECTION_LOST, "Database connection failed"
    elif is_malformed_statement(exc):
        reason, prefix = PersistenceReason.MALFORMED_STATEMENT, "Malformed SQL statement"
    elif isinstance(exc, sa_exc.SQLAlchemyError):
        reason, prefix = PersistenceReason.UNKNOWN, "Data access error"
    else:
        reason, prefix = PersistenceReason.UNKNOWN, "Unknown database error"

    if query is None and isinstance(exc, sa_exc.StatementError):
        query = exc.statement
    return PersistenceError(
        operation,
        f"{prefix} for {entity_type}",
        query=query,
        params=params if query is not None else None,
        reason=reason,
        cause=exc,
    )


@contextmanager
def database_operation(
    operation: OperationType,
    entity_type: str,
    entity_id: object = None,
    *,
    query: str | None = None,
    params: Iterable[object] | None = None,
) -> Iterator[None]:
    """Re-raise SQLAlchemy errors from the block as domain exceptions.

    Usage:
        with database_operation(OperationType.INSERT, "Client"):
            await db.flush()
    """
    try:
        yield
    except sa_exc.SQLAlchemyError as exc:
        raise to_domain_error(exc, operation, entity_type, entity_id, query=query, params=params)


def uniqueness_violation(field: str, value: object, entity_type: str) -> PersistenceError:
    """Error for an insert that would duplicate a unique value, detected before the write."""
    return PersistenceError(
        OperationType.INSERT,
        f"{entity_type} with {field} '{value}' already exists",
        reason=PersistenceReason.DUPLICATE_KEY,
    )


def related_entity_missing(
    related_type: str,
    related_id: object,
    entity_type: str,
    operation: OperationType = OperationType.INSERT,
) -> PersistenceError:
    """Error for a reference to a row that does not exist (e.g. a deal's realtor)."""
    return PersistenceError(
        operation,
        f"Related {related_type} with id {related_id} does not exist for {entity_type}",
        reason=PersistenceReason.FOREIGN_KEY_MISSING,
    )


def record_not_found(
    operation: OperationType, entity_type: str, entity_id: object
) -> PersistenceError:
    """Error for an UPDATE or DELETE that matched no rows."""
    return PersistenceError(
        operation,
        f"{entity_type} with id {entity_id} not found",
        reason=PersistenceReason.RECORD_NOT_FOUND,
    )


def is_critical(exc: BaseException) -> bool:
    """Database failures need operator attention; everything else is routine."""
    return isinstance(exc, PersistenceError)
