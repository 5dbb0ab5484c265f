"""Status inference for persistence failures.

Maps a PersistenceError to an HTTP status and a message safe to show to
users. Decisions use the structured operation and reason attached where the
error was created, so the outcome does not depend on the database dialect or
the wording of the driver message.
"""

from http import HTTPStatus

from realestate.exceptions import OperationType, PersistenceError, PersistenceReason

SAVE_FAILED = "Could not save the data"
SAVE_DUPLICATE = "Could not save the data. A matching record may already exist"
UPDATE_FAILED = "Could not update the data"
UPDATE_NOT_FOUND = "Record not found for update"
DELETE_FAILED = "Could not delete the data"
DELETE_NOT_FOUND = "Record not found for deletion"
DATABASE_FAILED = "A database error occurred"


def _is_duplicate_insert(error: PersistenceError) -> bool:
    return (
        error.operation is OperationType.INSERT
        and error.reason is PersistenceReason.DUPLICATE_KEY
    )


def _is_missing_target(error: PersistenceError) -> bool:
    return (
        error.operation in (OperationType.UPDATE, OperationType.DELETE)
        and error.reason is PersistenceReason.RECORD_NOT_FOUND
    )


def infer_status(error: PersistenceError, conflict_status: int = HTTPStatus.CONFLICT) -> int:
    """Return the HTTP status for a database failure.

    - INSERT rejected as a duplicate: ``conflict_status`` (409 unless configured)
    - UPDATE/DELETE of a missing record: 404
    - anything else: 500
    """
    if _is_duplicate_insert(error):
        return int(conflict_status)
    if _is_missing_target(error):
        return HTTPStatus.NOT_FOUND
    return HTTPStatus.INTERNAL_SERVER_ERROR


def friendly_message(error: PersistenceError) -> str:
    """Return the canned user-facing message for a database failure."""
    match error.operation:
        case OperationType.INSERT:
            return SAVE_DUPLICATE if _is_duplicate_insert(error) else SAVE_FAILED
        case OperationType.UPDATE:
            return UPDATE_NOT_FOUND if _is_missing_target(error) else UPDATE_FAILED
        case OperationType.DELETE:
            return DELETE_NOT_FOUND if _is_missing_target(error) else DELETE_FAILED
        case _:
            return DATABASE_FAILED
