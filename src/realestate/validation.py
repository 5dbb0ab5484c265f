"""Field-error aggregation for multi-stage validation.

Structural checks (pydantic models, FastAPI request parsing) run first and
domain checks run after; both feed the same per-request aggregator so the
client gets one response listing every failing field.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from realestate.exceptions import ValidationError

# Location prefixes FastAPI adds in front of the actual field path
_LOCATION_ROOTS = frozenset({"body", "query", "path", "header", "cookie"})


def field_errors_from_pydantic(errors: Sequence[Mapping[str, Any]]) -> dict[str, str]:
    """Flatten pydantic error dicts into ``{"address.city": "Field required"}``.

    Accepts ``ValidationError.errors()`` from pydantic as well as
    ``RequestValidationError.errors()`` from FastAPI. When several errors hit
    the same field the last one wins.
    """
    field_errors: dict[str, str] = {}
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if len(loc) > 1 and loc[0] in _LOCATION_ROOTS:
            loc = loc[1:]
        field = ".".join(loc) or "__root__"
        field_errors[field] = str(error.get("msg", "Invalid value"))
    return field_errors


class ValidationAggregator:
    """Collects field errors during one validation pass.

    Not thread-safe; create one per request.

    Usage:
        errors = ValidationAggregator()
        if deal.price <= 0:
            errors.add_field_error("price", "must be positive")
        errors.raise_if_errors()
    """

    def __init__(self) -> None:
        self._field_errors: dict[str, str] = {}

    def add_field_error(self, field: str, message: str) -> None:
        self._field_errors[field] = message

    def add_violations(self, violations: Iterable[tuple[str, str]]) -> None:
        for field, message in violations:
            self.add_field_error(field, message)

    def has_errors(self) -> bool:
        return bool(self._field_errors)

    def error_count(self) -> int:
        return len(self._field_errors)

    @property
    def field_errors(self) -> dict[str, str]:
        return dict(self._field_errors)

    def merge(self, external: Mapping[str, str]) -> dict[str, str]:
        """Combine accumulated errors with ``external`` ones; external wins on collision."""
        return {**self._field_errors, **external}

    def to_error(
        self,
        message: str | None = None,
        external: Mapping[str, str] | None = None,
    ) -> ValidationError:
        field_errors = self.merge(external or {})
        if message is None:
            return ValidationError(field_errors)
        return ValidationError(message, field_errors)

    def raise_if_errors(self, external: Mapping[str, str] | None = None) -> None:
        if self.has_errors() or external:
            raise self.to_error(external=external)
