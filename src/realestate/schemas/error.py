"""Error response schema.

Every translated failure serializes to the same envelope:
{"status", "message", "details", "path", "timestamp", "fieldErrors"}.
Built by realestate.translator; never constructed by routers.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Client-facing description of one failed request."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status: int
    message: str
    details: str
    path: str
    timestamp: datetime
    field_errors: dict[str, str] = Field(default_factory=dict, alias="fieldErrors")

    def to_json(self) -> dict[str, object]:
        """Wire representation with camelCase keys and an ISO-8601 timestamp."""
        return self.model_dump(mode="json", by_alias=True)
