"""Structured logging for failure records.

Every translated failure is one structlog event. Records carry the request
context bound by RequestContextMiddleware (request_id, method) and the
service name. Tracebacks of unhandled exceptions are rendered as structured
frames in JSON output so the record stays a single line.
"""

import logging
from typing import Any, Literal

import structlog
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from structlog.stdlib import BoundLogger
from structlog.typing import EventDict, Processor, WrappedLogger


class LoggingSettings(BaseSettings):
    """Logging settings from environment variables."""

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: Literal["json", "console"] = Field(default="json", alias="LOG_FORMAT")
    service_name: str = Field(default="realestate", alias="SERVICE_NAME")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


def _service_binder(service_name: str) -> Processor:
    def _add_service(_logger: WrappedLogger, _method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service_name)
        return event_dict

    return _add_service


def _renderer_chain(log_format: str) -> list[Processor]:
    if log_format == "console":
        # ConsoleRenderer prints exc_info itself
        return [structlog.dev.ConsoleRenderer()]
    return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer(default=str)]


def configure_logging(settings: LoggingSettings) -> None:
    """Route structlog and stdlib loggers (uvicorn, sqlalchemy) through one chain.

    Safe to call again; later calls replace the root handlers.
    """
    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _service_binder(settings.service_name),
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *_renderer_chain(settings.log_format),
        ],
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logging.basicConfig(level=settings.log_level.upper(), handlers=[handler], force=True)


configure_logging(LoggingSettings())


def get_logger(name: str, **initial_values: Any) -> BoundLogger:
    """Get a structured logger, optionally with bound fields.

    Example:
        logger = get_logger(__name__, component="persistence")
        logger.warning("entity_not_found", code="ENTITY_NOT_FOUND")
    """
    return structlog.get_logger(name, **initial_values)  # type: ignore[no-any-return]
