"""Tests for the structlog configuration used by failure records."""

import json
from collections.abc import Iterator

import pytest
import structlog

from realestate.logging import LoggingSettings, configure_logging, get_logger


@pytest.fixture
def reset_logging() -> Iterator[None]:
    yield
    structlog.contextvars.clear_contextvars()
    configure_logging(LoggingSettings())


def _settings(**values: str) -> LoggingSettings:
    return LoggingSettings.model_validate(
        {"LOG_LEVEL": "INFO", "LOG_FORMAT": "json", "SERVICE_NAME": "realestate-test"} | values
    )


def test_json_record_carries_context_and_service(
    reset_logging: None, capsys: pytest.CaptureFixture[str]
) -> None:
    configure_logging(_settings())
    structlog.contextvars.bind_contextvars(request_id="req-1", method="GET")

    get_logger("realestate.tests").warning("entity_not_found", status=404)

    record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert record["event"] == "entity_not_found"
    assert record["level"] == "warning"
    assert record["request_id"] == "req-1"
    assert record["method"] == "GET"
    assert record["service"] == "realestate-test"
    assert record["status"] == 404
    assert record["timestamp"].endswith("Z")


def test_json_traceback_is_structured(
    reset_logging: None, capsys: pytest.CaptureFixture[str]
) -> None:
    configure_logging(_settings())

    try:
        raise RuntimeError("payment gateway failed")
    except RuntimeError as exc:
        get_logger("realestate.tests").error("unhandled_exception", exc_info=exc)

    lines = capsys.readouterr().err.strip().splitlines()
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["exception"][0]["exc_type"] == "RuntimeError"
    assert record["exception"][0]["exc_value"] == "payment gateway failed"


def test_level_filters_records(reset_logging: None, capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(_settings(LOG_LEVEL="error"))

    get_logger("realestate.tests").warning("validation_failed")

    assert capsys.readouterr().err == ""


def test_console_format(reset_logging: None, capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(_settings(LOG_FORMAT="console"))

    get_logger("realestate.tests").warning("entity_not_found")

    assert "entity_not_found" in capsys.readouterr().err
