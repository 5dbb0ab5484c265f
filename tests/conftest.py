from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
import structlog
from fastapi import APIRouter, FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel, Field
from sqlalchemy.exc import OperationalError
from structlog.testing import CapturingLogger, LogCapture

from realestate.exceptions import (
    BusinessRuleError,
    NotFoundError,
    OperationType,
    PersistenceError,
    PersistenceReason,
    ValidationError,
)
from realestate.main import create_app
from realestate.translator import FailureTranslator
from realestate.validation import ValidationAggregator
from tests.factories import FIXED_NOW


class ClientIn(BaseModel):
    name: str = Field(min_length=2)
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+$")


# Endpoints that fail on purpose, one per failure kind
router = APIRouter()


@router.get("/clients/{client_id}")
async def get_client(client_id: int) -> None:
    raise NotFoundError("Client", client_id)


@router.post("/clients")
async def create_client(client: ClientIn) -> dict[str, str]:
    return {"name": client.name}


@router.post("/deals")
async def create_deal() -> None:
    errors = ValidationAggregator()
    errors.add_field_error("price", "must be positive")
    errors.add_field_error("realtor_id", "is required")
    errors.raise_if_errors()


@router.post("/properties")
async def create_property() -> None:
    raise PersistenceError(
        OperationType.INSERT,
        "cadastral number already registered",
        query="INSERT INTO properties (cadastral_number) VALUES (%s)",
        params=["77:01:0004012:1049"],
        reason=PersistenceReason.DUPLICATE_KEY,
    )


@router.delete("/realtors/{realtor_id}")
async def delete_realtor(realtor_id: int) -> None:
    raise BusinessRuleError("realtor_has_open_deals", f"realtor {realtor_id} has 3 open deals")


@router.get("/payments")
async def list_payments(page: int = 1) -> None:
    raise ValueError(f"page must be positive, got {page}")


@router.get("/reports")
async def build_report() -> None:
    raise OperationalError(
        "SELECT * FROM deals",
        None,
        ConnectionRefusedError("could not connect to server at 10.0.0.12:5432"),
    )


@router.get("/boom")
async def boom() -> None:
    raise RuntimeError("token=s3cr3t leaked in stack")


@pytest.fixture
def log_capture() -> LogCapture:
    return LogCapture()


@pytest.fixture
def translator(log_capture: LogCapture) -> FailureTranslator:
    """Translator with a fixed clock whose log records land in ``log_capture``."""
    logger = structlog.wrap_logger(
        CapturingLogger(),
        processors=[log_capture],
        wrapper_class=structlog.stdlib.BoundLogger,
    )
    return FailureTranslator(conflict_status=409, logger=logger, clock=lambda: FIXED_NOW)


@pytest.fixture
def app(translator: FailureTranslator) -> FastAPI:
    app = create_app(translator)
    app.include_router(router)
    return app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """HTTP client that re-raises any exception escaping the app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
