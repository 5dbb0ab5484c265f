from fastapi import FastAPI

from realestate.config import settings
from realestate.handlers import install_error_handlers
from realestate.logging import get_logger
from realestate.translator import FailureTranslator

logger = get_logger(__name__)


def create_app(translator: FailureTranslator | None = None) -> FastAPI:
    """Build the application with request context and failure translation wired in.

    Routers are included by the caller; this core only owns the error path.
    """
    app = FastAPI(title=settings.app_name)
    install_error_handlers(app, translator or FailureTranslator())

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness check for load balancers and orchestrators."""
        return {"status": "ok"}

    logger.info("app_created", app_name=settings.app_name)
    return app


app = create_app()
