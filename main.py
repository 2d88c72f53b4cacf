from typing import Dict

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from db.postgres import init_postgres, close_postgres
import logging
from settings.config import settings
from envelopes.envelope_routes import router as envelope_router
from envelopes.exceptions import (
    EnvelopeAPIError,
    envelope_api_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from settings.logging_config import configure_logging

logger = logging.getLogger(__name__)


def get_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)
    logger.info("Starting Envelope Budget API")
    app = FastAPI(title="Envelope Budget API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # DB lifecycle
    @app.on_event("startup")
    async def on_startup() -> None:
        logger.info("Initializing database")
        await init_postgres()

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        logger.info("Closing database")
        await close_postgres()

    # Errors
    app.add_exception_handler(EnvelopeAPIError, envelope_api_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Routers
    app.include_router(envelope_router)
    logger.info(f"Envelope routes mounted at {settings.API_PREFIX}")

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        return "Hello world"

    # Health
    @app.get("/health")
    async def health_check() -> Dict[str, str]:
        return {"status": "ok"}

    logger.info("API started")
    return app


# ASGI app instance
app = get_app()


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Listening on port {settings.PORT}")
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)
