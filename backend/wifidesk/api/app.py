"""
FastAPI application factory and process entry point.

`create_app` owns the store client: it builds the `Database` from settings,
creates the schema on startup and disposes connections on shutdown.
"""
import argparse
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from wifidesk import __version__
from wifidesk.api.routes import balance, customers
from wifidesk.api.middleware import (
    AppException,
    CorrelationIdMiddleware,
    app_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    store_exception_handler,
    unhandled_exception_handler,
)
from wifidesk.lib.db import Database
from wifidesk.lib.logging import get_logger, setup_logging
from wifidesk.lib.metrics import get_metrics_collector
from wifidesk.lib.settings import Settings, get_settings

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration; loaded from the environment when omitted
            (a missing DATABASE_URL fails here, before serving anything)
        database: Pre-built store client, mainly for tests
    """
    settings = settings or get_settings()
    setup_logging(
        level="DEBUG" if settings.debug else settings.log_level,
        json_format=settings.log_json,
    )
    database = database or Database(settings.database_url, echo=settings.debug)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        Application lifespan manager for startup/shutdown events.
        """
        logger.info(f"{settings.app_name} starting up...")
        database.create_all()
        yield
        logger.info(f"{settings.app_name} shutting down...")
        database.dispose()

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description="Customers, billing months and payment status for a local WiFi provider",
        lifespan=lifespan,
    )
    app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    # Register exception handlers
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, store_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Include routers
    app.include_router(customers.router)
    app.include_router(balance.router)

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    @app.get("/metrics", include_in_schema=False, response_class=PlainTextResponse)
    def metrics_endpoint():
        """
        Prometheus-compatible metrics endpoint.

        Metrics exposed:
        - customers_created_total: Customers created by package
        - customer_updates_total: Updates applied, split by whether anything changed
        - lifecycle_transitions_total: Payment status moves (manual / auto)
        - history_entries_total: Audit entries written
        - history_write_failures_total: Audit entries lost to store errors
        - duplicate_customer_rejections_total: Creates rejected for an existing phone + month
        """
        return PlainTextResponse(
            content=get_metrics_collector().export_prometheus(),
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    return app


def main(argv: Optional[list] = None) -> None:
    """Run the API with uvicorn (`wifidesk --host 0.0.0.0 --port 8000`)."""
    import uvicorn

    parser = argparse.ArgumentParser(prog="wifidesk", description="Run the WifiDesk API server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    args = parser.parse_args(argv)

    uvicorn.run(
        "wifidesk.api.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
