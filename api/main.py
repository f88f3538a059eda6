"""Book Catalog API — FastAPI entry point.

Registers middleware, exception handlers, routers and lifecycle hooks.
The database pool is owned by the application: created in the lifespan,
stored on ``app.state.db`` and disposed on shutdown.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.middleware import RequestContextMiddleware
from core.config import CatalogConfig
from core.database import Database
from core.errors import CatalogError, StoreFailure
from core.logging import setup_logging
from verticals.catalog.models.schemas import ErrorResponse

logger = structlog.get_logger(__name__)

VERSION = "0.1.0"


def _error_response(
    status_code: int,
    error: str,
    detail: Optional[str] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail, status_code=status_code).model_dump(),
        headers=headers,
    )


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

async def catalog_error_handler(request: Request, exc: CatalogError):
    """Map the error taxonomy onto its HTTP status."""
    if exc.status_code >= 500:
        logger.error("Request failed", error=exc.message, status_code=exc.status_code)
    return _error_response(exc.status_code, exc.message, exc.detail)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and parameters are client errors (400)."""
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid request")
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        "Invalid request",
        f"{location}: {message}" if location else message,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions (unknown routes, wrong methods)."""
    return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def store_error_handler(request: Request, exc: SQLAlchemyError):
    """Store failures surface as a generic 500; internals go to the log only."""
    logger.error("Store failure", error=str(exc), exc_type=type(exc).__name__)
    config: CatalogConfig = request.app.state.config
    failure = StoreFailure("Internal server error", detail=str(exc) if config.debug else None)
    return _error_response(failure.status_code, failure.message, failure.detail)


async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions.

    Logged by RequestContextMiddleware while the request context is bound.
    """
    config: CatalogConfig = request.app.state.config
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        str(exc) if config.debug else None,
    )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(
    config: Optional[CatalogConfig] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """Build the application.

    Args:
        config: Settings; read from the environment when omitted
        database: A pre-built Database (tests pass an SQLite one). When
            omitted, the lifespan creates one from ``config.database``.
    """
    config = config or CatalogConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application startup/shutdown hooks."""
        setup_logging(config.logging.level, config.logging.format)

        owned = getattr(app.state, "db", None) is None
        if owned:
            app.state.db = Database(config.database)
        await app.state.db.connect()
        logger.info("Book Catalog API started", version=VERSION)
        yield
        if owned:
            await app.state.db.close()
        logger.info("Book Catalog API shutting down")

    app = FastAPI(
        title="Book Catalog",
        description="Book catalog backend: listings, comparisons, reviews, reading lists and admin reports",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.config = config
    if database is not None:
        app.state.db = database

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request id + structured log context
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(CatalogError, catalog_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    _include_routers(app)
    _add_service_routes(app)
    return app


def _include_routers(app: FastAPI) -> None:
    from verticals.catalog.routers import auth, books, reading, reference, reports, reviews

    app.include_router(books.router, prefix="/api/books", tags=["Books"])
    app.include_router(reference.authors_router, prefix="/api/authors", tags=["Authors"])
    app.include_router(reference.genres_router, prefix="/api/genres", tags=["Genres"])
    app.include_router(reference.bookstores_router, prefix="/api/bookstores", tags=["Bookstores"])
    app.include_router(reviews.router, prefix="/api/reviews", tags=["Reviews"])
    app.include_router(reading.router, prefix="/api/user/books", tags=["Reading list"])
    app.include_router(reading.me_router, prefix="/api/me", tags=["Reading list"])
    app.include_router(reports.router, prefix="/api/reports", tags=["Reports"])
    app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])


# ---------------------------------------------------------------------------
# Health & root
# ---------------------------------------------------------------------------

def _add_service_routes(app: FastAPI) -> None:
    @app.get("/health", tags=["Health"])
    async def health(request: Request):
        """Health check endpoint; pings the store."""
        try:
            async with request.app.state.db.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            db_status = "healthy"
        except SQLAlchemyError as e:
            logger.warning("Health check failed", error=str(e))
            db_status = "unhealthy"

        status_code = status.HTTP_200_OK if db_status == "healthy" else status.HTTP_503_SERVICE_UNAVAILABLE
        return JSONResponse(
            status_code=status_code,
            content={"status": db_status, "database": db_status, "version": VERSION},
        )

    @app.get("/", tags=["Health"])
    async def root():
        return {
            "name": "Book Catalog",
            "version": VERSION,
            "docs": "/docs",
            "description": "Book catalog backend with reviews, reading lists and reports",
        }


app = create_app()


if __name__ == "__main__":
    uvicorn.run("api.main:app", host="0.0.0.0", port=8000, reload=False)
