"""
Book Review API application

create_app() assembles the FastAPI app:
- slowapi rate limiting and CORS for the browser frontend
- handlers turning BookReviewError into {"detail", "error", "resource", "id"}
- the routers, mounted under /api/{api_version}
- /health (with a database ping) and /

Run with:
    uvicorn bookreview.main:app --reload
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from bookreview import __version__
from bookreview.config import get_settings
from bookreview.database import SessionLocal, engine
from bookreview.exceptions import BookReviewError
from bookreview.routers import admin, auth, books, reviews, users
from bookreview.services.rate_limiter import limiter, rate_limit_exceeded_handler

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DESCRIPTION = """
Share books and reviews with other readers.

- **Books**: add, browse, search and filter by genre
- **Reviews**: one per reader per book, 1-5 stars, helpful votes
- **Ratings**: every book carries its average rating and review count,
  recomputed on each review change
- **Profiles**: per-user book and review counts

Authenticate at `/api/v1/auth/login` with your email as the username.
"""


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info(
        f"Starting {settings.app_name} {__version__} "
        f"({settings.environment}, api {settings.api_version}, debug={settings.debug})"
    )
    yield
    logger.info(f"Shutting down {settings.app_name}")
    engine.dispose()


# =============================================================================
# Exception Handlers
# =============================================================================
async def domain_error_handler(request: Request, exc: BookReviewError) -> JSONResponse:
    """Services and the store raise these; 5xx kinds are logged as errors."""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """A database error that escaped the store. Details stay in the log."""
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "A database error occurred. Please try again later.",
            "error": "store_error",
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    detail = str(exc) if settings.debug else "An internal error occurred."
    return JSONResponse(status_code=500, content={"detail": detail})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(BookReviewError, domain_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


def register_routers(app: FastAPI) -> None:
    api_prefix = f"/api/{settings.api_version}"
    for module in (auth, users, books, reviews, admin):
        app.include_router(module.router, prefix=api_prefix)


# =============================================================================
# Application Factory
# =============================================================================
def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        description=DESCRIPTION,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    register_routers(app)

    @app.get("/health", tags=["Health"], summary="Health check")
    def health_check() -> JSONResponse:
        """Used by load balancers and container probes. 503 when the database is unreachable."""
        try:
            with SessionLocal() as session:
                session.execute(text("SELECT 1"))
            database = "ok"
        except SQLAlchemyError as exc:
            logger.error(f"Health check database ping failed: {exc}")
            database = "unavailable"

        healthy = database == "ok"
        return JSONResponse(
            status_code=200 if healthy else 503,
            content={
                "status": "healthy" if healthy else "degraded",
                "version": __version__,
                "environment": settings.environment,
                "database": database,
                "rate_limiting": settings.rate_limit_enabled,
            },
        )

    @app.get("/", tags=["Root"], summary="API root")
    def root() -> dict:
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bookreview.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
