"""
Garage Sale Marketplace API - Main Application.

FastAPI application with CORS enabled for frontend communication.

Run locally with:
    uvicorn api.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import __version__
from api.config import load_settings
from api.container import ServiceContainer, build_container
from domain.errors import MarketplaceError

logger = logging.getLogger(__name__)

SERVICE_NAME = "garage-sale-marketplace-api"

_PREFLIGHT_HEADERS = "Content-Type, Authorization, Idempotency-Key"


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "Invalid request - " + "; ".join(parts)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(MarketplaceError)
    async def marketplace_error_handler(request: Request, exc: MarketplaceError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": str(exc) or "Internal server error"})


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the application.

    Args:
        container: Pre-built services (tests pass fakes). When omitted, the
            production container is built from the environment at start-up.
    """

    settings = container.settings if container is not None else load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_container = app.state.container is None
        if owns_container:
            app.state.container = build_container(settings)
            logger.info("Service container ready")
        yield
        if owns_container:
            app.state.container.close()

    # Create FastAPI application
    app = FastAPI(
        title="Garage Sale Marketplace API",
        description="Payments, sale recording and listing search for an online garage sale marketplace",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.container = container

    # Any origin may call the API; the request Origin is echoed back.
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=".*",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Registered after CORSMiddleware, so it runs first: every OPTIONS request
    # is answered here, preflight or not.
    @app.middleware("http")
    async def answer_options(request: Request, call_next):
        if request.method != "OPTIONS":
            return await call_next(request)
        return Response(
            status_code=204,
            headers={
                "Access-Control-Allow-Origin": request.headers.get("origin") or "*",
                "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
                "Access-Control-Allow-Headers": request.headers.get("access-control-request-headers")
                or _PREFLIGHT_HEADERS,
                "Access-Control-Max-Age": "600",
                "Vary": "Origin",
            },
        )

    _register_exception_handlers(app)

    @app.get("/health", tags=["Health"])
    def health_check():
        """
        Health check endpoint.

        Returns the API status and version.
        """
        return {
            "status": "healthy",
            "version": __version__,
            "service": SERVICE_NAME
        }

    @app.get("/", tags=["Root"])
    def root():
        """
        Root endpoint with API information.
        """
        return {
            "message": "Garage Sale Marketplace API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health"
        }

    # Import and include routers
    from api.routers import admin, checkout, geo, listings, payments

    app.include_router(payments.router, prefix="/payment", tags=["Payments"])
    app.include_router(checkout.router, prefix="/checkout", tags=["Checkout"])
    app.include_router(admin.router, tags=["Admin"])
    app.include_router(listings.router, tags=["Listings"])
    app.include_router(geo.router, prefix="/geo", tags=["Location"])

    return app


app = create_app()
