from typing import Optional
import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException
from starlette.middleware.gzip import GZipMiddleware
from contextlib import asynccontextmanager
from dotenv import load_dotenv
from sqlalchemy.engine import Engine

# Load environment variables as early as possible
load_dotenv()

from .core.config import Settings, get_settings
from .container import Services, build_services
from .database import build_engine, create_db_and_tables
from .middleware import (
    RateLimitMiddleware, SecurityMiddleware, LoggingMiddleware, ErrorHandlingMiddleware, RequestSizeLimitMiddleware,
)
from .exceptions import AuthError, auth_error_handler, http_exception_handler, validation_exception_handler
from .routers import auth_router, admin_router
from .utils import utcnow

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=settings.LOG_FORMAT
    )


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None,
               engine: Optional[Engine] = None) -> FastAPI:
    settings = settings or get_settings()
    if engine is None:
        engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
    if services is None:
        services = build_services(settings, engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.APP_NAME}...")
        app.state.db_init_ok = True
        app.state.db_init_error = None
        try:
            create_db_and_tables(engine)
            services.admin_auth.ensure_bootstrap_admin(
                settings.ADMIN_BOOTSTRAP_USERNAME,
                settings.ADMIN_BOOTSTRAP_PASSWORD,
                settings.ADMIN_BOOTSTRAP_EMAIL,
            )
            services.maintenance.purge_expired()
            logger.info("Database initialized successfully")
        except Exception as e:
            # Keep serving; /health reports the failure
            app.state.db_init_ok = False
            app.state.db_init_error = str(e)
            logger.exception("Database initialization failed")
        yield
        logger.info(f"Shutting down {settings.APP_NAME}...")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        docs_url=("/docs" if settings.DOCS_ENABLED else None),
        redoc_url=("/redoc" if settings.DOCS_ENABLED else None),
        openapi_url=("/openapi.json" if settings.DOCS_ENABLED else None)
    )
    app.state.settings = settings
    app.state.services = services

    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)

    app.add_middleware(ErrorHandlingMiddleware, debug=settings.DEBUG)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(SecurityMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_REQUEST_SIZE)
    app.add_middleware(RateLimitMiddleware, requests_per_minute=settings.RATE_LIMIT_PER_MINUTE)

    # GZip compression
    app.add_middleware(GZipMiddleware, minimum_size=settings.GZIP_MIN_SIZE)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.allowed_methods_list,
        allow_headers=settings.allowed_headers_list,
    )

    app.include_router(auth_router.router)
    app.include_router(admin_router.router)

    @app.get("/health")
    def health_check():
        return {
            "status": "healthy" if getattr(app.state, "db_init_ok", True) else "degraded",
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "timestamp": utcnow().isoformat(),
            "database": {
                "ok": getattr(app.state, "db_init_ok", True),
                "error": getattr(app.state, "db_init_error", None)
            },
            "notifications": {
                "sms_configured": settings.sms_configured,
                "email_configured": settings.email_configured,
            },
        }

    return app


configure_logging(get_settings())
app = create_app()
