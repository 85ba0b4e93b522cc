"""
HCC clinic backend.

ARCHITECTURE:
- FastAPI: REST API consumed by the role-aware SPA
- SQLAlchemy: the relational store is the only shared state
- JWT bearer tokens carrying user id and role, 24h lifetime

ROLES:
- student: books appointments, reads own prescriptions
- doctor: manages slots, writes prescriptions
- receptionist: manages users, slots and appointments
- drugstore_manager: manages inventory, dispenses and rejects prescriptions
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from hcc import __version__
from hcc.api.routes import appointments, auth, doctors, drugs, prescriptions, users
from hcc.core.config import settings
from hcc.db.init_db import init_db
from hcc.db.session import Database

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
    1. Refuse to start without a signing key
    2. Create tables (and the bootstrap receptionist, if configured)

    Shutdown:
    1. Dispose the engine
    """
    settings.validate()
    logger.info("Initializing database...")
    init_db(app.state.db)
    logger.info("Database initialized")

    yield

    app.state.db.dispose()


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    return f"{field}: {message}" if field else message


def register_exception_handlers(app: FastAPI) -> None:
    """Every error leaves as {"message": str}."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.info(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": _first_validation_message(exc)},
        )

    @app.exception_handler(SQLAlchemyError)
    async def storage_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Storage error on {request.method} {request.url.path}", exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "An internal error occurred. Please try again later."},
        )


def create_app(database: Optional[Database] = None) -> FastAPI:
    app = FastAPI(
        title="HCC Clinic API",
        description="Appointments, prescriptions and drugstore dispensing.",
        version=__version__,
        lifespan=lifespan,
        docs_url=None if settings.ENVIRONMENT == "production" else "/docs",
        redoc_url=None,
    )
    app.state.db = database or Database(settings.DATABASE_URL)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept", "Origin"],
        max_age=600,
    )

    @app.middleware("http")
    async def add_security_headers(request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    register_exception_handlers(app)

    app.include_router(auth.router, prefix="/auth", tags=["auth"])
    app.include_router(doctors.router, prefix="/doctors", tags=["doctors"])
    app.include_router(appointments.router, prefix="/appointments", tags=["appointments"])
    app.include_router(drugs.router, prefix="/drugs", tags=["drugs"])
    app.include_router(prescriptions.router, prefix="/prescriptions", tags=["prescriptions"])
    app.include_router(users.router, prefix="/users", tags=["users"])

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


configure_logging()
app = create_app()
