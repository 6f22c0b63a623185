import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from workshop.core.config import settings
from workshop.core.errors import PersistenceFailure
from workshop.core.logging import RequestIdMiddleware, setup_logging
from workshop.db.base import Base
from workshop.db.session import engine

# Register every table on Base.metadata
from workshop.models import audit_log, client, maintenance_order  # noqa: F401

from workshop.api.routes import clients, financial, maintenance

logger = structlog.get_logger(__name__)


async def persistence_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(
        "persistence_error",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )
    failure = PersistenceFailure()
    return JSONResponse(status_code=failure.status_code, content={"detail": failure.detail})


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.APP_NAME)

    # ===============================
    # MIDDLEWARE
    # ===============================
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(SQLAlchemyError, persistence_error_handler)

    # ===============================
    # CREATE DATABASE TABLES
    # ===============================
    if settings.AUTO_CREATE_DB:
        Base.metadata.create_all(bind=engine)

    # ===============================
    # INCLUDE ROUTERS
    # ===============================
    app.include_router(clients.router)
    app.include_router(maintenance.router)
    app.include_router(financial.router)

    @app.get("/")
    def root():
        return {"status": "Backend running successfully"}

    return app


app = create_app()
