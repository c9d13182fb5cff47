import os
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .db import Base, engine
from .errors import AssetHubError, UpstreamUnavailable
from .logging import setup_logging, RequestIdMiddleware
from .routes.alerts import router as alerts_router
from .routes.assets import router as assets_router
from .routes.lookups import router as lookups_router
from .routes.maintenance import router as maintenance_router
from .routes.users import router as users_router
from .routes.warranty import router as warranty_router
from .routes.workflow import router as workflow_router
from .services import events


logger = structlog.get_logger(__name__)


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name, version=settings.app_version)

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Errors
    @app.exception_handler(AssetHubError)
    async def _assethub_error(request: Request, exc: AssetHubError):
        if exc.status_code >= 500:
            logger.error("request_failed", error=exc.code, detail=exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(SQLAlchemyError)
    async def _store_error(request: Request, exc: SQLAlchemyError):
        logger.error("store_error", error=str(exc), path=request.url.path)
        err = UpstreamUnavailable("Could not reach the database, please try again")
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    # Routers
    app.include_router(assets_router)
    app.include_router(lookups_router)
    app.include_router(users_router)
    app.include_router(maintenance_router)
    app.include_router(workflow_router)
    app.include_router(alerts_router)
    app.include_router(warranty_router)

    # Metrics
    Instrumentator().instrument(app).expose(app)

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": settings.app_version,
            "environment": settings.environment,
        }

    @app.on_event("startup")
    def _startup():
        logger.info("startup", environment=settings.environment)
        # Ensure local SQLite directory exists
        if settings.database_url.startswith("sqlite:///./"):
            os.makedirs("var", exist_ok=True)
        if settings.auto_create_db:
            Base.metadata.create_all(bind=engine)
            logger.info("tables_verified", count=len(Base.metadata.tables))
        events.register_sink(events.LogSink())

    return app


app = create_app()
