import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from .config import settings
from .db import Base, engine, SessionLocal
from .logging import setup_logging, RequestIdMiddleware, structlog
from .auth.router import router as auth_router
from .routes.facilities import router as facilities_router
from .routes.licenses import router as licenses_router
from .routes.divisions import router as divisions_router
from .routes.users import router as users_router
from .routes.settings import router as settings_router
from .routes.activity_logs import router as activity_logs_router
from .routes.reports import router as reports_router
from .routes.functions import router as functions_router
from .routes.storage import router as storage_router
from .routes.ui import router as ui_router
from .services.licensing import refresh_statuses

logger = structlog.get_logger(__name__)


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name)

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

    # Routers
    app.include_router(auth_router)
    app.include_router(facilities_router)
    app.include_router(licenses_router)
    app.include_router(divisions_router)
    app.include_router(users_router)
    app.include_router(settings_router)
    app.include_router(activity_logs_router)
    app.include_router(reports_router)
    app.include_router(functions_router)
    app.include_router(storage_router)

    # Metrics
    Instrumentator().instrument(app).expose(app)

    # Client route shell last: it ends with a catch-all
    app.include_router(ui_router)

    @app.on_event("startup")
    def _startup():
        logger.info("startup", environment=settings.environment)
        # Ensure local SQLite directory exists
        if settings.database_url.startswith("sqlite:///./"):
            os.makedirs("var", exist_ok=True)
        if settings.auto_create_db:
            Base.metadata.create_all(bind=engine)
        if settings.refresh_license_status_on_startup:
            db = SessionLocal()
            try:
                refresh_statuses(db)
            except Exception as e:
                db.rollback()
                logger.warning("startup_license_refresh_failed", error=str(e))
            finally:
                db.close()

    return app


app = create_app()
