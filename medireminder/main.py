from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
import logging

from sqlalchemy.engine import make_url

from medireminder.config.settings import Settings, settings as default_settings
from medireminder.core.attachments import AttachmentManager
from medireminder.core.exceptions import APIError
from medireminder.core.middleware import log_requests_middleware
from medireminder.db.base import Base, get_engine, get_session_factory
import medireminder.db.models  # noqa: F401  (register tables on Base.metadata)
from medireminder.routes.auth.router import router as auth_router
from medireminder.routes.medicaments.router import router as medicaments_router
from medireminder.routes.users.router import router as users_router

# -------------------------------------------------------------------------------------
# Logging
# -------------------------------------------------------------------------------------
logging.basicConfig(
    level=default_settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# -------------------------------------------------------------------------------------
# Error rendering
# -------------------------------------------------------------------------------------
def _error_body(code: str, message: str, **extra) -> dict:
    return {"success": False, "error": code, "message": message, **extra}


async def api_error_handler(request: Request, exc: APIError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=_error_body("invalid_input", "Invalid request data", details=details),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content=_error_body("not_found", "Endpoint not found", path=request.url.path),
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body("http_error", str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content=_error_body("internal_error", "Internal server error"))


# -------------------------------------------------------------------------------------
# Lifespan
# -------------------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application start-up & shutdown hooks."""
    settings: Settings = app.state.settings
    logger.info("Application startup …")

    engine = None
    try:
        logger.info("Initializing Database Engine...")
        engine = await get_engine(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
        )
        app.state.engine = engine

        if settings.auto_create_tables:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables verified.")

        app.state.session_factory = await get_session_factory(engine)
        logger.info("DB session factory ready.")
    except Exception as e:
        logger.critical(f"CRITICAL ERROR DURING STARTUP INITIALIZATIONS: {e}", exc_info=True)
        if engine:  # Attempt to clean up engine if it was created
            try:
                await engine.dispose()
                logger.info("Disposed engine after startup failure.")
            except Exception as dispose_e:
                logger.error(f"Error disposing engine after startup failure: {dispose_e}")
        raise  # Re-raise the exception to stop the Uvicorn server from starting fully

    # ------------------------------------------------ give control back
    yield

    # ------------------------------------------------ shutdown --------
    logger.info("Application shutdown …")
    try:
        await engine.dispose()
        logger.info("DB engine disposed")
    except Exception:
        logger.exception("Error disposing DB engine")
    logger.info("Shutdown complete")


# -------------------------------------------------------------------------------------
# FastAPI application factory
# -------------------------------------------------------------------------------------
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(title="Medicament Reminder API", lifespan=lifespan)
    app.state.settings = settings

    attachments = AttachmentManager.from_settings(settings)
    attachments.ensure_directory()
    app.state.attachments = attachments

    # CORS ---------------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(o) for o in settings.cors_origins],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests_middleware)

    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # ------------------------------------------------------------- health‑check -----
    @app.get("/health")
    async def health_check(request: Request):
        return {
            "status": "ok",
            "message": "API is running",
            "database": make_url(settings.database_url).get_backend_name(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uploads": "enabled",
        }

    # --------------------------------------------------------------- routes ---------
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(medicaments_router)

    # uploaded images are public under MEDIA_URL_PATH
    app.mount(
        "/" + settings.media_url_path.strip("/"),
        StaticFiles(directory=attachments.directory),
        name="media",
    )

    return app


app = create_app()
