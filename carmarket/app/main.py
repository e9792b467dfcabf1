from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware
from .config import Settings, settings as default_settings
from .errors import ConfigurationError
from .exception_handlers import setup_exception_handlers
from .logging_config import configure_logging
import logging
import time
import os
import uuid
from .routers.pages import diagnostic_context, router as pages_router
from .routers.catalog import router as catalog_router
from .routers.auth import router as auth_router
from .routers.admin import router as admin_router
from .routers.profile import router as profile_router
from .routers.favorites import router as favorites_router
from .routers.listings import router as listings_router
from pathlib import Path

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
logger = logging.getLogger(__name__)


def _add_timing_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def timing_middleware(request: Request, call_next):
        t0 = time.perf_counter()
        req_id = uuid.uuid4().hex[:8]
        response = await call_next(request)
        total = time.perf_counter() - t0
        response.headers["X-Process-Time"] = f"{total:.3f}"
        if os.environ.get("REQ_TIMING", "0") == "1":
            parts = getattr(request.state, "api_parts", None) or {}
            logger.info(
                "req_timing id=%s path=%s status=%s total_ms=%.1f list_ms=%.1f serialize_ms=%.1f items=%s",
                req_id,
                request.url.path,
                response.status_code,
                total * 1000,
                parts.get("list", 0.0) * 1000,
                parts.get("serialize", 0.0) * 1000,
                parts.get("items", 0),
            )
        return response


def create_diagnostic_app(missing: list[str]) -> FastAPI:
    """App served when required backend settings are absent; every route answers 503."""
    app = FastAPI(title="Car Marketplace (not configured)", version="0.1.0")
    app.state.templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    error = ConfigurationError(missing)
    logger.error("configuration_missing keys=%s", ",".join(missing))

    @app.api_route(
        "/{path:path}",
        methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        include_in_schema=False,
    )
    def diagnostic(request: Request, path: str):
        if request.url.path.startswith("/api/"):
            return JSONResponse(
                status_code=503,
                content={"detail": error.message, "code": error.code, "missing": error.missing},
            )
        return app.state.templates.TemplateResponse(
            request,
            "diagnostic.html",
            diagnostic_context(request, missing=missing),
            status_code=503,
        )

    return app


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)
    missing = settings.missing_required()
    if missing:
        return create_diagnostic_app(missing)

    app = FastAPI(title="Car Marketplace", version="0.1.0")
    app.state.templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    app.state.settings = settings

    storage_root = settings.storage_root
    storage_root.mkdir(parents=True, exist_ok=True)
    app.mount(settings.STORAGE_PUBLIC_PATH, StaticFiles(directory=str(storage_root)), name="storage")
    app.add_middleware(SessionMiddleware, secret_key=settings.BACKEND_KEY)
    _add_timing_middleware(app)
    setup_exception_handlers(app)

    app.include_router(pages_router)
    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(admin_router)
    app.include_router(favorites_router)
    app.include_router(listings_router)
    app.include_router(catalog_router, prefix="/api", tags=["catalog"])

    @app.get("/health", include_in_schema=False)
    def healthcheck():
        return {"status": "ok"}

    logger.info("app_started env=%s storage=%s", settings.APP_ENV, storage_root)
    return app


app = create_app()
