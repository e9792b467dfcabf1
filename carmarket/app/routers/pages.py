import logging
import time

from fastapi import APIRouter, Depends, Request
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError

from ..backend_client import BackendClient, get_backend_client
from ..config import settings
from ..models import Profile


router = APIRouter()
logger = logging.getLogger(__name__)


def diagnostic_context(request: Request, *, missing=(), checks=None, ok=False) -> dict:
    return {
        "request": request,
        "missing": list(missing),
        "checks": checks or [],
        "ok": ok,
        "app_env": settings.APP_ENV,
    }


@router.get("/test-connection")
def test_connection(request: Request, client: BackendClient = Depends(get_backend_client)):
    templates = request.app.state.templates
    db = client.db
    checks = []
    ok = True
    t0 = time.perf_counter()
    try:
        db.execute(text("SELECT 1")).scalar_one()
        checks.append({"name": "Database round-trip", "ok": True, "detail": f"{(time.perf_counter() - t0) * 1000:.1f} ms"})
        profiles = db.execute(select(func.count()).select_from(Profile)).scalar_one()
        checks.append({"name": "Profiles table", "ok": True, "detail": f"{profiles} profiles"})
    except SQLAlchemyError as exc:
        logger.exception("connection_test_failed")
        db.rollback()
        ok = False
        checks.append({"name": "Database round-trip", "ok": False, "detail": exc.__class__.__name__})
    return templates.TemplateResponse(
        request,
        "diagnostic.html",
        diagnostic_context(request, checks=checks, ok=ok),
        status_code=200 if ok else 503,
    )
