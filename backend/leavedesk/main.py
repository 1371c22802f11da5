from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session

from leavedesk.core.errors import register_exception_handlers
from leavedesk.core.logging import RequestLoggingMiddleware, configure_logging
from leavedesk.core.observability import PrometheusMiddleware, metrics_endpoint
from leavedesk.core.settings import settings
from leavedesk.db.session import get_db
from leavedesk.modules.router_registry import include_all_routers

configure_logging(level=settings.log_level)
logger = logging.getLogger(__name__)

if settings.is_production:
    if any(origin.strip() == "*" for origin in settings.allow_origins):
        raise RuntimeError("ALLOW_ORIGINS cannot include '*' in production")
    if settings.jwt_secret.startswith("change_me"):
        raise RuntimeError("JWT_SECRET must be set in production")

app = FastAPI(title=settings.project_name, version=settings.project_version)

# Always allow localhost during development (Vite often changes ports).
allow_origin_regex = None if settings.is_production else r"^http://(localhost|127\.0\.0\.1)(:\d+)?$"

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allow_origins,
    allow_origin_regex=allow_origin_regex,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-Id", "Accept"],
)
app.add_middleware(PrometheusMiddleware)
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], tags=["observability"], include_in_schema=False)

include_all_routers(app)


@app.get("/healthz", tags=["health"])
def healthcheck(db: Session = Depends(get_db)) -> dict[str, str]:
    try:
        db.execute(text("SELECT 1"))
    except Exception as exc:  # pragma: no cover - runtime health check
        logger.error("healthcheck_failed", exc_info=True)
        raise HTTPException(status_code=503, detail="Service unavailable") from exc
    return {"status": "ok", "database": "ok"}


@app.get("/readyz", tags=["health"])
def readiness(db: Session = Depends(get_db)) -> dict[str, str]:
    try:
        db.execute(text("SELECT 1"))
        try:
            revision = db.execute(text("SELECT version_num FROM alembic_version")).scalar()
        except Exception:
            raise HTTPException(status_code=503, detail="Migrations not applied")
    except HTTPException:
        raise
    except Exception as exc:  # pragma: no cover - runtime readiness check
        raise HTTPException(status_code=503, detail="Database unavailable") from exc
    return {"status": "ok", "alembic_revision": str(revision)}


@app.get("/version", tags=["health"])
def version() -> dict[str, str | None]:
    return {
        "version": settings.project_version,
        "git_sha": settings.git_sha,
        "environment": settings.environment,
    }
