from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware

import app.db.base  # noqa: F401
from app.api.errors import register_exception_handlers
from app.api.main import api_router
from app.core.logging import configure_logging, get_logger
from app.core.settings import Env, settings
from app.middlewares.security import SecurityHeadersMiddleware
from app.middlewares.telemetry import RequestContextMiddleware
from app.version import APP_VERSION, BUILD_TIME_UTC, GIT_SHA

configure_logging(json=settings.LOG_JSON, level=settings.LOG_LEVEL)


def cors_origins(raw: str) -> list[str]:
    """'localhost,https://x.org' -> origens; host sem protocolo vale para http e https."""
    origins: list[str] = []
    for host in raw.split(","):
        host = host.strip()
        if not host:
            continue
        if host.startswith("http"):
            origins.append(host)
        else:
            origins.extend([f"http://{host}", f"https://{host}"])
    return origins


is_prod = settings.APP_ENV == Env.PROD

app = FastAPI(debug=settings.DEBUG, title="Counselling Booking", version=APP_VERSION)

# ordem: o último adicionado roda primeiro
app.add_middleware(SecurityHeadersMiddleware, hsts=is_prod)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(settings.ALLOWED_HOSTS) or (["*"] if settings.DEBUG else []),
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["Content-Type", "Idempotency-Key", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)
if is_prod:
    app.add_middleware(HTTPSRedirectMiddleware)
app.add_middleware(RequestContextMiddleware)

register_exception_handlers(app)
app.include_router(api_router)


# --- Endpoints
@app.get("/healthz", tags=["ops"])
def healthz():
    get_logger().info("health.check")
    return {"status": "ok", "env": settings.APP_ENV, "version": APP_VERSION}


@app.get("/version", tags=["ops"])
def version():
    return {
        "version": APP_VERSION,
        "git_sha": GIT_SHA,
        "build_time_utc": BUILD_TIME_UTC,
        "env": settings.APP_ENV,
    }
