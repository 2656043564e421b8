from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from payrecon import db
from payrecon.config import AppInfo, Settings, get_settings
from payrecon.core.logging import get_logger, setup_logging
import payrecon.models  # enregistre les tables
from payrecon.routers import get_api_router
from payrecon.utils.errors import INVALID_ARGUMENT, error_response

logger = get_logger(__name__)

_STATUS_CODES = {
    401: "UNAUTHORIZED",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def _configure_middlewares(fastapi_app: FastAPI) -> None:
    """Configure middleware using a snapshot of the settings."""

    runtime_settings = get_settings()
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=runtime_settings.CORS_ALLOW_ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-API-Key"],
    )

    if runtime_settings.PROMETHEUS_ENABLED:
        from starlette_exporter import PrometheusMiddleware, handle_metrics

        fastapi_app.add_middleware(PrometheusMiddleware)
        fastapi_app.add_route("/metrics", handle_metrics)

    if runtime_settings.SENTRY_DSN:
        import sentry_sdk

        sentry_sdk.init(dsn=runtime_settings.SENTRY_DSN, traces_sample_rate=0.2)


def _assert_webhook_secret(settings: Settings) -> None:
    """Fail-fast when the Kkiapay webhook secret is missing outside dev."""

    if settings.kkia_webhook_secret:
        return
    if not settings.is_dev:
        logger.error(
            "Kkiapay webhook secret is missing; configure KKIA_WEBHOOK_SECRET before startup.",
            extra={"env": settings.app_env},
        )
        raise RuntimeError("Missing Kkiapay webhook secret in non-dev environment.")
    logger.warning(
        "Kkiapay webhook secret is not configured; every webhook will be rejected.",
        extra={"env": settings.app_env},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    logger.info("Application startup", extra={"env": settings.app_env, "sandbox": settings.kkia_sandbox})
    _assert_webhook_secret(settings)
    if not settings.kkiapay_configured:
        logger.warning("Kkiapay credentials are not configured; verification calls will fail.")

    db.init_engine()
    if settings.ALLOW_DB_CREATE_ALL and settings.is_dev:
        logger.warning(
            "Running Base.metadata.create_all() because APP_ENV=%s and ALLOW_DB_CREATE_ALL=True",
            settings.app_env,
        )
        db.create_all()
    else:
        logger.info(
            "Skipping create_all(); use Alembic migrations. APP_ENV=%s, ALLOW_DB_CREATE_ALL=%s",
            settings.app_env,
            settings.ALLOW_DB_CREATE_ALL,
        )
    try:
        yield
    finally:
        db.close_engine()
        logger.info("Application shutdown", extra={"env": settings.app_env})


app_info = AppInfo()

app = FastAPI(title=app_info.name, version=app_info.version, lifespan=lifespan)

_configure_middlewares(app)
app.include_router(get_api_router())


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception", exc_info=exc, extra={"path": request.url.path})
    payload = error_response("INTERNAL_SERVER_ERROR", "An unexpected error occurred.")
    return JSONResponse(status_code=500, content=payload)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict) and "error" in detail:
        content: dict[str, Any] = detail
    else:
        content = error_response(_STATUS_CODES.get(exc.status_code, "HTTP_ERROR"), str(detail))
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    payload = error_response(INVALID_ARGUMENT, "Invalid request.", {"errors": jsonable_encoder(exc.errors())})
    return JSONResponse(status_code=400, content=payload)


__all__ = ["app"]
