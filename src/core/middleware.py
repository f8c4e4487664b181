from collections.abc import Awaitable, Callable
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import sentry_sdk
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from starlette.responses import Response

from loggers import get_logger
from src.core.database.repositories import UNIQUE_VIOLATION_SQLSTATE

logger = get_logger(__name__)
timing_logger = get_logger("src.request.timing", plain_format=True)
UNEXPECTED_ERROR_DETAIL = "Unexpected error"
NO_STORE_PATH_PREFIX = "/v1/auth"


def register_middlewares(app: FastAPI) -> None:
    """Registers all custom middlewares in proper order"""

    @app.middleware("http")
    async def security_headers_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Content-Security-Policy", "frame-ancestors 'none'")
        # Token responses must not end up in shared caches
        if request.url.path.startswith(NO_STORE_PATH_PREFIX):
            response.headers["Cache-Control"] = "no-store"
            response.headers["Pragma"] = "no-cache"
        return response

    @app.middleware("http")
    async def request_timing_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = time.perf_counter() - start_time

        # Password hashing dominates auth requests, so the thresholds are loose
        if process_time < 0.5:
            level = timing_logger.info
            category = "[FAST]"
        elif process_time < 2:
            level = timing_logger.warning
            category = "[MODERATE]"
        else:
            level = timing_logger.warning
            category = "[SLOW]"

        level(
            "%s %s %s |%.3fs|%s",
            category,
            request.method,
            request.url.path,
            process_time,
            response.status_code,
        )
        return response

    @app.middleware("http")
    async def database_error_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except IntegrityError as exc:
            return handle_integrity_error(request, exc)
        except OperationalError as e:
            logger.error(
                "Database connection error at %s: %s", request.url.path, e.orig
            )
            sentry_sdk.capture_exception(e)
            return JSONResponse(
                status_code=500,
                content={
                    "detail": "Database connection error. Please try again later."
                },
            )
        except SQLAlchemyError as e:
            logger.error("Database error at %s: %s", request.url.path, e)
            sentry_sdk.capture_exception(e)
            return JSONResponse(
                status_code=500, content={"detail": "Database query error."}
            )

    @app.middleware("http")
    async def unexpected_error_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception("Unexpected error at %s: %s", request.url.path, e)
            sentry_sdk.capture_exception(e)
            return JSONResponse(
                status_code=500, content={"detail": UNEXPECTED_ERROR_DETAIL}
            )


def handle_integrity_error(request: Request, error: IntegrityError) -> JSONResponse:
    """
    Unique violations are the client's conflict (409), every other constraint
    violation is a server bug (500, reported to Sentry).
    """
    sqlstate = getattr(error.orig, "sqlstate", None)
    if sqlstate == UNIQUE_VIOLATION_SQLSTATE:
        logger.info("Unique violation at %s: %s", request.url.path, error.orig)
        return JSONResponse(status_code=409, content={"detail": "Already exists"})

    logger.error(
        "Integrity error at %s: %s", request.url.path, error.orig, exc_info=True
    )
    sentry_sdk.capture_exception(error)
    return JSONResponse(status_code=500, content={"detail": UNEXPECTED_ERROR_DETAIL})
