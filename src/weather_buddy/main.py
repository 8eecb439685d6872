"""FastAPI application entrypoint and the ``weather-buddy`` command."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from weather_buddy.api.routes import router
from weather_buddy.api.schemas import HealthResponse
from weather_buddy.config import get_charts_dir, settings
from weather_buddy.errors import AppError
from weather_buddy.pipeline.push import push_weather
from weather_buddy.pipeline.scheduler import create_scheduler

logger = structlog.get_logger()

VERSION = "1.0.0"


# ---------------------------------------------------------------------------
# Logging and global error hooks
# ---------------------------------------------------------------------------


def configure_logging(level: str = "INFO") -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper(), logging.INFO)),
        cache_logger_on_first_use=False,
    )


def _log_uncaught(exc_type, exc, tb) -> None:
    logger.error("app.uncaught_exception", exc_info=(exc_type, exc, tb))


def _log_loop_exception(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    exc = context.get("exception")
    logger.error("app.unhandled_task_error", message=context.get("message"), exc_info=exc)


def install_error_hooks() -> None:
    """Log uncaught exceptions. Must be called from inside the running loop."""
    sys.excepthook = _log_uncaught
    asyncio.get_running_loop().set_exception_handler(_log_loop_exception)


# ---------------------------------------------------------------------------
# App lifecycle
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the minute scheduler with the server and stop it on shutdown."""
    install_error_hooks()
    scheduler = None
    if app.state.run_scheduler:
        scheduler = create_scheduler()
        scheduler.start()
    logger.info("app.startup", port=settings.port, scheduler=scheduler is not None)

    yield

    if scheduler is not None:
        scheduler.shutdown(wait=False)
    logger.info("app.shutdown")


def create_app(run_scheduler: bool = True) -> FastAPI:
    app = FastAPI(
        title="WeatherBuddy",
        description="Daily weather forecast push bot",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.run_scheduler = run_scheduler

    app.include_router(router)
    app.mount("/charts", StaticFiles(directory=str(get_charts_dir())), name="charts")

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        return HealthResponse(timestamp=datetime.now(timezone.utc).isoformat(), version=VERSION)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = "请求的资源不存在" if exc.status_code == 404 else str(exc.detail)
        if exc.status_code == 404:
            logger.warning("api.not_found", method=request.method, path=request.url.path)
        return JSONResponse(status_code=exc.status_code, content={"success": False, "message": message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning("api.bad_request", path=request.url.path, errors=len(exc.errors()))
        return JSONResponse(status_code=400, content={"success": False, "message": "请求格式不正确"})

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        logger.error("api.app_error", path=request.url.path, code=exc.code, error=exc.message)
        return JSONResponse(status_code=exc.status, content={"success": False, "message": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("api.unhandled_error", path=request.url.path)
        return JSONResponse(status_code=500, content={"success": False, "message": "服务器内部错误"})

    return app


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def run(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="weather-buddy", description="WeatherBuddy push service")
    parser.add_argument("--test", action="store_true", help="push once to every enabled user and exit")
    args = parser.parse_args(argv)

    configure_logging(settings.log_level)
    sys.excepthook = _log_uncaught
    logger.info("app.launch", version=VERSION, test_mode=args.test)

    if args.test:
        sent = asyncio.run(push_weather())
        logger.info("app.test_push.done", sent=sent)
        return

    uvicorn.run(create_app(), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
