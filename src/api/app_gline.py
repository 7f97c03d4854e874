from __future__ import annotations

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from src.core.logging_config import configure_logging

from .dependencies_gline import (
    get_gline_runtime_state,
    get_startup_mode,
    shutdown_gline_service,
    warmup_gline_service,
)
from .routers.tools import router as tools_router

configure_logging()
logger = logging.getLogger(__name__)

VERSION_CODE = "0.1.0"
APP_DISPLAY_NAME = "gline-service"


@asynccontextmanager
async def lifespan(app: FastAPI):
    startup_mode = get_startup_mode()
    logger.info("Startup: preparing GLiNER service (mode=%s)", startup_mode)

    warmup_task: asyncio.Task | None = None
    if startup_mode == "background":
        warmup_task = asyncio.create_task(warmup_gline_service())
        app.state.warmup_task = warmup_task
        logger.info("Startup: model load running in background")
    else:
        await warmup_gline_service()
        logger.info("Startup: GLiNER service ready")

    try:
        yield
    finally:
        if warmup_task and not warmup_task.done():
            warmup_task.cancel()
            with suppress(asyncio.CancelledError):
                await warmup_task
        shutdown_gline_service()
        logger.info("Shutdown: API stopping")


def create_app() -> FastAPI:
    docs_enabled = os.getenv("ENABLE_API_DOCS", "1").strip().lower() not in {"0", "false", "no", "off"}

    app = FastAPI(
        title=APP_DISPLAY_NAME,
        description="Entity extraction tool backed by the native GLiNER engine.",
        version=VERSION_CODE,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )

    _configure_middlewares(app)
    _configure_routes(app)

    return app


def _configure_middlewares(app: FastAPI) -> None:
    gzip_minimum_size = int(os.getenv("GZIP_MINIMUM_SIZE", "1024"))
    app.add_middleware(GZipMiddleware, minimum_size=gzip_minimum_size)

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        response.headers["X-Process-Time-MS"] = f"{(time.perf_counter() - start) * 1000:.2f}"
        return response


def _configure_routes(app: FastAPI) -> None:
    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": APP_DISPLAY_NAME,
            "version": VERSION_CODE,
            "docs": "/docs",
            "health": "/health",
            "tools": "/tools",
        }

    @app.get("/health")
    async def health():
        runtime = get_gline_runtime_state()
        status = runtime["status"]

        if status == "failed":
            http_status = 503
            state = "error"
        elif status == "ready":
            http_status = 200
            state = "ok"
        elif status == "closed":
            http_status = 503
            state = "stopped"
        else:
            http_status = 200
            state = "starting"

        return JSONResponse(
            status_code=http_status,
            content={"status": state, "ready": runtime["ready"], "runtime": runtime},
        )

    @app.get("/health/ready")
    async def health_ready():
        runtime = get_gline_runtime_state()
        ready = runtime["ready"]
        return JSONResponse(
            status_code=200 if ready else 503,
            content={"ready": ready, "runtime": runtime},
        )

    app.include_router(tools_router)


app = create_app()


__all__ = ["app", "create_app"]
