"""
FastAPI application factory.

The app holds one ``QuoteRuntime`` on ``app.state``; routes reach it through
dependencies so tests can build an app around fake browsers.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quote_engine.api.routes import quotes, system, websocket
from quote_engine.api.websocket_manager import WebSocketManager
from quote_engine.core.errors import QuoteEngineError, TaskNotFoundError, UnsupportedCarrierError
from quote_engine.runtime import QuoteRuntime

LOGGER = logging.getLogger(__name__)

API_VERSION = "1.1.0"


def create_app(runtime: QuoteRuntime, *, run_cleanup_loop: bool = True) -> FastAPI:
    settings = runtime.settings
    ws_manager = WebSocketManager(settings.get("websocket", {}).get("payload_version", API_VERSION))
    runtime.attach_broadcaster(ws_manager)

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        LOGGER.info("Quote engine API starting up")
        cleanup: Optional[asyncio.Task] = None
        if run_cleanup_loop:
            cleanup = asyncio.create_task(runtime.run_cleanup_loop())
        try:
            yield
        finally:
            LOGGER.info("Quote engine API shutting down")
            if cleanup is not None:
                cleanup.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await cleanup
            await runtime.shutdown()

    app = FastAPI(
        title="Quote Engine API",
        version=API_VERSION,
        description="Multi-carrier auto insurance quote automation",
        lifespan=lifespan,
    )
    app.state.runtime = runtime
    app.state.ws_manager = ws_manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get("server", {}).get("cors_origins", ["*"]),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TaskNotFoundError)
    async def task_not_found(request: Request, exc: TaskNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(UnsupportedCarrierError)
    async def unsupported_carrier(request: Request, exc: UnsupportedCarrierError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(QuoteEngineError)
    async def engine_error(request: Request, exc: QuoteEngineError) -> JSONResponse:
        LOGGER.error("Unhandled engine error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    app.include_router(quotes.router)
    app.include_router(system.router)
    app.include_router(websocket.router)

    @app.get("/")
    async def root():
        return {"service": "quote-engine", "version": API_VERSION, "status": "running"}

    return app


__all__ = ["API_VERSION", "create_app"]
