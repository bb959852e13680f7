"""HTTP entry point for the portfolio assistant.

This service exposes the assistant API over FastAPI. Every request, whatever
its method or path, is forwarded unchanged to the transport-independent
:class:`RequestHandler`, which owns routing, validation, CORS headers and
serialisation. The FastAPI layer only adds per-request tracing and a
last-resort JSON 500 for anything that escapes the handler.

Run locally:
    uvicorn services.api_gateway.app.main:app --reload
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from shared.logging_utils import configure_logging
from shared.settings import PipelineConfig, Settings
from shared.tracing import install_fastapi_tracing

from .handler import RequestHandler
from .orchestrator import build_orchestrator

logger = logging.getLogger(__name__)

_METHODS = ["GET", "POST", "OPTIONS", "PUT", "PATCH", "DELETE", "HEAD"]


def build_handler(settings: Optional[Settings] = None) -> RequestHandler:
    config = PipelineConfig.from_settings(settings or Settings())
    logger.info(
        "Assistant configured (provider=%s, model=%s, knowledge_base=%s)",
        config.llm_provider,
        config.llm_model_id,
        config.knowledge_base_id or "NOT_CONFIGURED",
    )
    return RequestHandler(build_orchestrator(config), allow_origin=config.cors_allow_origin)


def create_app(handler: Optional[RequestHandler] = None) -> FastAPI:
    """Return the FastAPI app; the production handler is built on first use."""
    app = FastAPI(title="Portfolio Assistant API", version="1.0.0")
    install_fastapi_tracing(app, service_name="api-gateway")
    app.state.handler = handler

    # ---------- Global safety net: never crash the worker ----------
    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        """Catch-all for any unhandled exception; return structured JSON 500."""
        logger.exception("Unhandled error for %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": f"Internal server error: {exc}"},
        )

    @app.api_route("/{path:path}", methods=_METHODS, include_in_schema=False)
    async def dispatch(request: Request, path: str) -> Response:
        if app.state.handler is None:
            app.state.handler = build_handler()
        body = await request.body()
        # the pipeline makes blocking AWS calls
        result = await run_in_threadpool(
            app.state.handler.handle, request.method, request.url.path, body
        )
        return Response(
            content=result.body,
            status_code=result.status_code,
            headers=result.headers,
        )

    return app


configure_logging()
app = create_app()
