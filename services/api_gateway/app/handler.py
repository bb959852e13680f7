"""Transport-independent request handler for the assistant API.

``RequestHandler.handle(method, path, body)`` is the single entry point used
by both the FastAPI app and the Lambda adapter. Routing, in order:

- ``OPTIONS`` on any path: CORS preflight, empty body.
- ``GET`` on a path ending in ``/health``: fixed health payload.
- ``POST`` on a path ending in ``/query``: validate and run the pipeline.
- Anything else: 404.

Every response, including errors, carries the same CORS header set.
"""

from __future__ import annotations

import json
import logging
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from shared.models import QueryRequest

from .orchestrator import QueryOrchestrator

logger = logging.getLogger(__name__)

HEALTH_PAYLOAD = {"status": "healthy"}
ERROR_BODY_REQUIRED = "Request body is required"
ERROR_QUESTION_REQUIRED = "Question is required"
ERROR_NOT_FOUND = "Not found"


class HandlerResponse(BaseModel):
    """Status, headers and serialised JSON body of a handled request."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    headers: Dict[str, str] = Field(default_factory=dict)
    body: str = ""

    def payload(self) -> Optional[dict]:
        return json.loads(self.body) if self.body else None


def _dumps(payload: dict) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def cors_headers(allow_origin: str = "*") -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
    }


class RequestHandler:
    """Route, validate and serialise requests around a QueryOrchestrator."""

    def __init__(self, orchestrator: QueryOrchestrator, allow_origin: str = "*") -> None:
        self._orchestrator = orchestrator
        self._allow_origin = allow_origin

    def handle(
        self,
        method: str,
        path: Optional[str],
        body: Union[str, bytes, None] = None,
    ) -> HandlerResponse:
        method = (method or "").upper()
        path = path or ""
        logger.info("Received request: %s %s", method, path)

        if method == "OPTIONS":
            logger.debug("Handling CORS preflight request")
            return self._respond(200, "")

        if method == "GET" and path.endswith("/health"):
            logger.debug("Handling health check request")
            return self._respond(200, _dumps(HEALTH_PAYLOAD))

        if method == "POST" and path.endswith("/query"):
            return self._handle_query(body)

        logger.warning("Route not found: %s %s", method, path)
        return self._error(404, ERROR_NOT_FOUND)

    def _handle_query(self, body: Union[str, bytes, None]) -> HandlerResponse:
        try:
            if isinstance(body, bytes):
                body = body.decode("utf-8")
            if not body:
                logger.warning("Received query request with empty body")
                return self._error(400, ERROR_BODY_REQUIRED)

            query = QueryRequest.model_validate(json.loads(body))
            if not query.question:
                logger.warning("Received query request with missing question field")
                return self._error(400, ERROR_QUESTION_REQUIRED)

            logger.info("Processing query for conversation ID: %s", query.conversation_id)
            response = self._orchestrator.process_query(query)
            payload = _dumps(response.to_payload())
            logger.info(
                "Processed query for conversation ID: %s", response.conversation_id
            )
            return self._respond(200, payload)
        except Exception as exc:
            logger.error("Error processing query request: %s", exc, exc_info=True)
            return self._error(500, f"Internal server error: {exc}")

    def _error(self, status_code: int, message: str) -> HandlerResponse:
        return self._respond(status_code, _dumps({"error": message}))

    def _respond(self, status_code: int, body: str) -> HandlerResponse:
        return HandlerResponse(
            status_code=status_code,
            headers=cors_headers(self._allow_origin),
            body=body,
        )
