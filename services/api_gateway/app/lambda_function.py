"""AWS Lambda entry point (API Gateway proxy integration).

Configure the function handler as
``services.api_gateway.app.lambda_function.lambda_handler``. The request
handler and its AWS clients are built once per container and reused across
invocations.
"""

from __future__ import annotations

import base64
from typing import Any, Optional

from shared.logging_utils import configure_logging

from .handler import RequestHandler
from .main import build_handler

_handler: Optional[RequestHandler] = None


def get_handler() -> RequestHandler:
    global _handler
    if _handler is None:
        configure_logging()
        _handler = build_handler()
    return _handler


def _method_and_path(event: dict) -> tuple[str, str]:
    # REST API (v1) events carry httpMethod/path; HTTP API (v2) events use requestContext.http
    http = (event.get("requestContext") or {}).get("http") or {}
    method = event.get("httpMethod") or http.get("method") or ""
    path = event.get("path") or event.get("rawPath") or http.get("path") or ""
    return method, path


def lambda_handler(event: dict, context: Any = None) -> dict:
    method, path = _method_and_path(event)
    body = event.get("body")
    if body and event.get("isBase64Encoded"):
        body = base64.b64decode(body).decode("utf-8")
    result = get_handler().handle(method, path, body)
    return {
        "statusCode": result.status_code,
        "headers": result.headers,
        "body": result.body,
    }
