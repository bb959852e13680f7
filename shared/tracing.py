"""Tracing utilities with optional Langfuse integration.

By default spans are no-ops. If ``LANGFUSE_ENABLED=true``, the ``langfuse``
SDK is installed and a public/secret key pair is configured, spans and
events are forwarded to Langfuse. Tracing is observability only: a tracing
backend failure never changes the answer a visitor receives.

Helpers:
- ``span``: context manager around a named unit of work.
- ``log_event``: short-lived structured event (Retrieval, Generation, Query).
- ``install_fastapi_tracing``: one trace per HTTP request.
- ``estimate_tokens``: crude token estimate for span metadata.
"""

import contextvars
import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from shared.settings import Settings

logger = logging.getLogger(__name__)

_settings = Settings()

try:
    from langfuse import Langfuse  # type: ignore
except ImportError:  # pragma: no cover - optional dependency
    Langfuse = None  # type: ignore


def _now_ms() -> int:
    return int(time.time() * 1000)


class _Span:
    """A no-op span used when tracing is disabled."""

    def __init__(self, name: str, **kwargs: Any) -> None:
        self.name = name

    def __enter__(self) -> "_Span":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None


_current_trace = contextvars.ContextVar("portfolio.current_trace", default=None)


class Tracer:
    """Tracer facade with pluggable backends (no-op or Langfuse)."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        settings = settings or _settings
        self._backend = settings.tracing_backend.lower()
        self._enabled = bool(settings.langfuse_enabled)
        self._client = None
        if self._enabled and self._backend == "langfuse" and Langfuse is not None:
            if settings.langfuse_public_key and settings.langfuse_secret_key:
                try:
                    self._client = Langfuse(
                        public_key=settings.langfuse_public_key,
                        secret_key=settings.langfuse_secret_key,
                        host=settings.langfuse_host or None,
                    )
                except Exception as exc:  # pragma: no cover - network/SDK issues
                    logger.warning("Langfuse disabled: %s", exc)
                    self._client = None

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def start_trace(
        self, name: str, input: Optional[dict] = None, user_id: Optional[str] = None
    ):
        if self._client is None:
            return None
        try:
            tr = self._client.trace(name=name, input=input or {}, user_id=user_id)
        except Exception as exc:  # pragma: no cover - optional dependency
            logger.debug("Failed to start trace %s: %s", name, exc)
            return None
        _current_trace.set(tr)
        return tr

    def end_trace(self, output: Optional[dict] = None) -> None:
        tr = _current_trace.get()
        if tr is not None and hasattr(tr, "update"):
            try:
                tr.update(output=output or {})
            except Exception as exc:  # pragma: no cover - optional dependency
                logger.debug("Failed to close trace: %s", exc)
        _current_trace.set(None)

    def start_span(self, name: str, **kwargs: Any) -> _Span:
        if self._client is None:
            return _Span(name, **kwargs)
        return _LangfuseSpan(
            self._client, name, parent_trace=_current_trace.get(), **kwargs
        )


tracer = Tracer()


def install_fastapi_tracing(app, service_name: str = "api-gateway") -> None:
    """Install middleware to create one trace per HTTP request."""
    from fastapi import Request

    @app.middleware("http")
    async def _trace_middleware(request: Request, call_next: Callable):
        tracer.start_trace(
            name=f"{service_name} {request.method} {request.url.path}",
            input={"method": request.method, "path": request.url.path},
        )
        status = None
        try:
            with span("http.request"):
                response = await call_next(request)
            status = response.status_code
            return response
        finally:
            tracer.end_trace(output={"status": status})


@contextmanager
def span(name: str, **kwargs: Any) -> Iterator[_Span]:
    """Context manager wrapper around the tracer's start_span method.

    Usage:
        with span("query.retrieve", corr=conversation_id):
            ...
    """
    s = tracer.start_span(name, **kwargs)
    s.__enter__()
    try:
        yield s
    finally:
        s.__exit__(None, None, None)


class _LangfuseSpan(_Span):  # pragma: no cover - optional dependency
    def __init__(
        self, client: Any, name: str, parent_trace: Any | None = None, **kwargs: Any
    ) -> None:
        super().__init__(name, **kwargs)
        self._client = client
        self._trace = parent_trace
        self._span = None
        self._start_ms = _now_ms()
        self._kwargs = kwargs

    def __enter__(self) -> "_LangfuseSpan":
        try:
            if self._trace is None:
                self._trace = self._client.trace(name=_settings.trace_name)
            self._span = self._trace.span(name=self.name, input=self._kwargs)
        except Exception as exc:
            logger.debug("Failed to open span %s: %s", self.name, exc)
            self._span = None
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._span is None:
            return None
        try:
            self._span.end(
                output={
                    "error": str(exc) if exc else None,
                    "duration_ms": max(1, _now_ms() - self._start_ms),
                }
            )
        except Exception as err:
            logger.debug("Failed to close span %s: %s", self.name, err)
        return None


def log_event(
    name: str, payload: Optional[dict] = None, correlation_id: Optional[str] = None
) -> None:
    """Emit a short-lived structured event span for observability.

    Args:
        name: Logical event name, e.g. "Retrieval", "Generation", "Query".
        payload: JSON-serialisable dict with event data.
        correlation_id: Conversation id used to stitch events of one request.
    """
    meta = dict(payload or {})
    if correlation_id:
        meta["correlation_id"] = correlation_id
    with span(f"event.{name}", **meta):
        pass


def estimate_tokens(text: str) -> int:
    """Very rough subword token estimate (for span metadata only)."""
    if not text:
        return 0
    # ~4 characters per token for English-like text
    return max(1, int(len(text) / 4))
