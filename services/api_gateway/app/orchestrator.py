"""Query orchestration for the site assistant.

Deterministic pipeline, one request at a time on the caller's thread:

    Retrieval -> Context assembly -> Generation -> Response

Each external dependency failure is absorbed at its own stage:

- Retrieval unavailable (no knowledge base configured, or the call failed)
  degrades to zero passages, so the answer carries no sources.
- Generation failure or an empty model response degrades to a fixed
  fallback answer.

Anything else escaping the stages is a defect in this module. It is caught
once at the top, logged with the conversation id and turned into an
apology answer with no sources; ``process_query`` never raises.

Tracing spans are emitted for each stage.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from services.llm_generate.app.generator import build_generation_client
from services.llm_generate.app.prompts import ERROR_PROCESSING_QUERY
from services.retrieval.app.assembler import EXCERPT_MAX_LENGTH, assemble
from services.retrieval.app.knowledge_base import KnowledgeBaseRetriever
from shared.models import (
    GenerationOutcome,
    QueryRequest,
    QueryResponse,
    RetrievalOutcome,
)
from shared.settings import PipelineConfig, Settings
from shared.tracing import log_event, span

logger = logging.getLogger(__name__)


class Retriever(Protocol):
    def retrieve(self, question: str) -> RetrievalOutcome: ...


class Generator(Protocol):
    def generate(self, question: str, context_text: str) -> GenerationOutcome: ...


class QueryOrchestrator:
    """Sequences retrieval, assembly and generation for one query.

    Args:
        retriever: Retrieval capability (see ``KnowledgeBaseRetriever``).
        generator: Generation capability (see ``GenerationClient``).
        excerpt_max_length: Maximum excerpt length for user-facing sources.
    """

    def __init__(
        self,
        retriever: Retriever,
        generator: Generator,
        excerpt_max_length: int = EXCERPT_MAX_LENGTH,
    ) -> None:
        self._retriever = retriever
        self._generator = generator
        self._excerpt_max_length = excerpt_max_length

    def process_query(self, request: QueryRequest) -> QueryResponse:
        conversation_id = request.conversation_id
        logger.info(
            "Processing query for conversation %s: %s", conversation_id, request.question
        )
        try:
            return self._run(request)
        except Exception as exc:
            logger.error(
                "Error processing query for conversation %s: %s",
                conversation_id,
                exc,
                exc_info=True,
            )
            log_event(
                "Query",
                payload={"status": "error", "error": str(exc)},
                correlation_id=conversation_id,
            )
            return QueryResponse(
                answer=ERROR_PROCESSING_QUERY, sources=[], conversation_id=conversation_id
            )

    def _run(self, request: QueryRequest) -> QueryResponse:
        question = request.question or ""
        corr = request.conversation_id

        # Step 1: Retrieval
        with span("query.retrieve", corr=corr):
            retrieval = self._retriever.retrieve(question)
        passages = retrieval.passages if retrieval.available else []
        if not retrieval.available:
            logger.info("Retrieval unavailable (%s), continuing without context", retrieval.reason)

        # Step 2: Context assembly
        with span("query.assemble", corr=corr, num_passages=len(passages)):
            assembled = assemble(passages, self._excerpt_max_length)
        logger.debug("Assembled %d sources", len(assembled.sources))

        # Step 3: Generation
        with span("query.generate", corr=corr):
            generation = self._generator.generate(question, assembled.context_text)

        logger.info("Generated response for conversation %s (%s)", corr, generation.status)
        log_event(
            "Query",
            payload={
                "status": "ok",
                "retrieval": retrieval.status,
                "generation": generation.status,
                "num_sources": len(assembled.sources),
            },
            correlation_id=corr,
        )
        return QueryResponse(
            answer=generation.answer,
            sources=assembled.sources,
            conversation_id=corr,
        )


def build_orchestrator(
    config: Optional[PipelineConfig] = None,
    retrieval_client=None,
    generation_client=None,
) -> QueryOrchestrator:
    """Wire the production retriever and generator from configuration.

    ``retrieval_client`` / ``generation_client`` are the raw provider clients
    (boto3 or genai); when omitted they are built from ``config``.
    """
    config = config or PipelineConfig.from_settings(Settings())
    return QueryOrchestrator(
        retriever=KnowledgeBaseRetriever(config, client=retrieval_client),
        generator=build_generation_client(config, client=generation_client),
        excerpt_max_length=config.excerpt_max_length,
    )
