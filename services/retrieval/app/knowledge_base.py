"""Bedrock Knowledge Base retrieval client.

Turns a question into a ranked list of :class:`RetrievedPassage` using the
Bedrock Agent Runtime ``Retrieve`` API (vector search over the site's
documents). The call is the only side effect; the client holds no
per-request state and the underlying boto3 client is shared across
requests.

Failure policy: the client never raises. A missing knowledge-base id is a
deliberate skip and any service/transport error is logged and reported as
an ``unavailable`` outcome so the pipeline can continue without sources.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from shared.aws import bedrock_client
from shared.models import RetrievalOutcome, RetrievedPassage
from shared.settings import PipelineConfig
from shared.tracing import log_event, span

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "unknown"


class KnowledgeBaseRetriever:
    """Retrieval capability backed by a Bedrock Knowledge Base.

    Args:
        config: Deployment policy (knowledge-base id, result bound, timeout).
        client: Optional pre-built ``bedrock-agent-runtime`` client. Tests
            pass a stub here; production builds one lazily from ``config``.
    """

    def __init__(self, config: PipelineConfig, client: Optional[Any] = None) -> None:
        self._knowledge_base_id = config.knowledge_base_id
        self._max_results = config.max_retrieval_results
        self._default_confidence = config.default_confidence
        self._client = client
        if self._client is None and self._knowledge_base_id:
            self._client = bedrock_client(
                "bedrock-agent-runtime",
                region=config.aws_region,
                timeout_seconds=config.retrieval_timeout_seconds,
            )
        logger.info(
            "Knowledge base retriever ready (knowledge_base_id=%s)",
            self._knowledge_base_id or "NOT_CONFIGURED",
        )

    @property
    def configured(self) -> bool:
        return bool(self._knowledge_base_id)

    def retrieve(self, question: str) -> RetrievalOutcome:
        """Return up to ``max_retrieval_results`` passages for ``question``."""
        if not self.configured:
            logger.warning("Knowledge base id not configured, skipping retrieval")
            return RetrievalOutcome.unavailable("not_configured")

        try:
            with span("retrieval.kb.call", max_results=self._max_results):
                response = self._client.retrieve(
                    knowledgeBaseId=self._knowledge_base_id,
                    retrievalQuery={"text": question},
                    retrievalConfiguration={
                        "vectorSearchConfiguration": {
                            "numberOfResults": self._max_results
                        }
                    },
                )
            passages = self._parse_results(response.get("retrievalResults") or [])
        except Exception as exc:
            logger.error("Knowledge base retrieval failed: %s", exc, exc_info=True)
            log_event("Retrieval", payload={"status": "error", "error": str(exc)})
            return RetrievalOutcome.unavailable("error")

        logger.info("Retrieved %d passages from knowledge base", len(passages))
        log_event(
            "Retrieval",
            payload={
                "status": "ok",
                "num_passages": len(passages),
                "top_score": passages[0].score if passages else None,
            },
        )
        return RetrievalOutcome.found(passages)

    def _parse_results(self, results: List[dict]) -> List[RetrievedPassage]:
        passages: List[RetrievedPassage] = []
        for result in results[: self._max_results]:
            text = result["content"]["text"]
            s3_location = (result.get("location") or {}).get("s3Location") or {}
            location_id = s3_location.get("uri") or UNKNOWN_LOCATION
            score = result.get("score")
            passages.append(
                RetrievedPassage(
                    text=text,
                    location_id=location_id,
                    score=float(score) if score is not None else self._default_confidence,
                )
            )
            logger.debug("Retrieved passage %s (score=%s)", location_id, score)
        return passages
