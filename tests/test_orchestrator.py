"""Tests for the query orchestration pipeline and its degradation paths."""

from unittest.mock import MagicMock

from conftest import TEST_KNOWLEDGE_BASE_ID, kb_result, model_response, model_text_response

from services.api_gateway.app.orchestrator import QueryOrchestrator, build_orchestrator
from services.llm_generate.app.generator import BedrockGenerationClient
from services.llm_generate.app.prompts import (
    ERROR_GENERATING_RESPONSE,
    ERROR_MODEL_INVOCATION,
    ERROR_PROCESSING_QUERY,
)
from services.retrieval.app.knowledge_base import KnowledgeBaseRetriever
from shared.models import GenerationOutcome, QueryRequest, RetrievalOutcome

CONVERSATION_ID = "conv-test-123"


def _orchestrator(config, kb_client, llm_client) -> QueryOrchestrator:
    return QueryOrchestrator(
        retriever=KnowledgeBaseRetriever(config, client=kb_client),
        generator=BedrockGenerationClient(config, client=llm_client),
    )


def _request(question: str = "What is your experience?") -> QueryRequest:
    return QueryRequest(question=question, conversation_id=CONVERSATION_ID)


def _kb_client(*results: dict) -> MagicMock:
    client = MagicMock()
    client.retrieve.return_value = {"retrievalResults": list(results)}
    return client


def _llm_client(text: str) -> MagicMock:
    client = MagicMock()
    client.invoke_model.return_value = model_text_response(text)
    return client


def test_valid_query_returns_answer_with_sources(config) -> None:
    kb = _kb_client(kb_result("5 years of experience", "s3://bucket/documents/resume.md", 0.9))
    llm = _llm_client("I have 5 years of experience.")

    response = _orchestrator(config, kb, llm).process_query(_request())

    assert response.answer == "I have 5 years of experience."
    assert response.conversation_id == CONVERSATION_ID
    assert len(response.sources) == 1
    source = response.sources[0]
    assert source.id == "s3://bucket/documents/resume.md"
    assert source.title == "resume.md"
    assert source.type == "Resume"
    assert source.excerpt == "5 years of experience"
    kb.retrieve.assert_called_once()
    llm.invoke_model.assert_called_once()


def test_retrieval_failure_still_answers_without_sources(config) -> None:
    kb = MagicMock()
    kb.retrieve.side_effect = RuntimeError("Knowledge Base error")
    llm = _llm_client("I don't have specific information.")

    response = _orchestrator(config, kb, llm).process_query(_request())

    assert response.answer == "I don't have specific information."
    assert response.sources == []
    assert response.conversation_id == CONVERSATION_ID


def test_unconfigured_knowledge_base_skips_retrieval(unconfigured) -> None:
    kb = MagicMock()
    llm = _llm_client("Test response")

    response = _orchestrator(unconfigured, kb, llm).process_query(_request("Test question"))

    kb.retrieve.assert_not_called()
    llm.invoke_model.assert_called_once()
    assert response.sources == []
    assert response.answer == "Test response"


def test_no_context_sends_raw_question(unconfigured) -> None:
    llm = _llm_client("ok")

    _orchestrator(unconfigured, MagicMock(), llm).process_query(_request("Just the question"))

    body = llm.invoke_model.call_args.kwargs["body"]
    assert '"content": "Just the question"' in body


def test_generation_failure_returns_invocation_fallback(config) -> None:
    kb = _kb_client(kb_result("Some context", "s3://bucket/documents/resume.md", 0.7))
    llm = MagicMock()
    llm.invoke_model.side_effect = RuntimeError("Bedrock invocation error")

    response = _orchestrator(config, kb, llm).process_query(_request())

    assert response.answer == ERROR_MODEL_INVOCATION
    assert response.conversation_id == CONVERSATION_ID
    assert len(response.sources) == 1


def test_empty_generation_returns_parsing_fallback(config) -> None:
    kb = _kb_client(kb_result("Some context", "s3://bucket/documents/cv.md", 0.7))
    llm = MagicMock()
    llm.invoke_model.return_value = model_response({"content": []})

    response = _orchestrator(config, kb, llm).process_query(_request())

    assert response.answer == ERROR_GENERATING_RESPONSE


class _BrokenRetriever:
    def retrieve(self, question: str) -> RetrievalOutcome:
        raise AttributeError("defect in retrieval glue")


class _StaticGenerator:
    def __init__(self) -> None:
        self.calls = []

    def generate(self, question: str, context_text: str) -> GenerationOutcome:
        self.calls.append((question, context_text))
        return GenerationOutcome(status="ok", answer="generated")


def test_unexpected_defect_returns_apology() -> None:
    generator = _StaticGenerator()
    orchestrator = QueryOrchestrator(retriever=_BrokenRetriever(), generator=generator)

    response = orchestrator.process_query(_request())

    assert response.answer == ERROR_PROCESSING_QUERY
    assert response.sources == []
    assert response.conversation_id == CONVERSATION_ID
    assert generator.calls == []


def test_missing_conversation_id_is_echoed_as_none(unconfigured) -> None:
    orchestrator = QueryOrchestrator(
        retriever=KnowledgeBaseRetriever(unconfigured, client=MagicMock()),
        generator=_StaticGenerator(),
    )

    response = orchestrator.process_query(QueryRequest(question="Hi"))

    assert response.conversation_id is None
    assert response.to_payload() == {"answer": "generated", "sources": []}


def test_build_orchestrator_wires_injected_clients(config) -> None:
    kb = _kb_client(kb_result("Design notes", "s3://b/design.md", 0.5))
    llm = _llm_client("Answer")

    orchestrator = build_orchestrator(config, retrieval_client=kb, generation_client=llm)
    response = orchestrator.process_query(_request())

    assert response.answer == "Answer"
    assert response.sources[0].type == "Architecture Doc"
    assert kb.retrieve.call_args.kwargs["knowledgeBaseId"] == TEST_KNOWLEDGE_BASE_ID
