"""Tests for the Bedrock Knowledge Base retrieval client."""

from unittest.mock import MagicMock

from conftest import TEST_KNOWLEDGE_BASE_ID, kb_result

from services.retrieval.app.knowledge_base import UNKNOWN_LOCATION, KnowledgeBaseRetriever
from shared.settings import PipelineConfig


def test_unconfigured_knowledge_base_skips_call(unconfigured) -> None:
    client = MagicMock()
    retriever = KnowledgeBaseRetriever(unconfigured, client=client)

    outcome = retriever.retrieve("What is your experience?")

    assert outcome.status == "unavailable"
    assert outcome.reason == "not_configured"
    assert outcome.passages == []
    client.retrieve.assert_not_called()


def test_retrieve_maps_results_and_request(config) -> None:
    client = MagicMock()
    client.retrieve.return_value = {
        "retrievalResults": [
            kb_result("5 years of experience", "s3://bucket/documents/resume.md", 0.87),
            kb_result("No score here", "s3://bucket/documents/notes.md"),
        ]
    }
    retriever = KnowledgeBaseRetriever(config, client=client)

    outcome = retriever.retrieve("What is your experience?")

    assert outcome.available
    assert [p.location_id for p in outcome.passages] == [
        "s3://bucket/documents/resume.md",
        "s3://bucket/documents/notes.md",
    ]
    assert outcome.passages[0].score == 0.87
    assert outcome.passages[1].score == 0.5
    client.retrieve.assert_called_once_with(
        knowledgeBaseId=TEST_KNOWLEDGE_BASE_ID,
        retrievalQuery={"text": "What is your experience?"},
        retrievalConfiguration={"vectorSearchConfiguration": {"numberOfResults": 5}},
    )


def test_missing_s3_location_uses_unknown(config) -> None:
    client = MagicMock()
    client.retrieve.return_value = {"retrievalResults": [kb_result("text", None, 0.4)]}

    outcome = KnowledgeBaseRetriever(config, client=client).retrieve("q")

    assert outcome.passages[0].location_id == UNKNOWN_LOCATION


def test_results_capped_to_max(config) -> None:
    client = MagicMock()
    client.retrieve.return_value = {
        "retrievalResults": [kb_result(f"t{i}", f"s3://b/d{i}.md", 0.9) for i in range(8)]
    }
    small = PipelineConfig(knowledge_base_id=TEST_KNOWLEDGE_BASE_ID, max_retrieval_results=3)

    outcome = KnowledgeBaseRetriever(small, client=client).retrieve("q")

    assert len(outcome.passages) == 3
    assert [p.text for p in outcome.passages] == ["t0", "t1", "t2"]


def test_zero_results_is_available_but_empty(config) -> None:
    client = MagicMock()
    client.retrieve.return_value = {"retrievalResults": []}

    outcome = KnowledgeBaseRetriever(config, client=client).retrieve("q")

    assert outcome.status == "ok"
    assert outcome.passages == []


def test_service_error_is_absorbed(config) -> None:
    client = MagicMock()
    client.retrieve.side_effect = RuntimeError("Knowledge Base error")

    outcome = KnowledgeBaseRetriever(config, client=client).retrieve("q")

    assert outcome.status == "unavailable"
    assert outcome.reason == "error"
    assert outcome.passages == []


def test_malformed_result_is_absorbed(config) -> None:
    client = MagicMock()
    client.retrieve.return_value = {"retrievalResults": [{"location": {}}]}

    outcome = KnowledgeBaseRetriever(config, client=client).retrieve("q")

    assert outcome.status == "unavailable"
