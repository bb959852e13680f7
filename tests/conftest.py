import io
import json
import os

import pytest

# Deterministic, offline-friendly tests
os.environ.setdefault("LANGFUSE_ENABLED", "0")
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("LLM_PROVIDER", "bedrock")
os.environ.pop("KNOWLEDGE_BASE_ID", None)

from shared.settings import PipelineConfig  # noqa: E402

TEST_KNOWLEDGE_BASE_ID = "test-kb-id-123"


def kb_result(text: str, uri: str | None, score: float | None = None) -> dict:
    result = {"content": {"text": text}, "location": {"type": "S3"}}
    if uri is not None:
        result["location"]["s3Location"] = {"uri": uri}
    if score is not None:
        result["score"] = score
    return result


def model_response(payload: dict) -> dict:
    return {"body": io.BytesIO(json.dumps(payload).encode("utf-8"))}


def model_text_response(text: str) -> dict:
    return model_response({"content": [{"type": "text", "text": text}]})


@pytest.fixture
def config() -> PipelineConfig:
    return PipelineConfig(knowledge_base_id=TEST_KNOWLEDGE_BASE_ID)


@pytest.fixture
def unconfigured() -> PipelineConfig:
    return PipelineConfig(knowledge_base_id=None)
