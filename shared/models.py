"""Pydantic data models shared across services.

These models define the data that flows through the query pipeline: the
inbound query, the passages returned by the knowledge base, the user-facing
sources and the final response. By centralising them in a shared module the
retrieval, generation and gateway code agree on the shape of the data they
exchange.

Every model is frozen. Values are built once per request and handed down the
pipeline; nothing is mutated after construction.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class QueryContext(BaseModel):
    """Optional client hints sent alongside a question.

    Attributes:
        page: The page of the site the visitor asked from. Advisory only.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    page: Optional[str] = None


class QueryRequest(BaseModel):
    """Request body for ``POST */query``.

    ``question`` is optional at the model level so that the request handler
    can report a missing question with its own 400 message rather than a
    validation error.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    question: Optional[str] = None
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")
    context: Optional[QueryContext] = None


class RetrievedPassage(BaseModel):
    """One ranked chunk returned from the knowledge base."""

    model_config = ConfigDict(frozen=True)

    text: str = ""
    location_id: Optional[str] = None
    score: float = 0.5


class Source(BaseModel):
    """User-facing attribution derived from a single retrieved passage."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    title: str
    type: str
    confidence: float
    excerpt: str


class QueryResponse(BaseModel):
    """Response for ``POST */query``.

    Contains the answer text (generated or fallback, never empty), the
    ordered sources backing it and the caller's conversation id.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    answer: str
    sources: List[Source] = Field(default_factory=list)
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")

    def to_payload(self) -> dict:
        """Serialise with the wire field names, omitting null values."""
        return self.model_dump(by_alias=True, exclude_none=True)


class RetrievalOutcome(BaseModel):
    """Result of a knowledge-base lookup.

    ``unavailable`` covers both a deliberate skip (no knowledge base
    configured) and a failed call; ``reason`` tells them apart. An ``ok``
    outcome may still carry zero passages.
    """

    model_config = ConfigDict(frozen=True)

    status: Literal["ok", "unavailable"]
    passages: List[RetrievedPassage] = Field(default_factory=list)
    reason: Optional[Literal["not_configured", "error"]] = None

    @classmethod
    def found(cls, passages: List[RetrievedPassage]) -> "RetrievalOutcome":
        return cls(status="ok", passages=list(passages))

    @classmethod
    def unavailable(cls, reason: Literal["not_configured", "error"]) -> "RetrievalOutcome":
        return cls(status="unavailable", passages=[], reason=reason)

    @property
    def available(self) -> bool:
        return self.status == "ok"


class AssembledContext(BaseModel):
    """Prompt context and the matching sources, built from the same passages."""

    model_config = ConfigDict(frozen=True)

    context_text: str = ""
    sources: List[Source] = Field(default_factory=list)


class GenerationOutcome(BaseModel):
    """Result of a model call.

    Attributes:
        status: ``ok`` when the model produced text, ``empty`` when the call
            succeeded but the response held no usable content, ``failed``
            when the call itself raised.
        answer: The text to show the user. Always non-empty; for ``empty``
            and ``failed`` it is the matching fixed fallback message.
        error: The exception message for ``failed`` outcomes.
    """

    model_config = ConfigDict(frozen=True)

    status: Literal["ok", "empty", "failed"]
    answer: str
    error: Optional[str] = None
