"""LLM generation clients (Claude on Bedrock by default, Gemini optional).

Both backends share one policy, implemented once in
:meth:`GenerationClient.generate`:

- The user prompt is the raw question when there is no context, otherwise
  the question framed by the retrieved context.
- The fixed system prompt is sent on every call.
- A single attempt per request; no retries.
- A response without usable text yields the parsing fallback
  (``status="empty"``); any exception yields the invocation fallback
  (``status="failed"``). Nothing is raised to the caller.

Backends only implement ``_complete(system_prompt, user_prompt)`` which
returns the first text element of the response, or ``None`` when the
response has no content.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from shared.aws import bedrock_client
from shared.models import GenerationOutcome
from shared.settings import PipelineConfig
from shared.tracing import estimate_tokens, log_event, span

from .prompts import (
    ERROR_GENERATING_RESPONSE,
    ERROR_MODEL_INVOCATION,
    SYSTEM_PROMPT,
    build_user_prompt,
)

logger = logging.getLogger(__name__)


class GenerationClient:
    """Base generation capability; subclasses talk to a concrete provider."""

    provider = "base"

    def __init__(self, config: PipelineConfig) -> None:
        self._config = config

    @property
    def model_id(self) -> str:
        return self._config.llm_model_id

    def generate(self, question: str, context_text: str) -> GenerationOutcome:
        user_prompt = build_user_prompt(question, context_text)
        prompt_tokens = estimate_tokens(user_prompt)
        try:
            with span(
                "llm.generate.call",
                provider=self.provider,
                model=self.model_id,
                prompt_tokens=prompt_tokens,
            ):
                text = self._complete(SYSTEM_PROMPT, user_prompt)
        except Exception as exc:
            logger.error("%s invocation failed: %s", self.provider, exc)
            logger.debug("Invocation traceback", exc_info=True)
            log_event(
                "Generation",
                payload={"status": "failed", "model": self.model_id, "error": str(exc)},
            )
            return GenerationOutcome(
                status="failed", answer=ERROR_MODEL_INVOCATION, error=str(exc)
            )

        if not text:
            logger.warning(
                "%s response missing content, returning fallback message", self.provider
            )
            log_event("Generation", payload={"status": "empty", "model": self.model_id})
            return GenerationOutcome(status="empty", answer=ERROR_GENERATING_RESPONSE)

        logger.info("Generated response (%d characters)", len(text))
        log_event(
            "Generation",
            payload={
                "status": "ok",
                "model": self.model_id,
                "prompt_tokens": prompt_tokens,
                "output_tokens": estimate_tokens(text),
            },
        )
        return GenerationOutcome(status="ok", answer=text)

    def _complete(self, system_prompt: str, user_prompt: str) -> Optional[str]:
        raise NotImplementedError


class BedrockGenerationClient(GenerationClient):
    """Anthropic Claude via the Bedrock Runtime ``InvokeModel`` API."""

    provider = "bedrock"

    def __init__(self, config: PipelineConfig, client: Optional[Any] = None) -> None:
        super().__init__(config)
        self._client = client or bedrock_client(
            "bedrock-runtime",
            region=config.aws_region,
            timeout_seconds=config.generation_timeout_seconds,
        )

    def build_request_body(self, system_prompt: str, user_prompt: str) -> dict:
        # anthropic_version and max_tokens are required by the endpoint
        return {
            "anthropic_version": self._config.anthropic_version,
            "max_tokens": self._config.max_tokens,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
        }

    def _complete(self, system_prompt: str, user_prompt: str) -> Optional[str]:
        body = self.build_request_body(system_prompt, user_prompt)
        logger.debug("Invoking model %s", self.model_id)
        response = self._client.invoke_model(
            modelId=self.model_id,
            contentType="application/json",
            accept="application/json",
            body=json.dumps(body),
        )
        payload = json.loads(response["body"].read())
        content = payload.get("content")
        if not content:
            return None
        return content[0]["text"]


class GeminiGenerationClient(GenerationClient):
    """Google Gemini through ``google-generativeai``."""

    provider = "gemini"

    def __init__(self, config: PipelineConfig, genai: Optional[Any] = None) -> None:
        super().__init__(config)
        if genai is None:
            if not config.gemini_api_key:
                raise ValueError("GEMINI_API_KEY is required when LLM_PROVIDER=gemini")
            import google.generativeai as genai  # type: ignore

            genai.configure(api_key=config.gemini_api_key)
        self._genai = genai

    @property
    def model_id(self) -> str:
        return self._config.gemini_model

    def _complete(self, system_prompt: str, user_prompt: str) -> Optional[str]:
        model = self._genai.GenerativeModel(
            self.model_id,
            system_instruction=system_prompt,
            generation_config=self._genai.GenerationConfig(
                max_output_tokens=self._config.max_tokens
            ),
        )
        resp = model.generate_content(
            user_prompt,
            request_options={"timeout": self._config.generation_timeout_seconds},
        )
        candidates = getattr(resp, "candidates", None) or []
        if not candidates:
            return None
        parts = getattr(getattr(candidates[0], "content", None), "parts", None) or []
        for part in parts:
            text = getattr(part, "text", None)
            if text:
                return text
        return None


def build_generation_client(
    config: PipelineConfig, client: Optional[Any] = None
) -> GenerationClient:
    """Return the generation client named by ``config.llm_provider``."""
    if config.llm_provider == "gemini":
        return GeminiGenerationClient(config, genai=client)
    if config.llm_provider == "bedrock":
        return BedrockGenerationClient(config, client=client)
    raise ValueError(f"Unknown LLM provider: {config.llm_provider!r}")
