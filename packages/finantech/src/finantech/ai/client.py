"""Google Gemini client for the AI proxy.

Uses the google-genai SDK (v1.0+) for plain text generation and for JSON
output constrained by a response schema.
"""

import json
from dataclasses import dataclass
from typing import Any

import structlog
from google import genai
from google.genai import types

from finantech.config import get_settings
from finantech.errors import ProxyError

logger = structlog.get_logger(__name__)


@dataclass
class GeminiResponse:
    """Response from Gemini API."""

    text: str
    finish_reason: str
    usage: dict[str, int]


class GeminiClient:
    """Client for Google's Gemini API."""

    def __init__(self, api_key: str | None = None, model: str | None = None):
        settings = get_settings()
        if api_key is None:
            if not settings.has_api_key:
                raise ProxyError("Server configuration error.", status_code=500)
            api_key = settings.google_api_key.get_secret_value()  # type: ignore[union-attr]

        self._model_name = model or settings.gemini_model
        self._client = genai.Client(api_key=api_key)

        self._logger = logger.bind(client="gemini", model=self._model_name)

    @property
    def model(self) -> str:
        return self._model_name

    def _parse_response(self, response: Any) -> GeminiResponse:
        """Parse Gemini response into our format."""
        text = response.text or ""

        finish_reason = "STOP"
        if getattr(response, "candidates", None):
            finish_reason = str(response.candidates[0].finish_reason)

        usage = {"input_tokens": 0, "output_tokens": 0}
        if getattr(response, "usage_metadata", None):
            usage["input_tokens"] = (
                getattr(response.usage_metadata, "prompt_token_count", 0) or 0
            )
            usage["output_tokens"] = (
                getattr(response.usage_metadata, "candidates_token_count", 0) or 0
            )

        return GeminiResponse(text=text, finish_reason=finish_reason, usage=usage)

    async def _generate(self, prompt: str, config: types.GenerateContentConfig) -> GeminiResponse:
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model_name,
                contents=prompt,
                config=config,
            )
        except Exception as e:
            self._logger.error("api_error", error=str(e))
            raise

        parsed = self._parse_response(response)
        self._logger.info(
            "response_generated",
            finish_reason=parsed.finish_reason,
            input_tokens=parsed.usage["input_tokens"],
            output_tokens=parsed.usage["output_tokens"],
        )
        return parsed

    async def generate_text(
        self,
        prompt: str,
        temperature: float,
        max_output_tokens: int | None = None,
        thinking_budget: int | None = None,
    ) -> str:
        """Generate free text for a prompt.

        Args:
            prompt: The full prompt.
            temperature: Sampling temperature.
            max_output_tokens: Optional cap on the answer length.
            thinking_budget: Optional token budget for the model's reasoning.

        Returns:
            The generated text, empty when the model returned none.
        """
        config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )
        if thinking_budget is not None:
            config.thinking_config = types.ThinkingConfig(thinking_budget=thinking_budget)

        self._logger.debug("generating_text", prompt_chars=len(prompt), temperature=temperature)
        response = await self._generate(prompt, config)
        return response.text

    async def generate_json(
        self, prompt: str, schema: dict[str, Any], temperature: float
    ) -> Any:
        """Generate a JSON document matching ``schema`` and decode it."""
        config = types.GenerateContentConfig(
            temperature=temperature,
            response_mime_type="application/json",
            response_schema=schema,
        )

        self._logger.debug("generating_json", prompt_chars=len(prompt), temperature=temperature)
        response = await self._generate(prompt, config)
        return json.loads(response.text.strip())
