"""OpenAI provider implementation."""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass

import openai
from openai import OpenAI

from menu_lens.exceptions import AuthenticationError, ModelCallError, RateLimitError
from menu_lens.pipeline.payload import extract_usage, is_truncated
from menu_lens.pipeline.prompts import SYSTEM_PROMPT
from menu_lens.providers.base import BaseProvider, ModelRequest, ModelResponse


@dataclass(frozen=True)
class RequestVariant:
    api: str  # chat|responses
    model: str
    max_tokens: int
    json_mode: bool = False
    temperature: float | None = None


class OpenAIVisionProvider(BaseProvider):
    """OpenAI chat completions / Responses API provider."""

    name = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        *,
        client=None,
    ):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key. Falls back to OPENAI_API_KEY env var.
            model: Primary chat model. Falls back to OPENAI_MENU_MODEL env var.
            client: Preconfigured client, mainly for tests.

        Raises:
            AuthenticationError: If no API key is provided or found.
        """
        super().__init__()
        primary = model or os.getenv("OPENAI_MENU_MODEL", "gpt-5-mini")
        self._variants: dict[str, RequestVariant] = {
            "json_object": RequestVariant("chat", primary, 900, json_mode=True),
            "no_response_format": RequestVariant("chat", primary, 1200),
            "fallback_model": RequestVariant("chat", "gpt-4.1-mini", 1600, temperature=0.2),
            "responses_gpt4o_mini": RequestVariant("responses", "gpt-4o-mini", 2000),
            "responses_gpt4_1": RequestVariant("responses", "gpt-4.1", 2600),
        }
        self._single_pass = RequestVariant("responses", "gpt-4o-mini", 2000, temperature=0.1)

        if client is not None:
            self.client = client
            return

        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not self.api_key:
            raise AuthenticationError(
                "No API key provided. Set OPENAI_API_KEY environment variable "
                "or pass api_key parameter."
            )
        self.client = OpenAI(api_key=self.api_key)

    def variants(self) -> Sequence[str]:
        return list(self._variants)

    def single_pass_variant(self) -> str | None:
        return "responses_single_pass"

    def complete(self, request: ModelRequest, variant: str) -> ModelResponse:
        options = self._resolve(variant)
        try:
            if options.api == "responses":
                response = self.client.responses.create(**self._responses_payload(request, options))
            else:
                response = self.client.chat.completions.create(**self._chat_payload(request, options))
        except openai.AuthenticationError as e:
            raise AuthenticationError(f"Invalid API key: {e}") from e
        except openai.RateLimitError as e:
            raise RateLimitError(f"API rate limit exceeded: {e}") from e
        except openai.OpenAIError as e:
            raise ModelCallError(f"OpenAI request failed ({variant}): {e}") from e

        self._last_variant = variant
        return ModelResponse(
            envelope=response,
            variant=variant,
            model=options.model,
            usage=extract_usage(response),
            truncated=is_truncated(response),
        )

    def _resolve(self, variant: str) -> RequestVariant:
        if variant == self.single_pass_variant():
            return self._single_pass
        try:
            return self._variants[variant]
        except KeyError:
            raise ValueError(f"Unsupported request variant: {variant}") from None

    @staticmethod
    def _chat_payload(request: ModelRequest, options: RequestVariant) -> dict:
        payload: dict = {
            "model": options.model,
            "max_completion_tokens": options.max_tokens,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": request.prompt},
                        {"type": "image_url", "image_url": {"url": request.image.data_url}},
                    ],
                },
            ],
        }
        if options.json_mode:
            payload["response_format"] = {"type": "json_object"}
        if options.temperature is not None:
            payload["temperature"] = options.temperature
        return payload

    @staticmethod
    def _responses_payload(request: ModelRequest, options: RequestVariant) -> dict:
        payload: dict = {
            "model": options.model,
            "max_output_tokens": options.max_tokens,
            "input": [
                {"role": "system", "content": [{"type": "input_text", "text": SYSTEM_PROMPT}]},
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": request.prompt},
                        {"type": "input_image", "image_url": request.image.data_url},
                    ],
                },
            ],
        }
        if request.schema:
            payload["text"] = {
                "format": {
                    "type": "json_schema",
                    "name": request.schema_name,
                    "schema": request.schema,
                    "strict": False,
                }
            }
        if options.temperature is not None:
            payload["temperature"] = options.temperature
        return payload
