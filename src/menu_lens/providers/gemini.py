"""Gemini provider implementation."""

from __future__ import annotations

import os
from collections.abc import Sequence

from google import genai
from google.genai import errors, types

from menu_lens.exceptions import AuthenticationError, ModelCallError, RateLimitError
from menu_lens.pipeline.payload import extract_usage, is_truncated
from menu_lens.pipeline.prompts import SYSTEM_PROMPT
from menu_lens.providers.base import BaseProvider, ModelRequest, ModelResponse


class GeminiProvider(BaseProvider):
    """Gemini Vision API provider."""

    name = "gemini"

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gemini-2.0-flash",
        fallback_model: str = "gemini-2.5-flash",
        *,
        client=None,
    ):
        """Initialize Gemini provider.

        Args:
            api_key: Gemini API key. Falls back to GEMINI_API_KEY env var.
            model: Model name to use.
            fallback_model: Model used by the last request variant.
            client: Preconfigured client, mainly for tests.

        Raises:
            AuthenticationError: If no API key is provided or found.
        """
        super().__init__()
        self.model = model
        self.fallback_model = fallback_model
        # variant -> (model, json response)
        self._variants: dict[str, tuple[str, bool]] = {
            "json_mime": (model, True),
            "plain": (model, False),
            "fallback_model": (fallback_model, True),
        }

        if client is not None:
            self.client = client
            return

        self.api_key = api_key or os.environ.get("GEMINI_API_KEY")
        if not self.api_key:
            raise AuthenticationError(
                "No API key provided. Set GEMINI_API_KEY environment variable "
                "or pass api_key parameter."
            )
        self.client = genai.Client(api_key=self.api_key)

    def variants(self) -> Sequence[str]:
        return list(self._variants)

    def single_pass_variant(self) -> str | None:
        return "json_mime"

    def complete(self, request: ModelRequest, variant: str) -> ModelResponse:
        try:
            model, json_response = self._variants[variant]
        except KeyError:
            raise ValueError(f"Unsupported request variant: {variant}") from None

        config = types.GenerateContentConfig(
            system_instruction=SYSTEM_PROMPT,
            response_mime_type="application/json" if json_response else None,
        )
        contents = [
            types.Part.from_bytes(data=request.image.to_bytes(), mime_type=request.image.mime_type),
            request.prompt,
        ]

        try:
            response = self.client.models.generate_content(
                model=model,
                contents=contents,
                config=config,
            )
        except errors.ClientError as e:
            if "rate" in str(e).lower() or "quota" in str(e).lower():
                raise RateLimitError(f"API rate limit exceeded: {e}") from e
            if "auth" in str(e).lower() or "key" in str(e).lower():
                raise AuthenticationError(f"Invalid API key: {e}") from e
            raise ModelCallError(f"Gemini request failed ({variant}): {e}") from e
        except errors.APIError as e:
            raise ModelCallError(f"Gemini request failed ({variant}): {e}") from e

        self._last_variant = variant
        return ModelResponse(
            envelope=response,
            variant=variant,
            model=model,
            usage=extract_usage(response),
            truncated=is_truncated(response),
        )
