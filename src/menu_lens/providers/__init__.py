"""Providers for menu-lens."""

from menu_lens.providers.base import BaseProvider, EncodedImage, ModelRequest, ModelResponse, encode_image
from menu_lens.providers.gemini import GeminiProvider
from menu_lens.providers.openai_vision import OpenAIVisionProvider

__all__ = [
    "BaseProvider",
    "EncodedImage",
    "GeminiProvider",
    "ModelRequest",
    "ModelResponse",
    "OpenAIVisionProvider",
    "encode_image",
]
