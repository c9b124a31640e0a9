"""Core extraction functions."""

import os
from typing import Protocol

from menu_lens.exceptions import NoDishesDetectedError
from menu_lens.pipeline.batching import BatchConfig, MenuBatchOrchestrator
from menu_lens.providers.base import BaseProvider, ImageInput, encode_image
from menu_lens.schema import MenuExtractionResult, NormalizedMenuItem


class MenuSink(Protocol):
    """Persistence collaborator that receives the final menu."""

    def save_menu(self, owner_id: str, items: list[NormalizedMenuItem]) -> None: ...


def _build_openai_provider(api_key: str | None) -> BaseProvider:
    from menu_lens.providers.openai_vision import OpenAIVisionProvider

    return OpenAIVisionProvider(api_key=api_key)


def _build_gemini_provider(api_key: str | None) -> BaseProvider:
    from menu_lens.providers.gemini import GeminiProvider

    return GeminiProvider(api_key=api_key)


def _select_provider(provider: str | None, api_key: str | None) -> BaseProvider:
    provider_name = (provider or os.getenv("MENU_LENS_PROVIDER", "openai")).strip().lower()
    if provider_name in {"openai", "gpt"}:
        return _build_openai_provider(api_key)
    if provider_name in {"gemini", "google"}:
        return _build_gemini_provider(api_key)
    raise ValueError(f"Unsupported provider: {provider_name}")


def extract_menu(
    image: ImageInput,
    *,
    api_key: str | None = None,
    provider: str | None = None,
    config: BatchConfig | None = None,
) -> MenuExtractionResult:
    """Extract menu items from a photographed restaurant menu.

    Args:
        image: Image input - file path (str), Path object, raw bytes, PIL Image
            or an already encoded image.
        api_key: Provider API key. Falls back to the provider's env var.
        provider: Provider name (`openai` or `gemini`). Defaults to
            `MENU_LENS_PROVIDER` env var, then `openai`.
        config: Batch limits. Defaults to `BatchConfig.from_env()`.

    Returns:
        MenuExtractionResult with normalized items. `items` is empty when no
        dishes could be detected.
    """
    encoded = encode_image(image)
    engine = _select_provider(provider, api_key)
    orchestrator = MenuBatchOrchestrator(engine, config or BatchConfig.from_env())
    return orchestrator.run(encoded)


def generate_menu(
    image: ImageInput,
    owner_id: str,
    sink: MenuSink,
    *,
    api_key: str | None = None,
    provider: str | None = None,
    config: BatchConfig | None = None,
) -> MenuExtractionResult:
    """Extract a menu and hand it to the persistence sink.

    Raises:
        NoDishesDetectedError: If extraction finished without any item.
    """
    result = extract_menu(image, api_key=api_key, provider=provider, config=config)
    if not result.items:
        raise NoDishesDetectedError()
    sink.save_menu(owner_id, result.items)
    return result
