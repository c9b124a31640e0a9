"""Tests for the OpenAI vision provider."""

import httpx
import openai
import pytest

from menu_lens.exceptions import AuthenticationError, ModelCallError, RateLimitError
from menu_lens.providers.base import EncodedImage, ModelRequest
from menu_lens.providers.openai_vision import OpenAIVisionProvider

IMAGE = EncodedImage(data="aW1hZ2U=", mime_type="image/png")
REQUEST = ModelRequest(prompt="List the dishes", image=IMAGE, schema_name="menu_batch", schema={"type": "object"})
HTTP_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _provider(mocker):
    client = mocker.MagicMock()
    return OpenAIVisionProvider(client=client), client


def test_requires_api_key(monkeypatch):
    """Provider should raise AuthenticationError without API key."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(AuthenticationError):
        OpenAIVisionProvider()


def test_variant_order_and_single_pass(mocker):
    """Variants are tried in a fixed order, structured output first."""
    provider, _ = _provider(mocker)

    assert provider.variants() == [
        "json_object",
        "no_response_format",
        "fallback_model",
        "responses_gpt4o_mini",
        "responses_gpt4_1",
    ]
    assert provider.single_pass_variant() == "responses_single_pass"


def test_chat_variant_payload_and_response(mocker):
    """Chat variant sends the image as a data URL and returns the raw completion."""
    provider, client = _provider(mocker)
    envelope = {
        "choices": [{"message": {"content": '{"items": []}'}, "finish_reason": "length"}],
        "usage": {"prompt_tokens": 120, "completion_tokens": 900},
    }
    client.chat.completions.create.return_value = envelope

    response = provider.complete(REQUEST, "json_object")

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-5-mini"
    assert kwargs["max_completion_tokens"] == 900
    assert kwargs["response_format"] == {"type": "json_object"}
    assert "temperature" not in kwargs
    user_content = kwargs["messages"][1]["content"]
    assert user_content[0] == {"type": "text", "text": "List the dishes"}
    assert user_content[1]["image_url"]["url"] == "data:image/png;base64,aW1hZ2U="
    assert response.envelope is envelope
    assert response.truncated is True
    assert response.usage.completion_tokens == 900
    assert provider.get_extraction_metadata() == {"provider": "openai", "variant": "json_object"}


def test_fallback_chat_variant_sets_temperature(mocker):
    provider, client = _provider(mocker)
    client.chat.completions.create.return_value = {"choices": []}

    provider.complete(REQUEST, "fallback_model")

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4.1-mini"
    assert kwargs["temperature"] == 0.2
    assert "response_format" not in kwargs


def test_responses_variant_uses_json_schema(mocker):
    """The responses variant sends the strict JSON schema."""
    provider, client = _provider(mocker)
    client.responses.create.return_value = {"output": [], "output_text": "{}"}

    response = provider.complete(REQUEST, "responses_gpt4_1")

    kwargs = client.responses.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4.1"
    assert kwargs["max_output_tokens"] == 2600
    assert kwargs["text"]["format"] == {
        "type": "json_schema",
        "name": "menu_batch",
        "schema": {"type": "object"},
        "strict": False,
    }
    assert kwargs["input"][1]["content"][1] == {"type": "input_image", "image_url": IMAGE.data_url}
    assert response.model == "gpt-4.1"
    client.chat.completions.create.assert_not_called()


def test_single_pass_variant(mocker):
    provider, client = _provider(mocker)
    client.responses.create.return_value = {"output": []}

    provider.complete(REQUEST, "responses_single_pass")

    kwargs = client.responses.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["temperature"] == 0.1


def test_unknown_variant_raises(mocker):
    """Unknown variant names are rejected."""
    provider, _ = _provider(mocker)

    with pytest.raises(ValueError):
        provider.complete(REQUEST, "nope")


def test_sdk_errors_are_mapped(mocker):
    """SDK errors should be converted to menu-lens exceptions."""
    provider, client = _provider(mocker)

    client.chat.completions.create.side_effect = openai.AuthenticationError(
        "bad key", response=httpx.Response(401, request=HTTP_REQUEST), body=None
    )
    with pytest.raises(AuthenticationError):
        provider.complete(REQUEST, "json_object")

    client.chat.completions.create.side_effect = openai.RateLimitError(
        "slow down", response=httpx.Response(429, request=HTTP_REQUEST), body=None
    )
    with pytest.raises(RateLimitError):
        provider.complete(REQUEST, "json_object")

    client.chat.completions.create.side_effect = openai.APIConnectionError(request=HTTP_REQUEST)
    with pytest.raises(ModelCallError, match="no_response_format"):
        provider.complete(REQUEST, "no_response_format")
