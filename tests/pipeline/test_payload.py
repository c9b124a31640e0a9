"""Tests for response envelope text extraction."""

from types import SimpleNamespace

from menu_lens.pipeline.payload import extract_payload_text, extract_usage, is_truncated


def test_plain_string_is_trimmed():
    """A plain string envelope is returned trimmed."""
    assert extract_payload_text("  {\"items\": []}  ") == '{"items": []}'


def test_blank_and_missing_envelopes_yield_none():
    """Envelopes without text give None."""
    assert extract_payload_text(None) is None
    assert extract_payload_text("   ") is None
    assert extract_payload_text({}) is None


def test_chat_completion_string_content():
    response = {"choices": [{"message": {"role": "assistant", "content": '{"items": []}'}}]}

    assert extract_payload_text(response) == '{"items": []}'


def test_chat_completion_legacy_text_field():
    response = {"choices": [{"text": "Burger $5"}]}

    assert extract_payload_text(response) == "Burger $5"


def test_chat_completion_content_parts_are_concatenated():
    """Text parts of a chat message are joined in order."""
    response = {
        "choices": [
            {
                "message": {
                    "content": [
                        {"type": "text", "text": '{"items": '},
                        {"type": "text", "text": {"value": "[]}"}},
                    ]
                }
            }
        ]
    }

    assert extract_payload_text(response) == '{"items": []}'


def test_parsed_structured_output_is_serialized():
    """A parsed structured output is serialized back to JSON text."""
    response = {"choices": [{"message": {"content": None, "parsed": {"items": [{"name": "Soup"}]}}}]}

    assert extract_payload_text(response) == '{"items": [{"name": "Soup"}]}'


def test_tool_call_arguments_are_used_last():
    """Tool call arguments are read only when no content exists."""
    response = {
        "choices": [
            {
                "message": {
                    "content": None,
                    "tool_calls": [{"function": {"name": "menu", "arguments": '{"items": []}'}}],
                }
            }
        ]
    }

    assert extract_payload_text(response) == '{"items": []}'


def test_responses_api_output_parts():
    """Responses API output parts are joined."""
    response = {
        "output": [
            {"type": "reasoning", "content": []},
            {"type": "message", "content": [{"type": "output_text", "text": '{"items": []}'}]},
        ]
    }

    assert extract_payload_text(response) == '{"items": []}'


def test_responses_api_falls_back_to_output_text():
    response = {"output": [], "output_text": "Soup $3"}

    assert extract_payload_text(response) == "Soup $3"


def test_gemini_candidate_parts_on_sdk_objects():
    """Gemini candidates are read from SDK objects as well as dicts."""
    response = SimpleNamespace(
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=[SimpleNamespace(text="Tea $2")]))],
        text="ignored",
    )

    assert extract_payload_text(response) == "Tea $2"


def test_bare_message_object():
    assert extract_payload_text({"content": "Salad 7"}) == "Salad 7"


def test_is_truncated_detects_finish_reasons():
    """Length and max-token finish reasons mark a reply as truncated."""
    assert is_truncated({"choices": [{"finish_reason": "length"}]})
    assert is_truncated({"status": "incomplete", "output": []})
    assert is_truncated({"incomplete_details": {"reason": "max_output_tokens"}})
    assert is_truncated(SimpleNamespace(candidates=[SimpleNamespace(finish_reason=SimpleNamespace(name="MAX_TOKENS"))]))
    assert not is_truncated({"choices": [{"finish_reason": "stop"}]})
    assert not is_truncated("text")


def test_extract_usage_from_each_envelope():
    """Token usage is read from every envelope shape."""
    chat = extract_usage({"usage": {"prompt_tokens": 10, "completion_tokens": 4}})
    responses = extract_usage({"usage": {"input_tokens": 7, "output_tokens": 3}})
    gemini = extract_usage(SimpleNamespace(usage=None, usage_metadata=SimpleNamespace(prompt_token_count=5, candidates_token_count=2)))

    assert (chat.prompt_tokens, chat.completion_tokens) == (10, 4)
    assert (responses.prompt_tokens, responses.completion_tokens) == (7, 3)
    assert (gemini.prompt_tokens, gemini.completion_tokens) == (5, 2)
    assert extract_usage({"usage": {}}) is None
    assert extract_usage("text") is None
