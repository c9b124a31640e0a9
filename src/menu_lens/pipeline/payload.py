"""Pull the text payload out of vision-model response envelopes.

The same helpers work on raw dicts (HTTP JSON, tests) and on SDK response
objects, which expose the same fields as attributes. Supported envelopes:

- plain string
- chat completion (``choices[0].text`` / ``choices[0].message``)
- Responses API (``output[*].content[*]`` parts, then ``output_text``)
- Gemini (``candidates[0].content.parts``, then ``text``)
- a bare message object
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from menu_lens.schema import TokenUsage

_TRUNCATION_REASONS = {"length", "max_tokens", "max_output_tokens"}


def extract_payload_text(response: Any) -> str | None:
    """Return the best-effort text content of a model response, or None."""
    if response is None:
        return None
    if isinstance(response, str):
        return _clean(response)

    choices = _field(response, "choices")
    if _is_sequence(choices) and choices:
        choice = choices[0]
        return _clean(_field(choice, "text")) or _message_text(_field(choice, "message"))

    output = _field(response, "output")
    if _is_sequence(output):
        chunks = [_message_text(entry) for entry in output]
        joined = _clean("".join(chunk for chunk in chunks if chunk))
        return joined or _clean(_field(response, "output_text"))

    candidates = _field(response, "candidates")
    if _is_sequence(candidates) and candidates:
        text = _message_text(candidates[0])
        if text:
            return text

    return _message_text(response)


def is_truncated(response: Any) -> bool:
    """Report whether the model stopped because it ran out of output tokens."""
    if response is None or isinstance(response, str):
        return False

    if _field(response, "status") == "incomplete":
        return True
    details = _field(response, "incomplete_details")
    if details is not None and _reason_name(_field(details, "reason")) in _TRUNCATION_REASONS:
        return True

    for key in ("choices", "output", "candidates"):
        entries = _field(response, key)
        if not _is_sequence(entries):
            continue
        for entry in entries:
            if _reason_name(_field(entry, "finish_reason")) in _TRUNCATION_REASONS:
                return True
            if _field(entry, "status") == "incomplete":
                return True
    return False


def extract_usage(response: Any) -> TokenUsage | None:
    """Normalize token counters from chat, Responses and Gemini envelopes."""
    if response is None or isinstance(response, str):
        return None

    usage = _field(response, "usage")
    if usage is not None:
        prompt_tokens = _first_int(usage, ("prompt_tokens", "input_tokens"))
        completion_tokens = _first_int(usage, ("completion_tokens", "output_tokens"))
    else:
        usage = _field(response, "usage_metadata")
        if usage is None:
            return None
        prompt_tokens = _first_int(usage, ("prompt_token_count",))
        completion_tokens = _first_int(usage, ("candidates_token_count",))

    if prompt_tokens is None and completion_tokens is None:
        return None
    return TokenUsage(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens)


def _message_text(message: Any) -> str | None:
    if message is None:
        return None
    if isinstance(message, str):
        return _clean(message)

    content = _field(message, "content")

    # (a) plain string content
    text = _clean(content) or _clean(_field(message, "text"))
    if text:
        return text

    # (b) array of content parts
    if _is_sequence(content):
        text = _parts_text(content)
        if text:
            return text
    elif content is not None:
        parts = _field(content, "parts")
        if _is_sequence(parts):
            text = _parts_text(parts)
            if text:
                return text
        # (c) object content exposing text or json
        text = _clean(_field(content, "text")) or _clean(_serialize(_field(content, "json")))
        if text:
            return text

    # (d) structured-output "parsed" field
    text = _clean(_serialize(_field(message, "parsed")))
    if text:
        return text

    # (e) tool / function call arguments
    return _arguments_text(message)


def _parts_text(parts: Any) -> str | None:
    chunks: list[str] = []
    for part in parts:
        if part is None:
            continue
        if isinstance(part, str):
            chunks.append(part)
            continue
        text = _field(part, "text")
        if isinstance(text, str):
            chunks.append(text)
            continue
        value = _field(text, "value") if text is not None else _field(part, "value")
        if isinstance(value, str):
            chunks.append(value)
            continue
        serialized = _serialize(_field(part, "json"))
        if serialized:
            chunks.append(serialized)
    return _clean("".join(chunks))


def _arguments_text(message: Any) -> str | None:
    calls: list[Any] = []
    tool_calls = _field(message, "tool_calls")
    if _is_sequence(tool_calls):
        calls.extend(_field(call, "function") or call for call in tool_calls)
    function_call = _field(message, "function_call")
    if function_call is not None:
        calls.append(function_call)
    calls.append(message)

    for call in calls:
        text = _clean(_serialize(_field(call, "arguments")))
        if text:
            return text
    return None


def _field(source: Any, key: str) -> Any:
    if source is None:
        return None
    if isinstance(source, Mapping):
        return source.get(key)
    try:
        return getattr(source, key, None)
    except (AttributeError, ValueError):
        return None


def _serialize(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if hasattr(value, "model_dump"):
        value = value.model_dump()
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError):
        return None


def _clean(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _reason_name(reason: Any) -> str | None:
    if reason is None:
        return None
    name = getattr(reason, "name", reason)
    return str(name).lower()


def _first_int(source: Any, keys: tuple[str, ...]) -> int | None:
    for key in keys:
        value = _field(source, key)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None
