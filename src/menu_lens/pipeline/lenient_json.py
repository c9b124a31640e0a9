"""Tolerant JSON parsing for model output.

Model replies are often almost-JSON: wrapped in prose or a fenced block,
sprinkled with comments, or written with JavaScript object syntax. The
parser tries the text as-is first and then applies a fixed ladder of
repairs, each one cumulative on top of the previous ones.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from typing import Any

from menu_lens.exceptions import UnparseableResponseError

logger = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(.*?)```", re.IGNORECASE | re.DOTALL)
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT = re.compile(r"(^|\n)[ \t]*//[^\n]*")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:")
_SINGLE_QUOTED = re.compile(r"'([^']*)'")


def _strip_comments(text: str) -> str:
    return _LINE_COMMENT.sub(r"\1", _BLOCK_COMMENT.sub("", text))


def _drop_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA.sub(r"\1", text)


def _quote_bare_keys(text: str) -> str:
    return _BARE_KEY.sub(r'\1"\2":', text)


def _double_single_quotes(text: str) -> str:
    return _SINGLE_QUOTED.sub(r'"\1"', text)


REPAIR_STAGES: tuple[tuple[str, Callable[[str], str]], ...] = (
    ("as_is", lambda text: text),
    ("strip_comments", _strip_comments),
    ("trailing_commas", _drop_trailing_commas),
    ("quote_keys", _quote_bare_keys),
    ("single_quotes", _double_single_quotes),
)


def extract_json_block(text: str) -> str | None:
    """Return the JSON-looking block embedded in text, if any.

    A fenced code block wins; otherwise the first ``{`` is matched with its
    closing brace, skipping braces inside string literals. Returns None when
    there is no block or the braces never balance.
    """
    if not text:
        return None

    fenced = _FENCED_BLOCK.search(text)
    if fenced and fenced.group(1).strip():
        return fenced.group(1).strip()

    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        ch = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None


def parse_lenient_json(text: str) -> Any:
    """Parse model text into a JSON value, repairing common defects.

    Raises:
        UnparseableResponseError: If every repair stage fails.
    """
    if not isinstance(text, str) or not text.strip():
        raise UnparseableResponseError("Empty response content")

    stripped = text.strip()
    try:
        return json.loads(stripped)
    except RecursionError as exc:
        raise UnparseableResponseError("Model payload is nested too deeply") from exc
    except json.JSONDecodeError:
        pass

    candidate = extract_json_block(stripped) or stripped
    last_error: Exception | None = None
    for stage, repair in REPAIR_STAGES:
        candidate = repair(candidate)
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError as exc:
            last_error = exc
            continue
        except RecursionError as exc:
            raise UnparseableResponseError("Model payload is nested too deeply") from exc
        if stage != "as_is":
            logger.debug("model payload parsed after %s repair", stage)
        return value

    raise UnparseableResponseError(f"Invalid JSON format from model: {last_error}") from last_error
