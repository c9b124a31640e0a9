"""Best-effort conversion of free text into menu item candidates.

Used when the model answered in prose, markdown lists or broken JSON.
Every name produced here is a substring of the input; nothing is invented.
"""

from __future__ import annotations

import re

from menu_lens.pipeline.normalize import parse_price
from menu_lens.schema import MenuItemCandidate

MAX_FALLBACK_ITEMS = 60

DIETARY_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("vegan", "vegan"),
    ("vegetarian", "vegetarian"),
    ("gluten-free", "gluten-free"),
    ("gluten free", "gluten-free"),
    ("spicy", "spicy"),
    ("keto", "keto"),
    ("halal", "halal"),
    ("organic", "organic"),
    ("dairy-free", "dairy-free"),
    ("dairy free", "dairy-free"),
)

_SKIP_PREFIXES = ("note:", "total:", "serves")

_FENCE_MARKER = re.compile(r"```(?:json|text|markdown)?", re.IGNORECASE)
_PREAMBLE = re.compile(
    r"^\s*(?:here(?:'s|’s|\s+is|\s+are)|below\s+(?:is|are)|the\s+following)\b[^:\n]*:\s*",
    re.IGNORECASE,
)
_LIST_MARKER = re.compile(r"^(?:[-*•]\s*|\d+[.)]\s+)")
_CALORIES = re.compile(r"(\d{2,4})\s*(?:kcal|calories|calorie|cal)\b", re.IGNORECASE)
_MARKED_PRICE = re.compile(r"\$\s?\d{1,4}(?:\.\d{1,2})?")
_CENTS_PRICE = re.compile(r"\b\d{1,4}\.\d{2}\b")
_BARE_PRICE = re.compile(r"\d{1,4}(?:\.\d{1,2})?")
_INLINE_PRICE = re.compile(r"\$\s?\d{1,4}(?:\.\d{1,2})?|\b\d{1,4}\.\d{2}\b")
_NAME_SPLIT = re.compile(r"^(.*?)(?:\s*:\s+|\s[-–—]\s|\.\s+)(.+)$")
_TRAILING_ASIDE = re.compile(r"^(.*?)\s*\(([^()]*)\)$")
_INDEX_PREFIX = re.compile(r"^[\d. )-]+")
_LEADING_JOINER = re.compile(r"^[\s,;/|&]+(?:and\s+)?", re.IGNORECASE)
_HAS_LETTER = re.compile(r"[^\W\d_]")
_NAME_PUNCTUATION = " ,;:-–—.|/[]{}"


def has_price_token(text: str) -> bool:
    """Return True if text carries a currency-marked or cents price."""
    return bool(text) and bool(_INLINE_PRICE.search(text))


def convert_text_to_items(text: str) -> list[MenuItemCandidate]:
    """Segment free text into menu item candidates. Never raises."""
    if not isinstance(text, str):
        return []

    cleaned = _FENCE_MARKER.sub("", text).replace("\r", "").strip()
    cleaned = _PREAMBLE.sub("", cleaned, count=1).strip()
    if not cleaned:
        return []

    items: list[MenuItemCandidate] = []
    seen: set[str] = set()
    for segment in _split_segments(cleaned):
        for piece in _split_priced_pieces(segment):
            item = _parse_piece(piece)
            if item is None or item.key in seen:
                continue
            seen.add(item.key)
            items.append(item)
            if len(items) >= MAX_FALLBACK_ITEMS:
                return items
    return items


def derive_tags(text: str) -> list[str]:
    lowered = text.lower()
    tags: list[str] = []
    for keyword, label in DIETARY_KEYWORDS:
        if keyword in lowered and label not in tags:
            tags.append(label)
    return tags


def _split_segments(text: str) -> list[str]:
    paragraphs = [chunk.strip() for chunk in re.split(r"\n{2,}", text) if chunk.strip()]
    if len(paragraphs) > 1:
        segments: list[str] = []
        for paragraph in paragraphs:
            if _is_heading(paragraph):
                continue
            if _priced_line_count(paragraph) > 1 or _list_line_count(paragraph) > 1:
                segments.extend(_split_lines(paragraph))
            else:
                segments.append(paragraph)
        return segments
    return _split_lines(text) or [text]


def _split_lines(text: str) -> list[str]:
    segments: list[str] = []
    current: list[str] = []

    def flush() -> None:
        if current:
            segments.append(" ".join(current))
            current.clear()

    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if not line:
            flush()
            continue
        if _is_heading(line):
            flush()
            continue
        if _LIST_MARKER.match(line):
            flush()
            current.append(_LIST_MARKER.sub("", line, count=1))
        elif has_price_token(line) and any(has_price_token(part) for part in current):
            flush()
            current.append(line)
        else:
            current.append(line)
    flush()
    return segments


def _is_heading(line: str) -> bool:
    if has_price_token(line):
        return False
    if line.endswith(":") and len(line.split()) <= 5:
        return True
    letters = [ch for ch in line if ch.isalpha()]
    return len(letters) > 2 and line.isupper() and len(line.split()) <= 4


def _priced_line_count(text: str) -> int:
    return sum(1 for line in text.split("\n") if has_price_token(line))


def _list_line_count(text: str) -> int:
    return sum(1 for line in text.split("\n") if _LIST_MARKER.match(line.strip()))


def _split_priced_pieces(segment: str) -> list[str]:
    matches = list(_INLINE_PRICE.finditer(segment))
    if len(matches) < 2:
        return [segment]

    pieces: list[str] = []
    start = 0
    for match in matches:
        pieces.append(segment[start : match.end()])
        start = match.end()
    tail = segment[start:]
    if tail.strip():
        pieces[-1] += tail
    return pieces


def _parse_piece(piece: str) -> MenuItemCandidate | None:
    working = _LEADING_JOINER.sub("", re.sub(r"\s+", " ", piece)).strip()
    working = _LIST_MARKER.sub("", working, count=1)
    if not working:
        return None
    if working.lower().startswith(_SKIP_PREFIXES):
        return None

    calories = None
    calories_match = _CALORIES.search(working)
    if calories_match:
        calories = int(calories_match.group(1))
        working = _cut(working, calories_match)

    price = None
    # Prices trail the dish name, so a bare number falls back to the last one.
    price_match = _MARKED_PRICE.search(working) or _CENTS_PRICE.search(working) or _last_match(_BARE_PRICE, working)
    if price_match:
        price = parse_price(price_match.group(0))
        working = _cut(working, price_match)

    name, description = _split_name(working)
    if not name or not _HAS_LETTER.search(name):
        return None

    return MenuItemCandidate(
        name=name,
        description=description,
        price=price,
        calories=calories,
        tags=derive_tags(piece),
        confidence="estimated",
    )


def _last_match(pattern: re.Pattern[str], text: str) -> re.Match[str] | None:
    matches = list(pattern.finditer(text))
    return matches[-1] if matches else None


def _cut(text: str, match: re.Match[str]) -> str:
    return re.sub(r"\s+", " ", f"{text[: match.start()]} {text[match.end():]}").strip()


def _split_name(working: str) -> tuple[str, str | None]:
    description: str | None = None
    split = _NAME_SPLIT.match(working)
    if split:
        name, description = split.group(1), split.group(2)
    else:
        name = working

    aside = _TRAILING_ASIDE.match(name)
    if aside and aside.group(1).strip():
        name = aside.group(1)
        description = description or aside.group(2)

    name = _INDEX_PREFIX.sub("", name).strip(_NAME_PUNCTUATION)
    if description is not None:
        description = description.strip(_NAME_PUNCTUATION) or None
    return name, description
