"""Final narrowing of candidates into persisted menu items."""

from __future__ import annotations

import math
import re
from typing import Any

from menu_lens.schema import MenuItemCandidate, NormalizedMenuItem, Nutrition

_NON_NUMERIC = re.compile(r"[^0-9.]")
_LEADING_NUMBER = re.compile(r"\d+(?:\.\d+)?|\.\d+")

ESTIMATED_TAG = "estimated"
_ESTIMATED_CONFIDENCE = {"low", "estimated"}


def _to_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(_NON_NUMERIC.sub("", value))
        if not match:
            return None
        number = float(match.group(0))
    else:
        return None
    return number if math.isfinite(number) else None


def parse_price(value: Any) -> float | None:
    """Parse a raw price such as ``"$12.50"`` into a float, or None."""
    return _to_number(value)


def parse_calories(value: Any) -> int | None:
    """Parse a raw calorie value such as ``"450 kcal"`` into a rounded int."""
    number = _to_number(value)
    return int(round(number)) if number is not None else None


def normalize_item(item: MenuItemCandidate) -> NormalizedMenuItem:
    calories = parse_calories(item.calories)
    review = item.review.strip() if item.review and item.review.strip() else None

    tags = list(item.tags)
    if item.confidence in _ESTIMATED_CONFIDENCE and ESTIMATED_TAG not in tags:
        tags.append(ESTIMATED_TAG)

    section = item.section.strip() if item.section and item.section.strip() else None
    if section:
        section_tag = f"section:{section}"
        if not any(tag.lower() == section_tag.lower() for tag in tags):
            tags.append(section_tag)

    description = item.description.strip() if item.description else None
    nutrition = Nutrition(calories=calories, ai_review=review)
    return NormalizedMenuItem(
        name=item.name.strip(),
        description=description or None,
        price=parse_price(item.price),
        section=section,
        tags=tags,
        nutrition=nutrition if calories is not None or review else None,
    )


def normalize_items(candidates: list[MenuItemCandidate]) -> list[NormalizedMenuItem]:
    """Normalize candidates, keeping the first item for each lowercase name."""
    normalized: list[NormalizedMenuItem] = []
    seen: set[str] = set()
    for candidate in candidates:
        if candidate.key in seen:
            continue
        seen.add(candidate.key)
        normalized.append(normalize_item(candidate))
    return normalized
