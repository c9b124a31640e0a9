"""Structural walk that finds menu items anywhere in a parsed JSON tree."""

from __future__ import annotations

from typing import Any

from menu_lens.pipeline.prose import convert_text_to_items, has_price_token
from menu_lens.schema import MenuBatch, MenuItemCandidate

PRIMARY_COLLECTION_KEYS = (
    "items",
    "menu",
    "menuItems",
    "dishes",
    "entries",
    "products",
    "options",
    "sections",
)

NAME_KEYS = ("name", "title", "item", "dish", "label", "menu_item")
DESCRIPTION_KEYS = ("description", "details", "summary", "about", "note")
PRICE_KEYS = ("price", "price_usd", "priceUsd", "cost", "amount", "price_value")
CALORIE_KEYS = ("calories", "kcal", "calorie", "energy")
TAG_KEYS = ("tags", "labels", "attributes", "dietary", "keywords", "flags")
REVIEW_KEYS = ("review", "blurb", "aiReview", "ai_review")
CONFIDENCE_KEYS = ("confidence", "certainty", "quality")
SECTION_KEYS = ("section", "category", "group")

_ITEM_FIELD_KEYS = frozenset(
    NAME_KEYS
    + DESCRIPTION_KEYS
    + PRICE_KEYS
    + CALORIE_KEYS
    + TAG_KEYS
    + REVIEW_KEYS
    + CONFIDENCE_KEYS
    + SECTION_KEYS
)


class MenuItemCollector:
    """Collects de-duplicated candidates from one parsed payload.

    Containers are visited once by identity; candidates are kept once per
    lowercase name, first one wins.
    """

    def __init__(self):
        self.items: list[MenuItemCandidate] = []
        self._seen_names: set[str] = set()
        self._visited: set[int] = set()
        self._expanding: set[int] = set()

    def collect(self, value: Any) -> list[MenuItemCandidate]:
        if isinstance(value, str):
            self._add_all(convert_text_to_items(value))
        elif isinstance(value, list):
            self._visit(value)
        elif isinstance(value, dict):
            for key in PRIMARY_COLLECTION_KEYS:
                child = value.get(key)
                if child:
                    self._visit(child)
            self._visit(value)
        return self.items

    def _visit(self, value: Any) -> None:
        if isinstance(value, str):
            if has_price_token(value):
                self._add_all(convert_text_to_items(value))
            return
        if not isinstance(value, (dict, list)):
            return
        if id(value) in self._visited:
            return
        self._visited.add(id(value))

        if isinstance(value, list):
            for entry in value:
                if isinstance(entry, dict):
                    self._collect_node(entry, None)
                self._visit(entry)
            return

        self._collect_node(value, None)
        for key, child in value.items():
            if isinstance(child, str) and key in _ITEM_FIELD_KEYS:
                continue
            self._visit(child)

    def _collect_node(self, node: dict, section: str | None) -> None:
        children = node.get("items")
        if isinstance(children, list) and children and id(node) not in self._expanding:
            self._expanding.add(id(node))
            child_section = _pick_first_text(node, ("name",)) or section
            for child in children:
                if isinstance(child, dict):
                    self._collect_node(child, child_section)
            self._expanding.discard(id(node))

        self._add(create_candidate(node, section))

    def _add(self, candidate: MenuItemCandidate | None) -> None:
        if candidate is None or candidate.key in self._seen_names:
            return
        self._seen_names.add(candidate.key)
        self.items.append(candidate)

    def _add_all(self, candidates: list[MenuItemCandidate]) -> None:
        for candidate in candidates:
            self._add(candidate)


def create_candidate(node: dict, section: str | None = None) -> MenuItemCandidate | None:
    """Interpret a single JSON object as a menu item, or return None."""
    if not isinstance(node, dict):
        return None

    price = _pick_first_scalar(node, PRICE_KEYS)
    if price is None and _is_section_header(node):
        return None

    name = _pick_first_text(node, NAME_KEYS)
    if not name:
        return None

    return MenuItemCandidate(
        name=name,
        description=_pick_first_text(node, DESCRIPTION_KEYS),
        price=price,
        calories=_pick_first_scalar(node, CALORIE_KEYS),
        tags=_coerce_tags(_pick_first(node, TAG_KEYS)),
        review=_pick_first_text(node, REVIEW_KEYS),
        confidence=_pick_first_text(node, CONFIDENCE_KEYS),
        section=_pick_first_text(node, SECTION_KEYS) or section,
    )


def collect_menu_items(value: Any) -> list[MenuItemCandidate]:
    """Return every plausible menu item found in a parsed JSON value."""
    return MenuItemCollector().collect(value)


def coerce_menu_payload(value: Any) -> MenuBatch:
    """Collect items and read the continuation flags of a parsed payload."""
    has_more = truncated = False
    if isinstance(value, dict):
        has_more = _as_flag(value.get("has_more"))
        truncated = _as_flag(value.get("truncated"))
    return MenuBatch(items=collect_menu_items(value), has_more=has_more, truncated=truncated)


def _is_section_header(node: dict) -> bool:
    return isinstance(node.get("items"), list)


def _pick_first(source: dict, keys: tuple[str, ...]) -> Any:
    for key in keys:
        if source.get(key) is not None:
            return source[key]
    return None


def _pick_first_scalar(source: dict, keys: tuple[str, ...]) -> int | float | str | None:
    for key in keys:
        value = source.get(key)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        if isinstance(value, (int, float, str)):
            return value
    return None


def _pick_first_text(source: dict, keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = source.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _coerce_tags(value: Any) -> list[str]:
    if isinstance(value, list):
        return [str(tag).strip() for tag in value if isinstance(tag, (str, int, float)) and str(tag).strip()]
    if isinstance(value, str):
        return [tag.strip() for tag in value.replace(";", ",").replace("|", ",").split(",") if tag.strip()]
    return []


def _as_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False
