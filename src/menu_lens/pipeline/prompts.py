"""Prompts and response schemas for menu extraction requests."""

from __future__ import annotations

from collections.abc import Sequence

SYSTEM_PROMPT = (
    "You extract structured data from restaurant menus. "
    "Always reply with valid JSON that matches the requested schema."
)

MENU_BATCH_SCHEMA_NAME = "menu_batch"
SINGLE_PASS_SCHEMA_NAME = "menu_sections"

MENU_BATCH_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "items": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "description": {"type": ["string", "null"]},
                    "price": {"type": ["number", "string", "null"]},
                    "calories": {"type": ["number", "string", "null"]},
                    "tags": {"type": "array", "items": {"type": "string"}},
                    "review": {"type": ["string", "null"]},
                    "confidence": {"type": ["string", "null"]},
                },
                "required": ["name"],
                "additionalProperties": True,
            },
        },
        "has_more": {"type": ["boolean", "string"]},
        "truncated": {"type": ["boolean", "string"]},
    },
    "required": ["items"],
    "additionalProperties": True,
}

SINGLE_PASS_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "sections": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "description": {"type": ["string", "null"]},
                    "items": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "name": {"type": "string"},
                                "description": {"type": ["string", "null"]},
                                "price": {"type": ["number", "string", "null"]},
                                "tags": {"type": "array", "items": {"type": "string"}},
                            },
                            "required": ["name"],
                            "additionalProperties": True,
                        },
                    },
                },
                "required": ["name", "items"],
                "additionalProperties": True,
            },
        },
    },
    "required": ["sections"],
    "additionalProperties": True,
}

SINGLE_PASS_PROMPT = """Digitize the restaurant menu shown in this image.

- Split the menu into the sections printed on it (Appetizers, Mains, Desserts, ...).
  If the menu has no visible sections, use a single section named "Menu".
- List every item of each section in the order it appears, with its exact name and price.
- Add "description" only when a short description is printed for the item.
- Add "tags" only when the menu itself marks the item (e.g. "vegetarian", "spicy").
- Skip items whose name or price cannot be read. Never invent items, prices or tags.
- Keep prices formatted as printed, as a string ("12.50" or "$12.50").

Return only this JSON structure:
{"sections": [{"name": "Section", "items": [{"name": "Dish", "price": "12.50", "description": "...", "tags": ["..."]}]}]}"""


def build_single_pass_prompt() -> str:
    return SINGLE_PASS_PROMPT


def build_batch_prompt(
    batch_index: int,
    max_items: int,
    seen_names: Sequence[str] = (),
    *,
    seen_window: int = 40,
) -> str:
    """Build the prompt for one extraction round.

    Args:
        batch_index: Zero-based round number.
        max_items: Upper bound of new items requested this round.
        seen_names: Names already captured, oldest first.
        seen_window: How many of the most recent names to list.
    """
    lines = [
        "You are a meticulous menu digitization assistant.",
        f"This is extraction batch {batch_index + 1}.",
        (
            'Return ONLY valid JSON following this schema: {"items":[{"name":"string",'
            '"description":"string","price":number,"calories":number,"tags":["string"],'
            '"review":"short suitability sentence","confidence":"high"|"medium"|"low"}],'
            '"has_more":boolean}.'
        ),
        (
            f"Provide up to {max_items} NEW menu items from the image. For each item give the full "
            "dish name, a short description, the price as a number without currency symbols, "
            "an integer calorie estimate, dietary tags only when clearly indicated, and a "
            "one-sentence diner-facing suitability review."
        ),
        (
            'Start the review with one label ("Excellent fit", "Good fit", "Caution", "Avoid"), '
            "then a hyphen and a short reason citing the evidence on the menu. Hedge inferred "
            'facts with "Likely contains" or "May include". Never give medical advice.'
        ),
        (
            'Set "confidence" to "high" when the menu states the information, "medium" for a '
            'reasonable inference and "low" when speculative.'
        ),
        'Set "has_more" to true if unique menu items remain beyond this batch, otherwise false.',
        "Respond with JSON only, no commentary.",
    ]

    recent = list(seen_names)[-seen_window:] if seen_window > 0 else []
    if recent:
        lines.append(f"We already captured these dish names: {'; '.join(recent)}. Do not repeat them.")

    return "\n".join(lines)
