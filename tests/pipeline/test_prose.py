"""Tests for free-text menu conversion."""

from menu_lens.pipeline.prose import MAX_FALLBACK_ITEMS, convert_text_to_items, derive_tags, has_price_token


def test_inline_prices_split_into_items():
    """Several prices on one line give several items."""
    items = convert_text_to_items("Burger $5, fries $2")

    assert [(item.name, item.price) for item in items] == [("Burger", 5.0), ("fries", 2.0)]
    assert all(item.confidence == "estimated" for item in items)


def test_markdown_list_with_preamble():
    """A chat preamble is dropped and list markers stripped."""
    text = (
        "Here are the items:\n"
        "- Margherita Pizza - $12.50 (vegetarian)\n"
        "- Spicy Wings: 6 pieces $9\n"
        "- Caesar Salad 320 kcal 8.00"
    )

    items = convert_text_to_items(text)

    assert [item.name for item in items] == ["Margherita Pizza", "Spicy Wings", "Caesar Salad"]
    pizza, wings, salad = items
    assert pizza.price == 12.5
    assert pizza.tags == ["vegetarian"]
    assert wings.price == 9.0
    assert wings.description == "6 pieces"
    assert wings.tags == ["spicy"]
    assert salad.calories == 320
    assert salad.price == 8.0


def test_paragraph_headings_are_skipped():
    """Heading paragraphs do not become items."""
    text = "MAINS\n\nSteak $20\n\nDESSERTS:\n\nPie $6"

    items = convert_text_to_items(text)

    assert [(item.name, item.price) for item in items] == [("Steak", 20.0), ("Pie", 6.0)]


def test_heading_lines_inside_a_list_are_skipped():
    items = convert_text_to_items("Starters:\nSoup $4\nBread $2")

    assert [item.name for item in items] == ["Soup", "Bread"]


def test_fenced_markers_and_duplicates_are_dropped():
    items = convert_text_to_items("```text\nTea $2\nTEA $3\n```")

    assert [(item.name, item.price) for item in items] == [("Tea", 2.0)]


def test_names_are_taken_from_the_input():
    """Names are substrings of the input text."""
    text = "Burger $5, fries $2\n\nNote: prices include tax\n\n1. Grilled Cheese 6.50"

    items = convert_text_to_items(text)

    assert [(item.name, item.price) for item in items] == [("Burger", 5.0), ("fries", 2.0), ("Grilled Cheese", 6.5)]
    for item in items:
        assert item.name.lower() in text.lower()
    assert not any(item.name.lower().startswith("note") for item in items)


def test_output_is_capped():
    """Conversion stops at MAX_FALLBACK_ITEMS."""
    text = "\n".join(f"Dish {i} ${i % 9 + 1}" for i in range(MAX_FALLBACK_ITEMS + 40))

    items = convert_text_to_items(text)

    assert len(items) == MAX_FALLBACK_ITEMS


def test_empty_and_non_text_input():
    """Empty or non-text input gives no items."""
    assert convert_text_to_items("") == []
    assert convert_text_to_items("   ") == []
    assert convert_text_to_items("...") == []
    assert convert_text_to_items(None) == []


def test_has_price_token():
    assert has_price_token("Soup $4")
    assert has_price_token("Soup 4.50")
    assert not has_price_token("Mains")
    assert not has_price_token("Serves 4")


def test_derive_tags_normalizes_keywords():
    assert derive_tags("Gluten free, VEGAN bowl") == ["vegan", "gluten-free"]
    assert derive_tags("Plain rice") == []


def test_bullet_paragraphs_without_prices_split_per_line():
    """Unpriced bullet lists separated by blank lines keep one item per bullet."""
    items = convert_text_to_items("- Burger\n- Fries\n\n- Soup\n- Salad")

    assert [item.name for item in items] == ["Burger", "Fries", "Soup", "Salad"]
    assert all(item.price is None for item in items)


def test_brackets_are_trimmed_from_names():
    items = convert_text_to_items("[" * 900 + " Burger $5")

    assert [(item.name, item.price) for item in items] == [("Burger", 5.0)]
