"""Post-processing pipeline that turns model output into menu items."""

from menu_lens.pipeline.batching import BatchConfig, BatchState, MenuBatchOrchestrator, parse_menu_payload
from menu_lens.pipeline.collector import coerce_menu_payload, collect_menu_items
from menu_lens.pipeline.lenient_json import extract_json_block, parse_lenient_json
from menu_lens.pipeline.normalize import normalize_items, parse_calories, parse_price
from menu_lens.pipeline.payload import extract_payload_text
from menu_lens.pipeline.prose import convert_text_to_items

__all__ = [
    "BatchConfig",
    "BatchState",
    "MenuBatchOrchestrator",
    "coerce_menu_payload",
    "collect_menu_items",
    "convert_text_to_items",
    "extract_json_block",
    "extract_payload_text",
    "normalize_items",
    "parse_calories",
    "parse_lenient_json",
    "parse_menu_payload",
    "parse_price",
]
