"""menu-lens: Extract structured menu items from restaurant menu photos."""

from menu_lens.core import extract_menu, generate_menu
from menu_lens.pipeline.normalize import parse_price
from menu_lens.schema import MenuExtractionResult, MenuItemCandidate, NormalizedMenuItem, Nutrition

__version__ = "0.1.0"

__all__ = [
    "extract_menu",
    "generate_menu",
    "parse_price",
    "MenuExtractionResult",
    "MenuItemCandidate",
    "NormalizedMenuItem",
    "Nutrition",
    "__version__",
]
