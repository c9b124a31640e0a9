"""Command-line interface for menu-lens."""

import argparse
import sys
from dataclasses import replace

from menu_lens import __version__, extract_menu
from menu_lens.exceptions import MenuLensError, NoDishesDetectedError
from menu_lens.pipeline.batching import BatchConfig


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="menu-lens",
        description="Extract menu items from restaurant menu photos",
    )
    parser.add_argument("image", help="Path to menu image")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )
    parser.add_argument(
        "--provider",
        choices=["openai", "gemini"],
        help="Vision provider: openai or gemini (default: MENU_LENS_PROVIDER env var, then openai)",
    )
    parser.add_argument(
        "--api-key",
        help="Provider API key (default: OPENAI_API_KEY / GEMINI_API_KEY env var)",
    )
    parser.add_argument(
        "--max-batches",
        type=int,
        help="Upper bound of extraction rounds (default: 6)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"menu-lens {__version__}",
    )

    args = parser.parse_args(argv)

    config = BatchConfig.from_env()
    if args.max_batches is not None:
        config = replace(config, max_batches=max(0, args.max_batches))

    try:
        result = extract_menu(args.image, api_key=args.api_key, provider=args.provider, config=config)
        if not result.items:
            raise NoDishesDetectedError()
    except MenuLensError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(result.model_dump_json(indent=2, exclude_none=True))
    else:
        _print_formatted(result)

    return 0


def _print_formatted(result) -> None:
    """Print result in human-readable format."""
    print()
    print("  menu-lens")
    print()

    current_section = object()
    for item in result.items:
        if item.section != current_section:
            current_section = item.section
            print(f"  [{item.section or 'Menu'}]")
        price = f"{item.price:.2f}" if item.price is not None else "-"
        print(f"  {item.name:<40} {price:>8}")
        if item.description:
            print(f"      {item.description}")
        calories = item.nutrition.calories if item.nutrition else None
        if calories is not None:
            print(f"      {calories} kcal")

    print()
    suffix = " (partial)" if result.partial else ""
    print(f"  {len(result.items)} items{suffix}")
    print()


if __name__ == "__main__":
    sys.exit(main())
