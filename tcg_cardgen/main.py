"""tcg-cardgen - Render trading card images from Markdown card files."""

import argparse
import sys
from itertools import groupby
from pathlib import Path
from typing import Optional

from .config import settings
from .utils import get_logger, setup_logging

logger = get_logger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="tcg-cardgen",
        description="Generate trading card images from Markdown files with YAML metadata",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tcg-cardgen cards/bolt.md                 # Render one card
  tcg-cardgen cards/                        # Render every .md file under cards/
  tcg-cardgen --validate-only cards/        # Parse and validate, write nothing
  tcg-cardgen --list-templates              # Show every discoverable cardstyle
  tcg-cardgen --workers 4 --tolerant cards/ # Parallel batch, ignore card failures

Cardstyle search order:
  1. ./templates/<tcg>/<style>.yaml
  2. ~/.tcg-cardgen/cardstyles/<tcg>/<style>.yaml (or <style>.yaml with a matching tcg)
  3. --template-dir/<tcg>/<style>.yaml
  4. Built-in cardstyles
        """,
    )

    parser.add_argument(
        "paths",
        nargs="*",
        type=Path,
        help="Card files or directories to process",
    )
    parser.add_argument(
        "--template-dir",
        type=Path,
        help="Additional directory of custom cardstyles",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        help=f"Output directory, relative to each card unless absolute (default: {settings.output_dir_name})",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Parse and validate cards without rendering images",
    )
    parser.add_argument(
        "--list-templates",
        action="store_true",
        help="List all available cardstyles and exit",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help=f"Number of cards rendered in parallel (default: {settings.max_workers})",
    )
    parser.add_argument(
        "--tolerant",
        action="store_true",
        help="Exit 0 even when some cards fail",
    )

    args = parser.parse_args(argv)
    if not args.list_templates and not args.paths:
        parser.error("at least one card file or directory is required")
    if args.workers is not None and args.workers < 1:
        parser.error("--workers must be at least 1")
    return args


def run_list_templates(args: argparse.Namespace) -> int:
    """Print every discoverable cardstyle grouped by TCG."""
    from .templates import TemplateResolver

    resolver = TemplateResolver(legacy_dir=args.template_dir)
    cardstyles = sorted(resolver.list_cardstyles(), key=lambda info: (info.tcg, info.name))

    if not cardstyles:
        print("No cardstyles found.")
        return 0

    print("Available cardstyles:")
    for tcg, infos in groupby(cardstyles, key=lambda info: info.tcg):
        print(f"\n{tcg.upper()}:")
        for info in infos:
            version = f" v{info.version}" if info.version else ""
            print(f"  {info.name:<16} {info.display_name}{version} [{info.source}]")
            if info.description:
                print(f"  {'':<16} {info.description}")
            if info.extends:
                print(f"  {'':<16} extends: {info.extends}")
            if args.verbose:
                print(f"  {'':<16} path: {info.path}")
    print()
    return 0


def run_generate(args: argparse.Namespace) -> int:
    """
    Process the given card paths.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 for success, 1 if any card failed and --tolerant is off)
    """
    from .generator import CardGenerator
    from .templates import TemplateResolver

    missing = [path for path in args.paths if not path.exists()]
    for path in missing:
        logger.error(f"Path does not exist: {path}")
    if missing and not args.tolerant:
        return 1

    generator = CardGenerator(
        resolver=TemplateResolver(legacy_dir=args.template_dir),
        output_dir=args.output_dir,
        validate_only=args.validate_only,
        max_workers=args.workers,
    )
    summary = generator.process_paths([path for path in args.paths if path.exists()])

    for result in summary.failed:
        print(f"✗ {result.source}: {result.error}", file=sys.stderr)

    if summary.failed and not args.tolerant:
        return 1
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    # Setup logging
    log_level = "DEBUG" if args.verbose else settings.log_level
    setup_logging(level=log_level)

    logger.debug(f"Arguments: {args}")

    if args.list_templates:
        return run_list_templates(args)
    return run_generate(args)


if __name__ == "__main__":
    sys.exit(main())
