#!/usr/bin/env python3
"""
Layout Reassignment.

Recomputes the grid layout of every post from its position in the
newest-first collection and prints the resulting variant distribution.

Usage:
    python scripts/reassign_layouts.py
    python scripts/reassign_layouts.py --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.adapters.sqlite.repos import SQLitePostRepo  # noqa: E402
from src.components.layout import ReassignOutput, reassign_all_layouts  # noqa: E402

logger = logging.getLogger("reassign_layouts")

DEFAULT_DATA_DIR = os.environ.get("BLOG_DATA_DIR", "./data")


def print_report(result: ReassignOutput) -> None:
    print("=" * 60)
    print("Layout distribution")
    print("=" * 60)
    if result.distribution is not None:
        for variant, label in result.distribution.labels().items():
            print(f"  {variant:<18} {label}")
    print()
    mode = "bulk" if result.bulk else "per-row"
    print(f"Posts: {result.total}  Updated: {result.updated} ({mode})")
    for failure in result.failures:
        print(f"  ! {failure.target}: {failure.detail}")


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Recompute every post's grid layout.")
    parser.add_argument(
        "--data-dir",
        default=DEFAULT_DATA_DIR,
        help=f"Data directory holding blog.db (default: {DEFAULT_DATA_DIR})",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute and print the plan without writing it",
    )
    return parser.parse_args()


def main() -> int:
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    posts = SQLitePostRepo(str(Path(args.data_dir) / "blog.db"))
    result = asyncio.run(reassign_all_layouts(posts, dry_run=args.dry_run))
    print_report(result)
    if args.dry_run:
        print("\nDry run: nothing written.")
    return 1 if result.failures else 0


if __name__ == "__main__":
    sys.exit(main())
