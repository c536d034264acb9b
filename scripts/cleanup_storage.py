#!/usr/bin/env python3
"""
Storage Orphan Cleanup.

Lists every object in the image bucket, compares it with the URLs still
referenced by posts, gallery images and profile avatars, and deletes the rest.

Usage:
    python scripts/cleanup_storage.py              # Delete orphans
    python scripts/cleanup_storage.py --dry-run    # Report only
    python scripts/cleanup_storage.py --data-dir /srv/blog/data
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

from src.adapters.local_storage import create_local_store  # noqa: E402
from src.adapters.sqlite.repos import (  # noqa: E402
    SQLiteImageRepo,
    SQLitePostRepo,
    SQLiteProfileRepo,
)
from src.components.assets import (  # noqa: E402
    AssetsConfig,
    OrphanSweepInput,
    OrphanSweepOutput,
    run_orphan_sweep,
)
from src.rules.loader import load_rules  # noqa: E402

logger = logging.getLogger("cleanup_storage")

DEFAULT_DATA_DIR = os.environ.get("BLOG_DATA_DIR", "./data")
DEFAULT_RULES_PATH = os.environ.get("BLOG_RULES_PATH", str(PROJECT_ROOT / "rules.yaml"))
DEFAULT_PUBLIC_BASE_URL = os.environ.get("BLOG_PUBLIC_BASE_URL", "http://localhost:8000")


async def run_cleanup(data_dir: Path, rules_path: Path, dry_run: bool) -> OrphanSweepOutput:
    rules = load_rules(rules_path)
    db_path = str(data_dir / "blog.db")
    store = create_local_store(
        data_dir / "storage",
        bucket=rules.uploads.bucket,
        public_base_url=DEFAULT_PUBLIC_BASE_URL,
    )
    # Operator run: no caller identity, so the permission check is skipped.
    return await run_orphan_sweep(
        OrphanSweepInput(dry_run=dry_run),
        actor=None,
        policy=None,
        posts=SQLitePostRepo(db_path),
        images=SQLiteImageRepo(db_path),
        profiles=SQLiteProfileRepo(db_path),
        store=store,
        config=AssetsConfig.from_rules(rules.uploads),
    )


# --- CLI ---


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Delete unreferenced objects from storage.")
    parser.add_argument(
        "--data-dir",
        default=DEFAULT_DATA_DIR,
        help=f"Data directory holding blog.db and storage/ (default: {DEFAULT_DATA_DIR})",
    )
    parser.add_argument(
        "--rules",
        default=DEFAULT_RULES_PATH,
        help="Path to rules.yaml",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List orphans without deleting them",
    )
    return parser.parse_args()


def main() -> int:
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    result = asyncio.run(run_cleanup(Path(args.data_dir), Path(args.rules), args.dry_run))
    if not result.success:
        for err in result.errors:
            logger.error("%s: %s", err.code, err.message)
        return 1

    print(f"Stored objects:     {result.stored}")
    print(f"Referenced objects: {result.referenced}")
    print(f"Orphaned objects:   {len(result.orphaned)}")
    for key in result.orphaned:
        print(f"  - {key}")

    if result.dry_run:
        print("\nDry run: nothing deleted.")
    else:
        print(f"\nDeleted {len(result.deleted)} of {len(result.orphaned)} orphans.")
    return 0 if result.dry_run or len(result.deleted) == len(result.orphaned) else 1


if __name__ == "__main__":
    sys.exit(main())
