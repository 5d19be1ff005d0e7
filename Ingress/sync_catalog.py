#!/usr/bin/env python3
"""
Sync the awesome-list catalog.

This script:
1. Fetches the awesome-list README (GitHub, or a local file with --input)
2. Skips the cycle when the source is unchanged (ETag / content hash)
3. Parses categories, subcategories and links into a catalog
4. Stores catalog.json, then the new fingerprint

Usage:
    python Ingress/sync_catalog.py
    python Ingress/sync_catalog.py --force
    python Ingress/sync_catalog.py --input md/readme.md
"""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parents[1]
ENV_PATH = BASE_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH)

# Add parent directory to path
sys.path.insert(0, str(BASE_DIR))
from catalog import build_stats, normalize_catalog
from sync import (
    FileCatalogStore,
    GitHubReadmeFetcher,
    LocalFileFetcher,
    StoreError,
    SyncError,
    SyncOrchestrator,
    build_store_from_env,
)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Sync the awesome-list catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Conditional sync from GitHub into the configured store
    python Ingress/sync_catalog.py

    # Ignore the stored ETag
    python Ingress/sync_catalog.py --force

    # Build from a local markdown file into a specific directory
    python Ingress/sync_catalog.py --input md/readme.md --catalog-dir output/catalog
        """
    )

    parser.add_argument(
        "--input",
        type=Path,
        help="Local markdown file to use instead of GitHub"
    )

    parser.add_argument(
        "--catalog-dir",
        type=Path,
        help="Store catalog files in this directory (default: configured store)"
    )

    parser.add_argument(
        "--force",
        action="store_true",
        help="Fetch and store even if the source is unchanged"
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show detailed output"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    print("\n" + "=" * 70)
    print("Awesome Catalog Sync")
    print("=" * 70)

    try:
        store = FileCatalogStore(args.catalog_dir) if args.catalog_dir else build_store_from_env()
    except StoreError as e:
        print(f"\n✗ Store error: {e}")
        return 1

    fetcher = LocalFileFetcher(args.input) if args.input else GitHubReadmeFetcher()
    print(f"\nSource: {args.input or fetcher.raw_url}")
    print(f"Store: {type(store).__name__}")
    print(f"Force: {args.force}")
    print("=" * 70)

    try:
        result = SyncOrchestrator(fetcher, store).sync(force=args.force)
    except SyncError as e:
        print(f"\n✗ Sync failed: {e}")
        return 1

    if not result.stored:
        print(f"\n✓ {result.message} ({result.source}), stored catalog kept")
        return 0

    print(f"\n✓ Stored new catalog from {result.source}")
    print(f"  Items: {result.meta['totalItems']}")
    print(f"  Updated: {result.meta['updatedAt']}")

    if args.verbose:
        catalog = normalize_catalog(store.get())
        if catalog is not None:
            stats = build_stats(catalog)
            print(f"  Categories: {stats['categories_count']}")
            print(f"  Subcategories: {stats['subcategories_count']}")
            for title, count in stats["by_category"].items():
                print(f"    • {title}: {count}")

    print("=" * 70 + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
