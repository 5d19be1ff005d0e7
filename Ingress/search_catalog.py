#!/usr/bin/env python3
"""
Search the stored awesome-list catalog from the command line.

Usage:
    python Ingress/search_catalog.py "code editor"
    python Ingress/search_catalog.py git --limit 5
"""

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parents[1]
ENV_PATH = BASE_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH)

sys.path.insert(0, str(BASE_DIR))
from catalog import normalize_catalog
from retrieval import DEFAULT_LIMIT, search_items
from sync import FileCatalogStore, StoreError, build_store_from_env


def main(argv=None):
    parser = argparse.ArgumentParser(description="Search the awesome-list catalog")
    parser.add_argument("query", help="Whitespace-separated search terms (all must match)")
    parser.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help="Maximum results")
    parser.add_argument(
        "--catalog-dir",
        type=Path,
        help="Read catalog files from this directory (default: configured store)"
    )
    args = parser.parse_args(argv)

    if args.limit < 1:
        parser.error("--limit must be a positive integer")

    try:
        store = FileCatalogStore(args.catalog_dir) if args.catalog_dir else build_store_from_env()
        catalog = normalize_catalog(store.get())
    except StoreError as e:
        print(f"✗ Store error: {e}")
        return 1

    if catalog is None:
        print("✗ Catalog not found. Run 'python Ingress/sync_catalog.py' first.")
        return 1

    results = search_items(catalog, args.query, args.limit)
    print(f"{len(results)} result(s) for '{args.query}'\n")
    for item in results:
        location = item.category + (f" / {item.subcategory}" if item.subcategory else "")
        print(f"  • {item.title} [{location}]")
        print(f"    {item.url}")
        if item.description:
            print(f"    {item.description}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
