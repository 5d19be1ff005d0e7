"""
Catalog module for awesome-list link catalogs.

This module provides functionality for:
- Parsing awesome-list markdown into structural events
- Building the category tree and flat item list
- Normalizing stored catalogs written by older schema versions
- Generating collision-free category slugs

Markdown grammar:
    ## Category
    ### Subcategory
    - [Title](https://example.com) - Description

Usage:
    from catalog import parse_awesome_list, normalize_catalog

    # Parse markdown
    catalog = parse_awesome_list(Path("readme.md").read_text(encoding="utf-8"))
    print(catalog.meta.total_items)

    # Repair a stored value
    catalog = normalize_catalog(json.loads(stored_json))
"""

from .models import CURRENT_VERSION, Item, Category, CatalogMeta, Catalog, flatten_tree
from .slugger import slugify, Slugger
from .markdown_parser import (
    MarkdownParseError,
    HeadingEvent,
    LinkEntry,
    LinkListEvent,
    parse_blocks,
)
from .builder import CatalogBuilder, parse_awesome_list, build_stats, clean_description
from .normalizer import normalize_catalog

__all__ = [
    "CURRENT_VERSION",
    "Item",
    "Category",
    "CatalogMeta",
    "Catalog",
    "flatten_tree",
    "slugify",
    "Slugger",
    "MarkdownParseError",
    "HeadingEvent",
    "LinkEntry",
    "LinkListEvent",
    "parse_blocks",
    "CatalogBuilder",
    "parse_awesome_list",
    "build_stats",
    "clean_description",
    "normalize_catalog",
]

__version__ = "2.0.0"
