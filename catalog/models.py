"""
Catalog data model.

A catalog is the full parse result of an awesome list:
- tree: ordered top-level categories, each with items and nested children
- list: every item flattened in pre-order tree traversal
- meta: update timestamp, item count and schema version

Serialized form (JSON) keeps the camelCase keys used by the persisted store:
    {
        "tree": [{"title", "slug", "items": [...], "children": [...]}],
        "list": [{"title", "url", "description"?, "category", "subcategory"?}],
        "meta": {"updatedAt", "totalItems", "version"}
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional

# Schema tag. Version 1 was the mapping-shaped "categories" catalog.
CURRENT_VERSION = 2


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with a trailing Z."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


@dataclass
class Item:
    """A single curated link."""
    title: str
    url: str
    category: str
    description: Optional[str] = None
    subcategory: Optional[str] = None

    def to_dict(self) -> Dict:
        data = {"title": self.title, "url": self.url}
        if self.description is not None:
            data["description"] = self.description
        data["category"] = self.category
        if self.subcategory is not None:
            data["subcategory"] = self.subcategory
        return data


@dataclass
class Category:
    """A node in the category tree."""
    title: str
    slug: str
    items: List[Item] = field(default_factory=list)
    children: List["Category"] = field(default_factory=list)

    def iter_items(self) -> Iterator[Item]:
        """Yield own items, then every descendant's items (pre-order)."""
        yield from self.items
        for child in self.children:
            yield from child.iter_items()

    def count_items(self) -> int:
        return sum(1 for _ in self.iter_items())

    def to_dict(self) -> Dict:
        return {
            "title": self.title,
            "slug": self.slug,
            "items": [item.to_dict() for item in self.items],
            "children": [child.to_dict() for child in self.children],
        }


@dataclass
class CatalogMeta:
    updated_at: str
    total_items: int
    version: int = CURRENT_VERSION

    def to_dict(self) -> Dict:
        return {
            "updatedAt": self.updated_at,
            "totalItems": self.total_items,
            "version": self.version,
        }


@dataclass
class Catalog:
    """Complete parse result: category tree, flat item list and metadata."""
    tree: List[Category]
    list: List[Item]
    meta: CatalogMeta

    def to_dict(self) -> Dict:
        """Serialize to a JSON-compatible dictionary.

        Returns:
            Dictionary in the persisted catalog shape
        """
        return {
            "tree": [category.to_dict() for category in self.tree],
            "list": [item.to_dict() for item in self.list],
            "meta": self.meta.to_dict(),
        }


def flatten_tree(tree: List[Category]) -> List[Item]:
    """Flatten a category tree into its item list (pre-order, document order).

    Args:
        tree: Top-level categories

    Returns:
        Items of every node, parents before children
    """
    items: List[Item] = []
    for category in tree:
        items.extend(category.iter_items())
    return items
