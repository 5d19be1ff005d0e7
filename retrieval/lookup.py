"""
Category tree lookups used by the API.
"""

from __future__ import annotations

from typing import List, Optional

from catalog import Category, Item


def find_category_path(tree: List[Category], slug: str) -> Optional[List[Category]]:
    """Return the categories from the root down to the one with slug.

    Args:
        tree: Top-level categories
        slug: Target category slug

    Returns:
        List [root, ..., target] for breadcrumbs, or None if not found
    """
    for category in tree:
        if category.slug == slug:
            return [category]
        child_path = find_category_path(category.children, slug)
        if child_path:
            return [category] + child_path
    return None


def flatten_category_items(category: Category) -> List[Item]:
    """All items of a category and its descendants."""
    return list(category.iter_items())
