"""
Catalog builder for awesome lists.

Consumes the structural events from markdown_parser and assembles:
- tree: "##" headings become top-level categories, "###" headings become
  their children
- list: every item in document order (same as pre-order tree traversal)
- meta: timestamp, item count and schema version

Grammar:
    ## Category             -> new top-level category
    ### Subcategory         -> child of the current category
    - [Title](url) - Desc   -> item of the innermost current category

Malformed fragments are dropped, never raised: empty headings, "###"
before any "##", lists before the first "##", list items without a link.
The only error is MarkdownParseError from the tokenizer.
"""

from __future__ import annotations

import enum
import logging
import re
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .markdown_parser import (
    BlockEvent,
    HeadingEvent,
    LinkEntry,
    LinkListEvent,
    parse_blocks,
)
from .models import CURRENT_VERSION, Catalog, CatalogMeta, Category, Item, utc_now_iso
from .slugger import Slugger

logger = logging.getLogger(__name__)

# Leading "-", en dash or em dash separating a link from its description
DESCRIPTION_SEPARATOR_RE = re.compile(r"^\s*[-–—]\s*")


class CursorKind(enum.Enum):
    NO_PARENT = "no_parent"
    IN_CATEGORY = "in_category"
    IN_SUBCATEGORY = "in_subcategory"


@dataclass(frozen=True)
class Cursor:
    """Builder position as indices into the tree being built."""
    kind: CursorKind = CursorKind.NO_PARENT
    category_index: int = -1
    child_index: int = -1


def clean_description(trailing_text: str) -> Optional[str]:
    """Turn the text after a link into an item description.

    Example:
        >>> clean_description(" - Free and open source code editor")
        'Free and open source code editor'
        >>> clean_description(" ") is None
        True
    """
    description = DESCRIPTION_SEPARATOR_RE.sub("", trailing_text or "", count=1).strip()
    return description or None


class CatalogBuilder:
    """Builds a Catalog from structural markdown events."""

    def __init__(self):
        self.tree: List[Category] = []
        self.items: List[Item] = []
        self.cursor = Cursor()
        self.slugger = Slugger()

    def build(self, events: Iterable[BlockEvent]) -> Catalog:
        """Consume events and return the finished catalog.

        Args:
            events: HeadingEvent / LinkListEvent sequence in document order

        Returns:
            Catalog with tree, flat list and meta
        """
        for event in events:
            if isinstance(event, HeadingEvent):
                self._on_heading(event)
            elif isinstance(event, LinkListEvent):
                self._on_link_list(event)

        return Catalog(
            tree=self.tree,
            list=self.items,
            meta=CatalogMeta(
                updated_at=utc_now_iso(),
                total_items=len(self.items),
                version=CURRENT_VERSION,
            ),
        )

    def _on_heading(self, event: HeadingEvent) -> None:
        text = event.text.strip()
        if not text:
            logger.debug(f"Ignoring empty level-{event.level} heading")
            return

        if event.level == 2:
            self.tree.append(Category(title=text, slug=self.slugger.slug(text)))
            self.cursor = Cursor(CursorKind.IN_CATEGORY, len(self.tree) - 1)
            return

        if event.level == 3:
            if self.cursor.kind is CursorKind.NO_PARENT:
                logger.debug(f"Ignoring subcategory '{text}' before any category")
                return
            parent = self.tree[self.cursor.category_index]
            parent.children.append(
                Category(title=text, slug=self.slugger.slug(f"{parent.title}-{text}"))
            )
            self.cursor = Cursor(
                CursorKind.IN_SUBCATEGORY,
                self.cursor.category_index,
                len(parent.children) - 1,
            )

    def _on_link_list(self, event: LinkListEvent) -> None:
        if self.cursor.kind is CursorKind.NO_PARENT:
            logger.debug(f"Dropping {len(event.entries)} list entries before any category")
            return

        category = self.tree[self.cursor.category_index]
        subcategory = None
        target = category
        if self.cursor.kind is CursorKind.IN_SUBCATEGORY:
            subcategory = category.children[self.cursor.child_index]
            target = subcategory

        for entry in event.entries:
            item = self._item_from_entry(entry, category, subcategory)
            if item is None:
                continue
            target.items.append(item)
            self.items.append(item)

    def _item_from_entry(
        self,
        entry: LinkEntry,
        category: Category,
        subcategory: Optional[Category],
    ) -> Optional[Item]:
        title = entry.title.strip()
        if not title or not entry.url:
            logger.debug(f"Dropping list entry with empty title or url: {entry!r}")
            return None
        return Item(
            title=title,
            url=entry.url,
            description=clean_description(entry.trailing_text),
            category=category.title,
            subcategory=subcategory.title if subcategory else None,
        )


def parse_awesome_list(content: str) -> Catalog:
    """Parse awesome-list markdown into a catalog.

    Args:
        content: Full markdown document

    Returns:
        Catalog object

    Raises:
        MarkdownParseError: If the document cannot be tokenized

    Example:
        >>> catalog = parse_awesome_list(
        ...     "## Tools\\n### Editors\\n"
        ...     "- [VSCode](https://code.visualstudio.com/) - Free code editor\\n"
        ... )
        >>> catalog.tree[0].children[0].slug
        'tools-editors'
    """
    events = parse_blocks(content)
    catalog = CatalogBuilder().build(events)
    logger.info(
        f"Parsed catalog: {len(catalog.tree)} categories, {catalog.meta.total_items} items"
    )
    return catalog


def build_stats(catalog: Catalog) -> Dict:
    """Summarize a catalog for reports.

    Args:
        catalog: Catalog object

    Returns:
        Dictionary with counts per category and totals
    """
    return {
        "categories_count": len(catalog.tree),
        "subcategories_count": sum(len(c.children) for c in catalog.tree),
        "items_count": catalog.meta.total_items,
        "updated_at": catalog.meta.updated_at,
        "version": catalog.meta.version,
        "by_category": dict(Counter(item.category for item in catalog.list)),
    }
