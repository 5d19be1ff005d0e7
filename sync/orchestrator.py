"""
Sync orchestrator: one conditional fetch -> parse -> persist cycle.

Cycle:
1. Fetch with the stored fingerprint (or none when forced)
2. Not modified and a usable catalog is stored -> stop, nothing stored
3. Not modified but no usable catalog -> refetch once, forced, to self-heal
4. Parse the markdown into a catalog
5. Persist the catalog, THEN the fingerprint

The fingerprint is written only after the catalog write succeeded, so a
failed persist can never make a later cycle believe the content is current.
Any failure aborts the cycle before the store is touched and is raised as
SyncError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from catalog import MarkdownParseError, normalize_catalog, parse_awesome_list

from .fetcher import FetchResult, SourceFetchError
from .store import CatalogStore, StoreError

logger = logging.getLogger(__name__)

Fetcher = Callable[[Optional[str], bool], FetchResult]


class SyncError(RuntimeError):
    """Exception raised when a sync cycle fails."""
    pass


@dataclass
class SyncResult:
    """Outcome of a completed sync cycle."""
    stored: bool
    source: str
    message: str = ""
    meta: Dict = field(default_factory=dict)

    def to_dict(self) -> Dict:
        data = {"ok": True, "source": self.source, "stored": self.stored}
        if self.message:
            data["message"] = self.message
        if self.meta:
            data["meta"] = self.meta
        return data


class SyncOrchestrator:
    """Runs sync cycles between a source fetcher and a catalog store."""

    def __init__(self, fetcher: Fetcher, store: CatalogStore):
        """Initialize orchestrator.

        Args:
            fetcher: Callable (previous_fingerprint, force) -> FetchResult
            store: Catalog store receiving the parsed catalog
        """
        self.fetcher = fetcher
        self.store = store

    def sync(self, force: bool = False) -> SyncResult:
        """Run one sync cycle.

        Args:
            force: Ignore the stored fingerprint and always fetch/parse/persist

        Returns:
            SyncResult with stored=True when a new catalog was persisted

        Raises:
            SyncError: If fetching, parsing or persisting fails
        """
        try:
            previous = None if force else self.store.get_fingerprint()
            result = self._fetch(previous, force)

            if not result.modified:
                if self._has_usable_catalog():
                    logger.info("Source not modified; keeping stored catalog")
                    return SyncResult(stored=False, source=result.source, message="Not modified")

                logger.warning("Source not modified but no catalog is stored; forcing refetch")
                result = self._fetch(None, True)
                if not result.modified:
                    return SyncResult(stored=False, source=result.source, message="Not modified")

            catalog = parse_awesome_list(result.text)

            self.store.put(catalog)
            if result.fingerprint:
                self.store.put_fingerprint(result.fingerprint)
        except MarkdownParseError as exc:
            logger.error(f"Parse failed, stored catalog left untouched: {exc}")
            raise SyncError(f"Failed to parse source markdown: {exc}") from exc
        except SourceFetchError as exc:
            logger.error(f"Fetch failed: {exc}")
            raise SyncError(f"Failed to fetch source: {exc}") from exc
        except StoreError as exc:
            logger.error(f"Store failed: {exc}")
            raise SyncError(f"Failed to persist catalog: {exc}") from exc

        logger.info(
            f"✓ Stored catalog from {result.source}: {catalog.meta.total_items} items "
            f"(fingerprint={result.fingerprint})"
        )
        return SyncResult(stored=True, source=result.source, meta=catalog.meta.to_dict())

    def _fetch(self, previous: Optional[str], force: bool) -> FetchResult:
        logger.debug(f"Fetching source (force={force}, fingerprint={previous})")
        return self.fetcher(previous, force)

    def _has_usable_catalog(self) -> bool:
        return normalize_catalog(self.store.get()) is not None
