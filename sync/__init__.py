"""
Sync package: keeps the stored catalog in step with the upstream awesome list.

Components:
- fetcher: conditional GitHub / local-file source fetchers
- store: catalog persistence backends (memory, file, Upstash KV)
- orchestrator: the fetch -> parse -> persist cycle
"""

from .fetcher import FetchResult, GitHubReadmeFetcher, LocalFileFetcher, SourceFetchError
from .store import (
    CatalogStore,
    MemoryCatalogStore,
    FileCatalogStore,
    UpstashCatalogStore,
    StoreError,
    build_store_from_env,
)
from .orchestrator import SyncError, SyncOrchestrator, SyncResult

__all__ = [
    'FetchResult',
    'GitHubReadmeFetcher',
    'LocalFileFetcher',
    'SourceFetchError',
    'CatalogStore',
    'MemoryCatalogStore',
    'FileCatalogStore',
    'UpstashCatalogStore',
    'StoreError',
    'build_store_from_env',
    'SyncError',
    'SyncOrchestrator',
    'SyncResult',
]
