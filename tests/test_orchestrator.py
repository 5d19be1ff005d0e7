"""Tests for the sync orchestrator."""

import pytest

from catalog import MarkdownParseError, normalize_catalog
from sync import (
    MemoryCatalogStore,
    SourceFetchError,
    StoreError,
    SyncError,
    SyncOrchestrator,
    SyncResult,
)
from sync import orchestrator as orchestrator_module

from .conftest import SAMPLE_MARKDOWN, FakeFetcher


class FailingPutStore(MemoryCatalogStore):
    """Memory store whose catalog write fails."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fingerprint_writes = []

    def put(self, catalog):
        raise StoreError("disk full")

    def put_fingerprint(self, fingerprint):
        self.fingerprint_writes.append(fingerprint)
        super().put_fingerprint(fingerprint)


class RaisingFetcher:
    def __call__(self, previous_fingerprint, force):
        raise SourceFetchError("network down")


class TestSync:
    """Tests for the fetch -> parse -> persist cycle."""

    def test_first_sync_stores_catalog_and_fingerprint(self, fetch_result_factory):
        store = MemoryCatalogStore()
        fetcher = FakeFetcher([fetch_result_factory()])

        result = SyncOrchestrator(fetcher, store).sync()

        assert result.stored is True
        assert result.source == "raw"
        assert result.meta["totalItems"] == 3
        assert fetcher.calls == [(None, False)]
        assert normalize_catalog(store.get()).meta.total_items == 3
        assert store.get_fingerprint() == '"etag-1"'

    def test_not_modified_keeps_stored_catalog(self, fetch_result_factory, sample_catalog):
        store = MemoryCatalogStore(sample_catalog, fingerprint='"etag-1"')
        before = dict(store.data)
        fetcher = FakeFetcher([fetch_result_factory(text="", modified=False)])

        result = SyncOrchestrator(fetcher, store).sync()

        assert result.stored is False
        assert result.message == "Not modified"
        assert fetcher.calls == [('"etag-1"', False)]
        assert store.data == before

    def test_not_modified_without_catalog_refetches(self, fetch_result_factory):
        store = MemoryCatalogStore(fingerprint='"etag-1"')
        fetcher = FakeFetcher([
            fetch_result_factory(text="", modified=False),
            fetch_result_factory(fingerprint='"etag-2"'),
        ])

        result = SyncOrchestrator(fetcher, store).sync()

        assert result.stored is True
        assert fetcher.calls == [('"etag-1"', False), (None, True)]
        assert normalize_catalog(store.get()) is not None
        assert store.get_fingerprint() == '"etag-2"'

    def test_unusable_stored_catalog_triggers_refetch(self, fetch_result_factory):
        store = MemoryCatalogStore({"unexpected": True}, fingerprint='"etag-1"')
        fetcher = FakeFetcher([
            fetch_result_factory(text="", modified=False),
            fetch_result_factory(),
        ])

        result = SyncOrchestrator(fetcher, store).sync()

        assert result.stored is True
        assert len(fetcher.calls) == 2

    def test_refetch_still_not_modified(self, fetch_result_factory):
        store = MemoryCatalogStore()
        fetcher = FakeFetcher([fetch_result_factory(text="", modified=False)])

        result = SyncOrchestrator(fetcher, store).sync()

        assert result.stored is False
        assert fetcher.calls == [(None, False), (None, True)]
        assert store.get() is None

    def test_force_ignores_fingerprint(self, fetch_result_factory, sample_catalog):
        store = MemoryCatalogStore(sample_catalog, fingerprint='"etag-1"')
        fetcher = FakeFetcher([fetch_result_factory(fingerprint='"etag-1"')])

        result = SyncOrchestrator(fetcher, store).sync(force=True)

        assert result.stored is True
        assert fetcher.calls == [(None, True)]
        assert normalize_catalog(store.get()).meta.total_items == 3

    def test_missing_fingerprint_is_not_written(self, fetch_result_factory):
        store = MemoryCatalogStore()
        fetcher = FakeFetcher([fetch_result_factory(fingerprint=None)])

        SyncOrchestrator(fetcher, store).sync()

        assert store.get() is not None
        assert store.get_fingerprint() is None

    def test_result_to_dict(self, fetch_result_factory):
        store = MemoryCatalogStore()
        fetcher = FakeFetcher([fetch_result_factory(text=SAMPLE_MARKDOWN)])

        data = SyncOrchestrator(fetcher, store).sync().to_dict()

        assert data["ok"] is True
        assert data["stored"] is True
        assert data["source"] == "raw"
        assert data["meta"]["totalItems"] == 6
        assert data["meta"]["version"] == 2
        assert "message" not in data

    def test_not_modified_result_to_dict(self):
        result = SyncResult(stored=False, source="raw", message="Not modified")
        assert result.to_dict() == {
            "ok": True,
            "source": "raw",
            "stored": False,
            "message": "Not modified",
        }


class TestSyncFailures:
    """Failures abort the cycle and leave the store untouched."""

    def test_fetch_failure(self, sample_catalog):
        store = MemoryCatalogStore(sample_catalog, fingerprint='"etag-1"')
        before = dict(store.data)

        with pytest.raises(SyncError, match="network down"):
            SyncOrchestrator(RaisingFetcher(), store).sync()
        assert store.data == before

    def test_parse_failure(self, monkeypatch, fetch_result_factory, sample_catalog):
        def broken_parser(content):
            raise MarkdownParseError("bad markdown")

        monkeypatch.setattr(orchestrator_module, "parse_awesome_list", broken_parser)
        store = MemoryCatalogStore(sample_catalog, fingerprint='"etag-1"')
        before = dict(store.data)
        fetcher = FakeFetcher([fetch_result_factory(fingerprint='"etag-2"')])

        with pytest.raises(SyncError, match="parse"):
            SyncOrchestrator(fetcher, store).sync()
        assert store.data == before

    def test_failed_catalog_write_skips_fingerprint(self, fetch_result_factory):
        store = FailingPutStore(fingerprint='"etag-1"')
        fetcher = FakeFetcher([fetch_result_factory(fingerprint='"etag-2"')])

        with pytest.raises(SyncError, match="disk full"):
            SyncOrchestrator(fetcher, store).sync(force=True)
        assert store.fingerprint_writes == []
        assert store.get_fingerprint() == '"etag-1"'
