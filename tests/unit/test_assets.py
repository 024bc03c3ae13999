"""Tests for veoworks.core.assets — the in-memory asset registry."""

from __future__ import annotations

from veoworks.core.assets import AssetHandle, AssetStore


class TestAssetStore:
    """Test AssetStore create/get/release."""

    def test_create_and_get(self):
        store = AssetStore()
        handle = store.create(b"data", "video/mp4")

        assert store.get(handle.asset_id) == (b"data", "video/mp4")
        assert handle.size == 4
        assert handle.asset_id in store
        assert len(store) == 1

    def test_handles_are_unique(self):
        store = AssetStore()
        first = store.create(b"a", "image/png")
        second = store.create(b"a", "image/png")
        assert first.asset_id != second.asset_id

    def test_url(self):
        handle = AssetHandle(asset_id="abc", mime_type="video/mp4", size=1)
        assert handle.url == "/api/assets/abc"
        assert handle.to_dict()["url"] == "/api/assets/abc"

    def test_release_by_handle_and_id(self):
        store = AssetStore()
        first = store.create(b"a", "image/png")
        second = store.create(b"b", "image/png")

        assert store.release(first) is True
        assert store.release(second.asset_id) is True
        assert store.get(first.asset_id) is None
        assert len(store) == 0

    def test_release_twice(self):
        """A second release of the same handle is a no-op."""
        store = AssetStore()
        handle = store.create(b"a", "image/png")
        store.release(handle)
        assert store.release(handle) is False

    def test_release_none(self):
        assert AssetStore().release(None) is False

    def test_clear(self):
        store = AssetStore()
        store.create(b"a", "image/png")
        store.create(b"b", "video/mp4")
        store.clear()
        assert len(store) == 0
