"""Tests for the file-backed baseline store."""

import hashlib
import json
from pathlib import Path

import pytest
from PIL import Image

from visualqa.baseline.store import (
    BaselineExistsError,
    BaselineNotFoundError,
    BaselineStoreUnavailableError,
    FileBaselineStore,
)


@pytest.fixture
def store(tmp_path: Path) -> FileBaselineStore:
    return FileBaselineStore(tmp_path / "baselines")


@pytest.fixture
def shot(tmp_path: Path, png_factory) -> Path:
    return png_factory(tmp_path / "capture" / "page.png")


class TestHasAndRead:

    def test_empty_store(self, store):
        assert not store.has("homepage-default")
        assert store.entries() == []

    def test_read_missing_raises(self, store):
        with pytest.raises(BaselineNotFoundError):
            store.read("homepage-default")

    def test_write_then_read(self, store, shot):
        entry = store.write("homepage-default", shot)
        assert store.has("homepage-default")
        assert store.read("homepage-default") == entry
        assert entry.scenario == "homepage-default"
        assert entry.area is None
        assert not entry.regenerated
        assert entry.image_hash == hashlib.sha256(shot.read_bytes()).hexdigest()
        assert store.image_path(entry).read_bytes() == shot.read_bytes()

    def test_area_key_layout(self, store, shot):
        entry = store.write("mobile-view__footer", shot)
        assert entry.scenario == "mobile-view"
        assert entry.area == "footer"
        assert entry.image_path == str(Path("images") / "mobile-view" / "areas" / "footer.png")

    def test_page_layout(self, store, shot):
        entry = store.write("mobile-view", shot)
        assert entry.image_path == str(Path("images") / "mobile-view" / "page.png")

    def test_area_named_like_scenario_keeps_page_image(self, store, tmp_path, png_factory):
        page = store.write("footer", png_factory(tmp_path / "red.png", color=(255, 0, 0)))
        area = store.write("footer__footer", png_factory(tmp_path / "blue.png", color=(0, 0, 255)))
        area_page = store.write("footer__page", png_factory(tmp_path / "green.png", color=(0, 255, 0)))

        assert len({page.image_path, area.image_path, area_page.image_path}) == 3
        with Image.open(store.image_path(store.read("footer"))) as img:
            assert img.getpixel((0, 0)) == (255, 0, 0)
        assert store.read("footer").image_hash == page.image_hash

    def test_missing_image_means_absent(self, store, shot):
        entry = store.write("homepage-default", shot)
        store.image_path(entry).unlink()
        assert not store.has("homepage-default")


class TestWrite:

    def test_write_never_overwrites(self, store, shot):
        store.write("homepage-default", shot)
        with pytest.raises(BaselineExistsError):
            store.write("homepage-default", shot)

    def test_registry_persisted(self, store, shot):
        store.write("homepage-default", shot)
        data = json.loads(store.registry_path.read_text())
        assert "homepage-default" in data["baselines"]
        assert data["last_updated"]

    def test_missing_source_is_not_a_store_fault(self, store, tmp_path):
        with pytest.raises(FileNotFoundError) as exc:
            store.write("homepage-default", tmp_path / "does-not-exist.png")
        assert not isinstance(exc.value, BaselineStoreUnavailableError)
        assert not store.registry_path.exists()


class TestRegenerate:

    def test_overwrites_existing(self, store, shot, png_factory, tmp_path):
        store.write("homepage-default", shot)
        changed = png_factory(tmp_path / "changed.png", color=(0, 0, 0))
        entry = store.regenerate("homepage-default", changed)
        assert entry.regenerated
        assert store.image_path(entry).read_bytes() == changed.read_bytes()

    def test_creates_when_absent(self, store, shot):
        entry = store.regenerate("tablet-view", shot)
        assert store.has("tablet-view")
        assert entry.regenerated


class TestUnavailable:

    def test_corrupt_registry(self, store, shot):
        store.write("homepage-default", shot)
        store.registry_path.write_text("{not json")
        with pytest.raises(BaselineStoreUnavailableError):
            store.has("homepage-default")

    def test_corrupt_registry_never_treated_as_empty(self, store, shot):
        store.root.mkdir(parents=True)
        store.registry_path.write_text("[]")
        with pytest.raises(BaselineStoreUnavailableError):
            store.write("homepage-default", shot)

    def test_root_is_a_file(self, tmp_path, shot):
        root = tmp_path / "not-a-dir"
        root.write_text("")
        with pytest.raises(BaselineStoreUnavailableError):
            FileBaselineStore(root).has("homepage-default")

    def test_unavailable_is_os_error(self):
        assert issubclass(BaselineStoreUnavailableError, OSError)
