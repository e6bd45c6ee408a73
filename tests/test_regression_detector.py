"""Tests for the regression detector's create-or-compare decisions."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

from visualqa.baseline.store import BaselineStoreUnavailableError, FileBaselineStore
from visualqa.models.suite_result import CapturedImage
from visualqa.regression.comparator import RegressionComparator
from visualqa.regression.detector import RegressionDetector


@pytest.fixture
def store(tmp_path: Path) -> MagicMock:
    """A real file store wrapped so calls can be counted."""
    return MagicMock(wraps=FileBaselineStore(tmp_path / "baselines"))


def _capture(path: Path, scenario="homepage-default", area=None) -> CapturedImage:
    return CapturedImage(scenario=scenario, area=area, image_path=str(path))


class TestDetect:

    @pytest.mark.asyncio
    async def test_absent_baseline_is_created_not_compared(self, store, tmp_path, png_factory):
        shot = png_factory(tmp_path / "page.png")
        detector = RegressionDetector(store, RegressionComparator())

        outcome = await detector.detect([_capture(shot)])

        assert outcome.baselines_created == ["homepage-default"]
        assert outcome.verdicts == []
        assert store.write.call_count == 1
        assert store.read.call_count == 0

    @pytest.mark.asyncio
    async def test_second_run_compares(self, store, tmp_path, png_factory):
        detector = RegressionDetector(store, RegressionComparator())
        await detector.detect([_capture(png_factory(tmp_path / "first.png"))])

        changed = png_factory(tmp_path / "second.png", diff_pixels=600)
        outcome = await detector.detect([_capture(changed)])

        assert outcome.baselines_created == []
        assert len(outcome.verdicts) == 1
        assert outcome.verdicts[0].severity == "critical"
        assert outcome.regressions == outcome.verdicts
        assert store.write.call_count == 1

    @pytest.mark.asyncio
    async def test_area_captures_keyed_separately(self, store, tmp_path, png_factory):
        detector = RegressionDetector(store, RegressionComparator())
        shot = png_factory(tmp_path / "area.png")
        outcome = await detector.detect([
            _capture(shot, area="footer"),
            _capture(shot, scenario="mobile-view", area="footer"),
        ])
        assert outcome.baselines_created == ["homepage-default__footer", "mobile-view__footer"]

    @pytest.mark.asyncio
    async def test_unavailable_store_never_writes(self, tmp_path, png_factory):
        store = MagicMock()
        store.has.side_effect = BaselineStoreUnavailableError("registry unreadable")
        detector = RegressionDetector(store, RegressionComparator())

        outcome = await detector.detect([_capture(png_factory(tmp_path / "page.png"))])

        assert len(outcome.failures) == 1
        assert outcome.failures[0].key == "homepage-default"
        assert "registry unreadable" in outcome.failures[0].message
        assert outcome.baselines_created == []
        store.write.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_isolated_per_key(self, store, tmp_path, png_factory):
        shot = png_factory(tmp_path / "page.png")
        real_has = store.has

        def flaky_has(key):
            if key == "mobile-view":
                raise BaselineStoreUnavailableError("disk error")
            return real_has(key)

        store.has = MagicMock(side_effect=flaky_has)
        detector = RegressionDetector(store, RegressionComparator())
        outcome = await detector.detect([_capture(shot, scenario="mobile-view"), _capture(shot)])

        assert [f.key for f in outcome.failures] == ["mobile-view"]
        assert outcome.baselines_created == ["homepage-default"]

    @pytest.mark.asyncio
    async def test_unexpected_store_error_becomes_failure(self, tmp_path, png_factory):
        store = MagicMock()
        store.has.side_effect = PermissionError("denied")
        detector = RegressionDetector(store, RegressionComparator())

        outcome = await detector.detect([
            _capture(png_factory(tmp_path / "page.png")),
            _capture(png_factory(tmp_path / "mobile.png"), scenario="mobile-view"),
        ])

        assert [f.message for f in outcome.failures] == ["PermissionError: denied"] * 2
        assert outcome.verdicts == []
        store.write.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("contents", [None, b"not an image"])
    async def test_bad_capture_is_comparison_failure(self, store, tmp_path, contents):
        shot = tmp_path / "page.png"
        if contents is not None:
            shot.write_bytes(contents)
        detector = RegressionDetector(store, RegressionComparator())

        outcome = await detector.detect([_capture(shot)])

        assert outcome.failures == []
        assert outcome.baselines_created == []
        assert len(outcome.verdicts) == 1
        assert outcome.verdicts[0].severity == "none"
        assert outcome.verdicts[0].message.startswith("Comparison failed")
        assert store.write.call_count == 0
        assert store.has.call_count == 0

    @pytest.mark.asyncio
    async def test_comparison_error_isolated(self, store, tmp_path, png_factory):
        detector = RegressionDetector(store, RegressionComparator())
        shot = png_factory(tmp_path / "page.png")
        await detector.detect([_capture(shot), _capture(shot, scenario="mobile-view")])

        calls = []

        def bomb_on_first(current, baseline, threshold):
            calls.append(current)
            if len(calls) == 1:
                raise Image.DecompressionBombError("image too large")
            return 0.0

        with patch("visualqa.regression.comparator.pixel_difference_percent", side_effect=bomb_on_first):
            outcome = await detector.detect([_capture(shot), _capture(shot, scenario="mobile-view")])

        assert [v.severity for v in outcome.verdicts] == ["none", "none"]
        assert "DecompressionBombError" in outcome.verdicts[0].message
        assert outcome.verdicts[1].message == "No visual changes"
        assert outcome.failures == []


class TestRegenerate:

    @pytest.mark.asyncio
    async def test_overwrites(self, store, tmp_path, png_factory):
        detector = RegressionDetector(store, RegressionComparator())
        await detector.detect([_capture(png_factory(tmp_path / "first.png"))])

        written = await detector.regenerate([_capture(png_factory(tmp_path / "new.png", diff_pixels=50))])

        assert written == ["homepage-default"]
        assert store.regenerate.call_count == 1
        assert store.read("homepage-default").regenerated

    @pytest.mark.asyncio
    async def test_unreadable_capture_skipped(self, store, tmp_path, png_factory):
        detector = RegressionDetector(store, RegressionComparator())
        junk = tmp_path / "junk.png"
        junk.write_bytes(b"not an image")

        written = await detector.regenerate([
            _capture(junk),
            _capture(png_factory(tmp_path / "mobile.png"), scenario="mobile-view"),
        ])

        assert written == ["mobile-view"]
        assert not store.has("homepage-default")
