"""Regression comparator: pixel difference between a capture and its baseline."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from PIL import Image, ImageChops

from visualqa.models.config import RegressionConfig, SeverityBands
from visualqa.models.regression import RegressionVerdict
from visualqa.models.suite_result import Severity

logger = logging.getLogger(__name__)

DEFAULT_PIXEL_THRESHOLD = 40
DIFF_AMPLIFICATION = 5
# Smallest difference reported for images that are not identical
MIN_CHANGE_PERCENT = 0.001

REGRESSION_SEVERITIES = ("medium", "high", "critical")


def pixel_difference_percent(
    current: Path, baseline: Path, pixel_threshold: int = DEFAULT_PIXEL_THRESHOLD,
) -> float:
    """Percentage of pixels that differ between two images.

    A pixel differs when any RGB channel moves by more than ``pixel_threshold``
    (forgiving anti-aliasing and font rendering noise). When the sizes differ,
    the overlapping region is compared and every pixel outside it counts as
    different. Any difference at all, even one that stays under the
    threshold everywhere, reports at least ``MIN_CHANGE_PERCENT``: only
    identical images give 0.
    """
    with Image.open(current) as cur_img, Image.open(baseline) as base_img:
        cur = cur_img.convert("RGB")
        base = base_img.convert("RGB")

    width = min(cur.width, base.width)
    height = min(cur.height, base.height)
    total = max(cur.width, base.width) * max(cur.height, base.height)
    if total == 0:
        return 0.0

    overlap_diff = 0
    residual = False
    if width and height:
        box = (0, 0, width, height)
        diff = ImageChops.difference(cur.crop(box), base.crop(box))
        # Binarize each channel, then OR them together
        r, g, b = (band.point(lambda v: 255 if v > pixel_threshold else 0) for band in diff.split())
        mask = ImageChops.lighter(ImageChops.lighter(r, g), b)
        overlap_diff = mask.histogram()[255]
        residual = diff.getbbox() is not None

    outside = total - width * height
    changed = overlap_diff + outside
    if changed == 0:
        return MIN_CHANGE_PERCENT if residual else 0.0
    return max(changed / total * 100, MIN_CHANGE_PERCENT)


def classify(
    diff_percent: float, tolerance_percent: float = 0.1, bands: Optional[SeverityBands] = None,
) -> Severity:
    """Map a difference percentage onto the severity bands."""
    bands = bands or SeverityBands()
    if diff_percent > bands.high_max:
        return "critical"
    if diff_percent > bands.medium_max:
        return "high"
    if diff_percent > tolerance_percent:
        return "medium"
    if diff_percent > 0:
        return "low"
    return "none"


def check_readable(path: Path) -> None:
    """Raise if ``path`` is not a decodable image."""
    with Image.open(path) as img:
        img.verify()


def write_diff_image(current: Path, baseline: Path, output: Path) -> Path:
    """Write an amplified absolute-difference image of the overlapping region."""
    with Image.open(current) as cur_img, Image.open(baseline) as base_img:
        cur = cur_img.convert("RGB")
        base = base_img.convert("RGB")
    box = (0, 0, min(cur.width, base.width), min(cur.height, base.height))
    diff = ImageChops.difference(cur.crop(box), base.crop(box))
    amplified = Image.eval(diff, lambda v: min(255, v * DIFF_AMPLIFICATION))
    output.parent.mkdir(parents=True, exist_ok=True)
    amplified.save(str(output))
    return output


class RegressionComparator:
    """Compares fresh captures against baselines and classifies the drift."""

    def __init__(
        self,
        tolerance_percent: float = 0.1,
        bands: Optional[SeverityBands] = None,
        pixel_threshold: int = DEFAULT_PIXEL_THRESHOLD,
        diff_dir: Optional[Path] = None,
    ):
        self.bands = bands or SeverityBands()
        if tolerance_percent > self.bands.medium_max:
            raise ValueError("tolerance_percent must not exceed the medium band")
        self.tolerance_percent = tolerance_percent
        self.pixel_threshold = pixel_threshold
        self.diff_dir = Path(diff_dir) if diff_dir else None

    @classmethod
    def from_config(
        cls, config: RegressionConfig, diff_dir: Optional[Path] = None,
    ) -> "RegressionComparator":
        return cls(
            tolerance_percent=config.tolerance_percent,
            bands=config.bands,
            pixel_threshold=config.pixel_threshold,
            diff_dir=diff_dir if config.write_diff_images else None,
        )

    def verdict(
        self,
        key: str,
        scenario: str,
        area: Optional[str],
        diff_percent: float,
        current_path: str = "",
        baseline_path: str = "",
        diff_path: Optional[str] = None,
    ) -> RegressionVerdict:
        """Build a verdict from an already computed difference percentage."""
        diff_percent = min(100.0, max(0.0, diff_percent))
        severity = classify(diff_percent, self.tolerance_percent, self.bands)
        is_regression = severity in REGRESSION_SEVERITIES

        if is_regression:
            message = f"Visual regression: {diff_percent:.2f}% of pixels differ ({severity})"
        elif severity == "low":
            message = (f"Minor changes within tolerance: {diff_percent:.3f}% "
                       f"(tolerance {self.tolerance_percent}%)")
        else:
            message = "No visual changes"

        return RegressionVerdict(
            key=key,
            scenario=scenario,
            area=area,
            has_changes=diff_percent > 0,
            is_regression=is_regression,
            pixel_difference_percent=round(diff_percent, 4),
            severity=severity,
            message=message,
            current_path=current_path,
            baseline_path=baseline_path,
            diff_path=diff_path,
        )

    def failed_verdict(
        self, key: str, scenario: str, area: Optional[str], error: Exception,
        current_path: str = "", baseline_path: str = "",
    ) -> RegressionVerdict:
        """A ``none`` verdict recording why ``key`` could not be compared."""
        logger.warning("Comparison failed for %s: %s", key, error)
        return RegressionVerdict(
            key=key,
            scenario=scenario,
            area=area,
            has_changes=False,
            is_regression=False,
            severity="none",
            message=f"Comparison failed: {type(error).__name__}: {error}",
            current_path=current_path,
            baseline_path=baseline_path,
        )

    async def compare(
        self, key: str, scenario: str, area: Optional[str], current: Path, baseline: Path,
    ) -> RegressionVerdict:
        """Compare ``current`` against ``baseline``.

        The pixel work runs in the default executor so it does not block the
        event loop. An image that cannot be decoded, for any reason, yields a
        ``none`` verdict carrying the error message.
        """
        current = Path(current)
        baseline = Path(baseline)
        loop = asyncio.get_running_loop()
        try:
            diff_percent = await loop.run_in_executor(
                None, pixel_difference_percent, current, baseline, self.pixel_threshold,
            )
        except Exception as e:
            return self.failed_verdict(
                key, scenario, area, e, current_path=str(current), baseline_path=str(baseline),
            )

        diff_path: Optional[str] = None
        if self.diff_dir and diff_percent > 0:
            output = self.diff_dir / f"{key}_diff.png"
            try:
                await loop.run_in_executor(None, write_diff_image, current, baseline, output)
                diff_path = str(output)
            except Exception as e:
                logger.warning("Could not write diff image for %s: %s", key, e)

        verdict = self.verdict(
            key, scenario, area, diff_percent,
            current_path=str(current), baseline_path=str(baseline), diff_path=diff_path,
        )
        logger.debug("Compared %s: %.4f%% -> %s", key, diff_percent, verdict.severity)
        return verdict
