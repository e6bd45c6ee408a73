"""Regression detector: runs every capture through the baseline store and comparator."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from visualqa.baseline.store import BaselineStore, BaselineStoreUnavailableError
from visualqa.models.regression import BaselineFailure, RegressionOutcome
from visualqa.models.suite_result import CapturedImage
from visualqa.regression.comparator import RegressionComparator, check_readable

logger = logging.getLogger(__name__)


class RegressionDetector:
    """Decides, per capture, between creating a baseline and comparing against one.

    Baselines are only ever written for keys that have none, and only from a
    capture that decodes. A store that cannot be read, or that fails in any
    other way, is reported as a failure for that key and nothing is written.
    """

    def __init__(self, store: BaselineStore, comparator: RegressionComparator):
        self.store = store
        self.comparator = comparator

    async def detect(self, captures: list[CapturedImage]) -> RegressionOutcome:
        outcome = RegressionOutcome()
        loop = asyncio.get_running_loop()

        for capture in captures:
            key = capture.key
            current = Path(capture.image_path)
            try:
                await loop.run_in_executor(None, check_readable, current)
            except Exception as e:
                # A broken capture must never become a baseline
                outcome.verdicts.append(self.comparator.failed_verdict(
                    key, capture.scenario, capture.area, e, current_path=str(current),
                ))
                continue

            try:
                exists = await loop.run_in_executor(None, self.store.has, key)
                if not exists:
                    await loop.run_in_executor(None, self.store.write, key, current)
                    outcome.baselines_created.append(key)
                    logger.info("Created baseline for %s", key)
                    continue
                entry = await loop.run_in_executor(None, self.store.read, key)
                baseline = self.store.image_path(entry)
            except BaselineStoreUnavailableError as e:
                logger.error("Baseline store unavailable for %s: %s", key, e)
                outcome.failures.append(BaselineFailure(key=key, message=str(e)))
                continue
            except Exception as e:
                logger.error("Baseline store error for %s: %s", key, e)
                outcome.failures.append(BaselineFailure(key=key, message=f"{type(e).__name__}: {e}"))
                continue

            verdict = await self.comparator.compare(
                key, capture.scenario, capture.area, current, baseline,
            )
            outcome.verdicts.append(verdict)
            if verdict.is_regression:
                logger.warning("Regression in %s: %s", key, verdict.message)

        logger.info(
            "Regression check: %d compared, %d regressions, %d baselines created, %d failures",
            len(outcome.verdicts), len(outcome.regressions),
            len(outcome.baselines_created), len(outcome.failures),
        )
        return outcome

    async def regenerate(self, captures: list[CapturedImage]) -> list[str]:
        """Force-write every capture as the new baseline for its key."""
        loop = asyncio.get_running_loop()
        written: list[str] = []
        for capture in captures:
            current = Path(capture.image_path)
            try:
                await loop.run_in_executor(None, check_readable, current)
            except Exception as e:
                logger.error("Skipping %s, capture unreadable: %s", capture.key, e)
                continue
            await loop.run_in_executor(None, self.store.regenerate, capture.key, current)
            written.append(capture.key)
        return written
