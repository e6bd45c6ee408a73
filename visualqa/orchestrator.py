"""Pipeline orchestrator: runs suites, checks baselines, correlates and scores."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from enum import Enum
from pathlib import Path
from typing import Optional

from visualqa.analysis.correlation import CorrelationAnalyzer
from visualqa.analysis import scoring
from visualqa.baseline.store import BaselineStore, FileBaselineStore
from visualqa.models.config import ConfigurationError, OrchestratorConfig
from visualqa.models.regression import RegressionOutcome
from visualqa.models.report import Report
from visualqa.models.suite_result import CapturedImage, SuiteResult
from visualqa.regression.comparator import RegressionComparator
from visualqa.regression.detector import RegressionDetector
from visualqa.runner.normalizer import collect_issues, normalize
from visualqa.runner.suite_runner import SuiteRunner
from visualqa.suites.base import Suite
from visualqa.suites.registry import build_builtin_suites

logger = logging.getLogger(__name__)


class RunStage(str, Enum):
    INIT = "init"
    RUNNING_SUITES = "running_suites"
    COMPARING_BASELINES = "comparing_baselines"
    CORRELATING = "correlating"
    SCORING = "scoring"
    DONE = "done"


_STAGE_ORDER = list(RunStage)


class Orchestrator:
    """Coordinates one visual QA run from suite execution to the final report.

    Suites run one at a time in configuration order. A run either yields a
    complete :class:`Report` or raises :class:`ConfigurationError` before any
    suite starts.
    """

    def __init__(
        self,
        config: OrchestratorConfig,
        suites: Optional[dict[str, Suite]] = None,
        store: Optional[BaselineStore] = None,
        comparator: Optional[RegressionComparator] = None,
    ):
        self.config = config
        self.suites = suites if suites is not None else build_builtin_suites(config)
        self.store = store if store is not None else FileBaselineStore(
            Path(config.regression.baselines_dir)
        )
        self.comparator = comparator
        self.runs_dir = Path(config.output_dir)
        self.stage = RunStage.INIT
        self.stage_history: list[RunStage] = []

    # -- Stage machine -------------------------------------------------------

    def _enter(self, stage: RunStage) -> None:
        if _STAGE_ORDER.index(stage) <= _STAGE_ORDER.index(self.stage) and stage != RunStage.INIT:
            raise RuntimeError(f"Illegal stage transition {self.stage.value} -> {stage.value}")
        self.stage = stage
        self.stage_history.append(stage)

    def _reset(self) -> None:
        self.stage = RunStage.INIT
        self.stage_history = [RunStage.INIT]

    # -- Validation ----------------------------------------------------------

    def validate(self) -> None:
        """Raise :class:`ConfigurationError` if this run cannot start."""
        self.config.validate_for_run()
        missing = [d.name for d in self.config.enabled_suites() if d.name not in self.suites]
        if missing:
            raise ConfigurationError(f"No implementation for enabled suites: {', '.join(missing)}")

    # -- Runs ----------------------------------------------------------------

    def run_all(self) -> Report:
        """Execute the complete suite → baselines → correlate → score pipeline."""
        return asyncio.run(self.arun())

    async def arun(self) -> Report:
        self._reset()
        self.validate()

        start = time.time()
        run_dir = self._new_run_dir()
        enabled = self.config.enabled_suites()
        logger.info("=== Starting visual QA run for %s (%d suites) ===",
                    self.config.target_url, len(enabled))

        # Stage 1: Suites
        self._enter(RunStage.RUNNING_SUITES)
        logger.info("--- Stage 1: Run Suites ---")
        stage_start = time.time()
        runner = SuiteRunner(self.config, run_dir)
        results: list[SuiteResult] = []
        for descriptor in enabled:
            results.append(await runner.run(descriptor, self.suites[descriptor.name]))
        logger.info("--- Stage 1 complete: %d/%d suites succeeded in %.1fs ---",
                    sum(1 for r in results if r.successful), len(results),
                    time.time() - stage_start)

        # Stage 2: Baselines
        self._enter(RunStage.COMPARING_BASELINES)
        captures = [c for r in results for c in r.captures]
        logger.info("--- Stage 2: Compare Baselines (%d captures) ---", len(captures))
        stage_start = time.time()
        regression = await self._compare_baselines(captures, run_dir)
        logger.info("--- Stage 2 complete: %d regressions, %d new baselines in %.1fs ---",
                    len(regression.regressions), len(regression.baselines_created),
                    time.time() - stage_start)

        # Stage 3: Correlate
        self._enter(RunStage.CORRELATING)
        logger.info("--- Stage 3: Correlate ---")
        stage_start = time.time()
        normalized = normalize(collect_issues(results))
        analyzer = CorrelationAnalyzer(
            visual_completeness_min=self.config.performance.visual_completeness_min,
            critical_areas=[a.name for a in self.config.regression.critical_areas],
        )
        signals, area_risk = analyzer.analyze(results, normalized, regression)
        logger.info("--- Stage 3 complete: %d distinct issues in %.1fs ---",
                    len(normalized), time.time() - stage_start)

        # Stage 4: Score
        self._enter(RunStage.SCORING)
        logger.info("--- Stage 4: Score ---")
        stage_start = time.time()
        weights = {d.name: d.weight for d in enabled}
        overall = scoring.overall_score(results, weights)
        rate = scoring.completion_rate(results, len(enabled))
        report = Report(
            timestamp=time.strftime("%Y-%m-%dT%H:%M:%SZ"),
            target_url=self.config.target_url,
            per_suite_results=results,
            normalized_issues=normalized,
            critical_area_risk_summaries=area_risk,
            correlation_signals=signals,
            regression=regression,
            overall_score=overall,
            visual_perfection_score=scoring.visual_perfection_score(signals),
            confidence_level=scoring.confidence_level(rate, overall),
            completion_rate=round(rate, 4),
            totals=scoring.totals(results),
            critical_issues=scoring.critical_issues(results, signals, regression),
            recommendations=scoring.recommendations(signals, regression),
        )
        logger.info("--- Stage 4 complete: score %.1f, confidence %s in %.1fs ---",
                    report.overall_score, report.confidence_level, time.time() - stage_start)

        self._enter(RunStage.DONE)
        logger.info("=== Run complete in %.1fs ===", time.time() - start)
        return report

    def run_regenerate(self) -> list[str]:
        """Recapture every regression scenario and overwrite its baseline."""
        return asyncio.run(self.regenerate_baselines())

    async def regenerate_baselines(self) -> list[str]:
        """Operator action: run only regression-role suites and force-write their captures."""
        descriptors = [d for d in self.config.suites if d.role == "regression" and d.name in self.suites]
        if not descriptors:
            raise ConfigurationError("No regression suite configured")

        run_dir = self._new_run_dir()
        runner = SuiteRunner(self.config, run_dir)
        detector = RegressionDetector(self.store, self._comparator_for(run_dir))
        written: list[str] = []
        for descriptor in descriptors:
            result = await runner.run(descriptor, self.suites[descriptor.name])
            if not result.successful:
                logger.error("Cannot regenerate baselines, %s failed: %s",
                             descriptor.name, result.error)
                continue
            written.extend(await detector.regenerate(result.captures))
        logger.info("Regenerated %d baselines", len(written))
        return written

    # -- Internal ------------------------------------------------------------

    async def _compare_baselines(self, captures: list[CapturedImage], run_dir: Path) -> RegressionOutcome:
        if not captures:
            return RegressionOutcome()
        detector = RegressionDetector(self.store, self._comparator_for(run_dir))
        return await detector.detect(captures)

    def _comparator_for(self, run_dir: Path) -> RegressionComparator:
        if self.comparator is not None:
            return self.comparator
        return RegressionComparator.from_config(self.config.regression, diff_dir=run_dir / "diffs")

    def _new_run_dir(self) -> Path:
        run_id = f"run_{uuid.uuid4().hex[:8]}"
        run_dir = self.runs_dir / run_id
        run_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("Run directory: %s", run_dir)
        return run_dir
