"""Suite runner: invokes one suite with failure isolation."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from visualqa.models.config import OrchestratorConfig, SuiteDescriptor
from visualqa.models.suite_result import SuiteResult
from visualqa.suites.base import Suite, SuiteContext

logger = logging.getLogger(__name__)


class SuiteRunner:
    """Runs suites so that one suite's failure never reaches the caller.

    ``run`` always returns a :class:`SuiteResult`. Exceptions, timeouts and
    malformed results all become ``successful=False`` results with the error
    recorded. Task cancellation is not contained.
    """

    def __init__(
        self, config: OrchestratorConfig, run_dir: Path, timeout_seconds: Optional[float] = None,
    ):
        self.config = config
        self.run_dir = run_dir
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else config.suite_timeout_seconds
        )

    def context_for(self, descriptor: SuiteDescriptor) -> SuiteContext:
        return SuiteContext(
            config=self.config.model_copy(deep=True),
            descriptor=descriptor,
            run_dir=self.run_dir,
        )

    async def run(self, descriptor: SuiteDescriptor, suite: Suite) -> SuiteResult:
        context = self.context_for(descriptor)
        start = time.perf_counter()
        logger.info("Running suite %s (weight %.2f)", descriptor.name, descriptor.weight)

        try:
            raw = await asyncio.wait_for(
                suite.run(self.config.target_url, context), timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            elapsed = _elapsed_ms(start)
            logger.error("Suite %s timed out after %.0fs", descriptor.name, self.timeout_seconds)
            return SuiteResult.failure(
                descriptor.name, f"Suite timed out after {self.timeout_seconds}s",
                duration_ms=elapsed, role=descriptor.role,
            )
        except Exception as e:
            elapsed = _elapsed_ms(start)
            logger.error("Suite %s crashed: %s", descriptor.name, e)
            return SuiteResult.failure(
                descriptor.name, f"{type(e).__name__}: {e}",
                duration_ms=elapsed, role=descriptor.role,
            )

        elapsed = _elapsed_ms(start)
        try:
            result = _coerce_result(raw)
        except (TypeError, ValidationError) as e:
            logger.error("Suite %s returned a malformed result: %s", descriptor.name, e)
            return SuiteResult.failure(
                descriptor.name, f"Malformed suite result: {e}",
                duration_ms=elapsed, role=descriptor.role,
            )

        # Identity and timing come from the runner, not the suite
        result = result.model_copy(update={
            "suite_name": descriptor.name,
            "role": descriptor.role,
            "duration_ms": elapsed,
        })
        if result.successful:
            logger.info("Suite %s finished: %d/%d checks passed (%.0fms)",
                        descriptor.name, result.summary.passed_checks,
                        result.summary.total_checks, elapsed)
        else:
            logger.warning("Suite %s reported failure: %s", descriptor.name, result.error)
        return result


def _coerce_result(raw: Any) -> SuiteResult:
    if isinstance(raw, SuiteResult):
        return raw
    if isinstance(raw, dict):
        data = dict(raw)
        data.setdefault("suite_name", "")
        return SuiteResult.model_validate(data)
    raise TypeError(f"expected SuiteResult or dict, got {type(raw).__name__}")


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)
