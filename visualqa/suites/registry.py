"""Maps configured suite roles onto the bundled suite implementations."""

from __future__ import annotations

import logging

from visualqa.models.config import OrchestratorConfig
from visualqa.suites.base import Suite
from visualqa.suites.cross_browser import CrossBrowserSuite
from visualqa.suites.interactive import InteractiveSuite
from visualqa.suites.journeys import UserJourneySuite
from visualqa.suites.performance import PerformanceSuite
from visualqa.suites.regression_capture import RegressionCaptureSuite
from visualqa.suites.viewport import ViewportSuite

logger = logging.getLogger(__name__)

BUILTIN_SUITES: dict[str, type] = {
    "visual": ViewportSuite,
    "cross_browser": CrossBrowserSuite,
    "interactive": InteractiveSuite,
    "user_journey": UserJourneySuite,
    "performance": PerformanceSuite,
    "regression": RegressionCaptureSuite,
}


def build_builtin_suites(config: OrchestratorConfig) -> dict[str, Suite]:
    """One bundled implementation per configured suite whose role has one.

    ``generic`` suites have no bundled implementation and must be supplied
    by the caller.
    """
    suites: dict[str, Suite] = {}
    for descriptor in config.suites:
        suite_cls = BUILTIN_SUITES.get(descriptor.role)
        if suite_cls is None:
            logger.debug("No bundled implementation for %s (%s)", descriptor.name, descriptor.role)
            continue
        suites[descriptor.name] = suite_cls()
    return suites
