"""Shared pytest fixtures for the visual QA test suite."""

from pathlib import Path
from typing import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from visualqa.models.config import (
    OrchestratorConfig,
    RegressionConfig,
    SuiteDescriptor,
)
from visualqa.models.suite_result import (
    CapturedImage,
    CheckTally,
    IssueContext,
    RawIssue,
    SuiteResult,
    SuiteSummary,
)


# ============================================================================
# Image Helpers
# ============================================================================


def make_png(
    path: Path,
    size: tuple[int, int] = (100, 100),
    color: tuple[int, int, int] = (255, 255, 255),
    diff_pixels: int = 0,
    diff_color: tuple[int, int, int] = (0, 0, 0),
) -> Path:
    """Write a solid PNG whose first ``diff_pixels`` pixels (row-major) are ``diff_color``."""
    img = Image.new("RGB", size, color)
    width = size[0]
    for i in range(diff_pixels):
        img.putpixel((i % width, i // width), diff_color)
    path.parent.mkdir(parents=True, exist_ok=True)
    img.save(str(path))
    return path


@pytest.fixture
def png_factory() -> Callable[..., Path]:
    """Fixture that provides the make_png function."""
    return make_png


# ============================================================================
# Config Fixtures
# ============================================================================


@pytest.fixture
def six_suites() -> list[SuiteDescriptor]:
    """Six equally weighted suites, one per bundled role."""
    roles = ["visual", "cross_browser", "interactive", "user_journey", "performance", "regression"]
    return [
        SuiteDescriptor(name=f"suite-{role}", weight=1 / 6, role=role)
        for role in roles
    ]


@pytest.fixture
def base_config(tmp_path: Path) -> OrchestratorConfig:
    """Config with every output directory under tmp_path and AI disabled."""
    return OrchestratorConfig(
        target_url="https://example.com",
        output_dir=str(tmp_path / "runs"),
        report_output_dir=str(tmp_path / "reports"),
        regression=RegressionConfig(baselines_dir=str(tmp_path / "baselines")),
        ai_summary=False,
    )


@pytest.fixture
def six_suite_config(base_config: OrchestratorConfig, six_suites) -> OrchestratorConfig:
    return base_config.model_copy(update={"suites": six_suites})


# ============================================================================
# Result Helpers
# ============================================================================


def make_result(
    name: str = "suite",
    role: str = "generic",
    passed: int = 9,
    failed: int = 1,
    score: float | None = None,
    issues: list[RawIssue] | None = None,
    breakdown: dict[str, dict[str, CheckTally]] | None = None,
    measurements: dict[str, dict[str, float]] | None = None,
    captures: list[CapturedImage] | None = None,
) -> SuiteResult:
    return SuiteResult(
        suite_name=name,
        role=role,
        successful=True,
        summary=SuiteSummary(
            total_checks=passed + failed,
            passed_checks=passed,
            failed_checks=failed,
            score=score,
            breakdown=breakdown or {},
            measurements=measurements or {},
        ),
        issues=issues or [],
        captures=captures or [],
    )


def make_issue(
    suite: str, message: str, kind: str = "check-failed", severity: str = "medium",
    viewport: str | None = None, browser: str | None = None,
) -> RawIssue:
    context = None
    if viewport or browser:
        context = IssueContext(viewport_name=viewport, browser_name=browser)
    return RawIssue(source_suite=suite, kind=kind, message=message, severity=severity, context=context)


def tally(passed: int, failed: int) -> CheckTally:
    return CheckTally(total=passed + failed, passed=passed, failed=failed)


@pytest.fixture
def result_factory() -> Callable[..., SuiteResult]:
    """Fixture that provides the make_result function."""
    return make_result


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_page() -> MagicMock:
    """Create a mock Playwright page with awaitable actions."""
    page = MagicMock()
    page.url = "https://example.com"
    page.goto = AsyncMock()
    page.evaluate = AsyncMock()
    page.screenshot = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.wait_for_load_state = AsyncMock()
    locator = MagicMock()
    locator.first = AsyncMock()
    page.locator.return_value = locator
    return page


@pytest.fixture
def mock_anthropic_response() -> MagicMock:
    """Create a mock Anthropic messages.create response."""
    response = MagicMock()
    response.content = [MagicMock(text="  The site looks healthy.  ")]
    response.stop_reason = "end_turn"
    return response
