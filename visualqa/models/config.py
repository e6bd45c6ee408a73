"""Configuration models for the visual QA orchestrator."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

SuiteRole = Literal[
    "visual", "cross_browser", "interactive", "user_journey",
    "performance", "regression", "generic",
]

WEIGHT_SUM_TOLERANCE = 1e-3


class ConfigurationError(ValueError):
    """Raised when a run cannot start because the configuration is unusable."""


class ViewportConfig(BaseModel):
    width: int = 1280
    height: int = 720
    name: str = "desktop"


class SuiteDescriptor(BaseModel):
    """One configured suite: identity, scoring weight and on/off switch."""

    model_config = ConfigDict(frozen=True)

    name: str
    weight: float = Field(ge=0.0, le=1.0)
    enabled: bool = True
    role: SuiteRole = "generic"


class SeverityBands(BaseModel):
    """Upper bounds (percent of differing area) for the medium and high bands.

    Anything above ``high_max`` is critical. The tolerance that separates
    ``low`` from ``medium`` lives on :class:`RegressionConfig`.
    """

    medium_max: float = 1.0
    high_max: float = 5.0

    @model_validator(mode="after")
    def _check_order(self) -> "SeverityBands":
        if not 0 < self.medium_max < self.high_max:
            raise ValueError("severity bands must satisfy 0 < medium_max < high_max")
        return self


class CriticalArea(BaseModel):
    name: str
    selector: str
    description: str = ""


class RegressionScenario(BaseModel):
    name: str
    description: str = ""
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    interactions: list[str] = Field(default_factory=list)  # hover:<selector>, click:<selector>, scroll-middle
    full_page: bool = False


class RegressionConfig(BaseModel):
    tolerance_percent: float = Field(default=0.1, ge=0.0)
    bands: SeverityBands = Field(default_factory=SeverityBands)
    pixel_threshold: int = Field(default=40, ge=0, le=255)
    baselines_dir: str = ".visual-qa/baselines"
    write_diff_images: bool = True
    scenarios: list[RegressionScenario] = Field(
        default_factory=lambda: [
            RegressionScenario(
                name="homepage-default", description="Default homepage state",
                viewport=ViewportConfig(width=1440, height=900, name="desktop"),
            ),
            RegressionScenario(
                name="mobile-view", description="Mobile responsive view",
                viewport=ViewportConfig(width=375, height=667, name="mobile"),
            ),
            RegressionScenario(
                name="tablet-view", description="Tablet responsive view",
                viewport=ViewportConfig(width=768, height=1024, name="tablet"),
            ),
            RegressionScenario(
                name="scroll-position", description="Mid-scroll position state",
                viewport=ViewportConfig(width=1440, height=900, name="desktop"),
                interactions=["scroll-middle"], full_page=True,
            ),
        ]
    )
    critical_areas: list[CriticalArea] = Field(
        default_factory=lambda: [
            CriticalArea(name="hero-section", selector=".hero, .hero-section, header",
                         description="Main hero section"),
            CriticalArea(name="cta-buttons", selector=".cta, .btn-primary, [data-cta]",
                         description="Primary call-to-action buttons"),
            CriticalArea(name="navigation", selector="nav, .navigation, .navbar",
                         description="Main navigation elements"),
            CriticalArea(name="footer", selector="footer", description="Footer section"),
        ]
    )

    @model_validator(mode="after")
    def _check_tolerance(self) -> "RegressionConfig":
        if self.tolerance_percent > self.bands.medium_max:
            raise ValueError("tolerance_percent must not exceed bands.medium_max")
        return self


class InteractionCheck(BaseModel):
    name: str
    selector: str
    action: Literal["hover", "click", "focus"] = "hover"
    expect_selector: Optional[str] = None


class JourneyStep(BaseModel):
    action: Literal["navigate", "click", "fill", "wait", "expect_visible"]
    selector: Optional[str] = None
    value: Optional[str] = None
    description: str = ""

    @model_validator(mode="after")
    def _check_selector(self) -> "JourneyStep":
        if self.action in ("click", "fill", "expect_visible") and not self.selector:
            raise ValueError(f"{self.action} step requires a selector")
        return self


class UserJourney(BaseModel):
    name: str
    persona: str = ""
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    steps: list[JourneyStep] = Field(default_factory=list)


class PerformanceThresholds(BaseModel):
    fcp_ms: float = 1800
    lcp_ms: float = 2500
    cls: float = 0.1
    visual_completeness_min: float = Field(default=80.0, ge=0.0, le=100.0)


def default_suites() -> list[SuiteDescriptor]:
    return [
        SuiteDescriptor(name="basic-visual", weight=0.2, role="visual"),
        SuiteDescriptor(name="cross-browser", weight=0.15, role="cross_browser"),
        SuiteDescriptor(name="interactive", weight=0.15, role="interactive"),
        SuiteDescriptor(name="user-journeys", weight=0.2, role="user_journey"),
        SuiteDescriptor(name="regression", weight=0.15, role="regression"),
        SuiteDescriptor(name="performance-correlation", weight=0.15, role="performance"),
    ]


def rebalance_weights(suites: list[SuiteDescriptor]) -> list[SuiteDescriptor]:
    """Scale enabled weights so they sum to 1.0 again (e.g. after skipping suites)."""
    total = sum(s.weight for s in suites if s.enabled)
    if total <= 0:
        return list(suites)
    return [
        s.model_copy(update={"weight": s.weight / total}) if s.enabled else s
        for s in suites
    ]


class OrchestratorConfig(BaseModel):
    # Target
    target_url: str

    # Suites, in execution order
    suites: list[SuiteDescriptor] = Field(default_factory=default_suites)
    suite_timeout_seconds: Optional[float] = 900

    # Visual regression
    regression: RegressionConfig = Field(default_factory=RegressionConfig)

    # Reference suite settings
    viewports: list[ViewportConfig] = Field(
        default_factory=lambda: [
            ViewportConfig(width=1440, height=900, name="desktop"),
            ViewportConfig(width=768, height=1024, name="tablet"),
            ViewportConfig(width=375, height=667, name="mobile"),
        ]
    )
    browsers: list[str] = Field(default_factory=lambda: ["chromium", "firefox", "webkit"])
    interactions: list[InteractionCheck] = Field(
        default_factory=lambda: [
            InteractionCheck(name="cta-hover", selector=".cta, .btn-primary, [data-cta]"),
            InteractionCheck(name="nav-focus", selector="nav a", action="focus"),
        ]
    )
    journeys: list[UserJourney] = Field(default_factory=list)
    performance: PerformanceThresholds = Field(default_factory=PerformanceThresholds)
    user_agent: Optional[str] = None
    headless: bool = True

    # Output
    output_dir: str = ".visual-qa/runs"
    report_formats: list[str] = Field(default_factory=lambda: ["json", "html", "markdown"])
    report_output_dir: str = "./visual-qa-reports"

    # AI summary
    ai_summary: bool = True
    ai_model: str = "claude-opus-4-6"
    ai_max_summary_tokens: int = 600

    @field_validator("suites")
    @classmethod
    def _unique_suite_names(cls, v: list[SuiteDescriptor]) -> list[SuiteDescriptor]:
        names = [s.name for s in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate suite names: {', '.join(duplicates)}")
        return v

    def enabled_suites(self) -> list[SuiteDescriptor]:
        return [s for s in self.suites if s.enabled]

    def validate_for_run(self) -> None:
        """Refuse configurations that would make the run's score meaningless."""
        enabled = self.enabled_suites()
        if not enabled:
            raise ConfigurationError("No enabled suites configured")
        total = sum(s.weight for s in enabled)
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ConfigurationError(
                f"Enabled suite weights must sum to 1.0 (got {total:.4f})"
            )

    @classmethod
    def load(cls, path: str | Path) -> "OrchestratorConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
