"""Suite contract: what the orchestrator needs from a pluggable test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict

from visualqa.models.config import OrchestratorConfig, SuiteDescriptor
from visualqa.models.suite_result import SuiteResult


class SuiteContext(BaseModel):
    """Read-only inputs handed to a single suite invocation.

    Each suite gets its own deep copy of the configuration so nothing one
    suite does can leak into the next.
    """

    model_config = ConfigDict(frozen=True)

    config: OrchestratorConfig
    descriptor: SuiteDescriptor
    run_dir: Path

    @property
    def suite_dir(self) -> Path:
        return self.run_dir / self.descriptor.name


@runtime_checkable
class Suite(Protocol):
    async def run(
        self, target_url: str, context: SuiteContext,
    ) -> Union[SuiteResult, dict[str, Any]]: ...
