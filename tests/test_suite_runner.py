"""Tests for the suite runner's failure isolation."""

import asyncio
from pathlib import Path

import pytest
from conftest import make_result, tally
from pydantic import ValidationError

from visualqa.models.config import SuiteDescriptor
from visualqa.models.suite_result import CheckTally, SuiteResult, SuiteSummary
from visualqa.runner.suite_runner import SuiteRunner
from visualqa.suites.base import Suite, SuiteContext


class StaticSuite:
    def __init__(self, result):
        self.result = result
        self.contexts: list[SuiteContext] = []

    async def run(self, target_url, context):
        self.contexts.append(context)
        return self.result


class CrashingSuite:
    async def run(self, target_url, context):
        raise RuntimeError("browser exploded")


class SlowSuite:
    async def run(self, target_url, context):
        await asyncio.sleep(10)


class MutatingSuite:
    async def run(self, target_url, context):
        context.config.browsers.append("netscape")
        return {"successful": True}


@pytest.fixture
def descriptor() -> SuiteDescriptor:
    return SuiteDescriptor(name="basic-visual", weight=1.0, role="visual")


@pytest.fixture
def runner(base_config, tmp_path: Path) -> SuiteRunner:
    return SuiteRunner(base_config, tmp_path / "run")


class TestSuccessfulRuns:

    @pytest.mark.asyncio
    async def test_identity_and_duration_stamped(self, runner, descriptor):
        suite = StaticSuite(SuiteResult(
            suite_name="whatever", successful=True, duration_ms=99999,
            summary=SuiteSummary(total_checks=4, passed_checks=3, failed_checks=1),
        ))
        result = await runner.run(descriptor, suite)
        assert result.suite_name == "basic-visual"
        assert result.role == "visual"
        assert result.successful
        assert result.duration_ms < 99999
        assert result.summary.passed_checks == 3

    @pytest.mark.asyncio
    async def test_dict_result_accepted(self, runner, descriptor):
        suite = StaticSuite({
            "successful": True,
            "summary": {"total_checks": 2, "passed_checks": 2, "failed_checks": 0, "score": 91},
        })
        result = await runner.run(descriptor, suite)
        assert result.successful
        assert result.suite_name == "basic-visual"
        assert result.summary.score == 91

    @pytest.mark.asyncio
    async def test_context(self, runner, descriptor, base_config):
        suite = StaticSuite({"successful": True})
        await runner.run(descriptor, suite)
        context = suite.contexts[0]
        assert context.descriptor == descriptor
        assert context.suite_dir == runner.run_dir / "basic-visual"
        assert context.config == base_config
        assert context.config is not base_config

    @pytest.mark.asyncio
    async def test_config_mutation_does_not_leak(self, runner, descriptor, base_config):
        await runner.run(descriptor, MutatingSuite())
        assert "netscape" not in base_config.browsers
        assert "netscape" not in runner.config.browsers

    def test_suites_satisfy_protocol(self):
        assert isinstance(StaticSuite(None), Suite)


class TestFailureIsolation:

    @pytest.mark.asyncio
    async def test_exception_becomes_failure(self, runner, descriptor):
        result = await runner.run(descriptor, CrashingSuite())
        assert not result.successful
        assert result.error == "RuntimeError: browser exploded"
        assert result.summary.total_checks == 0
        assert result.issues == []
        assert result.role == "visual"
        assert result.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_timeout_becomes_failure(self, base_config, tmp_path, descriptor):
        runner = SuiteRunner(base_config, tmp_path, timeout_seconds=0.05)
        result = await runner.run(descriptor, SlowSuite())
        assert not result.successful
        assert "timed out" in result.error

    @pytest.mark.asyncio
    async def test_malformed_result(self, runner, descriptor):
        result = await runner.run(descriptor, StaticSuite(["not", "a", "result"]))
        assert not result.successful
        assert result.error.startswith("Malformed suite result")

    @pytest.mark.asyncio
    async def test_invalid_dict(self, runner, descriptor):
        result = await runner.run(descriptor, StaticSuite({"successful": "maybe?"}))
        assert not result.successful
        assert result.error.startswith("Malformed suite result")

    @pytest.mark.asyncio
    async def test_suite_reported_failure_kept(self, runner, descriptor):
        suite = StaticSuite(SuiteResult.failure("x", "could not launch browser"))
        result = await runner.run(descriptor, suite)
        assert not result.successful
        assert result.error == "could not launch browser"
        assert result.suite_name == "basic-visual"


class TestResultImmutability:

    def test_summary_tallies_frozen(self):
        result = make_result(name="basic-visual", role="visual", passed=9, failed=1,
                             breakdown={"viewport": {"mobile": tally(4, 1)}})
        with pytest.raises(ValidationError):
            result.summary.failed_checks = 0
        with pytest.raises(ValidationError):
            result.summary.breakdown["viewport"]["mobile"].failed = 0
        assert result.summary.failed_checks == 1

    def test_tally_arithmetic_returns_new_tallies(self):
        base = tally(2, 1)
        bumped = base.recorded(False)
        merged = base + tally(1, 0)
        assert (base.total, base.passed, base.failed) == (3, 2, 1)
        assert (bumped.total, bumped.passed, bumped.failed) == (4, 2, 2)
        assert (merged.total, merged.passed, merged.failed) == (4, 3, 1)
        assert CheckTally().recorded(True).pass_ratio == 1.0
