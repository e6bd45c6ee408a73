"""Tests for the click command line."""

import json
from pathlib import Path
from unittest.mock import patch

import click
import pytest
from click.testing import CliRunner
from conftest import make_png, make_result

from visualqa.baseline.store import FileBaselineStore
from visualqa.cli import EXIT_BUILD_FAILED, EXIT_CONFIG_ERROR, apply_skips, cli
from visualqa.models.config import ConfigurationError, OrchestratorConfig
from visualqa.models.report import CriticalIssue, Report


def _report(**overrides) -> Report:
    data = dict(
        timestamp="2026-01-01T00:00:00Z",
        target_url="https://example.com",
        per_suite_results=[make_result(name="basic-visual", role="visual", score=92)],
        overall_score=92.0,
        visual_perfection_score=100.0,
        confidence_level="high",
        completion_rate=1.0,
    )
    data.update(overrides)
    return Report(**data)


@pytest.fixture
def config_file(base_config, tmp_path: Path) -> Path:
    path = tmp_path / "visual-qa.json"
    base_config.save(path)
    return path


@pytest.fixture
def runner() -> CliRunner:
    # Wide enough that rich tables never wrap keys
    return CliRunner(env={"COLUMNS": "200"})


class TestRun:

    def test_healthy_run_exits_zero(self, runner, config_file, base_config):
        with patch("visualqa.cli.Orchestrator") as mock_orch:
            mock_orch.return_value.run_all.return_value = _report()
            result = runner.invoke(cli, ["run", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert "Run Complete" in result.output
        reports = list(Path(base_config.report_output_dir).glob("report_*"))
        assert {p.suffix for p in reports} == {".json", ".html", ".md"}

    def test_critical_issue_fails_build(self, runner, config_file):
        report = _report(critical_issues=[CriticalIssue(kind="critical-regression", message="boom")])
        with patch("visualqa.cli.Orchestrator") as mock_orch:
            mock_orch.return_value.run_all.return_value = report
            result = runner.invoke(cli, ["run", "--config", str(config_file)])
        assert result.exit_code == EXIT_BUILD_FAILED

    def test_low_confidence_fails_build(self, runner, config_file):
        with patch("visualqa.cli.Orchestrator") as mock_orch:
            mock_orch.return_value.run_all.return_value = _report(confidence_level="low")
            result = runner.invoke(cli, ["run", "--config", str(config_file)])
        assert result.exit_code == EXIT_BUILD_FAILED

    def test_configuration_error(self, runner, config_file):
        with patch("visualqa.cli.Orchestrator") as mock_orch:
            mock_orch.return_value.run_all.side_effect = ConfigurationError("weights")
            result = runner.invoke(cli, ["run", "--config", str(config_file)])
        assert result.exit_code == EXIT_CONFIG_ERROR

    def test_missing_config(self, runner, tmp_path):
        result = runner.invoke(cli, ["run", "--config", str(tmp_path / "missing.json")])
        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "Config file not found" in result.output

    def test_invalid_config(self, runner, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"target_url": "https://example.com", "suites": "nope"}))
        result = runner.invoke(cli, ["run", "--config", str(path)])
        assert result.exit_code == EXIT_CONFIG_ERROR

    def test_target_override_and_skip(self, runner, config_file):
        with patch("visualqa.cli.Orchestrator") as mock_orch:
            mock_orch.return_value.run_all.return_value = _report()
            result = runner.invoke(cli, [
                "run", "--config", str(config_file),
                "--target", "https://staging.example.com", "--skip", "cross-browser",
            ])
        assert result.exit_code == 0, result.output
        cfg = mock_orch.call_args.args[0]
        assert cfg.target_url == "https://staging.example.com"
        assert "cross-browser" not in {s.name for s in cfg.enabled_suites()}
        cfg.validate_for_run()


class TestApplySkips:

    def test_unknown_suite(self):
        cfg = OrchestratorConfig(target_url="https://example.com")
        with pytest.raises(click.BadParameter):
            apply_skips(cfg, ("nonexistent",))

    def test_no_skips_is_identity(self):
        cfg = OrchestratorConfig(target_url="https://example.com")
        assert apply_skips(cfg, ()) is cfg


class TestInit:

    def test_creates_config(self, runner, tmp_path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(cli, ["init"], input="https://example.com\n")
            assert result.exit_code == 0, result.output
            cfg = OrchestratorConfig.load("visual-qa.json")
            assert cfg.target_url == "https://example.com"


class TestBaselineList:

    def test_empty(self, runner, config_file):
        result = runner.invoke(cli, ["baseline", "list", "--config", str(config_file)])
        assert result.exit_code == 0
        assert "No baselines recorded yet" in result.output

    def test_lists_entries(self, runner, config_file, base_config, tmp_path):
        store = FileBaselineStore(Path(base_config.regression.baselines_dir))
        store.write("homepage-default", make_png(tmp_path / "page.png"))
        result = runner.invoke(cli, ["baseline", "list", "--config", str(config_file)])
        assert result.exit_code == 0
        assert "homepage-default" in result.output

    def test_unreadable_store(self, runner, config_file, base_config):
        root = Path(base_config.regression.baselines_dir)
        root.mkdir(parents=True)
        (root / "registry.json").write_text("{broken")
        result = runner.invoke(cli, ["baseline", "list", "--config", str(config_file)])
        assert result.exit_code == EXIT_BUILD_FAILED


class TestBaselineUpdate:

    def test_requires_confirmation(self, runner, config_file):
        with patch("visualqa.cli.Orchestrator") as mock_orch:
            result = runner.invoke(cli, ["baseline", "update", "--config", str(config_file)], input="n\n")
        assert result.exit_code != 0
        mock_orch.return_value.run_regenerate.assert_not_called()

    def test_regenerates(self, runner, config_file):
        with patch("visualqa.cli.Orchestrator") as mock_orch:
            mock_orch.return_value.run_regenerate.return_value = ["homepage-default", "mobile-view"]
            result = runner.invoke(cli, ["baseline", "update", "--config", str(config_file), "--yes"])
        assert result.exit_code == 0, result.output
        assert "Regenerated 2 baselines" in result.output
