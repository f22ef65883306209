from __future__ import annotations

from pathlib import Path
from typing import List

import pytest
from typer.testing import CliRunner

from querybench import main as cli
from querybench.errors import ProvisionError
from querybench.orchestrator import RunConfig, run_benchmark
from querybench.queries import BUILTIN_VARIANTS

from tests.fakes import FakeClock, FakeGenerator, FakeHandle, FakeProvisioner

runner = CliRunner()


@pytest.fixture
def captured(monkeypatch) -> List[RunConfig]:
    """Route the CLI through the real orchestrator with in-memory collaborators."""
    configs: List[RunConfig] = []

    def fake_run_benchmark(config: RunConfig, registry=None):
        configs.append(config)
        return run_benchmark(
            config,
            registry=registry,
            provisioner=FakeProvisioner(FakeHandle(FakeClock())),
            generator_factory=lambda _handle: FakeGenerator(),
        )

    monkeypatch.setattr(cli, "run_benchmark", fake_run_benchmark)
    return configs


def test_variants_lists_builtin_ids() -> None:
    result = runner.invoke(cli.app, ["variants"])

    assert result.exit_code == 0
    for variant in BUILTIN_VARIANTS:
        assert variant.id in result.output


def test_info_shows_effective_settings() -> None:
    result = runner.invoke(cli.app, ["info"])

    assert result.exit_code == 0
    assert "warmup=" in result.output
    assert "mode=" in result.output


def test_run_prints_report_and_exits_zero(captured: List[RunConfig]) -> None:
    result = runner.invoke(cli.app, ["run", "-w", "1", "-n", "2", "-p", "5", "-r", "50", "--no-persist"])

    assert result.exit_code == 0, result.output
    assert "Query Variant Comparison" in result.output
    assert "Winner:" in result.output
    (config,) = captured
    assert config.warmup_count == 1
    assert config.measured_count == 2
    assert config.persist is False


def test_run_builds_parameter_grid(captured: List[RunConfig]) -> None:
    result = runner.invoke(
        cli.app,
        ["run", "-n", "1", "-p", "5", "-p", "10", "-r", "0", "-r", "100", "--no-persist"],
    )

    assert result.exit_code == 0, result.output
    (config,) = captured
    assert [(p.person_count, p.record_count) for p in config.parameter_sets] == [
        (5, 0),
        (5, 100),
        (10, 0),
        (10, 100),
    ]


def test_run_writes_artifact(captured: List[RunConfig], tmp_path: Path) -> None:
    result = runner.invoke(
        cli.app, ["run", "-n", "1", "-p", "5", "-r", "10", "--results-dir", str(tmp_path)]
    )

    assert result.exit_code == 0, result.output
    assert "Results written to" in result.output
    assert (tmp_path / "latest.json").exists()


def test_run_only_selected_variants(captured: List[RunConfig]) -> None:
    result = runner.invoke(
        cli.app, ["run", "-n", "1", "-p", "5", "-r", "10", "-v", "lateral", "--no-persist"]
    )

    assert result.exit_code == 0, result.output
    assert "LATERAL" in result.output.upper()
    assert "Correlated" not in result.output


def test_unknown_variant_is_a_setup_failure(captured: List[RunConfig]) -> None:
    result = runner.invoke(cli.app, ["run", "-v", "nope", "--no-persist"])

    assert result.exit_code == cli.EXIT_SETUP_FAILED
    assert captured == []


def test_provision_failure_exits_one(monkeypatch) -> None:
    def unreachable(config: RunConfig, registry=None):
        raise ProvisionError("Could not reach PostgreSQL at localhost:5432")

    monkeypatch.setattr(cli, "run_benchmark", unreachable)

    result = runner.invoke(cli.app, ["run", "--no-persist"])

    assert result.exit_code == cli.EXIT_SETUP_FAILED


def test_interrupted_run_exits_130_with_partial_report(monkeypatch) -> None:
    lateral = next(v for v in BUILTIN_VARIANTS if v.id == "lateral")

    def interrupted(config: RunConfig, registry=None):
        handle = FakeHandle(FakeClock(), script={lateral.statement: [100, KeyboardInterrupt()]})
        return run_benchmark(
            config,
            registry=registry,
            provisioner=FakeProvisioner(handle),
            generator_factory=lambda _handle: FakeGenerator(),
        )

    monkeypatch.setattr(cli, "run_benchmark", interrupted)

    result = runner.invoke(cli.app, ["run", "-w", "0", "-n", "3", "-p", "5", "-r", "10", "--no-persist"])

    assert result.exit_code == cli.EXIT_INTERRUPTED
    assert "Query Variant Comparison" in result.output
