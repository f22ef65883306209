"""
Orchestrator: provision -> generate -> run -> aggregate -> report.

Usage (example from CLI):
    from querybench.orchestrator import RunConfig, run_benchmark

    outcome = run_benchmark(RunConfig(parameter_sets=[DatasetParameters(person_count=500, record_count=50_000)]))
    for run in outcome.runs:
        print(run.report.ranking())

The caller owns the environment: the provisioner passed in is started once,
shared by every parameter set, and always stopped before returning.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from querybench.aggregator import aggregate_all
from querybench.artifact import ResultArtifact, build_artifact, persist_artifact
from querybench.config import Settings, get_settings
from querybench.domain.models import AggregateResult, ComparisonReport, DatasetParameters, Measurement
from querybench.engine import ExecutionEngine, ExecutionMode
from querybench.errors import ConfigurationError
from querybench.infrastructure.dataset import DatasetGenerator, SalesDatasetGenerator
from querybench.infrastructure.environment import (
    ConnectionHandle,
    EnvironmentProvisioner,
    PostgresProvisioner,
)
from querybench.queries import default_registry
from querybench.registry import QueryRegistry
from querybench.reporter import compare
from querybench.utils.logging import get_logger

log = get_logger(__name__)

GeneratorFactory = Callable[[ConnectionHandle], DatasetGenerator]


@dataclass(frozen=True)
class RunConfig:
    """Knobs for one benchmark invocation."""

    parameter_sets: Sequence[DatasetParameters]
    warmup_count: int = 3
    measured_count: int = 10
    timeout_seconds: Optional[float] = 30.0
    mode: ExecutionMode = ExecutionMode.INTERLEAVED
    seed: int = 42
    results_dir: Path | str = "results"
    persist: bool = True
    keep_measurements: bool = False

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides) -> "RunConfig":
        settings = settings or get_settings()
        values = dict(
            parameter_sets=[
                DatasetParameters(
                    person_count=settings.benchmark_person_count,
                    record_count=settings.benchmark_record_count,
                )
            ],
            warmup_count=settings.benchmark_warmup_count,
            measured_count=settings.benchmark_measured_count,
            timeout_seconds=settings.benchmark_timeout_seconds,
            mode=ExecutionMode(settings.benchmark_execution_mode),
            seed=settings.benchmark_seed,
            results_dir=settings.results_dir,
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass
class ParameterRun:
    """Aggregated outcome of all variants for one dataset parameter set."""

    parameters: DatasetParameters
    aggregates: List[AggregateResult]
    report: ComparisonReport
    measurements: Optional[Dict[str, List[Measurement]]] = None


@dataclass
class BenchmarkOutcome:
    runs: List[ParameterRun] = field(default_factory=list)
    artifact: Optional[ResultArtifact] = None
    artifact_path: Optional[Path] = None
    interrupted: bool = False


def default_generator_factory(seed: int) -> GeneratorFactory:
    """Build SalesDatasetGenerator instances bound to the provisioned handle."""

    def factory(handle: ConnectionHandle) -> DatasetGenerator:
        return SalesDatasetGenerator.for_handle(handle, seed=seed)  # type: ignore[arg-type]

    return factory


def run_benchmark(
    config: RunConfig,
    registry: Optional[QueryRegistry] = None,
    provisioner: Optional[EnvironmentProvisioner] = None,
    generator_factory: Optional[GeneratorFactory] = None,
) -> BenchmarkOutcome:
    """
    Run every registered variant for every parameter set and build the artifact.

    Parameters
    ----------
    config : RunConfig
        Warmup/measured counts, timeout, ordering mode and dataset sizes.
    registry : QueryRegistry | None
        Variants to compare. Defaults to the built-in variants. Frozen for the
        duration of the run.
    provisioner : EnvironmentProvisioner | None
        Defaults to PostgresProvisioner built from settings.
    generator_factory : callable | None
        Builds the dataset generator from the provisioned handle.

    Raises
    ------
    ConfigurationError
        If the registry is empty or the run configuration is invalid.
    ProvisionError, GenerationError
        If the harness could not be set up. No measurement has been recorded
        for the failing parameter set.
    """
    registry = registry if registry is not None else default_registry()
    provisioner = provisioner if provisioner is not None else PostgresProvisioner()
    generator_factory = generator_factory or default_generator_factory(config.seed)

    variants = registry.list()
    if not variants:
        raise ConfigurationError("No query variants registered")
    if not config.parameter_sets:
        raise ConfigurationError("At least one dataset parameter set is required")
    if config.warmup_count < 0 or config.measured_count < 1:
        raise ConfigurationError(
            f"Invalid iteration counts warmup={config.warmup_count} measured={config.measured_count}"
        )
    registry.freeze()
    variant_ids = [variant.id for variant in variants]
    display_names = {variant.id: variant.display_name for variant in variants}
    mode = ExecutionMode(config.mode)

    outcome = BenchmarkOutcome()
    handle = provisioner.start()
    try:
        generator = generator_factory(handle)
        engine = ExecutionEngine(handle)
        total = len(config.parameter_sets)
        for index, parameters in enumerate(config.parameter_sets, start=1):
            try:
                log.info(f"{'=' * 60}")
                log.info(
                    f"[PARAMETERS {index}/{total}] {parameters.label()}",
                    extra={
                        "person_count": parameters.person_count,
                        "record_count": parameters.record_count,
                    },
                )
                log.info(f"{'=' * 60}")

                generator.populate(parameters.person_count, parameters.record_count)
                measurements = engine.run_all(
                    variants,
                    warmup_count=config.warmup_count,
                    measured_count=config.measured_count,
                    timeout=config.timeout_seconds,
                    mode=mode,
                )
                aggregates = aggregate_all(measurements, order=variant_ids)
                report = compare(aggregates)
                outcome.runs.append(
                    ParameterRun(
                        parameters=parameters,
                        aggregates=aggregates,
                        report=report,
                        measurements=measurements if config.keep_measurements else None,
                    )
                )
                log.info(
                    f"[AGGREGATION] {parameters.label()}",
                    extra={
                        "ranking": report.ranking(),
                        "unavailable": [r.variant_id for r in report.unavailable],
                    },
                )
            except KeyboardInterrupt:
                # Parameter sets already completed stay in the outcome.
                engine.cancel()
            if engine.cancelled:
                outcome.interrupted = True
                log.warning("[ORCHESTRATOR] Run interrupted; keeping partial results")
                break
    finally:
        provisioner.stop()

    outcome.artifact = build_artifact(
        [(run.parameters, run.report) for run in outcome.runs],
        warmup_count=config.warmup_count,
        measured_count=config.measured_count,
        execution_mode=mode.value,
        timeout_seconds=config.timeout_seconds,
        seed=config.seed,
        interrupted=outcome.interrupted,
        display_names=display_names,
    )
    if config.persist:
        outcome.artifact_path = persist_artifact(outcome.artifact, config.results_dir)

    log.info(
        f"[ORCHESTRATOR COMPLETE] {len(outcome.runs)} parameter set(s) x {len(variants)} variant(s)",
        extra={"variants": variant_ids, "interrupted": outcome.interrupted},
    )
    return outcome


__all__ = [
    "BenchmarkOutcome",
    "GeneratorFactory",
    "ParameterRun",
    "RunConfig",
    "default_generator_factory",
    "run_benchmark",
]
