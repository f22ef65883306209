from __future__ import annotations

import itertools
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from querybench.config import get_settings
from querybench.domain.models import DatasetParameters
from querybench.engine import ExecutionMode
from querybench.errors import ConfigurationError, GenerationError, ProvisionError
from querybench.orchestrator import RunConfig, run_benchmark
from querybench.queries import default_registry
from querybench.reporter import print_report
from querybench.utils.logging import configure_logging, get_logger

app = typer.Typer(help="Query variant benchmark CLI.")
log = get_logger(__name__)

EXIT_SETUP_FAILED = 1
EXIT_INTERRUPTED = 130


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"warmup={settings.benchmark_warmup_count} measured={settings.benchmark_measured_count} "
        f"persons={settings.benchmark_person_count} records={settings.benchmark_record_count} "
        f"timeout={settings.benchmark_timeout_seconds}s mode={settings.benchmark_execution_mode}"
    )


@app.command()
def variants() -> None:
    """
    List the registered query variants in execution order.
    """
    for variant in default_registry().list():
        typer.echo(f"{variant.id:<22} {variant.display_name} - {variant.description}")


@app.command()
def run(
    warmup: Optional[int] = typer.Option(
        None, "--warmup", "-w", min=0, help="Unrecorded warmup executions per variant."
    ),
    measured: Optional[int] = typer.Option(
        None, "--measured", "-n", min=1, help="Recorded executions per variant."
    ),
    persons: Optional[List[int]] = typer.Option(
        None, "--persons", "-p", min=1, help="Salesperson rows; repeat to build a grid."
    ),
    records: Optional[List[int]] = typer.Option(
        None, "--records", "-r", min=0, help="Sales rows; repeat to build a grid."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", "-t", min=0.001, help="Seconds allowed per execution."
    ),
    mode: Optional[ExecutionMode] = typer.Option(
        None, "--mode", "-m", help="Execution order across variants."
    ),
    variant: Optional[List[str]] = typer.Option(
        None, "--variant", "-v", help="Only run these variant ids (repeatable)."
    ),
    seed: Optional[int] = typer.Option(None, "--seed", help="Dataset RNG seed."),
    results_dir: Optional[Path] = typer.Option(
        None, "--results-dir", help="Directory for the JSON result artifact."
    ),
    no_persist: bool = typer.Option(False, "--no-persist", help="Do not write the artifact."),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON."),
) -> None:
    """
    Provision, populate, benchmark every variant and print the comparison.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=json_logs or settings.log_json)

    person_counts = persons or [settings.benchmark_person_count]
    record_counts = records or [settings.benchmark_record_count]
    parameter_sets = [
        DatasetParameters(person_count=p, record_count=r)
        for p, r in itertools.product(person_counts, record_counts)
    ]
    config = RunConfig.from_settings(
        settings,
        parameter_sets=parameter_sets,
        warmup_count=warmup,
        measured_count=measured,
        timeout_seconds=timeout,
        mode=mode,
        seed=seed,
        results_dir=results_dir,
        persist=not no_persist,
    )

    registry = default_registry()
    if variant:
        try:
            registry = registry.select(variant)
        except KeyError as exc:
            typer.echo(f"Configuration error: {exc.args[0]}", err=True)
            raise typer.Exit(code=EXIT_SETUP_FAILED)

    try:
        outcome = run_benchmark(config, registry=registry)
    except (ConfigurationError, ProvisionError, GenerationError) as exc:
        log.error("Benchmark could not run", extra={"error_type": type(exc).__name__})
        typer.echo(f"{type(exc).__name__}: {exc}", err=True)
        raise typer.Exit(code=EXIT_SETUP_FAILED)

    console = Console()
    display_names = {v.id: v.display_name for v in registry.list()}
    for parameter_run in outcome.runs:
        print_report(
            parameter_run.report,
            title=f"Query Variant Comparison\n[dim]{parameter_run.parameters.label()}[/dim]",
            display_names=display_names,
            console=console,
        )
    if outcome.artifact_path is not None:
        typer.echo(f"Results written to {outcome.artifact_path}")
    if outcome.interrupted:
        typer.echo("Interrupted: partial results shown.", err=True)
        raise typer.Exit(code=EXIT_INTERRUPTED)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(EXIT_INTERRUPTED)


if __name__ == "__main__":
    main()
