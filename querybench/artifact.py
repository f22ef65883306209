"""
Machine-readable result artifact.

One entry per (variant, parameter set), durations in milliseconds. External
tools diff these files across runs, so field names and units are part of the
contract: add fields, never rename them.

Output is saved to `results/latest.json` by default and replaced on every run.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from querybench.domain.models import (
    NANOS_PER_MILLI,
    AggregateResult,
    ComparisonReport,
    DatasetParameters,
    RankedResult,
)
from querybench.utils.logging import get_logger

log = get_logger(__name__)

SCHEMA_VERSION = 1
MS_DECIMALS = 3


def _round_ms(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(value, MS_DECIMALS)


class ResultEntry(BaseModel):
    """Outcome of one variant for one dataset parameter set."""

    variant: str
    display_name: str
    parameters: DatasetParameters
    sample_count: int = Field(..., ge=0)
    failed_count: int = Field(0, ge=0)
    timeout_count: int = Field(0, ge=0)
    avg_ms: Optional[float] = None
    min_ms: Optional[float] = None
    max_ms: Optional[float] = None
    median_ms: Optional[float] = None
    stddev_ms: Optional[float] = None
    failed: bool = Field(False, description="True when every measured execution failed.")
    rank: Optional[int] = Field(None, description="1 for the winner; null when unavailable.")
    slowdown_percent: Optional[float] = None


class ResultArtifact(BaseModel):
    """Everything one benchmark invocation produced."""

    schema_version: int = SCHEMA_VERSION
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    warmup_count: int
    measured_count: int
    timeout_seconds: Optional[float] = None
    execution_mode: str
    seed: Optional[int] = None
    interrupted: bool = False
    entries: List[ResultEntry] = Field(default_factory=list)


def _entry(
    result: AggregateResult,
    parameters: DatasetParameters,
    display_names: Mapping[str, str],
    rank: Optional[int] = None,
    slowdown: Optional[float] = None,
) -> ResultEntry:
    return ResultEntry(
        variant=result.variant_id,
        display_name=display_names.get(result.variant_id, result.variant_id),
        parameters=parameters,
        sample_count=result.sample_count,
        failed_count=result.failed_count,
        timeout_count=result.timeout_count,
        avg_ms=_round_ms(result.avg_ms),
        min_ms=_round_ms(result.min_ms),
        max_ms=_round_ms(result.max_ms),
        median_ms=_round_ms(result.median_ms),
        stddev_ms=_round_ms(result.stddev_ms),
        failed=result.all_failed,
        rank=rank,
        slowdown_percent=None if slowdown is None else round(slowdown, 2),
    )


def report_entries(
    report: ComparisonReport,
    parameters: DatasetParameters,
    display_names: Optional[Mapping[str, str]] = None,
) -> List[ResultEntry]:
    """Flatten a ComparisonReport into artifact entries: ranked first, then unavailable."""
    names = display_names or {}
    entries = [
        _entry(ranked.result, parameters, names, rank=ranked.rank, slowdown=ranked.slowdown_percent)
        for ranked in report.ranked
    ]
    entries.extend(_entry(result, parameters, names) for result in report.unavailable)
    return entries


def _to_nanos(value: Optional[float]) -> Optional[int]:
    return None if value is None else round(value * NANOS_PER_MILLI)


def _aggregate_from_entry(entry: ResultEntry) -> AggregateResult:
    if entry.failed:
        return AggregateResult(
            variant_id=entry.variant,
            sample_count=0,
            failed_count=entry.failed_count,
            timeout_count=entry.timeout_count,
            all_failed=True,
        )
    # The same rounding for avg/min/max keeps min <= avg <= max.
    avg = _to_nanos(entry.avg_ms)
    median = _to_nanos(entry.median_ms)
    stddev = _to_nanos(entry.stddev_ms)
    return AggregateResult(
        variant_id=entry.variant,
        sample_count=entry.sample_count,
        failed_count=entry.failed_count,
        timeout_count=entry.timeout_count,
        avg_nanos=None if avg is None else float(avg),
        min_nanos=_to_nanos(entry.min_ms),
        max_nanos=_to_nanos(entry.max_ms),
        median_nanos=None if median is None else float(median),
        stddev_nanos=None if stddev is None else float(stddev),
    )


def reports_from_artifact(
    artifact: ResultArtifact,
) -> List[Tuple[DatasetParameters, ComparisonReport]]:
    """
    Rebuild one ComparisonReport per parameter set, in first-seen order.

    Ranking follows the stored `rank` values rather than re-sorting the rounded
    millisecond averages.
    """
    grouped: Dict[DatasetParameters, List[ResultEntry]] = {}
    for entry in artifact.entries:
        grouped.setdefault(entry.parameters, []).append(entry)

    reports: List[Tuple[DatasetParameters, ComparisonReport]] = []
    for parameters, entries in grouped.items():
        ranked_entries = sorted((e for e in entries if e.rank is not None), key=lambda e: e.rank)
        report = ComparisonReport(
            ranked=[
                RankedResult(
                    rank=e.rank,
                    result=_aggregate_from_entry(e),
                    slowdown_percent=e.slowdown_percent or 0.0,
                )
                for e in ranked_entries
            ],
            unavailable=[_aggregate_from_entry(e) for e in entries if e.rank is None],
        )
        reports.append((parameters, report))
    return reports


def build_artifact(
    runs: Sequence[Tuple[DatasetParameters, ComparisonReport]],
    warmup_count: int,
    measured_count: int,
    execution_mode: str,
    timeout_seconds: Optional[float] = None,
    seed: Optional[int] = None,
    interrupted: bool = False,
    display_names: Optional[Mapping[str, str]] = None,
) -> ResultArtifact:
    entries: List[ResultEntry] = []
    for parameters, report in runs:
        entries.extend(report_entries(report, parameters, display_names))
    return ResultArtifact(
        warmup_count=warmup_count,
        measured_count=measured_count,
        timeout_seconds=timeout_seconds,
        execution_mode=execution_mode,
        seed=seed,
        interrupted=interrupted,
        entries=entries,
    )


def persist_artifact(artifact: ResultArtifact, results_dir: Path | str) -> Path:
    """Write the artifact to `<results_dir>/latest.json`, replacing any previous run."""
    results_dir = Path(results_dir)
    results_dir.mkdir(parents=True, exist_ok=True)
    latest_path = results_dir / "latest.json"
    latest_path.write_text(artifact.model_dump_json(indent=2), encoding="utf-8")

    log.info("Results persisted", extra={"path": str(latest_path)})
    return latest_path


def load_artifact(path: Path | str) -> ResultArtifact:
    return ResultArtifact.model_validate_json(Path(path).read_text(encoding="utf-8"))


__all__ = [
    "SCHEMA_VERSION",
    "ResultArtifact",
    "ResultEntry",
    "build_artifact",
    "load_artifact",
    "persist_artifact",
    "report_entries",
    "reports_from_artifact",
]
