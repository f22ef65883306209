"""
Comparison reporter: rank aggregates and present them.

`compare` builds the one ComparisonReport value; the rich table, the plain-text
summary lines and the JSON artifact (see `querybench.artifact`) are all derived
from it and never from re-running anything.
"""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from querybench.domain.models import AggregateResult, ComparisonReport, RankedResult

# A measured duration of exactly zero is treated as one clock tick so the
# slowdown ratio against the winner stays defined.
MIN_CLOCK_TICK_NANOS = 1.0


def _effective_nanos(value: Optional[float]) -> float:
    return max(value or 0.0, MIN_CLOCK_TICK_NANOS)


def slowdown_percent(avg_nanos: float, winner_avg_nanos: float) -> float:
    """Percentage by which `avg_nanos` is slower than the winner's average."""
    return (_effective_nanos(avg_nanos) / _effective_nanos(winner_avg_nanos) - 1) * 100


def compare(results: Iterable[AggregateResult]) -> ComparisonReport:
    """
    Rank aggregates ascending by average duration.

    All-failed aggregates are not ranked; they are listed as unavailable in the
    order they were given. Ties on the average are broken by variant id.
    """
    results = list(results)
    ids = [r.variant_id for r in results]
    if len(set(ids)) != len(ids):
        raise ValueError(f"Duplicate variant ids in results: {ids}")

    available = sorted(
        (r for r in results if not r.all_failed),
        key=lambda r: (r.avg_nanos, r.variant_id),
    )
    unavailable = [r for r in results if r.all_failed]

    ranked: List[RankedResult] = []
    if available:
        winner_avg = available[0].avg_nanos or 0.0
        for rank, result in enumerate(available, start=1):
            ranked.append(
                RankedResult(
                    rank=rank,
                    result=result,
                    slowdown_percent=0.0 if rank == 1 else slowdown_percent(result.avg_nanos or 0.0, winner_avg),
                )
            )

    return ComparisonReport(ranked=ranked, unavailable=unavailable)


def _ms(value: Optional[float]) -> str:
    return "N/A" if value is None else f"{value:,.2f}"


def _failures(result: AggregateResult) -> str:
    if not result.failed_count:
        return "0"
    if result.timeout_count:
        return f"{result.failed_count} ({result.timeout_count} timeout)"
    return str(result.failed_count)


def render_report(
    report: ComparisonReport,
    title: str = "Query Variant Comparison",
    display_names: Optional[Mapping[str, str]] = None,
) -> Table:
    """
    Render a ComparisonReport as a rich table, winner first and unavailable last.
    """
    names = display_names or {}
    table = Table(
        title=title,
        box=box.ROUNDED,
        caption="Sorted by average duration (ascending)",
    )

    table.add_column("#", justify="right", style="blue")
    table.add_column("Variant", style="cyan", no_wrap=True)
    table.add_column("Samples", justify="right", style="magenta")
    table.add_column("Avg (ms)", justify="right", style="bold green")
    table.add_column("Min (ms)", justify="right", style="green")
    table.add_column("Max (ms)", justify="right", style="green")
    table.add_column("Median (ms)", justify="right", style="green")
    table.add_column("StdDev (ms)", justify="right", style="yellow")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("vs Winner", justify="right", style="bold")

    for entry in report.ranked:
        result = entry.result
        table.add_row(
            str(entry.rank),
            names.get(result.variant_id, result.variant_id),
            str(result.sample_count),
            _ms(result.avg_ms),
            _ms(result.min_ms),
            _ms(result.max_ms),
            _ms(result.median_ms),
            _ms(result.stddev_ms),
            _failures(result),
            "winner" if entry.rank == 1 else f"+{entry.slowdown_percent:.1f}%",
        )

    for result in report.unavailable:
        table.add_row(
            "-",
            names.get(result.variant_id, result.variant_id),
            "0",
            "N/A",
            "N/A",
            "N/A",
            "N/A",
            "N/A",
            _failures(result),
            "[red]unavailable[/red]",
        )

    return table


def summary_lines(
    report: ComparisonReport,
    display_names: Optional[Mapping[str, str]] = None,
) -> List[str]:
    """Plain-text verdict lines: the winner, each slowdown, each unavailable variant."""
    names = display_names or {}
    winner = report.winner
    if winner is None:
        lines = ["No variant produced a successful measurement."]
    else:
        winner_name = names.get(winner.result.variant_id, winner.result.variant_id)
        lines = [f"Winner: {winner_name} (avg {_ms(winner.result.avg_ms)} ms)"]
        for entry in report.ranked[1:]:
            name = names.get(entry.result.variant_id, entry.result.variant_id)
            lines.append(
                f"{name} is {entry.slowdown_percent:.1f}% slower than {winner_name} "
                f"(avg {_ms(entry.result.avg_ms)} ms)"
            )
    for result in report.unavailable:
        name = names.get(result.variant_id, result.variant_id)
        if result.failed_count:
            lines.append(f"{name} unavailable: all {result.failed_count} measured executions failed")
        else:
            lines.append(f"{name} unavailable: no measurements collected")
    return lines


def print_report(
    report: ComparisonReport,
    title: str = "Query Variant Comparison",
    display_names: Optional[Mapping[str, str]] = None,
    console: Optional[Console] = None,
) -> None:
    console = console or Console()
    if not report.ranked and not report.unavailable:
        console.print("[yellow]No results to display.[/yellow]")
        return
    console.print(render_report(report, title=title, display_names=display_names))
    for line in summary_lines(report, display_names=display_names):
        console.print(line, markup=False, highlight=False)


__all__ = [
    "MIN_CLOCK_TICK_NANOS",
    "compare",
    "print_report",
    "render_report",
    "slowdown_percent",
    "summary_lines",
]
