"""
Statistics aggregator: reduce one variant's measurements to summary statistics.

Failed measurements are dropped before reducing. The mean is computed from the
exact integer sum of nanosecond durations (Python ints do not overflow) with a
single division at the end. A variant with no surviving samples is flagged
`all_failed` and carries no statistics.
"""

from __future__ import annotations

import statistics
from typing import Dict, Iterable, List, Mapping, Sequence

from querybench.domain.models import AggregateResult, ErrorKind, Measurement


def aggregate(variant_id: str, measurements: Iterable[Measurement]) -> AggregateResult:
    samples: List[int] = []
    failed_count = 0
    timeout_count = 0
    for measurement in measurements:
        if measurement.variant_id != variant_id:
            raise ValueError(
                f"Measurement for '{measurement.variant_id}' passed to aggregate('{variant_id}')"
            )
        if measurement.failed:
            failed_count += 1
            if measurement.error_kind is ErrorKind.TIMEOUT:
                timeout_count += 1
            continue
        samples.append(measurement.duration_nanos)

    if not samples:
        return AggregateResult(
            variant_id=variant_id,
            sample_count=0,
            failed_count=failed_count,
            timeout_count=timeout_count,
            all_failed=True,
        )

    return AggregateResult(
        variant_id=variant_id,
        sample_count=len(samples),
        failed_count=failed_count,
        timeout_count=timeout_count,
        avg_nanos=sum(samples) / len(samples),
        min_nanos=min(samples),
        max_nanos=max(samples),
        median_nanos=float(statistics.median(samples)),
        stddev_nanos=statistics.stdev(samples) if len(samples) > 1 else 0.0,
    )


def aggregate_all(
    measurements: Mapping[str, Sequence[Measurement]],
    order: Iterable[str] | None = None,
) -> List[AggregateResult]:
    """Aggregate every variant, keeping `order` (defaults to mapping order)."""
    variant_ids = list(order) if order is not None else list(measurements)
    by_id: Dict[str, Sequence[Measurement]] = dict(measurements)
    return [aggregate(variant_id, by_id.get(variant_id, ())) for variant_id in variant_ids]


__all__ = ["aggregate", "aggregate_all"]
