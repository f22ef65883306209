from __future__ import annotations

import json
from pathlib import Path

from querybench.aggregator import aggregate
from querybench.artifact import (
    ResultArtifact,
    build_artifact,
    load_artifact,
    persist_artifact,
    reports_from_artifact,
)
from querybench.domain.models import DatasetParameters, ErrorKind, Measurement
from querybench.reporter import compare

MS = 1_000_000
SMALL = DatasetParameters(person_count=100, record_count=10_000)
LARGE = DatasetParameters(person_count=1_000, record_count=50_000)


def _report(durations_by_variant, failed=()):
    results = []
    for variant_id, durations in durations_by_variant.items():
        results.append(
            aggregate(
                variant_id,
                [
                    Measurement(variant_id=variant_id, sequence_number=i, duration_nanos=d)
                    for i, d in enumerate(durations)
                ],
            )
        )
    for variant_id in failed:
        results.append(
            aggregate(
                variant_id,
                [
                    Measurement(
                        variant_id=variant_id,
                        sequence_number=0,
                        duration_nanos=MS,
                        failed=True,
                        error_kind=ErrorKind.EXECUTION_ERROR,
                    )
                ],
            )
        )
    return compare(results)


def _artifact():
    small = _report(
        {"lateral": [1_234_567, 1_234_999, 1_300_001], "row_number": [2_500_000, 2_400_000]},
        failed=["correlated_subquery"],
    )
    large = _report({"lateral": [30 * MS, 31 * MS], "row_number": [12 * MS, 12 * MS, 13 * MS]})
    return build_artifact(
        [(SMALL, small), (LARGE, large)],
        warmup_count=3,
        measured_count=10,
        execution_mode="interleaved",
        timeout_seconds=30.0,
        seed=42,
        display_names={"lateral": "LATERAL derived table"},
    ), [small, large]


def test_artifact_has_one_entry_per_variant_and_parameter_set() -> None:
    artifact, _ = _artifact()

    assert len(artifact.entries) == 5
    first = artifact.entries[0]
    assert first.variant == "lateral"
    assert first.display_name == "LATERAL derived table"
    assert first.parameters == SMALL
    assert first.rank == 1
    assert first.slowdown_percent == 0.0
    assert first.avg_ms == 1.257
    assert first.min_ms == 1.235
    assert first.max_ms == 1.3
    failed = next(e for e in artifact.entries if e.variant == "correlated_subquery")
    assert failed.failed is True
    assert failed.rank is None
    assert failed.avg_ms is None


def test_artifact_field_names_are_stable() -> None:
    artifact, _ = _artifact()

    payload = json.loads(artifact.model_dump_json())
    entry = payload["entries"][0]

    assert set(entry) >= {
        "variant",
        "display_name",
        "parameters",
        "sample_count",
        "avg_ms",
        "min_ms",
        "max_ms",
        "failed",
    }
    assert entry["parameters"] == {"person_count": 100, "record_count": 10_000}


def test_round_trip_preserves_ranking_and_sample_counts() -> None:
    artifact, originals = _artifact()

    parsed = ResultArtifact.model_validate_json(artifact.model_dump_json())
    rebuilt = reports_from_artifact(parsed)

    assert [parameters for parameters, _ in rebuilt] == [SMALL, LARGE]
    for (_, report), original in zip(rebuilt, originals):
        assert report.ranking() == original.ranking()
        assert [e.result.sample_count for e in report.ranked] == [
            e.result.sample_count for e in original.ranked
        ]
        assert [r.variant_id for r in report.unavailable] == [
            r.variant_id for r in original.unavailable
        ]


def test_persist_replaces_latest(tmp_path: Path) -> None:
    artifact, _ = _artifact()
    stale = artifact.model_copy(update={"interrupted": True, "entries": []})

    persist_artifact(stale, tmp_path / "results")
    path = persist_artifact(artifact, tmp_path / "results")

    assert path == tmp_path / "results" / "latest.json"
    assert [p.name for p in (tmp_path / "results").iterdir()] == ["latest.json"]
    assert load_artifact(path).entries == artifact.entries
    assert load_artifact(path).interrupted is False
