from __future__ import annotations

from typing import List

import pytest

from querybench.domain.models import ErrorKind, QueryVariant
from querybench.engine import ExecutionEngine, ExecutionMode
from querybench.errors import ExecutionError, StatementTimeout

from tests.fakes import FakeClock, FakeHandle

WARMUP_COUNT = 3
MEASURED_COUNT = 10
STEP_NANOS = 2_000_000


def test_run_issues_warmup_plus_measured_executions(clock: FakeClock, variants: List[QueryVariant]) -> None:
    handle = FakeHandle(clock, default_nanos=STEP_NANOS)
    engine = ExecutionEngine(handle, clock=clock)

    measurements = engine.run(variants[0], WARMUP_COUNT, MEASURED_COUNT, timeout=5.0)

    assert len(handle.calls) == WARMUP_COUNT + MEASURED_COUNT
    assert len(measurements) == MEASURED_COUNT
    assert [m.sequence_number for m in measurements] == list(range(MEASURED_COUNT))
    assert all(m.variant_id == variants[0].id for m in measurements)
    assert all(m.duration_nanos == STEP_NANOS for m in measurements)
    assert all(not m.failed for m in measurements)
    assert all(timeout == 5.0 for timeout in handle.timeouts)


def test_timing_includes_result_set_iteration(clock: FakeClock, variants: List[QueryVariant]) -> None:
    handle = FakeHandle(clock, rows=4, nanos_per_row=250, default_nanos=1_000)
    engine = ExecutionEngine(handle, clock=clock)

    measurements = engine.run(variants[0], warmup_count=1, measured_count=2)

    assert [m.duration_nanos for m in measurements] == [2_000, 2_000]
    assert [m.row_count for m in measurements] == [4, 4]
    # Warmup results are consumed too, and every cursor is closed.
    assert all(cursor.consumed == 4 for cursor in handle.cursors)
    assert all(cursor.closed for cursor in handle.cursors)


def test_interleaved_mode_round_robins_variants(clock: FakeClock, variants: List[QueryVariant]) -> None:
    handle = FakeHandle(clock)
    engine = ExecutionEngine(handle, clock=clock)

    results = engine.run_all(variants, warmup_count=0, measured_count=2)

    v1, v2, v3 = (v.statement for v in variants)
    assert handle.calls == [v1, v2, v3, v1, v2, v3]
    assert {k: len(v) for k, v in results.items()} == {"variant1": 2, "variant2": 2, "variant3": 2}


def test_interleaved_mode_runs_warmup_rounds_first(clock: FakeClock, variants: List[QueryVariant]) -> None:
    handle = FakeHandle(clock)
    engine = ExecutionEngine(handle, clock=clock)

    engine.run_all(variants[:2], warmup_count=1, measured_count=1, mode=ExecutionMode.INTERLEAVED)

    v1, v2 = (v.statement for v in variants[:2])
    assert handle.calls == [v1, v2, v1, v2]


def test_sequential_mode_runs_blocks(clock: FakeClock, variants: List[QueryVariant]) -> None:
    handle = FakeHandle(clock)
    engine = ExecutionEngine(handle, clock=clock)

    engine.run_all(variants, warmup_count=0, measured_count=2, mode=ExecutionMode.SEQUENTIAL)

    v1, v2, v3 = (v.statement for v in variants)
    assert handle.calls == [v1, v1, v2, v2, v3, v3]


def test_execution_error_is_recorded_and_run_continues(clock: FakeClock, variants: List[QueryVariant]) -> None:
    variant = variants[0]
    handle = FakeHandle(clock, script={variant.statement: [ExecutionError("syntax error"), 500, 700]})
    engine = ExecutionEngine(handle, clock=clock)

    measurements = engine.run(variant, warmup_count=0, measured_count=3)

    assert [m.failed for m in measurements] == [True, False, False]
    assert measurements[0].error_kind is ErrorKind.EXECUTION_ERROR
    assert measurements[0].error_message == "syntax error"
    assert [m.duration_nanos for m in measurements[1:]] == [500, 700]


def test_statement_timeout_is_tagged_distinctly(clock: FakeClock, variants: List[QueryVariant]) -> None:
    variant = variants[0]
    handle = FakeHandle(clock, script={variant.statement: [StatementTimeout("canceling statement"), 500]})
    engine = ExecutionEngine(handle, clock=clock)

    measurements = engine.run(variant, warmup_count=0, measured_count=2, timeout=1.0)

    assert measurements[0].failed
    assert measurements[0].error_kind is ErrorKind.TIMEOUT
    assert not measurements[1].failed


def test_over_budget_execution_is_marked_timeout(clock: FakeClock, variants: List[QueryVariant]) -> None:
    variant = variants[0]
    handle = FakeHandle(clock, script={variant.statement: [2_000_000_000, 100]})
    engine = ExecutionEngine(handle, clock=clock)

    measurements = engine.run(variant, warmup_count=0, measured_count=2, timeout=1.0)

    assert measurements[0].error_kind is ErrorKind.TIMEOUT
    assert measurements[0].duration_nanos == 2_000_000_000
    assert not measurements[1].failed


def test_every_execution_timing_out_returns_all_failed_sequence(
    clock: FakeClock, variants: List[QueryVariant]
) -> None:
    variant = variants[0]
    handle = FakeHandle(
        clock, script={variant.statement: [StatementTimeout("too slow") for _ in range(4)]}
    )
    engine = ExecutionEngine(handle, clock=clock)

    measurements = engine.run(variant, warmup_count=0, measured_count=4, timeout=0.5)

    assert len(measurements) == 4
    assert all(m.failed and m.error_kind is ErrorKind.TIMEOUT for m in measurements)


def test_warmup_failures_are_not_recorded(clock: FakeClock, variants: List[QueryVariant]) -> None:
    variant = variants[0]
    handle = FakeHandle(clock, script={variant.statement: [ExecutionError("cold"), ExecutionError("cold")]})
    engine = ExecutionEngine(handle, clock=clock)

    measurements = engine.run(variant, warmup_count=2, measured_count=3)

    assert len(handle.calls) == 5
    assert len(measurements) == 3
    assert not any(m.failed for m in measurements)


def test_keyboard_interrupt_returns_partial_measurements(
    clock: FakeClock, variants: List[QueryVariant]
) -> None:
    variant = variants[0]
    handle = FakeHandle(clock, script={variant.statement: [100, 100, 100, KeyboardInterrupt()]})
    engine = ExecutionEngine(handle, clock=clock)

    measurements = engine.run(variant, warmup_count=0, measured_count=10)

    assert engine.cancelled
    assert len(measurements) == 3
    assert len(handle.calls) == 4


def test_cancel_stops_before_next_iteration(clock: FakeClock, variants: List[QueryVariant]) -> None:
    class CancellingHandle(FakeHandle):
        engine: ExecutionEngine

        def execute(self, statement, timeout=None):
            cursor = super().execute(statement, timeout)
            if len(self.calls) == 4:
                self.engine.cancel()
            return cursor

    handle = CancellingHandle(clock)
    engine = ExecutionEngine(handle, clock=clock)
    handle.engine = engine

    results = engine.run_all(variants, warmup_count=0, measured_count=3)

    # The fourth execution completes and is kept; nothing starts afterwards.
    assert len(handle.calls) == 4
    assert [len(results[v.id]) for v in variants] == [2, 1, 1]


@pytest.mark.parametrize(
    ("warmup", "measured", "timeout"),
    [(-1, 1, None), (0, 0, None), (0, 1, 0.0)],
)
def test_invalid_arguments_raise(clock: FakeClock, variants: List[QueryVariant], warmup, measured, timeout) -> None:
    engine = ExecutionEngine(FakeHandle(clock), clock=clock)

    with pytest.raises(ValueError):
        engine.run(variants[0], warmup, measured, timeout)


def test_duplicate_variant_ids_rejected(clock: FakeClock, variants: List[QueryVariant]) -> None:
    engine = ExecutionEngine(FakeHandle(clock), clock=clock)

    with pytest.raises(ValueError):
        engine.run_all([variants[0], variants[0]], warmup_count=0, measured_count=1)
