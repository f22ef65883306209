"""
Execution engine: runs query variants and records per-execution timings.

Each execution is timed with a monotonic nanosecond clock from the moment the
statement is dispatched until its result set has been fully iterated, so
variants returning different row counts pay for materializing them.

Warmup executions run first and are consumed but never recorded. By default the
engine interleaves variants round-robin (V1, V2, V3, V1, V2, V3, ...) for both
warmup and measurement rounds; sequential mode runs one variant's whole block
before the next and is kept for comparison only.

Per-execution failures never raise: they come back as failed Measurements.

Usage:
    from querybench.engine import ExecutionEngine

    engine = ExecutionEngine(handle)
    samples = engine.run(variant, warmup_count=3, measured_count=10, timeout=30.0)
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from querybench.domain.models import ErrorKind, Measurement, QueryVariant
from querybench.errors import ExecutionError, StatementTimeout
from querybench.infrastructure.environment import ConnectionHandle
from querybench.utils.logging import get_logger

log = get_logger(__name__)

NANOS_PER_SECOND = 1_000_000_000


class ExecutionMode(str, Enum):
    INTERLEAVED = "interleaved"
    SEQUENTIAL = "sequential"


@dataclass(frozen=True)
class _Outcome:
    duration_nanos: int
    row_count: int = 0
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error_kind is not None


def _schedule(
    variants: Sequence[QueryVariant],
    warmup_count: int,
    measured_count: int,
    mode: ExecutionMode,
) -> Iterator[Tuple[bool, QueryVariant]]:
    """Yield (measured, variant) pairs in execution order."""
    if mode is ExecutionMode.INTERLEAVED:
        for _ in range(warmup_count):
            for variant in variants:
                yield False, variant
        for _ in range(measured_count):
            for variant in variants:
                yield True, variant
    else:
        for variant in variants:
            for _ in range(warmup_count):
                yield False, variant
            for _ in range(measured_count):
                yield True, variant


class ExecutionEngine:
    """
    Drive statement executions over one caller-owned connection handle.

    All executions are issued sequentially on the calling thread. `cancel()` may
    be called from another thread (or a KeyboardInterrupt may arrive during an
    execution); the engine then stops before the next iteration and returns what
    it has measured so far.
    """

    def __init__(
        self,
        handle: ConnectionHandle,
        clock: Callable[[], int] = time.perf_counter_ns,
    ) -> None:
        self._handle = handle
        self._clock = clock
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def _execute_once(self, variant: QueryVariant, timeout: Optional[float]) -> _Outcome:
        start = self._clock()
        try:
            cursor = self._handle.execute(variant.statement, timeout=timeout)
            try:
                row_count = 0
                for _ in cursor:
                    row_count += 1
            finally:
                cursor.close()
        except StatementTimeout as exc:
            return _Outcome(self._clock() - start, error_kind=ErrorKind.TIMEOUT, error_message=str(exc))
        except ExecutionError as exc:
            return _Outcome(
                self._clock() - start, error_kind=ErrorKind.EXECUTION_ERROR, error_message=str(exc)
            )
        elapsed = self._clock() - start

        if timeout is not None and elapsed > timeout * NANOS_PER_SECOND:
            return _Outcome(
                elapsed,
                row_count,
                error_kind=ErrorKind.TIMEOUT,
                error_message=f"Execution took {elapsed / NANOS_PER_SECOND:.3f}s (timeout {timeout}s)",
            )
        return _Outcome(elapsed, row_count)

    def run_all(
        self,
        variants: Sequence[QueryVariant],
        warmup_count: int,
        measured_count: int,
        timeout: Optional[float] = None,
        mode: ExecutionMode = ExecutionMode.INTERLEAVED,
    ) -> Dict[str, List[Measurement]]:
        """
        Run every variant `warmup_count + measured_count` times.

        Parameters
        ----------
        variants : sequence of QueryVariant
            Variants in their default (registration) order.
        warmup_count : int
            Unrecorded executions per variant, >= 0.
        measured_count : int
            Recorded executions per variant, >= 1.
        timeout : float | None
            Seconds allowed for each individual execution.
        mode : ExecutionMode
            Round-robin interleaving (default) or one block per variant.

        Returns
        -------
        dict[str, list[Measurement]]
            Measurements per variant id, in sequence order. Shorter than
            `measured_count` only if the run was cancelled.
        """
        if warmup_count < 0:
            raise ValueError("warmup_count must be >= 0")
        if measured_count < 1:
            raise ValueError("measured_count must be >= 1")
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive")
        ids = [variant.id for variant in variants]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Variant ids must be unique, got {ids}")

        mode = ExecutionMode(mode)
        results: Dict[str, List[Measurement]] = {variant_id: [] for variant_id in ids}
        total = len(variants) * (warmup_count + measured_count)

        log.info(
            "[ENGINE START]",
            extra={
                "variants": ids,
                "warmup_count": warmup_count,
                "measured_count": measured_count,
                "timeout_seconds": timeout,
                "mode": mode.value,
            },
        )
        for step, (measured, variant) in enumerate(
            _schedule(variants, warmup_count, measured_count, mode), start=1
        ):
            if self._cancelled.is_set():
                log.warning("[ENGINE CANCELLED] Stopping before next iteration", extra={"step": step})
                break
            try:
                outcome = self._execute_once(variant, timeout)
            except KeyboardInterrupt:
                log.warning("[ENGINE INTERRUPTED] Discarding in-flight execution", extra={"step": step})
                self._cancelled.set()
                break

            if not measured:
                if outcome.failed:
                    log.warning(
                        f"[WARMUP] {variant.id} failed",
                        extra={"variant": variant.id, "error": outcome.error_message},
                    )
                continue

            samples = results[variant.id]
            measurement = Measurement(
                variant_id=variant.id,
                sequence_number=len(samples),
                duration_nanos=outcome.duration_nanos,
                row_count=outcome.row_count,
                failed=outcome.failed,
                error_kind=outcome.error_kind,
                error_message=outcome.error_message,
            )
            samples.append(measurement)
            if measurement.failed:
                log.warning(
                    f"[RUN {step}/{total}] {variant.id} failed",
                    extra={
                        "variant": variant.id,
                        "sequence": measurement.sequence_number,
                        "error_kind": measurement.error_kind.value if measurement.error_kind else None,
                        "error": measurement.error_message,
                    },
                )
            else:
                log.debug(
                    f"[RUN {step}/{total}] {variant.id}",
                    extra={
                        "variant": variant.id,
                        "sequence": measurement.sequence_number,
                        "duration_ms": round(measurement.duration_nanos / 1_000_000, 3),
                        "rows": measurement.row_count,
                    },
                )

        log.info(
            "[ENGINE COMPLETE]",
            extra={
                "measurements": {variant_id: len(samples) for variant_id, samples in results.items()},
                "cancelled": self.cancelled,
            },
        )
        return results

    def run(
        self,
        variant: QueryVariant,
        warmup_count: int,
        measured_count: int,
        timeout: Optional[float] = None,
    ) -> List[Measurement]:
        """Run a single variant; see `run_all`."""
        return self.run_all([variant], warmup_count, measured_count, timeout)[variant.id]


__all__ = ["ExecutionEngine", "ExecutionMode"]
