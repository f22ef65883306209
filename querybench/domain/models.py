"""
Domain models for querybench.

Immutable records shared by the registry, execution engine, aggregator and
reporter. Durations are kept as integer nanoseconds from a monotonic clock;
millisecond views are derived for presentation and the result artifact.
"""
from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

NANOS_PER_MILLI = 1_000_000


def nanos_to_millis(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return value / NANOS_PER_MILLI


class ErrorKind(str, Enum):
    """Why a measured execution failed."""

    EXECUTION_ERROR = "execution_error"
    TIMEOUT = "timeout"


class QueryVariant(BaseModel):
    """
    One named, interchangeable implementation of the same logical query.
    """

    id: str = Field(..., min_length=1, description="Unique identifier within a registry.")
    display_name: str = Field(..., min_length=1, description="Human-friendly label.")
    statement: str = Field(..., min_length=1, description="Opaque SQL statement text.")
    description: str = Field("", description="What makes this variant different.")

    model_config = {"frozen": True}


class DatasetParameters(BaseModel):
    """Dataset size used for one benchmark pass."""

    person_count: int = Field(..., ge=1, description="Rows in the salesperson table.")
    record_count: int = Field(..., ge=0, description="Rows in the all_sales table.")

    model_config = {"frozen": True}

    def label(self) -> str:
        return f"persons={self.person_count:,} records={self.record_count:,}"


class Measurement(BaseModel):
    """
    Timing of a single measured execution.
    """

    variant_id: str
    sequence_number: int = Field(..., ge=0)
    duration_nanos: int = Field(..., ge=0)
    row_count: int = Field(0, ge=0)
    failed: bool = False
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _error_kind_matches_failed(self) -> "Measurement":
        if self.failed and self.error_kind is None:
            raise ValueError("failed measurements must carry an error_kind")
        if not self.failed and self.error_kind is not None:
            raise ValueError("successful measurements cannot carry an error_kind")
        return self


class AggregateResult(BaseModel):
    """
    Summary statistics for one variant's surviving (non-failed) measurements.

    When no measurement survived, `all_failed` is set and every statistic is
    None instead of being computed.
    """

    variant_id: str
    sample_count: int = Field(..., ge=0)
    failed_count: int = Field(0, ge=0)
    timeout_count: int = Field(0, ge=0)
    avg_nanos: Optional[float] = None
    min_nanos: Optional[int] = None
    max_nanos: Optional[int] = None
    median_nanos: Optional[float] = None
    stddev_nanos: Optional[float] = None
    all_failed: bool = False

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_bounds(self) -> "AggregateResult":
        if self.sample_count == 0:
            if not self.all_failed:
                raise ValueError("an aggregate without samples must be flagged all_failed")
            return self
        if self.all_failed:
            raise ValueError("an aggregate with samples cannot be flagged all_failed")
        if self.avg_nanos is None or self.min_nanos is None or self.max_nanos is None:
            raise ValueError("avg/min/max are required when samples are present")
        if not self.min_nanos <= self.avg_nanos <= self.max_nanos:
            raise ValueError(
                f"expected min <= avg <= max, got {self.min_nanos} / {self.avg_nanos} / {self.max_nanos}"
            )
        return self

    @property
    def avg_ms(self) -> Optional[float]:
        return nanos_to_millis(self.avg_nanos)

    @property
    def min_ms(self) -> Optional[float]:
        return nanos_to_millis(self.min_nanos)

    @property
    def max_ms(self) -> Optional[float]:
        return nanos_to_millis(self.max_nanos)

    @property
    def median_ms(self) -> Optional[float]:
        return nanos_to_millis(self.median_nanos)

    @property
    def stddev_ms(self) -> Optional[float]:
        return nanos_to_millis(self.stddev_nanos)


class RankedResult(BaseModel):
    """An aggregate placed in the ranking, with its slowdown versus the winner."""

    rank: int = Field(..., ge=1)
    result: AggregateResult
    slowdown_percent: float = Field(..., ge=0)

    model_config = {"frozen": True}


class ComparisonReport(BaseModel):
    """
    Variants ranked ascending by average duration, plus the ones that could
    not be ranked because every measured execution failed.
    """

    ranked: List[RankedResult] = Field(default_factory=list)
    unavailable: List[AggregateResult] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def winner(self) -> Optional[RankedResult]:
        return self.ranked[0] if self.ranked else None

    def ranking(self) -> List[str]:
        return [entry.result.variant_id for entry in self.ranked]


__all__ = [
    "NANOS_PER_MILLI",
    "AggregateResult",
    "ComparisonReport",
    "DatasetParameters",
    "ErrorKind",
    "Measurement",
    "QueryVariant",
    "RankedResult",
    "nanos_to_millis",
]
