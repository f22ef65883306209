"""
Domain package for querybench.

Exports the immutable records passed between the registry, engine, aggregator
and reporter. Keep this package focused on data definitions and validation.
"""

from querybench.domain.models import (
    AggregateResult,
    ComparisonReport,
    DatasetParameters,
    ErrorKind,
    Measurement,
    QueryVariant,
    RankedResult,
)

__all__ = [
    "AggregateResult",
    "ComparisonReport",
    "DatasetParameters",
    "ErrorKind",
    "Measurement",
    "QueryVariant",
    "RankedResult",
]
