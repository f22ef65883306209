"""
querybench - compare interchangeable SQL query variants on a shared dataset.

The package runs a fixed set of query variants against one database under
controlled warmup/measurement conditions, aggregates per-execution timings and
ranks the variants:

- Query registry of named, opaque SQL statements
- Execution engine with warmup discard, round-robin interleaving and timeouts
- Statistics aggregation (count, mean, min, max, median, stddev)
- Ranking with percentage slowdown versus the winner
- Rich console tables and a stable JSON result artifact
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from querybench.aggregator import aggregate, aggregate_all
from querybench.config import Settings, get_settings
from querybench.domain.models import (
    AggregateResult,
    ComparisonReport,
    DatasetParameters,
    ErrorKind,
    Measurement,
    QueryVariant,
)
from querybench.engine import ExecutionEngine, ExecutionMode
from querybench.errors import (
    ConfigurationError,
    DuplicateVariantError,
    ExecutionError,
    GenerationError,
    ProvisionError,
    StatementTimeout,
)
from querybench.orchestrator import RunConfig, run_benchmark
from querybench.queries import default_registry
from querybench.registry import QueryRegistry
from querybench.reporter import compare, print_report
from querybench.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "AggregateResult",
    "ComparisonReport",
    "DatasetParameters",
    "ErrorKind",
    "Measurement",
    "QueryVariant",
    # Core
    "QueryRegistry",
    "default_registry",
    "ExecutionEngine",
    "ExecutionMode",
    "aggregate",
    "aggregate_all",
    "compare",
    "print_report",
    # Orchestration
    "RunConfig",
    "run_benchmark",
    # Errors
    "ConfigurationError",
    "DuplicateVariantError",
    "ExecutionError",
    "GenerationError",
    "ProvisionError",
    "StatementTimeout",
    # Logging
    "configure_logging",
    "get_logger",
]
