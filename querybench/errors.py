"""
Error taxonomy for querybench.

Only configuration and provisioning/generation errors are meant to unwind out of
the benchmark core. Per-execution errors (`ExecutionError`, `StatementTimeout`)
are raised by connection handles and captured by the execution engine as failed
measurements.
"""

from __future__ import annotations


class QueryBenchError(Exception):
    """Base class for all querybench errors."""


class ProvisionError(QueryBenchError):
    """The database environment could not be started or reached."""


class GenerationError(QueryBenchError):
    """The dataset could not be populated."""


class ExecutionError(QueryBenchError):
    """A single statement execution failed."""


class StatementTimeout(ExecutionError):
    """A single statement execution exceeded its timeout and was cancelled."""


class ConfigurationError(QueryBenchError):
    """The benchmark definition itself is inconsistent."""


class DuplicateVariantError(ConfigurationError):
    """A query variant id was registered twice."""

    def __init__(self, variant_id: str) -> None:
        super().__init__(f"Query variant '{variant_id}' is already registered")
        self.variant_id = variant_id


class RegistryFrozenError(ConfigurationError):
    """The registry was mutated after the benchmark run began."""


__all__ = [
    "QueryBenchError",
    "ProvisionError",
    "GenerationError",
    "ExecutionError",
    "StatementTimeout",
    "ConfigurationError",
    "DuplicateVariantError",
    "RegistryFrozenError",
]
