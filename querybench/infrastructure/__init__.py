"""
Infrastructure package for querybench.

Holds the external collaborators of the benchmark core: the database
environment (provisioner + connection handle) and the dataset generator.
Keep this layer focused on I/O, decoupled from engine/reporting logic.
"""

from querybench.infrastructure.dataset import DatasetGenerator, SalesDatasetGenerator
from querybench.infrastructure.environment import (
    ConnectionHandle,
    EnvironmentProvisioner,
    PostgresProvisioner,
    PsycopgConnectionHandle,
    ResultCursor,
)

__all__ = [
    "ConnectionHandle",
    "DatasetGenerator",
    "EnvironmentProvisioner",
    "PostgresProvisioner",
    "PsycopgConnectionHandle",
    "ResultCursor",
    "SalesDatasetGenerator",
]
