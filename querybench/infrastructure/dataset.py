"""
Synthetic sales dataset for querybench.

Implements deterministic pseudo-random row generation and PostgreSQL COPY
loading. `populate` drops and recreates its tables, so calling it again (for
the next parameter set, or a rerun) always leaves exactly the requested volume.

Schema:
    salesperson(id, name)
    all_sales(id, salesperson_id, customer_name, amount, sale_date)
      + idx_salesperson (salesperson_id)
      + idx_salesperson_amount (salesperson_id, amount DESC)
"""

from __future__ import annotations

import random
import time
from datetime import date
from decimal import Decimal
from typing import Iterator, Protocol, Tuple, runtime_checkable

import psycopg
from psycopg import Connection

from querybench.errors import GenerationError
from querybench.infrastructure.environment import PsycopgConnectionHandle
from querybench.utils.logging import get_logger

log = get_logger(__name__)

SALE_DATE = date(2024, 1, 1)
CUSTOMER_POOL = 10_000
MAX_AMOUNT = 50_000

SCHEMA_STATEMENTS = (
    "DROP TABLE IF EXISTS all_sales",
    "DROP TABLE IF EXISTS salesperson",
    """
    CREATE TABLE salesperson (
        id INTEGER PRIMARY KEY,
        name VARCHAR(100) NOT NULL
    )
    """,
    """
    CREATE TABLE all_sales (
        id INTEGER PRIMARY KEY,
        salesperson_id INTEGER NOT NULL,
        customer_name VARCHAR(100) NOT NULL,
        amount NUMERIC(10, 2) NOT NULL,
        sale_date DATE NOT NULL
    )
    """,
)

DISABLE_TIMEOUT_STATEMENT = "SET LOCAL statement_timeout = 0"

INDEX_STATEMENTS = (
    "CREATE INDEX idx_salesperson ON all_sales (salesperson_id)",
    "CREATE INDEX idx_salesperson_amount ON all_sales (salesperson_id, amount DESC)",
    "ANALYZE salesperson",
    "ANALYZE all_sales",
)

SaleRow = Tuple[int, int, str, Decimal, date]


@runtime_checkable
class DatasetGenerator(Protocol):
    """Populates the environment before measurement begins."""

    def populate(self, person_count: int, record_count: int) -> None:
        """Load the dataset or raise GenerationError."""
        ...


def generate_salespeople(person_count: int) -> Iterator[Tuple[int, str]]:
    for person_id in range(1, person_count + 1):
        yield person_id, f"Salesperson_{person_id}"


def generate_sales(person_count: int, record_count: int, seed: int) -> Iterator[SaleRow]:
    """
    Yield `record_count` sales spread round-robin across salespeople.

    Customer names and amounts come from a `random.Random(seed)` stream, so the
    same arguments always produce the same rows.
    """
    if person_count < 1:
        raise ValueError("person_count must be at least 1")
    rng = random.Random(seed)
    for i in range(record_count):
        amount = Decimal(f"{rng.uniform(0, MAX_AMOUNT):.2f}")
        yield (
            i + 1,
            (i % person_count) + 1,
            f"Customer_{rng.randrange(CUSTOMER_POOL)}",
            amount,
            SALE_DATE,
        )


class SalesDatasetGenerator:
    """
    Load the salesperson / all_sales dataset through one psycopg connection.
    """

    def __init__(self, connection: Connection, seed: int = 42) -> None:
        self._connection = connection
        self.seed = seed

    @classmethod
    def for_handle(cls, handle: PsycopgConnectionHandle, seed: int = 42) -> "SalesDatasetGenerator":
        return cls(handle.connection, seed=seed)

    def populate(self, person_count: int, record_count: int) -> None:
        if person_count < 1 or record_count < 0:
            raise GenerationError(
                f"Invalid dataset size persons={person_count} records={record_count}"
            )
        start = time.perf_counter()
        try:
            with self._connection.transaction():
                with self._connection.cursor() as cur:
                    # The session may carry the benchmark's per-execution timeout.
                    cur.execute(DISABLE_TIMEOUT_STATEMENT)
                    for statement in SCHEMA_STATEMENTS:
                        cur.execute(statement)
                    with cur.copy("COPY salesperson (id, name) FROM STDIN") as copy:
                        for row in generate_salespeople(person_count):
                            copy.write_row(row)
                    with cur.copy(
                        "COPY all_sales (id, salesperson_id, customer_name, amount, sale_date) "
                        "FROM STDIN"
                    ) as copy:
                        for row in generate_sales(person_count, record_count, self.seed):
                            copy.write_row(row)
                    for statement in INDEX_STATEMENTS:
                        cur.execute(statement)
        except psycopg.Error as exc:
            raise GenerationError(f"Dataset population failed: {exc}") from exc

        log.info(
            "Dataset populated",
            extra={
                "person_count": person_count,
                "record_count": record_count,
                "seed": self.seed,
                "duration_seconds": round(time.perf_counter() - start, 2),
            },
        )


__all__ = [
    "DatasetGenerator",
    "SalesDatasetGenerator",
    "generate_sales",
    "generate_salespeople",
]
