"""
Database environment for querybench.

Defines the provisioner / connection-handle contracts the execution engine
depends on, plus the PostgreSQL implementation used by the CLI. The provisioner
connects to an already-running instance (e.g. started with docker compose); it
never manages container or process lifecycle itself.

The handle is an explicit object owned by the caller and passed into the
engine. There is no process-wide connection singleton.

Includes retry logic for transient connection failures using tenacity.
"""

from __future__ import annotations

from typing import Any, Iterator, Optional, Protocol, Sequence, runtime_checkable

import psycopg
from psycopg import Connection
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from querybench.config import Settings, build_dsn, get_settings
from querybench.errors import ExecutionError, ProvisionError, StatementTimeout
from querybench.utils.logging import get_logger

log = get_logger(__name__)


@runtime_checkable
class ResultCursor(Protocol):
    """Iterable over the rows of one executed statement."""

    def __iter__(self) -> Iterator[Sequence[Any]]: ...

    def close(self) -> None: ...


@runtime_checkable
class ConnectionHandle(Protocol):
    """A single live connection that executes statements synchronously."""

    def execute(self, statement: str, timeout: Optional[float] = None) -> ResultCursor:
        """
        Dispatch a statement and return a cursor over its rows.

        Raises
        ------
        StatementTimeout
            If the statement ran longer than `timeout` seconds and was cancelled.
        ExecutionError
            For any other failure while executing the statement.
        """
        ...


@runtime_checkable
class EnvironmentProvisioner(Protocol):
    """Lifecycle of the database the benchmark runs against: start -> ready -> stop."""

    def start(self) -> ConnectionHandle:
        """Return a ready connection handle or raise ProvisionError."""
        ...

    def stop(self) -> None: ...


def apply_statement_timeout(cur: psycopg.Cursor, timeout_ms: Optional[int]) -> None:
    """Set the session statement_timeout; 0 or None disables it."""
    cur.execute("SELECT set_config('statement_timeout', %s, false)", (str(timeout_ms or 0),))


class PsycopgResultCursor:
    """Wraps a psycopg cursor so row iteration reports driver errors as ExecutionError."""

    def __init__(self, cursor: psycopg.Cursor) -> None:
        self._cursor = cursor

    def __iter__(self) -> Iterator[Sequence[Any]]:
        try:
            yield from self._cursor
        except psycopg.errors.QueryCanceled as exc:
            raise StatementTimeout(str(exc)) from exc
        except psycopg.Error as exc:
            raise ExecutionError(str(exc)) from exc

    def close(self) -> None:
        self._cursor.close()


class PsycopgConnectionHandle:
    """
    ConnectionHandle backed by one autocommit psycopg connection.

    Timeouts are enforced server-side via `statement_timeout`, so a runaway
    statement is cancelled by PostgreSQL and surfaces as QueryCanceled.
    """

    def __init__(self, connection: Connection) -> None:
        self.connection = connection
        self._timeout_ms: Optional[int] = None

    def _set_timeout(self, timeout: Optional[float]) -> None:
        # Sub-millisecond budgets round up: 0 would disable the timeout.
        timeout_ms = max(1, round(timeout * 1000)) if timeout else None
        if timeout_ms == self._timeout_ms:
            return
        with self.connection.cursor() as cur:
            apply_statement_timeout(cur, timeout_ms)
        self._timeout_ms = timeout_ms

    def execute(self, statement: str, timeout: Optional[float] = None) -> PsycopgResultCursor:
        cur = self.connection.cursor()
        try:
            self._set_timeout(timeout)
            cur.execute(statement)
        except psycopg.errors.QueryCanceled as exc:
            cur.close()
            raise StatementTimeout(str(exc)) from exc
        except psycopg.Error as exc:
            cur.close()
            raise ExecutionError(str(exc)) from exc
        return PsycopgResultCursor(cur)

    def close(self) -> None:
        self.connection.close()


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def connect(dsn: str, connect_timeout: int = 10) -> Connection:
    """
    Open an autocommit connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.
    """
    return psycopg.connect(dsn, autocommit=True, connect_timeout=connect_timeout)


class PostgresProvisioner:
    """
    Provision access to a running PostgreSQL instance described by settings.

    Example
    -------
        provisioner = PostgresProvisioner()
        handle = provisioner.start()
        try:
            ...
        finally:
            provisioner.stop()
    """

    def __init__(self, settings: Optional[Settings] = None, dsn: Optional[str] = None) -> None:
        self._settings = settings or get_settings()
        self._dsn = dsn or build_dsn(self._settings)
        self._handle: Optional[PsycopgConnectionHandle] = None

    def start(self) -> PsycopgConnectionHandle:
        if self._handle is not None:
            return self._handle
        try:
            conn = connect(self._dsn, connect_timeout=self._settings.db_connect_timeout)
            with conn.cursor() as cur:
                cur.execute("SELECT version()")
                row = cur.fetchone()
        except psycopg.Error as exc:
            raise ProvisionError(
                f"Could not reach PostgreSQL at {self._settings.db_host}:{self._settings.db_port}: {exc}"
            ) from exc
        log.info(
            "Database ready",
            extra={
                "host": self._settings.db_host,
                "port": self._settings.db_port,
                "database": self._settings.db_name,
                "server_version": row[0] if row else None,
            },
        )
        self._handle = PsycopgConnectionHandle(conn)
        return self._handle

    def stop(self) -> None:
        if self._handle is None:
            return
        try:
            self._handle.close()
        except psycopg.Error:
            log.warning("Error while closing database connection", exc_info=True)
        finally:
            self._handle = None


__all__ = [
    "ConnectionHandle",
    "EnvironmentProvisioner",
    "PostgresProvisioner",
    "PsycopgConnectionHandle",
    "PsycopgResultCursor",
    "ResultCursor",
    "apply_statement_timeout",
    "connect",
]
