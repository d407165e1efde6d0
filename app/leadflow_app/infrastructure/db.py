from __future__ import annotations

import contextvars
from contextlib import closing, contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
import hashlib
import logging
from pathlib import Path
import sqlite3
import threading
import time
from typing import Any, Callable, Iterable, Iterator, Sequence

import pandas as pd
import psycopg

from leadflow_app.core.config import AppConfig
from leadflow_app.core.env import (
    LEADFLOW_SLOW_QUERY_MS,
    LEADFLOW_SQL_TRACE_ENABLED,
    get_env_bool,
    get_env_float,
)

PERF_LOGGER = logging.getLogger("leadflow_app.perf")

MAX_SLOW_QUERIES_PER_REQUEST = 10
_CONNECTION_ERROR_HINTS = ("connection", "closed", "timeout", "unreachable", "network", "socket")


class DataConnectionError(RuntimeError):
    """The database could not be reached."""


class DataQueryError(RuntimeError):
    """A SELECT (or RETURNING statement) failed."""


class DataExecutionError(RuntimeError):
    """An INSERT/UPDATE/DELETE failed."""


@dataclass
class RequestPerf:
    """DB timings collected while one API request is served."""

    request_id: str
    method: str
    path: str
    slow_query_ms: float
    db_calls: int = 0
    db_total_ms: float = 0.0
    db_max_ms: float = 0.0
    db_errors: int = 0
    slow_queries: list[dict[str, Any]] = field(default_factory=list)

    def record(self, operation: str, sql_hash: str, preview: str, elapsed_ms: float, rows: int | None, error: bool) -> None:
        self.db_calls += 1
        self.db_total_ms += elapsed_ms
        self.db_max_ms = max(self.db_max_ms, elapsed_ms)
        if error:
            self.db_errors += 1
        if elapsed_ms >= self.slow_query_ms and len(self.slow_queries) < MAX_SLOW_QUERIES_PER_REQUEST:
            self.slow_queries.append(
                {
                    "operation": operation,
                    "elapsed_ms": round(elapsed_ms, 2),
                    "rows": rows,
                    "sql_hash": sql_hash,
                    "sql": preview,
                }
            )


_REQUEST_PERF: contextvars.ContextVar[RequestPerf | None] = contextvars.ContextVar("leadflow_request_perf", default=None)


def start_request_perf_context(*, request_id: str, method: str, path: str, slow_query_ms: float) -> contextvars.Token:
    return _REQUEST_PERF.set(RequestPerf(request_id, method, path, float(slow_query_ms)))


def get_request_perf_context() -> RequestPerf | None:
    return _REQUEST_PERF.get()


def clear_request_perf_context(token: contextvars.Token) -> None:
    _REQUEST_PERF.reset(token)


def _sql_preview(statement: str, max_len: int = 180) -> str:
    compact = " ".join(statement.split())
    return compact if len(compact) <= max_len else f"{compact[: max_len - 3]}..."


class SQLSession:
    """Statements bound to one open connection inside a transaction."""

    def __init__(self, client: "SQLClient", conn: Any) -> None:
        self._client = client
        self._conn = conn

    def query(self, statement: str, params: Iterable[Any] | None = None) -> pd.DataFrame:
        return self._client._run_query(self._conn, statement, params)

    def execute(self, statement: str, params: Iterable[Any] | None = None) -> int:
        return self._client._run_execute(self._conn, statement, params)

    def execute_many(self, statement: str, rows: Sequence[Iterable[Any]]) -> int:
        return self._client._run_execute_many(self._conn, statement, rows)


class SQLClient:
    """Runs lead SQL against the local SQLite file (dev/tests) or Postgres (Supabase)."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self._local = threading.local()
        self._sql_trace_enabled = get_env_bool(LEADFLOW_SQL_TRACE_ENABLED, default=False)
        self._slow_query_ms = get_env_float(LEADFLOW_SLOW_QUERY_MS, default=750.0, min_value=1.0)

    @property
    def dialect(self) -> str:
        return "sqlite" if self.config.use_local_db else "postgres"

    def close(self) -> None:
        conn = getattr(self._local, "conn", None)
        self._local.conn = None
        if conn is not None:
            try:
                conn.close()
            except psycopg.Error:
                PERF_LOGGER.debug("Ignoring error while closing a broken connection.", exc_info=True)

    @staticmethod
    def _is_connection_error(exc: BaseException) -> bool:
        root = exc.__cause__ or exc
        if isinstance(root, psycopg.OperationalError):
            return True
        message = str(root).lower()
        return any(hint in message for hint in _CONNECTION_ERROR_HINTS)

    def _connect_local(self) -> sqlite3.Connection:
        db_path = Path(self.config.local_db_path).resolve()
        if not db_path.exists():
            raise DataConnectionError(
                f"Local DB not found: {db_path}. Run `python setup/local_db/init_local_db.py --reset` first."
            )
        try:
            conn = sqlite3.connect(str(db_path), timeout=30.0, isolation_level=None)
            conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as exc:
            raise DataConnectionError(f"Failed to open local SQLite DB at {db_path}.") from exc
        return conn

    def _postgres_connection(self) -> psycopg.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is not None and not conn.closed:
            return conn
        try:
            conn = psycopg.connect(
                self.config.database_url,
                autocommit=True,
                connect_timeout=int(self.config.db_connect_timeout_sec),
            )
        except psycopg.Error as exc:
            raise DataConnectionError("Failed to connect to the Postgres database.") from exc
        self._local.conn = conn
        return conn

    @contextmanager
    def _connection(self) -> Iterator[Any]:
        # SQLite: a short-lived connection per use. Postgres: one per thread.
        if self.config.use_local_db:
            with closing(self._connect_local()) as conn:
                yield conn
            return
        conn = self._postgres_connection()
        try:
            yield conn
        except Exception as exc:
            if self._is_connection_error(exc):
                self.close()
            raise

    @contextmanager
    def transaction(self) -> Iterator[SQLSession]:
        """Yield a session whose statements commit together or not at all.

        SQLite takes the database write lock up front (BEGIN IMMEDIATE) so
        concurrent writers are serialized; Postgres callers lock rows
        explicitly with SELECT ... FOR UPDATE.
        """
        with self._connection() as conn:
            if not self.config.use_local_db:
                with conn.transaction():
                    yield SQLSession(self, conn)
                return
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield SQLSession(self, conn)
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def _prepare(self, statement: str) -> str:
        text = str(statement or "").lstrip("\ufeff")
        # Templates use psycopg `%s` placeholders; sqlite3 expects qmark.
        return text.replace("%s", "?") if self.config.use_local_db else text

    def _prepare_params(self, params: Iterable[Any] | None) -> tuple[Any, ...]:
        values = tuple(params or ())
        if not self.config.use_local_db:
            return values
        return tuple(value.isoformat() if isinstance(value, (datetime, date)) else value for value in values)

    def _record(self, operation: str, statement: str, elapsed_ms: float, rows: int | None, error: bool) -> None:
        sql_hash = hashlib.sha1(statement.encode("utf-8", errors="ignore")).hexdigest()[:12]
        preview = _sql_preview(statement)
        perf = get_request_perf_context()
        if perf is not None:
            perf.record(operation, sql_hash, preview, elapsed_ms, rows, error)

        slow = elapsed_ms >= self._slow_query_ms
        if not (self._sql_trace_enabled or slow or error):
            return
        (PERF_LOGGER.warning if slow or error else PERF_LOGGER.info)(
            "sql_perf op=%s ms=%.2f rows=%s error=%s hash=%s sql=%s",
            operation,
            elapsed_ms,
            "-" if rows is None else rows,
            str(error).lower(),
            sql_hash,
            preview,
        )

    def _timed(
        self,
        operation: str,
        statement: str,
        work: Callable[[], tuple[Any, int | None]],
        error_type: type[RuntimeError],
        error_message: str,
    ) -> Any:
        started = time.perf_counter()
        try:
            result, rows = work()
        except DataConnectionError:
            raise
        except Exception as exc:
            self._record(operation, statement, (time.perf_counter() - started) * 1000.0, None, True)
            raise error_type(error_message) from exc
        self._record(operation, statement, (time.perf_counter() - started) * 1000.0, rows, False)
        return result

    def _run_query(self, conn: Any, statement: str, params: Iterable[Any] | None) -> pd.DataFrame:
        prepared = self._prepare(statement)

        def work() -> tuple[pd.DataFrame, int]:
            with closing(conn.cursor()) as cursor:
                cursor.execute(prepared, self._prepare_params(params))
                if cursor.description is None:
                    return pd.DataFrame(), 0
                columns = [desc[0] for desc in cursor.description]
                records = [tuple(row) for row in cursor.fetchall()]
            # object dtype keeps nullable integer columns from turning into floats.
            frame = pd.DataFrame(records, columns=columns, dtype=object)
            return frame, len(frame.index)

        return self._timed("query", prepared, work, DataQueryError, "Query execution failed.")

    def _run_execute(self, conn: Any, statement: str, params: Iterable[Any] | None) -> int:
        prepared = self._prepare(statement)

        def work() -> tuple[int, int]:
            with closing(conn.cursor()) as cursor:
                cursor.execute(prepared, self._prepare_params(params))
                affected = int(cursor.rowcount if cursor.rowcount is not None else -1)
            return affected, affected

        return self._timed("execute", prepared, work, DataExecutionError, "Statement execution failed.")

    def _run_execute_many(self, conn: Any, statement: str, rows: Sequence[Iterable[Any]]) -> int:
        if not rows:
            return 0
        prepared = self._prepare(statement)
        batch = [self._prepare_params(row) for row in rows]

        def work() -> tuple[int, int]:
            with closing(conn.cursor()) as cursor:
                cursor.executemany(prepared, batch)
            return len(batch), len(batch)

        return self._timed("execute_many", prepared, work, DataExecutionError, "Batch execution failed.")

    def query(self, statement: str, params: Iterable[Any] | None = None) -> pd.DataFrame:
        with self._connection() as conn:
            return self._run_query(conn, statement, params)

    def execute(self, statement: str, params: Iterable[Any] | None = None) -> int:
        with self._connection() as conn:
            return self._run_execute(conn, statement, params)

    def execute_many(self, statement: str, rows: Sequence[Iterable[Any]]) -> int:
        with self.transaction() as session:
            return session.execute_many(statement, rows)
