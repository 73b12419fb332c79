"""
Shared psycopg3 connection pool for the labor cost warehouse.

Every store call borrows one pooled connection for one transaction:
psycopg_pool commits when the ``with`` block exits cleanly and rolls back
when it raises, so callers never commit by hand.
"""
import os
import time
from contextlib import contextmanager

from psycopg import OperationalError
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from labor_import.observability.logger import get_logger

logger = get_logger(__name__)

DEFAULT_DATABASE = "labor_costs"
DEFAULT_USER = "labor_import"


class DatabaseConnectionPool:
    """
    Bounded connection pool used by PostgresLaborStore and SchemaManager.

    Concurrent imports from run_many share one instance. Rows come back
    as dicts (dict_row) so registry and audit code can build pydantic
    models with ``Model(**row)``.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        database: str | None = None,
        user: str | None = None,
        password: str | None = None,
        min_size: int = 2,
        max_size: int = 10,
        timeout: float = 30.0,
    ) -> None:
        """
        Args:
            host: Database host (falls back to DB_HOST, then localhost)
            port: Database port (falls back to DB_PORT, then 5432)
            database: Database name (falls back to DB_NAME)
            user: Database user (falls back to DB_USER)
            password: Database password (falls back to DB_PASSWORD; required)
            min_size: Connections kept open
            max_size: Upper bound on concurrent connections
            timeout: Seconds to wait for a connection
        """
        password = password or os.getenv("DB_PASSWORD")
        if not password:
            raise ValueError(
                "Database password must be provided. "
                "Set DB_PASSWORD environment variable or pass to constructor."
            )

        self.host = host or os.getenv("DB_HOST", "localhost")
        self.port = port or int(os.getenv("DB_PORT", "5432"))
        self.database = database or os.getenv("DB_NAME", DEFAULT_DATABASE)
        self.user = user or os.getenv("DB_USER", DEFAULT_USER)
        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout

        self.conninfo = make_conninfo(
            host=self.host,
            port=self.port,
            dbname=self.database,
            user=self.user,
            password=password,
            connect_timeout=int(timeout),
            application_name="labor-import",
        )
        self._pool: ConnectionPool | None = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def open(self, max_retries: int = 3, retry_delay: float = 2.0) -> None:
        """
        Open the pool, retrying while the server is not yet accepting connections.

        The delay doubles after each failed attempt.

        Raises:
            OperationalError: If every attempt fails
        """
        if self._pool is not None:
            return

        pool = ConnectionPool(
            conninfo=self.conninfo,
            min_size=self.min_size,
            max_size=self.max_size,
            timeout=self.timeout,
            kwargs={"row_factory": dict_row},
            open=False,
        )
        delay = retry_delay
        for attempt in range(1, max_retries + 1):
            try:
                pool.open(wait=True, timeout=self.timeout)
            except OperationalError as e:
                if attempt == max_retries:
                    raise OperationalError(
                        f"Failed to connect to {self.host}:{self.port}/{self.database} "
                        f"after {max_retries} attempts: {e}"
                    ) from e
                logger.warning(
                    f"Database not reachable (attempt {attempt}/{max_retries}), retrying",
                    extra={"host": self.host, "port": self.port, "delay": delay},
                )
                time.sleep(delay)
                delay *= 2
            else:
                self._pool = pool
                logger.info(
                    "Database pool opened",
                    extra={"host": self.host, "database": self.database, "max_size": self.max_size},
                )
                return

    def close(self) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @contextmanager
    def get_connection(self):
        """
        Borrow a connection for one transaction.

        Raises:
            RuntimeError: If the pool is not open
        """
        if self._pool is None:
            raise RuntimeError("Connection pool is not open. Call open() first.")
        with self._pool.connection() as conn:
            yield conn

    @contextmanager
    def get_cursor(self):
        """Borrow a cursor whose statements share one transaction."""
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                yield cur

    def execute_query(self, query: str, params: tuple | dict | None = None) -> list[dict]:
        """Run a SELECT (or a write with RETURNING) and return its rows."""
        with self.get_cursor() as cur:
            cur.execute(query, params)
            return cur.fetchall()

    def execute_command(self, command: str, params: tuple | dict | None = None) -> int:
        """Run an INSERT/UPDATE/DELETE and return the affected row count."""
        with self.get_cursor() as cur:
            cur.execute(command, params)
            return cur.rowcount

    def execute_batch(self, command: str, params_list: list[tuple] | list[dict]) -> int:
        """
        Run one command per parameter set, all in a single transaction.

        Returns:
            Number of parameter sets executed
        """
        if not params_list:
            return 0
        with self.get_cursor() as cur:
            cur.executemany(command, params_list)
        return len(params_list)

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
