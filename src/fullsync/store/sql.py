"""
SQL implementation of the id store for PostgreSQL and SQL Server.

Works on any DB-API connection (psycopg2 or pyodbc). Identifiers are
validated and quoted through ``utils.sql_safety``; filter values and
cursor bounds are always bound parameters. Transient driver errors are
retried with backoff; anything still failing surfaces as
``StoreUnavailable``.
"""

import logging
from typing import Any, Literal

from opentelemetry import trace
from prometheus_client import Counter, Histogram

from fullsync.exceptions import StoreUnavailable
from fullsync.modules.base import Predicate
from utils.metrics import get_or_create_metric
from utils.retry import retry_database_operation
from utils.sql_safety import (
    placeholder,
    quote_identifier,
    quote_schema_table,
    validate_integer_param,
)
from utils.tracing import trace_operation

from .base import IdStore, MinMax

logger = logging.getLogger(__name__)

DbType = Literal["postgresql", "sqlserver"]


STORE_QUERY_TIME = get_or_create_metric(
    lambda: Histogram(
        "fullsync_store_query_seconds",
        "Time spent in backing-store id queries",
        ["db_type", "query"],  # query: ids_descending, min_max, count
        buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    ),
    "fullsync_store_query_seconds",
)

STORE_QUERY_ERRORS = get_or_create_metric(
    lambda: Counter(
        "fullsync_store_query_errors_total",
        "Backing-store id queries that failed after retries",
        ["db_type", "query"],
    ),
    "fullsync_store_query_errors_total",
)


def detect_db_type(connection: Any) -> DbType:
    """Infer the dialect from the DB-API connection's driver module."""
    module_name = type(connection).__module__.lower()

    if "psycopg" in module_name:
        return "postgresql"
    if "pyodbc" in module_name or "odbc" in module_name:
        return "sqlserver"

    raise ValueError(
        f"Cannot infer database type from {type(connection).__name__}; pass db_type explicitly"
    )


def render_where(predicate: Predicate, db_type: DbType) -> tuple[str, list[Any]]:
    """
    Render the predicate as a WHERE condition (without ``WHERE``).

    Returns:
        Tuple of (sql, params)
    """
    marker = placeholder(db_type)
    clauses: list[str] = []
    params: list[Any] = []

    def in_clause(column: str, values: tuple[Any, ...], negate: bool) -> str:
        if not values:
            # Empty IN lists are a syntax error in both dialects
            return "1=1" if negate else "1=0"
        markers = ", ".join([marker] * len(values))
        operator = "NOT IN" if negate else "IN"
        params.extend(values)
        return f"{quote_identifier(column, db_type)} {operator} ({markers})"

    for column, values in predicate.include:
        clauses.append(in_clause(column, values, negate=False))

    for column, values in predicate.exclude:
        clauses.append(in_clause(column, values, negate=True))

    if predicate.ids is not None:
        clauses.append(in_clause(predicate.id_field, predicate.ids, negate=False))

    return (" AND ".join(clauses) or "1=1"), params


class SqlIdStore(IdStore):
    """
    Id queries against one DB-API connection.

    Not thread-safe: give each worker thread its own store and connection.
    """

    def __init__(
        self,
        connection: Any,
        db_type: DbType | None = None,
        max_retries: int = 2,
        retry_base_delay: float = 0.5,
    ):
        """
        Args:
            connection: psycopg2 or pyodbc connection
            db_type: "postgresql" or "sqlserver" (inferred from the connection if omitted)
            max_retries: Retries for transient errors per query
            retry_base_delay: Initial backoff delay in seconds
        """
        self.connection = connection
        self.db_type: DbType = db_type or detect_db_type(connection)
        self._fetch = retry_database_operation(
            max_retries=max_retries, base_delay=retry_base_delay
        )(self._fetch_once)

    def query_ids_descending(
        self, predicate: Predicate, upper_bound_exclusive: int, limit: int
    ) -> list[int]:
        validate_integer_param(limit, "limit", min_value=1)
        if predicate.is_empty_selection:
            return []

        id_col = quote_identifier(predicate.id_field, self.db_type)
        table = quote_schema_table(predicate.table, self.db_type)
        where, params = render_where(predicate, self.db_type)
        marker = placeholder(self.db_type)

        if self.db_type == "postgresql":
            query = (
                f"SELECT {id_col} FROM {table} "
                f"WHERE {where} AND {id_col} < {marker} "
                f"ORDER BY {id_col} DESC LIMIT {limit}"
            )
        else:
            query = (
                f"SELECT TOP ({limit}) {id_col} FROM {table} "
                f"WHERE {where} AND {id_col} < {marker} "
                f"ORDER BY {id_col} DESC"
            )

        rows = self._run("ids_descending", predicate, query, [*params, upper_bound_exclusive])
        return [int(row[0]) for row in rows]

    def query_min_max(
        self,
        predicate: Predicate,
        lower_bound_exclusive: int | None = None,
        limit: int | None = None,
    ) -> MinMax | None:
        if limit is not None:
            validate_integer_param(limit, "limit", min_value=1)
        if predicate.is_empty_selection:
            return None

        id_col = quote_identifier(predicate.id_field, self.db_type)
        table = quote_schema_table(predicate.table, self.db_type)
        where, params = render_where(predicate, self.db_type)

        if lower_bound_exclusive is not None:
            where = f"{where} AND {id_col} > {placeholder(self.db_type)}"
            params.append(lower_bound_exclusive)

        if limit is None:
            query = f"SELECT MIN({id_col}), MAX({id_col}) FROM {table} WHERE {where}"
        elif self.db_type == "postgresql":
            query = (
                f"SELECT MIN(ids.{id_col}), MAX(ids.{id_col}) FROM ("
                f"SELECT {id_col} FROM {table} WHERE {where} "
                f"ORDER BY {id_col} ASC LIMIT {limit}) AS ids"
            )
        else:
            query = (
                f"SELECT MIN(ids.{id_col}), MAX(ids.{id_col}) FROM ("
                f"SELECT TOP ({limit}) {id_col} FROM {table} WHERE {where} "
                f"ORDER BY {id_col} ASC) AS ids"
            )

        rows = self._run("min_max", predicate, query, params)
        if not rows or rows[0][0] is None or rows[0][1] is None:
            return None
        return MinMax(min=int(rows[0][0]), max=int(rows[0][1]))

    def query_count(self, predicate: Predicate) -> int:
        if predicate.is_empty_selection:
            return 0

        table = quote_schema_table(predicate.table, self.db_type)
        where, params = render_where(predicate, self.db_type)
        rows = self._run(
            "count", predicate, f"SELECT COUNT(*) FROM {table} WHERE {where}", params
        )
        return int(rows[0][0]) if rows else 0

    def _run(self, query_name: str, predicate: Predicate, query: str, params: list[Any]) -> list:
        with trace_operation(
            f"store_{query_name}",
            kind=trace.SpanKind.CLIENT,
            db_type=self.db_type,
            table=predicate.table,
        ):
            with STORE_QUERY_TIME.labels(db_type=self.db_type, query=query_name).time():
                try:
                    return self._fetch(query, params)
                except Exception as e:
                    STORE_QUERY_ERRORS.labels(db_type=self.db_type, query=query_name).inc()
                    logger.error(f"{query_name} query on {predicate.table} failed: {e}")
                    raise StoreUnavailable(
                        f"{query_name} query on {predicate.table} failed: {e}"
                    ) from e

    def _fetch_once(self, query: str, params: list[Any]) -> list:
        logger.debug(f"Executing: {query} {params}")
        cursor = self.connection.cursor()
        try:
            cursor.execute(query, tuple(params))
            return cursor.fetchall()
        except Exception:
            # Leave no aborted transaction behind on non-autocommit connections
            if getattr(self.connection, "autocommit", True) is False:
                self.connection.rollback()
            raise
        finally:
            cursor.close()
