from __future__ import annotations

import json
import threading
from collections import defaultdict
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, DefaultDict, Dict, List, Mapping, Sequence

try:
    import psycopg2
    import psycopg2.extras
    from psycopg2 import pool as psycopg2_pool
except ImportError:  # pragma: no cover - optional dependency
    psycopg2 = None  # type: ignore
    psycopg2_pool = None  # type: ignore


class InMemoryRecordStore:
    """Append-only per-collection record lists."""

    def __init__(self):
        self._records: DefaultDict[str, List[Dict[str, Any]]] = defaultdict(list)
        # inserts arrive from worker threads during fan-out
        self._lock = threading.Lock()

    def insert_many(self, collection: str, records: Sequence[Mapping[str, Any]]) -> int:
        copies = [dict(r) for r in records]
        with self._lock:
            self._records[collection].extend(copies)
        return len(copies)

    def find(self, collection: str, **filters: Any) -> List[Dict[str, Any]]:
        with self._lock:
            records = list(self._records.get(collection, []))
        return [dict(r) for r in records if all(r.get(k) == v for k, v in filters.items())]

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._records.get(collection, []))

    def collections(self) -> List[str]:
        with self._lock:
            return sorted(self._records)


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class PostgresRecordStore:
    """Postgres-backed record store; one JSONB document per stored record."""

    def __init__(self, dsn: str, table: str = "study_records", create_table: bool = True, minconn: int = 1, maxconn: int = 5):
        if psycopg2 is None or psycopg2_pool is None:
            raise ImportError("psycopg2-binary is required for PostgresRecordStore")
        self.dsn = dsn
        self.table = table
        self._pool = psycopg2_pool.ThreadedConnectionPool(minconn, maxconn, dsn)
        if create_table:
            self._ensure_table()

    @contextmanager
    def _connection(self):
        conn = self._pool.getconn()
        try:
            yield conn
        finally:
            self._pool.putconn(conn)

    def close(self) -> None:
        if self._pool:
            self._pool.closeall()

    def _ensure_table(self) -> None:
        ddl = f"""
        CREATE TABLE IF NOT EXISTS {self.table} (
            id BIGSERIAL PRIMARY KEY,
            collection TEXT NOT NULL,
            inserted_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            record JSONB NOT NULL
        );
        CREATE INDEX IF NOT EXISTS {self.table}_collection_idx ON {self.table} (collection);
        """
        with self._connection() as conn, conn.cursor() as cur:
            cur.execute(ddl)
            conn.commit()

    def insert_many(self, collection: str, records: Sequence[Mapping[str, Any]]) -> int:
        if not records:
            return 0
        rows = [(collection, json.dumps(dict(r), default=_json_default)) for r in records]
        sql = f"INSERT INTO {self.table} (collection, record) VALUES %s"
        with self._connection() as conn:
            try:
                with conn.cursor() as cur:
                    psycopg2.extras.execute_values(cur, sql, rows, template="(%s, %s::jsonb)")
                conn.commit()
            except Exception:
                conn.rollback()
                raise
        return len(rows)

    def find(self, collection: str, **filters: Any) -> List[Dict[str, Any]]:
        query = f"SELECT record FROM {self.table} WHERE collection = %(collection)s"
        params: Dict[str, Any] = {"collection": collection}
        if filters:
            query += " AND record @> %(filters)s::jsonb"
            params["filters"] = json.dumps(filters, default=_json_default)
        query += " ORDER BY id"
        with self._connection() as conn, conn.cursor() as cur:
            cur.execute(query, params)
            rows = cur.fetchall()
        return [r[0] for r in rows]

    def count(self, collection: str) -> int:
        query = f"SELECT count(*) FROM {self.table} WHERE collection = %(collection)s"
        with self._connection() as conn, conn.cursor() as cur:
            cur.execute(query, {"collection": collection})
            return int(cur.fetchone()[0])
