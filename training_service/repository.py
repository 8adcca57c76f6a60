"""Database repository for exercises, workout plans, diet plans and programs."""

from __future__ import annotations

from typing import Any

from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from .domain.contracts import Row
from .queries import EntityType, ListQuery, WriteQuery, spec_for


class TrainingRepository:
    """Postgres-backed persistence issuing single autocommitted statements."""

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    def _fetch_one(self, query: str, params: list[Any]) -> Row | None:
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                row = cur.fetchone()
                conn.commit()
        return row

    def insert(self, query: WriteQuery) -> Row:
        """Execute an allow-listed INSERT and return the persisted row."""
        statement, params = query.insert_statement()
        return self._fetch_one(statement, params)  # type: ignore[return-value]

    def get(self, entity: EntityType, record_id: str) -> Row | None:
        """Fetch a single row by primary key or return ``None``."""
        spec = spec_for(entity)
        return self._fetch_one(f"SELECT * FROM {spec.table} WHERE id = %s", [record_id])

    def list_page(self, query: ListQuery) -> tuple[list[Row], int]:
        """Run the data and count statements of ``query`` and return (rows, total)."""
        data_sql, data_params = query.data_statement()
        count_sql, count_params = query.count_statement()
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(data_sql, data_params)
                rows = cur.fetchall()
                cur.execute(count_sql, count_params)
                count_row = cur.fetchone()
        total = int(count_row["count"]) if count_row else 0
        return rows, total

    def update(self, query: WriteQuery) -> Row | None:
        """Apply an allow-listed UPDATE; ``None`` means no row matched the id."""
        statement, params = query.update_statement()
        return self._fetch_one(statement, params)

    def delete(self, entity: EntityType, record_id: str) -> bool:
        spec = spec_for(entity)
        row = self._fetch_one(f"DELETE FROM {spec.table} WHERE id = %s RETURNING id", [record_id])
        return row is not None

    def list_active_programs(self, client_id: str) -> list[Row]:
        """Return a client's active programs joined with their plan names."""
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT p.*, w.name AS workout_name, d.name AS diet_name
                    FROM programs p
                    LEFT JOIN workout_plans w ON p.workout_plan_id = w.id
                    LEFT JOIN diet_plans d ON p.diet_plan_id = d.id
                    WHERE p.client_id = %s AND p.status = 'active'
                    ORDER BY p.assigned_at DESC
                    """,
                    (client_id,),
                )
                return cur.fetchall()
