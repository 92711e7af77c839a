"""Implementation of RowStore using SQLAlchemy"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import Table, and_, delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.core.exceptions import PersistenceError
from src.core.models import utc_now
from src.db.schema import METRICS_TABLE, Base
from src.db.store import Ordering, Row

log = logging.getLogger(__name__)


class SQLRowStore:
    """Data stored using SQL / methods implemented using SQLAlchemy core statements on the tables declared in schema.py"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def insert(self, table: str, row: Row) -> Row:
        db_table = self._table(table)
        key_filter = self._key_filter(db_table, row)
        with self._transaction(f"insert into {table}"):
            self.db.execute(insert(db_table).values(**row))
        return self._fetch_by_key(db_table, key_filter)

    def upsert(self, table: str, row: Row, conflict_key: list[str]) -> Row:
        db_table = self._table(table)
        missing = [column for column in conflict_key if column not in row]
        if not conflict_key or missing:
            raise PersistenceError(
                f"Cannot upsert into {table}: conflict key columns {missing or conflict_key} have no value."
            )
        key_filter = {column: row[column] for column in conflict_key}
        stored_key = self._key_filter(db_table, row)
        with self._transaction(f"upsert into {table}"):
            existing = self.db.execute(
                select(db_table).where(self._where(db_table, key_filter))
            ).first()
            if existing is None:
                self.db.execute(insert(db_table).values(**row))
            else:
                self.db.execute(
                    update(db_table)
                    .where(self._where(db_table, key_filter))
                    .values(**row)
                )
        return self._fetch_by_key(db_table, stored_key)

    def select(
        self,
        table: str,
        filter: Optional[Row] = None,
        order: Optional[Ordering] = None,
        limit: Optional[int] = None,
    ) -> list[Row]:
        db_table = self._table(table)
        query = select(db_table)
        if filter:
            query = query.where(self._where(db_table, filter))
        for column, ascending in order or []:
            # Missing values always go last, regardless of the direction
            db_column = self._column(db_table, column)
            query = query.order_by(
                db_column.asc().nulls_last() if ascending else db_column.desc().nulls_last()
            )
        if limit is not None:
            query = query.limit(limit)

        with self._transaction(f"select from {table}"):
            results = self.db.execute(query).all()
        return [dict(result._mapping) for result in results]

    def update(self, table: str, patch: Row, filter: Row) -> list[Row]:
        db_table = self._table(table)
        with self._transaction(f"update {table}"):
            self.db.execute(
                update(db_table).where(self._where(db_table, filter)).values(**patch)
            )
        # The patch may have changed filtered columns: look the rows up with the new values
        return self.select(table, filter={**filter, **{k: v for k, v in patch.items() if k in filter}})

    def delete(self, table: str, filter: Row) -> int:
        db_table = self._table(table)
        with self._transaction(f"delete from {table}"):
            result = self.db.execute(delete(db_table).where(self._where(db_table, filter)))
        return result.rowcount

    def increment_metric(self, name: str, delta: int = 1) -> int:
        """Counter lives in the game_stats table. Create it on first use."""
        db_table = self._table(METRICS_TABLE)
        name_filter = {"metric_name": name}
        with self._transaction(f"increment metric {name}"):
            result = self.db.execute(
                update(db_table)
                .where(self._where(db_table, name_filter))
                .values(
                    metric_value=db_table.c.metric_value + delta,
                    last_updated=utc_now(),
                )
            )
            if result.rowcount == 0:
                self.db.execute(
                    insert(db_table).values(
                        metric_name=name, metric_value=delta, last_updated=utc_now()
                    )
                )
        return self._fetch_by_key(db_table, name_filter)["metric_value"]

    # -- Internal helpers --
    @contextmanager
    def _transaction(self, action: str) -> Iterator[None]:
        """Commit on success. Any database error is rolled back and re-raised as PersistenceError."""
        try:
            yield
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            log.warning("Store call failed (%s): %s", action, exc)
            raise PersistenceError(f"Failed to {action}: {exc}") from exc

    def _table(self, name: str) -> Table:
        table = Base.metadata.tables.get(name)
        if table is None:
            raise PersistenceError(f"Unknown table: {name!r}")
        return table

    def _column(self, table: Table, name: str):
        if name not in table.c:
            raise PersistenceError(f"Unknown column {name!r} in table {table.name!r}")
        return table.c[name]

    def _where(self, table: Table, filter: Row):
        return and_(*(self._column(table, column) == value for column, value in filter.items()))

    def _key_filter(self, table: Table, row: Row) -> Row:
        """Primary key values of the row. A row without them cannot be read back."""
        key_columns = [column.name for column in table.primary_key.columns]
        if any(column not in row for column in key_columns):
            raise PersistenceError(f"Row for {table.name!r} is missing its key {key_columns}.")
        return {column: row[column] for column in key_columns}

    def _fetch_by_key(self, table: Table, key_filter: Row) -> Row:
        with self._transaction(f"select from {table.name}"):
            stored = self.db.execute(select(table).where(self._where(table, key_filter))).first()
        if stored is None:
            raise PersistenceError(f"Row {key_filter} not found in {table.name!r} after writing it.")
        return dict(stored._mapping)
