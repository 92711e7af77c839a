"""Protocol for the generic row store (can implement later for a hosted REST store / simple in-memory table etc.)"""

from typing import Any, Optional, Protocol

Row = dict[str, Any]
# (column, ascending)
Ordering = list[tuple[str, bool]]


class RowStore(Protocol):
    """
    Persistence layer: CRUD on named tables + one counter RPC.
    ---

    Every call is fallible and raises PersistenceError carrying the underlying message. No retries at this level.
    Filters are equality matches on columns.
    """

    def insert(self, table: str, row: Row) -> Row:
        """Store a new row and return it as stored."""
        ...

    def upsert(self, table: str, row: Row, conflict_key: list[str]) -> Row:
        """Insert, or update the row that has the same values for the conflict key columns."""
        ...

    def select(
        self,
        table: str,
        filter: Optional[Row] = None,
        order: Optional[Ordering] = None,
        limit: Optional[int] = None,
    ) -> list[Row]:
        """Rows matching the filter (all rows when there is none)."""
        ...

    def update(self, table: str, patch: Row, filter: Row) -> list[Row]:
        """Apply the patch to the matching rows and return them."""
        ...

    def delete(self, table: str, filter: Row) -> int:
        """Remove the matching rows and return how many there were."""
        ...

    def increment_metric(self, name: str, delta: int = 1) -> int:
        """Add delta to a global counter (created on first use) and return the new value."""
        ...
