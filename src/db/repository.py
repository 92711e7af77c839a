"""
Typed repositories on top of the generic RowStore.

They translate between store rows and the boundary models (LeaderboardEntry, GameMetric, RatingState), so that no other layer knows table or column names.
"""

from typing import Optional

from src.core.models import GameMetric, LeaderboardEntry
from src.db.schema import LEADERBOARD_TABLE, METRICS_TABLE, RATINGS_TABLE
from src.db.store import Ordering, Row, RowStore
from src.engine.leaderboard import DISPLAY_LIMIT, rank_entries
from src.engine.rating import DEFAULT_RATING, RatingState

# Same order as the LeaderboardRanker, so the database already returns the best entries first
LEADERBOARD_ORDER: Ordering = [
    ("correct_pieces", False),
    ("total_wrong_pieces", True),
    ("memorize_time_seconds", True),
    ("solution_time_seconds", True),
    ("created_at", True),
]


class LeaderboardRepository:
    def __init__(self, store: RowStore) -> None:
        self.store = store

    def top_entries(self, difficulty: str, limit: int = DISPLAY_LIMIT) -> list[LeaderboardEntry]:
        rows = self.store.select(
            LEADERBOARD_TABLE,
            filter={"difficulty": difficulty},
            order=LEADERBOARD_ORDER,
            limit=limit,
        )
        return rank_entries([self._to_model(row) for row in rows], limit=limit)

    def all_entries(self, difficulty: str) -> list[LeaderboardEntry]:
        """Whole partition, not truncated. Needed to compute the rank of entries outside the top."""
        rows = self.store.select(LEADERBOARD_TABLE, filter={"difficulty": difficulty})
        return [self._to_model(row) for row in rows]

    def submit(self, entry: LeaderboardEntry) -> LeaderboardEntry:
        """Keyed on the entry id: submitting the same entry twice keeps one row."""
        stored = self.store.upsert(LEADERBOARD_TABLE, self._to_row(entry), conflict_key=["id"])
        return self._to_model(stored)

    def _to_row(self, entry: LeaderboardEntry) -> Row:
        return {
            "id": entry.id,
            "player_name": entry.player_name,
            "difficulty": str(entry.difficulty),
            "piece_count": entry.piece_count,
            "correct_pieces": entry.correct_pieces,
            "total_wrong_pieces": entry.total_wrong_pieces,
            "memorize_time_seconds": entry.memorize_time_seconds,
            "solution_time_seconds": entry.solution_time_seconds,
            "created_at": entry.created_at,
        }

    def _to_model(self, row: Row) -> LeaderboardEntry:
        """Convert a store row to the data transfer model."""
        return LeaderboardEntry(
            id=row["id"],
            player_name=row["player_name"],
            difficulty=row["difficulty"],
            piece_count=row["piece_count"],
            correct_pieces=row["correct_pieces"],
            total_wrong_pieces=row["total_wrong_pieces"],
            memorize_time_seconds=row["memorize_time_seconds"],
            solution_time_seconds=row["solution_time_seconds"],
            created_at=row["created_at"],
        )


class RatingRepository:
    """Persisted RatingState per player."""

    def __init__(self, store: RowStore, initial_rating: int = DEFAULT_RATING) -> None:
        self.store = store
        self.initial_rating = initial_rating

    def load(self, player_name: str) -> RatingState:
        """A player without a stored rating starts at the initial rating with no streak."""
        rows = self.store.select(RATINGS_TABLE, filter={"player_name": player_name}, limit=1)
        if not rows:
            return RatingState(rating=self.initial_rating, streak=0)
        return RatingState(rating=rows[0]["rating"], streak=rows[0]["streak"])

    def save(self, player_name: str, rating_state: RatingState) -> RatingState:
        row = self.store.upsert(
            RATINGS_TABLE,
            {
                "player_name": player_name,
                "rating": rating_state.rating,
                "streak": rating_state.streak,
            },
            conflict_key=["player_name"],
        )
        return RatingState(rating=row["rating"], streak=row["streak"])


class MetricsRepository:
    def __init__(self, store: RowStore) -> None:
        self.store = store

    def increment(self, name: str, delta: int = 1) -> int:
        return self.store.increment_metric(name, delta)

    def get(self, name: str) -> Optional[GameMetric]:
        rows = self.store.select(METRICS_TABLE, filter={"metric_name": name}, limit=1)
        return self._to_model(rows[0]) if rows else None

    def all_metrics(self) -> list[GameMetric]:
        rows = self.store.select(METRICS_TABLE, order=[("metric_name", True)])
        return [self._to_model(row) for row in rows]

    def _to_model(self, row: Row) -> GameMetric:
        return GameMetric(
            metric_name=row["metric_name"],
            metric_value=row["metric_value"],
            last_updated=row["last_updated"],
        )
