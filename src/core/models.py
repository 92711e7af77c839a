"""
Boundary layer data model(s).

These objects are used to communicate with the Service.
Both the API layer (higher) and the engine/db layers (lower) use the models defined here to send to/receive from the Service.
(Decouples the row layout of the store from the information needed to send across boundaries)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LeaderboardEntry:
    """One submitted training result. Immutable once created; the store owns it."""

    player_name: str
    difficulty: str
    piece_count: int
    correct_pieces: int
    memorize_time_seconds: float
    solution_time_seconds: float
    total_wrong_pieces: Optional[int] = None
    created_at: datetime = field(default_factory=utc_now)
    id: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class GameMetric:
    """Global counter (ex. total number of plays)."""

    metric_name: str
    metric_value: int
    last_updated: Optional[datetime] = None
