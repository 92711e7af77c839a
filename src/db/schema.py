"""Database tables / schema"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from src.core.models import utc_now

LEADERBOARD_TABLE = "leaderboard_entries"
RATINGS_TABLE = "player_ratings"
METRICS_TABLE = "game_stats"


class Base(DeclarativeBase):
    pass


class DBLeaderboardEntry(Base):
    __tablename__ = LEADERBOARD_TABLE
    id: Mapped[UUID] = mapped_column(primary_key=True)
    player_name: Mapped[str] = mapped_column(String(100))
    difficulty: Mapped[str] = mapped_column(String(20), index=True)
    piece_count: Mapped[int]
    correct_pieces: Mapped[int]
    total_wrong_pieces: Mapped[Optional[int]]
    memorize_time_seconds: Mapped[float]
    solution_time_seconds: Mapped[float]
    created_at: Mapped[datetime] = mapped_column(default=utc_now)


class DBPlayerRating(Base):
    __tablename__ = RATINGS_TABLE
    player_name: Mapped[str] = mapped_column(String(100), primary_key=True)
    rating: Mapped[int]
    streak: Mapped[int] = mapped_column(default=0)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)


class DBGameMetric(Base):
    __tablename__ = METRICS_TABLE
    metric_name: Mapped[str] = mapped_column(String(100), primary_key=True)
    metric_value: Mapped[int] = mapped_column(default=0)
    last_updated: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)
