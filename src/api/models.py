"""Requests and Response models"""

from datetime import datetime
from typing import Optional, Self
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from src.chess.fen import is_valid_square
from src.chess.square import Square
from src.core.exceptions import InvalidRequestError
from src.core.shared_types import Color, Difficulty, Phase, PieceType
from src.engine.generator import MAX_PIECES, MIN_PIECES
from src.engine.session import MAX_MEMORIZE_SECONDS, MIN_MEMORIZE_SECONDS


def _validate_square(value: str) -> str:
    if not is_valid_square(value):
        raise InvalidRequestError(f"Cannot interpret {value!r} as a valid square name.")
    return value.lower()


def parse_square(value: str) -> Square:
    return Square.from_algebraic(_validate_square(value))


# --- REQUEST MODELS ---
class StartGameRequest(BaseModel):
    """Piece count and memorize time default to the presets of the difficulty when left out. Values outside the preset make it a custom game."""

    player_name: str = Field(min_length=1, max_length=100)
    difficulty: Difficulty = Difficulty.MEDIUM
    piece_count: Optional[int] = Field(default=None, ge=MIN_PIECES, le=MAX_PIECES)
    memorize_time_seconds: Optional[float] = Field(
        default=None, ge=MIN_MEMORIZE_SECONDS, le=MAX_MEMORIZE_SECONDS
    )


class PlacePieceRequest(BaseModel):
    square: str
    piece_type: PieceType
    color: Color
    piece_id: Optional[str] = None

    @field_validator("square")
    @classmethod
    def validate_square(cls, value: str) -> str:
        return _validate_square(value)


class SubmitSolutionRequest(BaseModel):
    submit_to_leaderboard: bool = False


class RankRequest(BaseModel):
    difficulty: Difficulty
    piece_count: int = Field(ge=MIN_PIECES, le=MAX_PIECES)
    correct_pieces: int = Field(ge=0)
    total_wrong_pieces: Optional[int] = Field(default=None, ge=0)
    memorize_time_seconds: float = Field(ge=0)
    solution_time_seconds: float = Field(ge=0)

    @model_validator(mode="after")
    def validate_counts(self) -> Self:
        if self.correct_pieces > self.piece_count:
            raise InvalidRequestError(
                f"Cannot have {self.correct_pieces} correct pieces out of {self.piece_count}."
            )
        return self


class IncrementMetricRequest(BaseModel):
    metric: str = Field(min_length=1)
    increment: int = 1


# --- RESPONSE MODELS ---
class AccuracyResponse(BaseModel):
    accuracy_percent: int
    correct_placements: int
    total_original_pieces: int
    extra_pieces: int
    incorrect_placements: int


class SessionResponse(BaseModel):
    session_id: UUID
    player_name: str
    phase: Phase
    difficulty: Optional[Difficulty]
    piece_count: Optional[int]
    memorize_time_seconds: Optional[float]
    # Hidden while the player is reconstructing the position
    original_fen: Optional[str]
    solution_fen: str
    actual_memorize_seconds: Optional[float]
    completion_seconds: Optional[float]
    accuracy: Optional[AccuracyResponse]
    rating_before: Optional[int]
    rating_after: Optional[int]
    rating_delta: Optional[int]
    rating: int
    streak: int


class SubmissionResponse(BaseModel):
    session: SessionResponse
    rank: Optional[int]
    warnings: list[str]


class RatingResponse(BaseModel):
    player_name: str
    rating: int
    streak: int
    recommended_difficulty: Difficulty


class LeaderboardEntryResponse(BaseModel):
    rank: int
    player_name: str
    difficulty: Difficulty
    piece_count: int
    correct_pieces: int
    total_wrong_pieces: Optional[int]
    memorize_time_seconds: float
    solution_time_seconds: float
    created_at: datetime


class LeaderboardResponse(BaseModel):
    difficulty: Difficulty
    entries: list[LeaderboardEntryResponse]


class RankResponse(BaseModel):
    difficulty: Difficulty
    rank: int


class MetricResponse(BaseModel):
    metric_name: str
    metric_value: int
    last_updated: Optional[datetime]
