"""
Skill rating updates.

The rating is not an ELO exchange between players. Every finished session earns points (accuracy, piece count, speed) that get scaled
by the current rating: players below 2000 move faster, players above it move slower.
"""

import math
from dataclasses import dataclass
from typing import Self

from src.engine.comparator import round_half_up

DEFAULT_RATING = 1200
SCALE_REFERENCE = 2000
MIN_SCALE = 0.5
MAX_SCALE = 1.5
MIN_COMPLETION_SECONDS = 0.001
SUCCESS_ACCURACY = 70

# (minimum accuracy, points), checked from the top down
ACCURACY_TIERS: tuple[tuple[int, int], ...] = (
    (100, 50),
    (90, 30),
    (80, 20),
    (70, 10),
    (50, 5),
)
LOW_ACCURACY = 30
LOW_ACCURACY_POINTS = -10


@dataclass(frozen=True)
class RatingChange:
    delta: int
    new_rating: int


@dataclass(frozen=True)
class RatingState:
    """Per player, kept across sessions. A finished session produces the next state, nothing mutates it in place."""

    rating: int = DEFAULT_RATING
    streak: int = 0

    def apply(self, accuracy: float, change: RatingChange) -> Self:
        return type(self)(
            rating=change.new_rating, streak=next_streak(accuracy, self.streak)
        )


def accuracy_points(accuracy: float) -> int:
    for threshold, points in ACCURACY_TIERS:
        if accuracy >= threshold:
            return points
    if accuracy < LOW_ACCURACY:
        return LOW_ACCURACY_POINTS
    return 0


def time_points(completion_seconds: float, memorize_seconds: float) -> int:
    """Solving faster than the time spent memorizing earns a bonus."""
    completion_seconds = max(completion_seconds, MIN_COMPLETION_SECONDS)
    if completion_seconds > memorize_seconds:
        return 0
    return math.floor(memorize_seconds / completion_seconds * 10)


def rating_scale(current_rating: float) -> float:
    if current_rating <= 0:
        return MAX_SCALE
    return max(MIN_SCALE, min(MAX_SCALE, SCALE_REFERENCE / current_rating))


def next_rating(
    accuracy: float,
    piece_count: int,
    completion_seconds: float,
    memorize_seconds: float,
    current_rating: int,
) -> RatingChange:
    points = (
        accuracy_points(accuracy)
        + piece_count // 2
        + time_points(completion_seconds, memorize_seconds)
    )
    delta = round_half_up(points * rating_scale(current_rating))
    return RatingChange(delta=delta, new_rating=max(0, current_rating + delta))


def next_streak(accuracy: float, streak: int) -> int:
    """Informational only: never feeds back into the rating."""
    return streak + 1 if accuracy >= SUCCESS_ACCURACY else 0
