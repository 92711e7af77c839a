"""Difficulty presets: piece count and memorize time ranges, which difficulty suits a player's rating, and which configs are ranked."""

import random
from dataclasses import dataclass, replace
from typing import Optional

from src.core.exceptions import InvalidConfigError
from src.core.shared_types import Difficulty
from src.engine.generator import RandomSource
from src.engine.rating import RatingState
from src.engine.session import SessionConfig

# A run of this many successful sessions suggests the player is ready for the next level
STREAK_PROMOTION = 3


@dataclass(frozen=True)
class DifficultyLevel:
    min_pieces: int
    max_pieces: int
    min_time: int
    max_time: int
    min_rating: int


DIFFICULTY_LEVELS: dict[Difficulty, DifficultyLevel] = {
    Difficulty.EASY: DifficultyLevel(2, 4, 10, 15, 0),
    Difficulty.MEDIUM: DifficultyLevel(6, 10, 8, 12, 1000),
    Difficulty.HARD: DifficultyLevel(12, 16, 5, 8, 1500),
    Difficulty.GRANDMASTER: DifficultyLevel(20, 32, 3, 5, 2000),
}

# Levels ordered from easiest to hardest
DIFFICULTY_ORDER: tuple[Difficulty, ...] = tuple(DIFFICULTY_LEVELS)


def _randint(low: int, high: int, random_source: RandomSource) -> int:
    """Inclusive on both ends."""
    return low + min(int(random_source() * (high - low + 1)), high - low)


def piece_count_for(difficulty: Difficulty, random_source: RandomSource = random.random) -> int:
    level = DIFFICULTY_LEVELS[difficulty]
    return _randint(level.min_pieces, level.max_pieces, random_source)


def memorize_time_for(difficulty: Difficulty, random_source: RandomSource = random.random) -> int:
    level = DIFFICULTY_LEVELS[difficulty]
    return _randint(level.min_time, level.max_time, random_source)


def suggest_config(difficulty: Difficulty, random_source: RandomSource = random.random) -> SessionConfig:
    return SessionConfig(
        piece_count=piece_count_for(difficulty, random_source),
        memorize_time_seconds=memorize_time_for(difficulty, random_source),
        difficulty=difficulty,
    )


def recommend_difficulty(rating_state: RatingState) -> Difficulty:
    """Highest level the rating qualifies for, one level higher while the player is on a streak."""
    qualified = [
        difficulty
        for difficulty in DIFFICULTY_ORDER
        if rating_state.rating >= DIFFICULTY_LEVELS[difficulty].min_rating
    ]
    index = DIFFICULTY_ORDER.index(qualified[-1])
    if rating_state.streak >= STREAK_PROMOTION:
        index = min(index + 1, len(DIFFICULTY_ORDER) - 1)
    return DIFFICULTY_ORDER[index]


def is_ranked(difficulty: Difficulty) -> bool:
    """Only the preset difficulties have a leaderboard."""
    return difficulty in DIFFICULTY_LEVELS


def fits_preset(config: SessionConfig) -> bool:
    level = DIFFICULTY_LEVELS.get(config.difficulty)
    if level is None:
        return False
    return (
        level.min_pieces <= config.piece_count <= level.max_pieces
        and level.min_time <= config.memorize_time_seconds <= level.max_time
    )


def classify_config(config: SessionConfig) -> SessionConfig:
    """A config that does not fit the preset of its difficulty is relabelled as custom."""
    if config.difficulty == Difficulty.CUSTOM or fits_preset(config):
        return config
    return replace(config, difficulty=Difficulty.CUSTOM)


def build_config(
    difficulty: Difficulty,
    piece_count: Optional[int] = None,
    memorize_time_seconds: Optional[float] = None,
    random_source: RandomSource = random.random,
) -> SessionConfig:
    """
    Session config from a difficulty plus optional overrides.
    ---

    * missing values are drawn from the preset of the difficulty
    * overrides outside the preset turn the session into a custom (unranked) one
    * a custom session has no preset, so it needs both values
    """
    if difficulty == Difficulty.CUSTOM:
        if piece_count is None or memorize_time_seconds is None:
            raise InvalidConfigError(
                "A custom game needs both a piece count and a memorize time."
            )
        return SessionConfig(piece_count, memorize_time_seconds, Difficulty.CUSTOM)

    preset = suggest_config(difficulty, random_source)
    return classify_config(
        SessionConfig(
            piece_count=preset.piece_count if piece_count is None else piece_count,
            memorize_time_seconds=(
                preset.memorize_time_seconds
                if memorize_time_seconds is None
                else memorize_time_seconds
            ),
            difficulty=difficulty,
        )
    )
