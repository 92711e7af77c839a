"""Unit tests for /src/engine/difficulty.py"""

import random

import pytest

from src.core.exceptions import InvalidConfigError
from src.core.shared_types import Difficulty
from src.engine.difficulty import (
    DIFFICULTY_LEVELS,
    DIFFICULTY_ORDER,
    build_config,
    classify_config,
    fits_preset,
    is_ranked,
    memorize_time_for,
    piece_count_for,
    recommend_difficulty,
    suggest_config,
)
from src.engine.rating import RatingState
from src.engine.session import SessionConfig


@pytest.mark.parametrize(
    "difficulty, low, high",
    [
        (Difficulty.EASY, 2, 4),
        (Difficulty.MEDIUM, 6, 10),
        (Difficulty.HARD, 12, 16),
        (Difficulty.GRANDMASTER, 20, 32),
    ],
)
def test_piece_count_bounds(difficulty: Difficulty, low: int, high: int) -> None:
    assert piece_count_for(difficulty, lambda: 0.0) == low
    assert piece_count_for(difficulty, lambda: 0.999999) == high


@pytest.mark.parametrize(
    "difficulty, low, high",
    [
        (Difficulty.EASY, 10, 15),
        (Difficulty.MEDIUM, 8, 12),
        (Difficulty.HARD, 5, 8),
        (Difficulty.GRANDMASTER, 3, 5),
    ],
)
def test_memorize_time_bounds(difficulty: Difficulty, low: int, high: int) -> None:
    assert memorize_time_for(difficulty, lambda: 0.0) == low
    assert memorize_time_for(difficulty, lambda: 0.999999) == high


@pytest.mark.parametrize("difficulty", list(DIFFICULTY_LEVELS))
def test_suggested_configs_stay_in_range(difficulty: Difficulty) -> None:
    level = DIFFICULTY_LEVELS[difficulty]
    rng = random.Random(3)
    seen = set()
    for _ in range(300):
        config = suggest_config(difficulty, rng.random)
        assert config.difficulty == difficulty
        assert level.min_pieces <= config.piece_count <= level.max_pieces
        assert level.min_time <= config.memorize_time_seconds <= level.max_time
        seen.add(config.piece_count)
    # every count of the range shows up eventually
    assert seen == set(range(level.min_pieces, level.max_pieces + 1))


@pytest.mark.parametrize(
    "rating, streak, expected",
    [
        (0, 0, Difficulty.EASY),
        (999, 0, Difficulty.EASY),
        (1000, 0, Difficulty.MEDIUM),
        (1200, 2, Difficulty.MEDIUM),
        (1499, 0, Difficulty.MEDIUM),
        (1500, 0, Difficulty.HARD),
        (2000, 0, Difficulty.GRANDMASTER),
        (3500, 0, Difficulty.GRANDMASTER),
    ],
)
def test_recommend_by_rating(rating: int, streak: int, expected: Difficulty) -> None:
    assert recommend_difficulty(RatingState(rating=rating, streak=streak)) == expected


@pytest.mark.parametrize(
    "rating, expected",
    [
        (500, Difficulty.MEDIUM),
        (1200, Difficulty.HARD),
        (1600, Difficulty.GRANDMASTER),
        (2500, Difficulty.GRANDMASTER),
    ],
)
def test_streak_moves_recommendation_up(rating: int, expected: Difficulty) -> None:
    assert recommend_difficulty(RatingState(rating=rating, streak=3)) == expected


# -- Ranked and custom configs --
def test_only_presets_are_ranked() -> None:
    assert all(is_ranked(difficulty) for difficulty in DIFFICULTY_LEVELS)
    assert not is_ranked(Difficulty.CUSTOM)
    assert Difficulty.CUSTOM not in DIFFICULTY_ORDER


@pytest.mark.parametrize(
    "config, expected",
    [
        (SessionConfig(2, 10, Difficulty.EASY), True),
        (SessionConfig(4, 15, Difficulty.EASY), True),
        (SessionConfig(5, 10, Difficulty.EASY), False),
        (SessionConfig(32, 60, Difficulty.EASY), False),
        (SessionConfig(3, 9.5, Difficulty.EASY), False),
        (SessionConfig(32, 3, Difficulty.GRANDMASTER), True),
        (SessionConfig(32, 6, Difficulty.GRANDMASTER), False),
        (SessionConfig(3, 10, Difficulty.CUSTOM), False),
    ],
)
def test_fits_preset(config: SessionConfig, expected: bool) -> None:
    assert fits_preset(config) == expected


def test_classify_config() -> None:
    fitting = SessionConfig(8, 10, Difficulty.MEDIUM)
    assert classify_config(fitting) is fitting

    relabelled = classify_config(SessionConfig(32, 60, Difficulty.EASY))
    assert relabelled == SessionConfig(32, 60, Difficulty.CUSTOM)

    custom = SessionConfig(3, 10, Difficulty.CUSTOM)
    assert classify_config(custom) is custom


def test_build_config_fills_in_the_preset() -> None:
    config = build_config(Difficulty.HARD, random_source=lambda: 0.0)
    assert config == SessionConfig(12, 5, Difficulty.HARD)

    config = build_config(Difficulty.HARD, piece_count=16, random_source=lambda: 0.0)
    assert config == SessionConfig(16, 5, Difficulty.HARD)


def test_build_config_outside_preset_is_custom() -> None:
    config = build_config(Difficulty.EASY, piece_count=32, memorize_time_seconds=60)
    assert config == SessionConfig(32, 60, Difficulty.CUSTOM)

    # only one value off the preset is enough
    config = build_config(Difficulty.EASY, memorize_time_seconds=60, random_source=lambda: 0.0)
    assert config == SessionConfig(2, 60, Difficulty.CUSTOM)


def test_build_custom_config() -> None:
    config = build_config(Difficulty.CUSTOM, piece_count=7, memorize_time_seconds=30)
    assert config == SessionConfig(7, 30, Difficulty.CUSTOM)

    with pytest.raises(InvalidConfigError):
        build_config(Difficulty.CUSTOM, piece_count=7)
    with pytest.raises(InvalidConfigError):
        build_config(Difficulty.CUSTOM)
