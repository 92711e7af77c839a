"""Scoring a reconstruction: compare the solution the player built against the original position."""

import math
from dataclasses import dataclass

from src.chess.position import Position

DEFAULT_EXTRA_PIECE_PENALTY = 10


def round_half_up(value: float) -> int:
    """Python's round() rounds half to even. Scores round .5 upwards."""
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class AccuracyResult:
    accuracy_percent: int
    correct_placements: int
    total_original_pieces: int
    extra_pieces: int
    # Pieces of the solution that do not match the original on their square
    incorrect_placements: int = 0

    @property
    def is_perfect(self) -> bool:
        return self.accuracy_percent == 100


def compare(
    original: Position,
    solution: Position,
    extra_piece_penalty: int = DEFAULT_EXTRA_PIECE_PENALTY,
) -> AccuracyResult:
    """
    Accuracy of a solution
    ----

    * a piece of the original counts as correct if the solution has a piece with the same type and color on the same square
    * every piece beyond the size of the original costs `extra_piece_penalty` percentage points (flooding the board with guesses does not pay)
    * the result never drops below 0. An empty original scores 0.
    """
    correct = sum(
        1 for square, piece in original if solution.piece(square) == piece
    )
    total = len(original)
    extra = max(0, len(solution) - total)

    if total == 0:
        accuracy = 0
    else:
        base_accuracy = round_half_up(correct / total * 100)
        accuracy = max(0, base_accuracy - extra_piece_penalty * extra)

    return AccuracyResult(
        accuracy_percent=accuracy,
        correct_placements=correct,
        total_original_pieces=total,
        extra_pieces=extra,
        incorrect_placements=len(solution) - correct,
    )
