"""
Random positions for the player to memorize.

Kings go first (so every position is a valid target), then the remaining pieces are drawn one at a time.
All randomness comes from a single injected `random_source` returning floats in [0, 1), so a scripted source reproduces a position exactly.
"""

import logging
import random
from collections.abc import Callable, Sequence
from typing import TypeVar

from src.chess.pieces import Piece
from src.chess.position import Position
from src.chess.square import Square
from src.core.exceptions import GenerationFailureError
from src.core.shared_types import Color, PieceType

log = logging.getLogger(__name__)

RandomSource = Callable[[], float]
T = TypeVar("T")

MIN_PIECES = 2
MAX_PIECES = 32
DEFAULT_MAX_ATTEMPTS = 1000

# Relative weights of the non-king pieces. Pawns are by far the most common, kings are never drawn.
PIECE_WEIGHTS: dict[PieceType, int] = {
    PieceType.PAWN: 8,
    PieceType.KNIGHT: 2,
    PieceType.BISHOP: 2,
    PieceType.ROOK: 2,
    PieceType.QUEEN: 1,
}


def clamp_piece_count(piece_count: int) -> int:
    return max(MIN_PIECES, min(MAX_PIECES, piece_count))


class PositionGenerator:
    """Generates positions with exactly N pieces: two non-adjacent kings plus N - 2 weighted random pieces."""

    def __init__(
        self,
        random_source: RandomSource = random.random,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self.random_source = random_source
        self.max_attempts = max_attempts

    def generate(self, piece_count: int) -> Position:
        """
        Build a new position
        ----

        1. white king on a random square
        2. black king on a random square that does not touch the white king
        3. piece_count - 2 extra pieces (weighted types, colors kept in balance, no pawns on the back ranks)

        Raises GenerationFailureError if the result would not be a valid memorization target.
        """
        piece_count = clamp_piece_count(piece_count)
        position = Position.empty()

        self._place_kings(position)
        if piece_count > MIN_PIECES:
            self._place_extra_pieces(position, piece_count - MIN_PIECES)

        if not position.is_valid_target():
            raise GenerationFailureError(
                f"Generated position is not a valid target: {position.to_fen()}"
            )
        log.debug("Generated position %s (%d pieces)", position.to_fen(), len(position))
        return position

    # -- PRIVATE HELPERS ---
    def _place_kings(self, position: Position) -> None:
        empty_squares = position.empty_squares()
        if not empty_squares:
            raise GenerationFailureError("No empty square left for the white king.")
        white_king_square = self._choice(empty_squares)
        position.place(white_king_square, self._new_piece(PieceType.KING, Color.WHITE, 0))

        # Exclude the white king's square and its (up to 8) neighbours
        available = [
            square
            for square in position.empty_squares()
            if square.distance(white_king_square) > 1
        ]
        if not available:
            log.warning("No square left for the black king next to %s", white_king_square)
            raise GenerationFailureError("No legal square left for the black king.")
        black_king_square = self._choice(available)
        position.place(black_king_square, self._new_piece(PieceType.KING, Color.BLACK, 0))

    def _place_extra_pieces(self, position: Position, count: int) -> None:
        """Rejection sampling: a pawn drawn for the first or last rank gets discarded and the whole draw is repeated."""
        for index in range(1, count + 1):
            empty_squares = position.empty_squares()
            # Best effort: a board can run out of squares only for counts above the maximum
            if not empty_squares:
                log.warning("Board is full after placing %d pieces", len(position))
                return

            square, piece_type = self._draw_placement(empty_squares)
            color = self._next_color(position)
            position.place(square, self._new_piece(piece_type, color, index))

    def _draw_placement(self, empty_squares: list[Square]) -> tuple[Square, PieceType]:
        for _ in range(self.max_attempts):
            square = self._choice(empty_squares)
            piece_type = self._weighted_piece_type()
            if piece_type == PieceType.PAWN and square.is_back_rank():
                continue
            return square, piece_type

        raise GenerationFailureError(
            f"Could not place a piece within {self.max_attempts} attempts."
        )

    def _next_color(self, position: Position) -> Color:
        """The side with fewer (non-king) pieces gets the next one. A coin flip decides when both sides are even."""
        white = position.count_color(Color.WHITE, include_king=False)
        black = position.count_color(Color.BLACK, include_king=False)
        if white < black:
            return Color.WHITE
        if black < white:
            return Color.BLACK
        return Color.WHITE if self.random_source() < 0.5 else Color.BLACK

    def _weighted_piece_type(self) -> PieceType:
        total = sum(PIECE_WEIGHTS.values())
        target = self.random_source() * total
        cumulative = 0
        for piece_type, weight in PIECE_WEIGHTS.items():
            cumulative += weight
            if target < cumulative:
                return piece_type
        # Only reachable through float rounding at the very top of the range
        return PieceType.QUEEN

    def _choice(self, options: Sequence[T]) -> T:
        index = int(self.random_source() * len(options))
        return options[min(index, len(options) - 1)]

    def _new_piece(self, piece_type: PieceType, color: Color, index: int) -> Piece:
        # Deterministic ids: the same random draws give the same pieces
        return Piece(piece_type, color, id=f"{color.value}-{piece_type.value}-{index}")
