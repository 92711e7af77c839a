"""
A Position is the set of pieces placed on the board.

The same class is used for the position the player has to memorize and for the (possibly incomplete, or over-full) solution the player builds.
Only a memorization target must satisfy `is_valid_target`.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Optional, Self

from src.chess.fen import is_valid_placement
from src.chess.pieces import Piece
from src.chess.square import ALL_SQUARES, BOARD_DIMENSIONS, Square
from src.core.exceptions import InvalidPositionError
from src.core.shared_types import Color, PieceType


@dataclass
class Position:
    placements: dict[Square, Piece] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> Self:
        return cls()

    @classmethod
    def from_fen(cls, placement: str) -> Self:
        """Construct a position from the placement field of a FEN string (ex. 4k3/8/8/8/4P3/8/8/4K3).

        * The first rank in the string is the 8th rank ...
        * ... but the first character of a rank is the a-file, so it reads in normal direction
        """
        if not is_valid_placement(placement):
            raise InvalidPositionError(
                f"Cannot interpret supplied string as a board placement: {placement!r}"
            )

        placements: dict[Square, Piece] = {}
        for rank_idx, fen_one_rank in enumerate(placement.split("/")):
            rank = BOARD_DIMENSIONS[1] - 1 - rank_idx
            file = 0
            for character in fen_one_rank:
                if character.isalpha():
                    placements[Square(file, rank)] = Piece.from_fen(character)
                    file += 1
                else:
                    # A number denotes the amount of empty squares after each other
                    file += int(character)
        return cls(placements)

    def to_fen(self) -> str:
        """Ranks are separated by slashes in FEN string."""
        return "/".join(
            self._rank_to_fen(rank) for rank in range(BOARD_DIMENSIONS[1] - 1, -1, -1)
        )

    def _rank_to_fen(self, rank: int) -> str:
        """FEN string of a single rank"""
        fen_characters: list[str] = []
        empty_count = 0
        for file in range(BOARD_DIMENSIONS[0]):
            piece = self.piece(Square(file, rank))

            if piece is not None:
                if empty_count > 0:
                    fen_characters.append(str(empty_count))
                    empty_count = 0
                fen_characters.append(piece.to_fen())
            else:
                empty_count += 1

        # if the entire rank is empty, then we still place this number in the string
        if empty_count > 0:
            fen_characters.append(str(empty_count))
        return "".join(fen_characters)

    def __len__(self) -> int:
        return len(self.placements)

    def __iter__(self) -> Iterator[tuple[Square, Piece]]:
        return iter(self.placements.items())

    def piece(self, square: Square) -> Optional[Piece]:
        return self.placements.get(square)

    def place(self, square: Square, piece: Piece) -> None:
        """Upsert: a piece placed on an occupied square replaces the occupant."""
        if not square.is_within_bounds():
            raise InvalidPositionError(f"Square {square} is not on the board.")
        self.placements[square] = piece

    def remove(self, square: Square) -> Optional[Piece]:
        """Remove (and return) the piece on the square. Removing from an empty square does nothing."""
        return self.placements.pop(square, None)

    def empty_squares(self) -> list[Square]:
        return [square for square in ALL_SQUARES if square not in self.placements]

    def locate(self, piece_type: PieceType, color: Color) -> list[Square]:
        return [
            square
            for square, piece in self.placements.items()
            if piece.type == piece_type and piece.color == color
        ]

    def count_color(self, color: Color, include_king: bool = True) -> int:
        return sum(
            1
            for piece in self.placements.values()
            if piece.color == color and (include_king or piece.type != PieceType.KING)
        )

    def copy(self) -> Self:
        # Piece and Square are frozen, copying the mapping is enough
        return type(self)(dict(self.placements))

    def is_valid_target(self) -> bool:
        """
        A position the player can be asked to memorize:
        ---

        * exactly one white king and one black king
        * the two kings are not on neighbouring squares
        * every piece on a square of the board
        """
        white_kings = self.locate(PieceType.KING, Color.WHITE)
        black_kings = self.locate(PieceType.KING, Color.BLACK)
        if len(white_kings) != 1 or len(black_kings) != 1:
            return False

        if white_kings[0].distance(black_kings[0]) <= 1:
            return False

        return all(square.is_within_bounds() for square in self.placements)
