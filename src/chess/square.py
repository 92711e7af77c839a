"""
A square on the board

(placed in its own module as multiple other modules need to import it)
"""

from __future__ import annotations

from dataclasses import dataclass

# Chess board is always 8x8. Files and ranks are counted from zero: a1 is (0, 0), h8 is (7, 7)
BOARD_DIMENSIONS = (8, 8)


@dataclass(frozen=True)
class Square:
    file: int
    rank: int

    @classmethod
    def from_algebraic(cls, sq: str) -> Square:
        """Algebraic notation: 'a1' - 'h8' get converted to (0,0) - (7,7)"""
        file = ord(sq[0].lower()) - ord("a")
        rank = int(sq[1:]) - 1
        return cls(file, rank)

    def to_algebraic(self) -> str:
        return f"{chr(self.file + ord('a'))}{self.rank + 1}"

    def is_within_bounds(self) -> bool:
        return (0 <= self.file < BOARD_DIMENSIONS[0]) and (
            0 <= self.rank < BOARD_DIMENSIONS[1]
        )

    def distance(self, other: Square) -> int:
        """Chebyshev distance: the number of king steps between the two squares."""
        return max(abs(self.file - other.file), abs(self.rank - other.rank))

    def is_adjacent(self, other: Square) -> bool:
        return self.distance(other) == 1

    def is_back_rank(self) -> bool:
        """First or last rank. Pawns are never memorized on these."""
        return self.rank in (0, BOARD_DIMENSIONS[1] - 1)


# Fixed iteration order (a1, a2, ..., h8) so that random draws are reproducible given the same random numbers
ALL_SQUARES: tuple[Square, ...] = tuple(
    Square(file, rank)
    for file in range(BOARD_DIMENSIONS[0])
    for rank in range(BOARD_DIMENSIONS[1])
)
