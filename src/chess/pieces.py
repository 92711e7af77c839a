"""Defines the chess pieces that can be placed on the board"""

from dataclasses import dataclass, field
from typing import Self
from uuid import uuid4

from src.core.shared_types import Color, PieceType

FEN_TO_PIECE: dict[str, PieceType] = {
    "p": PieceType.PAWN,
    "n": PieceType.KNIGHT,
    "b": PieceType.BISHOP,
    "r": PieceType.ROOK,
    "q": PieceType.QUEEN,
    "k": PieceType.KING,
}

PIECE_TO_FEN: dict[PieceType, str] = {value: key for key, value in FEN_TO_PIECE.items()}


def new_piece_id() -> str:
    return uuid4().hex[:8]


@dataclass(frozen=True)
class Piece:
    type: PieceType
    color: Color
    # NOTE: the id only tracks a piece for the UI (drag/drop). Two pieces of the same type and color are equal.
    id: str = field(default_factory=new_piece_id, compare=False)

    @classmethod
    def from_fen(cls, character: str) -> Self:
        # lower case: Black pieces, upper case: White pieces
        color = Color.WHITE if character.isupper() else Color.BLACK
        piece_type = FEN_TO_PIECE[character.lower()]
        return cls(piece_type, color)

    def to_fen(self) -> str:
        return (
            PIECE_TO_FEN[self.type].upper()
            if self.color == Color.WHITE
            else PIECE_TO_FEN[self.type].lower()
        )

