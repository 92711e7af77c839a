"""Unit tests for /src/chess/position.py"""

import pytest

from src.chess.fen import EMPTY_BOARD_FEN
from src.chess.pieces import Piece
from src.chess.position import Position
from src.chess.square import Square
from src.core.exceptions import InvalidPositionError
from src.core.shared_types import Color, PieceType

KINGS_AND_PAWN = "4k3/8/8/8/4P3/8/8/4K3"


def sq(notation: str) -> Square:
    return Square.from_algebraic(notation)


# -- FEN ENCODING --
def test_empty_position_to_fen() -> None:
    assert Position.empty().to_fen() == EMPTY_BOARD_FEN


def test_position_from_fen() -> None:
    """Check that the pieces end up on the right squares (rank 8 is written first, a-file first within a rank)."""
    position = Position.from_fen(KINGS_AND_PAWN)
    assert len(position) == 3
    assert position.piece(sq("e8")) == Piece(PieceType.KING, Color.BLACK)
    assert position.piece(sq("e1")) == Piece(PieceType.KING, Color.WHITE)
    assert position.piece(sq("e4")) == Piece(PieceType.PAWN, Color.WHITE)
    assert position.piece(sq("e5")) is None


@pytest.mark.parametrize(
    "placement",
    [
        EMPTY_BOARD_FEN,
        KINGS_AND_PAWN,
        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR",
        "r3k2r/pppq1ppp/2npbn2/4p3/2B1P3/2NP1N2/PPP2PPP/R1BQ1RK1",
    ],
)
def test_fen_roundtrip(placement: str) -> None:
    """Type, color and square all survive the encoding."""
    assert Position.from_fen(placement).to_fen() == placement


def test_invalid_fen_raises() -> None:
    with pytest.raises(InvalidPositionError):
        Position.from_fen("8/8/8")


# -- MUTATION --
def test_place_replaces_occupant() -> None:
    """At most one piece per square: placing on an occupied square is an upsert."""
    position = Position.empty()
    position.place(sq("d4"), Piece(PieceType.ROOK, Color.WHITE))
    position.place(sq("d4"), Piece(PieceType.QUEEN, Color.BLACK))
    assert len(position) == 1
    assert position.piece(sq("d4")) == Piece(PieceType.QUEEN, Color.BLACK)


def test_place_off_the_board() -> None:
    with pytest.raises(InvalidPositionError):
        Position.empty().place(Square(8, 0), Piece(PieceType.ROOK, Color.WHITE))


def test_remove_piece() -> None:
    position = Position.from_fen(KINGS_AND_PAWN)
    removed = position.remove(sq("e4"))
    assert removed == Piece(PieceType.PAWN, Color.WHITE)
    assert position.piece(sq("e4")) is None
    # removing from an empty square does nothing
    assert position.remove(sq("e4")) is None
    assert len(position) == 2


def test_copy_is_independent() -> None:
    original = Position.from_fen(KINGS_AND_PAWN)
    copied = original.copy()
    copied.remove(sq("e4"))
    assert len(original) == 3
    assert len(copied) == 2


def test_empty_squares() -> None:
    position = Position.from_fen(KINGS_AND_PAWN)
    empty = position.empty_squares()
    assert len(empty) == 61
    assert sq("e4") not in empty


def test_count_color() -> None:
    position = Position.from_fen(KINGS_AND_PAWN)
    assert position.count_color(Color.WHITE) == 2
    assert position.count_color(Color.WHITE, include_king=False) == 1
    assert position.count_color(Color.BLACK, include_king=False) == 0


# -- TARGET VALIDITY --
@pytest.mark.parametrize(
    "placement, expected",
    [
        (KINGS_AND_PAWN, True),
        ("k7/8/8/8/8/8/8/7K", True),
        ("8/8/8/8/4P3/8/8/4K3", False),  # no black king
        ("4k3/8/8/8/8/8/8/8", False),  # no white king
        ("4k3/8/8/8/8/8/8/K3K3", False),  # two white kings
        ("8/8/8/3k4/4K3/8/8/8", False),  # kings next to each other
        ("8/8/8/8/3kK3/8/8/8", False),  # kings next to each other
    ],
)
def test_is_valid_target(placement: str, expected: bool) -> None:
    assert Position.from_fen(placement).is_valid_target() == expected
