"""
Type definitions used across layers
"""

from enum import StrEnum


class Color(StrEnum):
    WHITE = "white"
    BLACK = "black"


class PieceType(StrEnum):
    PAWN = "pawn"
    KNIGHT = "knight"
    BISHOP = "bishop"
    ROOK = "rook"
    QUEEN = "queen"
    KING = "king"


class Phase(StrEnum):
    """The four phases of a training session. A session is in exactly one of them at any time."""

    CONFIGURATION = "configuration"
    MEMORIZATION = "memorization"
    SOLUTION = "solution"
    RESULT = "result"


class Difficulty(StrEnum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    GRANDMASTER = "grandmaster"
    # Piece count or memorize time outside the presets. Never ranked.
    CUSTOM = "custom"
