"""
Validation of the compact board encoding used to persist positions: the placement field of a FEN string.

ex) A position with only the two kings on their starting squares and a white pawn on e4
4k3/8/8/8/4P3/8/8/4K3
* ranks are separated by slashes and read from the 8th rank down to the 1st
* a letter is a piece (upper case: white, lower case: black), a digit counts consecutive empty squares
"""

from string import ascii_lowercase

from src.chess.pieces import FEN_TO_PIECE
from src.chess.square import BOARD_DIMENSIONS

EMPTY_BOARD_FEN = "/".join([str(BOARD_DIMENSIONS[0])] * BOARD_DIMENSIONS[1])


def is_valid_placement(placement: str) -> bool:
    """Only check the part of the FEN encoding for the board position."""
    num_files, num_ranks = BOARD_DIMENSIONS
    rank_fens = placement.split("/")
    if len(rank_fens) != num_ranks:
        return False

    for rank_fen in rank_fens:
        file_count = 0
        for character in rank_fen:
            # make sure every character is valid
            if character.isdigit():
                file_count += int(character)
            elif character.lower() in FEN_TO_PIECE:
                file_count += 1
            else:
                # immediately invalidate if the character is anything else
                return False

        # make sure you are creating a correctly sized board
        if file_count != num_files:
            return False
    return True


def is_valid_square(square: str) -> bool:
    """Valid square should be a letter for the file + a number for the rank"""
    num_files, num_ranks = BOARD_DIMENSIONS

    if len(square) < 2:
        return False

    # NOTE: The following works as long as we do not go beyond 26 files.
    file_char, rank_char = square[0].lower(), square[1:]
    allowed_file_names = ascii_lowercase[:num_files]
    if file_char not in allowed_file_names:
        return False

    if not rank_char.isdigit():
        return False

    if not (1 <= int(rank_char) <= num_ranks):
        return False

    return True
