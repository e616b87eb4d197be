"""
A square on the board, and what stands on it.

(placed in its own module as multiple other modules need to import it)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterator

from src.chess.pieces import Color, PieceType

# Chess board is always 8x8. Just in case we want to try some funky stuff, make it adjustable
BOARD_DIMENSIONS = (8, 8)


@dataclass(frozen=True)
class Square:
    file: int
    rank: int

    @classmethod
    def from_algebraic(cls, sq: str) -> Square:
        """Algebraic notation: 'a1' - 'h8' get converted to (1,1) - (8,8)"""
        file = ord(sq[0]) - ord("a") + 1
        rank = int(sq[1])
        return cls(file, rank)

    @classmethod
    def from_index(cls, row: int, column: int) -> Square:
        """Grid index to square. Row 0 is the top of the board (8th rank)."""
        return cls(column + 1, BOARD_DIMENSIONS[1] - row)

    def to_algebraic(self) -> str:
        return f"{chr(self.file + ord('a') - 1)}{self.rank}"

    @property
    def index(self) -> tuple[int, int]:
        """(row, column) in a move map. Same orientation as a FEN string: 8th rank first."""
        return BOARD_DIMENSIONS[1] - self.rank, self.file - 1

    def offset(self, df: int, dr: int) -> Square:
        return Square(self.file + df, self.rank + dr)

    def is_within_bounds(self) -> bool:
        return (1 <= self.file <= BOARD_DIMENSIONS[0]) and (
            1 <= self.rank <= BOARD_DIMENSIONS[1]
        )


def all_squares() -> Iterator[Square]:
    """Row-major walk over the board, top row (8th rank) first and a-file first within a row."""
    for row in range(BOARD_DIMENSIONS[1]):
        for column in range(BOARD_DIMENSIONS[0]):
            yield Square.from_index(row, column)


@dataclass
class SquareState:
    """
    Contents of a single square.

    * touched: the occupant of this square has moved (or something has left the square). Gates castling and the pawn double step.
    * en_passant_target: the square a pawn skipped over on the previous move.
    * castling_target: the king of the side to move may land here by castling.
    """

    owner: Color = Color.NONE
    piece: PieceType = PieceType.EMPTY
    touched: bool = False
    en_passant_target: bool = False
    castling_target: bool = False

    def is_empty(self) -> bool:
        """No piece standing here. An owner without a piece (debug edits) counts as empty too."""
        return self.owner == Color.NONE or self.piece == PieceType.EMPTY

    def clear(self) -> None:
        """Remove the occupant. Flags stay as they are."""
        self.owner = Color.NONE
        self.piece = PieceType.EMPTY

    def copy(self) -> SquareState:
        return replace(self)
