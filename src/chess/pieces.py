"""Defines the types of chess pieces and the players owning them"""

from enum import Enum


class PieceType(Enum):
    """Values are the codes used in a save file."""

    EMPTY = 0
    PAWN = 1
    KNIGHT = 2
    BISHOP = 3
    ROOK = 4
    QUEEN = 5
    KING = 6


class Color(Enum):
    """Values are the codes used in a save file. Black is 'player A', White is 'player B'."""

    NONE = 0
    BLACK = 1
    WHITE = 2

    @property
    def opponent(self) -> "Color":
        if self == Color.WHITE:
            return Color.BLACK
        if self == Color.BLACK:
            return Color.WHITE
        return Color.NONE

    @property
    def forward(self) -> int:
        """Rank direction of a pawn push: White moves UP the board, Black moves DOWN"""
        return 1 if self == Color.WHITE else -1


FEN_TO_PIECE: dict[str, PieceType] = {
    "p": PieceType.PAWN,
    "n": PieceType.KNIGHT,
    "b": PieceType.BISHOP,
    "r": PieceType.ROOK,
    "q": PieceType.QUEEN,
    "k": PieceType.KING,
}

PIECE_TO_FEN: dict[PieceType, str] = {value: key for key, value in FEN_TO_PIECE.items()}

# The order in which the pieces stand on the back rank, a-file first
BACK_RANK: tuple[PieceType, ...] = (
    PieceType.ROOK,
    PieceType.KNIGHT,
    PieceType.BISHOP,
    PieceType.QUEEN,
    PieceType.KING,
    PieceType.BISHOP,
    PieceType.KNIGHT,
    PieceType.ROOK,
)

PROMOTION_OPTIONS: tuple[PieceType, ...] = (
    PieceType.KNIGHT,
    PieceType.BISHOP,
    PieceType.ROOK,
    PieceType.QUEEN,
)


def piece_from_fen(character: str) -> tuple[PieceType, Color]:
    # lower case: Black pieces, upper case: White pieces
    color = Color.WHITE if character.isupper() else Color.BLACK
    return FEN_TO_PIECE[character.lower()], color


def piece_to_fen(piece_type: PieceType, color: Color) -> str:
    return (
        PIECE_TO_FEN[piece_type].upper()
        if color == Color.WHITE
        else PIECE_TO_FEN[piece_type].lower()
    )
