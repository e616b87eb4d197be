"""
Type definitions used across layers
"""

from enum import StrEnum


class Phase(StrEnum):
    """Where a game is within a single ply"""

    AWAITING_SELECTION = "awaiting selection"
    AWAITING_DESTINATION = "awaiting destination"
    AWAITING_PROMOTION = "awaiting promotion"
    GAME_OVER = "game over"


class Outcome(StrEnum):
    NONE = "none"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"


# --- Color does NOT contain an option for empty squares (that one lives in src/chess/pieces.py)
# --- NOTE Just use the same name as that reads clearly and let the imports show which version is used in what part of the code


class Color(StrEnum):
    WHITE = "white"
    BLACK = "black"


class PromotionPiece(StrEnum):
    """The pieces a pawn may turn into"""

    KNIGHT = "knight"
    BISHOP = "bishop"
    ROOK = "rook"
    QUEEN = "queen"
