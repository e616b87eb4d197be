"""
Custom errors, shared by all layers.

NOTE the rules engine (BoardState) itself never raises for illegal input: it reports failure through return values.
The layers calling it (Game, ChessService, API models) turn those failures into the errors below.
"""


class GameError(Exception):
    """Base class for everything that can go wrong while playing a game"""


class IllegalMoveError(GameError):
    """Attempted move fails the legality check"""


class NotYourTurnError(GameError):
    """Selecting / moving a piece of the player that is not to move"""


class GameStateError(GameError):
    """Request does not fit the current phase of the game (e.g. moving while a promotion choice is pending)"""


class NoPromotionPendingError(GameStateError):
    """Promotion choice made while no pawn is waiting to be promoted"""


class DebugToolsDisabledError(GameStateError):
    """Debug-only board edits requested while the debug tools are switched off"""


class PersistenceError(GameError):
    """Saving or loading a game failed (I/O error, or a malformed save state)"""


class SaveFormatError(PersistenceError):
    """The bytes do not follow the save state layout (too short, wrong header, out-of-range codes)"""


class InvalidFENError(GameError):
    """Piece placement string cannot be parsed"""


class RepositoryError(Exception):
    """Record not found / could not be stored"""


class InvalidRequestError(ValueError):
    """Request data that does not make sense (raised inside pydantic validators, hence a ValueError)"""
