"""
The Game class will be the entrypoint into the domain layer for the service layer.
It drives the BoardState through a single ply, the way a player does at the board:

    AWAITING_SELECTION --select--> AWAITING_DESTINATION --move_to--> (AWAITING_PROMOTION --promote-->) next player
                                                                                                    or GAME_OVER

GAME_OVER is final until the game is restarted (or another game is loaded).
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Self

from src.chess.board import BoardState
from src.chess.moves import LEGAL_MOVES, MoveMap, empty_map, mark
from src.chess.pieces import Color, PieceType
from src.chess.savegame import read_save_file, write_save_file
from src.chess.square import Square
from src.core.config import get_settings
from src.core.exceptions import (
    DebugToolsDisabledError,
    GameStateError,
    IllegalMoveError,
    NoPromotionPendingError,
    NotYourTurnError,
    PersistenceError,
)
from src.core.models import GameModel
from src.core.shared_types import Outcome, Phase

logger = logging.getLogger(__name__)


@dataclass
class Game:
    board: BoardState
    phase: Phase = Phase.AWAITING_SELECTION
    outcome: Outcome = Outcome.NONE
    selected: Optional[Square] = None
    debug_tools: bool = False

    # --- CREATION ---
    @classmethod
    def new(cls, debug_tools: bool = False) -> Self:
        """Standard starting position, White to move"""
        return cls(board=BoardState.new(), debug_tools=debug_tools)

    @classmethod
    def from_model(cls, model: GameModel, debug_tools: bool = False) -> Self:
        """Define how to construct a Game from the information the Service layer actually has"""

        # Validation
        if model.phase not in [phase.value for phase in Phase]:
            raise GameStateError(
                f"Invalid phase: {model.phase!r}. \nPick one from {','.join(phase.value for phase in Phase)}"
            )
        if model.outcome not in [outcome.value for outcome in Outcome]:
            raise GameStateError(
                f"Invalid outcome: {model.outcome!r}. \nPick one from {','.join(outcome.value for outcome in Outcome)}"
            )

        board = BoardState.new()
        if not board.load(model.state):
            raise PersistenceError("Stored game does not contain a valid save state.")
        if model.pending_promotion:
            board.pending_promotion = Square.from_algebraic(model.pending_promotion)

        selected = Square.from_algebraic(model.selected) if model.selected else None
        return cls(
            board=board,
            phase=Phase(model.phase),
            outcome=Outcome(model.outcome),
            selected=selected,
            debug_tools=debug_tools,
        )

    def to_model(self) -> GameModel:
        """Encode back into a format the Service layer uses"""
        pending = self.board.pending_promotion_location()
        return GameModel(
            state=self.board.save(),
            phase=self.phase.value,
            outcome=self.outcome.value,
            selected=self.selected.to_algebraic() if self.selected else None,
            pending_promotion=pending.to_algebraic() if pending else None,
        )

    # --- STATE ---
    @property
    def turn(self) -> Color:
        return self.board.current_turn()

    @property
    def winner(self) -> Optional[Color]:
        """
        Only defined for checkmate.
        The player who is to move just got mated, so the opponent must be the winner.
        """
        if self.outcome != Outcome.CHECKMATE:
            return None
        return self.turn.opponent

    def in_check(self) -> bool:
        return self.board.is_in_check(self.turn)

    def legal_destinations(self) -> MoveMap:
        """Where the selected piece can go (nothing if no piece is selected)"""
        if self.selected is None:
            return empty_map()
        return self.board.move_options(self.turn, self.selected, LEGAL_MOVES)

    def spotlight(self) -> MoveMap:
        """Highlight every piece of the player to move that has at least one legal move"""
        spotlight = empty_map()
        if self.phase in (Phase.AWAITING_PROMOTION, Phase.GAME_OVER):
            return spotlight
        for square in self.board.locate_color(self.turn):
            if self.board.move_options(self.turn, square, LEGAL_MOVES).any():
                mark(spotlight, square)
        return spotlight

    # --- PLAYING A PLY ---
    def select(self, square: Square) -> MoveMap:
        """
        Pick up a piece. Returns the squares it can move to.
        ----

        * Selecting the piece that is already selected puts it back (returns an empty map).
        * Selecting another one of your pieces switches the selection.
        """
        self._assert_accepting_moves()

        if self.phase == Phase.AWAITING_DESTINATION and square == self.selected:
            self._deselect()
            return empty_map()

        if not self.board.can_select(self.turn, square):
            owner = self.board.owner(square) if square.is_within_bounds() else Color.NONE
            if owner == self.turn.opponent:
                raise NotYourTurnError(
                    f"Piece on {square.to_algebraic()} belongs to {owner.name.lower()}. It is {self.turn.name.lower()} to move."
                )
            raise GameStateError(f"No piece of yours to select on {square.to_algebraic()}.")

        self.selected = square
        self.phase = Phase.AWAITING_DESTINATION
        return self.legal_destinations()

    def move_to(self, destination: Square) -> None:
        """
        Move the selected piece
        -----

        1. Let the board check legality and make the move
        2. Pawn reached the far rank? Wait for the promotion choice.
        3. Otherwise hand the turn to the opponent and check whether the game has ended
        """
        self._assert_accepting_moves()
        if self.phase != Phase.AWAITING_DESTINATION or self.selected is None:
            raise GameStateError("Select a piece before choosing where to move it.")

        source = self.selected
        if not self.board.apply_move(source, destination):
            raise IllegalMoveError(
                f"Move not allowed: {source.to_algebraic()} -> {destination.to_algebraic()}"
            )
        logger.info(
            "%s moved %s -> %s",
            self.turn.name.lower(),
            source.to_algebraic(),
            destination.to_algebraic(),
        )
        self.selected = None

        if self.board.is_promotion_pending():
            self.phase = Phase.AWAITING_PROMOTION
            return
        self._after_turn()

    def promote(self, piece_type: PieceType) -> None:
        """Resolve the pending promotion, then finish the turn"""
        if self.phase != Phase.AWAITING_PROMOTION or not self.board.is_promotion_pending():
            raise NoPromotionPendingError("There is no pawn waiting to be promoted.")
        if not self.board.resolve_promotion(piece_type):
            raise IllegalMoveError(f"Cannot promote a pawn to {piece_type.name.lower()}.")
        logger.info("%s promoted a pawn to %s", self.turn.name.lower(), piece_type.name.lower())
        self._after_turn()

    def restart(self) -> None:
        self.board.reset()
        self.selected = None
        self.phase = Phase.AWAITING_SELECTION
        self.outcome = Outcome.NONE
        logger.info("Game restarted")

    # --- SAVING / LOADING ---
    def save(self) -> bytes:
        """Save state of the board. Not available halfway a promotion or once the game has ended."""
        if self.phase in (Phase.AWAITING_PROMOTION, Phase.GAME_OVER):
            raise GameStateError(f"Cannot save the game now. phase: {self.phase}")
        return self.board.save()

    def load(self, data: bytes) -> None:
        """Replace the game by a saved one. The loaded position is checked for checkmate / stalemate right away."""
        if not self.board.load(data):
            raise PersistenceError("Not a valid save state.")
        self.selected = None
        self._update_game_status()
        logger.info("Game loaded. %s to move", self.turn.name.lower())

    def save_to_file(self, path: Optional[Path] = None) -> bool:
        """Returns the status of success"""
        try:
            data = self.save()
        except GameStateError as exc:
            logger.warning("Not saving: %s", exc)
            return False
        return write_save_file(path or get_settings().save_path, data)

    def load_from_file(self, path: Optional[Path] = None) -> bool:
        """Returns the status of success. On failure the game continues unchanged."""
        data = read_save_file(path or get_settings().save_path)
        if data is None:
            return False
        try:
            self.load(data)
        except PersistenceError as exc:
            logger.warning("Not loading: %s", exc)
            return False
        return True

    # --- DEBUG TOOLS ---
    def clear_square_debug(self, square: Square) -> None:
        """Remove whatever stands on the square, rules or no rules"""
        self.place_piece_debug(square, PieceType.EMPTY, Color.NONE)

    def place_piece_debug(self, square: Square, piece_type: PieceType, color: Color) -> None:
        if not self.debug_tools:
            raise DebugToolsDisabledError("Debug tools are disabled.")
        self.board.set_owner_debug(square, color)
        self.board.set_piece_debug(square, piece_type)
        self._deselect()
        logger.debug("Debug edit on %s: %s %s", square.to_algebraic(), color.name, piece_type.name)

    # -- PRIVATE HELPERS ---
    def _assert_accepting_moves(self) -> None:
        if self.phase == Phase.GAME_OVER:
            raise GameStateError(f"Game is over. outcome: {self.outcome}")
        if self.phase == Phase.AWAITING_PROMOTION:
            raise GameStateError("Choose a piece to promote the pawn into first.")

    def _deselect(self) -> None:
        self.selected = None
        if self.phase == Phase.AWAITING_DESTINATION:
            self.phase = Phase.AWAITING_SELECTION

    def _after_turn(self) -> None:
        """Hand the turn over, then check for end condition"""
        self.board.advance_turn()
        self._update_game_status()

    def _update_game_status(self) -> None:
        """NOTE: at this point the player to move is the opponent of the player who made the last move."""
        color = self.turn
        if color == Color.NONE:
            # nobody to move (a save state may say so): nothing to classify
            self.phase = Phase.AWAITING_SELECTION
            self.outcome = Outcome.NONE
        elif self.board.is_checkmate(color):
            self.phase = Phase.GAME_OVER
            self.outcome = Outcome.CHECKMATE
            logger.info("Checkmate: %s wins", color.opponent.name.lower())
        elif self.board.is_stalemate(color):
            self.phase = Phase.GAME_OVER
            self.outcome = Outcome.STALEMATE
            logger.info("Stalemate: %s cannot move", color.name.lower())
        else:
            self.phase = Phase.AWAITING_SELECTION
            self.outcome = Outcome.NONE
