"""Orchestration of communication from API router to business logic and persistence layers (and the reverse direction)."""

import logging
from typing import Optional
from uuid import UUID

from src.api.models import (
    ClearSquareRequest,
    CreateGameRequest,
    DeleteGameRequest,
    GameResponse,
    GetGameRequest,
    MoveRequest,
    PromotionRequest,
    SaveStateResponse,
    SelectRequest,
)
from src.chess.game import Game
from src.chess.moves import squares_in
from src.chess.pieces import Color as BoardColor
from src.chess.pieces import PieceType as BoardPieceType
from src.chess.square import Square
from src.core.config import Settings, get_settings
from src.core.exceptions import RepositoryError
from src.core.models import GameModel
from src.core.shared_types import Color
from src.db.repository import GameRepository

logger = logging.getLogger(__name__)


class ChessService:
    """Orchestration of layers for chess game."""

    def __init__(
        self, repository: GameRepository, settings: Optional[Settings] = None
    ) -> None:
        self.repo = repository
        self.settings = settings or get_settings()

    # -- API routes logic ---
    def create_game(self, request: CreateGameRequest) -> GameResponse:
        """Start a new game: standard starting position, or the save state supplied."""
        game = Game.new(debug_tools=self.settings.debug_tools)
        if request.save_state is not None:
            game.load(bytes.fromhex(request.save_state))

        stored_game, game_id = self.repo.create_game(game.to_model())
        logger.info("Created game %s", game_id)
        return self._create_game_response(game_id, self._to_game(stored_game))

    def get_game_state(self, request: GetGameRequest) -> GameResponse:
        """
        Retrieve current game state.
        ----
        Used in "polling" loop by frontend to check when it is the player's turn for instance.
        """
        game = self._load_game(request.game_id)
        return self._create_game_response(request.game_id, game)

    def select_square(self, request: SelectRequest) -> GameResponse:
        """Pick up (or put back) a piece. The response lists where it can go."""
        game = self._load_game(request.game_id)
        game.select(Square.from_algebraic(request.square))
        return self._store_and_respond(request.game_id, game)

    def make_move(self, request: MoveRequest) -> GameResponse:
        """Make a move attempt: select the piece (unless it is selected already), then move it."""
        game = self._load_game(request.game_id)

        from_square = Square.from_algebraic(request.from_square)
        if game.selected != from_square:
            game.select(from_square)
        game.move_to(Square.from_algebraic(request.to_square))

        return self._store_and_respond(request.game_id, game)

    def promote(self, request: PromotionRequest) -> GameResponse:
        """Finish a move that brought a pawn to the far rank."""
        game = self._load_game(request.game_id)
        game.promote(BoardPieceType[request.promote_to.name])
        return self._store_and_respond(request.game_id, game)

    def restart_game(self, request: GetGameRequest) -> GameResponse:
        game = self._load_game(request.game_id)
        game.restart()
        return self._store_and_respond(request.game_id, game)

    def export_game(self, request: GetGameRequest) -> SaveStateResponse:
        """Save state of the game, hex encoded"""
        game = self._load_game(request.game_id)
        return SaveStateResponse(game_id=request.game_id, save_state=game.save().hex())

    def clear_square(self, request: ClearSquareRequest) -> GameResponse:
        """Debug tooling, only works when the settings allow it."""
        game = self._load_game(request.game_id)
        game.clear_square_debug(Square.from_algebraic(request.square))
        return self._store_and_respond(request.game_id, game)

    def delete_game(self, request: DeleteGameRequest) -> None:
        """Handle a request to delete a Game record."""
        if self.repo.delete_game(request.game_id) is None:
            raise RepositoryError(f"Game with {request.game_id=} not found.")
        logger.info("Deleted game %s", request.game_id)

    # -- Internal helpers --
    def _load_game(self, game_id: UUID) -> Game:
        return self._to_game(self._fetch_game(game_id))

    def _to_game(self, model: GameModel) -> Game:
        return Game.from_model(model, debug_tools=self.settings.debug_tools)

    def _store_and_respond(self, game_id: UUID, game: Game) -> GameResponse:
        """Capture updated state in GameModel, store in repository, and return a GameResponse"""
        if self.repo.update_game(game_id, game.to_model()) is None:
            raise RepositoryError(f"Game with {game_id=} could not be updated.")
        return self._create_game_response(game_id, game)

    def _create_game_response(self, game_id: UUID, game: Game) -> GameResponse:
        """Convert the Game into a GameResponse (for game with given ID.)"""
        pending = game.board.pending_promotion_location()
        return GameResponse(
            game_id=game_id,
            board=game.board.as_rows(),
            turn=_to_shared_color(game.turn),
            phase=game.phase,
            outcome=game.outcome,
            winner=_to_shared_color(game.winner) if game.winner else None,
            in_check=game.in_check(),
            selected=game.selected.to_algebraic() if game.selected else None,
            legal_destinations=[sq.to_algebraic() for sq in squares_in(game.legal_destinations())],
            spotlight=[sq.to_algebraic() for sq in squares_in(game.spotlight())],
            pending_promotion=pending.to_algebraic() if pending else None,
        )

    def _fetch_game(self, game_id: UUID) -> GameModel:
        """Attempt to find the game in the repository and raise error if it fails."""
        game_model = self.repo.get_game(game_id)
        if game_model is None:
            raise RepositoryError(f"Game with {game_id=} not found.")
        return game_model


def _to_shared_color(color: BoardColor) -> Optional[Color]:
    """The board knows a 'nobody' player, the API does not"""
    if color == BoardColor.NONE:
        return None
    return Color[color.name]
