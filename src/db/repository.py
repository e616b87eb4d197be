"""Protocol repository: where sessions are kept between requests (SQL database now, a folder of save files is another option)"""

from typing import Protocol
from uuid import UUID

from src.core.models import GameModel


class GameRepository(Protocol):
    """
    Stores a session as its save state plus the bits of the ply in progress.
    Every method returns None when no session exists for the given ID.
    """

    def get_game(self, game_id: UUID) -> GameModel | None: ...

    def create_game(self, game: GameModel) -> tuple[GameModel, UUID]:
        """The repository hands out the ID"""
        ...

    def update_game(self, game_id: UUID, game: GameModel) -> GameModel | None:
        """Overwrite the stored session after a ply (or part of one)"""
        ...

    def delete_game(self, game_id: UUID) -> GameModel | None:
        """Returns the session as it was before removal"""
        ...
