"""Implementation of (Game)Repository using SQLAlchemy"""

import logging
from dataclasses import asdict
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.core.models import GameModel
from src.db.schema import DBGame

logger = logging.getLogger(__name__)


class SQLGameRepository:
    """One row per session. The board itself is a single binary column holding the save state."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_game(self, game_id: UUID) -> GameModel | None:
        row = self._fetch_row(game_id)
        return _row_to_model(row) if row is not None else None

    def create_game(self, game: GameModel) -> tuple[GameModel, UUID]:
        row = DBGame(id=uuid4(), **asdict(game))
        self.db.add(row)
        self._commit(row)
        logger.debug("Stored new game %s", row.id)
        return _row_to_model(row), row.id

    def update_game(self, game_id: UUID, game: GameModel) -> GameModel | None:
        row = self._fetch_row(game_id)
        if row is None:
            return None
        for column, value in asdict(game).items():
            setattr(row, column, value)
        self._commit(row)
        return _row_to_model(row)

    def delete_game(self, game_id: UUID) -> GameModel | None:
        row = self._fetch_row(game_id)
        if row is None:
            return None
        removed = _row_to_model(row)
        self.db.delete(row)
        self.db.commit()
        logger.debug("Deleted game %s", game_id)
        return removed

    def _fetch_row(self, game_id: UUID) -> DBGame | None:
        return self.db.scalar(select(DBGame).where(DBGame.id == game_id))

    def _commit(self, row: DBGame) -> None:
        self.db.commit()
        self.db.refresh(row)


def _row_to_model(row: DBGame) -> GameModel:
    """Only the columns GameModel knows about: the timestamps stay in the database"""
    return GameModel(
        state=row.state,
        phase=row.phase,
        outcome=row.outcome,
        selected=row.selected,
        pending_promotion=row.pending_promotion,
    )
