"""
Pytest will auto-discover / import this file called 'conftest.py'.
Fixtures shared by the tests of multiple layers live here.
"""

from typing import Generator

import pytest
from sqlalchemy import Engine, StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.chess.board import BoardState
from src.core.models import GameModel
from src.db.schema import Base


@pytest.fixture(scope="session")
def sqlite_engine() -> Engine:
    """In-memory SQLite database. StaticPool: every session talks to the same connection (and so the same tables)."""
    return create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture
def db_session_repo(sqlite_engine: Engine) -> Generator[Session, None, None]:
    """Fresh tables for every test, dropped again at teardown."""
    Base.metadata.create_all(bind=sqlite_engine)
    db = sessionmaker(autoflush=False, bind=sqlite_engine)()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=sqlite_engine)


@pytest.fixture
def new_game_model() -> GameModel:
    """What a freshly created session looks like on its way to the repository"""
    return GameModel(
        state=BoardState.new().save(),
        phase="awaiting selection",
        outcome="none",
    )
