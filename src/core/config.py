"""
Application settings, read from the environment.

* CHESS_DATABASE_URL: SQLAlchemy URL of the game store
* CHESS_SAVE_PATH: where `Game.save_to_file()` writes by default
* CHESS_LOG_LEVEL: logging level name
* CHESS_DEBUG_TOOLS: "1"/"true" to allow editing the board outside of the rules
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, field_validator

ENV_PREFIX = "CHESS_"
DEFAULT_SAVE_PATH = Path.home() / ".chess" / "saved_game.alderchess"


class Settings(BaseModel):
    database_url: str = "sqlite:///./chess.db"
    save_path: Path = DEFAULT_SAVE_PATH
    log_level: str = "INFO"
    debug_tools: bool = False

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value!r}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Pick up every field for which a CHESS_<FIELD NAME> variable is set. Pydantic does the type conversion."""
        environ = os.environ if environ is None else environ
        values = {
            name: environ[f"{ENV_PREFIX}{name.upper()}"]
            for name in cls.model_fields
            if f"{ENV_PREFIX}{name.upper()}" in environ
        }
        return cls.model_validate(values)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


def configure_logging(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
