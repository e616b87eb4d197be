"""Requests and Response models"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from src.chess.savegame import SAVE_SIZE
from src.core.exceptions import InvalidRequestError
from src.core.shared_types import Color, Outcome, Phase, PromotionPiece

SquareName = str


def _is_algebraic_notation(value: str) -> bool:
    if len(value) != 2:
        return False

    file_character = value[0]
    rank_character = value[1]
    return file_character in "abcdefgh" and rank_character in "12345678"


def _validate_square(value: str) -> str:
    if not _is_algebraic_notation(value):
        raise InvalidRequestError(f"Cannot interpret {value!r} as a valid square name.")
    return value


# --- REQUEST MODELS ---
class CreateGameRequest(BaseModel):
    """Optionally start from a save state (hex encoded) instead of the standard starting position."""

    save_state: Optional[str] = None

    @field_validator("save_state")
    @classmethod
    def validate_save_state(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        try:
            data = bytes.fromhex(value)
        except ValueError as exc:
            raise InvalidRequestError("Save state must be a hexadecimal string.") from exc
        if len(data) < SAVE_SIZE:
            raise InvalidRequestError(
                f"Save state must be at least {SAVE_SIZE} bytes, got {len(data)}."
            )
        return value


class GetGameRequest(BaseModel):
    game_id: UUID


class SelectRequest(BaseModel):
    game_id: UUID
    square: SquareName

    @field_validator("square")
    @classmethod
    def validate_square(cls, value: str) -> str:
        return _validate_square(value)


class MoveRequest(BaseModel):
    game_id: UUID
    from_square: SquareName
    to_square: SquareName

    @field_validator(*["from_square", "to_square"])
    @classmethod
    def validate_square(cls, value: str) -> str:
        return _validate_square(value)


class PromotionRequest(BaseModel):
    game_id: UUID
    promote_to: PromotionPiece


class ClearSquareRequest(BaseModel):
    """Debug tooling: remove a piece regardless of the rules."""

    game_id: UUID
    square: SquareName

    @field_validator("square")
    @classmethod
    def validate_square(cls, value: str) -> str:
        return _validate_square(value)


class DeleteGameRequest(BaseModel):
    game_id: UUID


# --- RESPONSE MODELS ---
class GameResponse(BaseModel):
    """
    * board: one string per rank (8th rank first), FEN letters for pieces and '.' for empty squares
    * legal_destinations: where the selected piece can go
    * spotlight: the pieces of the player to move that have a legal move
    """

    game_id: UUID
    board: list[str]
    turn: Optional[Color]
    phase: Phase
    outcome: Outcome
    winner: Optional[Color]
    in_check: bool
    selected: Optional[SquareName]
    legal_destinations: list[SquareName]
    spotlight: list[SquareName]
    pending_promotion: Optional[SquareName]


class SaveStateResponse(BaseModel):
    game_id: UUID
    save_state: str
