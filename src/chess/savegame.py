"""
Save state of a game: a fixed size binary layout.

| Offset | Size | Content |
|---|---|---|
| 0-3 | 4 | Magic header, ASCII "ALD1" |
| 4 | 1 | Player to move (0: nobody, 1: black, 2: white) |
| 5-68 | 64 | One byte per square, row-major: 8th rank first, a-file first within a rank |

Every square byte is laid out as follows (LSB first):

* bit 0..1  owner
* bit 2..4  piece type
* bit 5     touched
* bit 6     en passant target
* bit 7     (unused)

Castling targets are not stored: they are derived from the board after loading.
"""

import logging
from pathlib import Path
from typing import Iterable

from src.chess.pieces import Color, PieceType
from src.chess.square import SquareState
from src.core.exceptions import SaveFormatError

logger = logging.getLogger(__name__)

SAVE_MAGIC = b"ALD1"
NUM_SQUARES = 64
SAVE_SIZE = len(SAVE_MAGIC) + 1 + NUM_SQUARES
TURN_OFFSET = len(SAVE_MAGIC)
SQUARES_OFFSET = TURN_OFFSET + 1

OWNER_MASK = 0x03
PIECE_MASK = 0x1C
TOUCHED_BIT = 0x20
EN_PASSANT_BIT = 0x40


def encode_square(state: SquareState) -> int:
    return (
        (state.owner.value << 0)
        | (state.piece.value << 2)
        | (int(state.touched) << 5)
        | (int(state.en_passant_target) << 6)
    )


def decode_square(byte: int) -> SquareState:
    owner_code = byte & OWNER_MASK
    piece_code = (byte & PIECE_MASK) >> 2
    try:
        owner = Color(owner_code)
        piece = PieceType(piece_code)
    except ValueError as exc:
        raise SaveFormatError(f"Invalid square byte: {byte:#04x}") from exc
    return SquareState(
        owner=owner,
        piece=piece,
        touched=bool(byte & TOUCHED_BIT),
        en_passant_target=bool(byte & EN_PASSANT_BIT),
    )


def encode_state(turn: Color, squares: Iterable[SquareState]) -> bytes:
    """Squares must be given in row-major order (see `all_squares()`)"""
    body = bytes(encode_square(state) for state in squares)
    if len(body) != NUM_SQUARES:
        raise ValueError(f"Expected {NUM_SQUARES} squares, got {len(body)}")
    return SAVE_MAGIC + bytes([turn.value]) + body


def decode_state(data: bytes) -> tuple[Color, list[SquareState]]:
    """
    Validate the entire buffer before handing anything back, so a failed load never leaves a half-loaded board.
    Trailing bytes beyond the fixed size are ignored.
    """
    if len(data) < SAVE_SIZE:
        raise SaveFormatError(
            f"Save state too short: {len(data)} bytes, expected {SAVE_SIZE}"
        )
    if data[: len(SAVE_MAGIC)] != SAVE_MAGIC:
        raise SaveFormatError(f"Bad header: {data[: len(SAVE_MAGIC)]!r}")

    try:
        turn = Color(data[TURN_OFFSET])
    except ValueError as exc:
        raise SaveFormatError(f"Invalid turn code: {data[TURN_OFFSET]}") from exc

    squares = [
        decode_square(byte) for byte in data[SQUARES_OFFSET : SQUARES_OFFSET + NUM_SQUARES]
    ]
    return turn, squares


# --- FILE I/O ---
def write_save_file(path: Path, data: bytes) -> bool:
    """Returns the status of success. Parent directories get created when missing."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError:
        logger.exception("Could not write save file %s", path)
        return False
    logger.info("Saved game to %s", path)
    return True


def read_save_file(path: Path) -> bytes | None:
    """None if the file cannot be read. Content is not validated here."""
    try:
        data = path.read_bytes()
    except OSError:
        logger.exception("Could not read save file %s", path)
        return None
    logger.info("Read %d bytes from %s", len(data), path)
    return data
