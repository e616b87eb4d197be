"""
Geometry/Base movement and capturing/attacking rules

Key idea: Use strategy pattern to define the movement of each piece type.
Every rule produces a move map: an 8x8 grid with a 1 on every square the piece can reach.

Legality (not leaving your king in check) is checked later by the BoardState.
"""

from dataclasses import dataclass
from typing import Protocol

import numpy as np
import numpy.typing as npt

from src.chess.pieces import Color, PieceType
from src.chess.square import BOARD_DIMENSIONS, Square, SquareState

MoveMap = npt.NDArray[np.uint8]
Vector = tuple[int, int]

# a distance of -1 lets a piece slide until it hits something
UNLIMITED = -1


class Board(Protocol):
    """Just the parts the movement strategies need"""

    def square(self, square: Square) -> SquareState: ...


# --- MOVE MAPS ---
def empty_map() -> MoveMap:
    return np.zeros((BOARD_DIMENSIONS[1], BOARD_DIMENSIONS[0]), dtype=np.uint8)


def normalize(move_map: npt.NDArray) -> MoveMap:
    """Anything positive becomes a 1, the rest a 0"""
    return (move_map > 0).astype(np.uint8)


def squares_in(move_map: MoveMap) -> list[Square]:
    """The squares marked on a move map, in row-major order"""
    return [Square.from_index(int(row), int(column)) for row, column in np.argwhere(move_map > 0)]


def mark(move_map: MoveMap, square: Square) -> None:
    move_map[square.index] = 1


def is_marked(move_map: MoveMap, square: Square) -> bool:
    return bool(move_map[square.index] > 0)


# --- EVALUATION MODES ---
@dataclass(frozen=True)
class MoveQuery:
    """
    How much of the rules to apply when asking "where can this piece go?"
    ----

    Check detection needs the opponent's attack coverage, which needs the opponent's move options,
    which (for their king) would need to know if *that* king is in check, and so on.
    Nested calls downgrade the query to break that cycle.

    * subtract_king_illegal: a king may not step onto a square the opponent covers.
    * include_special_moves: en passant captures and castling.
    * prevent_recursive_check: skip the "does this leave my king in check?" simulation.
    * include_king: kings produce moves at all.
    * always_include_pawn_diagonal: pawns cover their diagonals even when there is nothing to capture there.
    """

    subtract_king_illegal: bool = False
    include_special_moves: bool = False
    prevent_recursive_check: bool = True
    include_king: bool = True
    always_include_pawn_diagonal: bool = False

    def for_aggregate(self) -> "MoveQuery":
        """Aggregated maps never subtract king-illegal squares nor include special moves."""
        return MoveQuery(
            subtract_king_illegal=False,
            include_special_moves=False,
            prevent_recursive_check=self.prevent_recursive_check,
            include_king=self.include_king,
            always_include_pawn_diagonal=self.always_include_pawn_diagonal,
        )


# Everything a player is allowed to select as a destination
LEGAL_MOVES = MoveQuery(
    subtract_king_illegal=True,
    include_special_moves=True,
    prevent_recursive_check=False,
    include_king=True,
    always_include_pawn_diagonal=False,
)

# Squares a player threatens: the other side's king may not stand there
KING_DANGER_ZONE = MoveQuery(
    subtract_king_illegal=False,
    include_special_moves=False,
    prevent_recursive_check=True,
    include_king=True,
    always_include_pawn_diagonal=True,
)

# Plain reachability, no legality filtering at all
RAW_ATTACK_COVERAGE = MoveQuery(
    subtract_king_illegal=False,
    include_special_moves=False,
    prevent_recursive_check=True,
    include_king=True,
    always_include_pawn_diagonal=False,
)


# --- MOVEMENT RULES ---
def travel_map(
    board: Board, color: Color, square: Square, vector: Vector, max_distance: int
) -> MoveMap:
    """
    Raycasting algorithm
    -----

    Walk from `square` along `vector` for at most `max_distance` steps (UNLIMITED: until something stops us).
    Stops when leaving the board or bumping into one of our own pieces.
    The first square with an opponent's piece is included (it can be captured), but we do not continue past it.
    """
    move_map = empty_map()
    df, dr = vector
    current = square
    steps_left = max_distance
    while True:
        # we just captured: cannot move through the captured piece
        if board.square(current).owner == color.opponent:
            break
        if steps_left != UNLIMITED:
            if steps_left <= 0:
                break
            steps_left -= 1

        current = current.offset(df, dr)
        if not current.is_within_bounds():
            break
        if board.square(current).owner == color:
            break
        mark(move_map, current)
    return move_map


KNIGHT_DELTAS: list[Vector] = [
    (2, 1),
    (2, -1),
    (-2, 1),
    (-2, -1),
    (1, 2),
    (1, -2),
    (-1, 2),
    (-1, -2),
]
DIAGONALS: list[Vector] = [(1, 1), (-1, 1), (1, -1), (-1, -1)]
STRAIGHTS: list[Vector] = [(1, 0), (-1, 0), (0, 1), (0, -1)]


# -- STRATEGY PATTERN: MOVEMENT RULES ---
# (directions, how far the piece may travel along each of them)
MOVEMENT_VECTORS: dict[PieceType, tuple[list[Vector], int]] = {
    PieceType.KNIGHT: (KNIGHT_DELTAS, 1),
    PieceType.BISHOP: (DIAGONALS, UNLIMITED),
    PieceType.ROOK: (STRAIGHTS, UNLIMITED),
    PieceType.QUEEN: (DIAGONALS + STRAIGHTS, UNLIMITED),
    PieceType.KING: (DIAGONALS + STRAIGHTS, 1),
}


def vector_moves(
    board: Board, color: Color, square: Square, vectors: list[Vector], distance: int
) -> MoveMap:
    """Union of the travel maps along all given directions"""
    move_map = empty_map()
    for vector in vectors:
        move_map |= travel_map(board, color, square, vector, distance)
    return move_map


def pawn_starting_rank(color: Color) -> int:
    return 2 if color == Color.WHITE else BOARD_DIMENSIONS[1] - 1


def pawn_promotion_rank(color: Color) -> int:
    return BOARD_DIMENSIONS[1] if color == Color.WHITE else 1


def pawn_candidates(
    board: Board, color: Color, square: Square, query: MoveQuery
) -> MoveMap:
    """
    A pawn:
    - moves by a single square forward (only onto an empty square).
    - It can move by two in their first move (untouched, on its starting rank, both squares empty)
    - takes diagonally (or, when computing attack coverage, always covers its diagonals)
    - takes en passant onto the square the opponent's pawn just skipped over

    With `always_include_pawn_diagonal` only the diagonals are covered: a push is not an attack.
    """
    forward = color.forward
    vectors: list[Vector] = []

    one_step = square.offset(0, forward)
    if (
        not query.always_include_pawn_diagonal
        and one_step.is_within_bounds()
        and board.square(one_step).is_empty()
    ):
        vectors.append((0, forward))

        two_steps = square.offset(0, 2 * forward)
        untouched = not board.square(square).touched
        on_starting_rank = square.rank == pawn_starting_rank(color)
        if (
            untouched
            and on_starting_rank
            and two_steps.is_within_bounds()
            and board.square(two_steps).is_empty()
        ):
            vectors.append((0, 2 * forward))

    for df in (-1, 1):
        target = square.offset(df, forward)
        if not target.is_within_bounds():
            continue
        can_capture = board.square(target).owner == color.opponent
        if can_capture or query.always_include_pawn_diagonal:
            vectors.append((df, forward))
        elif query.include_special_moves and _is_en_passant_capture(
            board, color, target
        ):
            vectors.append((df, forward))

    return vector_moves(board, color, square, vectors, 1)


def _is_en_passant_capture(board: Board, color: Color, target: Square) -> bool:
    """The target was skipped over by an opponent's pawn, which now stands right behind it"""
    if not board.square(target).en_passant_target:
        return False
    victim = board.square(target.offset(0, -color.forward))
    return victim.owner == color.opponent and victim.piece == PieceType.PAWN


def en_passant_victim(color: Color, target: Square) -> Square:
    """The square of the pawn that gets taken when `color` captures en passant onto `target`"""
    return target.offset(0, -color.forward)
