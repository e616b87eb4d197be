"""Unit tests for /src/chess/board.py"""

from typing import Callable

import numpy as np
import pytest

from src.chess.board import BoardState
from src.chess.moves import KING_DANGER_ZONE, RAW_ATTACK_COVERAGE, squares_in
from src.chess.pieces import Color, PieceType
from src.chess.savegame import SAVE_MAGIC, SAVE_SIZE
from src.chess.square import Square
from src.core.exceptions import InvalidFENError

STARTING_POSITION_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR"


def sq(name: str) -> Square:
    return Square.from_algebraic(name)


def names(move_map: np.ndarray) -> set[str]:
    return {square.to_algebraic() for square in squares_in(move_map)}


def play(board: BoardState, *moves: str) -> None:
    """Moves in the form 'e2e4', each one followed by handing over the turn"""
    for move in moves:
        assert board.apply_move(sq(move[:2]), sq(move[2:])), f"{move} was refused"
        assert board.advance_turn()


# -- CREATION LOGIC ---
def test_starting_position() -> None:
    board = BoardState.new()
    assert board.to_fen() == STARTING_POSITION_FEN
    assert board.current_turn() == Color.WHITE
    assert not board.is_promotion_pending()
    assert board.as_rows() == [
        "rnbqkbnr",
        "pppppppp",
        "........",
        "........",
        "........",
        "........",
        "PPPPPPPP",
        "RNBQKBNR",
    ]


def test_pawns_stand_in_front_of_their_back_rank() -> None:
    board = BoardState.new()
    for file in range(1, 9):
        assert board.owner(Square(file, 2)) == Color.WHITE
        assert board.piece(Square(file, 2)) == PieceType.PAWN
        assert board.owner(Square(file, 7)) == Color.BLACK
        assert board.piece(Square(file, 7)) == PieceType.PAWN
    assert len(board.position) == 64


def test_starting_position_touched_flags() -> None:
    """Only the pieces start out untouched"""
    board = BoardState.new()
    assert not board.square(sq("e1")).touched
    assert not board.square(sq("a7")).touched
    assert board.square(sq("e4")).touched
    assert board.square(sq("h6")).touched


def test_from_fen_matches_new() -> None:
    board = BoardState.from_fen(STARTING_POSITION_FEN)
    assert board.to_fen() == STARTING_POSITION_FEN
    assert board.piece(sq("d8")) == PieceType.QUEEN
    assert board.owner(sq("d8")) == Color.BLACK
    assert board.piece(sq("e1")) == PieceType.KING
    assert board.owner(sq("e1")) == Color.WHITE


@pytest.mark.parametrize(
    "invalid_fen",
    [
        "8/8/8",  # too few ranks
        "8/8/8/8/8/8/8/7X",  # unknown piece
        "8/8/8/8/8/8/8/9",  # rank too long
        "8/8/8/8/8/8/8/7",  # rank too short
    ],
)
def test_invalid_fen(invalid_fen: str) -> None:
    with pytest.raises(InvalidFENError):
        BoardState.from_fen(invalid_fen)


def test_reset_restores_starting_position() -> None:
    board = BoardState.new()
    play(board, "e2e4", "e7e5")
    board.reset()
    assert board.to_fen() == STARTING_POSITION_FEN
    assert board.current_turn() == Color.WHITE
    assert not board.square(sq("e2")).touched


# -- QUERIES ---
def test_can_select() -> None:
    board = BoardState.new()
    assert board.can_select(Color.WHITE, sq("e2"))
    assert not board.can_select(Color.WHITE, sq("e7"))
    assert not board.can_select(Color.WHITE, sq("e4"))
    assert not board.can_select(Color.NONE, sq("e4"))
    assert not board.can_select(Color.WHITE, Square(9, 1))


def test_locate_color_and_king() -> None:
    board = BoardState.new()
    assert len(board.locate_color(Color.WHITE)) == 16
    assert len(board.locate_color(Color.BLACK)) == 16
    assert board.find_king(Color.BLACK) == sq("e8")
    assert BoardState.from_fen("8/8/8/8/8/8/8/8").find_king(Color.WHITE) is None


# -- MOVE GENERATION ---
@pytest.mark.parametrize(
    "square, expected",
    [
        ("g1", {"f3", "h3"}),
        ("b1", {"a3", "c3"}),
        ("e2", {"e3", "e4"}),
        ("e1", set()),
        ("d1", set()),
        ("a1", set()),
    ],
)
def test_move_options_in_starting_position(square: str, expected: set[str]) -> None:
    board = BoardState.new()
    assert names(board.move_options(Color.WHITE, sq(square))) == expected


def test_no_options_for_the_other_players_piece() -> None:
    board = BoardState.new()
    assert not board.move_options(Color.WHITE, sq("e7")).any()
    assert not board.move_options(Color.WHITE, sq("e4")).any()


@pytest.mark.parametrize(
    "fen, square, expected",
    [
        ("8/8/8/8/3N4/8/8/8", "d4", {"b3", "b5", "c2", "c6", "e2", "e6", "f3", "f5"}),
        ("8/8/8/8/8/8/8/B7", "a1", {"b2", "c3", "d4", "e5", "f6", "g7", "h8"}),
        ("8/8/8/8/8/8/8/RN6", "a1", {"a2", "a3", "a4", "a5", "a6", "a7", "a8"}),
        ("8/8/8/8/8/8/1P6/K7", "a1", {"a2", "b1"}),
        ("8/8/8/8/8/2p5/8/Q7", "a1", {"a2", "a3", "a4", "a5", "a6", "a7", "a8", "b1", "c1",
                                       "d1", "e1", "f1", "g1", "h1", "b2", "c3"}),
    ],
)
def test_piece_movement(fen: str, square: str, expected: set[str]) -> None:
    board = BoardState.from_fen(fen)
    assert names(board.move_options(Color.WHITE, sq(square))) == expected


def test_raw_attack_coverage_in_starting_position() -> None:
    """Pawn pushes and knight jumps: the whole 3rd and 4th rank"""
    board = BoardState.new()
    coverage = board.aggregate_move_map(Color.WHITE, RAW_ATTACK_COVERAGE)
    assert names(coverage) == {f"{file}{rank}" for file in "abcdefgh" for rank in (3, 4)}


def test_king_danger_zone_in_starting_position() -> None:
    """Pawns only cover their diagonals. Knights still jump."""
    board = BoardState.new()
    danger_zone = board.aggregate_move_map(Color.WHITE, KING_DANGER_ZONE)
    assert names(danger_zone) == {f"{file}3" for file in "abcdefgh"}


def test_king_cannot_step_into_check() -> None:
    board = BoardState.from_fen("4k3/8/8/8/8/8/8/3rK3")
    # d1 rook covers the whole first rank and the d-file. Capturing it is fine: nothing defends it.
    assert names(board.move_options(Color.WHITE, sq("e1"))) == {"d1", "e2", "f2"}


def test_king_cannot_capture_a_defended_piece() -> None:
    """Both rooks defend each other: the only way out is f1"""
    board = BoardState.from_fen("4k3/8/8/8/8/8/3rr3/4K3")
    assert board.is_in_check(Color.WHITE)
    assert names(board.move_options(Color.WHITE, sq("e1"))) == {"f1"}


def test_king_cannot_retreat_along_the_checking_line() -> None:
    board = BoardState.from_fen("k7/8/8/8/4r3/8/4K3/8")
    assert "e1" not in names(board.move_options(Color.WHITE, sq("e2")))


def test_pinned_piece_cannot_move() -> None:
    board = BoardState.from_fen("4k3/4r3/8/8/8/8/4B3/4K3")
    assert not board.is_in_check(Color.WHITE)
    assert not board.move_options(Color.WHITE, sq("e2")).any()


def test_pinned_piece_may_move_along_the_pin() -> None:
    board = BoardState.from_fen("4k3/4r3/8/8/8/8/4R3/4K3")
    assert names(board.move_options(Color.WHITE, sq("e2"))) == {"e3", "e4", "e5", "e6", "e7"}


def test_only_moves_resolving_check_are_legal() -> None:
    board = BoardState.from_fen("4r2k/8/8/8/R7/8/8/4K3")
    assert board.is_in_check(Color.WHITE)
    assert names(board.move_options(Color.WHITE, sq("a4"))) == {"e4"}
    assert names(board.move_options(Color.WHITE, sq("e1"))) == {"d1", "d2", "f1", "f2"}


# -- GAME END ---
def test_nobody_in_check_at_the_start() -> None:
    board = BoardState.new()
    for color in (Color.WHITE, Color.BLACK):
        assert not board.is_in_check(color)
        assert board.can_any_move(color)
        assert not board.is_checkmate(color)
        assert not board.is_stalemate(color)


def test_fools_mate() -> None:
    board = BoardState.new()
    play(board, "f2f3", "e7e5", "g2g4", "d8h4")
    assert board.current_turn() == Color.WHITE
    assert board.is_in_check(Color.WHITE)
    assert not board.can_any_move(Color.WHITE)
    assert board.is_checkmate(Color.WHITE)
    assert not board.is_stalemate(Color.WHITE)


def test_stalemate() -> None:
    board = BoardState.from_fen("7k/5Q2/6K1/8/8/8/8/8", Color.BLACK)
    assert not board.is_in_check(Color.BLACK)
    assert not board.can_any_move(Color.BLACK)
    assert board.is_stalemate(Color.BLACK)
    assert not board.is_checkmate(Color.BLACK)


def test_en_passant_counts_as_a_way_out() -> None:
    """Black king is boxed in, the pawn on d4 can only move by taking en passant"""
    board = BoardState.from_fen("k7/P7/1K6/8/3pP3/3P4/8/8", Color.BLACK)
    assert board.is_stalemate(Color.BLACK)

    board.square(sq("e3")).en_passant_target = True
    assert board.can_any_move(Color.BLACK)
    assert names(board.move_options(Color.BLACK, sq("d4"))) == {"e3"}


# -- MAKING MOVES ---
def test_illegal_move_leaves_the_board_untouched() -> None:
    board = BoardState.new()
    before = board.save()
    assert not board.apply_move(sq("e2"), sq("e5"))
    assert not board.apply_move(sq("e4"), sq("e5"))
    assert not board.apply_move(sq("e2"), Square(5, 9))
    assert board.save() == before


def test_move_marks_squares_touched() -> None:
    board = BoardState.new()
    assert board.apply_move(sq("g1"), sq("f3"))
    assert board.piece(sq("f3")) == PieceType.KNIGHT
    assert board.owner(sq("f3")) == Color.WHITE
    assert board.square(sq("g1")).is_empty()
    assert board.square(sq("g1")).touched
    assert board.square(sq("f3")).touched


def test_capture_replaces_the_piece() -> None:
    board = BoardState.new()
    play(board, "e2e4", "d7d5")
    assert board.apply_move(sq("e4"), sq("d5"))
    assert board.piece(sq("d5")) == PieceType.PAWN
    assert board.owner(sq("d5")) == Color.WHITE
    assert len(board.locate_color(Color.BLACK)) == 15


def test_double_step_sets_en_passant_target() -> None:
    board = BoardState.new()
    assert board.apply_move(sq("e2"), sq("e4"))
    assert board.square(sq("e3")).en_passant_target
    assert [s for s, state in board.position.items() if state.en_passant_target] == [sq("e3")]


def test_en_passant_target_expires_after_one_move() -> None:
    board = BoardState.new()
    play(board, "e2e4", "g8f6")
    assert not any(state.en_passant_target for state in board.position.values())


def test_en_passant_capture() -> None:
    board = BoardState.new()
    play(board, "e2e4", "a7a6", "e4e5", "d7d5")
    assert board.square(sq("d6")).en_passant_target
    assert "d6" in names(board.move_options(Color.WHITE, sq("e5")))

    assert board.apply_move(sq("e5"), sq("d6"))
    assert board.piece(sq("d6")) == PieceType.PAWN
    assert board.owner(sq("d6")) == Color.WHITE
    assert board.square(sq("d5")).is_empty()
    assert board.square(sq("e5")).is_empty()
    assert not board.square(sq("d6")).en_passant_target


def test_en_passant_not_allowed_when_it_exposes_the_king() -> None:
    """Both pawns leave the 5th rank: the rook on h5 would attack the king on a5"""
    board = BoardState.from_fen("7k/8/8/K2pP2r/8/8/8/8")
    board.square(sq("d6")).en_passant_target = True
    assert names(board.move_options(Color.WHITE, sq("e5"))) == {"e6"}


# -- CASTLING ---
def test_castling_targets() -> None:
    board = BoardState.from_fen("r3k2r/8/8/8/8/8/8/R3K2R")
    assert set(board.castling_targets()) == {sq("c1"), sq("g1")}
    assert {"c1", "g1"} <= names(board.move_options(Color.WHITE, sq("e1")))


def test_castling_king_side_moves_the_rook() -> None:
    board = BoardState.from_fen("r3k2r/8/8/8/8/8/8/R3K2R")
    assert board.apply_move(sq("e1"), sq("g1"))
    assert board.piece(sq("g1")) == PieceType.KING
    assert board.piece(sq("f1")) == PieceType.ROOK
    assert board.owner(sq("f1")) == Color.WHITE
    assert board.square(sq("h1")).is_empty()
    assert board.square(sq("e1")).is_empty()
    assert board.square(sq("f1")).touched


def test_castling_queen_side_moves_the_rook() -> None:
    board = BoardState.from_fen("r3k2r/8/8/8/8/8/8/R3K2R")
    assert board.apply_move(sq("e1"), sq("c1"))
    assert board.piece(sq("c1")) == PieceType.KING
    assert board.piece(sq("d1")) == PieceType.ROOK
    assert board.square(sq("a1")).is_empty()


def test_black_castling_after_handing_over_the_turn() -> None:
    """The rook that just arrived on f1 covers f8: only the queen side is left for Black"""
    board = BoardState.from_fen("r3k2r/8/8/8/8/8/8/R3K2R")
    play(board, "e1g1")
    assert board.castling_targets() == [sq("c8")]
    assert "g8" not in names(board.move_options(Color.BLACK, sq("e8")))


@pytest.mark.parametrize(
    "fen, touched, expected",
    [
        ("r3k2r/8/8/8/8/8/8/R3K2R", "e1", set()),
        ("r3k2r/8/8/8/8/8/8/R3K2R", "h1", {"c1"}),
        ("r3k2r/8/8/8/8/8/8/R3K2R", "a1", {"g1"}),
        ("r3k2r/8/8/8/8/8/8/R3KB1R", None, {"c1"}),
        ("r3k2r/8/8/8/8/8/8/RN2K2R", None, {"g1"}),
        ("4k3/4r3/8/8/8/8/8/R3K2R", None, set()),  # in check
        ("4k3/8/8/8/8/8/8/R3K1nR", None, {"c1"}),  # piece of the opponent in between
        ("1r2k3/8/8/8/8/8/8/R3K2R", None, {"g1"}),  # b1 under attack
        ("4k3/8/8/8/8/8/8/R2K3R", None, set()),  # king not on its home square
    ],
)
def test_castling_eligibility(fen: str, touched: str | None, expected: set[str]) -> None:
    board = BoardState.from_fen(fen)
    if touched is not None:
        board.square(sq(touched)).touched = True
        board.derive_castling_eligibility(Color.WHITE)
    assert {square.to_algebraic() for square in board.castling_targets()} == expected


def test_castling_denied_when_passing_through_check() -> None:
    board = BoardState.from_fen("4kr2/8/8/8/8/8/8/R3K2R")
    assert {square.to_algebraic() for square in board.castling_targets()} == {"c1"}
    assert not board.apply_move(sq("e1"), sq("g1"))


# -- PROMOTION ---
def test_promotion_is_pending_until_resolved() -> None:
    board = BoardState.from_fen("k7/4P3/8/8/8/8/8/7K")
    assert board.apply_move(sq("e7"), sq("e8"))
    assert board.is_promotion_pending()
    assert board.pending_promotion_location() == sq("e8")

    # turn cannot advance, and no other move is accepted
    assert not board.advance_turn()
    assert board.current_turn() == Color.WHITE
    assert not board.apply_move(sq("h1"), sq("h2"))

    assert board.resolve_promotion(PieceType.QUEEN)
    assert board.piece(sq("e8")) == PieceType.QUEEN
    assert board.owner(sq("e8")) == Color.WHITE
    assert not board.is_promotion_pending()

    assert board.advance_turn()
    assert board.current_turn() == Color.BLACK
    assert board.is_in_check(Color.BLACK)


@pytest.mark.parametrize("piece_type", [PieceType.KING, PieceType.PAWN, PieceType.EMPTY])
def test_promotion_to_invalid_piece(piece_type: PieceType) -> None:
    board = BoardState.from_fen("k7/4P3/8/8/8/8/8/7K")
    assert board.apply_move(sq("e7"), sq("e8"))
    assert not board.resolve_promotion(piece_type)
    assert board.is_promotion_pending()
    assert board.piece(sq("e8")) == PieceType.PAWN


def test_resolve_promotion_without_pending_promotion() -> None:
    board = BoardState.new()
    assert not board.resolve_promotion(PieceType.QUEEN)


def test_black_promotes_on_the_first_rank() -> None:
    board = BoardState.from_fen("k7/8/8/8/8/8/3p4/7K", Color.BLACK)
    assert board.apply_move(sq("d2"), sq("d1"))
    assert board.pending_promotion_location() == sq("d1")
    assert board.resolve_promotion(PieceType.KNIGHT)
    assert board.piece(sq("d1")) == PieceType.KNIGHT
    assert board.owner(sq("d1")) == Color.BLACK


# -- PERSISTENCE ---
def test_save_layout() -> None:
    board = BoardState.new()
    data = board.save()
    assert len(data) == SAVE_SIZE
    assert data[:4] == SAVE_MAGIC
    assert data[4] == Color.WHITE.value
    assert data[5] == Color.BLACK.value | (PieceType.ROOK.value << 2)  # a8, untouched
    assert data[5 + 8 * 4 + 4] == 0x20  # e4: empty, touched


def test_save_and_load() -> None:
    board = BoardState.new()
    play(board, "e2e4")
    data = board.save()
    assert data[5 + 8 * 5 + 4] == 0x20 | 0x40  # e3: touched, en passant target

    loaded = BoardState.new()
    assert loaded.load(data)
    assert loaded.current_turn() == Color.BLACK
    assert loaded.position == board.position
    assert loaded.to_fen() == board.to_fen()


def test_load_ignores_trailing_bytes() -> None:
    board = BoardState.new()
    play(board, "d2d4")
    loaded = BoardState.new()
    assert loaded.load(board.save() + b"\x00\x01")
    assert loaded.to_fen() == board.to_fen()


@pytest.mark.parametrize(
    "mangle",
    [
        lambda data: data[: SAVE_SIZE - 1],  # truncated
        lambda data: b"",
        lambda data: b"ALD2" + data[4:],  # bad header
        lambda data: data[:4] + bytes([3]) + data[5:],  # bad turn
        lambda data: data[:10] + bytes([0x1C]) + data[11:],  # piece code 7
        lambda data: data[:10] + bytes([0x03]) + data[11:],  # owner code 3
    ],
)
def test_failed_load_leaves_the_board_unchanged(mangle: Callable[[bytes], bytes]) -> None:
    source = BoardState.from_fen("k7/8/8/8/8/8/8/7K", Color.BLACK)
    data = mangle(source.save())

    board = BoardState.new()
    play(board, "e2e4")
    before = board.save()
    assert not board.load(data)
    assert board.save() == before
    assert board.current_turn() == Color.BLACK


def test_load_recomputes_castling_targets() -> None:
    data = BoardState.from_fen("r3k2r/8/8/8/8/8/8/R3K2R").save()
    board = BoardState.new()
    assert board.load(data)
    assert set(board.castling_targets()) == {sq("c1"), sq("g1")}


# -- DEBUG TOOLS ---
def test_debug_setters_bypass_the_rules() -> None:
    board = BoardState.new()
    board.set_owner_debug(sq("e5"), Color.BLACK)
    board.set_piece_debug(sq("e5"), PieceType.QUEEN)
    assert board.piece(sq("e5")) == PieceType.QUEEN
    assert board.owner(sq("e5")) == Color.BLACK


def test_clearing_squares_opens_castling() -> None:
    board = BoardState.new()
    assert board.castling_targets() == []
    for name in ("f1", "g1"):
        board.set_owner_debug(sq(name), Color.NONE)
        board.set_piece_debug(sq(name), PieceType.EMPTY)
    assert board.castling_targets() == [sq("g1")]


def test_owner_without_a_piece_goes_nowhere() -> None:
    """Owner set, piece not (yet): the square has no moves and does not block the rendering"""
    board = BoardState.new()
    board.set_owner_debug(sq("e4"), Color.WHITE)
    assert not board.move_options(Color.WHITE, sq("e4")).any()
    assert board.can_any_move(Color.WHITE)
    assert board.as_rows()[4] == "........"
    assert board.to_fen() == STARTING_POSITION_FEN


def test_load_owner_without_a_piece() -> None:
    """A square byte 0x01 (owned by Black, no piece) is accepted by the codec"""
    data = bytearray(BoardState.new().save())
    e4 = 5 + 8 * 4 + 4
    data[e4] = 0x01

    board = BoardState.new()
    assert board.load(bytes(data))
    assert board.current_turn() == Color.WHITE
    assert board.owner(sq("e4")) == Color.BLACK
    assert board.piece(sq("e4")) == PieceType.EMPTY
    assert not board.move_options(Color.BLACK, sq("e4")).any()
    assert not board.is_in_check(Color.WHITE)
    assert board.can_any_move(Color.WHITE)
