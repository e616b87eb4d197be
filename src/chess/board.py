"""
The BoardState implements all rules of chess that concern the position on the board:
where pieces may move, whether a king is in check, and what happens when a move is made.

It is the single source of truth for one game. Callers (see `src.chess.game`) drive it ply by ply:

    select piece -> apply_move -> (resolve_promotion) -> advance_turn -> is_checkmate / is_stalemate
"""

from dataclasses import dataclass, field
from typing import Optional, Self

import numpy as np

from src.chess.castling import (
    CASTLING_RULES,
    castling_by_king_target,
    castling_directions,
    king_home_square,
)
from src.chess.moves import (
    KING_DANGER_ZONE,
    LEGAL_MOVES,
    MOVEMENT_VECTORS,
    RAW_ATTACK_COVERAGE,
    MoveMap,
    MoveQuery,
    empty_map,
    en_passant_victim,
    is_marked,
    mark,
    normalize,
    pawn_candidates,
    pawn_promotion_rank,
    squares_in,
    vector_moves,
)
from src.chess.pieces import (
    BACK_RANK,
    PROMOTION_OPTIONS,
    Color,
    PieceType,
    piece_from_fen,
    piece_to_fen,
)
from src.chess.savegame import decode_state, encode_state
from src.chess.square import BOARD_DIMENSIONS, Square, SquareState, all_squares
from src.core.exceptions import InvalidFENError, SaveFormatError


@dataclass
class BoardState:
    position: dict[Square, SquareState] = field(default_factory=dict)
    turn: Color = Color.WHITE
    pending_promotion: Optional[Square] = None

    # --- CREATION ---
    @classmethod
    def new(cls) -> Self:
        """Board in the standard starting position, White to move"""
        board = cls()
        board.reset()
        return board

    @classmethod
    def from_fen(cls, fen_str: str, turn: Color = Color.WHITE) -> Self:
        """Construct a board using the piece placement part of a FEN string.

        ex. standard starting position:
        rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR
        means:
        * black pieces are on the 8th rank, starting with rook on a8, knight on b8, etc.
        * pawns cover 7th rank entirely
        * ranks 6 through 3 have 8 consecutive empty squares
        * rank 2 are the white pawns (capital letters)
        * 1st rank are the white pieces.

        NOTE: Every square starts out untouched. Mark squares as touched yourself if a piece should count as moved.
        """
        fen_by_ranks = fen_str.split("/")
        if len(fen_by_ranks) != BOARD_DIMENSIONS[1]:
            raise InvalidFENError(f"Expected {BOARD_DIMENSIONS[1]} ranks: {fen_str!r}")

        position: dict[Square, SquareState] = {}
        for rank_idx, fen_one_rank in enumerate(fen_by_ranks):
            # FEN string is read from top rank (8th) to bottom rank (1st)
            rank = BOARD_DIMENSIONS[1] - rank_idx
            # ... but the first character is the a-file, so reads in normal direction
            file = 1
            for character in fen_one_rank:
                if character.isdigit():
                    # A number denotes the amount of empty squares after each other
                    for _ in range(int(character)):
                        position[Square(file, rank)] = SquareState()
                        file += 1
                elif character.lower() in "pnbrqk":
                    piece_type, color = piece_from_fen(character)
                    position[Square(file, rank)] = SquareState(color, piece_type)
                    file += 1
                else:
                    raise InvalidFENError(f"Unknown piece {character!r} in {fen_str!r}")
            if file != BOARD_DIMENSIONS[0] + 1:
                raise InvalidFENError(f"Rank {rank} does not have 8 squares: {fen_one_rank!r}")

        board = cls(position=position, turn=turn)
        board.derive_castling_eligibility(turn)
        return board

    def to_fen(self) -> str:
        """Ranks are separated by slashes in FEN string."""
        return "/".join(
            self._rank_to_fen(rank) for rank in range(BOARD_DIMENSIONS[1], 0, -1)
        )

    def _rank_to_fen(self, rank: int) -> str:
        """FEN string of a single rank"""
        fen_characters: list[str] = []
        empty_count = 0
        for file in range(1, BOARD_DIMENSIONS[0] + 1):
            state = self.square(Square(file, rank))

            if not state.is_empty():
                if empty_count > 0:
                    fen_characters.append(str(empty_count))
                    empty_count = 0
                fen_characters.append(piece_to_fen(state.piece, state.owner))
            else:
                empty_count += 1

        # if the entire rank is empty, then we still place this number in the string
        if empty_count > 0:
            fen_characters.append(str(empty_count))
        return "".join(fen_characters)

    def reset(self) -> None:
        """Standard starting position. White moves first."""
        self.turn = Color.WHITE
        self.pending_promotion = None

        # Touched only applies to the pieces: the empty middle of the board counts as touched
        self.position = {
            square: SquareState(touched=square.rank not in (1, 2, 7, 8))
            for square in all_squares()
        }
        for color, back_rank in ((Color.BLACK, 8), (Color.WHITE, 1)):
            pawn_rank = back_rank + color.forward
            for file, piece_type in enumerate(BACK_RANK, start=1):
                self._place(Square(file, back_rank), piece_type, color)
                self._place(Square(file, pawn_rank), PieceType.PAWN, color)

        self.derive_castling_eligibility(self.turn)

    # --- QUERIES ---
    def square(self, square: Square) -> SquareState:
        return self.position[square]

    def piece(self, square: Square) -> PieceType:
        return self.square(square).piece

    def owner(self, square: Square) -> Color:
        return self.square(square).owner

    def can_select(self, color: Color, square: Square) -> bool:
        if color == Color.NONE or not square.is_within_bounds():
            return False
        return self.owner(square) == color

    def current_turn(self) -> Color:
        return self.turn

    def locate_color(self, color: Color) -> list[Square]:
        return [square for square, state in self.position.items() if state.owner == color]

    def find_king(self, color: Color) -> Optional[Square]:
        """None if the king is missing (never happens on a board set up properly)"""
        return next(
            (
                square
                for square, state in self.position.items()
                if state.owner == color and state.piece == PieceType.KING
            ),
            None,
        )

    def is_promotion_pending(self) -> bool:
        return self.pending_promotion is not None

    def pending_promotion_location(self) -> Optional[Square]:
        return self.pending_promotion

    # --- MOVE GENERATION ---
    def move_options(
        self, color: Color, square: Square, query: MoveQuery = LEGAL_MOVES
    ) -> MoveMap:
        """
        Where can the piece on `square` go?
        ----

        1. Not your piece? Then nowhere.
        2. Candidate squares according to the movement rules of the piece (see moves.py)
        3. A king may not step onto a square the opponent covers (if `query.subtract_king_illegal`)
        4. Drop every destination that leaves your own king in check (unless `query.prevent_recursive_check`)
        """
        if not self.can_select(color, square):
            return empty_map()

        piece_type = self.piece(square)
        if piece_type == PieceType.EMPTY:
            # owned square without a piece (debug edits, hand-made save states)
            return empty_map()
        if piece_type == PieceType.PAWN:
            candidates = pawn_candidates(self, color, square, query)
        elif piece_type == PieceType.KING:
            candidates = self._king_candidates(color, square, query)
        else:
            vectors, distance = MOVEMENT_VECTORS[piece_type]
            candidates = vector_moves(self, color, square, vectors, distance)
        candidates = normalize(candidates)

        if piece_type == PieceType.KING and query.subtract_king_illegal:
            danger_zone = self.aggregate_move_map(color.opponent, KING_DANGER_ZONE)
            candidates[danger_zone > 0] = 0

        if not query.prevent_recursive_check:
            for destination in squares_in(candidates):
                if self._leaves_king_in_check(square, destination):
                    candidates[destination.index] = 0

        return normalize(candidates)

    def _king_candidates(self, color: Color, square: Square, query: MoveQuery) -> MoveMap:
        """Single steps in all directions, plus the castling targets of this king"""
        if not query.include_king:
            return empty_map()

        vectors, distance = MOVEMENT_VECTORS[PieceType.KING]
        candidates = vector_moves(self, color, square, vectors, distance)
        if query.include_special_moves:
            for target, state in self.position.items():
                if state.castling_target and castling_by_king_target(color, target):
                    mark(candidates, target)
        return candidates

    def aggregate_move_map(
        self, color: Color, query: MoveQuery = RAW_ATTACK_COVERAGE
    ) -> MoveMap:
        """All squares reachable by any piece of `color`. Special moves and the king-illegal subtraction are never included."""
        nested_query = query.for_aggregate()
        combined = empty_map()
        for square in self.locate_color(color):
            combined |= self.move_options(color, square, nested_query)
        return normalize(combined)

    def is_in_check(self, color: Color) -> bool:
        """Is the king standing on a square the opponent threatens?"""
        king_square = self.find_king(color)
        if king_square is None:
            return False
        danger_zone = self.aggregate_move_map(color.opponent, KING_DANGER_ZONE)
        return is_marked(danger_zone, king_square)

    def can_any_move(self, color: Color) -> bool:
        """Does `color` have at least one legal move?"""
        return any(
            bool(self.move_options(color, square, LEGAL_MOVES).any())
            for square in self.locate_color(color)
        )

    def is_checkmate(self, color: Color) -> bool:
        return self.is_in_check(color) and not self.can_any_move(color)

    def is_stalemate(self, color: Color) -> bool:
        return not self.is_in_check(color) and not self.can_any_move(color)

    def _leaves_king_in_check(self, source: Square, destination: Square) -> bool:
        """Simulate the move on a copy of the board, then ask if the mover's king is attacked."""
        color = self.owner(source)
        changing = [source, destination]
        victim = None
        if self._is_en_passant_capture(source, destination):
            victim = en_passant_victim(color, destination)
            changing.append(victim)

        # only the squares that are about to change get their own SquareState
        position = dict(self.position)
        for square in changing:
            position[square] = self.position[square].copy()
        simulated = BoardState(position=position, turn=self.turn)

        simulated._relocate(source, destination)
        if victim is not None:
            simulated.square(victim).clear()
        return simulated.is_in_check(color)

    def _is_en_passant_capture(self, source: Square, destination: Square) -> bool:
        return (
            self.piece(source) == PieceType.PAWN
            and source.file != destination.file
            and self.square(destination).en_passant_target
            and self.square(destination).is_empty()
        )

    # --- CASTLING ---
    def derive_castling_eligibility(self, color: Color) -> None:
        """
        Recompute the castling targets from scratch
        ---

        **you are allowed to castle if**

        * You are not currently in check (you cannot castle out of a check).
        * Your king is still untouched on its home square.
        * The rook of that side is still untouched on its home square.
        * Every square in between the two pieces is empty and not under attack.
        """
        for state in self.position.values():
            state.castling_target = False

        if color == Color.NONE or not self.position:
            return
        if self.is_in_check(color):
            return

        king = self.square(king_home_square(color))
        if king.owner != color or king.piece != PieceType.KING or king.touched:
            return

        danger_zone = self.aggregate_move_map(color.opponent, KING_DANGER_ZONE)
        for direction in castling_directions(color):
            rule = CASTLING_RULES[direction]
            rook = self.square(rule.rook_from)
            if rook.owner != color or rook.piece != PieceType.ROOK or rook.touched:
                continue

            path = rule.squares_between()
            if any(not self.square(square).is_empty() for square in path):
                continue
            if any(is_marked(danger_zone, square) for square in path):
                continue

            self.square(rule.king_to).castling_target = True

    def castling_targets(self) -> list[Square]:
        return [square for square, state in self.position.items() if state.castling_target]

    # --- MAKING MOVES ---
    def apply_move(self, source: Square, destination: Square) -> bool:
        """
        Attempt a move. Returns False (and leaves the board untouched) when the move is not legal.
        ----

        1. Move the piece (when castling: the rook as well)
        2. En passant capture? Remove the pawn standing behind the destination.
        3. Clear all en passant targets, then mark the square skipped by a pawn double step.
        4. Pawn on the far rank? Promotion becomes pending: resolve it before the turn can advance.

        NOTE: whose turn it is, is the caller's business.
        """
        if self.pending_promotion is not None:
            return False
        if not (source.is_within_bounds() and destination.is_within_bounds()):
            return False

        color = self.owner(source)
        if color == Color.NONE:
            return False
        if not is_marked(self.move_options(color, source, LEGAL_MOVES), destination):
            return False

        piece_type = self.piece(source)
        is_castling = (
            piece_type == PieceType.KING
            and self.square(destination).castling_target
            and abs(destination.file - source.file) == 2
        )
        is_en_passant = self._is_en_passant_capture(source, destination)

        self._relocate(source, destination)

        if is_castling:
            rule = castling_by_king_target(color, destination)
            if rule is not None:
                self._relocate(rule.rook_from, rule.rook_to)

        if is_en_passant:
            self.square(en_passant_victim(color, destination)).clear()

        for state in self.position.values():
            state.en_passant_target = False

        if piece_type == PieceType.PAWN:
            if abs(destination.rank - source.rank) == 2:
                skipped = source.offset(0, color.forward)
                self.square(skipped).en_passant_target = True
            if destination.rank == pawn_promotion_rank(color):
                self.pending_promotion = destination

        return True

    def resolve_promotion(self, piece_type: PieceType) -> bool:
        """Replace the pawn waiting on the far rank. False if nothing is pending (or the piece type is not allowed)."""
        if self.pending_promotion is None:
            return False
        if piece_type not in PROMOTION_OPTIONS:
            return False
        self.square(self.pending_promotion).piece = piece_type
        self.pending_promotion = None
        return True

    def advance_turn(self) -> bool:
        """Hand the move to the opponent. Refused while a promotion is pending."""
        if self.pending_promotion is not None:
            return False
        self.turn = self.turn.opponent
        self.derive_castling_eligibility(self.turn)
        return True

    def _place(self, square: Square, piece_type: PieceType, color: Color) -> None:
        state = self.square(square)
        state.owner = color
        state.piece = piece_type

    def _relocate(self, source: Square, destination: Square) -> None:
        """Move whatever stands on `source` to `destination`, capturing what was there"""
        mover = self.square(source)
        landing = self.square(destination)
        landing.owner = mover.owner
        landing.piece = mover.piece
        landing.touched = True
        mover.clear()
        mover.touched = True

    # --- PERSISTENCE ---
    def save(self) -> bytes:
        """Encode the board as a save state (see savegame.py)"""
        return encode_state(self.turn, (self.square(square) for square in all_squares()))

    def load(self, data: bytes) -> bool:
        """Restore the board from a save state. On failure nothing changes."""
        try:
            turn, states = decode_state(data)
        except SaveFormatError:
            return False

        # castling targets are derived on the loaded board before this one is replaced
        loaded = BoardState(position=dict(zip(all_squares(), states)), turn=turn)
        loaded.derive_castling_eligibility(turn)

        self.position = loaded.position
        self.turn = loaded.turn
        self.pending_promotion = None
        return True

    # --- DEBUG TOOLS ---
    def set_piece_debug(self, square: Square, piece_type: PieceType) -> None:
        """Bypasses all rules. Meant for development tooling only."""
        self.square(square).piece = piece_type
        self.derive_castling_eligibility(self.turn)

    def set_owner_debug(self, square: Square, color: Color) -> None:
        """Bypasses all rules. Meant for development tooling only."""
        self.square(square).owner = color
        self.derive_castling_eligibility(self.turn)

    def as_rows(self) -> list[str]:
        """One string per rank, 8th rank first. FEN letters for the pieces, '.' for an empty square"""
        rows = np.full((BOARD_DIMENSIONS[1], BOARD_DIMENSIONS[0]), ".", dtype="<U1")
        for square, state in self.position.items():
            if not state.is_empty():
                rows[square.index] = piece_to_fen(state.piece, state.owner)
        return ["".join(row) for row in rows]
