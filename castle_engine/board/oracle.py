"""
Legal-Move Oracle Adapter

The search never implements chess rules itself. python-chess is the oracle:
it generates legal moves, applies and undoes them, and reports check,
checkmate, stalemate and draws. This module wraps the handful of oracle calls
the engine relies on and adds the position fingerprint used as the key for
the transposition table and the opening book.

Board Orientation (for table lookups):
    - Row 0 = Rank 8 (Black's back rank)
    - Row 7 = Rank 1 (White's back rank)
    - Column 0 = A-file
    - Column 7 = H-file

Fingerprint:
    A 64-bit Zobrist key built from piece placement, side to move, castling
    rights and the en passant file. Move counters are excluded, so the same
    position reached through different move orders gets the same key.
"""

import random
from dataclasses import dataclass
from typing import List, Optional, Tuple

import chess


# ============================================================================
# Zobrist Hashing
# ============================================================================
# Hash components:
#   - 12 piece types (6 pieces * 2 colors) * 64 squares = 768 random numbers
#   - Castling rights (4 bits) = 16 random numbers
#   - En passant file (8 files) = 8 random numbers
#   - Side to move (1 bit) = 1 random number
# ============================================================================

_zobrist_rng = random.Random(42)

# [piece_type][color][square], piece_type 0 is unused
ZOBRIST_PIECES = [
    [[_zobrist_rng.getrandbits(64) for _ in range(64)] for _ in range(2)]
    for _ in range(7)
]

ZOBRIST_CASTLING = [_zobrist_rng.getrandbits(64) for _ in range(16)]

ZOBRIST_EN_PASSANT = [_zobrist_rng.getrandbits(64) for _ in range(8)]

ZOBRIST_SIDE_TO_MOVE = _zobrist_rng.getrandbits(64)


def fingerprint(board: chess.Board) -> int:
    """
    Compute the reduced position key for a board.

    Args:
        board: python-chess Board object

    Returns:
        64-bit integer key (move counters excluded)
    """
    key = 0

    for square, piece in board.piece_map().items():
        key ^= ZOBRIST_PIECES[piece.piece_type][piece.color][square]

    castling_index = 0
    if board.has_kingside_castling_rights(chess.WHITE):
        castling_index |= 1
    if board.has_queenside_castling_rights(chess.WHITE):
        castling_index |= 2
    if board.has_kingside_castling_rights(chess.BLACK):
        castling_index |= 4
    if board.has_queenside_castling_rights(chess.BLACK):
        castling_index |= 8
    key ^= ZOBRIST_CASTLING[castling_index]

    # python-chess keeps ep_square after every double push; only a capturable
    # one changes the position.
    if board.ep_square is not None and board.has_legal_en_passant():
        key ^= ZOBRIST_EN_PASSANT[chess.square_file(board.ep_square)]

    if board.turn == chess.BLACK:
        key ^= ZOBRIST_SIDE_TO_MOVE

    return key


def square_to_coordinates(square: int) -> Tuple[int, int]:
    """
    Convert python-chess square index to (row, column) coordinates.

    Args:
        square: Square index (0-63) where 0=A1, 63=H8

    Returns:
        Tuple of (row, col) where row 0 = rank 8 and col 0 = A-file
    """
    return 7 - chess.square_rank(square), chess.square_file(square)


@dataclass(frozen=True)
class MoveResult:
    """
    Outcome of applying a move through the oracle.

    Attributes:
        move: The move that was applied
        captured: Piece type that was captured, or None
        is_check: Side to move is in check after the move
        is_checkmate: Side to move is checkmated after the move
        is_stalemate: Side to move is stalemated after the move
    """
    move: chess.Move
    captured: Optional[int]
    is_check: bool
    is_checkmate: bool
    is_stalemate: bool


def legal_moves(board: chess.Board, from_square: Optional[int] = None) -> List[chess.Move]:
    """List legal moves, optionally restricted to pieces on one square."""
    if from_square is None:
        return list(board.legal_moves)
    return list(board.generate_legal_moves(from_mask=chess.BB_SQUARES[from_square]))


def captured_piece_type(board: chess.Board, move: chess.Move) -> Optional[int]:
    """Piece type a move captures on the current board, or None for quiet moves."""
    if board.is_en_passant(move):
        return chess.PAWN
    if not board.is_capture(move):
        return None
    return board.piece_type_at(move.to_square)


def apply_move(board: chess.Board, move: chess.Move) -> MoveResult:
    """
    Apply a legal move in place.

    Raises:
        ValueError: If the move is not legal in this position
    """
    if not board.is_legal(move):
        raise ValueError(f"Illegal move {move.uci()} in {board.fen()}")

    captured = captured_piece_type(board, move)
    board.push(move)

    return MoveResult(
        move=move,
        captured=captured,
        is_check=board.is_check(),
        is_checkmate=board.is_checkmate(),
        is_stalemate=board.is_stalemate(),
    )


def undo_move(board: chess.Board) -> chess.Move:
    """Undo the most recently applied move (strict LIFO)."""
    return board.pop()
