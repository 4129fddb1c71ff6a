"""
Board Module

This module is the boundary with the legal-move oracle (python-chess).
The search core only talks to positions through these helpers and the
chess.Board API; it never re-derives legality.

Key Components:
    - fingerprint: Move-counter-independent Zobrist key for a position
    - apply_move / undo_move: In-place move application with LIFO undo
    - legal_moves: Full-board or per-square legal move generation
    - square_to_coordinates: Square index to (row, col) for table lookups

Data Flow:
    chess.Board → fingerprint() → int key → transposition table / opening book
"""

from castle_engine.board.oracle import (
    MoveResult,
    apply_move,
    captured_piece_type,
    fingerprint,
    legal_moves,
    square_to_coordinates,
    undo_move,
)

__all__ = [
    'MoveResult',
    'apply_move',
    'captured_piece_type',
    'fingerprint',
    'legal_moves',
    'square_to_coordinates',
    'undo_move',
]
