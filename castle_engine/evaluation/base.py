"""
Evaluator Interface and Score Constants

Every evaluator scores a position in integer centipawns from White's point
of view. The search only ever talks to this interface, so a different
evaluator can be dropped in without touching negamax or quiescence.

Score Scale:
    - 100 = one pawn; positive favours White, negative favours Black
    - Checkmate is ±MATE_SCORE, shrunk by one per ply from the root so the
      search prefers the quickest mate and the slowest loss
    - Draws (stalemate, insufficient material, fifty moves, threefold
      repetition) score exactly 0
    - INFINITY bounds the alpha-beta window and is never returned as a score;
      it sits far above MATE_SCORE so negating a window never crosses it
"""

from abc import ABC, abstractmethod
from typing import Optional

import chess

INFINITY = 1_000_000
MATE_SCORE = 99_999
MATE_THRESHOLD = 90_000  # |score| above this encodes a forced mate


def is_mate_score(score: int) -> bool:
    """True when a score encodes a forced mate rather than material."""
    return abs(score) > MATE_THRESHOLD


class Evaluator(ABC):
    """
    Base class for position evaluators.

    Subclasses implement evaluate(); the helpers below give the search the
    side-to-move view and the terminal (mate/draw) scores it needs.

    Evaluators must be deterministic: the same position always gets the same
    score, whatever the search depth or window.
    """

    @abstractmethod
    def evaluate(self, board: chess.Board) -> int:
        """
        Score a position from White's perspective.

        Args:
            board: Position to score

        Returns:
            int: Centipawns, positive when White is better
        """

    def evaluate_relative(self, board: chess.Board) -> int:
        """Score from the side to move's perspective (negamax convention)."""
        score = self.evaluate(board)
        return score if board.turn == chess.WHITE else -score

    def is_draw(self, board: chess.Board) -> bool:
        """
        Whether the game is drawn by rule in this position.

        Covers stalemate, insufficient material, the fifty-move rule and
        threefold repetition. Repetition depends on the move stack, so a board
        built from a bare FEN never counts as repeated.
        """
        if board.is_stalemate() or board.is_insufficient_material():
            return True
        return board.is_fifty_moves() or board.is_repetition(3)

    def evaluate_terminal(self, board: chess.Board, ply_from_root: int = 0) -> Optional[int]:
        """
        Score finished games.

        Args:
            board: Position to check
            ply_from_root: Distance from the search root, subtracted from
                MATE_SCORE so nearer mates score higher

        Returns:
            White-perspective score for checkmate or draw, None while the
            game goes on
        """
        if board.is_checkmate():
            mate = MATE_SCORE - ply_from_root
            # The side to move is the one that got mated
            return -mate if board.turn == chess.WHITE else mate

        if self.is_draw(board):
            return 0

        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
