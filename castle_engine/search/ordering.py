"""
Move Ordering

Alpha-beta prunes best when the strongest move is searched first. The
orderer ranks candidate moves in strict tiers:

    1. Preferred move (transposition table or book hint)
    2. Captures, MVV-LVA: Most Valuable Victim - Least Valuable Aggressor
    3. Promotions (queen promotions first)
    4. Checking moves
    5. Killer moves: quiet moves that caused a beta cutoff at this ply
    6. Remaining quiet moves by history score

Ties keep generation order. Ordering only changes how many nodes are
visited, never the value the search returns.

References:
    - Move Ordering: https://www.chessprogramming.org/Move_Ordering
    - Killer Heuristic: https://www.chessprogramming.org/Killer_Heuristic
    - History Heuristic: https://www.chessprogramming.org/History_Heuristic
"""

import chess
from typing import Dict, List, Optional, Sequence, Tuple

MAX_PLY = 64

# Piece rank for MVV-LVA (victim rank * weight - attacker rank)
MVV_LVA_RANK = {
    chess.PAWN: 1,
    chess.KNIGHT: 2,
    chess.BISHOP: 3,
    chess.ROOK: 4,
    chess.QUEEN: 5,
    chess.KING: 6,
}
MVV_LVA_WEIGHT = 100

PREFERRED_SCORE = 1_000_000
CAPTURE_SCORE = 100_000
QUEEN_PROMOTION_SCORE = 90_000
PROMOTION_SCORE = 80_000
CHECK_SCORE = 70_000
KILLER_SCORES = (60_000, 59_000)
HISTORY_CAP = 50_000

HistoryKey = Tuple[chess.Piece, int, int]


def mvv_lva(board: chess.Board, move: chess.Move) -> int:
    """
    Score a capture: cheap pieces taking valuable pieces rank highest.

    Args:
        board: Position before the move
        move: A capturing move

    Returns:
        victim_rank * weight - attacker_rank
    """
    if board.is_en_passant(move):
        victim = chess.PAWN
    else:
        victim = board.piece_type_at(move.to_square) or chess.PAWN
    attacker = board.piece_type_at(move.from_square) or chess.PAWN
    return MVV_LVA_RANK[victim] * MVV_LVA_WEIGHT - MVV_LVA_RANK[attacker]


def order_captures(board: chess.Board, moves: Sequence[chess.Move]) -> List[chess.Move]:
    """Order captures by MVV-LVA only (used by quiescence search)."""
    return sorted(moves, key=lambda move: mvv_lva(board, move), reverse=True)


class MoveOrderer:
    """
    Move orderer with killer and history tables.

    The tables are transient: the driver clears them at the start of every
    top-level search, and only one search may use an orderer at a time.

    Attributes:
        killers: Two killer slots per ply
        history: (piece, from, to) → accumulated cutoff score
    """

    def __init__(self, max_ply: int = MAX_PLY):
        self.max_ply = max_ply
        self.killers: List[List[Optional[chess.Move]]] = [[None, None] for _ in range(max_ply + 1)]
        self.history: Dict[HistoryKey, int] = {}

    def clear(self):
        """Reset killer and history tables."""
        self.killers = [[None, None] for _ in range(self.max_ply + 1)]
        self.history = {}

    def score_move(
        self,
        board: chess.Board,
        move: chess.Move,
        ply: int,
        preferred: Optional[chess.Move] = None,
    ) -> int:
        """
        Assign a score to a move for ordering purposes.
        Higher score = searched earlier.
        """
        if preferred is not None and move == preferred:
            return PREFERRED_SCORE

        if board.is_capture(move):
            return CAPTURE_SCORE + mvv_lva(board, move)

        if move.promotion:
            return QUEEN_PROMOTION_SCORE if move.promotion == chess.QUEEN else PROMOTION_SCORE

        if board.gives_check(move):
            return CHECK_SCORE

        if ply <= self.max_ply:
            killers = self.killers[ply]
            if move == killers[0]:
                return KILLER_SCORES[0]
            if move == killers[1]:
                return KILLER_SCORES[1]

        piece = board.piece_at(move.from_square)
        return min(self.history.get((piece, move.from_square, move.to_square), 0), HISTORY_CAP)

    def order_moves(
        self,
        board: chess.Board,
        moves: Sequence[chess.Move],
        ply: int = 0,
        preferred: Optional[chess.Move] = None,
    ) -> List[chess.Move]:
        """
        Sort moves highest priority first.

        Args:
            board: Current board position
            moves: Legal moves to order
            ply: Distance from the root (selects the killer slots)
            preferred: Hint move searched before everything else

        Returns:
            Sorted list of moves (stable within a tier)
        """
        return sorted(
            moves,
            key=lambda move: self.score_move(board, move, ply, preferred),
            reverse=True,
        )

    def is_quiet(self, board: chess.Board, move: chess.Move) -> bool:
        """Quiet moves neither capture nor promote."""
        return not board.is_capture(move) and not move.promotion

    def record_cutoff(self, board: chess.Board, move: chess.Move, depth: int, ply: int):
        """
        Remember a quiet move that caused a beta cutoff.

        Must be called before the move is pushed, so the moving piece is
        still on its from-square.
        """
        if not self.is_quiet(board, move):
            return

        if ply <= self.max_ply:
            killers = self.killers[ply]
            if move != killers[0]:
                killers[1] = killers[0]
                killers[0] = move

        piece = board.piece_at(move.from_square)
        key = (piece, move.from_square, move.to_square)
        self.history[key] = self.history.get(key, 0) + depth * depth
