"""
Negamax Search with Alpha-Beta Pruning

This module implements the core search algorithm for the chess engine.
Negamax explores the game tree from the perspective of the side to move:
each child's score is negated and the window is swapped, so there is a
single maximizing code path.

Key Concepts:
    - Alpha-Beta: Prune branches that can't affect the result
    - Quiescence: Keep searching captures past the horizon so leaves are
      never evaluated in the middle of an exchange
    - Transposition Table: Reuse results for positions reached twice
    - Check Extension: Search one ply deeper when the side to move is in check
    - Late Move Reduction (LMR): Search late quiet moves shallower first,
      re-search at full depth only if they look promising

Score Convention:
    Scores are integer centipawns from the side to move's perspective.
    Checkmate is encoded as MATE_SCORE - ply so faster mates score higher.

Cancellation:
    Every TIME_CHECK_NODES nodes the searcher samples the clock and the
    optional should_stop callback, raising SearchTimeout when the search must
    end. Every push is paired with a pop in try/finally, so the board is always
    restored when the exception unwinds the recursion.

References:
    - Negamax: https://www.chessprogramming.org/Negamax
    - Alpha-Beta: https://www.chessprogramming.org/Alpha-Beta
    - Quiescence: https://www.chessprogramming.org/Quiescence_Search
    - LMR: https://www.chessprogramming.org/Late_Move_Reductions
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

import chess
from castle_engine.board.oracle import fingerprint
from castle_engine.evaluation.base import Evaluator, INFINITY
from castle_engine.evaluation.classical import ClassicalEvaluator
from castle_engine.search.ordering import MAX_PLY, MoveOrderer, order_captures
from castle_engine.search.transposition import Bound, TranspositionTable

TIME_CHECK_NODES = 1024  # Sample the clock every N nodes

# Late move reduction thresholds
LMR_MIN_DEPTH = 3
LMR_FIRST_MOVE = 3  # Moves before this index are never reduced
LMR_DEEP_MOVE = 6  # From this index on, reduce by two plies
CHECK_EXTENSION = 1


class SearchTimeout(Exception):
    """Raised inside the recursion when the deadline passes or a stop is requested."""


@dataclass
class SearchStats:
    """Counters for one top-level search."""

    nodes: int = 0
    qnodes: int = 0
    tt_cutoffs: int = 0
    beta_cutoffs: int = 0
    lmr_reductions: int = 0
    lmr_researches: int = 0
    seldepth: int = 0


class Searcher:
    """
    Negamax searcher with quiescence, transposition table and move ordering.

    One Searcher serves one top-level search at a time: its killer/history
    tables and counters are reset by reset() and mutated during the search.

    Attributes:
        evaluator: Leaf evaluation function
        transposition_table: Shared result cache (None disables it)
        orderer: Move orderer holding killer/history tables
        use_lmr: Enable late move reductions
        use_quiescence: Resolve captures at the leaves (static eval if False)
        deadline: time.monotonic() value after which the search stops
        should_stop: Optional callback polled with the deadline
        stats: Counters for the current search
        root_best_move: Best root move seen in the current iteration
        root_best_score: Score of root_best_move
    """

    def __init__(
        self,
        evaluator: Optional[Evaluator] = None,
        transposition_table: Optional[TranspositionTable] = None,
        orderer: Optional[MoveOrderer] = None,
        use_lmr: bool = True,
        use_quiescence: bool = True,
        should_stop: Optional[Callable[[], bool]] = None,
    ):
        self.evaluator = evaluator if evaluator else ClassicalEvaluator()
        self.transposition_table = transposition_table
        self.orderer = orderer if orderer else MoveOrderer()
        self.use_lmr = use_lmr
        self.use_quiescence = use_quiescence
        self.should_stop = should_stop
        self.deadline: Optional[float] = None
        self.stats = SearchStats()
        self.root_best_move: Optional[chess.Move] = None
        self.root_best_score = -INFINITY

    def reset(self, deadline: Optional[float] = None):
        """Prepare for a new top-level search (killers, history, counters)."""
        self.orderer.clear()
        self.stats = SearchStats()
        self.deadline = deadline
        self.root_best_move = None
        self.root_best_score = -INFINITY

    def _visit(self, ply: int):
        """Count a node and periodically check the deadline."""
        self.stats.nodes += 1
        if ply > self.stats.seldepth:
            self.stats.seldepth = ply

        if self.stats.nodes % TIME_CHECK_NODES == 0:
            if self.deadline is not None and time.monotonic() >= self.deadline:
                raise SearchTimeout()
            if self.should_stop is not None and self.should_stop():
                raise SearchTimeout()

    def quiesce(self, board: chess.Board, alpha: int, beta: int, ply: int) -> int:
        """
        Capture-only search below the nominal horizon.

        Args:
            board: Current position, restored before returning
            alpha: Lower bound of the window
            beta: Upper bound of the window
            ply: Distance from the root

        Returns:
            Score from the side to move's perspective
        """
        self._visit(ply)
        self.stats.qnodes += 1

        # Stand pat: the side to move may decline every capture
        stand_pat = self.evaluator.evaluate_relative(board)
        if ply >= MAX_PLY:
            return stand_pat
        if stand_pat >= beta:
            return beta
        if stand_pat > alpha:
            alpha = stand_pat

        captures = list(board.generate_legal_captures())
        for move in order_captures(board, captures):
            board.push(move)
            try:
                score = -self.quiesce(board, -beta, -alpha, ply + 1)
            finally:
                board.pop()

            if score >= beta:
                return beta
            if score > alpha:
                alpha = score

        return alpha

    def search(self, board: chess.Board, depth: int, alpha: int, beta: int, ply: int = 0) -> int:
        """
        Negamax search with alpha-beta pruning.

        Args:
            board: Current position, restored before returning
            depth: Remaining search depth in plies
            alpha: Best score the side to move can already guarantee
            beta: Best score the opponent will allow
            ply: Distance from the root (0 at the root)

        Returns:
            Score from the side to move's perspective. At the root the best
            move is also recorded in root_best_move.

        Raises:
            SearchTimeout: If the deadline passed or a stop was requested
        """
        in_check = board.is_check()
        if in_check and ply < MAX_PLY:
            depth += CHECK_EXTENSION

        if depth <= 0:
            if self.use_quiescence:
                return self.quiesce(board, alpha, beta, ply)
            self._visit(ply)
            return self.evaluator.evaluate_relative(board)

        self._visit(ply)

        # The root always searches so a legal move comes back
        if ply > 0:
            terminal = self.evaluator.evaluate_terminal(board, ply)
            if terminal is not None:
                return terminal if board.turn == chess.WHITE else -terminal

        if ply >= MAX_PLY:
            return self.evaluator.evaluate_relative(board)

        original_alpha = alpha
        key = fingerprint(board)
        hint = None

        if self.transposition_table is not None:
            probe = self.transposition_table.probe(key, depth, alpha, beta, ply)
            hint = probe.best_move
            # The root always searches, so a move is produced
            if probe.usable and ply > 0:
                self.stats.tt_cutoffs += 1
                return probe.score

        moves = self.orderer.order_moves(board, list(board.legal_moves), ply, hint)

        best_score = -INFINITY
        best_move = None

        for index, move in enumerate(moves):
            reduction = 0
            if (
                self.use_lmr
                and depth >= LMR_MIN_DEPTH
                and index >= LMR_FIRST_MOVE
                and not in_check
                and self.orderer.is_quiet(board, move)
                and not board.gives_check(move)
            ):
                reduction = 2 if index >= LMR_DEEP_MOVE else 1

            if reduction:
                self.stats.lmr_reductions += 1

            board.push(move)
            try:
                if reduction:
                    score = -self.search(board, depth - 1 - reduction, -alpha - 1, -alpha, ply + 1)
                    if score > alpha:
                        self.stats.lmr_researches += 1
                        score = -self.search(board, depth - 1, -beta, -alpha, ply + 1)
                else:
                    score = -self.search(board, depth - 1, -beta, -alpha, ply + 1)
            finally:
                board.pop()

            if score > best_score:
                best_score = score
                best_move = move
                if ply == 0:
                    self.root_best_move = move
                    self.root_best_score = score

            if best_score > alpha:
                alpha = best_score

            if alpha >= beta:
                self.stats.beta_cutoffs += 1
                self.orderer.record_cutoff(board, move, depth, ply)
                break

        if self.transposition_table is not None:
            if best_score <= original_alpha:
                bound = Bound.UPPER_BOUND
            elif best_score >= beta:
                bound = Bound.LOWER_BOUND
            else:
                bound = Bound.EXACT
            self.transposition_table.store(key, depth, best_score, bound, best_move, ply)

        return best_score


def negamax(
    board: chess.Board,
    depth: int,
    evaluator: Optional[Evaluator] = None,
    transposition_table: Optional[TranspositionTable] = None,
    alpha: int = -INFINITY,
    beta: int = INFINITY,
) -> int:
    """
    Convenience wrapper: run one fixed-depth search from the root.

    Returns:
        Score from the side to move's perspective
    """
    searcher = Searcher(evaluator=evaluator, transposition_table=transposition_table)
    searcher.reset()
    return searcher.search(board, depth, alpha, beta, 0)

