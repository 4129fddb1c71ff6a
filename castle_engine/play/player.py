"""
Computer player: difficulty policy around the search.

EnginePlayer turns a position and a difficulty tier into a move:

    1. Easy games sometimes play a random legal move
    2. Known openings come from the opening book
    3. Otherwise iterative deepening runs with a clock-aware budget
    4. Medium games sometimes swap the best move for a near-equal one
"""

import logging
import random
from typing import List, Optional, Tuple, Union

import chess
from castle_engine.book.openings import DEFAULT_BOOK, OpeningBook
from castle_engine.evaluation.base import Evaluator, INFINITY
from castle_engine.evaluation.classical import ClassicalEvaluator
from castle_engine.play.config import Difficulty, DifficultyProfile, allocate_time_ms, get_profile
from castle_engine.search.iterative import SearchResult, find_best_move
from castle_engine.search.negamax import Searcher
from castle_engine.search.transposition import TranspositionTable

logger = logging.getLogger(__name__)

ALTERNATIVE_DEPTH = 2  # Depth used to rescore root moves for alternatives


class EnginePlayer:
    """
    Chooses moves for a given difficulty tier.

    Attributes:
        evaluator: Position evaluation function
        transposition_table: Cache reused across this player's searches
        book: Opening book (None disables book moves)
        rng: Random source for the injected randomness
    """

    def __init__(
        self,
        evaluator: Optional[Evaluator] = None,
        transposition_table: Optional[TranspositionTable] = None,
        book: Optional[OpeningBook] = DEFAULT_BOOK,
        rng: Optional[random.Random] = None,
    ):
        self.evaluator = evaluator if evaluator else ClassicalEvaluator()
        self.transposition_table = transposition_table
        self.book = book
        self.rng = rng if rng else random.Random()

    def choose_move(
        self,
        board: chess.Board,
        difficulty: Union[Difficulty, str] = Difficulty.MEDIUM,
        remaining_ms: Optional[int] = None,
    ) -> Optional[SearchResult]:
        """
        Pick a move for the side to move.

        Args:
            board: Current position (not modified)
            difficulty: Difficulty tier or its name
            remaining_ms: Time left on the engine's clock (None = untimed)

        Returns:
            SearchResult, or None if the side to move has no legal moves

        Raises:
            ValueError: If difficulty is not a known tier
        """
        profile = get_profile(difficulty)

        legal_moves = list(board.legal_moves)
        if not legal_moves:
            return None

        if profile.random_move_chance and self.rng.random() < profile.random_move_chance:
            move = self.rng.choice(legal_moves)
            logger.debug(f"Playing random move {move.uci()}")
            return SearchResult(move=move, score=0, color=board.turn, pv=[move], source="random")

        if profile.use_book and self.book is not None:
            move = self.book.probe(board)
            if move is not None:
                logger.debug(f"Playing book move {move.uci()}")
                return SearchResult(move=move, score=0, color=board.turn, pv=[move], source="book")

        time_ms, max_depth = allocate_time_ms(profile, remaining_ms)
        result = find_best_move(
            board,
            max_depth=max_depth,
            time_limit_ms=time_ms,
            evaluator=self.evaluator,
            transposition_table=self.transposition_table,
        )

        if (
            result is not None
            and result.source == "search"
            and profile.alternative_chance
            and self.rng.random() < profile.alternative_chance
        ):
            result = self._near_equal_alternative(board, result, profile)

        return result

    def _score_root_moves(self, board: chess.Board, depth: int) -> List[Tuple[chess.Move, int]]:
        """Shallow-search every root move, scores from the mover's perspective."""
        searcher = Searcher(evaluator=self.evaluator, use_lmr=False)
        searcher.reset()
        search_board = board.copy()

        scored = []
        for move in search_board.legal_moves:
            search_board.push(move)
            try:
                score = -searcher.search(search_board, depth - 1, -INFINITY, INFINITY, 1)
            finally:
                search_board.pop()
            scored.append((move, score))
        return scored

    def _near_equal_alternative(
        self,
        board: chess.Board,
        result: SearchResult,
        profile: DifficultyProfile,
    ) -> SearchResult:
        """Swap the searched move for a random one scoring close to the best."""
        scored = self._score_root_moves(board, ALTERNATIVE_DEPTH)
        best = max(score for _, score in scored)
        candidates = [
            (move, score) for move, score in scored
            if best - score <= profile.alternative_tolerance and move != result.move
        ]
        if not candidates:
            return result

        move, score = self.rng.choice(candidates)
        logger.debug(f"Swapping {result.move.uci()} for near-equal {move.uci()} ({score} vs {best})")
        return SearchResult(
            move=move,
            score=score,
            color=board.turn,
            depth=ALTERNATIVE_DEPTH,
            nodes=result.nodes,
            elapsed_ms=result.elapsed_ms,
            pv=[move],
        )
