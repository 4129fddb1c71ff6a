"""
Iterative Deepening Driver

Searches depth 1, 2, 3, ... until the time budget runs out, the depth limit
is reached, or a forced mate is found. Each completed iteration leaves a
legal best move behind; an iteration interrupted by the deadline is thrown
away and the previous iteration's move is returned. Depth 1 is the
exception: if even it is interrupted, the best root move seen so far is
accepted so there is always a legal answer.

Later iterations reuse the transposition table filled by earlier ones, so
the previous best move is searched first at every node it covers.

References:
    - Iterative Deepening: https://www.chessprogramming.org/Iterative_Deepening
    - Time Management: https://www.chessprogramming.org/Time_Management
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import chess
from castle_engine.board.oracle import fingerprint
from castle_engine.evaluation.base import Evaluator, INFINITY, is_mate_score
from castle_engine.search.negamax import Searcher, SearchTimeout
from castle_engine.search.transposition import TranspositionTable

logger = logging.getLogger(__name__)

MAX_DEPTH = 64


@dataclass
class SearchResult:
    """
    Outcome of a move search.

    Attributes:
        move: Chosen move
        score: Centipawns from the perspective of the side that moves
        color: Side the move was chosen for
        depth: Last fully completed depth (0 when no search ran)
        nodes: Nodes visited
        elapsed_ms: Wall time spent
        pv: Principal variation starting with move
        source: "search", "book", "forced" or "random"
    """
    move: chess.Move
    score: int
    color: chess.Color
    depth: int = 0
    nodes: int = 0
    elapsed_ms: int = 0
    pv: List[chess.Move] = field(default_factory=list)
    source: str = "search"

    @property
    def white_score(self) -> int:
        """Score from White's perspective."""
        return self.score if self.color == chess.WHITE else -self.score

    @property
    def is_mate(self) -> bool:
        """True when score encodes a forced mate for either side."""
        return is_mate_score(self.score)


def principal_variation(
    board: chess.Board,
    first_move: chess.Move,
    transposition_table: Optional[TranspositionTable],
    max_length: int = 16,
) -> List[chess.Move]:
    """
    Follow stored best moves from the root to build the expected line.

    Args:
        board: Root position (not modified)
        first_move: Best root move
        transposition_table: Table filled by the search
        max_length: Longest line to return

    Returns:
        List of moves starting with first_move
    """
    pv = [first_move]
    if transposition_table is None:
        return pv

    line_board = board.copy(stack=False)
    line_board.push(first_move)
    seen = {fingerprint(line_board)}

    while len(pv) < max_length:
        entry = transposition_table.lookup(fingerprint(line_board))
        if entry is None or entry.best_move is None:
            break
        if not line_board.is_legal(entry.best_move):
            break

        line_board.push(entry.best_move)
        pv.append(entry.best_move)

        key = fingerprint(line_board)
        if key in seen:
            break
        seen.add(key)

    return pv


def find_best_move(
    board: chess.Board,
    max_depth: int = 5,
    time_limit_ms: Optional[int] = None,
    evaluator: Optional[Evaluator] = None,
    transposition_table: Optional[TranspositionTable] = None,
    should_stop: Optional[Callable[[], bool]] = None,
    use_lmr: bool = True,
    on_iteration: Optional[Callable[[SearchResult], None]] = None,
) -> Optional[SearchResult]:
    """
    Find the best move in the current position with iterative deepening.

    Args:
        board: Current chess position (not modified, a copy is searched)
        max_depth: Deepest iteration to run
        time_limit_ms: Wall-clock budget in milliseconds (None = no limit)
        evaluator: Position evaluation function (default: ClassicalEvaluator)
        transposition_table: Cache shared with previous searches (optional)
        should_stop: Callback polled with the deadline, True stops the search
        use_lmr: Enable late move reductions
        on_iteration: Called with the result of every completed iteration

    Returns:
        SearchResult for the last completed iteration, or None if the side
        to move has no legal moves (checkmate or stalemate)

    Raises:
        ValueError: If max_depth < 1
    """
    if max_depth < 1:
        raise ValueError(f"max_depth must be at least 1, got {max_depth}")

    legal_moves = list(board.legal_moves)
    if not legal_moves:
        logger.debug("No legal moves, nothing to search")
        return None

    searcher = Searcher(
        evaluator=evaluator,
        transposition_table=transposition_table,
        use_lmr=use_lmr,
        should_stop=should_stop,
    )

    if len(legal_moves) == 1:
        move = legal_moves[0]
        logger.debug(f"Single legal move {move.uci()}, skipping search")
        return SearchResult(
            move=move,
            score=searcher.evaluator.evaluate_relative(board),
            color=board.turn,
            pv=[move],
            source="forced",
        )

    start_time = time.monotonic()
    deadline = start_time + time_limit_ms / 1000 if time_limit_ms is not None else None
    searcher.reset(deadline)

    search_board = board.copy()
    result: Optional[SearchResult] = None

    for depth in range(1, min(max_depth, MAX_DEPTH) + 1):
        try:
            score = searcher.search(search_board, depth, -INFINITY, INFINITY, 0)
        except SearchTimeout:
            elapsed_ms = int((time.monotonic() - start_time) * 1000)
            if result is None:
                move = searcher.root_best_move
                score = searcher.root_best_score
                if move is None:
                    move = searcher.orderer.order_moves(search_board, legal_moves)[0]
                    score = searcher.evaluator.evaluate_relative(search_board)
                result = SearchResult(
                    move=move,
                    score=score,
                    color=board.turn,
                    depth=1,
                    nodes=searcher.stats.nodes,
                    elapsed_ms=elapsed_ms,
                    pv=[move],
                )
                logger.info(f"Depth 1 interrupted after {elapsed_ms}ms, using {move.uci()}")
            else:
                logger.debug(f"Depth {depth} interrupted after {elapsed_ms}ms, keeping depth {result.depth}")
            break

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        move = searcher.root_best_move
        result = SearchResult(
            move=move,
            score=score,
            color=board.turn,
            depth=depth,
            nodes=searcher.stats.nodes,
            elapsed_ms=elapsed_ms,
            pv=principal_variation(search_board, move, transposition_table, depth),
        )

        logger.debug(
            f"depth={depth} move={move.uci()} score={score} "
            f"nodes={searcher.stats.nodes} time={elapsed_ms}ms"
        )

        if on_iteration is not None:
            on_iteration(result)

        if is_mate_score(score):
            logger.debug(f"Forced mate found at depth {depth}, stopping early")
            break

        if deadline is not None and time.monotonic() >= deadline:
            break

    logger.info(
        f"Search complete: move={result.move.uci()} score={result.score} "
        f"depth={result.depth} nodes={result.nodes} time={result.elapsed_ms}ms"
    )
    return result
