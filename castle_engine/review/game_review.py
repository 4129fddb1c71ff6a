"""
Post-game review.

Replays a finished game, evaluates the position before and after every
move and labels each move by how much it changed the evaluation for the
side that played it.

The side to move flips after every move, so a tempo term would charge each
move a flat penalty. The default evaluator is built without one.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

import chess
from castle_engine.evaluation.base import Evaluator
from castle_engine.evaluation.classical import ClassicalEvaluator

logger = logging.getLogger(__name__)


class MoveQuality(Enum):
    BRILLIANT = "brilliant"
    GREAT = "great"
    GOOD = "good"
    BOOK = "book"
    INACCURACY = "inaccuracy"
    MISTAKE = "mistake"
    BLUNDER = "blunder"


# (exclusive lower bound on the mover's gain, label), checked in order
QUALITY_THRESHOLDS = (
    (200, MoveQuality.BRILLIANT),
    (80, MoveQuality.GREAT),
    (-10, MoveQuality.GOOD),
    (-50, MoveQuality.BOOK),
    (-100, MoveQuality.INACCURACY),
    (-250, MoveQuality.MISTAKE),
)

ACCURATE = frozenset({MoveQuality.BRILLIANT, MoveQuality.GREAT, MoveQuality.GOOD, MoveQuality.BOOK})


def classify_delta(delta: int) -> MoveQuality:
    """Label a change in evaluation, in centipawns for the side that moved."""
    for threshold, quality in QUALITY_THRESHOLDS:
        if delta > threshold:
            return quality
    return MoveQuality.BLUNDER


@dataclass
class ReviewedMove:
    ply: int
    move: chess.Move
    san: str
    color: chess.Color
    eval_before: int
    eval_after: int
    delta: int
    quality: MoveQuality


@dataclass
class GameReview:
    """
    Result of review_game.

    Attributes:
        moves: One entry per move played
        summary: Count of moves per quality label
        accuracy: Percent of moves labelled brilliant, great, good or book
    """
    moves: List[ReviewedMove] = field(default_factory=list)
    summary: Dict[MoveQuality, int] = field(default_factory=dict)
    accuracy: float = 100.0

    def accuracy_for(self, color: chess.Color) -> float:
        """Accuracy counting only the moves of one side."""
        own = [m for m in self.moves if m.color == color]
        return _accuracy(own)


def _accuracy(moves: List[ReviewedMove]) -> float:
    if not moves:
        return 100.0
    accurate = sum(1 for m in moves if m.quality in ACCURATE)
    return accurate / len(moves) * 100


def _parse_move(board: chess.Board, move: Union[chess.Move, str]) -> chess.Move:
    if isinstance(move, chess.Move):
        if not board.is_legal(move):
            raise ValueError(f"illegal move {move.uci()} in {board.fen()}")
        return move

    try:
        return board.parse_uci(move)
    except ValueError:
        return board.parse_san(move)


def review_game(
    moves: Iterable[Union[chess.Move, str]],
    evaluator: Optional[Evaluator] = None,
    start_fen: str = chess.STARTING_FEN,
) -> GameReview:
    """
    Review a game move by move.

    Args:
        moves: Moves played, as chess.Move, UCI or SAN strings
        evaluator: Position evaluation function (default: ClassicalEvaluator
            without the tempo bonus)
        start_fen: Starting position of the game

    Returns:
        GameReview with per-move labels, summary counts and accuracy

    Raises:
        ValueError: If a move is illegal or cannot be parsed
    """
    evaluator = evaluator if evaluator else ClassicalEvaluator(tempo_bonus=0)
    board = chess.Board(start_fen)

    reviewed = []
    eval_before = evaluator.evaluate(board)

    for move in moves:
        parsed = _parse_move(board, move)
        color = board.turn
        san = board.san(parsed)

        board.push(parsed)
        eval_after = evaluator.evaluate(board)

        delta = eval_after - eval_before
        if color == chess.BLACK:
            delta = -delta

        reviewed.append(ReviewedMove(
            ply=len(reviewed) + 1,
            move=parsed,
            san=san,
            color=color,
            eval_before=eval_before,
            eval_after=eval_after,
            delta=delta,
            quality=classify_delta(delta),
        ))
        eval_before = eval_after

    summary = Counter(m.quality for m in reviewed)
    review = GameReview(
        moves=reviewed,
        summary={quality: summary.get(quality, 0) for quality in MoveQuality},
        accuracy=_accuracy(reviewed),
    )

    logger.info(f"Reviewed {len(reviewed)} moves, accuracy {review.accuracy:.1f}%")
    return review
