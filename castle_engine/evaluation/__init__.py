"""
Evaluation Module

This module provides position evaluation functions for the chess engine.
The key design principle is that evaluators are SWAPPABLE - the search
algorithm works with any evaluator that implements the base interface.

Key Components:
    - Evaluator (ABC): Abstract base class defining the evaluation interface
    - ClassicalEvaluator: Material, piece-square tables and structure terms

Data Flow:
    chess.Board → evaluator.evaluate() → int (centipawns)
                                         Positive = White advantage
                                         Negative = Black advantage
"""

from castle_engine.evaluation.base import (
    Evaluator,
    INFINITY,
    MATE_SCORE,
    MATE_THRESHOLD,
    is_mate_score,
)
from castle_engine.evaluation.classical import ClassicalEvaluator, PIECE_VALUES

__all__ = [
    'Evaluator',
    'ClassicalEvaluator',
    'INFINITY',
    'MATE_SCORE',
    'MATE_THRESHOLD',
    'PIECE_VALUES',
    'is_mate_score',
]
