"""
CastleEngine

A chess engine for computer opponents: iterative-deepening negamax with
alpha-beta pruning, quiescence search and an opening book, run under a
wall-clock budget.

## Architecture

The engine is organized into several key modules:

1. **board**: Thin layer over python-chess
   - Zobrist fingerprints for positions
   - Move application with check/mate/stalemate flags

2. **evaluation**: Position evaluation functions
   - Abstract Evaluator interface (swappable design)
   - ClassicalEvaluator: material, piece-square tables, pawn structure

3. **search**: Search algorithms
   - Negamax with alpha-beta, quiescence, check extension and LMR
   - Transposition table and move ordering heuristics
   - Iterative deepening driver with time budget

4. **book**: Opening book keyed by position fingerprint

5. **play**: Difficulty tiers (easy, medium, hard) around the search

6. **worker**: Background move service with request ids and a ceiling

7. **review**: Post-game move classification

8. **uci**: Universal Chess Interface protocol

## Quick Start

### As a Python Library

```python
import chess
from castle_engine.search import find_best_move, TranspositionTable

board = chess.Board()
result = find_best_move(board, max_depth=5, time_limit_ms=2000,
                        transposition_table=TranspositionTable())
print(f"Best move: {result.move} (score: {result.score})")
```

### From a game client

```python
from castle_engine import Difficulty, EngineWorker

with EngineWorker() as worker:
    reply = worker.request_best_move(fen, Difficulty.HARD, remaining_ms=60_000)
```

### As a UCI Engine

```bash
python -m castle_engine.uci
```
"""

__version__ = "0.1.0"

from castle_engine.evaluation import ClassicalEvaluator, Evaluator
from castle_engine.play import Difficulty, EnginePlayer
from castle_engine.review import review_game
from castle_engine.search import SearchResult, TranspositionTable, find_best_move
from castle_engine.worker import EngineWorker, MoveReply

__all__ = [
    'ClassicalEvaluator',
    'Difficulty',
    'EnginePlayer',
    'EngineWorker',
    'Evaluator',
    'MoveReply',
    'SearchResult',
    'TranspositionTable',
    'find_best_move',
    'review_game',
]
