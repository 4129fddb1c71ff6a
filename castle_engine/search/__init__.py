"""
Search Module

This module implements the move search. The primary algorithm is negamax
with alpha-beta pruning, driven by iterative deepening under a time budget
and supported by a transposition table, quiescence search and move ordering.

Key Components:
    - find_best_move: Iterative deepening driver (root-level entry point)
    - Searcher: Negamax + quiescence recursion with LMR and check extensions
    - TranspositionTable: Fingerprint-keyed cache shared across searches
    - MoveOrderer: MVV-LVA, promotions, checks, killers and history
"""

from castle_engine.search.iterative import SearchResult, find_best_move, principal_variation
from castle_engine.search.negamax import Searcher, SearchStats, SearchTimeout, negamax
from castle_engine.search.ordering import MAX_PLY, MoveOrderer, mvv_lva, order_captures
from castle_engine.search.transposition import Bound, ProbeResult, TranspositionTable

__all__ = [
    'Bound',
    'MAX_PLY',
    'MoveOrderer',
    'ProbeResult',
    'SearchResult',
    'SearchStats',
    'SearchTimeout',
    'Searcher',
    'TranspositionTable',
    'find_best_move',
    'mvv_lva',
    'negamax',
    'order_captures',
    'principal_variation',
]
