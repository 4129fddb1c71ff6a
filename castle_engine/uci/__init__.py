"""
UCI Adapter

Wraps the search in the Universal Chess Interface so the engine can be
loaded into a GUI or a bot bridge.

A typical exchange:
    > uci
    < id name CastleEngine 0.1.0
    < uciok
    > position startpos moves e2e4
    > go wtime 300000 btime 300000
    < info depth 5 seldepth 5 score cp 25 nodes 12345 time 812 pv e7e5 g1f3
    < bestmove e7e5

Start it with `castle-engine-uci` or `python -m castle_engine.uci`.
"""

from castle_engine.uci.interface import UCIEngine, compute_time_budget, format_score

__all__ = ['UCIEngine', 'compute_time_budget', 'format_score']
