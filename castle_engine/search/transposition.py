"""
Transposition Table

A transposition table (TT) remembers what earlier searches learned about a
position so the same subtree is not searched twice. Positions are keyed
by their fingerprint (see castle_engine.board.oracle), so transpositions
through different move orders share one entry.

The table is an explicit object: its owner (the engine worker or the UCI
engine) creates it once and passes it into every search, so results are
reused across sequential searches but never shared by concurrent ones.

Mate Scores:
    Search scores encode mate as MATE_SCORE - ply, a distance from the root.
    Entries hold mate scores as a distance from the stored node instead, and
    lookups convert them back for the ply they are made at, so an entry written
    at one ply reports the right mate distance when reused at another.

Replacement:
    - Depth-preferred: an entry is only overwritten by a search at least
      as deep.
    - Bulk eviction: when the table grows past max_size, the oldest quarter
      of entries (by insertion order) is dropped in one pass.

References:
    - Transposition Table: https://www.chessprogramming.org/Transposition_Table
"""

import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

import chess
from castle_engine.evaluation.base import MATE_THRESHOLD

logger = logging.getLogger(__name__)

EVICTION_FRACTION = 4  # Evict 1/4 of the table at a time


def score_to_table(score: int, ply: int) -> int:
    """Re-anchor a mate score from the root to the node at `ply`."""
    if score > MATE_THRESHOLD:
        return score + ply
    if score < -MATE_THRESHOLD:
        return score - ply
    return score


def score_from_table(score: int, ply: int) -> int:
    """Inverse of score_to_table: node-relative mate score back to root-relative."""
    if score > MATE_THRESHOLD:
        return score - ply
    if score < -MATE_THRESHOLD:
        return score + ply
    return score


class Bound(Enum):
    """
    Kind of score stored in an entry.

    Decides what a later probe may conclude from the stored score:
        - EXACT: The exact evaluation (all moves searched inside the window)
        - LOWER_BOUND: Beta cutoff occurred (real score is at least this)
        - UPPER_BOUND: No move raised alpha (real score is at most this)
    """
    EXACT = 0
    LOWER_BOUND = 1
    UPPER_BOUND = 2


class TTEntry:
    """
    One cached search result.

    Attributes:
        key: Fingerprint of the position
        depth: Remaining depth this entry was searched to
        score: Score from the side to move's perspective, mates counted from this node
        bound: EXACT, LOWER_BOUND, or UPPER_BOUND
        best_move: Best move found in this position
    """

    __slots__ = ('key', 'depth', 'score', 'bound', 'best_move')

    def __init__(
        self,
        key: int,
        depth: int,
        score: int,
        bound: Bound,
        best_move: Optional[chess.Move] = None,
    ):
        self.key = key
        self.depth = depth
        self.score = score
        self.bound = bound
        self.best_move = best_move

    def __repr__(self) -> str:
        return (
            f"TTEntry(key={self.key}, depth={self.depth}, "
            f"score={self.score}, bound={self.bound.name}, move={self.best_move})"
        )


@dataclass(frozen=True)
class ProbeResult:
    """
    Result of a table probe.

    Attributes:
        usable: True if score can be returned as the node's result
        score: Stored score (meaningful only when usable)
        best_move: Stored best move, an ordering hint even when not usable
    """
    usable: bool
    score: int = 0
    best_move: Optional[chess.Move] = None


MISS = ProbeResult(usable=False)


class TranspositionTable:
    """
    Transposition table for caching search results.

    Attributes:
        max_size: Maximum number of entries before bulk eviction
        table: Dictionary mapping fingerprint → TTEntry (insertion ordered)
    """

    def __init__(self, max_size: int = 1_000_000):
        """
        Create an empty table.

        Args:
            max_size: Maximum number of entries

        Raises:
            ValueError: If max_size is not positive
        """
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")

        self.max_size = max_size
        self.table: Dict[int, TTEntry] = {}
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def probe(self, key: int, depth: int, alpha: int, beta: int, ply: int = 0) -> ProbeResult:
        """
        Look up a position and decide whether its score ends the search.

        An entry is usable only if it was searched at least as deep as
        requested and its bound agrees with the window:
            - EXACT entries are always usable
            - LOWER_BOUND entries only if score >= beta
            - UPPER_BOUND entries only if score <= alpha

        Args:
            key: Fingerprint of the position
            depth: Remaining depth requested by the caller
            alpha: Lower bound of the current window
            beta: Upper bound of the current window
            ply: Distance of the looked-up node from the root

        Returns:
            ProbeResult with usable flag, score and move hint
        """
        entry = self.table.get(key)
        if entry is None:
            self.misses += 1
            return MISS

        self.hits += 1
        score = score_from_table(entry.score, ply)

        usable = False
        if entry.depth >= depth:
            if entry.bound is Bound.EXACT:
                usable = True
            elif entry.bound is Bound.LOWER_BOUND and score >= beta:
                usable = True
            elif entry.bound is Bound.UPPER_BOUND and score <= alpha:
                usable = True

        return ProbeResult(usable=usable, score=score, best_move=entry.best_move)

    def store(
        self,
        key: int,
        depth: int,
        score: int,
        bound: Bound,
        best_move: Optional[chess.Move] = None,
        ply: int = 0,
    ):
        """
        Store a search result.

        Args:
            key: Fingerprint of the position
            depth: Remaining depth the result was searched to
            score: Score from the side to move's perspective
            bound: EXACT, LOWER_BOUND, or UPPER_BOUND
            best_move: Best move found (optional)
            ply: Distance of the stored node from the root
        """
        existing = self.table.get(key)
        if existing is not None:
            # Shallower results never overwrite deeper ones
            if depth < existing.depth:
                return
            del self.table[key]

        self.table[key] = TTEntry(key, depth, score_to_table(score, ply), bound, best_move)

        if len(self.table) > self.max_size:
            self._evict()

    def _evict(self):
        """Drop the oldest slice of entries by insertion order."""
        count = max(1, len(self.table) // EVICTION_FRACTION)
        for key in list(itertools.islice(self.table, count)):
            del self.table[key]
        self.evictions += count
        logger.debug(f"Transposition table evicted {count} entries ({len(self.table)} remain)")

    def lookup(self, key: int, depth: int = 0) -> Optional[TTEntry]:
        """
        Raw lookup without window checks.

        Args:
            key: Fingerprint of the position
            depth: Only return the entry if it was searched at least this deep

        Returns:
            TTEntry if found and deep enough, None otherwise
        """
        entry = self.table.get(key)
        if entry is not None and entry.depth >= depth:
            return entry
        return None

    def clear(self):
        """Drop every entry and reset the hit counters."""

        self.table.clear()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get_stats(self) -> Dict[str, int | float]:
        """Entry count and probe hit rate, for logging."""

        total_lookups = self.hits + self.misses
        hit_rate = (self.hits / total_lookups * 100) if total_lookups > 0 else 0

        return {
            'entries': len(self.table),
            'hits': self.hits,
            'misses': self.misses,
            'evictions': self.evictions,
            'hit_rate': hit_rate,
        }

    def __len__(self) -> int:
        return len(self.table)

    def __repr__(self) -> str:
        stats = self.get_stats()
        return (
            f"TranspositionTable(entries={stats['entries']}, "
            f"hit_rate={stats['hit_rate']:.1f}%)"
        )
