"""
Opening Book

A small built-in repertoire of named opening lines. The book is built once
by replaying every line from the starting position and recording, for each
position on the way, the move the line plays there. Positions are keyed by
the same fingerprint as the transposition table, so transpositions between
lines share their candidate moves.

Lookup picks uniformly among the recorded moves for a position. The book is
read-only once built.
"""

import logging
import random
from typing import Dict, Iterable, List, Optional, Tuple

import chess
from castle_engine.board.oracle import fingerprint

logger = logging.getLogger(__name__)

# (name, space-separated UCI moves)
OPENING_LINES: List[Tuple[str, str]] = [
    # ===== 1.e4 e5 =====
    ("Italian Game", "e2e4 e7e5 g1f3 b8c6 f1c4 f8c5 c2c3 g8f6 d2d3 d7d6 e1g1 e8g8"),
    ("Two Knights Defense", "e2e4 e7e5 g1f3 b8c6 f1c4 g8f6 d2d3 f8e7 e1g1 e8g8"),
    ("Ruy Lopez, Morphy Defense", "e2e4 e7e5 g1f3 b8c6 f1b5 a7a6 b5a4 g8f6 e1g1 f8e7 f1e1 b7b5 a4b3 d7d6"),
    ("Ruy Lopez, Berlin Defense", "e2e4 e7e5 g1f3 b8c6 f1b5 g8f6 e1g1 f6e4 d2d4 e4d6"),
    ("Scotch Game", "e2e4 e7e5 g1f3 b8c6 d2d4 e5d4 f3d4 g8f6 d4c6 b7c6"),
    ("Petrov Defense", "e2e4 e7e5 g1f3 g8f6 f3e5 d7d6 e5f3 f6e4 d2d4 d6d5"),

    # ===== 1.e4 other =====
    ("Sicilian Najdorf", "e2e4 c7c5 g1f3 d7d6 d2d4 c5d4 f3d4 g8f6 b1c3 a7a6"),
    ("Sicilian Dragon", "e2e4 c7c5 g1f3 d7d6 d2d4 c5d4 f3d4 g8f6 b1c3 g7g6"),
    ("Sicilian Classical", "e2e4 c7c5 g1f3 b8c6 d2d4 c5d4 f3d4 g8f6 b1c3 d7d6"),
    ("French Defense, Advance", "e2e4 e7e6 d2d4 d7d5 e4e5 c7c5 c2c3 b8c6 g1f3 d8b6"),
    ("French Defense, Tarrasch", "e2e4 e7e6 d2d4 d7d5 b1d2 g8f6 e4e5 f6d7 f1d3 c7c5"),
    ("Caro-Kann, Classical", "e2e4 c7c6 d2d4 d7d5 b1c3 d5e4 c3e4 c8f5 e4g3 f5g6"),
    ("Caro-Kann, Advance", "e2e4 c7c6 d2d4 d7d5 e4e5 c8f5 g1f3 e7e6 f1e2 c6c5"),

    # ===== 1.d4 =====
    ("Queen's Gambit Declined", "d2d4 d7d5 c2c4 e7e6 b1c3 g8f6 c1g5 f8e7 e2e3 e8g8 g1f3"),
    ("Queen's Gambit Accepted", "d2d4 d7d5 c2c4 d5c4 g1f3 g8f6 e2e3 e7e6 f1c4 c7c5"),
    ("Slav Defense", "d2d4 d7d5 c2c4 c7c6 g1f3 g8f6 b1c3 d5c4 a2a4 c8f5"),
    ("London System", "d2d4 d7d5 c1f4 g8f6 e2e3 c7c5 c2c3 b8c6 b1d2 e7e6 g1f3"),
    ("King's Indian Defense", "d2d4 g8f6 c2c4 g7g6 b1c3 f8g7 e2e4 d7d6 g1f3 e8g8 f1e2 e7e5"),
    ("Nimzo-Indian Defense", "d2d4 g8f6 c2c4 e7e6 b1c3 f8b4 d1c2 e8g8 a2a3 b4c3 c2c3"),

    # ===== Flank =====
    ("English Opening", "c2c4 e7e5 b1c3 g8f6 g1f3 b8c6 g2g3 d7d5 c4d5 f6d5"),
    ("Reti Opening", "g1f3 d7d5 g2g3 g8f6 f1g2 e7e6 e1g1 f8e7 d2d3 e8g8"),
]


class OpeningBook:
    """
    Fingerprint → candidate moves lookup built from named lines.

    Attributes:
        entries: Fingerprint → list of distinct book moves
        rng: Random source for choosing among candidates
    """

    def __init__(
        self,
        lines: Iterable[Tuple[str, str]] = OPENING_LINES,
        rng: Optional[random.Random] = None,
    ):
        """
        Build the book by replaying each line from the starting position.

        Args:
            lines: (name, UCI move sequence) pairs
            rng: Random source (default: a fresh random.Random)

        Raises:
            ValueError: If a line contains an illegal move
        """
        self.entries: Dict[int, List[chess.Move]] = {}
        self.rng = rng if rng else random.Random()

        line_count = 0
        for name, line in lines:
            self._add_line(name, line)
            line_count += 1

        logger.debug(f"Opening book built: {line_count} lines, {len(self.entries)} positions")

    def _add_line(self, name: str, line: str):
        board = chess.Board()
        for token in line.split():
            move = chess.Move.from_uci(token)
            if not board.is_legal(move):
                raise ValueError(f"Illegal move {token} in book line '{name}'")

            moves = self.entries.setdefault(fingerprint(board), [])
            if move not in moves:
                moves.append(move)
            board.push(move)

    def lookup(self, key: int) -> Optional[chess.Move]:
        """
        Pick a book move for a position fingerprint.

        Args:
            key: Fingerprint of the position

        Returns:
            A uniformly chosen book move, or None when out of book
        """
        moves = self.entries.get(key)
        if not moves:
            return None
        return self.rng.choice(moves)

    def probe(self, board: chess.Board) -> Optional[chess.Move]:
        """Return a legal book move for board, or None if out of book."""
        move = self.lookup(fingerprint(board))
        if move is not None and board.is_legal(move):
            return move
        return None

    def moves_for(self, board: chess.Board) -> List[chess.Move]:
        """All book moves recorded for board."""
        return list(self.entries.get(fingerprint(board), []))

    def __contains__(self, board: chess.Board) -> bool:
        return fingerprint(board) in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        return f"OpeningBook(positions={len(self.entries)})"


DEFAULT_BOOK = OpeningBook()
