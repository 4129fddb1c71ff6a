"""
Hand-Tuned Position Evaluation

Scores a position as the sum of:
    - Material, using PIECE_VALUES
    - Piece-square bonuses, with the king switching to its endgame table
      once few queens and minor pieces remain
    - Structure: bishop pair, doubled and isolated pawns, passed pawns
      (worth double in the endgame), rooks on open files and the pawn
      shield in front of a middlegame king
    - A small tempo bonus for the side to move

All terms read only the board, so mirrored positions get exactly negated
scores.

Reference:
    https://www.chessprogramming.org/Simplified_Evaluation_Function
"""

from typing import Dict, List

import chess
import numpy as np
from castle_engine.board.oracle import square_to_coordinates
from castle_engine.evaluation.base import Evaluator

#fmt: off
PIECE_VALUES = {
    chess.PAWN: 100,
    chess.KNIGHT: 320,
    chess.BISHOP: 330,
    chess.ROOK: 500,
    chess.QUEEN: 900,
    chess.KING: 0,
}


# Piece-square tables, White's view: row 0 is rank 8, row 7 is rank 1.
# Black pieces read the same tables with the row mirrored.

# Pawns: push the centre, reward advanced pawns
PAWN_TABLE = np.array([
    [  0,   0,   0,   0,   0,   0,   0,   0],  # Rank 8 (promotion)
    [ 50,  50,  50,  50,  50,  50,  50,  50],  # Rank 7
    [ 10,  10,  20,  30,  30,  20,  10,  10],  # Rank 6
    [  5,   5,  10,  25,  25,  10,   5,   5],  # Rank 5
    [  0,   0,   0,  20,  20,   0,   0,   0],  # Rank 4
    [  5,  -5, -10,   0,   0, -10,  -5,   5],  # Rank 3
    [  5,  10,  10, -20, -20,  10,  10,   5],  # Rank 2
    [  0,   0,   0,   0,   0,   0,   0,   0],  # Rank 1
], dtype=np.int32)

# Knights on the rim are dim
KNIGHT_TABLE = np.array([
    [-50, -40, -30, -30, -30, -30, -40, -50],
    [-40, -20,   0,   0,   0,   0, -20, -40],
    [-30,   0,  10,  15,  15,  10,   0, -30],
    [-30,   5,  15,  20,  20,  15,   5, -30],
    [-30,   0,  15,  20,  20,  15,   0, -30],
    [-30,   5,  10,  15,  15,  10,   5, -30],
    [-40, -20,   0,   5,   5,   0, -20, -40],
    [-50, -40, -30, -30, -30, -30, -40, -50],
], dtype=np.int32)

# Bishop PST: Prefer long diagonals, avoid corners
BISHOP_TABLE = np.array([
    [-20, -10, -10, -10, -10, -10, -10, -20],
    [-10,   0,   0,   0,   0,   0,   0, -10],
    [-10,   0,  10,  10,  10,  10,   0, -10],
    [-10,   5,   5,  10,  10,   5,   5, -10],
    [-10,   0,  10,  10,  10,  10,   0, -10],
    [-10,  10,  10,  10,  10,  10,  10, -10],
    [-10,   5,   0,   0,   0,   0,   5, -10],
    [-20, -10, -10, -10, -10, -10, -10, -20],
], dtype=np.int32)

# Rook PST: Prefer the 7th rank, centralize on the back rank
ROOK_TABLE = np.array([
    [  0,   0,   0,   0,   0,   0,   0,   0],
    [  5,  10,  10,  10,  10,  10,  10,   5],
    [ -5,   0,   0,   0,   0,   0,   0,  -5],
    [ -5,   0,   0,   0,   0,   0,   0,  -5],
    [ -5,   0,   0,   0,   0,   0,   0,  -5],
    [ -5,   0,   0,   0,   0,   0,   0,  -5],
    [ -5,   0,   0,   0,   0,   0,   0,  -5],
    [  0,   0,   0,   5,   5,   0,   0,   0],
], dtype=np.int32)

# Queens stay home early and drift to the centre
QUEEN_TABLE = np.array([
    [-20, -10, -10,  -5,  -5, -10, -10, -20],
    [-10,   0,   0,   0,   0,   0,   0, -10],
    [-10,   0,   5,   5,   5,   5,   0, -10],
    [ -5,   0,   5,   5,   5,   5,   0,  -5],
    [  0,   0,   5,   5,   5,   5,   0,  -5],
    [-10,   5,   5,   5,   5,   5,   0, -10],
    [-10,   0,   5,   0,   0,   0,   0, -10],
    [-20, -10, -10,  -5,  -5, -10, -10, -20],
], dtype=np.int32)

# Middlegame king: tucked away behind the castled pawns
KING_MIDDLEGAME_TABLE = np.array([
    [-30, -40, -40, -50, -50, -40, -40, -30],
    [-30, -40, -40, -50, -50, -40, -40, -30],
    [-30, -40, -40, -50, -50, -40, -40, -30],
    [-30, -40, -40, -50, -50, -40, -40, -30],
    [-20, -30, -30, -40, -40, -30, -30, -20],
    [-10, -20, -20, -20, -20, -20, -20, -10],
    [ 20,  20,   0,   0,   0,   0,  20,  20],
    [ 20,  30,  10,   0,   0,  10,  30,  20],
], dtype=np.int32)

# Endgame king: walk to the centre
KING_ENDGAME_TABLE = np.array([
    [-50, -40, -30, -20, -20, -30, -40, -50],
    [-30, -20, -10,   0,   0, -10, -20, -30],
    [-30, -10,  20,  30,  30,  20, -10, -30],
    [-30, -10,  30,  40,  40,  30, -10, -30],
    [-30, -10,  30,  40,  40,  30, -10, -30],
    [-30, -10,  20,  30,  30,  20, -10, -30],
    [-30, -30,   0,   0,   0,   0, -30, -30],
    [-50, -30, -30, -30, -30, -30, -30, -50],
], dtype=np.int32)

# Passed pawn bonus by ranks advanced from the pawn's own back rank
PASSED_PAWN_BONUS = (0, 5, 10, 20, 35, 60, 100, 0)
#fmt: on


# Structure terms (centipawns)

BISHOP_PAIR_BONUS = 30
DOUBLED_PAWN_PENALTY = 15
ISOLATED_PAWN_PENALTY = 10
ROOK_OPEN_FILE_BONUS = 20
ROOK_HALF_OPEN_FILE_BONUS = 10
PAWN_SHIELD_BONUS = 10
TEMPO_BONUS = 10

# Endgame: no queens, or at most two queens with at most two minor pieces
ENDGAME_MAX_QUEENS = 2
ENDGAME_MAX_MINORS = 2


class ClassicalEvaluator(Evaluator):
    """
    Material, piece-square and structure evaluation.

    Attributes:
        piece_tables: Piece type to 8x8 table (the king is handled separately)
        tempo_bonus: Credit for the side to move; 0 compares positions on
            material and placement alone
    """

    def __init__(self, tempo_bonus: int = TEMPO_BONUS):
        self.tempo_bonus = tempo_bonus
        self.piece_tables = {
            chess.PAWN: PAWN_TABLE,
            chess.KNIGHT: KNIGHT_TABLE,
            chess.BISHOP: BISHOP_TABLE,
            chess.ROOK: ROOK_TABLE,
            chess.QUEEN: QUEEN_TABLE,
        }

    def is_endgame(self, board: chess.Board) -> bool:
        """True once no queens remain, or at most two queens with two minor pieces."""
        queens = len(board.pieces(chess.QUEEN, chess.WHITE)) + len(board.pieces(chess.QUEEN, chess.BLACK))
        minors = sum(
            len(board.pieces(piece_type, color))
            for piece_type in (chess.KNIGHT, chess.BISHOP)
            for color in chess.COLORS
        )
        return queens == 0 or (queens <= ENDGAME_MAX_QUEENS and minors <= ENDGAME_MAX_MINORS)

    def evaluate(self, board: chess.Board) -> int:
        """
        Sum material, piece-square, structure and tempo terms.

        Finished games short-circuit to the mate or draw score. The result is
        in centipawns, positive when White stands better.
        """
        terminal_score = self.evaluate_terminal(board)
        if terminal_score is not None:
            return terminal_score

        endgame = self.is_endgame(board)
        king_table = KING_ENDGAME_TABLE if endgame else KING_MIDDLEGAME_TABLE

        score = 0
        pawn_ranks: Dict[chess.Color, List[List[int]]] = {
            chess.WHITE: [[] for _ in range(8)],
            chess.BLACK: [[] for _ in range(8)],
        }

        for square, piece in board.piece_map().items():
            row, col = square_to_coordinates(square)

            # Tables are written from White's side; mirror the rank for Black
            if piece.color == chess.BLACK:
                row = 7 - row

            if piece.piece_type == chess.KING:
                pst_value = king_table[row, col]
            else:
                pst_value = self.piece_tables[piece.piece_type][row, col]

            total_value = PIECE_VALUES[piece.piece_type] + int(pst_value)

            if piece.piece_type == chess.PAWN:
                pawn_ranks[piece.color][col].append(chess.square_rank(square))

            if piece.color == chess.WHITE:
                score += total_value
            else:
                score -= total_value

        for color in chess.COLORS:
            term = self._structure(board, color, pawn_ranks, endgame)
            score += term if color == chess.WHITE else -term

        score += self.tempo_bonus if board.turn == chess.WHITE else -self.tempo_bonus

        return score

    def _structure(
        self,
        board: chess.Board,
        color: chess.Color,
        pawn_ranks: Dict[chess.Color, List[List[int]]],
        endgame: bool,
    ) -> int:
        """Structural terms for one side, from that side's perspective."""
        own = pawn_ranks[color]
        enemy = pawn_ranks[not color]
        term = 0

        if len(board.pieces(chess.BISHOP, color)) >= 2:
            term += BISHOP_PAIR_BONUS

        for file in range(8):
            count = len(own[file])
            if count == 0:
                continue

            if count > 1:
                term -= DOUBLED_PAWN_PENALTY * (count - 1)

            neighbours = [f for f in (file - 1, file + 1) if 0 <= f <= 7]
            if not any(own[f] for f in neighbours):
                term -= ISOLATED_PAWN_PENALTY * count

            for rank in own[file]:
                if self._is_passed(color, file, rank, enemy):
                    advanced = rank if color == chess.WHITE else 7 - rank
                    bonus = PASSED_PAWN_BONUS[advanced]
                    term += bonus * 2 if endgame else bonus

        for square in board.pieces(chess.ROOK, color):
            file = chess.square_file(square)
            if not own[file] and not enemy[file]:
                term += ROOK_OPEN_FILE_BONUS
            elif not own[file]:
                term += ROOK_HALF_OPEN_FILE_BONUS

        if not endgame:
            term += self._pawn_shield(board, color, own)

        return term

    @staticmethod
    def _is_passed(color: chess.Color, file: int, rank: int, enemy: List[List[int]]) -> bool:
        """A pawn is passed when no enemy pawn ahead of it can block or capture it."""
        for f in (file - 1, file, file + 1):
            if not 0 <= f <= 7:
                continue
            for enemy_rank in enemy[f]:
                if color == chess.WHITE and enemy_rank > rank:
                    return False
                if color == chess.BLACK and enemy_rank < rank:
                    return False
        return True

    @staticmethod
    def _pawn_shield(board: chess.Board, color: chess.Color, own: List[List[int]]) -> int:
        """Bonus for friendly pawns one or two ranks in front of the king."""
        king = board.king(color)
        if king is None:
            return 0

        king_file = chess.square_file(king)
        king_rank = chess.square_rank(king)
        forward = 1 if color == chess.WHITE else -1

        shield = 0
        for f in (king_file - 1, king_file, king_file + 1):
            if not 0 <= f <= 7:
                continue
            for step in (1, 2):
                if king_rank + forward * step in own[f]:
                    shield += PAWN_SHIELD_BONUS
        return shield
