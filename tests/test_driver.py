"""
Unit Tests for the Iterative Deepening Driver

Tests for find_best_move: legal results, time budget, interruption and
the forced / no-move shortcuts.
"""

import time

import chess
import pytest
from castle_engine.evaluation import ClassicalEvaluator
from castle_engine.evaluation.base import MATE_SCORE, MATE_THRESHOLD
from castle_engine.search import SearchResult, TranspositionTable, find_best_move, principal_variation

REASONABLE_OPENING_MOVES = {"e2e4", "d2d4", "g1f3", "b1c3", "c2c4", "e2e3", "d2d3"}


class TestFindBestMove:
    """Scenario tests for the driver."""

    @pytest.fixture
    def evaluator(self):
        return ClassicalEvaluator()

    def test_starting_position(self, evaluator):
        board = chess.Board()

        result = find_best_move(board, max_depth=4, evaluator=evaluator,
                                transposition_table=TranspositionTable())

        assert result.move in board.legal_moves
        assert result.move.uci() in REASONABLE_OPENING_MOVES
        assert result.depth == 4
        assert result.source == "search"
        assert result.color == chess.WHITE

    def test_mate_in_one(self, evaluator):
        board = chess.Board("6k1/5ppp/8/8/8/8/8/R6K w - - 0 1")

        result = find_best_move(board, max_depth=2, evaluator=evaluator)

        assert result.move == chess.Move.from_uci("a1a8")
        assert result.score > MATE_THRESHOLD
        assert result.is_mate

    def test_mate_stops_deepening(self, evaluator):
        board = chess.Board("6k1/5ppp/8/8/8/8/8/R6K w - - 0 1")

        result = find_best_move(board, max_depth=6, evaluator=evaluator)

        assert result.depth < 6

    def test_mate_in_two(self, evaluator):
        """Black mates with Qh4# after 1.f3 e5 2.g4."""
        board = chess.Board("rnbqkbnr/pppp1ppp/8/4p3/6P1/5P2/PPPPP2P/RNBQKBNR b KQkq - 0 2")

        result = find_best_move(board, max_depth=3, evaluator=evaluator)

        assert result.move == chess.Move.from_uci("d8h4")
        assert result.white_score < -MATE_THRESHOLD

    def test_single_legal_move(self, evaluator):
        board = chess.Board("7k/8/8/8/8/8/6q1/7K w - - 0 1")
        assert board.legal_moves.count() == 1

        result = find_best_move(board, max_depth=5, evaluator=evaluator)

        assert result.move == chess.Move.from_uci("h1g2")
        assert result.source == "forced"
        assert result.depth == 0
        assert result.nodes == 0

    def test_stalemate_returns_none(self, evaluator):
        board = chess.Board("k7/2Q5/1K6/8/8/8/8/8 b - - 0 1")

        assert find_best_move(board, max_depth=3, evaluator=evaluator) is None

    def test_checkmated_returns_none(self, evaluator):
        board = chess.Board("rnbqkbnr/pppp1ppp/8/4p3/6P1/5P2/PPPPP2P/RNBQKBNR b KQkq - 0 2")
        board.push_san("Qh4#")

        assert find_best_move(board, max_depth=3, evaluator=evaluator) is None

    def test_invalid_depth(self, evaluator):
        with pytest.raises(ValueError):
            find_best_move(chess.Board(), max_depth=0, evaluator=evaluator)

    def test_board_not_modified(self, evaluator):
        board = chess.Board("r1bqkbnr/pppp1ppp/2n5/4p3/4P3/5N2/PPPP1PPP/RNBQKB1R w KQkq - 2 3")
        fen = board.fen()

        find_best_move(board, max_depth=3, evaluator=evaluator)

        assert board.fen() == fen
        assert not board.move_stack

    def test_draw_claimable_root_still_moves(self, evaluator):
        """A repetition at the root is only a draw claim; a move is still produced."""
        board = chess.Board()
        for _ in range(2):
            for san in ("Nf3", "Nf6", "Ng1", "Ng8"):
                board.push_san(san)

        result = find_best_move(board, max_depth=2, evaluator=evaluator)

        assert result is not None
        assert result.move in board.legal_moves


class TestSearchResult:
    """Tests for the result record."""

    def test_is_mate_either_side(self):
        move = chess.Move.from_uci("a1a8")

        assert SearchResult(move, MATE_SCORE - 3, chess.WHITE).is_mate
        assert SearchResult(move, -(MATE_SCORE - 4), chess.WHITE).is_mate
        assert not SearchResult(move, 350, chess.WHITE).is_mate

    def test_white_score(self):
        move = chess.Move.from_uci("e7e5")

        assert SearchResult(move, 120, chess.BLACK).white_score == -120
        assert SearchResult(move, 120, chess.WHITE).white_score == 120


class TestTimeManagement:
    """Deadline and stop handling."""

    def test_respects_time_limit(self):
        board = chess.Board("r1bqkbnr/pppp1ppp/2n5/4p3/4P3/5N2/PPPP1PPP/RNBQKB1R w KQkq - 2 3")

        start = time.monotonic()
        result = find_best_move(board, max_depth=30, time_limit_ms=300)
        elapsed = time.monotonic() - start

        assert result.move in board.legal_moves
        assert result.depth < 30
        assert elapsed < 5.0

    def test_stop_request_keeps_last_completed_depth(self):
        board = chess.Board()
        completed = []

        result = find_best_move(
            board,
            max_depth=30,
            should_stop=lambda: True,
            on_iteration=completed.append,
        )

        assert result.move in board.legal_moves
        assert result.depth < 30
        if completed:
            assert result.depth == completed[-1].depth
            assert result.move == completed[-1].move

    def test_zero_time_still_returns_move(self):
        board = chess.Board("r1bqkbnr/pppp1ppp/2n5/4p3/4P3/5N2/PPPP1PPP/RNBQKB1R w KQkq - 2 3")

        result = find_best_move(board, max_depth=10, time_limit_ms=0)

        assert result is not None
        assert result.move in board.legal_moves
        assert result.depth >= 1


class TestIterations:
    """Iteration reporting and table reuse."""

    def test_on_iteration_called_per_depth(self):
        depths = []

        find_best_move(chess.Board(), max_depth=3, on_iteration=lambda r: depths.append(r.depth))

        assert depths == [1, 2, 3]

    def test_deeper_search_visits_more_nodes(self):
        board = chess.Board("r1bqkbnr/pppp1ppp/2n5/4p3/4P3/5N2/PPPP1PPP/RNBQKB1R w KQkq - 2 3")

        shallow = find_best_move(board, max_depth=2)
        deep = find_best_move(board, max_depth=4)

        assert deep.nodes > shallow.nodes

    def test_table_reuse_saves_nodes(self):
        board = chess.Board("r1bqkbnr/pppp1ppp/2n5/4p3/4P3/5N2/PPPP1PPP/RNBQKB1R w KQkq - 2 3")
        tt = TranspositionTable()

        first = find_best_move(board, max_depth=4, transposition_table=tt)
        second = find_best_move(board, max_depth=4, transposition_table=tt)

        assert second.nodes < first.nodes
        assert second.move in board.legal_moves

    def test_principal_variation_is_legal(self):
        board = chess.Board("r1bqkbnr/pppp1ppp/2n5/4p3/4P3/5N2/PPPP1PPP/RNBQKB1R w KQkq - 2 3")
        tt = TranspositionTable()

        result = find_best_move(board, max_depth=4, transposition_table=tt)

        assert result.pv[0] == result.move
        replay = board.copy()
        for move in result.pv:
            assert move in replay.legal_moves
            replay.push(move)

    def test_principal_variation_without_table(self):
        move = chess.Move.from_uci("e2e4")

        assert principal_variation(chess.Board(), move, None) == [move]
