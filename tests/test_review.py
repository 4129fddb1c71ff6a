"""
Unit Tests for Post-Game Review
"""

import chess
import pytest
from castle_engine.evaluation import ClassicalEvaluator
from castle_engine.evaluation.classical import TEMPO_BONUS
from castle_engine.review import MoveQuality, classify_delta, review_game


class TestClassifyDelta:

    @pytest.mark.parametrize("delta,quality", [
        (500, MoveQuality.BRILLIANT),
        (201, MoveQuality.BRILLIANT),
        (200, MoveQuality.GREAT),
        (81, MoveQuality.GREAT),
        (80, MoveQuality.GOOD),
        (0, MoveQuality.GOOD),
        (-9, MoveQuality.GOOD),
        (-10, MoveQuality.BOOK),
        (-49, MoveQuality.BOOK),
        (-50, MoveQuality.INACCURACY),
        (-99, MoveQuality.INACCURACY),
        (-100, MoveQuality.MISTAKE),
        (-249, MoveQuality.MISTAKE),
        (-250, MoveQuality.BLUNDER),
        (-900, MoveQuality.BLUNDER),
    ])
    def test_thresholds(self, delta, quality):
        assert classify_delta(delta) == quality


class TestReviewGame:

    def test_empty_game(self):
        review = review_game([])

        assert review.moves == []
        assert review.accuracy == 100.0
        assert sum(review.summary.values()) == 0

    def test_fools_mate(self):
        review = review_game(["f3", "e5", "g4", "Qh4#"])

        assert len(review.moves) == 4
        assert review.moves[-1].san == "Qh4#"
        assert review.moves[-1].color == chess.BLACK
        assert review.moves[-1].quality == MoveQuality.BRILLIANT
        assert sum(review.summary.values()) == 4
        assert 0.0 <= review.accuracy <= 100.0

    def test_uci_and_moves_accepted(self):
        review = review_game(["e2e4", "e7e5", chess.Move.from_uci("g1f3")])

        assert [m.san for m in review.moves] == ["e4", "e5", "Nf3"]
        assert [m.ply for m in review.moves] == [1, 2, 3]

    def test_delta_from_movers_perspective(self):
        """Black capturing a free queen is a gain for Black."""
        review = review_game(["e4", "d5", "Qh5", "Qd6", "Qxh7", "Rxh7"])

        capture = review.moves[-1]
        assert capture.color == chess.BLACK
        assert capture.delta > 200
        assert capture.eval_after < capture.eval_before

    def test_blunder_detected(self):
        """Stalemating a lone king while a queen up throws the win away."""
        review = review_game(["c1c7"], start_fen="k7/8/1K6/8/8/8/8/2Q5 w - - 0 1")

        assert review.moves[0].eval_after == 0
        assert review.moves[0].quality == MoveQuality.BLUNDER
        assert review.summary[MoveQuality.BLUNDER] == 1
        assert review.accuracy == 0.0

    def test_accuracy_per_side(self):
        review = review_game(["c1c7"], start_fen="k7/8/1K6/8/8/8/8/2Q5 w - - 0 1")

        assert review.accuracy_for(chess.WHITE) == 0.0
        assert review.accuracy_for(chess.BLACK) == 100.0

    def test_illegal_move(self):
        with pytest.raises(ValueError):
            review_game(["e4", "e4"])

    def test_custom_start(self):
        review = review_game(["a1a8"], start_fen="6k1/5ppp/8/8/8/8/8/R6K w - - 0 1")

        assert review.moves[0].quality == MoveQuality.BRILLIANT

    def test_neutral_move_is_good(self):
        """Sliding a rook along an empty back rank changes nothing but the turn."""
        review = review_game(["a1b1"], start_fen="4k3/8/8/8/8/8/8/R3K3 w - - 0 1")

        assert review.moves[0].delta == 0
        assert review.moves[0].quality == MoveQuality.GOOD

    def test_supplied_evaluator_used_as_given(self):
        review = review_game(
            ["a1b1"],
            evaluator=ClassicalEvaluator(),
            start_fen="4k3/8/8/8/8/8/8/R3K3 w - - 0 1",
        )

        assert review.moves[0].delta == -2 * TEMPO_BONUS
        assert review.moves[0].quality == MoveQuality.BOOK
