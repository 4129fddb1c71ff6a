"""
Unit Tests for the Board Oracle Adapter

Tests for fingerprints and move application on top of python-chess.
"""

import chess
import pytest
from castle_engine.board import (
    MoveResult,
    apply_move,
    fingerprint,
    legal_moves,
    square_to_coordinates,
    undo_move,
)


class TestFingerprint:
    """Tests for position fingerprints."""

    def test_consistency(self):
        assert fingerprint(chess.Board()) == fingerprint(chess.Board())

    def test_changes_with_position(self):
        board = chess.Board()
        start_key = fingerprint(board)

        board.push_san("e4")

        assert fingerprint(board) != start_key

    def test_side_to_move(self):
        white = chess.Board("4k3/8/8/8/8/8/4P3/4K3 w - - 0 1")
        black = chess.Board("4k3/8/8/8/8/8/4P3/4K3 b - - 0 1")

        assert fingerprint(white) != fingerprint(black)

    def test_castling_rights(self):
        with_rights = chess.Board("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
        without_rights = chess.Board("r3k2r/8/8/8/8/8/8/R3K2R w Kkq - 0 1")

        assert fingerprint(with_rights) != fingerprint(without_rights)

    def test_transpositions_share_key(self):
        """Different move orders reaching the same position."""
        first = chess.Board()
        for san in ("Nf3", "Nf6", "Nc3"):
            first.push_san(san)

        second = chess.Board()
        for san in ("Nc3", "Nf6", "Nf3"):
            second.push_san(san)

        assert fingerprint(first) == fingerprint(second)

    def test_move_counters_ignored(self):
        early = chess.Board("4k3/8/8/8/8/8/4P3/4K3 w - - 0 1")
        late = chess.Board("4k3/8/8/8/8/8/4P3/4K3 w - - 12 57")

        assert fingerprint(early) == fingerprint(late)

    def test_uncapturable_en_passant_ignored(self):
        """After 1.e4 nothing can take en passant, so e3 is not part of the key."""
        board = chess.Board()
        board.push_san("e4")

        plain = chess.Board("rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1")

        assert fingerprint(board) == fingerprint(plain)

    def test_capturable_en_passant_included(self):
        with_ep = chess.Board("4k3/8/8/3pP3/8/8/8/4K3 w - d6 0 1")
        without_ep = chess.Board("4k3/8/8/3pP3/8/8/8/4K3 w - - 0 1")

        assert with_ep.has_legal_en_passant()
        assert fingerprint(with_ep) != fingerprint(without_ep)

    def test_fits_in_64_bits(self):
        board = chess.Board()
        for san in ("e4", "c5", "Nf3", "d6", "d4", "cxd4"):
            board.push_san(san)

        assert 0 <= fingerprint(board) < 2 ** 64


class TestMoveApplication:
    """Tests for apply_move / undo_move."""

    def test_apply_and_undo_restore_fingerprint(self):
        board = chess.Board("r1bqkbnr/pppp1ppp/2n5/4p3/4P3/5N2/PPPP1PPP/RNBQKB1R w KQkq - 2 3")
        key = fingerprint(board)
        fen = board.fen()

        for move in list(board.legal_moves):
            apply_move(board, move)
            undo_move(board)

            assert fingerprint(board) == key
            assert board.fen() == fen

    def test_capture_reported(self):
        board = chess.Board("4k3/8/8/3p4/4P3/8/8/4K3 w - - 0 1")

        result = apply_move(board, chess.Move.from_uci("e4d5"))

        assert isinstance(result, MoveResult)
        assert result.captured == chess.PAWN
        assert not result.is_check

    def test_en_passant_capture_reported(self):
        board = chess.Board("4k3/8/8/3pP3/8/8/8/4K3 w - d6 0 1")

        result = apply_move(board, chess.Move.from_uci("e5d6"))

        assert result.captured == chess.PAWN

    def test_checkmate_reported(self):
        board = chess.Board("6k1/5ppp/8/8/8/8/8/R6K w - - 0 1")

        result = apply_move(board, chess.Move.from_uci("a1a8"))

        assert result.is_check
        assert result.is_checkmate
        assert not result.is_stalemate

    def test_stalemate_reported(self):
        board = chess.Board("k7/8/1K6/8/8/8/8/2Q5 w - - 0 1")

        result = apply_move(board, chess.Move.from_uci("c1c7"))

        assert result.is_stalemate
        assert not result.is_checkmate

    def test_illegal_move_rejected(self):
        board = chess.Board()

        with pytest.raises(ValueError):
            apply_move(board, chess.Move.from_uci("e2e5"))

        assert board.fen() == chess.STARTING_FEN

    def test_undo_returns_move(self):
        board = chess.Board()
        move = chess.Move.from_uci("g1f3")
        apply_move(board, move)

        assert undo_move(board) == move


class TestLegalMoves:

    def test_all_moves(self):
        assert len(legal_moves(chess.Board())) == 20

    def test_from_square(self):
        moves = legal_moves(chess.Board(), chess.G1)

        assert {m.uci() for m in moves} == {"g1f3", "g1h3"}

    def test_square_to_coordinates(self):
        assert square_to_coordinates(chess.A1) == (7, 0)
        assert square_to_coordinates(chess.H8) == (0, 7)
        assert square_to_coordinates(chess.E4) == (4, 4)
