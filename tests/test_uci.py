"""
Unit Tests for UCI Interface

Tests for UCI protocol implementation, focusing on:
    - Command parsing: uci, isready, position, go, stop, quit
    - Position setup: FEN parsing, move application
    - Search invocation: depth and clock handling
    - Output format: info and bestmove lines
    - Error handling: invalid commands, illegal moves
"""

import chess
import pytest
from castle_engine.evaluation.base import MATE_SCORE
from castle_engine.search.transposition import Bound
from castle_engine.uci import UCIEngine, compute_time_budget, format_score
from castle_engine.uci.interface import DEFAULT_DEPTH, HASH_ENTRIES_PER_MB, HASH_MAX_MB, MAX_DEPTH


@pytest.fixture
def engine(tmp_path):
    """Create a UCI engine logging into a temporary directory."""
    engine = UCIEngine(log_dir=tmp_path)
    yield engine
    engine.handle_stop()


def wait_for_search(engine, timeout=30.0):
    if engine.search_thread:
        engine.search_thread.join(timeout=timeout)


class TestUCICommands:
    """Tests for UCI command handling."""

    def test_handle_uci(self, engine, capsys):
        engine.handle_uci()

        output = capsys.readouterr().out

        assert "id name CastleEngine" in output
        assert "id author" in output
        assert output.strip().endswith("uciok")

    def test_handle_uci_advertises_hash(self, engine, capsys):
        engine.handle_uci()

        assert "option name Hash type spin default 244 min 1 max 1024" in capsys.readouterr().out

    def test_handle_isready(self, engine, capsys):
        engine.handle_isready()

        assert "readyok" in capsys.readouterr().out

    def test_handle_ucinewgame(self, engine):
        engine.board.push_san("e4")
        engine.transposition_table.store(12345, depth=5, score=100, bound=Bound.EXACT)

        engine.handle_ucinewgame()

        assert engine.board.fen() == chess.STARTING_FEN
        assert len(engine.transposition_table) == 0

    def test_log_file_created(self, engine, tmp_path):
        assert (tmp_path / "engine.log").exists()

    def test_handle_go_depth(self, engine, capsys):
        engine.handle_position(["position", "startpos", "moves", "e2e4", "e7e5", "g1f3", "b8c6", "f1c4"])

        engine.handle_go(["go", "depth", "3"])
        wait_for_search(engine)

        lines = capsys.readouterr().out.strip().splitlines()
        info_lines = [line for line in lines if line.startswith("info depth")]

        assert len(info_lines) == 3
        assert lines[-1].startswith("bestmove ")
        move = chess.Move.from_uci(lines[-1].split()[1])
        assert move in engine.board.legal_moves

    def test_handle_go_mate_score(self, engine, capsys):
        engine.handle_position(["position", "fen", "6k1/5ppp/8/8/8/8/8/R6K", "w", "-", "-", "0", "1"])

        engine.handle_go(["go", "depth", "3"])
        wait_for_search(engine)

        output = capsys.readouterr().out

        assert "score mate 1" in output
        assert "bestmove a1a8" in output

    def test_handle_go_no_legal_moves(self, engine, capsys):
        engine.handle_position(["position", "fen", "k7/2Q5/1K6/8/8/8/8/8", "b", "-", "-", "0", "1"])

        engine.handle_go(["go", "depth", "2"])
        wait_for_search(engine)

        assert "bestmove 0000" in capsys.readouterr().out

    def test_handle_stop(self, engine, capsys):
        engine.handle_position(["position", "startpos"])
        engine.handle_go(["go", "infinite"])

        engine.handle_stop()

        assert engine.stop_search
        assert not engine.search_thread.is_alive()
        assert "bestmove" in capsys.readouterr().out


class TestUCIPositionSetup:
    """Tests for position setup via UCI."""

    def test_startpos(self, engine):
        engine.board.push_san("e4")

        engine.handle_position(["position", "startpos"])

        assert engine.board.fen() == chess.STARTING_FEN

    def test_move_sequence(self, engine):
        moves = ["e2e4", "e7e5", "g1f3", "b8c6"]

        engine.handle_position(["position", "startpos", "moves"] + moves)

        expected = chess.Board()
        for move_uci in moves:
            expected.push(chess.Move.from_uci(move_uci))

        assert engine.board.fen() == expected.fen()

    def test_fen(self, engine):
        fen = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"

        engine.handle_position(["position", "fen", *fen.split()])

        assert engine.board.fen() == chess.Board(fen).fen()

    def test_fen_with_moves(self, engine):
        fen = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"

        engine.handle_position(["position", "fen", *fen.split(), "moves", "e7e5"])

        expected = chess.Board(fen)
        expected.push_san("e5")
        assert engine.board.fen() == expected.fen()

    def test_illegal_move_stops_application(self, engine):
        engine.handle_position(["position", "startpos", "moves", "e2e4", "e7e4", "g1f3"])

        expected = chess.Board()
        expected.push_san("e4")
        assert engine.board.fen() == expected.fen()

    def test_invalid_fen_keeps_position(self, engine):
        engine.handle_position(["position", "startpos", "moves", "d2d4"])
        before = engine.board.fen()

        engine.handle_position(["position", "fen", "invalid_fen"])

        assert engine.board.fen() == before

    def test_empty_command(self, engine):
        engine.handle_position([])
        engine.handle_position(["position", "somewhere"])

        assert engine.board.fen() == chess.STARTING_FEN


class TestSetOption:
    """Tests for setoption handling."""

    def test_hash_resizes_table(self, engine):
        engine.transposition_table.store(12345, depth=5, score=100, bound=Bound.EXACT)

        engine.handle_setoption("setoption name Hash value 2".split())

        assert engine.transposition_table.max_size == 2 * HASH_ENTRIES_PER_MB
        assert len(engine.transposition_table) == 0

    def test_hash_name_case_insensitive(self, engine):
        engine.handle_setoption("setoption name hash value 8".split())

        assert engine.transposition_table.max_size == 8 * HASH_ENTRIES_PER_MB

    def test_non_numeric_hash_ignored(self, engine):
        before = engine.transposition_table

        engine.handle_setoption("setoption name Hash value lots".split())

        assert engine.transposition_table is before

    def test_out_of_range_hash_ignored(self, engine):
        before = engine.transposition_table

        engine.handle_setoption(f"setoption name Hash value {HASH_MAX_MB + 1}".split())
        engine.handle_setoption("setoption name Hash value 0".split())

        assert engine.transposition_table is before

    def test_unknown_option_ignored(self, engine):
        before = engine.transposition_table

        engine.handle_setoption("setoption name Move Overhead value 30".split())
        engine.handle_setoption(["setoption"])

        assert engine.transposition_table is before


class TestGoParsing:
    """Tests for translating 'go' arguments into depth and time limits."""

    def test_depth(self, engine):
        assert engine.parse_go(["go", "depth", "4"]) == (4, None)

    def test_default_depth(self, engine):
        assert engine.parse_go(["go"]) == (DEFAULT_DEPTH, None)

    def test_movetime(self, engine):
        assert engine.parse_go(["go", "movetime", "1500"]) == (MAX_DEPTH, 1500)

    def test_infinite(self, engine):
        assert engine.parse_go(["go", "infinite"]) == (MAX_DEPTH, None)

    def test_clock_for_side_to_move(self, engine):
        tokens = ["go", "wtime", "60000", "btime", "30000", "winc", "1000", "binc", "0"]

        assert engine.parse_go(tokens) == (MAX_DEPTH, 3000)

        engine.handle_position(["position", "startpos", "moves", "e2e4"])
        assert engine.parse_go(tokens) == (MAX_DEPTH, 1000)

    def test_non_numeric_ignored(self, engine):
        assert engine.parse_go(["go", "depth", "deep"]) == (DEFAULT_DEPTH, None)


class TestTimeBudget:

    def test_fraction_of_clock(self):
        assert compute_time_budget(300_000) == 10_000

    def test_increment_added(self):
        assert compute_time_budget(300_000, 2_000) == 12_000

    def test_never_exceeds_clock(self):
        assert compute_time_budget(1_000, 5_000) == 900

    def test_minimum(self):
        assert compute_time_budget(10) == 50


class TestScoreFormat:

    def test_centipawns(self):
        assert format_score(35) == "cp 35"
        assert format_score(-120) == "cp -120"

    def test_mate_for_side_to_move(self):
        assert format_score(MATE_SCORE - 1) == "mate 1"
        assert format_score(MATE_SCORE - 3) == "mate 2"

    def test_mated(self):
        assert format_score(-(MATE_SCORE - 2)) == "mate -1"
