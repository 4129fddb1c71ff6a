"""
UCI Front End

Lets any UCI-speaking GUI (Cute Chess, Arena, lichess-bot, ...) drive the
engine over stdin/stdout. Only the subset of the protocol a GUI needs to
play a game is understood; anything else is logged and ignored.

Commands:
    - uci / isready: handshake
    - ucinewgame: forget the previous game (board and transposition table)
    - setoption name Hash value <MB>: resize the transposition table
    - position startpos|fen ... [moves ...]: set up the board
    - go [depth N] [movetime T] [wtime/btime/winc/binc] [infinite]
    - stop / quit

Searching happens on a worker thread so 'stop' can be read while a search
runs. The thread searches its own copy of the board and polls the
stop_search flag through find_best_move's should_stop callback.

stdout carries protocol lines only. Diagnostics go to engine.log in the log
directory and, for errors, to stderr prefixed with '#'.

See: https://www.chessprogramming.org/UCI
"""

import chess
import sys
import threading
import logging
import time
from pathlib import Path
from typing import List, Optional
from castle_engine.evaluation.base import MATE_SCORE, is_mate_score
from castle_engine.evaluation.classical import ClassicalEvaluator
from castle_engine.search.iterative import MAX_DEPTH, SearchResult, find_best_move
from castle_engine.search.transposition import TranspositionTable

DEFAULT_DEPTH = 5
MOVES_TO_GO = 30  # Assumed moves left when the GUI sends only a clock
MIN_BUDGET_MS = 50
SAFETY_MARGIN_MS = 100
DEFAULT_LOG_DIR = Path.home() / ".castle_engine"
HASH_ENTRIES_PER_MB = 4096  # Rough size of a TTEntry plus its dict slot
HASH_MIN_MB = 1
HASH_MAX_MB = 1024

GO_PARAMS = ("depth", "movetime", "wtime", "btime", "winc", "binc", "movestogo")


def setup_logger(debug=True, log_dir: Optional[Path] = None):
    """
    Point the package logger at <log_dir>/engine.log.

    Handlers from an earlier engine instance are closed first, so creating a
    second UCIEngine in the same process does not duplicate lines.

    Args:
        debug: DEBUG level when True, INFO otherwise
        log_dir: Where engine.log lives (default: ~/.castle_engine)

    Returns:
        The "castle_engine" logger
    """
    log_dir = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("castle_engine")
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    file_handler = logging.FileHandler(log_dir / "engine.log", mode='w')
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S'
    ))
    logger.addHandler(file_handler)

    return logger


def compute_time_budget(remaining_ms: int, increment_ms: int = 0) -> int:
    """
    Turn a clock reading into a budget for one move.

    Spends 1/MOVES_TO_GO of the remaining time plus the increment, capped at
    the clock minus SAFETY_MARGIN_MS and floored at MIN_BUDGET_MS.
    """
    budget = remaining_ms // MOVES_TO_GO + increment_ms
    budget = min(budget, remaining_ms - SAFETY_MARGIN_MS)
    return max(MIN_BUDGET_MS, budget)


def format_score(score: int) -> str:
    """Format a side-to-move score as 'cp N' or 'mate N' (N in full moves)."""
    if is_mate_score(score):
        plies = MATE_SCORE - abs(score)
        moves = (plies + 1) // 2
        return f"mate {moves if score > 0 else -moves}"
    return f"cp {score}"


def format_info(result: SearchResult, seldepth: Optional[int] = None) -> str:
    fields = [
        "info",
        f"depth {result.depth}",
        f"seldepth {seldepth if seldepth else result.depth}",
        f"score {format_score(result.score)}",
        f"nodes {result.nodes}",
        f"time {result.elapsed_ms}",
    ]
    if result.pv:
        fields.append("pv " + " ".join(move.uci() for move in result.pv))
    return " ".join(fields)


class UCIEngine:
    """
    Protocol state for one GUI connection.

    Attributes:
        board: Position the next 'go' searches
        evaluator: Leaf evaluator handed to every search
        transposition_table: Kept across moves, wiped by 'ucinewgame'
        searching: True while the worker thread runs
        stop_search: Set by 'stop'; the running search polls it
        search_thread: Worker thread of the current or last search
    """

    def __init__(self, evaluator=None, tt_size=1_000_000, debug=True, log_dir=None):
        self.board = chess.Board()
        self.evaluator = evaluator if evaluator else ClassicalEvaluator()
        self.transposition_table = TranspositionTable(max_size=tt_size)

        self.searching = False
        self.stop_search = False
        self.search_thread: Optional[threading.Thread] = None

        self.name = "CastleEngine"
        self.version = "0.1.0"
        self.author = "Castle Engine developers"

        self.logger = setup_logger(debug=debug, log_dir=log_dir)
        self.logger.info(f"{self.name} {self.version} ready")

    def run(self):
        """Read commands from stdin until 'quit' or end of input."""
        handlers = {
            "uci": lambda tokens: self.handle_uci(),
            "isready": lambda tokens: self.handle_isready(),
            "ucinewgame": lambda tokens: self.handle_ucinewgame(),
            "position": self.handle_position,
            "go": self.handle_go,
            "stop": lambda tokens: self.handle_stop(),
            "setoption": self.handle_setoption,
        }

        while True:
            try:
                line = input().strip()
            except EOFError:
                self.logger.info("stdin closed")
                self.handle_quit()
                break

            if not line:
                continue

            self.logger.debug(f"recv: {line}")
            tokens = line.split()
            name = tokens[0].lower()

            if name == "quit":
                self.handle_quit()
                break

            handler = handlers.get(name)
            if handler is None:
                self.logger.debug(f"Ignoring unsupported command '{name}'")
                continue

            try:
                handler(tokens)
            except Exception as e:
                self.logger.error(f"'{name}' failed: {e}", exc_info=True)
                print(f"# Error: {e}", file=sys.stderr)

    def _send(self, line: str):
        print(line)
        sys.stdout.flush()
        self.logger.debug(f"sent: {line}")

    def handle_uci(self):
        self._send(f"id name {self.name} {self.version}")
        self._send(f"id author {self.author}")
        default_mb = self.transposition_table.max_size // HASH_ENTRIES_PER_MB
        default_mb = min(HASH_MAX_MB, max(HASH_MIN_MB, default_mb))
        self._send(f"option name Hash type spin default {default_mb} min {HASH_MIN_MB} max {HASH_MAX_MB}")
        self._send("uciok")

    def handle_isready(self):
        self._send("readyok")

    def handle_setoption(self, tokens: List[str]):
        """
        Apply 'setoption name <name> [value <value>]'.

        Only Hash is supported. A new size replaces the transposition table
        with an empty one; out-of-range or non-numeric sizes are ignored.
        """
        if "name" not in tokens:
            self.logger.warning("'setoption' without a name")
            return

        name_at = tokens.index("name") + 1
        value_at = tokens.index("value") if "value" in tokens else len(tokens)
        name = " ".join(tokens[name_at:value_at]).lower()
        value = " ".join(tokens[value_at + 1:])

        if name != "hash":
            self.logger.debug(f"Ignoring unsupported option '{name}'")
            return

        try:
            megabytes = int(value)
        except ValueError:
            self.logger.warning(f"Ignoring non-numeric Hash size '{value}'")
            return

        if not HASH_MIN_MB <= megabytes <= HASH_MAX_MB:
            self.logger.warning(f"Ignoring Hash size {megabytes}, allowed {HASH_MIN_MB}-{HASH_MAX_MB}")
            return

        self._stop_running_search()
        self.transposition_table = TranspositionTable(max_size=megabytes * HASH_ENTRIES_PER_MB)
        self.logger.info(f"Hash set to {megabytes}MB ({self.transposition_table.max_size} entries)")

    def handle_ucinewgame(self):
        """Abort any search and start over from the initial position."""
        self._stop_running_search()
        self.board = chess.Board()
        self.transposition_table.clear()
        self.stop_search = False
        self.logger.info("New game: board and transposition table reset")

    def handle_position(self, tokens: List[str]):
        """
        Set up the board from 'position startpos|fen <fen> [moves ...]'.

        A bad FEN keeps the previous position. Moves are applied in order
        until the first one that is malformed or illegal; the ones before it
        stay applied.
        """
        if len(tokens) < 2:
            self.logger.warning("'position' without arguments")
            return

        kind = tokens[1]
        moves_at = tokens.index("moves") if "moves" in tokens else len(tokens)

        if kind == "startpos":
            board = chess.Board()
        elif kind == "fen":
            fen = " ".join(tokens[2:moves_at])
            try:
                board = chess.Board(fen)
            except ValueError as e:
                self.logger.error(f"Rejected FEN '{fen}': {e}")
                print(f"# Invalid FEN: {e}", file=sys.stderr)
                return
        else:
            self.logger.warning(f"Unsupported position kind '{kind}'")
            return

        for text in tokens[moves_at + 1:]:
            try:
                move = chess.Move.from_uci(text)
            except ValueError:
                self.logger.error(f"Malformed move '{text}', ignoring the rest")
                print(f"# Invalid move format: {text}", file=sys.stderr)
                break

            if not board.is_legal(move):
                self.logger.error(f"Illegal move '{text}' in {board.fen()}, ignoring the rest")
                print(f"# Illegal move: {text}", file=sys.stderr)
                break
            board.push(move)

        self.board = board
        self.logger.debug(f"Board set to {self.board.fen()}")

    def parse_go(self, tokens: List[str]):
        """
        Work out (max_depth, time_limit_ms) for a 'go' command.

        Precedence: infinite, then movetime, then the side to move's clock,
        then a plain depth (DEFAULT_DEPTH when none is given). Values that
        are not integers are ignored.
        """
        params = {}
        infinite = False

        i = 1
        while i < len(tokens):
            name = tokens[i]
            if name == "infinite":
                infinite = True
                i += 1
                continue
            if name in GO_PARAMS and i + 1 < len(tokens):
                try:
                    params[name] = int(tokens[i + 1])
                except ValueError:
                    self.logger.warning(f"Ignoring '{name} {tokens[i + 1]}'")
                i += 2
                continue
            i += 1

        if infinite:
            return MAX_DEPTH, None

        depth_limit = params.get("depth", MAX_DEPTH)

        if "movetime" in params:
            return depth_limit, max(MIN_BUDGET_MS, params["movetime"])

        if self.board.turn == chess.WHITE:
            clock, increment = "wtime", "winc"
        else:
            clock, increment = "btime", "binc"
        if clock in params:
            return depth_limit, compute_time_budget(params[clock], params.get(increment, 0))

        return params.get("depth", DEFAULT_DEPTH), None

    def handle_go(self, tokens: List[str]):
        """Start a search on a worker thread; the answer is printed when it ends."""
        self._stop_running_search()
        max_depth, time_limit_ms = self.parse_go(tokens)
        self.logger.info(f"go: depth<={max_depth} budget={time_limit_ms}ms")

        self.stop_search = False
        self.searching = True
        self.search_thread = threading.Thread(
            target=self._search_thread,
            args=(self.board.copy(), max_depth, time_limit_ms),
            daemon=True,
        )
        self.search_thread.start()

    def _search_thread(self, board: chess.Board, max_depth: int, time_limit_ms: Optional[int]):
        """Run one search and print its info lines and 'bestmove'."""
        started = time.monotonic()

        try:
            result = find_best_move(
                board,
                max_depth=max_depth,
                time_limit_ms=time_limit_ms,
                evaluator=self.evaluator,
                transposition_table=self.transposition_table,
                should_stop=lambda: self.stop_search,
                on_iteration=lambda r: self._send(format_info(r)),
            )

            if result is None:
                self.logger.warning(f"No legal moves in {board.fen()}")
                self._send("bestmove 0000")
                return

            # Forced replies skip the iterations, so report them once here
            if result.source != "search":
                self._send(format_info(result))
            self._send(f"bestmove {result.move.uci()}")

        except Exception as e:
            elapsed = time.monotonic() - started
            self.logger.error(f"Search crashed after {elapsed:.3f}s: {e}", exc_info=True)
            print(f"# Search error: {e}", file=sys.stderr)

            # The GUI still expects an answer
            legal = list(board.legal_moves)
            if legal:
                self.logger.warning(f"Answering with {legal[0].uci()} instead")
                self._send(f"bestmove {legal[0].uci()}")
            else:
                self._send("bestmove 0000")

        finally:
            self.searching = False

    def _stop_running_search(self, timeout: Optional[float] = 5.0):
        thread = self.search_thread
        if thread is None or not thread.is_alive():
            return
        self.stop_search = True
        thread.join(timeout=timeout)
        if thread.is_alive():
            self.logger.warning(f"Search still running {timeout}s after stop")

    def handle_stop(self):
        """Stop the running search; it answers with its last completed depth."""
        self.stop_search = True
        self._stop_running_search()

    def handle_quit(self):
        self._stop_running_search()
        self.logger.info(f"{self.name} shutting down")
