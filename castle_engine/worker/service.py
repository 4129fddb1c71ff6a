"""
Engine Worker Service

Runs searches off the caller's thread so a game client stays responsive.

Threading:
    - Caller threads: submit requests and wait on their Future
    - Worker thread: consumes the request queue, one search at a time
    - Communication: queue.Queue of requests, concurrent.futures.Future replies

Every request carries an id and resolves exactly once. Failures never
raise on the caller side: an invalid FEN, an exception inside the search,
a request that outlives the ceiling or a worker that died all resolve to
None. When the worker loop dies, every request still pending resolves to
None and restart() brings up a fresh loop.

The worker owns one TranspositionTable that is reused across its
sequential searches. Killer and history tables are per search, and the
worker never runs two searches at once.
"""

import asyncio
import concurrent.futures
import itertools
import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

import chess
from castle_engine.play.config import Difficulty
from castle_engine.play.player import EnginePlayer
from castle_engine.search.iterative import SearchResult
from castle_engine.search.transposition import TranspositionTable

logger = logging.getLogger(__name__)

DEFAULT_CEILING_S = 10.0
DEFAULT_TT_SIZE = 1_000_000

_STOP = object()


@dataclass(frozen=True)
class MoveReply:
    """
    Answer to a best-move request.

    Attributes:
        from_square: Origin square name (e.g. "e2")
        to_square: Destination square name (e.g. "e4")
        promotion: Promotion piece symbol ("q", "r", "b", "n") or None
        uci: Move in UCI notation
        eval_score: Centipawns from White's perspective
        depth: Last completed search depth (0 for book, forced or random moves)
        source: "search", "book", "forced" or "random"
    """
    from_square: str
    to_square: str
    promotion: Optional[str]
    uci: str
    eval_score: int
    depth: int = 0
    source: str = "search"

    @classmethod
    def from_result(cls, result: SearchResult) -> "MoveReply":
        move = result.move
        return cls(
            from_square=chess.square_name(move.from_square),
            to_square=chess.square_name(move.to_square),
            promotion=chess.piece_symbol(move.promotion) if move.promotion else None,
            uci=move.uci(),
            eval_score=result.white_score,
            depth=result.depth,
            source=result.source,
        )


@dataclass(frozen=True)
class _Request:
    request_id: int
    fen: str
    difficulty: Union[Difficulty, str]
    remaining_ms: Optional[int]


class EngineWorker:
    """
    Background move service with request ids and a response ceiling.

    Usage:
        with EngineWorker() as worker:
            reply = worker.request_best_move(fen, Difficulty.HARD)

    Attributes:
        player: Move policy run for every request
        ceiling_s: Longest a caller waits for a reply before getting None
        think_delay_s: Pause before answering so replies do not feel instant
    """

    def __init__(
        self,
        transposition_table: Optional[TranspositionTable] = None,
        player: Optional[EnginePlayer] = None,
        ceiling_s: float = DEFAULT_CEILING_S,
        think_delay_s: float = 0.0,
    ):
        if ceiling_s <= 0:
            raise ValueError(f"ceiling_s must be positive, got {ceiling_s}")
        if think_delay_s < 0:
            raise ValueError(f"think_delay_s must be non-negative, got {think_delay_s}")

        if player is None:
            if transposition_table is None:
                transposition_table = TranspositionTable(max_size=DEFAULT_TT_SIZE)
            player = EnginePlayer(transposition_table=transposition_table)

        self.player = player
        self.ceiling_s = ceiling_s
        self.think_delay_s = think_delay_s

        self._requests: "queue.Queue" = queue.Queue()
        self._pending: Dict[int, concurrent.futures.Future] = {}
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._thread: Optional[threading.Thread] = None

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        """Start the worker thread (no-op if it is already running)."""
        if self.is_alive:
            return

        self._requests = queue.Queue()
        self._thread = threading.Thread(target=self._run, name="engine-worker", daemon=True)
        self._thread.start()
        logger.info("Engine worker started")

    def stop(self, timeout: Optional[float] = None):
        """
        Stop the worker thread after the current search.

        Requests still waiting in the queue are not searched; they resolve to
        None right away. The request being searched finishes first.
        """
        if self.is_alive:
            self._drop_queued()
            self._requests.put(_STOP)
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Engine worker did not stop within timeout")

        self._fail_pending()
        logger.info("Engine worker stopped")

    def restart(self):
        """
        Replace the worker loop with a fresh one.

        Raises:
            RuntimeError: If the old loop is still searching after ceiling_s
        """
        logger.info("Restarting engine worker")
        self.stop(timeout=self.ceiling_s)
        if self.is_alive:
            logger.error("Engine worker restart failed, previous loop is still running")
            raise RuntimeError("previous engine worker loop is still running")
        self.start()

    def __enter__(self) -> "EngineWorker":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    def submit(
        self,
        fen: str,
        difficulty: Union[Difficulty, str] = Difficulty.MEDIUM,
        remaining_ms: Optional[int] = None,
    ) -> Tuple[int, concurrent.futures.Future]:
        """
        Queue a best-move request.

        The worker is started on first use. If it has died since, the
        request resolves to None immediately until restart() is called.

        Args:
            fen: Position to search
            difficulty: Difficulty tier or its name
            remaining_ms: Engine clock, used to shrink the budget

        Returns:
            Tuple of (request_id, future resolving to MoveReply or None)
        """
        if self._thread is None:
            self.start()

        future: concurrent.futures.Future = concurrent.futures.Future()
        with self._lock:
            request_id = next(self._ids)
            if not self.is_alive:
                logger.warning(f"Request {request_id} rejected, engine worker is not running")
                future.set_result(None)
                return request_id, future
            self._pending[request_id] = future

        self._requests.put(_Request(request_id, fen, difficulty, remaining_ms))
        logger.debug(f"Request {request_id} queued: {fen}")
        return request_id, future

    def request_best_move(
        self,
        fen: str,
        difficulty: Union[Difficulty, str] = Difficulty.MEDIUM,
        remaining_ms: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> Optional[MoveReply]:
        """
        Ask for a move and block until it arrives or the ceiling passes.

        Args:
            fen: Position to search
            difficulty: Difficulty tier or its name
            remaining_ms: Engine clock, used to shrink the budget
            timeout: Ceiling in seconds (default: ceiling_s)

        Returns:
            MoveReply, or None on any failure or timeout
        """
        request_id, future = self.submit(fen, difficulty, remaining_ms)
        ceiling = timeout if timeout is not None else self.ceiling_s

        try:
            return future.result(timeout=ceiling)
        except concurrent.futures.TimeoutError:
            logger.warning(f"Request {request_id} exceeded the {ceiling}s ceiling")
            self._abandon(request_id)
            return None

    async def arequest_best_move(
        self,
        fen: str,
        difficulty: Union[Difficulty, str] = Difficulty.MEDIUM,
        remaining_ms: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> Optional[MoveReply]:
        """Asyncio version of request_best_move."""
        request_id, future = self.submit(fen, difficulty, remaining_ms)
        ceiling = timeout if timeout is not None else self.ceiling_s

        try:
            return await asyncio.wait_for(asyncio.wrap_future(future), timeout=ceiling)
        except asyncio.TimeoutError:
            logger.warning(f"Request {request_id} exceeded the {ceiling}s ceiling")
            self._abandon(request_id)
            return None

    def _abandon(self, request_id: int):
        """Forget a request whose caller stopped waiting; its result is discarded."""
        with self._lock:
            self._pending.pop(request_id, None)

    def _run(self):
        """Worker loop: process requests until stopped or crashed."""
        try:
            while True:
                request = self._requests.get()
                if request is _STOP:
                    break
                self._process(request)
        except Exception:
            logger.critical("Engine worker crashed", exc_info=True)
        finally:
            self._fail_pending()

    def _process(self, request: _Request):
        with self._lock:
            future = self._pending.get(request.request_id)

        if future is None or not future.set_running_or_notify_cancel():
            logger.debug(f"Request {request.request_id} abandoned before it started")
            self._abandon(request.request_id)
            return

        try:
            reply = self._handle(request)
        except MemoryError:
            # Leaves the future pending so the crash handler resolves it
            raise
        except Exception:
            logger.error(f"Request {request.request_id} failed", exc_info=True)
            reply = None

        self._abandon(request.request_id)
        if not future.done():
            future.set_result(reply)

    def _handle(self, request: _Request) -> Optional[MoveReply]:
        try:
            board = chess.Board(request.fen)
        except ValueError as e:
            logger.warning(f"Request {request.request_id} has an invalid FEN: {e}")
            return None

        start_time = time.monotonic()
        result = self.player.choose_move(board, request.difficulty, request.remaining_ms)

        if self.think_delay_s:
            time.sleep(self.think_delay_s)

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        if result is None:
            logger.info(f"Request {request.request_id}: no legal moves ({elapsed_ms}ms)")
            return None

        reply = MoveReply.from_result(result)
        logger.info(
            f"Request {request.request_id}: {reply.uci} eval={reply.eval_score} "
            f"source={reply.source} depth={reply.depth} ({elapsed_ms}ms)"
        )
        return reply

    def _drop_queued(self):
        """Take unstarted requests off the queue and resolve them to None."""
        dropped = []
        while True:
            try:
                request = self._requests.get_nowait()
            except queue.Empty:
                break
            if request is not _STOP:
                dropped.append(request.request_id)

        with self._lock:
            futures = [self._pending.pop(request_id, None) for request_id in dropped]

        for request_id, future in zip(dropped, futures):
            if future is not None and future.set_running_or_notify_cancel():
                future.set_result(None)
                logger.debug(f"Request {request_id} dropped from the queue")

    def _fail_pending(self):
        """Resolve every outstanding request to None."""
        with self._lock:
            pending = list(self._pending.items())
            self._pending.clear()

        for request_id, future in pending:
            if future.running() or future.set_running_or_notify_cancel():
                future.set_result(None)
                logger.debug(f"Request {request_id} resolved to None")
