"""
Debounced autosave.

Rapid edits are coalesced into a single write: every :meth:`Autosave.save`
buffers a copy of the game and restarts an idle timer; the write happens
when the timer expires.  :meth:`Autosave.flush` forces the buffered copy
out immediately (e.g. when the document is closed) and
:meth:`Autosave.cancel` drops it.

A copy is buffered, not a reference, so the timer thread never reads a
game that the editing thread is still mutating.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from core.clone import deep_clone
from core.model import Game
from infrastructure.persistence import PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_AUTOSAVE_DELAY = 0.5  # seconds

SaveFn = Callable[[Game], Any]
ErrorCallback = Callable[[PersistenceError], None]


class Autosave:
    """
    Debounce writes of one document through *save_fn*.

    ``PersistenceError`` raised by *save_fn* goes to *on_error* when one
    is given; every other failure is logged.  *timer_factory* builds the
    idle timer (``threading.Timer`` signature).

    Writes are serialised and numbered by the :meth:`save` that buffered
    them.  A copy whose generation has been superseded (by a newer save
    or a cancel) is dropped instead of written, so an older state never
    lands after a newer one.
    """

    def __init__(
        self,
        save_fn: SaveFn,
        on_error: Optional[ErrorCallback] = None,
        delay: float = DEFAULT_AUTOSAVE_DELAY,
        timer_factory: Callable[[float, Callable[[], None]], Any] = threading.Timer,
    ) -> None:
        self._save_fn = save_fn
        self._on_error = on_error
        self._delay = delay
        self._timer_factory = timer_factory
        self._lock = threading.RLock()
        self._write_lock = threading.RLock()
        self._timer: Any = None
        self._pending: Optional[Game] = None
        self._generation = 0
        self._written = 0

    @property
    def pending(self) -> bool:
        """``True`` while a save is buffered."""
        return self._pending is not None

    def save(self, game: Game) -> None:
        """Buffer *game* and (re)start the idle timer."""
        with self._lock:
            self._stop_timer()
            self._generation += 1
            self._pending = deep_clone(game)
            self._timer = self._timer_factory(self._delay, self._on_timer)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        """Drop the pending timer and the buffered game.

        Blocks until a write already in progress has finished; no write
        of an earlier state starts after this returns.
        """
        with self._lock:
            self._stop_timer()
            self._pending = None
            self._generation += 1
        with self._write_lock:
            pass

    def flush(self) -> bool:
        """Persist the buffered game now.  Returns ``True`` if a save ran."""
        with self._lock:
            game, generation = self._take_pending()
        if game is None:
            return False
        return self._write(game, generation, "Autosave flush failed")

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _take_pending(self) -> tuple[Optional[Game], int]:
        game, self._pending = self._pending, None
        self._stop_timer()
        return game, self._generation

    def _on_timer(self) -> None:
        with self._lock:
            game, generation = self._take_pending()
        if game is not None:
            self._write(game, generation, "Autosave failed")

    def _write(self, game: Game, generation: int, failure: str) -> bool:
        with self._write_lock:
            with self._lock:
                if generation < self._generation or generation <= self._written:
                    logger.debug("Dropped superseded autosave of game %s", game.id)
                    return False
                self._written = generation
            self._persist(game, failure)
        return True

    def _persist(self, game: Game, failure: str) -> None:
        try:
            self._save_fn(game)
        except PersistenceError as exc:
            if self._on_error is not None:
                self._on_error(exc)
            else:
                logger.exception("%s for game %s", failure, game.id)
        except Exception:
            logger.exception("%s for game %s", failure, game.id)
        else:
            logger.debug("Autosaved game %s", game.id)
