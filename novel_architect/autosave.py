"""Debounced autosave on top of the event loop's timer."""

import asyncio
import time
from typing import Callable, Optional

from loguru import logger


class DebouncedAutosave:
    """
    Collapses bursts of changes into a single save.

    Each ``schedule()`` cancels the pending timer (if any) and arms a new one
    ``interval`` seconds out, so a save runs once, an interval after the last
    change. At most one save is ever pending.
    """

    def __init__(
        self,
        save: Callable[[], object],
        interval: float = 5.0,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._save = save
        self.interval = interval
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self.last_saved: Optional[float] = None

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self) -> None:
        self.cancel()
        self._handle = self.loop.call_later(self.interval, self._fire)

    def save_now(self) -> None:
        self.cancel()
        self._run()

    def flush(self) -> None:
        """Run the pending save immediately, if there is one."""
        if self.pending:
            self.save_now()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._run()

    def _run(self) -> None:
        try:
            self._save()
        except Exception as e:
            logger.error(f"Autosave failed: {e}")
            return
        self.last_saved = time.time()
        logger.debug("Autosave complete")
