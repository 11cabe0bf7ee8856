"""Background reaper that deletes expired refresh-token rows"""
import asyncio
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from sessionguard.core.lifecycle import TokenLifecycleManager
from sessionguard.core.store import CredentialStore
from sessionguard.middleware.monitoring import set_active_refresh_tokens
from sessionguard.utils.jwt_utils import TokenCodec, utcnow
from sessionguard.utils.logger import logger


class TokenReaper:
    """Runs :meth:`TokenLifecycleManager.reap` every ``interval_seconds``.

    The first sweep happens one full interval after :meth:`start`. Each sweep
    runs in a worker thread with its own session so request handling is never
    blocked. A failed sweep is logged and the loop carries on. :meth:`stop`
    sets the stop event and waits for the task, so nothing outlives shutdown.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        interval_seconds: float = 24 * 60 * 60,
        codec: Optional[TokenCodec] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self.codec = codec or TokenCodec.from_settings()
        self.clock = clock
        self._stop: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> int:
        """One synchronous sweep. Returns the number of rows deleted."""
        db = self.session_factory()
        try:
            store = CredentialStore(db)
            now = self.clock()
            lifecycle = TokenLifecycleManager(store, self.codec, clock=self.clock)
            deleted = lifecycle.reap(now)
            set_active_refresh_tokens(store.count_active(now))
        finally:
            db.close()

        logger.info("Cleaned up expired refresh tokens", extra={"action": "reap", "count": deleted})
        return deleted

    async def _loop(self) -> None:
        while True:
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval_seconds)
                return
            except asyncio.TimeoutError:
                pass

            try:
                await asyncio.to_thread(self.run_once)
            except Exception:
                logger.error("Error cleaning up expired refresh tokens", extra={"action": "reap"}, exc_info=True)

    def start(self) -> None:
        """Schedule the loop on the running event loop."""
        if self.running:
            return
        self._stop = asyncio.Event()
        self._task = asyncio.create_task(self._loop(), name="refresh-token-reaper")
        logger.info(
            f"Refresh-token reaper started (every {self.interval_seconds:g}s)",
            extra={"action": "reaper_start"},
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop.set()
        try:
            await self._task
        finally:
            self._task = None
        logger.info("Refresh-token reaper stopped", extra={"action": "reaper_stop"})
