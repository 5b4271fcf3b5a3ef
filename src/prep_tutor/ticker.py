"""Per-session one-second ticker and time formatting."""
import asyncio
import logging

from prep_tutor.errors import SessionStateError

logger = logging.getLogger(__name__)


class Ticker:
    """Awaits ``callback()`` once per ``interval`` seconds until stopped."""

    def __init__(self, callback, interval: float = 1.0, sleep=asyncio.sleep):
        self.callback = callback
        self.interval = interval
        self.sleep = sleep
        self._task = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            raise SessionStateError("Ticker is already running")
        self._running = True
        self._task = asyncio.ensure_future(self._run())
        logger.debug("Ticker started (interval %.1fs)", self.interval)

    def stop(self) -> None:
        self._running = False
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    async def _run(self):
        while self._running:
            await self.sleep(self.interval)
            if not self._running:
                break
            await self.callback()


def format_time(seconds: int) -> str:
    mins, secs = divmod(int(seconds), 60)
    return f"{mins}:{secs:02d}"
