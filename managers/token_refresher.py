import asyncio
from typing import Optional

from constants import DEFAULT_REFRESH_INTERVAL_MINUTES
from utils.logger import log_error, log_info


class TokenRefresher:
    """Refresh the Spotify access token on a fixed interval.

    Failures are logged and the next tick tries again; there is no backoff.
    """

    def __init__(self, auth, *, interval_seconds: float = DEFAULT_REFRESH_INTERVAL_MINUTES * 60):
        self.auth = auth
        self.interval_seconds = float(interval_seconds)
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop(), name="spotify-token-refresh")
        log_info(f"Token refresh scheduled every {self.interval_seconds / 60:g} minutes")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def refresh_once(self) -> bool:
        try:
            await self.auth.refresh_access_token()
        except Exception as e:
            log_error(f"Error refreshing token: {e}")
            return False
        log_info("[Token refreshed]")
        return True

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.refresh_once()
