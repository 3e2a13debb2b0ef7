import asyncio
import contextlib
import enum
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

from utils.logger import log_error, log_info


class ToggleIntent(enum.Enum):
    ADD = "add"
    REMOVE = "remove"


class ToggleOutcome(enum.Enum):
    NOTHING_PLAYING = "nothing_playing"
    ALREADY_LIKED = "already_liked"
    ADDED = "added"
    NOT_LIKED = "not_liked"
    REMOVED = "removed"
    ERROR = "error"


NOTHING_PLAYING_MESSAGE = "No track currently playing"

OUTCOME_MESSAGES = {
    ToggleOutcome.ALREADY_LIKED: "Already in Liked Songs:\n{song}",
    ToggleOutcome.ADDED: "Added to Liked Songs:\n{song}",
    ToggleOutcome.NOT_LIKED: "Not in Liked Songs:\n{song}",
    ToggleOutcome.REMOVED: "Removed from Liked Songs:\n{song}",
}


@dataclass(frozen=True)
class TrackRef:
    id: str
    display_name: str

    @staticmethod
    def from_spotify_item(item: Dict[str, Any]) -> "TrackRef":
        """Build "<name> - <artist1, artist2>" from a Web API track object."""
        track_id = str(item["id"])
        name = str(item.get("name") or track_id)
        artists = ", ".join(
            str(a.get("name")) for a in (item.get("artists") or []) if isinstance(a, dict) and a.get("name")
        )
        return TrackRef(id=track_id, display_name=f"{name} - {artists}" if artists else name)


class ToggleOrchestrator:
    """Adds or removes the currently playing track from Liked Songs.

    Each toggle runs: playback query, membership check, optional mutating call,
    notification. The check-then-act part holds a per-track asyncio.Lock so two
    quick presses on the same song see each other's result. Failures never
    escape ``toggle``; they become an error notification.
    """

    def __init__(self, client, notifier, *, timeout: Optional[float] = 15.0):
        self.client = client
        self.notifier = notifier
        self.timeout = timeout
        # track id -> [lock, number of toggles holding or waiting on it]
        self._track_locks: Dict[str, List[Any]] = {}

    async def toggle(self, intent: ToggleIntent) -> ToggleOutcome:
        try:
            if self.timeout:
                outcome, message = await asyncio.wait_for(self._run(intent), timeout=self.timeout)
            else:
                outcome, message = await self._run(intent)
        except asyncio.TimeoutError:
            outcome, message = ToggleOutcome.ERROR, f"Error: Spotify did not respond within {self.timeout:g} seconds"
            log_error(f"Toggle {intent.value} timed out")
        except Exception as e:
            outcome, message = ToggleOutcome.ERROR, f"Error: {e}"
            log_error(f"Toggle {intent.value} failed: {e}")

        await self._notify(message)
        return outcome

    async def _run(self, intent: ToggleIntent) -> tuple[ToggleOutcome, str]:
        item = await self.client.current_playing_track()
        if not item:
            return ToggleOutcome.NOTHING_PLAYING, NOTHING_PLAYING_MESSAGE

        track = TrackRef.from_spotify_item(item)

        async with self._track_lock(track.id):
            is_liked = (await self.client.contains_saved_tracks([track.id]))[0]

            if intent is ToggleIntent.ADD:
                if is_liked:
                    outcome = ToggleOutcome.ALREADY_LIKED
                else:
                    await self.client.add_saved_tracks([track.id])
                    outcome = ToggleOutcome.ADDED
            else:
                if not is_liked:
                    outcome = ToggleOutcome.NOT_LIKED
                else:
                    await self.client.remove_saved_tracks([track.id])
                    outcome = ToggleOutcome.REMOVED

        log_info(f"{intent.value}: {track.display_name} -> {outcome.value}")
        return outcome, OUTCOME_MESSAGES[outcome].format(song=track.display_name)

    @contextlib.asynccontextmanager
    async def _track_lock(self, track_id: str) -> AsyncIterator[None]:
        entry = self._track_locks.setdefault(track_id, [asyncio.Lock(), 0])
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._track_locks[track_id]

    async def _notify(self, message: str) -> None:
        # plyer backends block (D-Bus round trip, Windows balloon); keep them off the loop
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self.notifier.notify, message)
        except Exception as e:
            log_error(f"Could not show notification: {e}")
