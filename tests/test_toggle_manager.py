import asyncio
import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from managers.toggle_manager import ToggleIntent, ToggleOrchestrator, ToggleOutcome, TrackRef
from spotify_api.client import SpotifyAPIError


def make_item(track_id="abc123", name="Song X", artists=("Artist Y",)):
    return {"id": track_id, "name": name, "artists": [{"name": a} for a in artists]}


class FakeSpotify:
    """Stands in for SpotifyClient: a playing item plus an in-memory Liked Songs set."""

    def __init__(self, playing=None, liked=()):
        self.playing = playing
        self.liked = set(liked)
        self.calls = []
        self.delay = 0.0

    async def current_playing_track(self):
        self.calls.append(("playing",))
        return self.playing

    async def contains_saved_tracks(self, ids):
        self.calls.append(("contains", list(ids)))
        if self.delay:
            await asyncio.sleep(self.delay)
        return [i in self.liked for i in ids]

    async def add_saved_tracks(self, ids):
        self.calls.append(("add", list(ids)))
        self.liked.update(ids)

    async def remove_saved_tracks(self, ids):
        self.calls.append(("remove", list(ids)))
        self.liked.difference_update(ids)

    def mutating_calls(self):
        return [c for c in self.calls if c[0] in ("add", "remove")]


class FakeNotifier:
    def __init__(self):
        self.messages = []

    def notify(self, message):
        self.messages.append(message)
        return True


class TestTrackRef(unittest.TestCase):
    def test_display_name_joins_artists(self):
        ref = TrackRef.from_spotify_item(make_item(artists=("A", "B", "C")))
        self.assertEqual(ref.id, "abc123")
        self.assertEqual(ref.display_name, "Song X - A, B, C")

    def test_display_name_without_artists(self):
        ref = TrackRef.from_spotify_item({"id": "ep1", "name": "Episode 4", "artists": []})
        self.assertEqual(ref.display_name, "Episode 4")


class TestToggleOrchestrator(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.spotify = FakeSpotify(playing=make_item())
        self.notifier = FakeNotifier()
        self.orchestrator = ToggleOrchestrator(self.spotify, self.notifier, timeout=5)

    async def test_add_not_liked_track(self):
        outcome = await self.orchestrator.toggle(ToggleIntent.ADD)

        self.assertEqual(outcome, ToggleOutcome.ADDED)
        self.assertEqual(self.spotify.mutating_calls(), [("add", ["abc123"])])
        self.assertEqual(self.notifier.messages, ["Added to Liked Songs:\nSong X - Artist Y"])

    async def test_second_add_is_a_no_op(self):
        await self.orchestrator.toggle(ToggleIntent.ADD)
        outcome = await self.orchestrator.toggle(ToggleIntent.ADD)

        self.assertEqual(outcome, ToggleOutcome.ALREADY_LIKED)
        self.assertEqual(len(self.spotify.mutating_calls()), 1)
        self.assertEqual(self.notifier.messages[-1], "Already in Liked Songs:\nSong X - Artist Y")

    async def test_remove_liked_track(self):
        self.spotify.liked.add("abc123")

        outcome = await self.orchestrator.toggle(ToggleIntent.REMOVE)

        self.assertEqual(outcome, ToggleOutcome.REMOVED)
        self.assertEqual(self.spotify.mutating_calls(), [("remove", ["abc123"])])
        self.assertEqual(self.notifier.messages, ["Removed from Liked Songs:\nSong X - Artist Y"])

    async def test_second_remove_is_a_no_op(self):
        self.spotify.liked.add("abc123")

        await self.orchestrator.toggle(ToggleIntent.REMOVE)
        outcome = await self.orchestrator.toggle(ToggleIntent.REMOVE)

        self.assertEqual(outcome, ToggleOutcome.NOT_LIKED)
        self.assertEqual(len(self.spotify.mutating_calls()), 1)
        self.assertEqual(self.notifier.messages[-1], "Not in Liked Songs:\nSong X - Artist Y")

    async def test_nothing_playing_makes_no_further_calls(self):
        self.spotify.playing = None

        for intent in (ToggleIntent.ADD, ToggleIntent.REMOVE):
            outcome = await self.orchestrator.toggle(intent)
            self.assertEqual(outcome, ToggleOutcome.NOTHING_PLAYING)

        self.assertEqual(self.spotify.calls, [("playing",), ("playing",)])
        self.assertEqual(self.notifier.messages, ["No track currently playing"] * 2)

    async def test_membership_check_uses_single_element_list(self):
        await self.orchestrator.toggle(ToggleIntent.ADD)
        self.assertIn(("contains", ["abc123"]), self.spotify.calls)

    async def test_api_error_becomes_notification(self):
        async def expired():
            raise SpotifyAPIError("Spotify API error 401: The access token expired", status=401)

        self.spotify.current_playing_track = expired

        outcome = await self.orchestrator.toggle(ToggleIntent.ADD)

        self.assertEqual(outcome, ToggleOutcome.ERROR)
        self.assertEqual(self.notifier.messages, ["Error: Spotify API error 401: The access token expired"])
        self.assertEqual(self.spotify.mutating_calls(), [])

    async def test_malformed_item_becomes_notification(self):
        self.spotify.playing = {"name": "no id here"}

        outcome = await self.orchestrator.toggle(ToggleIntent.ADD)

        self.assertEqual(outcome, ToggleOutcome.ERROR)
        self.assertTrue(self.notifier.messages[0].startswith("Error: "))

    async def test_timeout_becomes_notification(self):
        self.spotify.delay = 1.0
        self.orchestrator.timeout = 0.05

        outcome = await self.orchestrator.toggle(ToggleIntent.ADD)

        self.assertEqual(outcome, ToggleOutcome.ERROR)
        self.assertIn("did not respond", self.notifier.messages[0])
        self.assertEqual(self.spotify.mutating_calls(), [])
        self.assertEqual(self.orchestrator._track_locks, {})

    async def test_broken_notifier_does_not_raise(self):
        class BrokenNotifier:
            def notify(self, message):
                raise RuntimeError("no display")

        orchestrator = ToggleOrchestrator(self.spotify, BrokenNotifier())
        outcome = await orchestrator.toggle(ToggleIntent.ADD)
        self.assertEqual(outcome, ToggleOutcome.ADDED)

    async def test_concurrent_adds_on_same_track_add_once(self):
        self.spotify.delay = 0.01

        outcomes = await asyncio.gather(
            self.orchestrator.toggle(ToggleIntent.ADD),
            self.orchestrator.toggle(ToggleIntent.ADD),
        )

        self.assertEqual(sorted(o.value for o in outcomes), ["added", "already_liked"])
        self.assertEqual(self.spotify.mutating_calls(), [("add", ["abc123"])])
        self.assertEqual(self.orchestrator._track_locks, {})

    async def test_track_locks_are_released_after_each_toggle(self):
        for track_id in ("t1", "t2", "t3"):
            self.spotify.playing = make_item(track_id=track_id)
            await self.orchestrator.toggle(ToggleIntent.ADD)
            await self.orchestrator.toggle(ToggleIntent.REMOVE)

        self.assertEqual(self.spotify.liked, set())
        self.assertEqual(self.orchestrator._track_locks, {})


if __name__ == "__main__":
    unittest.main(verbosity=2)
