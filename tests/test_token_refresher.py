import asyncio
import sys
import unittest
from pathlib import Path

import httpx

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config import Credentials
from managers.token_refresher import TokenRefresher
from spotify_api.auth import SpotifyAuth
from spotify_api.client import SpotifyClient
from spotify_api.token_manager import TokenInfo, TokenManager

CREDENTIALS = Credentials(client_id="cid", client_secret="secret", redirect_uri="http://127.0.0.1:8888/callback")


class FakeAccounts:
    """Token endpoint that hands out at-1, at-2, ... and can be told to fail."""

    def __init__(self):
        self.counter = 1
        self.fail = False
        self.refresh_calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "accounts.spotify.com":
            self.refresh_calls += 1
            if self.fail:
                return httpx.Response(400, json={"error": "invalid_grant"})
            self.counter += 1
            return httpx.Response(200, json={"access_token": f"at-{self.counter}", "expires_in": 3600})
        return httpx.Response(200, json={"item": None, "auth": request.headers["Authorization"]})


class TestTokenRefresher(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.accounts = FakeAccounts()
        self.http = httpx.AsyncClient(transport=httpx.MockTransport(self.accounts))
        self.tm = TokenManager()
        self.tm.set(TokenInfo(access_token="at-1", refresh_token="rt-1", obtained_at=0.0, expires_at=3600.0))
        self.auth = SpotifyAuth(CREDENTIALS, token_manager=self.tm, http_client=self.http)

    async def asyncTearDown(self):
        await self.http.aclose()

    async def test_token_changes_after_interval_and_is_used_by_api_calls(self):
        refresher = TokenRefresher(self.auth, interval_seconds=0.02)
        client = SpotifyClient(self.tm, http_client=self.http)

        before = await client.request_json("GET", "/me/player/currently-playing")
        refresher.start()
        try:
            await asyncio.sleep(0.1)
        finally:
            await refresher.stop()
        after = await client.request_json("GET", "/me/player/currently-playing")

        self.assertEqual(before["auth"], "Bearer at-1")
        self.assertNotEqual(self.tm.get().access_token, "at-1")
        self.assertEqual(after["auth"], f"Bearer {self.tm.get().access_token}")
        self.assertEqual(self.tm.get().refresh_token, "rt-1")

    async def test_failures_are_retried_on_next_tick(self):
        self.accounts.fail = True
        refresher = TokenRefresher(self.auth, interval_seconds=0.02)

        refresher.start()
        try:
            await asyncio.sleep(0.1)
            self.assertTrue(refresher.running)
        finally:
            await refresher.stop()

        self.assertGreaterEqual(self.accounts.refresh_calls, 2)
        self.assertEqual(self.tm.get().access_token, "at-1")

    async def test_refresh_once_reports_result(self):
        self.assertTrue(await TokenRefresher(self.auth).refresh_once())
        self.assertEqual(self.tm.get().access_token, "at-2")

        self.accounts.fail = True
        self.assertFalse(await TokenRefresher(self.auth).refresh_once())
        self.assertEqual(self.tm.get().access_token, "at-2")

    async def test_start_twice_keeps_one_task(self):
        refresher = TokenRefresher(self.auth, interval_seconds=60)
        refresher.start()
        task = refresher._task
        refresher.start()
        self.assertIs(refresher._task, task)
        await refresher.stop()
        self.assertFalse(refresher.running)


if __name__ == "__main__":
    unittest.main(verbosity=2)
