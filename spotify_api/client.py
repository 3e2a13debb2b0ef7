import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from .token_manager import TokenManager

logger = logging.getLogger(__name__)

SPOTIFY_API_BASE_URL = "https://api.spotify.com/v1"


class SpotifyAPIError(RuntimeError):
    """Web API call failed; ``status`` is None for transport errors."""

    def __init__(self, message: str, *, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class SpotifyClient:
    """Thin async Spotify Web API client for the Liked Songs endpoints.

    The access token is read from the shared TokenManager on every request,
    so a refresh performed between two calls is picked up by the second one.
    """

    def __init__(
        self,
        token_manager: TokenManager,
        *,
        http_client: httpx.AsyncClient,
        max_retries: int = 2,
    ):
        self.token_manager = token_manager
        self._http_client = http_client
        self.max_retries = max_retries

    # -----------------
    # HTTP helpers
    # -----------------

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Any] = None,
    ) -> Any:
        """Make a Spotify Web API request and return parsed JSON ({} for empty bodies).

        Only 429 responses are retried, honoring Retry-After. Everything else
        raises SpotifyAPIError right away.
        """

        attempt = 0
        while True:
            attempt += 1
            token = self.token_manager.require()

            try:
                resp = await self._http_client.request(
                    method.upper(),
                    f"{SPOTIFY_API_BASE_URL}{path}",
                    params={k: str(v) for k, v in (params or {}).items() if v is not None},
                    json=json_body,
                    headers={
                        "Authorization": token.authorization_header,
                        "Accept": "application/json",
                    },
                )
            except httpx.HTTPError as e:
                raise SpotifyAPIError(f"Spotify API request failed: {e}") from e

            if resp.status_code == 429 and attempt <= self.max_retries:
                retry_after = resp.headers.get("Retry-After")
                try:
                    delay = float(retry_after) if retry_after is not None else 1.0
                except ValueError:
                    delay = 1.0
                logger.warning("Spotify rate limit hit on %s %s, retrying in %.0fs", method, path, delay)
                await asyncio.sleep(max(1.0, delay))
                continue

            if resp.status_code >= 400:
                raise SpotifyAPIError(_api_error_message(resp), status=resp.status_code)

            if resp.status_code == 204 or not resp.content:
                return {}

            try:
                return resp.json()
            except json.JSONDecodeError as e:
                raise SpotifyAPIError(
                    f"Spotify API response was not JSON (status {resp.status_code}): {resp.text}",
                    status=resp.status_code,
                ) from e

    # -----------------
    # Library endpoints
    # -----------------

    async def current_playing_track(self) -> Optional[Dict[str, Any]]:
        """Return the playing item, or None when nothing is playing."""
        payload = await self.request_json("GET", "/me/player/currently-playing")
        if not isinstance(payload, dict):
            return None
        item = payload.get("item")
        return item if isinstance(item, dict) and item.get("id") else None

    async def contains_saved_tracks(self, ids: List[str]) -> List[bool]:
        ids = _clean_ids(ids)
        if not ids:
            return []
        payload = await self.request_json("GET", "/me/tracks/contains", params={"ids": ",".join(ids)})
        if not isinstance(payload, list) or len(payload) != len(ids):
            raise SpotifyAPIError(f"Unexpected response from /me/tracks/contains: {payload!r}")
        return [bool(x) for x in payload]

    async def add_saved_tracks(self, ids: List[str]) -> None:
        ids = _clean_ids(ids)
        if ids:
            await self.request_json("PUT", "/me/tracks", json_body={"ids": ids})

    async def remove_saved_tracks(self, ids: List[str]) -> None:
        ids = _clean_ids(ids)
        if ids:
            await self.request_json("DELETE", "/me/tracks", json_body={"ids": ids})


def _clean_ids(ids: List[str]) -> List[str]:
    return [str(i).strip() for i in (ids or []) if str(i).strip()]


def _api_error_message(resp: httpx.Response) -> str:
    """Web API errors look like {"error": {"status": 401, "message": "The access token expired"}}."""
    try:
        body = resp.json()
    except json.JSONDecodeError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        message = body["error"].get("message")
        if message:
            return f"Spotify API error {resp.status_code}: {message}"
    return f"Spotify API error {resp.status_code}: {resp.text or resp.reason_phrase}"
