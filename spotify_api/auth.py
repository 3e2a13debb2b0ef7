import json
import logging
import urllib.parse
from typing import Any, Dict, Optional

import httpx

from config import Credentials
from constants import OAUTH_STATE, SPOTIFY_SCOPES

from .token_manager import TokenInfo, TokenManager

logger = logging.getLogger(__name__)

SPOTIFY_ACCOUNTS_BASE_URL = "https://accounts.spotify.com"
TOKEN_URL = f"{SPOTIFY_ACCOUNTS_BASE_URL}/api/token"


class SpotifyAuthError(RuntimeError):
    """Token endpoint rejected the request or answered with something unusable."""


def spotify_app_setup_instructions(*, redirect_uri: str = "http://127.0.0.1:8888/callback") -> str:
    """Return user-facing setup instructions for creating a Spotify Developer app."""

    redirect_uri = str(redirect_uri or "").strip() or "http://127.0.0.1:8888/callback"
    return (
        "Spotify app setup:\n"
        "1) Go to https://developer.spotify.com/dashboard\n"
        "2) Create an app (or select an existing app) with the Web API enabled\n"
        f"3) Add this Redirect URI in the app settings: {redirect_uri}\n"
        "4) Copy the Client ID and Client Secret into config.ini under [spotify]\n\n"
        "Notes:\n"
        "- Redirect URI must match *exactly* what you configure in the Spotify dashboard.\n"
        "- Spotify only accepts loopback redirects as http://127.0.0.1:<port>/..., not localhost.\n"
    )


class SpotifyAuth:
    """Spotify OAuth (Authorization Code, confidential client) helper.

    Exchanged and refreshed tokens are written into the shared TokenManager.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        http_client: httpx.AsyncClient,
        token_manager: Optional[TokenManager] = None,
        timeout: float = 30.0,
    ):
        self.credentials = credentials
        self.token_manager = token_manager or TokenManager()
        self._http_client = http_client
        self.timeout = timeout

    def get_authorize_url(self, *, state: Optional[str] = OAUTH_STATE) -> str:
        params: Dict[str, str] = {
            "client_id": self.credentials.client_id,
            "response_type": "code",
            "redirect_uri": self.credentials.redirect_uri,
            "scope": " ".join(SPOTIFY_SCOPES),
        }
        if state:
            params["state"] = str(state)

        return f"{SPOTIFY_ACCOUNTS_BASE_URL}/authorize?{urllib.parse.urlencode(params)}"

    async def exchange_code_for_token(self, code: str) -> TokenInfo:
        payload = await self._post_form(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.credentials.redirect_uri,
            }
        )
        token = TokenInfo.from_spotify_token_response(payload)
        if not token.access_token:
            raise SpotifyAuthError("Spotify token exchange returned no access_token")
        if not token.refresh_token:
            raise SpotifyAuthError("Spotify token exchange returned no refresh_token")

        self.token_manager.set(token)
        logger.debug("Authorization code exchanged (scope=%s)", token.scope)
        return token

    async def refresh_access_token(self) -> TokenInfo:
        current = self.token_manager.require()
        if not current.refresh_token:
            raise SpotifyAuthError("No refresh_token available")

        payload = await self._post_form(
            {
                "grant_type": "refresh_token",
                "refresh_token": current.refresh_token,
            }
        )

        token = TokenInfo.from_spotify_token_response(payload)
        if not token.access_token:
            raise SpotifyAuthError("Spotify token refresh returned no access_token")

        # Spotify may omit refresh_token on refresh; keep existing.
        return self.token_manager.apply_refresh(token)

    async def _post_form(self, form: Dict[str, Any]) -> Dict[str, Any]:
        data = {k: str(v) for k, v in (form or {}).items() if v is not None}
        auth = (self.credentials.client_id, self.credentials.client_secret)

        try:
            resp = await self._http_client.post(TOKEN_URL, data=data, auth=auth, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise SpotifyAuthError(f"Spotify token request failed: {e}") from e

        if resp.status_code >= 400:
            raise SpotifyAuthError(f"Spotify token request failed (HTTP {resp.status_code}): {_error_text(resp)}")

        try:
            payload = resp.json()
        except json.JSONDecodeError as e:
            raise SpotifyAuthError(f"Spotify token response was not JSON: {resp.text}") from e

        if not isinstance(payload, dict):
            raise SpotifyAuthError(f"Spotify token response was not an object: {payload}")

        return payload


def _error_text(resp: httpx.Response) -> str:
    """Token endpoint errors look like {"error": "invalid_grant", "error_description": "..."}."""
    try:
        body = resp.json()
    except json.JSONDecodeError:
        return resp.text
    if isinstance(body, dict) and body.get("error"):
        desc = body.get("error_description")
        return f"{body['error']}: {desc}" if desc else str(body["error"])
    return resp.text
