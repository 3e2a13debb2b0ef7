import time
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional


class TokenMissingError(RuntimeError):
    """Raised when a Spotify call is attempted before the OAuth flow has completed."""


@dataclass(frozen=True)
class TokenInfo:
    """Session token as returned by the Spotify token endpoint."""

    access_token: str
    refresh_token: Optional[str]
    obtained_at: float
    expires_at: float
    token_type: str = "Bearer"
    scope: Optional[str] = None

    @staticmethod
    def from_spotify_token_response(payload: Dict[str, Any], *, now: Optional[float] = None) -> "TokenInfo":
        """Convert Spotify token response JSON into TokenInfo.

        Spotify returns:
        - access_token
        - token_type
        - expires_in (seconds)
        - refresh_token (omitted on most refresh responses)
        - scope (space-delimited string)
        """

        now_ts = float(time.time() if now is None else now)
        expires_in = float(payload.get("expires_in", 3600))

        return TokenInfo(
            access_token=str(payload.get("access_token", "")),
            refresh_token=payload.get("refresh_token"),
            obtained_at=now_ts,
            expires_at=now_ts + expires_in,
            token_type=str(payload.get("token_type", "Bearer")),
            scope=payload.get("scope"),
        )

    @property
    def authorization_header(self) -> str:
        return f"{self.token_type} {self.access_token}"

    def __repr__(self) -> str:
        # never leak secrets into logs or tracebacks
        return (
            f"TokenInfo(access_token='***', refresh_token={'***' if self.refresh_token else None}, "
            f"obtained_at={self.obtained_at}, expires_at={self.expires_at}, token_type={self.token_type!r})"
        )


class TokenManager:
    """In-memory holder of the one current Session Token.

    Every component (callback server, refresher, library client) receives the
    same instance and reads or replaces the token only through these methods.
    Nothing is written to disk; the token dies with the process.
    """

    def __init__(self):
        self._token: Optional[TokenInfo] = None

    @property
    def has_token(self) -> bool:
        return self._token is not None

    def get(self) -> Optional[TokenInfo]:
        return self._token

    def require(self) -> TokenInfo:
        if self._token is None:
            raise TokenMissingError("No Spotify token available. Complete the browser authorization first.")
        return self._token

    def set(self, token: TokenInfo) -> TokenInfo:
        """Install a freshly exchanged token pair, replacing any previous one."""
        if not token.access_token:
            raise ValueError("Refusing to store a token without an access_token")
        self._token = token
        return token

    def apply_refresh(self, refreshed: TokenInfo) -> TokenInfo:
        """Replace the access token after a refresh, keeping the refresh token if Spotify omitted it."""
        current = self.require()
        if not refreshed.refresh_token:
            refreshed = replace(refreshed, refresh_token=current.refresh_token)
        return self.set(refreshed)

    def clear(self) -> None:
        self._token = None
