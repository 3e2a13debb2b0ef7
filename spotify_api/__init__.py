"""Spotify Web API integration (OAuth authorization code + Liked Songs endpoints).

Everything here is async and shares one in-memory TokenManager.
"""

from .auth import SpotifyAuth, SpotifyAuthError
from .client import SpotifyAPIError, SpotifyClient
from .token_manager import TokenInfo, TokenManager, TokenMissingError

__all__ = [
    "SpotifyAuth",
    "SpotifyAuthError",
    "SpotifyAPIError",
    "SpotifyClient",
    "TokenInfo",
    "TokenManager",
    "TokenMissingError",
]
