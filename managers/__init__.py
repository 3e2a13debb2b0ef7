# Managers module exports
from managers.callback_server import CallbackServer, CallbackServerError
from managers.hotkey_listener import HotkeyListener, key_to_name
from managers.toggle_manager import ToggleIntent, ToggleOrchestrator, ToggleOutcome, TrackRef
from managers.token_refresher import TokenRefresher

__all__ = [
    # Callback server
    "CallbackServer",
    "CallbackServerError",
    # Hotkeys
    "HotkeyListener",
    "key_to_name",
    # Toggle
    "ToggleIntent",
    "ToggleOrchestrator",
    "ToggleOutcome",
    "TrackRef",
    # Token refresh
    "TokenRefresher",
]
