import asyncio
import sys
from typing import Any, Awaitable, Callable, Optional, Set

from managers.toggle_manager import ToggleIntent
from utils.logger import log_error, log_info, log_debug

CTRL = "ctrl"
ALT = "alt"

# Left and right modifiers stay separate in the pressed set and are only
# folded together when a chord is matched.
_MODIFIER_NAMES = {
    "ctrl": CTRL,
    "ctrl_l": CTRL,
    "ctrl_r": CTRL,
    "alt": ALT,
    "alt_l": ALT,
    "alt_r": ALT,
    "alt_gr": ALT,
}


def normalize_modifier(name: str) -> str:
    return _MODIFIER_NAMES.get(name, name)


def _vk_to_name(vk: int, platform: str) -> Optional[str]:
    if platform == "win32":
        # VK_A..VK_Z and VK_0..VK_9; 96-105 are the numpad, 112-123 F1-F12
        if 65 <= vk <= 90 or 48 <= vk <= 57:
            return chr(vk).lower()
        if 96 <= vk <= 105:
            return f"numpad{vk - 96}"
        if 112 <= vk <= 123:
            return f"f{vk - 111}"
        return None

    # X11 keysyms: a..z are 97-122, A..Z 65-90
    if 97 <= vk <= 122 or 48 <= vk <= 57:
        return chr(vk)
    if 65 <= vk <= 90:
        return chr(vk).lower()
    return None


def key_to_name(key: Any, platform: str = sys.platform) -> Optional[str]:
    """Map a pynput key event to a lowercase letter/digit or a special-key name ('ctrl_l', 'space').

    With Ctrl held, some backends report letters as control characters
    ('\\x01' for a) or only as a virtual key code, so those are mapped back.
    Virtual key codes mean different things on Windows and X11.
    """
    name = getattr(key, "name", None)
    if name:
        return str(name).lower()

    char = getattr(key, "char", None)
    if char:
        if len(char) == 1 and 1 <= ord(char) <= 26:
            return chr(ord(char) + 96)
        return char.lower()

    vk = getattr(key, "vk", None)
    if isinstance(vk, int):
        return _vk_to_name(vk, platform)
    return None


class HotkeyListener:
    """Global Ctrl+Alt+<key> listener that turns chords into toggle intents.

    pynput calls ``on_press``/``on_release`` from its own hook thread; the
    toggle coroutine is handed to the asyncio loop so the hook never waits on
    the network.
    """

    def __init__(
        self,
        dispatch: Callable[[ToggleIntent], Awaitable[Any]],
        *,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        add_key: str = "a",
        remove_key: str = "r",
        suppress_key_repeat: bool = True,
    ):
        self.dispatch = dispatch
        self.loop = loop
        self.keymap = {add_key.lower(): ToggleIntent.ADD, remove_key.lower(): ToggleIntent.REMOVE}
        self.suppress_key_repeat = suppress_key_repeat
        self.pressed: Set[str] = set()
        self._listener = None

    @property
    def running(self) -> bool:
        return self._listener is not None

    def start(self) -> None:
        if self._listener is not None:
            return
        if self.loop is None:
            self.loop = asyncio.get_running_loop()

        # pynput picks its backend at import time and fails without a display
        from pynput import keyboard

        self._listener = keyboard.Listener(on_press=self.on_press, on_release=self.on_release, suppress=False)
        self._listener.start()

        add_key, remove_key = (k.upper() for k in self.keymap)
        log_info("Hotkeys:")
        log_info(f"  Ctrl+Alt+{add_key} -> Add current track to Liked Songs")
        log_info(f"  Ctrl+Alt+{remove_key} -> Remove current track from Liked Songs")

    def stop(self) -> None:
        if self._listener is not None:
            self._listener.stop()
            self._listener = None
        self.pressed.clear()

    def match(self, key_name: str) -> Optional[ToggleIntent]:
        held = {normalize_modifier(n) for n in self.pressed}
        if CTRL in held and ALT in held:
            return self.keymap.get(key_name)
        return None

    def on_press(self, key: Any) -> None:
        name = key_to_name(key)
        if name is None:
            return

        repeat = name in self.pressed
        self.pressed.add(name)

        intent = self.match(name)
        if intent is None:
            return
        if repeat and self.suppress_key_repeat:
            log_debug(f"Ignoring auto-repeat of {name}")
            return

        self._dispatch(intent)

    def on_release(self, key: Any) -> None:
        name = key_to_name(key)
        if name is not None:
            self.pressed.discard(name)

    def _dispatch(self, intent: ToggleIntent) -> None:
        if self.loop is None or self.loop.is_closed():
            log_error(f"Hotkey {intent.value} ignored: event loop is not running")
            return
        future = asyncio.run_coroutine_threadsafe(self.dispatch(intent), self.loop)
        future.add_done_callback(self._report_failure)

    @staticmethod
    def _report_failure(future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            log_error(f"Toggle task failed: {exc}")
