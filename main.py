import argparse
import asyncio
import signal
import sys
import webbrowser
from typing import Optional

import httpx

from config import CONFIG_PATH, AppConfig, ConfigError, load_config
from managers.callback_server import CallbackServer, CallbackServerError
from managers.hotkey_listener import HotkeyListener
from managers.toggle_manager import ToggleOrchestrator
from managers.token_refresher import TokenRefresher
from spotify_api import SpotifyAuth, SpotifyClient, TokenManager
from utils.logger import log_error, log_info, log_warning, setup_logging
from utils.notifier import Notifier


class LikeToggleApp:
    """Owns every long-lived component and the order they start in.

    The hotkey listener and token refresher only start after the first
    successful code exchange, so no toggle can run without a token.
    """

    def __init__(self, config: AppConfig, *, open_browser: Optional[bool] = None, notifier: Optional[Notifier] = None):
        self.config = config
        self.open_browser = config.get("open_browser", True) if open_browser is None else open_browser

        self.token_manager = TokenManager()
        self.http_client = httpx.AsyncClient(timeout=httpx.Timeout(10.0, connect=5.0))
        self.auth = SpotifyAuth(config.credentials, token_manager=self.token_manager, http_client=self.http_client)
        self.client = SpotifyClient(self.token_manager, http_client=self.http_client)
        self.notifier = notifier or Notifier(icon_path=config.get("notification_icon"))
        self.orchestrator = ToggleOrchestrator(self.client, self.notifier, timeout=config.get("toggle_timeout_seconds"))
        self.refresher = TokenRefresher(self.auth, interval_seconds=float(config.get("refresh_interval_minutes")) * 60)
        self.hotkeys = HotkeyListener(
            self.orchestrator.toggle,
            add_key=config.get("add_key"),
            remove_key=config.get("remove_key"),
            suppress_key_repeat=config.get("suppress_key_repeat"),
        )
        self.server = CallbackServer(
            self.auth,
            host=config.credentials.callback_host,
            port=config.credentials.callback_port,
            path=config.credentials.callback_path,
            on_authenticated=self.on_authenticated,
        )
        self._stopping = asyncio.Event()

    async def on_authenticated(self) -> None:
        # repeat logins only replace the token; background services start once
        self.refresher.start()
        if not self.hotkeys.running:
            self.hotkeys.start()

    async def run(self) -> None:
        try:
            await self.server.start()

            authorize_url = self.auth.get_authorize_url()
            if self.open_browser:
                log_info("Opening Spotify login page...")
                if not webbrowser.open(authorize_url):
                    log_warning(f"Could not open a browser. Visit this URL to log in:\n{authorize_url}")
            else:
                log_info(f"Open this URL to log in to Spotify:\n{authorize_url}")

            await self._stopping.wait()
        finally:
            await self.shutdown()

    def request_stop(self) -> None:
        self._stopping.set()

    async def shutdown(self) -> None:
        log_info("Shutting down...")
        self.hotkeys.stop()
        await self.refresher.stop()
        await self.server.stop()
        await self.http_client.aclose()
        self.token_manager.clear()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="spotify-like-toggle",
        description="Add or remove the playing Spotify track from Liked Songs with Ctrl+Alt+A / Ctrl+Alt+R.",
    )
    parser.add_argument("--config", default=CONFIG_PATH, help=f"path to config.ini (default: {CONFIG_PATH})")
    parser.add_argument("--no-browser", action="store_true", help="print the login URL instead of opening a browser")
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    parser.add_argument("--setup", action="store_true", help="create config.ini interactively and exit")
    return parser.parse_args(argv)


async def _run_app(app: LikeToggleApp) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, app.request_stop)
        except (NotImplementedError, RuntimeError):
            # Windows: Ctrl+C arrives as KeyboardInterrupt instead
            pass
    await app.run()


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(debug=args.debug)

    if args.setup:
        from menus.setup_menu import setup_menu

        return 0 if setup_menu(args.config) else 1

    try:
        config = load_config(args.config)
    except ConfigError as e:
        log_error(str(e))
        return 1

    if config.get("log_file"):
        setup_logging(debug=args.debug, log_file=config.get("log_file"))

    app = LikeToggleApp(config, open_browser=False if args.no_browser else None)
    try:
        asyncio.run(_run_app(app))
    except KeyboardInterrupt:
        log_info("Exiting program...")
    except CallbackServerError as e:
        log_error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
