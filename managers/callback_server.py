import asyncio
from typing import Awaitable, Callable, Optional

from aiohttp import web

from constants import CALLBACK_PATH, OAUTH_STATE
from utils.logger import log_error, log_info, log_success, log_warning

SUCCESS_PAGE = """<!DOCTYPE html>
<html>
  <head><meta charset="UTF-8"><title>Spotify Liked Toggle</title></head>
  <body>
    <p>Spotify authenticated! You can close this page.</p>
    <script>setTimeout(() => window.close(), 1000);</script>
  </body>
</html>"""

NO_CODE_MESSAGE = "No code received."
ERROR_MESSAGE = "Error during authorization. Check console."


class CallbackServerError(RuntimeError):
    """The callback listener could not bind its host and port."""


class CallbackServer:
    """Local HTTP listener for the Spotify OAuth redirect.

    ``on_authenticated`` runs after every successful code exchange; the
    application makes it idempotent. A failed exchange leaves the server
    listening so the user can restart the browser flow.
    """

    def __init__(
        self,
        auth,
        *,
        host: str = "127.0.0.1",
        port: int = 8888,
        path: str = CALLBACK_PATH,
        state: Optional[str] = OAUTH_STATE,
        on_authenticated: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        self.auth = auth
        self.host = host
        self.port = port
        self.path = path
        self.state = state
        self.on_authenticated = on_authenticated
        self.authenticated = asyncio.Event()
        self._runner: Optional[web.AppRunner] = None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get(self.path, self.handle_callback)
        return app

    async def start(self) -> None:
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        try:
            await site.start()
        except OSError as e:
            await self.stop()
            raise CallbackServerError(f"Could not start the callback server on {self.host}:{self.port}: {e}") from e
        log_info(f"Server listening on http://{self.host}:{self.port}{self.path}")

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

    async def handle_callback(self, request: web.Request) -> web.Response:
        error = request.query.get("error")
        if error:
            log_warning(f"Spotify authorization was not granted: {error}")
            return web.Response(text=f"Spotify authorization failed: {error}")

        code = request.query.get("code", "").strip()
        if not code:
            return web.Response(text=NO_CODE_MESSAGE)

        state = request.query.get("state")
        if self.state and state is not None and state != self.state:
            log_warning("Ignoring OAuth callback with unexpected state value")
            return web.Response(text="Authorization state mismatch. Restart the login flow.", status=400)

        try:
            await self.auth.exchange_code_for_token(code)
        except Exception as e:
            log_error(f"Error during authorization: {e}")
            return web.Response(text=ERROR_MESSAGE, status=500)

        self.authenticated.set()
        if self.on_authenticated is not None:
            try:
                await self.on_authenticated()
            except Exception as e:
                log_error(f"Error starting background services: {e}")
                return web.Response(text=ERROR_MESSAGE, status=500)

        log_success("Spotify authenticated! Hotkeys are active.")
        return web.Response(text=SUCCESS_PAGE, content_type="text/html")
