import logging
import os
from typing import Optional

LOGGER_NAME = "spotify_like_toggle"

_CONSOLE_FMT = logging.Formatter("%(asctime)s %(levelname)-7s %(message)s", datefmt="%H:%M:%S")
_FILE_FMT = logging.Formatter(
    "%(asctime)s [%(name)s] %(levelname)-7s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

logger = logging.getLogger(LOGGER_NAME)


def setup_logging(*, debug: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """Configure console (and optional file) logging for the app and its libraries.

    Handlers are attached to the root logger so that ``spotify_api.*`` module
    loggers share the same output. Calling this twice replaces the handlers
    instead of stacking them.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_like_toggle", False):
            root.removeHandler(handler)
            handler.close()

    root.setLevel(logging.DEBUG if debug else logging.INFO)

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if debug else logging.INFO)
    console.setFormatter(_CONSOLE_FMT)
    console._like_toggle = True
    root.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(_FILE_FMT)
        file_handler._like_toggle = True
        root.addHandler(file_handler)

    # httpx logs every request at INFO; keep it quiet unless debugging.
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.DEBUG if debug else logging.WARNING)

    return logger


def log_info(message: str) -> None:
    logger.info(message)


def log_success(message: str) -> None:
    logger.log(SUCCESS, message)


def log_warning(message: str) -> None:
    logger.warning(message)


def log_error(message: str) -> None:
    logger.error(message)


def log_debug(message: str) -> None:
    logger.debug(message)
