import os

import questionary

from config import Credentials, save_config
from spotify_api.auth import spotify_app_setup_instructions
from utils.logger import log_info, log_success, log_warning

DEFAULT_REDIRECT_URI = "http://127.0.0.1:8888/callback"


def _not_blank(value: str):
    return True if (value or "").strip() else "This field is required"


def setup_menu(config_path: str) -> bool:
    """
    Ask for Spotify app credentials and write them to config_path.
    Returns True when a config file was written.
    """
    log_info("\n" + "=" * 72)
    log_info("SPOTIFY LIKED TOGGLE SETUP")
    log_info("=" * 72)
    log_info(spotify_app_setup_instructions(redirect_uri=DEFAULT_REDIRECT_URI))

    if os.path.exists(config_path):
        overwrite = questionary.confirm(f"{config_path} already exists. Overwrite it?", default=False).ask()
        if not overwrite:
            log_warning("Setup cancelled; existing config kept.")
            return False

    client_id = questionary.text("Spotify Client ID:", validate=_not_blank).ask()
    if client_id is None:
        return False
    client_secret = questionary.password("Spotify Client Secret:", validate=_not_blank).ask()
    if client_secret is None:
        return False
    redirect_uri = questionary.text("Redirect URI:", default=DEFAULT_REDIRECT_URI, validate=_not_blank).ask()
    if redirect_uri is None:
        return False

    credentials = Credentials(
        client_id=client_id.strip(),
        client_secret=client_secret.strip(),
        redirect_uri=redirect_uri.strip(),
    )
    path = save_config(credentials, config_path)
    log_success(f"Saved credentials to {path}")
    return True
