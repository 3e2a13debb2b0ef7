import configparser
import os
import urllib.parse
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from constants import CALLBACK_PATH, DEFAULT_CALLBACK_PORT, DEFAULT_ICON_PATH, DEFAULT_REFRESH_INTERVAL_MINUTES

CONFIG_PATH = "config.ini"

SPOTIFY_SECTION = "spotify"
SETTINGS_SECTION = "settings"

# Keys of the [spotify] section, as written in config.ini
CREDENTIAL_KEYS = ("clientId", "clientSecret", "redirectUri")

# Default values for the optional [settings] section
DEFAULT_CONFIG = {
    "refresh_interval_minutes": DEFAULT_REFRESH_INTERVAL_MINUTES,
    "toggle_timeout_seconds": 15.0,
    "add_key": "a",
    "remove_key": "r",
    "suppress_key_repeat": True,
    "open_browser": True,
    "log_file": "",
    "notification_icon": DEFAULT_ICON_PATH,
}

# Validation rules for [settings] fields
CONFIG_SCHEMA = {
    "refresh_interval_minutes": {"type": (int, float), "min": 1, "max": 59},
    "toggle_timeout_seconds": {"type": (int, float), "min": 1, "max": 120},
    "add_key": {"type": str, "length": 1},
    "remove_key": {"type": str, "length": 1},
    "suppress_key_repeat": {"type": bool},
    "open_browser": {"type": bool},
    "log_file": {"type": str},
    "notification_icon": {"type": str},
}


class ConfigError(ValueError):
    """Raised when config.ini is missing or unusable."""


@dataclass(frozen=True)
class Credentials:
    """Spotify app credentials; loaded once and never modified."""

    client_id: str
    client_secret: str
    redirect_uri: str

    @property
    def callback_host(self) -> str:
        return urllib.parse.urlparse(self.redirect_uri).hostname or "127.0.0.1"

    @property
    def callback_port(self) -> int:
        return urllib.parse.urlparse(self.redirect_uri).port or DEFAULT_CALLBACK_PORT

    @property
    def callback_path(self) -> str:
        return urllib.parse.urlparse(self.redirect_uri).path or CALLBACK_PATH


@dataclass(frozen=True)
class AppConfig:
    credentials: Credentials
    settings: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_CONFIG))
    path: Optional[str] = None

    def get(self, key: str, default: Any = None) -> Any:
        return self.settings.get(key, default)


def _coerce(parser: configparser.ConfigParser, key: str, default: Any) -> Any:
    """Read ``key`` from [settings] using the type of its default value."""
    try:
        if isinstance(default, bool):
            return parser.getboolean(SETTINGS_SECTION, key)
        if isinstance(default, int):
            return parser.getint(SETTINGS_SECTION, key)
        if isinstance(default, float):
            return parser.getfloat(SETTINGS_SECTION, key)
    except ValueError as e:
        raise ConfigError(f"Invalid value for [{SETTINGS_SECTION}] {key}: {e}") from e
    return parser.get(SETTINGS_SECTION, key).strip()


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load credentials and settings from config.ini, applying defaults for missing settings."""
    path = path or CONFIG_PATH
    if not os.path.exists(path):
        raise ConfigError(f"Config file {path} not found. Run with --setup to create it.")

    parser = configparser.ConfigParser()
    try:
        with open(path, "r", encoding="utf-8") as f:
            parser.read_file(f)
    except configparser.Error as e:
        raise ConfigError(f"Config file {path} could not be parsed: {e}") from e

    if not parser.has_section(SPOTIFY_SECTION):
        raise ConfigError(f"Config file {path} has no [{SPOTIFY_SECTION}] section.")

    values = {}
    for key in CREDENTIAL_KEYS:
        value = parser.get(SPOTIFY_SECTION, key, fallback="").strip()
        if not value:
            raise ConfigError(f"Missing {key} in [{SPOTIFY_SECTION}] of {path}.")
        values[key] = value

    credentials = Credentials(
        client_id=values["clientId"],
        client_secret=values["clientSecret"],
        redirect_uri=values["redirectUri"],
    )

    settings = dict(DEFAULT_CONFIG)
    if parser.has_section(SETTINGS_SECTION):
        for key, default in DEFAULT_CONFIG.items():
            if parser.has_option(SETTINGS_SECTION, key):
                settings[key] = _coerce(parser, key, default)

    # Relative paths are resolved against the config file's folder.
    base_dir = os.path.dirname(os.path.abspath(path))
    for key in ("log_file", "notification_icon"):
        if settings[key] and not os.path.isabs(settings[key]):
            settings[key] = os.path.join(base_dir, settings[key])

    is_valid, errors = validate_config(settings)
    if not is_valid:
        raise ConfigError(f"Invalid settings in {path}: {', '.join(errors)}")

    return AppConfig(credentials=credentials, settings=settings, path=path)


def validate_config(settings: Dict[str, Any]) -> tuple[bool, list[str]]:
    """
    Validate [settings] values against CONFIG_SCHEMA.
    Returns (is_valid, list_of_errors).
    """
    errors = []

    for key, rules in CONFIG_SCHEMA.items():
        if key not in settings:
            continue

        value = settings[key]

        expected_type = rules.get("type")
        # bool is an int subclass; don't let True pass as a number
        if expected_type and (not isinstance(value, expected_type) or (isinstance(value, bool) and expected_type is not bool)):
            type_names = expected_type.__name__ if not isinstance(expected_type, tuple) else "/".join(t.__name__ for t in expected_type)
            errors.append(f"Field '{key}' must be {type_names}, got {type(value).__name__}")
            continue

        if "length" in rules and len(value) != rules["length"]:
            errors.append(f"Field '{key}' must be exactly {rules['length']} character(s), got '{value}'")

        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if "min" in rules and value < rules["min"]:
                errors.append(f"Field '{key}' must be >= {rules['min']}, got {value}")
            if "max" in rules and value > rules["max"]:
                errors.append(f"Field '{key}' must be <= {rules['max']}, got {value}")

    if settings.get("add_key") and str(settings.get("add_key")).lower() == str(settings.get("remove_key", "")).lower():
        errors.append("Fields 'add_key' and 'remove_key' must differ")

    return len(errors) == 0, errors


def save_config(credentials: Credentials, path: Optional[str] = None, settings: Optional[Dict[str, Any]] = None) -> str:
    """Write credentials (and any non-default settings) to config.ini. Returns the path written."""
    path = path or CONFIG_PATH

    parser = configparser.ConfigParser()
    # keep camelCase keys as the user will see them
    parser.optionxform = str
    parser[SPOTIFY_SECTION] = {
        "clientId": credentials.client_id,
        "clientSecret": credentials.client_secret,
        "redirectUri": credentials.redirect_uri,
    }

    changed = {k: v for k, v in (settings or {}).items() if k in DEFAULT_CONFIG and v != DEFAULT_CONFIG[k]}
    if changed:
        parser[SETTINGS_SECTION] = {k: str(v).lower() if isinstance(v, bool) else str(v) for k, v in changed.items()}

    try:
        config_dir = os.path.dirname(path)
        if config_dir:
            os.makedirs(config_dir, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            parser.write(f)
    except OSError as e:
        raise IOError(f"Failed to save config: {e}")

    return path
