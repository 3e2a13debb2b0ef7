import os

APP_NAME = "Spotify Liked Toggle"

PROJECT_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_ICON_PATH = os.path.join(PROJECT_DIR, "icon.png")

# Spotify OAuth scopes required for toggling Liked Songs
SPOTIFY_SCOPES = [
    "user-library-modify",       # add/remove tracks in Liked Songs
    "user-library-read",         # check whether a track is already liked
    "user-read-playback-state",  # read the currently playing track
]

# Static anti-forgery value sent with the authorize request
OAUTH_STATE = "spotify-like-toggle"

CALLBACK_PATH = "/callback"
DEFAULT_CALLBACK_PORT = 8888

# Access tokens live for an hour; refresh comfortably before that.
DEFAULT_REFRESH_INTERVAL_MINUTES = 50
