import os
from typing import Optional

from constants import APP_NAME
from utils.logger import log_info, log_warning


class Notifier:
    """Desktop toast notifications with a fixed title.

    plyer picks the platform backend (Windows balloon/toast, macOS
    Notification Center, freedesktop D-Bus on Linux).
    """

    def __init__(self, *, title: str = APP_NAME, icon_path: Optional[str] = None, timeout: int = 5, backend=None):
        self.title = title
        self.icon_path = icon_path if icon_path and os.path.exists(icon_path) else None
        self.timeout = int(timeout)
        self._backend = backend

    def notify(self, message: str) -> bool:
        """Show ``message``; returns False when no notification backend is available."""
        log_info(f"[notify] {message.replace(chr(10), ' | ')}")

        backend = self._backend
        if backend is None:
            from plyer import notification as backend

        kwargs = {
            "title": self.title,
            "message": message,
            "app_name": self.title,
            "timeout": self.timeout,
        }
        if self.icon_path:
            kwargs["app_icon"] = self.icon_path

        try:
            backend.notify(**kwargs)
            return True
        except (NotImplementedError, OSError, ValueError) as e:
            log_warning(f"Desktop notification unavailable: {e}")
            return False
