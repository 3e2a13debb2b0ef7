from utils.logger import setup_logging, log_info, log_success, log_warning, log_error
from utils.notifier import Notifier

__all__ = [
    "setup_logging",
    "log_info",
    "log_success",
    "log_warning",
    "log_error",
    "Notifier",
]
