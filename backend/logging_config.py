import logging
import logging.handlers

from backend.config import settings

# Chatty third-party loggers: request lines from uvicorn, file watching and
# script reruns from streamlit.
QUIET_LOGGERS = (
    "uvicorn.access",
    "watchdog",
    "streamlit.watcher",
    "streamlit.runtime.scriptrunner",
)

# Set on the root logger once our handlers are installed. The streamlit page
# calls setup_logging() on every rerun, and the API may import it again.
_MARKER = "_live_tracker_configured"


def _handlers(level: int) -> list[logging.Handler]:
    formatter = logging.Formatter(settings.LOG_FORMAT)
    handlers: list[logging.Handler] = []

    if settings.LOG_TO_CONSOLE:
        handlers.append(logging.StreamHandler())
    if settings.LOG_FILE:
        handlers.append(logging.handlers.RotatingFileHandler(
            settings.LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
        ))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def setup_logging() -> None:
    """Configure root logging from `settings`, once per process.

    Engine, retrieval and API modules log through `logging.getLogger(__name__)`;
    this sets where that output goes (console, optional `LOG_FILE`) and keeps
    the third-party loggers in `QUIET_LOGGERS` at WARNING.
    """
    root = logging.getLogger()
    if getattr(root, _MARKER, False):
        return

    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    root.setLevel(level)
    for handler in _handlers(level):
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    # pydantic / pandas deprecation warnings end up in the same log
    logging.captureWarnings(True)

    setattr(root, _MARKER, True)
