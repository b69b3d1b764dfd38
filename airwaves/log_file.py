"""
Shared file logging for Airwaves components.

Each component logger gets a rotation-tolerant WatchedFileHandler writing to
AIRWAVES_LOG_FILE. Logging must never crash a component: write failures are
dropped and setup errors are ignored.
"""

import logging
import logging.handlers
import os

DEFAULT_LOG_FILE = "/var/log/airwaves/radio.log"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def attach_file_handler(logger: logging.Logger) -> None:
    """Attach the shared radio log file to ``logger`` once."""
    path = os.getenv("AIRWAVES_LOG_FILE", DEFAULT_LOG_FILE)
    try:
        # Prevent duplicate handlers on module reload
        if any(isinstance(h, logging.handlers.WatchedFileHandler)
               and getattr(h, "baseFilename", None) == os.path.abspath(path)
               for h in logger.handlers):
            return

        handler = logging.handlers.WatchedFileHandler(path, mode="a")
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

        original_emit = handler.emit

        def safe_emit(record):
            try:
                original_emit(record)
            except (IOError, OSError):
                pass

        handler.emit = safe_emit
        logger.addHandler(handler)
    except Exception:
        # Missing directory or permissions: console logging still works
        pass
