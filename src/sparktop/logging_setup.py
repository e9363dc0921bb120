"""Log file setup for sparktop."""

import logging
import logging.handlers
from pathlib import Path

_LOGGER_NAME = "sparktop"


def configure_logging(path: Path, verbose: bool = False, keep_files: int = 3) -> logging.Logger:
    """
    Send the ``sparktop`` logger to a rotating file.

    The terminal belongs to the dashboard, so nothing is written to the
    console. Calling this again is a no-op once handlers are attached.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        filename=str(path),
        maxBytes=1024 * 1024,
        backupCount=keep_files,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)

    logger.info("logging configured")
    return logger
