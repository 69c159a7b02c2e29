# returncheck/utils/logging.py
import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

logger = logging.getLogger("returncheck")

def configure_logging(level: str = "INFO") -> None:
    """Attach a single stderr handler to the package logger (idempotent)."""
    if not any(getattr(h, "_returncheck", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._returncheck = True
        logger.addHandler(handler)
    logger.setLevel((level or "INFO").upper())
