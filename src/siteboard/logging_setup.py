"""Logging configuration for the SiteBoard command line."""

import logging
import sys


class _QuietLibrariesFilter(logging.Filter):
    """Keep siteboard logs; let other libraries through only at WARNING+."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "siteboard" or record.name.startswith("siteboard."):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(level: int = logging.WARNING) -> None:
    """Configure a single stderr handler on the root logger.

    Call once, before the first log call.
    """
    root = logging.getLogger()
    root.setLevel(level)

    # Remove any pre-existing handlers to avoid duplicates.
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    handler.addFilter(_QuietLibrariesFilter())
    root.addHandler(handler)
    logging.captureWarnings(True)
