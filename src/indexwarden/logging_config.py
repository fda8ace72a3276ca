"""Singleton logging configuration.

setup_logging() configures the root logger once and pins noisy
third-party loggers to WARNING. Idempotent (guarded by a module-level
flag), so the CLI and embedding callers can both call it.
"""

import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"

# Third-party loggers to suppress to WARNING
_SUPPRESSED_LOGGERS = (
    "aiosqlite",
    "sqlalchemy.engine",
    "asyncio",
)

_configured = False


def setup_logging(level: str = "INFO") -> None:
    """Configure root logger and quiet third-party loggers.

    Second call is a no-op.
    """
    global _configured  # noqa: PLW0603
    if _configured:
        return
    _configured = True

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )

    for name in _SUPPRESSED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def set_level(level: str) -> None:
    """Adjust the root level after setup (e.g. ``--verbose``)."""
    logging.getLogger().setLevel(
        getattr(logging, level.upper(), logging.INFO)
    )
