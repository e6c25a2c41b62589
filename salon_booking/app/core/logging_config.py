"""
Logging setup for the booking engine.

The engine runs inside a host application (the salon's desktop UI), so
``setup_logging`` only configures the ``salon_booking`` package logger
and leaves the root logger to the host.  Records still propagate to the
root, which keeps them visible to the host's own handlers and to
pytest's ``caplog``.
"""

import logging
from pathlib import Path
from typing import Optional, Union

PACKAGE_LOGGER = "salon_booking"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: Union[str, int] = "INFO",
    logfile: Optional[str] = None,
) -> logging.Logger:
    """Configure the package logger and return it.

    Parameters
    ----------
    level : str or int
        Level name (case insensitive) or number.  Unknown names fall
        back to ``INFO``.
    logfile : Optional[str]
        Path of a log file to append to.  Missing parent directories
        are created.

    Calling this again only updates the level; handlers are attached
    once per process.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(level)
    if logger.handlers:
        return logger

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    if not logging.getLogger().handlers:
        # Nobody is listening at the root yet: print to the console.
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if logfile:
        log_path = Path(logfile).resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    return logger
