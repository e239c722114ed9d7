"""
Logging helpers shared by the feature and graph modules.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator


def make_logger(name: str = "sfm", level: int = logging.INFO) -> logging.Logger:
    """
    Return a logger with a single stream handler attached.

    Calling this repeatedly for the same name does not stack handlers.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        h = logging.StreamHandler()
        fmt = logging.Formatter("[%(levelname)s] %(message)s")
        h.setFormatter(fmt)
        logger.addHandler(h)
    logger.setLevel(level)
    return logger


def get_logger(module: str) -> logging.Logger:
    """Child of the package logger; library code never attaches handlers."""
    return logging.getLogger(f"sfm.{module}")


@contextmanager
def timed(logger: logging.Logger, msg: str, level: int = logging.INFO) -> Iterator[None]:
    t0 = time.time()
    logger.log(level, f"{msg} ...")
    try:
        yield
    finally:
        dt = time.time() - t0
        logger.log(level, f"{msg} done in {dt:.2f}s")


__all__ = ["make_logger", "get_logger", "timed"]
