"""Loguru sink setup shared by the CLI and scripts."""
from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}"


def configure_logging(level: str = "INFO", logs_dir: str | Path | None = None) -> None:
    """
    Replace loguru's default sink with a stderr sink at `level`.

    Args:
        level: Minimum level name (e.g. "DEBUG", "INFO").
        logs_dir: If given, also write ``mnistcam.log`` there (rotated at 10 MB).
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=_FORMAT)
    if logs_dir is not None:
        path = Path(logs_dir).expanduser()
        path.mkdir(parents=True, exist_ok=True)
        logger.add(path / "mnistcam.log", level=level.upper(), format=_FORMAT, rotation="10 MB")
