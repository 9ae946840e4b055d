"""Logging configuration."""

from __future__ import annotations

import logging
from pathlib import Path


FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str, log_file: str | None = None, stream_level: str = "WARNING") -> None:
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)

    formatter = logging.Formatter(FORMAT)
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(_level(stream_level, logging.WARNING))
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(_level(level, logging.INFO))
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)


def _level(name: str, default: int) -> int:
    value = getattr(logging, name.upper(), None)
    return value if isinstance(value, int) else default
