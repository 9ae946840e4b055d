"""Configuration loading for the store CLI."""

from __future__ import annotations

from dataclasses import dataclass
import os


@dataclass(frozen=True)
class AppConfig:
    store_root: str
    range: int = 100
    log_level: str = "INFO"
    log_file: str | None = None
    codec: str = "pickle"
    stream_level: str = "WARNING"


def load_config() -> AppConfig:
    store_root = os.getenv("IDTREE_STORE_ROOT", "data")
    range_text = os.getenv("IDTREE_RANGE", "100")
    try:
        range_ = int(range_text)
    except ValueError:
        raise ValueError(f"IDTREE_RANGE must be an integer, got {range_text!r}") from None
    log_level = os.getenv("IDTREE_LOG_LEVEL", "INFO")
    log_file = os.getenv("IDTREE_LOG_FILE") or None
    codec = os.getenv("IDTREE_CODEC", "pickle")
    stream_level = os.getenv("IDTREE_STREAM_LOG_LEVEL", "WARNING")
    return AppConfig(
        store_root=store_root,
        range=range_,
        log_level=log_level,
        log_file=log_file,
        codec=codec,
        stream_level=stream_level,
    )
