"""Filesystem helpers used by the store."""

from __future__ import annotations

import logging
import os
from pathlib import Path
import shutil
from typing import Any, BinaryIO


logger = logging.getLogger(__name__)


def create_directories(path: str | os.PathLike) -> Path:
    path = Path(path)
    if path.exists() and not path.is_dir():
        raise NotADirectoryError(f"{path} exists and is not a directory")
    path.mkdir(parents=True, exist_ok=True)
    return path


def list_children(path: str | os.PathLike) -> list[Path]:
    return sorted(Path(path).iterdir())


def get_files(directory: str | os.PathLike) -> list[Path]:
    """All files below ``directory``, recursively."""
    directory = Path(directory)
    if not directory.is_dir():
        raise NotADirectoryError(f"{directory} is not a directory")
    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(directory):
        dirnames.sort()
        files.extend(Path(dirpath) / name for name in sorted(filenames))
    return files


def open_read(path: str | os.PathLike) -> BinaryIO:
    return open(path, "rb")


def open_write(path: str | os.PathLike, append: bool = False) -> BinaryIO:
    return open(path, "ab" if append else "wb")


def write_text(path: str | os.PathLike, text: str) -> None:
    """Append ``text`` to ``path``, creating the file if needed."""
    with open(path, "a", encoding="utf-8") as handle:
        handle.write(text)


def write_object(obj: Any, path: str | os.PathLike, codec) -> None:
    # The parent directory must already exist.
    data = codec.serialize(obj)
    with open_write(path) as handle:
        handle.write(data)


def read_object(path: str | os.PathLike, codec) -> Any:
    with open_read(path) as handle:
        data = handle.read()
    return codec.deserialize(data)


def copy(source: str | os.PathLike, dest_dir: str | os.PathLike) -> Path:
    """Copy a file or a whole directory into ``dest_dir``.

    Returns the path of the copy. Entries of a directory that fail to copy are
    logged and skipped.
    """
    source = Path(source)
    dest_dir = create_directories(dest_dir)
    target = dest_dir / source.name
    if source.is_file():
        shutil.copy2(source, target)
        return target
    if not source.is_dir():
        raise FileNotFoundError(f"nothing to copy at {source}")
    for dirpath, dirnames, filenames in os.walk(source):
        dirnames.sort()
        relative = Path(dirpath).relative_to(source)
        try:
            (target / relative).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Could not create %s: %s", target / relative, exc)
            continue
        for name in filenames:
            try:
                shutil.copy2(Path(dirpath) / name, target / relative / name)
            except OSError as exc:
                logger.warning("Could not copy %s: %s", Path(dirpath) / name, exc)
    return target


def delete(path: str | os.PathLike, log: bool = False) -> int:
    """Delete ``path`` and everything below it, deepest entries first.

    Failures are logged and deletion carries on with the remaining entries.
    Returns the number of entries that could not be removed.
    """
    path = Path(path)
    if not path.exists() and not path.is_symlink():
        return 0
    if not path.is_dir() or path.is_symlink():
        return 0 if _remove(path, log, is_dir=False) else 1
    failures = 0
    for dirpath, dirnames, filenames in os.walk(path, topdown=False):
        for name in filenames:
            failures += not _remove(Path(dirpath) / name, log, is_dir=False)
        for name in dirnames:
            entry = Path(dirpath) / name
            failures += not _remove(entry, log, is_dir=not entry.is_symlink())
    failures += not _remove(path, log, is_dir=True)
    return failures


def _remove(path: Path, log: bool, is_dir: bool) -> bool:
    if log:
        logger.info("Deleting %s", path)
    try:
        if is_dir:
            path.rmdir()
        else:
            path.unlink()
    except FileNotFoundError:
        return True
    except OSError as exc:
        logger.warning("Failed to delete %s: %s", path, exc)
        return False
    return True


def create_new_file(directory: str | os.PathLike, prefix: str = "", suffix: str = "") -> Path:
    """Create and return a file in ``directory`` whose name was not in use.

    Without a prefix or suffix the names tried are ``0``, ``1``, ... With one,
    ``prefix + suffix`` is tried first, then ``prefix + n + suffix``.
    """
    directory = create_directories(directory)
    prefix = prefix or ""
    suffix = suffix or ""
    names = _candidate_names(prefix, suffix)
    while True:
        path = directory / next(names)
        try:
            with open(path, "x"):
                pass
        except FileExistsError:
            continue
        return path


def _candidate_names(prefix: str, suffix: str):
    if prefix or suffix:
        yield f"{prefix}{suffix}"
    n = 0
    while True:
        yield f"{prefix}{n}{suffix}"
        n += 1


def path_length(path: str | os.PathLike) -> int:
    return len(os.path.normpath(os.fspath(path)))
