"""The on-disk directory tree behind a store.

A :class:`DirectoryTree` owns the directories under a store root and the
counters that describe them. Counters are only ever held in memory: a tree
opened with :meth:`DirectoryTree.reload` rebuilds them by walking the
directories, since every directory name states the id span it covers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os
from pathlib import Path

from idtree.errors import LayoutError
from idtree.storage.address import (
    Address,
    capacities_for_levels,
    compute_address,
    compute_levels,
    dir_name,
    is_id_name,
    parse_dir_name,
)
from idtree.util import fs


logger = logging.getLogger(__name__)


@dataclass
class TreeState:
    range: int
    next_id: int = 0
    levels: int = 0
    # Children of each directory on the active write path, top level first.
    dir_counts: list[int] = field(default_factory=list)

    @property
    def capacities(self) -> list[int]:
        return capacities_for_levels(self.range, self.levels)


class DirectoryTree:
    def __init__(self, base_dir: str | os.PathLike, state: TreeState) -> None:
        self.base_dir = Path(base_dir)
        self.state = state
        self._active: list[Path] = []

    @classmethod
    def fresh(cls, base_dir: str | os.PathLike, range_: int) -> "DirectoryTree":
        _check_range(range_)
        base_dir = Path(base_dir)
        if base_dir.is_dir() and any(base_dir.iterdir()):
            raise LayoutError(f"{base_dir} is not empty; reload it instead of creating a new store")
        fs.create_directories(base_dir)
        logger.info("Created store at %s with range %s", base_dir, range_)
        return cls(base_dir, TreeState(range=range_))

    @classmethod
    def reload(cls, base_dir: str | os.PathLike, range_: int | None = None) -> "DirectoryTree":
        """Rebuild a tree's state from what is on disk.

        ``range_`` is needed only when the store is empty, because the range is
        otherwise read from the leaf directory names. A ``range_`` that
        disagrees with a non-empty tree raises :class:`LayoutError`.
        """
        base_dir = Path(base_dir)
        if not base_dir.is_dir():
            if base_dir.exists():
                raise NotADirectoryError(f"{base_dir} exists and is not a directory")
            raise FileNotFoundError(f"no store at {base_dir}")

        tops = fs.list_children(base_dir)
        if not tops:
            if range_ is None:
                raise LayoutError(f"{base_dir} is empty and no range was given")
            _check_range(range_)
            return cls(base_dir, TreeState(range=range_))
        if len(tops) != 1 or not tops[0].is_dir():
            names = [p.name for p in tops]
            raise LayoutError(f"expected a single top-level directory in {base_dir}, found {names}")

        detected_range, levels = _read_shape(tops[0])
        if range_ is not None and range_ != detected_range:
            raise LayoutError(f"{base_dir} has range {detected_range}, not {range_}")

        scan = _TreeScan(detected_range, levels)
        scan.walk(tops[0], 0, None)

        tree = cls(base_dir, TreeState(range=detected_range, next_id=scan.max_id + 1, levels=levels))
        if scan.max_id >= 0:
            tree._active = tree._dir_paths(tree.address_of(scan.max_id))
            tree.state.dir_counts = [scan.counts[path] for path in tree._active]
            if compute_levels(tree.state.next_id, detected_range) != levels:
                logger.warning(
                    "%s has %s levels but holds only %s ids", base_dir, levels, tree.state.next_id
                )
        else:
            tree.state.dir_counts = [0] * levels
        logger.info(
            "Reloaded %s: %s entries, next_id=%s, levels=%s, range=%s",
            base_dir,
            scan.entries,
            tree.state.next_id,
            levels,
            detected_range,
        )
        return tree

    @property
    def range(self) -> int:
        return self.state.range

    def address_of(self, item_id: int) -> Address:
        return compute_address(item_id, self.state.range, self.state.levels)

    def path_for(self, address: Address) -> Path:
        return self.base_dir / address.relative_path()

    def ensure_path(self, indices) -> Path:
        """Create any missing directory along ``indices`` and return the leaf.

        Existing directories are left alone. The path is taken to be the write
        path: every directory created here is counted against its parent.
        """
        capacities = self.state.capacities
        if len(indices) != len(capacities):
            raise ValueError(f"expected {len(capacities)} indices, got {len(indices)}")
        counts = self.state.dir_counts
        current = self.base_dir
        for level, index in enumerate(indices):
            current = current / dir_name(index, capacities[level])
            if level < len(self._active) and self._active[level] == current:
                continue
            if current.is_dir():
                counts[level] = len(fs.list_children(current))
            elif current.exists():
                raise NotADirectoryError(f"{current} exists and is not a directory")
            else:
                if level > 0:
                    if counts[level - 1] >= self.state.range:
                        raise LayoutError(f"{current.parent} already holds {counts[level - 1]} entries")
                    counts[level - 1] += 1
                fs.create_directories(current)
                logger.debug("Created %s", current)
                counts[level] = 0
            self._active = self._active[:level] + [current]
        return current

    def grow(self, levels: int) -> None:
        """Deepen the tree to ``levels`` levels.

        Each new level adds a top directory spanning ``range`` times the old
        one and moves the old top directory inside it. Directory names hold
        absolute id spans, so existing addresses stay valid.
        """
        state = self.state
        if levels <= state.levels:
            return
        if state.levels == 0:
            state.levels = levels
            state.dir_counts = [0] * levels
            self._active = []
            return
        while state.levels < levels:
            old_top = self.base_dir / dir_name(0, state.range ** state.levels)
            new_top = self.base_dir / dir_name(0, state.range ** (state.levels + 1))
            fs.create_directories(new_top)
            old_top.rename(new_top / old_top.name)
            state.levels += 1
            state.dir_counts.insert(0, 1)
            logger.info("Grew %s to %s levels", self.base_dir, state.levels)
        self._active = self._dir_paths(self.address_of(state.next_id - 1)) if state.next_id else []

    def prepare(self) -> Address:
        """Make sure the directories for the next id exist and return its address."""
        item_id = self.state.next_id
        self.grow(compute_levels(item_id + 1, self.state.range))
        address = self.address_of(item_id)
        leaf = self.ensure_path(address.indices)
        if self.state.dir_counts[-1] >= self.state.range:
            raise LayoutError(f"{leaf} already holds {self.state.dir_counts[-1]} entries")
        return address

    def commit(self, address: Address) -> None:
        """Record that the file for ``address`` has been written."""
        self.state.dir_counts[-1] += 1
        self.state.next_id = address.item_id + 1

    def add_dir(self) -> Path:
        """Reserve the next id slot and return the leaf directory holding it.

        The slot is written as an empty file so a reload counts it.
        """
        address = self.prepare()
        path = self.path_for(address)
        with fs.open_write(path):
            pass
        self.commit(address)
        logger.debug("Reserved id %s at %s", address.item_id, path)
        return path.parent

    def reset(self) -> None:
        self.state = TreeState(range=self.state.range)
        self._active = []

    def _dir_paths(self, address: Address) -> list[Path]:
        paths = []
        current = self.base_dir
        for name in address.dir_names:
            current = current / name
            paths.append(current)
        return paths


def _check_range(range_: int) -> None:
    if range_ < 2:
        raise ValueError(f"range must be >= 2, got {range_}")


def _span(path: Path) -> tuple[int, int]:
    try:
        return parse_dir_name(path.name)
    except ValueError as exc:
        raise LayoutError(f"{path}: {exc}") from exc


def _read_shape(top: Path) -> tuple[int, int]:
    """Read ``(range, levels)`` off the first chain of directories under ``top``."""
    top_start, top_end = _span(top)
    depth = 0
    current = top
    while True:
        subdirs = [p for p in fs.list_children(current) if p.is_dir()]
        if not subdirs:
            break
        current = subdirs[0]
        depth += 1
    start, end = _span(current)
    range_ = end - start + 1
    levels = depth + 1
    if range_ < 2 or range_**levels != top_end - top_start + 1:
        raise LayoutError(f"{top} does not match a tree of {levels} levels with range {range_}")
    return range_, levels


class _TreeScan:
    def __init__(self, range_: int, levels: int) -> None:
        self.range = range_
        self.capacities = capacities_for_levels(range_, levels)
        self.counts: dict[Path, int] = {}
        self.max_id = -1
        self.entries = 0

    def walk(self, directory: Path, depth: int, parent_span: tuple[int, int] | None) -> None:
        start, end = _span(directory)
        if end - start + 1 != self.capacities[depth]:
            raise LayoutError(f"{directory} should span {self.capacities[depth]} ids")
        if parent_span and not (parent_span[0] <= start and end <= parent_span[1]):
            raise LayoutError(f"{directory} lies outside its parent's span")

        children = fs.list_children(directory)
        if len(children) > self.range:
            raise LayoutError(f"{directory} holds {len(children)} entries, more than {self.range}")
        self.counts[directory] = len(children)
        self.entries += len(children)

        leaf = depth == len(self.capacities) - 1
        for child in children:
            if child.is_dir():
                if leaf:
                    raise LayoutError(f"unexpected directory {child} in a leaf")
                self.walk(child, depth + 1, (start, end))
            elif not leaf:
                raise LayoutError(f"unexpected file {child} above the leaf level")
            elif not is_id_name(child.name) or not start <= int(child.name) <= end:
                raise LayoutError(f"{child} is not an id file for {directory.name}")
            else:
                self.max_id = max(self.max_id, int(child.name))
