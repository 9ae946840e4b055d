"""Store objects as individual files addressed by sequential id."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Iterable, Iterator

from idtree.errors import NotFoundError, OutOfRangeError
from idtree.storage.codec import ObjectCodec, PickleCodec
from idtree.storage.tree import DirectoryTree
from idtree.util import fs


logger = logging.getLogger(__name__)


class Cache:
    """A file-per-object store with bounded directory fan-out.

    Ids are handed out by :meth:`add` starting from 0. Each payload goes into
    its own file, and no directory ever holds more than ``range`` entries; the
    tree gains a level whenever the id count outgrows it.

    A store has exactly one writer. Bookkeeping lives in memory and is
    rebuilt from the directories by :meth:`load`, so two handles opened over
    the same root do not see each other's changes: writing through one leaves
    the other with stale counters. Opening a second handle while another one
    is still writing is a misuse of the store. Readers over a store nobody is
    writing to are fine.
    """

    def __init__(self, tree: DirectoryTree, name: str | None = None, codec: ObjectCodec | None = None) -> None:
        self.tree = tree
        self.name = name or tree.base_dir.name
        self.codec = codec or PickleCodec()

    @classmethod
    def create(
        cls,
        parent_dir: str | os.PathLike,
        name: str,
        range_: int,
        codec: ObjectCodec | None = None,
    ) -> "Cache":
        """Start a new, empty store at ``parent_dir/name``."""
        tree = DirectoryTree.fresh(Path(parent_dir) / name, range_)
        return cls(tree, name=name, codec=codec)

    @classmethod
    def load(
        cls,
        base_dir: str | os.PathLike,
        codec: ObjectCodec | None = None,
        range_: int | None = None,
    ) -> "Cache":
        """Open an existing store, rebuilding its counters from the directory tree."""
        return cls(DirectoryTree.reload(base_dir, range_), codec=codec)

    @property
    def base_dir(self) -> Path:
        return self.tree.base_dir

    @property
    def range(self) -> int:
        return self.tree.state.range

    @property
    def next_id(self) -> int:
        return self.tree.state.next_id

    @property
    def levels(self) -> int:
        return self.tree.state.levels

    @property
    def capacities(self) -> list[int]:
        return self.tree.state.capacities

    @property
    def dir_counts(self) -> list[int]:
        return list(self.tree.state.dir_counts)

    def add(self, payload: Any) -> int:
        data = self.codec.serialize(payload)
        address = self.tree.prepare()
        path = self.tree.path_for(address)
        with fs.open_write(path) as handle:
            handle.write(data)
        self.tree.commit(address)
        logger.debug("Stored %s %s at %s", self.name, address.item_id, path)
        return address.item_id

    def extend(self, payloads: Iterable[Any]) -> list[int]:
        return [self.add(payload) for payload in payloads]

    def get(self, item_id: int) -> Any:
        if not 0 <= item_id < self.next_id:
            raise OutOfRangeError(item_id, self.next_id)
        path = self.path_of(item_id)
        try:
            with fs.open_read(path) as handle:
                data = handle.read()
        except FileNotFoundError as exc:
            raise NotFoundError(f"no file for id {item_id} at {path}") from exc
        if not data:
            raise NotFoundError(f"id {item_id} is reserved but holds no object")
        return self.codec.deserialize(data)

    def path_of(self, item_id: int) -> Path:
        return self.tree.path_for(self.tree.address_of(item_id))

    def add_dir(self) -> Path:
        """Reserve the next id without storing anything in it."""
        return self.tree.add_dir()

    def ids(self) -> Iterator[int]:
        return iter(range(self.next_id))

    def delete(self, log: bool = False) -> None:
        """Remove the store and everything in it."""
        failures = fs.delete(self.base_dir, log)
        if failures:
            logger.warning("%s entries under %s could not be deleted", failures, self.base_dir)
        self.tree.reset()

    def describe(self) -> str:
        state = self.tree.state
        return (
            f"Cache(base_dir={self.base_dir}, name={self.name}, range={state.range}, "
            f"next_id={state.next_id}, levels={state.levels}, dir_counts={state.dir_counts})"
        )

    def __str__(self) -> str:
        return self.describe()

    def __len__(self) -> int:
        return self.next_id

    def __contains__(self, item_id: object) -> bool:
        return isinstance(item_id, int) and 0 <= item_id < self.next_id
