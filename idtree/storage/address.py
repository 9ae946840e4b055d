"""Id to path arithmetic for the directory tree.

Every directory in a store covers a contiguous, aligned span of ids and is
named after that span, e.g. ``0_999`` or ``1000_1099``. A tree with ``levels``
levels and fan-out ``range`` has one top directory covering ``range**levels``
ids; each level below divides its parent's span into ``range`` equal parts,
down to leaf directories of ``range`` ids each. The object with id ``i``
lives in a file named ``str(i)`` inside its leaf.

Nothing in this module touches the filesystem.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePath
import re


_NUMBER = re.compile(r"0|[1-9][0-9]*")


def is_id_name(name: str) -> bool:
    """True for the canonical ASCII decimal spelling of a non-negative id."""
    return _NUMBER.fullmatch(name) is not None


def _check_range(range_: int) -> None:
    if range_ < 2:
        raise ValueError(f"range must be >= 2, got {range_}")


def compute_levels(n: int, range_: int) -> int:
    """Return the smallest ``L >= 1`` with ``range_**L >= n``.

    ``n`` is a count of items (ids ``0..n-1``). An empty store has no levels,
    so ``n == 0`` gives ``0``.
    """
    _check_range(range_)
    if n < 0:
        raise ValueError(f"item count must be >= 0, got {n}")
    if n == 0:
        return 0
    levels = 1
    capacity = range_
    while capacity < n:
        capacity *= range_
        levels += 1
    return levels


def capacities_for_levels(range_: int, levels: int) -> list[int]:
    """Per-level spans, coarsest first: ``[range_**levels, ..., range_]``."""
    _check_range(range_)
    return [range_ ** (levels - i) for i in range(levels)]


def compute_capacities(n: int, range_: int) -> list[int]:
    return capacities_for_levels(range_, compute_levels(n, range_))


def compute_dir_indices(item_id: int, levels: int, capacities: list[int]) -> list[int]:
    """Directory selector for each level, outer level first.

    The selector at a level is the quotient of the id by that level's
    capacity, so it numbers directories across the whole level rather than
    within one parent. For id 10001 and capacities
    ``[100000, 10000, 1000, 100, 10]`` this gives ``[0, 1, 10, 100, 1000]``.
    """
    if item_id < 0:
        raise ValueError(f"id must be >= 0, got {item_id}")
    if len(capacities) < levels:
        raise ValueError(f"need {levels} capacities, got {len(capacities)}")
    return [item_id // capacities[level] for level in range(levels)]


def dir_name(index: int, capacity: int) -> str:
    start = index * capacity
    return f"{start}_{start + capacity - 1}"


def parse_dir_name(name: str) -> tuple[int, int]:
    """Return the inclusive ``(start, end)`` id span encoded in a directory name."""
    head, sep, tail = name.partition("_")
    if not sep or not is_id_name(head) or not is_id_name(tail):
        raise ValueError(f"not a span directory name: {name!r}")
    start, end = int(head), int(tail)
    capacity = end - start + 1
    if capacity < 1 or start % capacity:
        raise ValueError(f"misaligned span directory name: {name!r}")
    return start, end


@dataclass(frozen=True)
class Address:
    item_id: int
    indices: tuple[int, ...]
    capacities: tuple[int, ...]

    @property
    def levels(self) -> int:
        return len(self.indices)

    @property
    def dir_names(self) -> list[str]:
        return [dir_name(index, capacity) for index, capacity in zip(self.indices, self.capacities)]

    @property
    def file_name(self) -> str:
        return str(self.item_id)

    def relative_dir(self) -> Path:
        return Path(*self.dir_names)

    def relative_path(self) -> Path:
        return self.relative_dir() / self.file_name


def compute_address(item_id: int, range_: int, levels: int) -> Address:
    capacities = capacities_for_levels(range_, levels)
    if levels < 1 or item_id >= capacities[0]:
        raise ValueError(f"id {item_id} does not fit in {levels} levels of range {range_}")
    indices = compute_dir_indices(item_id, levels, capacities)
    return Address(item_id=item_id, indices=tuple(indices), capacities=tuple(capacities))


def decode_address(relative_path: str | PurePath) -> int:
    """Recover the id from a path produced by :meth:`Address.relative_path`.

    Every directory on the path must cover the id.
    """
    parts = PurePath(relative_path).parts
    if not parts or not is_id_name(parts[-1]):
        raise ValueError(f"no id file name in {relative_path!s}")
    item_id = int(parts[-1])
    for part in parts[:-1]:
        start, end = parse_dir_name(part)
        if not start <= item_id <= end:
            raise ValueError(f"directory {part} does not cover id {item_id}")
    return item_id
