import pytest

from idtree.errors import LayoutError
from idtree.storage.tree import DirectoryTree


def _fill(tree: DirectoryTree, count: int) -> None:
    for _ in range(count):
        tree.add_dir()


def test_fresh_tree_is_empty(tmp_path):
    tree = DirectoryTree.fresh(tmp_path / "store", 10)
    assert tree.state.next_id == 0
    assert tree.state.levels == 0
    assert tree.state.capacities == []
    assert (tmp_path / "store").is_dir()


def test_fresh_refuses_non_empty_directory(tmp_path):
    (tmp_path / "stray").write_text("x")
    with pytest.raises(LayoutError):
        DirectoryTree.fresh(tmp_path, 10)


def test_ensure_path_is_idempotent(tmp_path):
    tree = DirectoryTree.fresh(tmp_path / "store", 10)
    tree.grow(2)
    first = tree.ensure_path([0, 3])
    second = tree.ensure_path([0, 3])
    assert first == second == tmp_path / "store" / "0_99" / "30_39"
    assert first.is_dir()
    assert tree.state.dir_counts == [1, 0]


def test_ensure_path_rejects_file_in_the_way(tmp_path):
    tree = DirectoryTree.fresh(tmp_path / "store", 10)
    tree.grow(1)
    (tmp_path / "store" / "0_9").write_text("not a directory")
    with pytest.raises(NotADirectoryError):
        tree.ensure_path([0])


def test_add_dir_advances_one_slot(tmp_path):
    tree = DirectoryTree.fresh(tmp_path / "store", 10)
    leaf = tree.add_dir()
    assert leaf == tmp_path / "store" / "0_9"
    assert (leaf / "0").is_file()
    assert tree.state.next_id == 1
    assert tree.state.dir_counts == [1]


def test_growth_moves_old_top_inside_new_top(tmp_path):
    base = tmp_path / "store"
    tree = DirectoryTree.fresh(base, 10)
    _fill(tree, 10)
    assert tree.state.levels == 1
    assert [p.name for p in base.iterdir()] == ["0_9"]

    tree.add_dir()
    assert tree.state.levels == 2
    assert [p.name for p in base.iterdir()] == ["0_99"]
    assert sorted(p.name for p in (base / "0_99").iterdir()) == ["0_9", "10_19"]
    assert (base / "0_99" / "0_9" / "9").is_file()
    assert (base / "0_99" / "10_19" / "10").is_file()
    assert tree.state.dir_counts == [2, 1]


def test_no_directory_exceeds_range(tmp_path):
    base = tmp_path / "store"
    tree = DirectoryTree.fresh(base, 3)
    _fill(tree, 40)
    assert tree.state.levels == 4
    for path in base.rglob("*"):
        if path.is_dir():
            assert len(list(path.iterdir())) <= 3


def test_reload_rebuilds_state(tmp_path):
    base = tmp_path / "store"
    tree = DirectoryTree.fresh(base, 10)
    _fill(tree, 1001)

    reloaded = DirectoryTree.reload(base)
    assert reloaded.state.range == 10
    assert reloaded.state.next_id == 1001
    assert reloaded.state.levels == 4
    assert reloaded.state.capacities == [10000, 1000, 100, 10]
    assert reloaded.state.dir_counts == tree.state.dir_counts == [2, 1, 1, 1]

    _fill(reloaded, 1001)
    assert reloaded.state.next_id == 2002
    again = DirectoryTree.reload(base)
    assert again.state.next_id == 2002
    assert again.state.dir_counts == reloaded.state.dir_counts


def test_reload_empty_store_needs_range(tmp_path):
    base = tmp_path / "store"
    DirectoryTree.fresh(base, 10)
    with pytest.raises(LayoutError):
        DirectoryTree.reload(base)
    tree = DirectoryTree.reload(base, 10)
    assert tree.state.next_id == 0
    assert tree.state.levels == 0


def test_reload_rejects_range_mismatch(tmp_path):
    base = tmp_path / "store"
    _fill(DirectoryTree.fresh(base, 10), 5)
    with pytest.raises(LayoutError):
        DirectoryTree.reload(base, 20)


def test_reload_rejects_foreign_entries(tmp_path):
    base = tmp_path / "store"
    _fill(DirectoryTree.fresh(base, 10), 15)
    (base / "0_99" / "10_19" / "notes.txt").write_text("hello")
    with pytest.raises(LayoutError):
        DirectoryTree.reload(base)


def test_reload_missing_store(tmp_path):
    with pytest.raises(FileNotFoundError):
        DirectoryTree.reload(tmp_path / "missing")
    (tmp_path / "file").write_text("x")
    with pytest.raises(NotADirectoryError):
        DirectoryTree.reload(tmp_path / "file")


@pytest.mark.parametrize("name", ["²", "٣", "03"])
def test_reload_rejects_non_canonical_id_files(tmp_path, name):
    base = tmp_path / "store"
    _fill(DirectoryTree.fresh(base, 10), 1)
    (base / "0_9" / name).write_bytes(b"")
    with pytest.raises(LayoutError):
        DirectoryTree.reload(base)
