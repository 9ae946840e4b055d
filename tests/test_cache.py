from datetime import datetime

import pytest

from idtree.errors import CorruptDataError, NotFoundError, OutOfRangeError
from idtree.storage.cache import Cache
from idtree.storage.codec import JsonCodec
from idtree.util import fs


@pytest.fixture
def cache(tmp_path):
    return Cache.create(tmp_path, "things", 10)


def test_add_returns_sequential_ids(cache):
    ids = [cache.add(f"item-{i}") for i in range(25)]
    assert ids == list(range(25))
    assert cache.next_id == 25
    assert len(cache) == 25


def test_get_returns_what_was_added(cache):
    payloads = [{"n": i, "tags": ("a", "b"), "when": datetime(2021, 1, i + 1)} for i in range(12)]
    ids = cache.extend(payloads)
    for item_id, payload in zip(ids, payloads):
        assert cache.get(item_id) == payload


def test_get_out_of_range(cache):
    cache.add("only")
    with pytest.raises(OutOfRangeError):
        cache.get(1)
    with pytest.raises(OutOfRangeError):
        cache.get(-1)


def test_get_missing_file(cache):
    item_id = cache.add("doomed")
    cache.path_of(item_id).unlink()
    with pytest.raises(NotFoundError):
        cache.get(item_id)


def test_get_corrupt_file(cache):
    item_id = cache.add("fine")
    cache.path_of(item_id).write_bytes(b"not a pickle")
    with pytest.raises(CorruptDataError):
        cache.get(item_id)


def test_reserved_slot_has_no_object(cache):
    leaf = cache.add_dir()
    assert leaf.is_dir()
    assert cache.next_id == 1
    with pytest.raises(NotFoundError):
        cache.get(0)
    assert cache.add("after") == 1
    assert cache.get(1) == "after"


def test_levels_grow_at_range_boundary(tmp_path):
    cache = Cache.create(tmp_path, "grow", 4)
    cache.extend(range(16))
    assert cache.levels == 2
    cache.add(16)
    assert cache.levels == 3
    assert cache.capacities == [64, 16, 4]
    assert [cache.get(i) for i in range(17)] == list(range(17))


def test_reload_sees_everything(tmp_path):
    cache = Cache.create(tmp_path, "reload", 10)
    for i in range(123):
        cache.add(i * i)

    reloaded = Cache.load(tmp_path / "reload")
    assert reloaded.name == "reload"
    assert reloaded.next_id == 123
    assert reloaded.levels == cache.levels == 3
    assert reloaded.dir_counts == cache.dir_counts
    assert all(reloaded.get(i) == i * i for i in range(123))
    assert reloaded.add("next") == 123


def test_stale_handle_misses_other_writers(tmp_path):
    writer = Cache.create(tmp_path, "shared", 10)
    writer.add("a")
    other = Cache.load(tmp_path / "shared")
    writer.add("b")
    assert other.next_id == 1
    with pytest.raises(OutOfRangeError):
        other.get(1)


def test_describe(cache):
    cache.extend(["a", "b", "c"])
    text = cache.describe()
    assert "range=10" in text
    assert "next_id=3" in text
    assert "levels=1" in text
    assert "dir_counts=[3]" in text
    assert str(cache) == text


def test_delete_removes_everything(cache):
    cache.extend(range(30))
    base = cache.base_dir
    cache.delete()
    assert not base.exists()
    assert cache.next_id == 0
    assert cache.add("fresh start") == 0
    assert cache.get(0) == "fresh start"


def test_json_codec_store(tmp_path):
    cache = Cache.create(tmp_path, "json", 10, codec=JsonCodec())
    item_id = cache.add({"name": "x", "values": [1, 2]})
    raw = fs.get_files(cache.base_dir)
    assert len(raw) == 1
    assert raw[0].read_text(encoding="utf-8") == '{"name": "x", "values": [1, 2]}'
    assert Cache.load(tmp_path / "json", codec=JsonCodec()).get(item_id) == {"name": "x", "values": [1, 2]}


def test_contains_and_ids(cache):
    cache.extend("abc")
    assert 2 in cache
    assert 3 not in cache
    assert list(cache.ids()) == [0, 1, 2]
