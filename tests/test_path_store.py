import base64

import pytest

from benchkit.path_store import (
    BASE64_ENCODING_HEADER,
    CustomTree,
    PathStore,
    PathStoreElem,
    PathStoreError,
    generate_file_line,
    has_base64_header,
)


def write_tree(tmp_path, text, name="tree.txt"):
    path = tmp_path / name
    path.write_text(text)
    return str(path)


def files_tree(tmp_path, entries, block_size=4):
    text = "".join(generate_file_line(p, s) for p, s in entries)
    store = PathStore(block_size)
    store.load_files_from_file(write_tree(tmp_path, text))
    return store


def test_generate_file_line_format():
    assert generate_file_line("a/b", 10) == "f 10 a/b\n"


def test_load_files_round_trip(tmp_path):
    entries = [("dir/one", 10), ("dir/two words", 7)]
    store = files_tree(tmp_path, entries)
    assert [(e.path, e.total_len) for e in store.paths] == entries
    assert all(e.range_start == 0 and e.range_len == e.total_len for e in store.paths)
    assert store.num_bytes_total == 17
    assert store.num_blocks_total == 5
    assert len(store) == store.num_paths == 2


def test_load_dirs_ignores_other_lines(tmp_path):
    text = "# comment\nd  top \nf 3 file\nd top/sub\n\nx other\n"
    store = PathStore()
    store.load_dirs_from_file(write_tree(tmp_path, text))
    assert [e.path for e in store.paths] == ["top", "top/sub"]


def test_load_files_ignores_dir_lines(tmp_path):
    text = "d top\nf 3 top/file\n"
    store = PathStore(4)
    store.load_files_from_file(write_tree(tmp_path, text))
    assert [e.path for e in store.paths] == ["top/file"]


def test_missing_file_raises(tmp_path):
    store = PathStore()
    with pytest.raises(PathStoreError):
        store.load_dirs_from_file(str(tmp_path / "missing"))
    with pytest.raises(PathStoreError):
        store.load_files_from_file(str(tmp_path / "missing"))


def test_dir_line_without_path_raises(tmp_path):
    store = PathStore()
    with pytest.raises(PathStoreError, match="without path"):
        store.load_dirs_from_file(write_tree(tmp_path, "d   \n"))


def test_file_line_without_size_raises(tmp_path):
    store = PathStore(4)
    with pytest.raises(PathStoreError, match="without size"):
        store.load_files_from_file(write_tree(tmp_path, "f name\n"))


def test_file_line_without_path_raises(tmp_path):
    store = PathStore(4)
    with pytest.raises(PathStoreError, match="without path"):
        store.load_files_from_file(write_tree(tmp_path, "f 12\n"))


def test_size_filter(tmp_path):
    text = "".join(generate_file_line(f"p{s}", s) for s in (1, 5, 9))
    store = PathStore(4)
    store.load_files_from_file(write_tree(tmp_path, text), 2, 8, 0)
    assert [e.path for e in store.paths] == ["p5"]


def test_round_up(tmp_path):
    store = PathStore(4)
    store.load_files_from_file(write_tree(tmp_path, generate_file_line("x", 5)), 0, 100, 4)
    elem = store.paths[0]
    assert elem.total_len % 4 == 0
    assert 5 <= elem.total_len < 5 + 4
    assert elem.range_len == elem.total_len
    assert store.num_bytes_total == elem.total_len


def test_base64_paths(tmp_path):
    dir_name = "dir with\nnewline"
    file_name = "file name"
    enc_dir = base64.b64encode(dir_name.encode()).decode()
    enc_file = base64.b64encode(file_name.encode()).decode()
    text = f"{BASE64_ENCODING_HEADER}\nd {enc_dir}\nf 3 {enc_file}\n"
    path = write_tree(tmp_path, text)
    assert has_base64_header(path) is True

    dirs = PathStore()
    dirs.load_dirs_from_file(path)
    assert [e.path for e in dirs.paths] == [dir_name]

    files = PathStore(4)
    files.load_files_from_file(path)
    assert [e.path for e in files.paths] == [file_name]


def test_base64_header_only_in_header(tmp_path):
    path = write_tree(tmp_path, f"d x\n{BASE64_ENCODING_HEADER}\n")
    assert has_base64_header(path) is False
    path2 = write_tree(tmp_path, f"# other\n\n{BASE64_ENCODING_HEADER}\n", "h.txt")
    assert has_base64_header(path2) is True


def test_sort_by_path_len():
    store = PathStore()
    store.paths = [PathStoreElem(p) for p in ["bb", "a", "ab", "b"]]
    store.sort_by_path_len()
    assert [e.path for e in store.paths] == ["a", "b", "ab", "bb"]


def test_sort_by_file_size():
    store = PathStore()
    store.paths = [PathStoreElem("z", 1), PathStoreElem("b", 3), PathStoreElem("a", 3)]
    store.sort_by_file_size()
    assert [e.path for e in store.paths] == ["z", "a", "b"]


def test_random_shuffle_keeps_elements():
    store = PathStore()
    store.paths = [PathStoreElem(str(i), i) for i in range(50)]
    store.random_shuffle()
    assert sorted(e.total_len for e in store.paths) == list(range(50))
    assert store.num_paths == 50


def test_block_size_setter_on_non_empty_raises():
    store = PathStore(4)
    store.block_size = 8
    assert store.block_size == 8
    store.paths.append(PathStoreElem("x", 1))
    with pytest.raises(PathStoreError):
        store.block_size = 16


def test_clear(tmp_path):
    store = files_tree(tmp_path, [("a", 10)])
    store.clear()
    assert store.paths == []
    assert store.num_blocks_total == 0
    assert store.num_bytes_total == 0
    assert store.block_size == 0


def test_non_shared_partition(tmp_path):
    entries = [(f"f{i}", i + 1) for i in range(7)]
    store = files_tree(tmp_path, entries)
    subs = [store.worker_sublist_non_shared(rank, 3) for rank in range(3)]
    all_paths = sorted(e.path for s in subs for e in s.paths)
    assert all_paths == sorted(p for p, _ in entries)
    assert sum(s.num_bytes_total for s in subs) == store.num_bytes_total
    assert sum(s.num_blocks_total for s in subs) == store.num_blocks_total
    assert [e.path for e in subs[1].paths] == ["f1", "f4"]


def test_non_shared_rank_beyond_paths(tmp_path):
    store = files_tree(tmp_path, [("a", 4)])
    sub = store.worker_sublist_non_shared(3, 4)
    assert sub.paths == []
    assert sub.num_bytes_total == 0


def test_non_shared_small_file_raises(tmp_path):
    store = files_tree(tmp_path, [("small", 2)])
    with pytest.raises(PathStoreError, match="smaller than block size"):
        store.worker_sublist_non_shared(0, 1, True)
    assert store.worker_sublist_non_shared(0, 1, False).num_paths == 1


def test_shared_covers_all_ranges(tmp_path):
    entries = [("a", 10), ("b", 7), ("c", 16)]
    store = files_tree(tmp_path, entries)
    for threads in (1, 2, 3, 4):
        subs = [store.worker_sublist_shared(rank, threads) for rank in range(threads)]
        assert sum(s.num_bytes_total for s in subs) == store.num_bytes_total
        assert sum(s.num_blocks_total for s in subs) == store.num_blocks_total

        ranges = sorted(
            (e.path, e.range_start, e.range_len) for s in subs for e in s.paths
        )
        for path, size in entries:
            file_ranges = [(start, length) for p, start, length in ranges if p == path]
            pos = 0
            for start, length in file_ranges:
                assert start == pos
                assert start % store.block_size == 0
                pos += length
            assert pos == size


def test_shared_elements_keep_total_len(tmp_path):
    store = files_tree(tmp_path, [("a", 10), ("b", 7)])
    sub = store.worker_sublist_shared(1, 2)
    assert all(e.total_len in (10, 7) for e in sub.paths)
    assert store.paths[0].range_len == 10  # original unchanged


def test_shared_empty_store():
    sub = PathStore(4).worker_sublist_shared(0, 2)
    assert sub.paths == []
    assert sub.num_blocks_total == 0


def test_shared_small_slice_raises(tmp_path):
    store = files_tree(tmp_path, [("x", 5)])
    with pytest.raises(PathStoreError, match="slice"):
        store.worker_sublist_shared(1, 2, True)
    sub = store.worker_sublist_shared(1, 2, False)
    assert [(e.range_start, e.range_len) for e in sub.paths] == [(4, 1)]


def test_custom_tree_defaults():
    tree = CustomTree()
    tree.dirs.paths.append(PathStoreElem("d"))
    assert tree.files_shared.paths == []
    assert tree.files_non_shared.paths == []
    assert tree.dirs.num_paths == 1