import os

import pytest

from simpleio import fs
from simpleio.errors import ErrorCode, SioError


def _write(path, data=b"hello"):
    path.write_bytes(data)
    return str(path)


def test_normalize_resolves_dots():
    assert fs.path_normalize("a/./b/../c") == os.path.join("a", "c")


def test_normalize_collapses_separators():
    assert fs.path_normalize("a//b///c") == os.path.join("a", "b", "c")


def test_normalize_converts_backslashes():
    assert fs.path_normalize("a\\b") == os.sep.join(["a", "b"])


def test_empty_path_rejected():
    with pytest.raises(ValueError):
        fs.path_normalize("")
    with pytest.raises(ValueError):
        fs.path_basename("")


def test_join():
    assert fs.path_join("base", "file.txt") == os.path.join("base", "file.txt")
    assert fs.path_join("", "file.txt") == "file.txt"


def test_dirname_and_basename():
    assert fs.path_dirname("file.txt") == "."
    assert fs.path_dirname("dir/file.txt") == "dir"
    assert fs.path_dirname("/a/b/") == "/a"
    assert fs.path_basename("dir/file.txt") == "file.txt"
    assert fs.path_basename("/a/b/") == "b"


def test_extension():
    assert fs.path_extension("dir/archive.tar.gz") == ".gz"
    assert fs.path_extension("dir/.hidden") == ""
    assert fs.path_extension("README") == ""


def test_absolute():
    result = fs.path_absolute("some/relative")
    assert os.path.isabs(result)
    assert result.endswith(os.path.join("some", "relative"))


def test_file_exists_and_info(tmp_path):
    path = _write(tmp_path / "data.bin", b"12345")
    assert fs.file_exists(path)
    assert not fs.file_exists(str(tmp_path / "missing"))
    info = fs.file_info(path)
    assert info.type is fs.FileType.REGULAR
    assert info.size == 5
    assert info.name == "data.bin"
    assert fs.file_info(str(tmp_path)).type is fs.FileType.DIRECTORY


def test_file_info_missing(tmp_path):
    with pytest.raises(SioError) as info:
        fs.file_info(str(tmp_path / "missing"))
    assert info.value.code == ErrorCode.NOTFOUND


def test_copy(tmp_path):
    src = _write(tmp_path / "src", b"content")
    dst = str(tmp_path / "dst")
    fs.file_copy(src, dst)
    assert (tmp_path / "dst").read_bytes() == b"content"
    with pytest.raises(SioError) as info:
        fs.file_copy(src, dst)
    assert info.value.code == ErrorCode.EXISTS
    (tmp_path / "src").write_bytes(b"changed")
    fs.file_copy(src, dst, overwrite=True)
    assert (tmp_path / "dst").read_bytes() == b"changed"


def test_copy_directory_rejected(tmp_path):
    with pytest.raises(SioError) as info:
        fs.file_copy(str(tmp_path), str(tmp_path / "x"))
    assert info.value.code == ErrorCode.FILE_ISDIR


def test_move(tmp_path):
    src = _write(tmp_path / "a", b"moved")
    dst = str(tmp_path / "b")
    fs.file_move(src, dst)
    assert not fs.file_exists(src)
    assert (tmp_path / "b").read_bytes() == b"moved"


def test_delete(tmp_path):
    path = _write(tmp_path / "gone")
    fs.file_delete(path)
    assert not fs.file_exists(path)
    with pytest.raises(SioError) as info:
        fs.file_delete(path)
    assert info.value.code == ErrorCode.NOTFOUND
    with pytest.raises(SioError) as info:
        fs.file_delete(str(tmp_path))
    assert info.value.code == ErrorCode.FILE_ISDIR


def test_chmod(tmp_path):
    path = _write(tmp_path / "perm")
    fs.file_chmod(path, 0o444)
    assert fs.file_info(path).permissions & 0o222 == 0
    fs.file_chmod(path, 0o644)
    assert fs.file_info(path).permissions & 0o200


def test_symlink_and_readlink(tmp_path):
    target = _write(tmp_path / "target")
    link = str(tmp_path / "link")
    fs.file_symlink(target, link)
    assert fs.file_readlink(link) == target
    assert fs.file_info(link).type is fs.FileType.SYMLINK


def test_temp_file():
    path = fs.file_temp("sio_test_")
    try:
        assert fs.file_exists(path)
        assert fs.path_basename(path).startswith("sio_test_")
        assert fs.file_info(path).size == 0
    finally:
        os.remove(path)


def test_dir_create_and_delete(tmp_path):
    path = str(tmp_path / "new")
    fs.dir_create(path)
    assert fs.file_info(path).type is fs.FileType.DIRECTORY
    with pytest.raises(SioError) as info:
        fs.dir_create(path)
    assert info.value.code == ErrorCode.EXISTS
    fs.dir_delete(path)
    assert not fs.file_exists(path)


def test_dir_create_recursive(tmp_path):
    path = str(tmp_path / "a" / "b" / "c")
    fs.dir_create_recursive(path)
    fs.dir_create_recursive(path)
    assert fs.file_info(path).type is fs.FileType.DIRECTORY
    assert fs.file_info(str(tmp_path / "a" / "b")).type is fs.FileType.DIRECTORY


def test_dir_delete_non_empty(tmp_path):
    (tmp_path / "d").mkdir()
    _write(tmp_path / "d" / "f")
    with pytest.raises(SioError):
        fs.dir_delete(str(tmp_path / "d"))
    fs.dir_delete_recursive(str(tmp_path / "d"))
    assert not fs.file_exists(str(tmp_path / "d"))


def test_dir_delete_recursive_errors(tmp_path):
    with pytest.raises(SioError) as info:
        fs.dir_delete_recursive(str(tmp_path / "missing"))
    assert info.value.code == ErrorCode.NOTFOUND
    path = _write(tmp_path / "file")
    with pytest.raises(SioError) as info:
        fs.dir_delete_recursive(path)
    assert info.value.code == ErrorCode.FILE_NOT_DIR


def _make_tree(root):
    (root / "sub").mkdir()
    _write(root / "sub" / "inner.txt")
    _write(root / "top.txt")


def test_dir_entries_sorted(tmp_path):
    _make_tree(tmp_path)
    names = [info.name for info in fs.dir_entries(str(tmp_path))]
    assert names == sorted(names)
    assert set(names) == {"sub", "top.txt"}


def test_dir_enumerate(tmp_path):
    _make_tree(tmp_path)
    seen = []
    completed = fs.dir_enumerate(str(tmp_path), lambda path, info: seen.append(path))
    assert completed is True
    assert set(seen) == {str(tmp_path / "sub"), str(tmp_path / "top.txt")}


def test_dir_enumerate_recursive(tmp_path):
    _make_tree(tmp_path)
    seen = []
    completed = fs.dir_enumerate_recursive(str(tmp_path), lambda path, info: seen.append(path))
    assert completed is True
    assert set(seen) == {
        str(tmp_path / "sub"),
        str(tmp_path / "sub" / "inner.txt"),
        str(tmp_path / "top.txt"),
    }


def test_dir_enumerate_stops(tmp_path):
    _make_tree(tmp_path)
    seen = []

    def stop_first(path, info):
        seen.append(path)
        return True

    assert fs.dir_enumerate_recursive(str(tmp_path), stop_first) is False
    assert len(seen) == 1


def test_chdir_and_getcwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "work").mkdir()
    fs.dir_chdir("work")
    assert os.path.realpath(fs.dir_getcwd()) == os.path.realpath(str(tmp_path / "work"))
    with pytest.raises(SioError) as info:
        fs.dir_chdir(str(tmp_path / "missing"))
    assert info.value.code == ErrorCode.NOTFOUND


def test_disk_space(tmp_path):
    space = fs.disk_space(str(tmp_path))
    assert space.total_bytes > 0
    assert space.total_bytes >= space.free_bytes >= space.available_bytes >= 0


def test_drives():
    result = fs.drives()
    assert isinstance(result, list)
    assert all(
        drive.type in {"cdrom", "removable", "remote", "ramdisk", "fixed"} and drive.mount_point
        for drive in result
    )