"""Unit tests for the SBAsset6 archive reader."""

from __future__ import annotations

import struct

import pytest

from starcore.asset_archive import SBAsset6, strip_json_comments
from starcore.errors import AssetArchiveError
from tests.builders import build_archive


def _archive() -> SBAsset6:
    return SBAsset6.from_bytes(build_archive({
        "/a/b/c.ext": b"nested",
        "/a/top.ext": b"top",
        "/a/b/d/deep.ext": b"deep",
        "/a/b/notes.txt": b"notes",
        "/readme.txt": b"root",
    }, metadata={"priority": 0}))


def test_get_returns_exact_bytes() -> None:
    """get reads exactly the indexed slice."""
    archive = _archive()

    assert bytes(archive.get("/a/b/c.ext")) == b"nested"
    assert bytes(archive.get("/readme.txt")) == b"root"
    assert archive.metadata == {"priority": 0}


def test_get_returns_view_not_copy() -> None:
    """Asset contents are read-only views over the archive buffer."""
    view = _archive().get("/a/top.ext")

    assert isinstance(view, memoryview)
    assert view.readonly


def test_get_missing_path_is_none() -> None:
    """Absent paths are not an error."""
    assert _archive().get("/a/missing.ext") is None


def test_get_accepts_path_without_leading_slash() -> None:
    """Lookups normalize the leading slash."""
    assert bytes(_archive().get("a/b/c.ext")) == b"nested"
    assert "a/top.ext" in _archive()


def test_list_directory_returns_direct_children() -> None:
    """Listing a/b shows its files and subdirectory, not deeper files."""
    entries = {node.name: node.is_dir for node in _archive().list_directory("a/b")}

    assert entries == {"c.ext": False, "notes.txt": False, "d": True}


def test_list_files_filters_by_suffix() -> None:
    """list_files only returns files of the directory itself."""
    names = [node.name for node in _archive().list_files("a/b", ".ext")]

    assert names == ["c.ext"]


def test_find_files_is_recursive() -> None:
    """find_files descends into subdirectories."""
    found = _archive().find_files("a", ".ext")

    assert sorted(node.path for node in found) == ["/a/b/c.ext", "/a/b/d/deep.ext", "/a/top.ext"]
    assert found[0].path == "/a/top.ext"


def test_find_files_node_reads_back() -> None:
    """Nodes returned by find_files can be passed to get."""
    archive = _archive()
    node = archive.find_files("a/b/d")[0]

    assert bytes(archive.get(node)) == b"deep"


def test_unknown_directory_is_empty() -> None:
    """Directories that do not exist, or name a file, list nothing."""
    archive = _archive()

    assert archive.list_directory("a/zzz") == []
    assert archive.list_directory("a/top.ext") == []
    assert archive.list_files("a/zzz", ".ext") == []
    assert archive.find_files("nope", ".ext") == []
    assert archive.get_directory("a/zzz") is None


def test_bad_magic_is_fatal() -> None:
    """The archive must start with SBAsset6."""
    data = b"SBAsset5" + build_archive({"/x": b"1"})[8:]

    with pytest.raises(AssetArchiveError):
        SBAsset6.from_bytes(data)


def test_bad_index_magic_is_fatal() -> None:
    """The index section must start with INDEX."""
    data = build_archive({"/x": b"1"}).replace(b"INDEX", b"INDEZ")

    with pytest.raises(AssetArchiveError):
        SBAsset6.from_bytes(data)


def test_index_offset_outside_file_is_fatal() -> None:
    """The index offset is validated against the file size."""
    data = b"SBAsset6" + struct.pack(">q", 10_000) + b"\x00" * 8

    with pytest.raises(AssetArchiveError):
        SBAsset6.from_bytes(data)


def test_entry_overflowing_archive_is_fatal() -> None:
    """Offsets and lengths must stay within the archive."""
    data = bytearray(build_archive({"/x": b"1"}))
    # Last 8 bytes are the entry length
    data[-8:] = struct.pack(">q", 2**40)

    with pytest.raises(AssetArchiveError):
        SBAsset6.from_bytes(bytes(data))


def test_load_maps_file(tmp_path) -> None:
    """Archives on disk are memory mapped and closable."""
    path = tmp_path / "packed.pak"
    path.write_bytes(build_archive({"/tiles/dirt.material": b"{}"}))

    with SBAsset6.load(path) as archive:
        assert archive.paths() == ["/tiles/dirt.material"]
        assert archive.get_text("/tiles/dirt.material") == "{}"


def test_get_json_ignores_comments() -> None:
    """Asset JSON may carry // and /* */ comments."""
    archive = SBAsset6.from_bytes(build_archive({
        "/x.config": b'{\n  // id\n  "a": "http://x", /* b */ "b": 2\n}',
    }))

    assert archive.get_json("/x.config") == {"a": "http://x", "b": 2}


def test_strip_json_comments_keeps_strings() -> None:
    """Comment markers inside strings are preserved."""
    assert strip_json_comments('"//not" // yes') == '"//not" '


def test_close_while_view_is_held(tmp_path) -> None:
    """Closing with a live view leaves the archive closed, not half-closed."""
    path = tmp_path / "packed.pak"
    path.write_bytes(build_archive({"/a/b/c.ext": b"x"}))
    archive = SBAsset6.load(path)
    view = archive.get("a/b/c.ext")

    archive.close()

    assert archive._mapped is None
    assert bytes(view) == b"x"
    view.release()
    archive.close()


def test_load_of_corrupt_file_raises(tmp_path) -> None:
    """A mapped file that fails to parse raises a format error."""
    path = tmp_path / "packed.pak"
    path.write_bytes(build_archive({"/x": b"1"}).replace(b"INDEX", b"INDEZ"))

    with pytest.raises(AssetArchiveError):
        SBAsset6.load(path)
