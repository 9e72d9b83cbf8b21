"""Unit tests for versioned JSON records and SBVJ01 files."""

from __future__ import annotations

import pytest

from starcore.byte_reader import ByteReader
from starcore.errors import SbonFormatError
from starcore.versioned_json import parse_sbvj01, read_sbvj01, read_versioned_json
from tests.builders import sbvj01, versioned_json


def test_read_versioned_record() -> None:
    """Versioned records carry a 4 byte version before the value."""
    record = read_versioned_json(ByteReader(versioned_json("PlayerEntity", {"a": 1}, version=30)))

    assert record.identifier == "PlayerEntity"
    assert record.versioned is True
    assert record.version == 30
    assert record.data.get_by_key("a").as_int() == 1


def test_read_unversioned_record() -> None:
    """Unversioned records report version -1."""
    record = read_versioned_json(ByteReader(versioned_json("Thing", [1, 2])))

    assert record.versioned is False
    assert record.version == -1
    assert record.data.as_list() == [1, 2]


def test_null_payload_is_none() -> None:
    """A null value leaves data empty."""
    record = read_versioned_json(ByteReader(versioned_json("Empty", None)))

    assert record.data is None


def test_read_sbvj01_file(tmp_path) -> None:
    """Standalone files start with the SBVJ01 magic."""
    path = tmp_path / "abc.player"
    path.write_bytes(sbvj01("PlayerEntity", {"uuid": "abc"}))

    record = read_sbvj01(path)

    assert record.data.get_by_key("uuid").as_string() == "abc"


def test_wrong_sbvj01_magic_is_fatal() -> None:
    """Files without the magic are rejected."""
    with pytest.raises(SbonFormatError):
        parse_sbvj01(b"SBVJ02" + versioned_json("x", 1))
    with pytest.raises(SbonFormatError):
        parse_sbvj01(b"SB")
