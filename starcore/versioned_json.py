from dataclasses import dataclass
from typing import Optional

from .byte_reader import ByteReader
from .errors import SbonFormatError
from .sbon import Sbon, read_sbon

SBVJ01_MAGIC = b'SBVJ01'


@dataclass(frozen=True)
class VersionedJson:
    """A named SBON value, optionally tagged with a format version."""
    identifier: str
    versioned: bool
    version: int
    data: Optional[Sbon]


def read_versioned_json(reader: ByteReader) -> VersionedJson:
    identifier = reader.read_string()
    versioned = reader.read_bool()
    version = -1
    if versioned:
        version = reader.read_int32()
    data = read_sbon(reader)
    return VersionedJson(identifier, versioned, version, data)


def parse_sbvj01(data, source="<bytes>") -> VersionedJson:
    reader = ByteReader(data, error=SbonFormatError)
    magic = bytes(reader.read_bytes(len(SBVJ01_MAGIC))) if len(data) >= len(SBVJ01_MAGIC) else bytes(data)
    if magic != SBVJ01_MAGIC:
        raise SbonFormatError(f"{source} is not a SBVJ01 file, magic: {magic!r}")
    return read_versioned_json(reader)


def read_sbvj01(path) -> VersionedJson:
    with open(path, 'rb') as f:
        data = f.read()
    return parse_sbvj01(data, source=str(path))
