"""Reader for SBAsset6 asset archives (``packed.pak``).

The file starts with ``SBAsset6`` and the offset of an ``INDEX`` section
listing every packed file as (path, offset, length). Paths are ``/``
separated; the directory tree is derived from them at load time.
"""
import json
import logging
import mmap
import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from .byte_reader import ByteReader
from .errors import AssetArchiveError
from .sbon import read_map

logger = logging.getLogger("starcore.assets")

MAGIC = b'SBAsset6'
INDEX_MAGIC = b'INDEX'
MAX_ADDRESS = 2 ** 63 - 1


@dataclass(frozen=True)
class AssetEntry:
    offset: int
    length: int


@dataclass
class AssetNode:
    """Directory or file in the archive tree; children are arena indices."""
    name: str
    path: str
    is_dir: bool
    entry: Optional[AssetEntry] = None
    children: Dict[str, int] = field(default_factory=dict)


def _split(path):
    return [part for part in path.split('/') if part]


def _normalize(path):
    return '/' + '/'.join(_split(path))


def strip_json_comments(text: str) -> str:
    """Removes // and /* */ comments outside of string literals."""
    out = []
    i, n = 0, len(text)
    in_string = False
    while i < n:
        c = text[i]
        if in_string:
            out.append(c)
            if c == '\\' and i + 1 < n:
                out.append(text[i + 1])
                i += 1
            elif c == '"':
                in_string = False
        elif c == '"':
            in_string = True
            out.append(c)
        elif text.startswith('//', i):
            end = text.find('\n', i)
            i = n if end == -1 else end
            continue
        elif text.startswith('/*', i):
            end = text.find('*/', i + 2)
            i = n if end == -1 else end + 2
            continue
        else:
            out.append(c)
        i += 1
    return ''.join(out)


class SBAsset6:
    def __init__(self, data, index, metadata=None, mapped=None):
        self.data = data
        self.metadata = metadata or {}
        self.index = index
        self._mapped = mapped
        self._lookup = {_normalize(path): entry for path, entry in index.items()}
        self._nodes = [AssetNode(name="", path="/", is_dir=True)]
        for path, entry in index.items():
            self._add_file(path, entry)
        self._view = memoryview(data)

    @classmethod
    def from_bytes(cls, data, mapped=None):
        if len(data) > MAX_ADDRESS:
            raise AssetArchiveError("File is too large")
        r = ByteReader(data, error=AssetArchiveError)
        magic = bytes(r.read_bytes(8)) if len(data) >= 8 else bytes(data)
        if magic != MAGIC:
            raise AssetArchiveError(f"Not an SBAsset6: {magic!r}")

        index_offset = r.read_int64()
        if index_offset < 0 or index_offset >= len(data):
            raise AssetArchiveError(f"Index offset {index_offset} is outside the file")
        r.seek(index_offset)
        if bytes(r.read_bytes(5)) != INDEX_MAGIC:
            raise AssetArchiveError("Invalid index")

        metadata = read_map(r)
        file_count = r.read_varint()
        index = {}
        for _ in range(file_count):
            path = r.decode_utf8(r.read_bytes(r.read_byte()))
            offset = r.read_int64()
            length = r.read_int64()
            if offset < 0 or length < 0 or offset + length > len(data):
                raise AssetArchiveError(f"Asset {path} at {offset}+{length} overflows the archive")
            index[path] = AssetEntry(offset, length)

        logger.info(f"Indexed {len(index)} assets")
        return cls(data, index, metadata, mapped)

    @classmethod
    def load(cls, path):
        with open(path, 'rb') as f:
            size = os.fstat(f.fileno()).st_size
            if size < 16:
                raise AssetArchiveError(f"{path} is too small to be an SBAsset6")
            mm = mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ)
        logger.info(f"Mapped {path} ({size} bytes)")
        try:
            return cls.from_bytes(mm, mapped=mm)
        except Exception:
            mm.close()
            raise

    def close(self):
        """Releases the archive buffer.

        A mapping still referenced by views from ``get()`` stays open until
        they are garbage collected.
        """
        self._view.release()
        mapped, self._mapped = self._mapped, None
        if mapped is not None:
            try:
                mapped.close()
            except BufferError:
                logger.warning("Asset views are still in use; the mapping closes when they are released")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # --- Tree ---

    def _add_file(self, path, entry):
        parts = _split(path)
        if not parts:
            raise AssetArchiveError(f"Empty asset path {path!r}")
        current = 0
        for part in parts[:-1]:
            current = self._get_or_create_directory(current, part)
        parent = self._nodes[current]
        name = parts[-1]
        existing = parent.children.get(name)
        if existing is not None and self._nodes[existing].is_dir:
            raise AssetArchiveError(f"{path} collides with a directory")
        self._nodes.append(AssetNode(name=name, path=_normalize(path), is_dir=False, entry=entry))
        parent.children[name] = len(self._nodes) - 1

    def _get_or_create_directory(self, parent_index, name):
        parent = self._nodes[parent_index]
        child = parent.children.get(name)
        if child is None:
            path = parent.path.rstrip('/') + '/' + name
            self._nodes.append(AssetNode(name=name, path=path, is_dir=True))
            child = len(self._nodes) - 1
            parent.children[name] = child
        elif not self._nodes[child].is_dir:
            raise AssetArchiveError(f"{name} is a file, not a directory")
        return child

    def _directory_index(self, path):
        """Arena index of the directory at ``path``, or None when there is none."""
        current = 0
        for part in _split(path):
            child = self._nodes[current].children.get(part)
            if child is None or not self._nodes[child].is_dir:
                return None
            current = child
        return current

    def root_directory(self) -> AssetNode:
        return self._nodes[0]

    def get_directory(self, path) -> Optional[AssetNode]:
        index = self._directory_index(path)
        return None if index is None else self._nodes[index]

    def list_directory(self, path=""):
        """Files and subdirectories directly inside ``path``; empty when it is not a directory."""
        node = self.get_directory(path)
        if node is None:
            return []
        return [self._nodes[i] for i in node.children.values()]

    def list_files(self, path="", suffix=None):
        return [n for n in self.list_directory(path)
                if not n.is_dir and (suffix is None or n.name.endswith(suffix))]

    def find_files(self, root="", suffix=None):
        """Recursive search; a directory's files come before its subdirectories."""
        found = []
        index = self._directory_index(root)
        if index is not None:
            self._find_files(index, suffix, found)
        return found

    def _find_files(self, index, suffix, found):
        children = [self._nodes[i] for i in self._nodes[index].children.values()]
        for child in children:
            if not child.is_dir and (suffix is None or child.name.endswith(suffix)):
                found.append(child)
        for i in self._nodes[index].children.values():
            if self._nodes[i].is_dir:
                self._find_files(i, suffix, found)

    # --- Contents ---

    def paths(self):
        return list(self.index.keys())

    def __contains__(self, path):
        return path in self.index or _normalize(path) in self._lookup

    def get(self, path):
        """Read-only view of an asset's bytes, or None when not packed."""
        if isinstance(path, AssetNode):
            entry = path.entry
        else:
            entry = self.index.get(path) or self._lookup.get(_normalize(path))
        if entry is None:
            return None
        return self._view[entry.offset:entry.offset + entry.length]

    def get_text(self, path) -> Optional[str]:
        raw = self.get(path)
        if raw is None:
            return None
        return bytes(raw).decode('utf-8')

    def get_json(self, path):
        text = self.get_text(path)
        if text is None:
            return None
        return json.loads(strip_json_comments(text))
