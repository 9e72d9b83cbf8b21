"""Reader for BTreeDB5, Starbound's paginated key/value container.

Layout: a 512 byte header followed by fixed-size blocks. Index blocks
(``II``) route keys to children, leaf blocks (``LL``) hold a byte stream of
(key, varint length, value) entries that may spill over into further leaf
blocks through the pointer stored in each block's last four bytes.
"""
import logging
import struct

from .byte_reader import ByteReader
from .errors import BTreeFormatError

logger = logging.getLogger("starcore.btree")

MAGIC = b'BTreeDB5'
HEADER_SIZE = 512
BLOCK_FREE = b'FF'
BLOCK_INDEX = b'II'
BLOCK_LEAF = b'LL'

# block type (2) + reserved (1) + entry count (4) + leftmost child (4)
INDEX_HEADER_SIZE = 11
LEAF_POINTER_SIZE = 4


def _parse_header(data):
    r = ByteReader(data, error=BTreeFormatError)
    magic = bytes(r.read_bytes(8))
    if magic != MAGIC:
        raise BTreeFormatError(f"Not a BTreeDB5: {magic!r}")
    header = {}
    header["block_size"] = r.read_int32()
    header["name"] = r.read_fixed_string(16)
    header["key_size"] = r.read_int32()
    header["use_other_root"] = r.read_byte() > 0
    header["block_count"] = r.read_int32() + 1
    r.skip(3)
    r.skip(4)
    r.skip(1)
    header["root_block"] = r.read_int32()
    r.skip(1)
    header["free_block"] = r.read_int32()
    r.skip(3)
    r.skip(4)
    r.skip(1)
    header["other_root_block"] = r.read_int32()
    r.skip(HEADER_SIZE - r.pos)
    return header


class BTreeDB5:
    def __init__(self, data, block_size, name, key_size, block_count,
                 root_block, other_root_block, use_other_root):
        if block_size <= INDEX_HEADER_SIZE + LEAF_POINTER_SIZE:
            raise BTreeFormatError(f"Invalid block size {block_size}")
        if key_size <= 0:
            raise BTreeFormatError(f"Invalid key size {key_size}")
        self.data = data
        self.block_size = block_size
        self.name = name
        self.key_size = key_size
        self.block_count = block_count
        self.root_block = root_block
        self.other_root_block = other_root_block
        self.use_other_root = use_other_root

    @classmethod
    def from_bytes(cls, data):
        h = _parse_header(data)
        db = cls(data, h["block_size"], h["name"], h["key_size"], h["block_count"],
                 h["root_block"], h["other_root_block"], h["use_other_root"])
        logger.debug(f"Opened BTreeDB5 '{db.name}': block_size={db.block_size} "
                     f"key_size={db.key_size} blocks={db.block_count} root={db.active_root}")
        return db

    @classmethod
    def load(cls, path):
        with open(path, 'rb') as f:
            data = f.read()
        logger.info(f"Loaded {path} ({len(data)} bytes)")
        return cls.from_bytes(data)

    @property
    def active_root(self):
        return self.other_root_block if self.use_other_root else self.root_block

    @property
    def inactive_root(self):
        return self.root_block if self.use_other_root else self.other_root_block

    def block_offset(self, index):
        return HEADER_SIZE + self.block_size * index

    def block_type(self, index):
        offset = self.block_offset(index)
        if index < 0 or offset + self.block_size > len(self.data):
            raise BTreeFormatError(f"Block {index} is outside the file")
        return bytes(self.data[offset:offset + 2])

    # --- Lookup ---

    def get(self, key):
        """Returns the value stored under ``key`` or None."""
        key = bytes(key)
        if len(key) != self.key_size:
            raise ValueError(f"Invalid key size {len(key)}, expected {self.key_size}")

        block = self.active_root
        block_type = self.block_type(block)
        while block_type == BLOCK_INDEX:
            block = self._find_child(block, key)
            block_type = self.block_type(block)
        if block_type != BLOCK_LEAF:
            raise BTreeFormatError(f"Did not reach a leaf: block {block} has type {block_type!r}")

        leaf = _LeafStream(self, block)
        for _ in range(leaf.read_int32()):
            current = leaf.read(self.key_size)
            length = leaf.read_varint()
            if current == key:
                return leaf.read(length)
            leaf.skip(length)
        return None

    def get_int_key(self, key: int):
        return self.get(key.to_bytes(self.key_size, 'big'))

    def _find_child(self, block, key):
        """Rightmost entry with entry key <= key, or the leftmost pointer."""
        offset = self.block_offset(block)
        count, leftmost = struct.unpack_from('>ii', self.data, offset + 3)
        entries = offset + INDEX_HEADER_SIZE
        entry_size = self.key_size + 4
        if entries + count * entry_size > offset + self.block_size:
            raise BTreeFormatError(f"Index block {block} claims {count} entries")

        lo, hi = 0, count
        while lo < hi:
            mid = (lo + hi) // 2
            start = entries + entry_size * mid
            if key < bytes(self.data[start:start + self.key_size]):
                hi = mid
            else:
                lo = mid + 1
        if lo == 0:
            return leftmost
        return struct.unpack_from('>i', self.data, entries + entry_size * (lo - 1) + self.key_size)[0]

    # --- Traversal ---

    def all_keys(self):
        """Every key reachable from the active root, in order."""
        return [key for key, _ in self._walk(self.active_root, with_values=False)]

    def alternate_keys(self):
        """Every key reachable from the inactive root."""
        return [key for key, _ in self._walk(self.inactive_root, with_values=False)]

    def items(self):
        """Yields (key, value) pairs in key order."""
        return self._walk(self.active_root, with_values=True)

    def _walk(self, block, with_values):
        block_type = self.block_type(block)
        if block_type == BLOCK_INDEX:
            offset = self.block_offset(block)
            count, leftmost = struct.unpack_from('>ii', self.data, offset + 3)
            entry_size = self.key_size + 4
            yield from self._walk(leftmost, with_values)
            for i in range(count):
                child_at = offset + INDEX_HEADER_SIZE + i * entry_size + self.key_size
                child = struct.unpack_from('>i', self.data, child_at)[0]
                yield from self._walk(child, with_values)
        elif block_type == BLOCK_LEAF:
            leaf = _LeafStream(self, block)
            for _ in range(leaf.read_int32()):
                key = leaf.read(self.key_size)
                length = leaf.read_varint()
                if with_values:
                    yield key, leaf.read(length)
                else:
                    leaf.skip(length)
                    yield key, None
        elif block_type == BLOCK_FREE:
            raise BTreeFormatError(f"Found free block {block} in index")
        else:
            raise BTreeFormatError(f"Unknown block type {block_type!r} at block {block}")


class _LeafStream:
    """Cursor over a leaf byte stream that follows continuation pointers."""

    def __init__(self, db, block):
        self.db = db
        self.block = block
        self.base = db.block_offset(block)
        self.offset = 2
        self.end = db.block_size - LEAF_POINTER_SIZE

    def _next_block(self):
        pointer_at = self.base + self.end
        next_block = struct.unpack_from('>i', self.db.data, pointer_at)[0]
        if next_block < 0:
            raise BTreeFormatError(f"Leaf {self.block} ends but more data is needed")
        if self.db.block_type(next_block) != BLOCK_LEAF:
            raise BTreeFormatError(f"Leaf {self.block} continues into non-leaf block {next_block}")
        self.block = next_block
        self.base = self.db.block_offset(next_block)
        self.offset = 2

    def _consume(self, length, keep):
        pieces = []
        while True:
            if self.offset + length <= self.end:
                if keep:
                    start = self.base + self.offset
                    pieces.append(self.db.data[start:start + length])
                self.offset += length
                break
            delta = self.end - self.offset
            if keep and delta:
                start = self.base + self.offset
                pieces.append(self.db.data[start:start + delta])
            length -= delta
            self._next_block()
        if keep:
            return b''.join(pieces)
        return None

    def read(self, length):
        return self._consume(length, True)

    def skip(self, length):
        self._consume(length, False)

    def read_int32(self):
        return struct.unpack('>i', self.read(4))[0]

    def read_varint(self):
        value = 0
        for _ in range(4):
            b = self.read(1)[0]
            value = (value << 7) | (b & 0x7F)
            if not (b & 0x80):
                return value
        raise BTreeFormatError(f"Varint larger than 4 bytes in leaf {self.block}")
