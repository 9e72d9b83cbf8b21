"""World files: a BTreeDB5 with 5 byte keys (layer, region x, region y).

Layer 0 holds the world metadata, layer 1 the tiles of each 32x32 region
and layer 2 the entities stored in each region. Region payloads are
compressed.
"""
import logging
import re
import struct
import threading
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .btree import BTreeDB5
from .byte_reader import ByteReader
from .compression import inflate
from .errors import WorldFormatError
from .versioned_json import VersionedJson, read_versioned_json

logger = logging.getLogger("starcore.world")

KEY_SIZE = 5
LAYER_METADATA = 0
LAYER_TILES = 1
LAYER_ENTITIES = 2

REGION_SIZE = 32
TILES_PER_REGION = REGION_SIZE * REGION_SIZE
TILE_SIZE = 30
TILE_HEADER_SIZE = 3
UNKNOWN_MATERIAL = -2

_TILE = struct.Struct('>hBBhBhBBhBBffBBHBBB')
_COLOR_CODE = re.compile(r'\^[^;]*;')


@dataclass(frozen=True)
class Tile:
    foreground_material: int
    foreground_hue_shift: int
    foreground_variant: int
    foreground_mod: int
    foreground_mod_hue_shift: int
    background_material: int
    background_hue_shift: int
    background_variant: int
    background_mod: int
    background_mod_hue_shift: int
    liquid: int
    liquid_level: float
    liquid_pressure: float
    liquid_infinite: int
    collision: int
    dungeon_id: int
    biome: int
    biome_2: int
    indestructible: bool

    @classmethod
    def unpack_from(cls, data, offset=0):
        fields = _TILE.unpack_from(data, offset)
        return cls(*fields[:-1], fields[-1] > 0)


@dataclass(frozen=True)
class Region:
    x: int
    y: int
    tiles: Optional[Tuple[Tile, ...]]
    foreground_materials: Optional[List[int]]
    entities: Optional[List[VersionedJson]]


class WorldTiles:
    """Dense width x height grid of material ids, row-major from y = 0."""

    def __init__(self, width, height, fill=UNKNOWN_MATERIAL):
        self.width = width
        self.height = height
        self.tiles = [fill] * (width * height)

    def in_bounds(self, x, y):
        return 0 <= x < self.width and 0 <= y < self.height

    def set_tile(self, x, y, value):
        self.tiles[y * self.width + x] = value

    def get_tile(self, x, y):
        return self.tiles[y * self.width + x]


def region_key(layer, x, y) -> bytes:
    if not (0 <= x <= 0xFFFF and 0 <= y <= 0xFFFF):
        raise ValueError(f"coords greater than key size: {x}, {y}")
    return struct.pack('>BHH', layer, x, y)


def parse_region_key(key) -> Tuple[int, int, int]:
    return struct.unpack('>BHH', bytes(key))


class World:
    def __init__(self, db: BTreeDB5, width, height, metadata: VersionedJson, path=None):
        self.db = db
        self.path = path
        self.width = width
        self.height = height
        self.metadata_record = metadata
        self.metadata = metadata.data
        self._entities = None
        self._entities_lock = threading.Lock()

    @classmethod
    def from_bytes(cls, data, path=None):
        db = BTreeDB5.from_bytes(data)
        # 1 byte for layer, 2 bytes for x, 2 bytes for y
        if db.key_size != KEY_SIZE:
            raise WorldFormatError(f"World db key size is {db.key_size}, not {KEY_SIZE} bytes")

        raw = db.get(region_key(LAYER_METADATA, 0, 0))
        if raw is None:
            raise WorldFormatError("World has no metadata")
        reader = ByteReader(inflate(raw), error=WorldFormatError)
        width = reader.read_int32()
        height = reader.read_int32()
        metadata = read_versioned_json(reader)
        logger.info(f"Loaded world {path or '<bytes>'}: {width}x{height}")
        return cls(db, width, height, metadata, path)

    @classmethod
    def load(cls, path):
        with open(path, 'rb') as f:
            data = f.read()
        return cls.from_bytes(data, path=path)

    def _get(self, layer, x, y):
        raw = self.db.get(region_key(layer, x, y))
        if raw is None:
            return None
        return inflate(raw)

    def _tile_payload(self, x, y):
        payload = self._get(LAYER_TILES, x, y)
        if payload is None:
            return None
        expected = TILE_HEADER_SIZE + TILES_PER_REGION * TILE_SIZE
        if len(payload) < expected:
            raise WorldFormatError(f"Region {x},{y} tile data is {len(payload)} bytes, expected {expected}")
        return payload

    # --- Regions ---

    def region_coordinates(self, layer=LAYER_TILES):
        coords = []
        for key in self.db.all_keys():
            key_layer, x, y = parse_region_key(key)
            if key_layer == layer:
                coords.append((x, y))
        return coords

    def get_tiles(self, region_x, region_y) -> Optional[Tuple[Tile, ...]]:
        payload = self._tile_payload(region_x, region_y)
        if payload is None:
            return None
        return tuple(Tile.unpack_from(payload, TILE_HEADER_SIZE + i * TILE_SIZE)
                     for i in range(TILES_PER_REGION))

    def get_tile_foreground_material(self, region_x, region_y) -> Optional[List[int]]:
        payload = self._tile_payload(region_x, region_y)
        if payload is None:
            return None
        return _foreground_materials(payload)

    def get_tile_foreground_material_grid(self) -> WorldTiles:
        grid = WorldTiles(self.width, self.height)
        regions = self.region_coordinates(LAYER_TILES)
        for region_x, region_y in regions:
            materials = _foreground_materials(self._tile_payload(region_x, region_y))
            base_x, base_y = region_x * REGION_SIZE, region_y * REGION_SIZE
            for i, material in enumerate(materials):
                if material == UNKNOWN_MATERIAL:
                    continue
                x, y = base_x + i % REGION_SIZE, base_y + i // REGION_SIZE
                if grid.in_bounds(x, y):
                    grid.set_tile(x, y, material)
        logger.debug(f"Built {self.width}x{self.height} material grid from {len(regions)} regions")
        return grid

    def get_regions(self, full_tiles=False) -> List[Region]:
        regions = []
        for x, y in self.region_coordinates(LAYER_TILES):
            tiles = materials = None
            if full_tiles:
                tiles = self.get_tiles(x, y)
            else:
                materials = self.get_tile_foreground_material(x, y)
            regions.append(Region(x, y, tiles, materials, self.get_entities(x, y)))
        return regions

    # --- Entities ---

    def get_entities(self, region_x=None, region_y=None):
        """Entities of one region, or of the whole world when called without coordinates."""
        if region_x is None and region_y is None:
            return self._all_entities()
        if region_x is None or region_y is None:
            raise ValueError("Both region coordinates are required")
        payload = self._get(LAYER_ENTITIES, region_x, region_y)
        if payload is None:
            return None
        return _read_entities(payload)

    def _all_entities(self):
        with self._entities_lock:
            if self._entities is None:
                entities = []
                for key in self.db.all_keys():
                    if key[0] == LAYER_ENTITIES:
                        entities.extend(_read_entities(inflate(self.db.get(key))))
                self._entities = tuple(entities)
                logger.debug(f"Cached {len(entities)} entities")
            return self._entities

    # --- Metadata ---

    def _metadata_path(self, path, default):
        if self.metadata is None or not self.metadata.is_map():
            return default
        found = self.metadata.get_by_path(path)
        return default if found is None else found.as_string()

    @property
    def player_start(self) -> Optional[Tuple[int, int]]:
        if self.metadata is None or not self.metadata.is_map():
            return None
        start = self.metadata.get_by_key("playerStart")
        if start is None or not start.is_list() or start.size() < 2:
            return None
        x, y = start.get_by_index(0), start.get_by_index(1)
        if x is None or y is None:
            return None
        return x.as_int(), y.as_int()

    @property
    def name(self) -> str:
        name = self._metadata_path("worldTemplate/celestialParameters/name", "Unknown")
        return _COLOR_CODE.sub('', name)

    @property
    def type_name(self) -> str:
        type_name = self._metadata_path(
            "worldTemplate/celestialParameters/visitableParameters/typeName", "Unknown")
        return type_name[:1].upper() + type_name[1:]


def _foreground_materials(payload):
    return [struct.unpack_from('>h', payload, TILE_HEADER_SIZE + i * TILE_SIZE)[0]
            for i in range(TILES_PER_REGION)]


def _read_entities(payload):
    reader = ByteReader(payload, error=WorldFormatError)
    count = reader.read_varint()
    return [read_versioned_json(reader) for _ in range(count)]
