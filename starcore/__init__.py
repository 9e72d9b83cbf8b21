"""Read Starbound worlds, players and asset archives.

The readers are layered: ``sbon`` decodes values, ``btree`` and
``asset_archive`` index the containers, ``world`` turns container blocks
into tiles and entities.
"""
from .asset_archive import SBAsset6
from .btree import BTreeDB5
from .errors import (
    AssetArchiveError,
    BTreeFormatError,
    FormatError,
    SbonFormatError,
    SbonTypeError,
    StarcoreConfigError,
    StarcoreError,
    WorldFormatError,
)
from .sbon import Sbon, decode, encode
from .versioned_json import VersionedJson, read_sbvj01
from .weapons import Weapons
from .world import Tile, World, WorldTiles

__version__ = "0.1.0"
