import os
import logging

from .logging_setup import setup_logging
from .storage import StorageManager
from .asset_archive import SBAsset6
from .materials import Materials
from .weapons import Weapons
from .entities import is_owned_chest
from .map_renderer import MapRenderer
from .player import load_players
from .world import World

logger = logging.getLogger("starcore")


class WorldManager:
    """Entry point tying the configured game directory to the readers."""

    def __init__(self, data_dir=None, storage=None):
        self.storage = storage or StorageManager(data_dir)
        setup_logging(os.path.join(self.storage.data_dir, "starcore.log"))
        self.config = self.storage.config
        self._assets = None
        self._materials = None
        self._weapons = None
        self._renderer = None

    # --- Config proxy ---
    def save_config(self, cfg):
        result = self.storage.save_config(cfg)
        self.config = self.storage.config
        self.close()
        return result

    # --- Assets ---
    @property
    def assets(self):
        if self._assets is None:
            self._assets = SBAsset6.load(self.storage.assets_file)
        return self._assets

    @property
    def materials(self):
        if self._materials is None:
            self._materials = Materials.from_assets(self.assets)
        return self._materials

    @property
    def weapons(self):
        if self._weapons is None:
            self._weapons = Weapons.from_assets(self.assets)
        return self._weapons

    @property
    def renderer(self):
        if self._renderer is None:
            self._renderer = MapRenderer(self.storage, self.materials)
        return self._renderer

    def close(self):
        if self._assets is not None:
            self._assets.close()
        self._assets = None
        self._materials = None
        self._weapons = None
        self._renderer = None

    # --- Worlds ---
    def list_worlds(self):
        return [{"file": p.name, "path": str(p)} for p in self.storage.find_world_files()]

    def load_world(self, path):
        return World.load(path)

    def load_players(self):
        return load_players(self.storage)

    def load_player_world(self, player):
        world_id = player.get_current_world()
        if world_id is None:
            return None
        path = self.storage.find_world_file(world_id)
        if path is None:
            logger.warning(f"World {world_id.world_id} has no saved file")
            return None
        return World.load(path)

    def count_materials(self, world):
        """(material id, tile count, material name), most common first."""
        counts = {}
        for material_id in world.get_tile_foreground_material_grid().tiles:
            counts[material_id] = counts.get(material_id, 0) + 1
        ordered = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
        return [(mid, n, self.materials.name_of(mid)) for mid, n in ordered]

    def render_world_map(self, path, scale=None):
        world = self.load_world(path)
        return self.renderer.save_world_map(world, scale=scale)

    def chest_weapon_stats(self, world):
        """(item name, WeaponStats) for every known weapon stored in the world's owned chests."""
        found = []
        for entity in world.get_entities():
            if not is_owned_chest(entity):
                continue
            for item in entity.data.get_by_key("items").as_sbon_list():
                if item is None or item.get_by_key("content") is None:
                    continue
                stats = self.weapons.item_stats(item)
                if stats is not None:
                    found.append((item.get_by_path("content/name").as_string(), stats))
        return found
