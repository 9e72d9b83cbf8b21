import os
import json
import logging
import hashlib
from PIL import Image

from .world import UNKNOWN_MATERIAL

logger = logging.getLogger("starcore.map_gen")


class MapRenderer:
    BACKGROUND_COLOR = (64, 64, 64)
    EMPTY_COLOR = (192, 193, 194)
    PLATFORM_COLOR = (102, 51, 0)
    PLAYER_START_COLOR = (255, 0, 0)

    def __init__(self, storage, materials=None):
        self.storage = storage
        self.materials = materials
        self.color_overrides = {}
        self._init_palette()

        # Configure logging to map_gen.log
        log_path = os.path.abspath(os.path.join(self.storage.data_dir, 'map_gen.log'))
        if not any(getattr(h, 'baseFilename', None) == log_path for h in logger.handlers):
            log_handler = logging.FileHandler(log_path, mode='a')
            log_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
            logger.addHandler(log_handler)
        logger.setLevel(logging.INFO)

    def _init_palette(self):
        palette_path = os.path.join(self.storage.data_dir, "material_colors.json")
        if not os.path.exists(palette_path):
            return
        with open(palette_path, 'r') as f:
            raw_palette = json.load(f)
        # Keys are material ids or material names
        for k, v in raw_palette.items():
            self.color_overrides[str(k).lower()] = tuple(v[:3])

    def _get_id_color(self, material_id):
        h = hashlib.md5(str(material_id).encode()).digest()
        return 50 + (h[0] % 150), 50 + (h[1] % 150), 50 + (h[2] % 150)

    def material_color(self, material_id):
        if material_id == UNKNOWN_MATERIAL:
            return None
        if material_id < 0:
            return self.EMPTY_COLOR

        override = self.color_overrides.get(str(material_id))
        material = self.materials.get(material_id) if self.materials else None
        if override is None and material is not None:
            override = self.color_overrides.get(material.name.lower())
        if override is not None:
            return override
        if material is None:
            return self._get_id_color(material_id)
        if material.color is None:
            return self.PLATFORM_COLOR
        return material.color

    def render_tiles(self, tiles, scale=1):
        img = Image.new('RGB', (tiles.width, tiles.height), color=self.BACKGROUND_COLOR)
        pixels = img.load()
        colors = {}
        for y in range(tiles.height):
            # World y grows upwards
            py = tiles.height - y - 1
            for x in range(tiles.width):
                material_id = tiles.get_tile(x, y)
                if material_id not in colors:
                    colors[material_id] = self.material_color(material_id)
                color = colors[material_id]
                if color is not None:
                    pixels[x, py] = color
        if scale > 1:
            img = img.resize((tiles.width * scale, tiles.height * scale), Image.NEAREST)
        return img

    def render_world(self, world, scale=None, mark_player_start=True):
        scale = scale or self.storage.config.get("render_scale", 1)
        logger.info(f"Rendering {world.name} ({world.width}x{world.height}) at scale {scale}")
        img = self.render_tiles(world.get_tile_foreground_material_grid(), scale)
        start = world.player_start if mark_player_start else None
        if start and 0 <= start[0] < world.width and 0 <= start[1] < world.height:
            px, py = start[0] * scale, (world.height - start[1] - 1) * scale
            pixels = img.load()
            for dx in range(scale):
                for dy in range(scale):
                    pixels[px + dx, py + dy] = self.PLAYER_START_COLOR
        return img

    def save_world_map(self, world, name=None, scale=None):
        name = name or (os.path.splitext(os.path.basename(str(world.path)))[0] if world.path else "world")
        img = self.render_world(world, scale)
        c_dir = self.storage.map_cache_dir
        os.makedirs(c_dir, exist_ok=True)
        image_path = os.path.join(c_dir, f"{name}.png")
        img.save(image_path)
        with open(os.path.join(c_dir, f"{name}.json"), "w") as f:
            json.dump({"world": world.name, "type": world.type_name,
                       "width": world.width, "height": world.height,
                       "player_start": world.player_start}, f)
        logger.info(f"Saved map of {world.name} to {image_path}")
        return {"status": "success", "path": image_path, "width": img.width, "height": img.height}
