import os
import json
import logging
from pathlib import Path

from .errors import StarcoreConfigError

logger = logging.getLogger("starcore.storage")

DEFAULT_CONFIG = {
    "game_dir": "",
    "assets_file": "",
    "render_scale": 1,
}


class StorageManager:
    def __init__(self, data_dir=None):
        if data_dir:
            self.data_dir = str(data_dir)
        else:
            self.data_dir = os.getenv("STARCORE_DATA_DIR") or os.path.join(os.getcwd(), "data")

        self.config_file = os.path.join(self.data_dir, "config.json")
        self.map_cache_dir = os.path.join(self.data_dir, "map_cache")

        self.ensure_directories()
        self.init_files()
        self.config = self.load_config()

    def ensure_directories(self):
        for d in [self.data_dir, self.map_cache_dir]:
            os.makedirs(d, exist_ok=True)

    def init_files(self):
        if not os.path.exists(self.config_file):
            with open(self.config_file, 'w') as f:
                json.dump(DEFAULT_CONFIG, f, indent=2)

    def load_config(self):
        config = dict(DEFAULT_CONFIG)
        try:
            with open(self.config_file, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StarcoreConfigError(f"Invalid config file {self.config_file}: {e}") from e
        if not isinstance(data, dict):
            raise StarcoreConfigError(f"Config file {self.config_file} must hold a JSON object")
        config.update(data)
        _validate(config)
        return config

    def save_config(self, new_config):
        config = dict(self.config)
        config.update(new_config)
        _validate(config)
        self.config = config
        with open(self.config_file, 'w') as f:
            json.dump(self.config, f, indent=2)
        return {"status": "success"}

    # --- Game directory layout ---

    @property
    def game_dir(self):
        game_dir = self.config.get("game_dir")
        if not game_dir:
            raise StarcoreConfigError("game_dir is not configured")
        return Path(game_dir).expanduser()

    @property
    def storage_dir(self):
        return self.game_dir / "storage"

    @property
    def assets_file(self):
        configured = self.config.get("assets_file")
        if configured:
            return Path(configured).expanduser()
        return self.game_dir / "assets" / "packed.pak"

    def _find_files(self, extension, subdir):
        directory = self.storage_dir / subdir
        if not directory.is_dir():
            logger.warning(f"Storage directory not found: {directory}")
            return []
        return sorted(p for p in directory.iterdir() if p.name.endswith(extension))

    def find_world_files(self):
        return self._find_files(".world", "universe")

    def find_ship_world_files(self):
        return self._find_files(".shipworld", "player")

    def find_player_files(self):
        return self._find_files(".player", "player")

    def find_client_context_files(self):
        return {p.name[:-len(".clientcontext")]: p for p in self._find_files(".clientcontext", "universe")}

    def find_world_file(self, world_id):
        """Resolves a WorldId to its file, or None when it was never saved."""
        file_name = world_id.to_file_name()
        if file_name is None:
            return None
        subdir = "player" if world_id.is_client_ship_world() else "universe"
        path = self.storage_dir / subdir / file_name
        return path if path.exists() else None


def _validate(config):
    scale = config.get("render_scale")
    if isinstance(scale, bool) or not isinstance(scale, int) or scale < 1:
        raise StarcoreConfigError(
            f"Invalid render_scale value: expected a positive integer, got {scale!r}")
    for key in ("game_dir", "assets_file"):
        if not isinstance(config.get(key), str):
            raise StarcoreConfigError(f"Invalid {key} value: expected a path string")
