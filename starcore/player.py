import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .errors import SbonFormatError
from .versioned_json import read_sbvj01

logger = logging.getLogger("starcore.player")

CELESTIAL_PREFIX = "CelestialWorld:"
SHIP_PREFIX = "ClientShipWorld:"


@dataclass(frozen=True)
class WorldId:
    world_id: str

    def is_celestial_world(self) -> bool:
        return self.world_id.startswith(CELESTIAL_PREFIX)

    def is_client_ship_world(self) -> bool:
        return self.world_id.startswith(SHIP_PREFIX)

    def to_file_name(self) -> Optional[str]:
        if self.is_celestial_world():
            return self.world_id[len(CELESTIAL_PREFIX):].replace(":", "_") + ".world"
        if self.is_client_ship_world():
            return self.world_id[len(SHIP_PREFIX):] + ".shipworld"
        return None


class Player:
    def __init__(self, data, client_context=None):
        if data is None:
            raise SbonFormatError("Player file holds no data")
        self.data = data
        self.client_context = client_context
        self.id = data.get_by_key("uuid").as_string()
        self.name = data.get_by_path("identity/name").as_string()

    @classmethod
    def load(cls, player_file, client_context_file=None):
        data = read_sbvj01(player_file).data
        context = read_sbvj01(client_context_file).data if client_context_file else None
        return cls(data, context)

    def get_bookmarks(self) -> Dict[str, str]:
        """Spawn target (unique id of the flag) -> flag name."""
        bookmarks = {}
        entries = self.data.get_by_path("bookmarks/0/1")
        if entries is None:
            return bookmarks
        for bookmark in entries.as_sbon_list():
            if bookmark is None:
                continue
            bookmarks[bookmark.get_by_key("spawnTarget").as_string()] = bookmark.get_by_key("name").as_string()
        return bookmarks

    def get_current_world(self) -> Optional[WorldId]:
        if self.client_context is None:
            return None
        world = self.client_context.get_by_path("reviveWarp/world")
        if world is None:
            return None
        return WorldId(world.as_string())

    def get_location_in_current_world(self) -> Optional[Tuple[float, float]]:
        position = self.data.get_by_path("movementController/position")
        if position is None:
            return None
        return position.get_by_index(0).as_float(), position.get_by_index(1).as_float()


def load_players(storage):
    """Loads every player found under the configured storage directory."""
    players = []
    contexts = storage.find_client_context_files()
    for player_file in storage.find_player_files():
        player_id = player_file.name[:-len(".player")]
        context_file = contexts.get(player_id)
        if context_file is None:
            logger.warning(f"No client context for player {player_id}")
        players.append(Player.load(player_file, context_file))
    return players
