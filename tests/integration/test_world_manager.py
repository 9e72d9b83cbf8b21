"""Integration test: game directory -> players -> worlds -> rendered map."""

from __future__ import annotations

import json

from starcore.manager import WorldManager
from tests.builders import build_archive, build_world, sbvj01, versioned_json


def _game_dir(root):
    game = root / "game"
    (game / "assets").mkdir(parents=True)
    (game / "storage" / "universe").mkdir(parents=True)
    (game / "storage" / "player").mkdir(parents=True)

    dirt = {"materialId": 1, "materialName": "dirt", "particleColor": [120, 80, 40]}
    pistol = {"itemName": "commonpistol", "shortdescription": "Pistol", "category": "pistol",
              "price": 100, "primaryAbility": {"fireTime": 0.5, "baseDps": 10}}
    (game / "assets" / "packed.pak").write_bytes(build_archive({
        "/tiles/materials/dirt.material": json.dumps(dirt).encode(),
        "/items/active/weapons/ranged/pistol.activeitem": json.dumps(pistol).encode(),
    }))

    materials = [1] * 512 + [-1] * 512
    world = build_world(
        64, 64,
        metadata={
            "playerStart": [10, 10],
            "worldTemplate": {"celestialParameters": {"name": "Beta", "visitableParameters": {"typeName": "desert"}}},
        },
        tiles={(0, 0): materials},
        entities={(0, 0): [versioned_json("ObjectEntity", {"name": "shiplocker", "items": [
            None,
            {"content": {"name": "commonpistol", "count": 1, "parameters": {"level": 2, "primaryAbility": {}}}},
            {"content": {"name": "torch", "count": 20, "parameters": {}}},
        ]}, version=1)]},
    )
    (game / "storage" / "universe" / "1_2_3_4_5.world").write_bytes(world)

    player = {"uuid": "p1", "identity": {"name": "Nova"}, "movementController": {"position": [1.0, 2.0]}}
    (game / "storage" / "player" / "p1.player").write_bytes(sbvj01("PlayerEntity", player))
    context = {"reviveWarp": {"world": "CelestialWorld:1:2:3:4:5"}}
    (game / "storage" / "universe" / "p1.clientcontext").write_bytes(sbvj01("ClientContext", context))
    return game


def test_player_world_is_loaded_and_rendered(tmp_path) -> None:
    """The manager resolves a player's world and renders its map."""
    game = _game_dir(tmp_path)
    manager = WorldManager(data_dir=tmp_path / "data")
    manager.save_config({"game_dir": str(game), "render_scale": 2})

    players = manager.load_players()
    world = manager.load_player_world(players[0])

    assert world.name == "Beta"
    assert world.type_name == "Desert"
    assert len(world.get_entities()) == 1
    assert [w["file"] for w in manager.list_worlds()] == ["1_2_3_4_5.world"]

    counts = manager.count_materials(world)
    assert counts[0] == (-2, 64 * 64 - 1024, None)
    assert (1, 512, "dirt") in counts

    weapons = manager.chest_weapon_stats(world)
    assert [name for name, _ in weapons] == ["commonpistol"]
    assert weapons[0][1].price == 150

    result = manager.render_world_map(world.path)
    assert result["width"] == 128
    assert (tmp_path / "data" / "map_cache" / "1_2_3_4_5.png").exists()
    manager.close()
